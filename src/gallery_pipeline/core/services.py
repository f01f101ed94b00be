"""Service implementations for the derivative pipeline."""

import contextlib
import os
import tempfile
import time
from contextlib import ExitStack
from itertools import islice
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .derivatives import DerivativeGenerator
from .error_handling import BatchOperationContextManager
from .exceptions import DecodeError, GalleryPipelineError, output_error_handler
from .image_utils import derivative_paths, is_heif
from .metadata import MetadataNormalizer
from .models import (
    AssetResult,
    AssetState,
    DerivativeSet,
    PipelineConfig,
    RunSummary,
    SourceAsset,
)
from .observability import LogContext, MetricsCollector
from .protocols import (
    AssetDiscoveryService,
    BatchProcessor,
    LoggerProtocol,
    ProcessingService,
)
from .selection import BackendSelector

OUTPUT_FILE_MODE = 0o644

ProcessBatchFunction = Callable[
    [List[SourceAsset], PipelineConfig, ProcessingService], List[AssetResult]
]


def ensure_output_directories(derivatives: DerivativeSet) -> None:
    """Create ``thumbs/``, ``previews/`` and ``meta/``; safe for concurrent callers."""
    for path in derivatives.all_paths():
        with output_error_handler(path.parent):
            path.parent.mkdir(parents=True, exist_ok=True)


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to a temporary file beside ``path``, then rename over it.

    Readers never observe a partially written file.
    """
    with output_error_handler(path):
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.chmod(tmp_name, OUTPUT_FILE_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise


def is_up_to_date(source: Path, derivatives: DerivativeSet) -> bool:
    """All derivatives exist and none is older than the source."""
    try:
        source_mtime = source.stat().st_mtime
        return all(
            path.stat().st_mtime >= source_mtime for path in derivatives.all_paths()
        )
    except FileNotFoundError:
        return False


class AssetProcessingService(ProcessingService):
    """Runs one asset through decode, metadata, orientation and derivatives.

    Every outcome is returned as an ``AssetResult``; no exception escapes
    ``process_asset``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        selector: BackendSelector,
        normalizer: MetadataNormalizer,
        generator: DerivativeGenerator,
        logger: LoggerProtocol,
    ):
        self._config = config
        self._selector = selector
        self._normalizer = normalizer
        self._generator = generator
        self._logger = logger

    def process_asset(self, asset: SourceAsset) -> AssetResult:
        start_time = time.time()
        log_context = LogContext(operation="process_asset", asset=asset.relative_path)

        derivatives = derivative_paths(asset, self._config)
        result = AssetResult(relative_path=asset.relative_path, derivatives=derivatives)

        try:
            if self._config.skip_unchanged and is_up_to_date(asset.path, derivatives):
                result.state = AssetState.SKIPPED
                result.error = "derivatives are up to date"
                self._logger.debug("Skipping unchanged asset", log_context)
            else:
                self._run(asset, derivatives, result, log_context)
        except GalleryPipelineError as e:
            result.state = AssetState.FAILED
            result.error_type = type(e).__name__
            result.error = str(e)
            self._logger.error(
                "Asset processing failed",
                log_context.with_metadata(error_type=result.error_type, error=str(e)),
            )
        except Exception as e:  # noqa: BLE001
            result.state = AssetState.FAILED
            result.error_type = type(e).__name__
            result.error = str(e)
            self._logger.error(
                "Unexpected error while processing asset",
                log_context.with_metadata(error_type=result.error_type, error=str(e)),
                exc_info=True,
            )
        finally:
            result.processing_time = time.time() - start_time

        return result

    def _run(
        self,
        asset: SourceAsset,
        derivatives: DerivativeSet,
        result: AssetResult,
        log_context: LogContext,
    ) -> None:
        result.state = AssetState.DECODING
        data, source_mtime = self._read_source(asset)

        with ExitStack() as stack:
            backend, image = self._selector.decode(data, asset.content_type)
            stack.callback(image.close)
            result.backend = backend.name
            self._logger.debug(
                f"Decoded {image.width}x{image.height}",
                log_context.with_operation("decode").with_backend(backend.name),
            )

            tags = backend.read_tags(asset.path)
            metadata = self._normalizer.normalize(
                tags, prefixed=is_heif(asset.content_type), fallback_mtime=source_mtime
            )
            result.state = AssetState.METADATA_EXTRACTED

            orientation = self._normalizer.orientation(tags)
            oriented = self._generator.orient(backend, image, orientation)
            if oriented is not image:
                stack.callback(oriented.close)
            result.state = AssetState.ORIENTED
            self._logger.debug(
                f"Oriented to {oriented.width}x{oriented.height}",
                log_context.with_operation("orient").with_metadata(orientation=orientation),
            )

            thumbnail = self._generator.thumbnail(backend, oriented)
            preview = self._generator.preview(backend, oriented)

        ensure_output_directories(derivatives)
        atomic_write(derivatives.thumbnail, thumbnail)
        atomic_write(derivatives.preview, preview)
        atomic_write(
            derivatives.metadata, self._normalizer.to_json(metadata).encode("utf-8")
        )
        result.state = AssetState.DERIVATIVES_WRITTEN

        self._logger.info("Wrote derivatives", log_context.with_backend(result.backend))

    @staticmethod
    def _read_source(asset: SourceAsset) -> Tuple[bytes, float]:
        try:
            return asset.path.read_bytes(), asset.path.stat().st_mtime
        except OSError as exc:
            raise DecodeError(f"Could not read {asset.relative_path}: {exc}") from exc


class StrategyBatchProcessor(BatchProcessor):
    """Batch processor delegating to a concurrency strategy function."""

    def __init__(
        self,
        process_batch_fn: ProcessBatchFunction,
        processing_service: ProcessingService,
        config: PipelineConfig,
    ):
        self._process_batch_fn = process_batch_fn
        self._processing_service = processing_service
        self._config = config

    def process_batch(self, assets: List[SourceAsset]) -> List[AssetResult]:
        return self._process_batch_fn(assets, self._config, self._processing_service)


class PipelineOrchestrator:
    """Walks the source tree lazily and processes it batch by batch."""

    def __init__(
        self,
        asset_discovery: AssetDiscoveryService,
        batch_processor: BatchProcessor,
        logger: LoggerProtocol,
        batch_size: int = 100,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._asset_discovery = asset_discovery
        self._batch_processor = batch_processor
        self._logger = logger
        self._batch_size = batch_size
        self._metrics_collector = metrics_collector

    def process_all(self) -> RunSummary:
        """Process every discovered asset and return the run summary."""
        start_time = time.time()
        summary = RunSummary()
        assets = self._asset_discovery.walk()

        with BatchOperationContextManager(operation_name="Derivative generation") as batch_manager:
            batch_number = 0
            while True:
                batch = list(islice(assets, self._batch_size))
                if not batch:
                    break
                batch_number += 1
                batch_start = time.time()
                self._logger.info(f"Processing batch {batch_number} with {len(batch)} items")

                for result in self._batch_processor.process_batch(batch):
                    summary.record(result)
                    if self._metrics_collector is not None:
                        self._metrics_collector.record(result)
                    if result.state == AssetState.FAILED:
                        batch_manager.add_error(
                            result.error or "Unknown error",
                            item_identifier=result.relative_path,
                            error_type=result.error_type,
                        )

                batch_time = time.time() - batch_start
                rate = len(batch) / batch_time if batch_time > 0 else 0
                self._logger.info(
                    f"Progress: {summary.total_items} items - Rate: {rate:.1f} items/sec - "
                    f"Success: {summary.processed_count}, Skipped: {summary.skipped_count}, "
                    f"Errors: {summary.error_count}"
                )

            for relative_path, reason in self._asset_discovery.skipped:
                summary.record(
                    AssetResult(
                        relative_path=relative_path,
                        state=AssetState.SKIPPED,
                        error=reason,
                    )
                )

        summary.processing_time = time.time() - start_time
        if summary.total_items == 0:
            self._logger.info("No files found to process")
        return summary
