"""Multiprocess processor implementation - uses a process pool for parallelism."""

from typing import Dict, List, Tuple
from concurrent.futures import Future, ProcessPoolExecutor, as_completed

from ..core import (
    AssetResult,
    AssetState,
    PipelineConfig,
    SourceAsset,
    configure_multiprocessing_logging,
    get_logger,
)
from ..core.factories import LoggerAdapter, ProcessingPipelineFactory
from ..core.protocols import ProcessingService


def process_asset_worker(args: Tuple[SourceAsset, PipelineConfig]) -> AssetResult:
    """
    Worker function designed for use with a `ProcessPoolExecutor`.

    Each worker builds its own backends and services from the configuration,
    so decoded pixel data never leaves the worker process.

    Args:
        args: A tuple `(asset, config)`.

    Returns:
        An `AssetResult` object detailing the outcome.
    """
    asset, config = args

    logger = LoggerAdapter(configure_multiprocessing_logging(debug=config.debug))
    service = ProcessingPipelineFactory.create_processing_service(config, logger=logger)
    return service.process_asset(asset)


def process_batch(
    batch: List[SourceAsset], config: PipelineConfig, service: ProcessingService  # service is unused
) -> List[AssetResult]:
    """
    Processes a batch of assets using a `ProcessPoolExecutor` for parallelism.

    Args:
        batch: A list of `SourceAsset` objects to process.
        config: `PipelineConfig` for the run.
        service: The parent's processing service (unused; each worker
                 process builds its own).

    Returns:
        A list of `AssetResult` objects, in batch order.
    """
    if not batch:
        return []

    logger = get_logger("processors")
    results: List[AssetResult] = [None] * len(batch)  # type: ignore[list-item]
    max_workers = min(config.max_workers, len(batch))

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        future_to_index: Dict[Future, int] = {
            executor.submit(process_asset_worker, (asset, config)): i
            for i, asset in enumerate(batch)
        }

        try:
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    # A worker crash (e.g. out of memory) fails only its asset
                    asset = batch[index]
                    results[index] = AssetResult(
                        relative_path=asset.relative_path,
                        state=AssetState.FAILED,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
        except KeyboardInterrupt:
            logger.warning("Interrupted; waiting for in-flight assets to finish.")
            executor.shutdown(wait=True, cancel_futures=True)
            raise

    return results
