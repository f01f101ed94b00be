"""Multithreaded processor implementation - uses a thread pool for parallelism.

Pillow and OpenCV release the GIL while decoding and resampling, so threads
scale across cores for this workload.
"""

from typing import Dict, List
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from ..core import AssetResult, AssetState, PipelineConfig, SourceAsset, get_logger
from ..core.protocols import ProcessingService


def process_batch(
    batch: List[SourceAsset], config: PipelineConfig, service: ProcessingService
) -> List[AssetResult]:
    """
    Process a batch of assets using multithreading.

    Args:
        batch: List of source assets to process
        config: Pipeline configuration (pool size)
        service: Per-asset processing service, shared by the threads

    Returns:
        List of asset results, in batch order
    """
    if not batch:
        return []

    logger = get_logger("processors")
    results: List[AssetResult] = [None] * len(batch)  # type: ignore[list-item]
    max_workers = min(config.max_workers, len(batch))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index: Dict[Future, int] = {
            executor.submit(service.process_asset, asset): i
            for i, asset in enumerate(batch)
        }

        try:
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
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
