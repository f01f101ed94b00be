"""Serial processor implementation - processes assets one by one."""

from typing import List

from ..core import AssetResult, PipelineConfig, SourceAsset
from ..core.protocols import ProcessingService


def process_batch(
    batch: List[SourceAsset], config: PipelineConfig, service: ProcessingService
) -> List[AssetResult]:
    """
    Processes a batch of assets serially, one by one, in the current thread.

    Args:
        batch: A list of `SourceAsset` objects to process.
        config: `PipelineConfig` for the run.
        service: The per-asset processing service.

    Returns:
        A list of `AssetResult` objects, one for each asset, in batch order.
    """
    results = []

    for asset in batch:
        result = service.process_asset(asset)
        results.append(result)

    return results
