"""Common functions shared across all processor implementations."""

from typing import Optional

from ..core import PipelineConfig, RunSummary, get_logger
from ..core.factories import LoggerFactory, ProcessingPipelineFactory
from ..core.exceptions import ConfigurationError
from ..core.observability import MetricsCollector
from ..core.services import ProcessBatchFunction


def log_configuration(config: PipelineConfig, processor_name: str) -> None:
    """Log processing configuration."""
    logger = get_logger("run")
    logger.info("=" * 80)
    logger.info(f"{processor_name.upper()} GALLERY DERIVATIVE PROCESSOR")
    logger.info("=" * 80)

    logger.info("CONFIGURATION:")
    logger.info(f"  Source:        {config.source_root}")
    logger.info(f"  Output:        {config.output_root}")
    logger.info(f"  Extensions:    {', '.join(sorted(config.allowed_extensions))}")
    logger.info("")

    logger.info("PROCESSING OPTIONS:")
    logger.info(f"  Thumbnail: {config.thumbnail_size}px square, quality {config.thumbnail_quality}")
    logger.info(f"  Preview:   {config.preview_size}px longest edge, quality {config.preview_quality}")
    logger.info(f"  Format:    {config.output_format.value}")
    logger.info(f"  Backend mode: {config.backend_mode.value}")
    logger.info(f"  Workers: {config.max_workers}, Batch Size: {config.batch_size}")
    if config.skip_unchanged:
        logger.info("  Skipping assets whose derivatives are up to date")
    logger.info("=" * 80)


def log_final_statistics(summary: RunSummary, metrics: Optional[MetricsCollector] = None) -> None:
    """Log final processing statistics, including every failed asset."""
    logger = get_logger("run")
    total_time = summary.processing_time
    overall_rate = summary.total_items / total_time if total_time > 0 else 0

    logger.info("=" * 80)
    logger.info("PROCESSING COMPLETED")
    logger.info("=" * 80)
    logger.info(f"Total execution time: {total_time:.1f}s")
    logger.info(f"Overall processing rate: {overall_rate:.1f} items/sec")
    logger.info(f"Successfully processed: {summary.processed_count}")
    logger.info(f"Skipped: {summary.skipped_count}")
    logger.info(f"Errors encountered: {summary.error_count}")
    for failure in summary.failures:
        logger.info(f"  {failure.relative_path}: [{failure.error_type}] {failure.error}")
    metrics_summary = metrics.get_summary() if metrics is not None else {}
    if metrics_summary:
        backends = ", ".join(
            f"{name}={count}" for name, count in sorted(metrics_summary["backends"].items())
        )
        logger.info(f"Decoded by backend: {backends or 'none'}")
        logger.info(
            f"Time per asset: avg {metrics_summary['avg_duration'] * 1000:.0f}ms, "
            f"max {metrics_summary['max_duration'] * 1000:.0f}ms"
        )
    logger.info("=" * 80)


def run_processing(
    config: PipelineConfig,
    processor_name: str,
    process_batch_fn: ProcessBatchFunction,
) -> RunSummary:
    """Build the pipeline for ``config`` and process the whole source tree."""
    if not config.source_root.is_dir():
        raise ConfigurationError(f"Source root does not exist: {config.source_root}")

    log_configuration(config, processor_name)

    metrics = MetricsCollector()
    pipeline = ProcessingPipelineFactory.create_pipeline(
        config,
        logger=LoggerFactory.create_logger(debug=config.debug),
        process_batch_fn=process_batch_fn,
        metrics_collector=metrics,
    )
    summary = pipeline.process_all()

    log_final_statistics(summary, metrics)
    return summary
