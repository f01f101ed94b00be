"""Factory classes for creating configured service instances."""

import logging
from typing import Any, Optional

from .backends import OpenCVBackend, PillowBackend
from .derivatives import DerivativeGenerator
from .logging_config import get_logger
from .metadata import MetadataNormalizer
from .models import PipelineConfig
from .observability import LogContext, MetricsCollector, format_message
from .protocols import LoggerProtocol
from .selection import BackendSelector
from .services import (
    AssetProcessingService,
    PipelineOrchestrator,
    ProcessBatchFunction,
    StrategyBatchProcessor,
)
from .walker import DirectoryWalker


class LoggerAdapter:
    """Adapter to make standard logger compatible with LoggerProtocol."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, message: str, context: Optional[LogContext] = None,
             exc_info: bool = False, **kwargs: Any) -> None:
        # stacklevel 3 attributes the record to the caller of debug()/info()/...
        self._logger.log(
            level,
            format_message(message, context, **kwargs),
            exc_info=exc_info,
            stacklevel=3,
        )

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, context, **kwargs)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(component: str = "pipeline", debug: bool = False) -> LoggerProtocol:
        """Create an adapter over the pipeline's child logger for ``component``."""
        logger = get_logger(component)
        if debug:
            logger.setLevel(logging.DEBUG)
        return LoggerAdapter(logger)


class BackendFactory:
    """Factory for the backend selector."""

    @staticmethod
    def create_selector(
        config: PipelineConfig,
        fast: Optional[Any] = None,
        general: Optional[Any] = None,
    ) -> BackendSelector:
        """Create a selector with both installed backends unless given explicitly."""
        return BackendSelector(
            mode=config.backend_mode,
            fast=fast if fast is not None else OpenCVBackend(),
            general=general if general is not None else PillowBackend(),
        )


class ProcessingPipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def create_processing_service(
        config: PipelineConfig,
        logger: Optional[LoggerProtocol] = None,
        selector: Optional[BackendSelector] = None,
    ) -> AssetProcessingService:
        """Create the per-asset service."""
        if logger is None:
            logger = LoggerFactory.create_logger(debug=config.debug)
        if selector is None:
            selector = BackendFactory.create_selector(config)

        return AssetProcessingService(
            config=config,
            selector=selector,
            normalizer=MetadataNormalizer(config),
            generator=DerivativeGenerator(config),
            logger=logger,
        )

    @staticmethod
    def create_pipeline(
        config: PipelineConfig,
        logger: Optional[LoggerProtocol] = None,
        selector: Optional[BackendSelector] = None,
        process_batch_fn: Optional[ProcessBatchFunction] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> PipelineOrchestrator:
        """Create a fully configured processing pipeline."""
        if logger is None:
            logger = LoggerFactory.create_logger(debug=config.debug)

        if process_batch_fn is None:
            from ..processors.serial import process_batch as process_batch_fn

        processing_service = ProcessingPipelineFactory.create_processing_service(
            config, logger=logger, selector=selector
        )
        batch_processor = StrategyBatchProcessor(process_batch_fn, processing_service, config)

        return PipelineOrchestrator(
            asset_discovery=DirectoryWalker(config, logger),
            batch_processor=batch_processor,
            logger=logger,
            batch_size=config.batch_size,
            metrics_collector=metrics_collector,
        )
