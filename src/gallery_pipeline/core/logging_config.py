"""Logging configuration for the gallery pipeline.

Every module logs through a child of the ``gallery-pipeline`` logger
(``get_logger("backends")`` is ``gallery-pipeline.backends``). Only the parent
owns a handler, so ``LOG_LEVEL``, ``LOG_FORMAT`` and ``--debug`` take effect
for the whole pipeline at once.

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    LOG_FORMAT: "structured" (default) or "simple"
"""

import os
import sys
import logging
from typing import Optional

PIPELINE_LOGGER = "gallery-pipeline"

FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
    "simple": ("%(asctime)s - %(name)s - %(levelname)s - %(message)s", None),
}


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name (or ``LOG_LEVEL``) to its number; unknown names are INFO."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def build_formatter(format_type: str = "structured") -> logging.Formatter:
    """Formatter for ``LOG_FORMAT`` if set, else ``format_type``."""
    env_format = os.getenv("LOG_FORMAT", format_type).lower()
    fmt, datefmt = FORMATS["structured" if env_format == "structured" else "simple"]
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logger(
    name: str = PIPELINE_LOGGER,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure ``name`` as a standalone logger writing to stdout.

    The level is applied on every call; the handler is added only once.

    Args:
        name: Logger name (defaults to the pipeline logger)
        level: Level override (defaults to ``LOG_LEVEL`` or INFO)
        format_type: "structured" or "simple", unless ``LOG_FORMAT`` is set

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter(format_type))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get the pipeline logger, or its child for ``component``.

    The pipeline logger is configured on first use. Children have no handler
    and no level of their own, so they follow the pipeline logger.
    """
    parent = logging.getLogger(PIPELINE_LOGGER)
    if not parent.handlers:
        parent = setup_logger()
    if component is None:
        return parent
    return parent.getChild(component)


def set_debug_logging() -> None:
    """Switch the whole pipeline to DEBUG."""
    get_logger().setLevel(logging.DEBUG)


def configure_multiprocessing_logging(debug: bool = False) -> logging.Logger:
    """
    Logger for a worker process, named after the process.

    Workers started with spawn import this module afresh, so the pipeline
    logger is configured again from the environment before ``debug`` applies.
    """
    import multiprocessing

    process_name = multiprocessing.current_process().name
    logger = get_logger(f"worker.{process_name}")
    if debug:
        set_debug_logging()
    return logger
