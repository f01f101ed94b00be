#!/usr/bin/env python3
"""
Gallery derivative processor CLI

Walks <source-root>/<year>/<month>/ → decodes each photo → writes a square
thumbnail, an aspect-preserving preview and a metadata JSON record under
<output-root>/<year>/<month>/{thumbs,previews,meta}/.
"""

import sys
import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .core import (
    BackendMode,
    ConfigurationError,
    OutputFormat,
    PipelineConfig,
    get_logger,
    set_debug_logging,
)
from .core.services import ProcessBatchFunction
from .processors.common import run_processing
from .processors import (
    serial_process_batch,
    multithread_process_batch,
    multiprocess_process_batch,
)

PROCESSORS: Dict[str, Tuple[str, ProcessBatchFunction]] = {
    "serial": ("Serial", serial_process_batch),
    "multithread": ("Multithreaded", multithread_process_batch),
    "multiprocess": ("Multiprocess", multiprocess_process_batch),
}

# CLI destinations that map one-to-one onto PipelineConfig fields
CONFIG_OPTIONS = (
    "source_root",
    "output_root",
    "allowed_extensions",
    "thumbnail_size",
    "preview_size",
    "thumbnail_quality",
    "preview_quality",
    "output_format",
    "backend_mode",
    "processor",
    "workers",
    "batch_size",
    "skip_unchanged",
    "debug",
)


def add_processing_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the processing options on ``parser``.

    Every option defaults to None so that values from ``--config`` are only
    overridden by flags the user actually passed.
    """
    parser.add_argument("--source-root", help="Root of the year/month source tree")
    parser.add_argument("--output-root", help="Root of the derivative output tree")
    parser.add_argument("--config", help="JSON file with configuration values")
    parser.add_argument(
        "--allowed-extensions",
        nargs="+",
        default=None,
        help="Source extensions to process (default: jpg jpeg png heic heif)",
    )
    parser.add_argument("--thumbnail-size", type=int, default=None, help="Thumbnail side in pixels (default: 400)")
    parser.add_argument("--preview-size", type=int, default=None, help="Preview longest edge in pixels (default: 1200)")
    parser.add_argument("--thumbnail-quality", type=int, default=None, help="Thumbnail quality 1-100 (default: 85)")
    parser.add_argument("--preview-quality", type=int, default=None, help="Preview quality 1-100 (default: 90)")
    parser.add_argument(
        "--output-format",
        default=None,
        choices=[f.value for f in OutputFormat],
        help="Output raster format (default: jpeg)",
    )
    parser.add_argument(
        "--backend-mode",
        default=None,
        choices=[m.value for m in BackendMode],
        help="Decode backend policy (default: auto)",
    )
    parser.add_argument(
        "--processor",
        type=str,
        default=None,
        choices=list(PROCESSORS),
        help="Processing strategy to use (default: multithread)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (default: CPU count)")
    parser.add_argument("--batch-size", type=int, default=None, help="Batch size for progress reporting")
    parser.add_argument(
        "--skip-unchanged",
        action="store_true",
        default=None,
        help="Skip assets whose derivatives are newer than the source",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the derivative processor.

    Returns:
        An `argparse.Namespace` object containing the parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Generate gallery thumbnails, previews and metadata"
    )
    add_processing_arguments(parser)
    return parser.parse_args(argv)


def load_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            values = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Could not read config file {path}: {exc}") from exc
    if not isinstance(values, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return values


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Merge ``--config`` file values with explicit flags and validate them."""
    values: Dict[str, Any] = {}
    if getattr(args, "config", None):
        values.update(load_config_file(args.config))

    for option in CONFIG_OPTIONS:
        value = getattr(args, option, None)
        if value is not None:
            values[option] = value

    for required in ("source_root", "output_root"):
        if not values.get(required):
            raise ConfigurationError(f"--{required.replace('_', '-')} is required")

    values["source_root"] = Path(values["source_root"]).expanduser()
    values["output_root"] = Path(values["output_root"]).expanduser()

    try:
        return PipelineConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def run(args: argparse.Namespace) -> int:
    """Run one processing pass; returns the process exit code."""
    logger = get_logger("cli")
    try:
        config = build_config(args)

        if config.debug:
            set_debug_logging()

        processor_name, process_batch_fn = PROCESSORS[config.processor]
        summary = run_processing(config, processor_name, process_batch_fn)
        return 1 if summary.error_count else 0

    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
        return 130
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the derivative processing script.

    Parses arguments, builds the configuration, selects the processing
    strategy and exits with 1 when any asset failed.
    """
    sys.exit(run(parse_args(argv)))


if __name__ == "__main__":
    main()
