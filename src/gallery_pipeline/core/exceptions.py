"""Custom exceptions for the gallery pipeline.

Every failure during one asset's pass is raised as a subclass of
``GalleryPipelineError`` so the orchestrator can record a typed failure and
move on to the next asset.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator


class GalleryPipelineError(Exception):
    """Base exception for all gallery pipeline errors."""


class UnsupportedFormatError(GalleryPipelineError):
    """The source format is not allowed or not handled under the backend mode."""


class DecodeError(GalleryPipelineError):
    """A backend could not parse the source bytes."""


class MissingCapabilityError(GalleryPipelineError):
    """The source needs a backend capability that is not installed."""


class ImageProcessingError(GalleryPipelineError):
    """A rotate, crop, resize or encode step failed on a decoded image."""


class OutputWriteError(GalleryPipelineError):
    """Creating an output directory or writing a derivative failed."""


class ConfigurationError(GalleryPipelineError):
    """Error raised for invalid configuration options."""


@contextmanager
def output_error_handler(target: Any) -> Iterator[None]:
    """Turn filesystem errors raised while writing ``target`` into OutputWriteError."""
    try:
        yield
    except OSError as exc:
        raise OutputWriteError(f"Failed to write {target}: {exc}") from exc
