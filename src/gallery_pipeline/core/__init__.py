"""Core utilities and shared components for the gallery pipeline."""

from .image_utils import (
    content_type_for,
    derivative_paths,
    extract_exif_data,
    read_exif_tags,
)
from .logging_config import (
    configure_multiprocessing_logging,
    get_logger,
    set_debug_logging,
    setup_logger,
)
from .exceptions import (
    GalleryPipelineError,
    UnsupportedFormatError,
    DecodeError,
    MissingCapabilityError,
    ImageProcessingError,
    OutputWriteError,
    ConfigurationError,
)
from .models import (
    AssetResult,
    AssetState,
    BackendMode,
    DerivativeSet,
    Metadata,
    OutputFormat,
    PipelineConfig,
    RunSummary,
    SourceAsset,
)

__all__ = [
    "PipelineConfig",
    "SourceAsset",
    "DerivativeSet",
    "Metadata",
    "AssetResult",
    "AssetState",
    "RunSummary",
    "BackendMode",
    "OutputFormat",
    "content_type_for",
    "derivative_paths",
    "extract_exif_data",
    "read_exif_tags",
    "setup_logger",
    "get_logger",
    "set_debug_logging",
    "configure_multiprocessing_logging",
    "GalleryPipelineError",
    "UnsupportedFormatError",
    "DecodeError",
    "MissingCapabilityError",
    "ImageProcessingError",
    "OutputWriteError",
    "ConfigurationError",
]
