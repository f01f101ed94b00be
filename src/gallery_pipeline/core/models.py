"""Shared data models for the gallery pipeline."""

import os
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BackendMode(str, Enum):
    """Policy used to pick a decode backend for each asset."""

    AUTO = "auto"
    FAST_ONLY = "fast-only"
    GENERAL_ONLY = "general-only"


class OutputFormat(str, Enum):
    """Raster format of the thumbnail and preview files."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"


class AssetState(str, Enum):
    """Per-asset pipeline states; the last three are terminal."""

    DISCOVERED = "discovered"
    DECODING = "decoding"
    METADATA_EXTRACTED = "metadata_extracted"
    ORIENTED = "oriented"
    DERIVATIVES_WRITTEN = "derivatives_written"
    SKIPPED = "skipped"
    FAILED = "failed"


DEFAULT_ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "heic", "heif"})

OUTPUT_EXTENSIONS = {
    OutputFormat.JPEG: "jpg",
    OutputFormat.PNG: "png",
    OutputFormat.WEBP: "webp",
}


class PipelineConfig(BaseModel):
    """Immutable configuration injected into every pipeline component."""

    model_config = ConfigDict(frozen=True)

    source_root: Path
    output_root: Path
    allowed_extensions: FrozenSet[str] = DEFAULT_ALLOWED_EXTENSIONS
    thumbnail_size: int = Field(default=400, gt=0)
    preview_size: int = Field(default=1200, gt=0)
    thumbnail_quality: int = Field(default=85, ge=1, le=100)
    preview_quality: int = Field(default=90, ge=1, le=100)
    output_format: OutputFormat = OutputFormat.JPEG
    backend_mode: BackendMode = BackendMode.AUTO
    exposure_precision: int = Field(default=4, ge=0)
    numeric_precision: int = Field(default=1, ge=0)
    processor: str = "multithread"
    workers: Optional[int] = Field(default=None, gt=0)
    batch_size: int = Field(default=100, gt=0)
    skip_unchanged: bool = False
    debug: bool = False

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(ext.strip().lstrip(".").lower() for ext in value if ext.strip())

    @field_validator("processor")
    @classmethod
    def _check_processor(cls, value: str) -> str:
        if value not in ("serial", "multithread", "multiprocess"):
            raise ValueError(f"Unknown processor: {value}")
        return value

    @property
    def output_extension(self) -> str:
        return OUTPUT_EXTENSIONS[self.output_format]

    @property
    def max_workers(self) -> int:
        """Worker pool size: the configured value, else one per CPU core."""
        return self.workers or os.cpu_count() or 1


class SourceAsset(BaseModel):
    """A discovered source photo. Created by the walker and never mutated."""

    model_config = ConfigDict(frozen=True)

    path: Path
    relative_path: str
    year: str
    month: str
    stem: str
    extension: str
    content_type: str


class DerivativeSet(BaseModel):
    """Output paths for one source asset."""

    model_config = ConfigDict(frozen=True)

    thumbnail: Path
    preview: Path
    metadata: Path

    def all_paths(self) -> List[Path]:
        return [self.thumbnail, self.preview, self.metadata]


class Metadata(BaseModel):
    """Sparse metadata record. Absent fields are left out when serialized."""

    datetime: Optional[str] = None
    camera: Optional[str] = None
    lens: Optional[str] = None
    exposure: Optional[Union[int, float]] = None
    shutter_speed: Optional[Union[int, float]] = None
    fnumber: Optional[float] = None
    iso: Optional[Union[int, float]] = None
    focal_length: Optional[str] = None


class AssetResult(BaseModel):
    """Result of processing a single source asset."""

    relative_path: str
    state: AssetState = AssetState.DISCOVERED
    backend: str = ""
    error_type: str = ""
    error: str = ""
    derivatives: Optional[DerivativeSet] = None
    processing_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == AssetState.DERIVATIVES_WRITTEN


class RunSummary(BaseModel):
    """Aggregate outcome of one pipeline run."""

    total_items: int = 0
    processed_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    processing_time: float = 0.0
    failures: List[AssetResult] = Field(default_factory=list)

    def record(self, result: AssetResult) -> None:
        self.total_items += 1
        if result.success:
            self.processed_count += 1
        elif result.state == AssetState.SKIPPED:
            self.skipped_count += 1
        else:
            self.error_count += 1
            self.failures.append(result)
