"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from .models import AssetResult, OutputFormat, SourceAsset


class DecodedImageProtocol(Protocol):
    """Backend-owned pixel data with its dimensions."""

    width: int
    height: int

    def close(self) -> None:
        """Release the pixel buffer."""
        ...


class ImageBackend(Protocol):
    """Capability contract shared by the fast and general decode backends."""

    name: str

    def supports(self, content_type: str) -> bool:
        """Whether this backend can decode the given content type."""
        ...

    def decode(self, data: bytes) -> DecodedImageProtocol:
        """Decode source bytes into pixel data."""
        ...

    def read_tags(self, path: Path) -> Dict[str, Any]:
        """Read the raw EXIF tag map of a source file."""
        ...

    def orient(
        self, image: DecodedImageProtocol, orientation: Optional[int]
    ) -> DecodedImageProtocol:
        """Rotate according to an EXIF orientation value."""
        ...

    def crop_square_center(self, image: DecodedImageProtocol) -> DecodedImageProtocol:
        """Crop the largest centered square."""
        ...

    def resize(
        self, image: DecodedImageProtocol, width: int, height: int
    ) -> DecodedImageProtocol:
        """Resample to exact dimensions."""
        ...

    def resize_longest_edge(
        self, image: DecodedImageProtocol, target: int
    ) -> DecodedImageProtocol:
        """Resample so the longer edge equals ``target``."""
        ...

    def encode(
        self, image: DecodedImageProtocol, fmt: OutputFormat, quality: int
    ) -> bytes:
        """Encode pixel data into an output raster format."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        ...


class AssetDiscoveryService(ABC):
    """Abstract service for discovering source assets to process."""

    #: (relative_path, reason) for files the last walk passed over
    skipped: List[Tuple[str, str]]

    @abstractmethod
    def walk(self) -> Iterator[SourceAsset]:
        """Lazily yield source assets."""
        ...


class ProcessingService(ABC):
    """Abstract service for processing a single asset."""

    @abstractmethod
    def process_asset(self, asset: SourceAsset) -> AssetResult:
        """Process a single asset."""
        ...


class BatchProcessor(ABC):
    """Abstract batch processor."""

    @abstractmethod
    def process_batch(self, assets: List[SourceAsset]) -> List[AssetResult]:
        """Process a batch of assets."""
        ...
