"""Thumbnail and preview generation from a decoded, oriented image."""

from typing import Optional

from .models import PipelineConfig
from .protocols import DecodedImageProtocol, ImageBackend


class DerivativeGenerator:
    """Produces encoded thumbnail and preview bytes.

    Both derivatives are computed independently from the same oriented
    image; every intermediate handle is released before returning.
    """

    def __init__(self, config: PipelineConfig):
        self._config = config

    def orient(
        self,
        backend: ImageBackend,
        image: DecodedImageProtocol,
        orientation: Optional[int],
    ) -> DecodedImageProtocol:
        """Apply EXIF orientation (3, 6, 8); any other value returns ``image``."""
        return backend.orient(image, orientation)

    def thumbnail(self, backend: ImageBackend, image: DecodedImageProtocol) -> bytes:
        """Center square crop resized to ``thumbnail_size`` on each side."""
        size = self._config.thumbnail_size
        square = backend.crop_square_center(image)
        try:
            resized = backend.resize(square, size, size)
            try:
                return backend.encode(
                    resized, self._config.output_format, self._config.thumbnail_quality
                )
            finally:
                resized.close()
        finally:
            square.close()

    def preview(self, backend: ImageBackend, image: DecodedImageProtocol) -> bytes:
        """Aspect-preserving resize so the longer edge equals ``preview_size``."""
        resized = backend.resize_longest_edge(image, self._config.preview_size)
        try:
            return backend.encode(
                resized, self._config.output_format, self._config.preview_quality
            )
        finally:
            resized.close()
