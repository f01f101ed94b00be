"""Decode backends.

Two capability-equivalent backends implement the ``ImageBackend`` contract:

- ``OpenCVBackend`` ("fast"): narrow format support, quick decode and resample.
- ``PillowBackend`` ("general"): everything Pillow opens, plus HEIC/HEIF when
  pillow-heif is installed. Required for the fast backend's fallback.

They do not produce byte-identical output, but both honor the same geometry
(see ``geometry.py``).
"""

import io
from pathlib import Path
from typing import Any, Dict, Optional

import cv2
import numpy as np
from PIL import Image

from .error_handling import with_error_handling
from .exceptions import DecodeError, ImageProcessingError
from .geometry import longest_edge_size, rotation_for, square_crop_box
from .image_utils import is_heif, read_exif_tags
from .logging_config import get_logger
from .models import OutputFormat

# Optional HEIF/HEIC support
try:
    import pillow_heif

    pillow_heif.register_heif_opener()
    HAS_HEIF_SUPPORT = True
except ImportError:
    HAS_HEIF_SUPPORT = False

logger = get_logger("backends")

if not HAS_HEIF_SUPPORT:
    logger.warning("HEIF/HEIC support not available. Install pillow-heif for HEIF support.")


class DecodedImage:
    """Backend pixel data plus dimensions, owned by one asset's pass.

    Use as a context manager or call ``close()``; closing twice is a no-op.
    """

    def __init__(self, pixels: Any, width: int, height: int, backend: str):
        self._pixels = pixels
        self.width = width
        self.height = height
        self.backend = backend

    @property
    def pixels(self) -> Any:
        if self._pixels is None:
            raise ImageProcessingError("Decoded image has already been released")
        return self._pixels

    @property
    def closed(self) -> bool:
        return self._pixels is None

    def _release(self, pixels: Any) -> None:
        """Backend-specific release hook."""

    def close(self) -> None:
        if self._pixels is not None:
            pixels, self._pixels = self._pixels, None
            self._release(pixels)

    def __enter__(self) -> "DecodedImage":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<DecodedImage {self.backend} {self.width}x{self.height} {state}>"


class PillowImage(DecodedImage):
    def __init__(self, image: "Image.Image"):
        super().__init__(image, image.width, image.height, PillowBackend.name)

    def _release(self, pixels: "Image.Image") -> None:
        pixels.close()


class OpenCVImage(DecodedImage):
    def __init__(self, array: np.ndarray):
        height, width = array.shape[:2]
        super().__init__(array, width, height, OpenCVBackend.name)


class _BackendBase:
    """Operations expressed through each backend's primitives."""

    name = "base"

    def read_tags(self, path: Path) -> Dict[str, Any]:
        return read_exif_tags(path)

    def crop_square_center(self, image: DecodedImage) -> DecodedImage:
        x, y, side = square_crop_box(image.width, image.height)
        return self._crop(image, x, y, side, side)

    def resize_longest_edge(self, image: DecodedImage, target: int) -> DecodedImage:
        width, height = longest_edge_size(image.width, image.height, target)
        return self.resize(image, width, height)

    def _crop(self, image: DecodedImage, x: int, y: int, width: int, height: int) -> DecodedImage:
        raise NotImplementedError

    def resize(self, image: DecodedImage, width: int, height: int) -> DecodedImage:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class OpenCVBackend(_BackendBase):
    """Fast backend on OpenCV/NumPy. Pixels are 3-channel BGR arrays."""

    name = "fast"

    SUPPORTED_CONTENT_TYPES = frozenset(
        {"image/jpeg", "image/png", "image/webp", "image/bmp"}
    )

    ROTATE_CODES = {
        90: cv2.ROTATE_90_CLOCKWISE,
        180: cv2.ROTATE_180,
        -90: cv2.ROTATE_90_COUNTERCLOCKWISE,
    }

    ENCODERS = {
        OutputFormat.JPEG: (".jpg", cv2.IMWRITE_JPEG_QUALITY),
        OutputFormat.PNG: (".png", None),
        OutputFormat.WEBP: (".webp", cv2.IMWRITE_WEBP_QUALITY),
    }

    def supports(self, content_type: str) -> bool:
        return content_type in self.SUPPORTED_CONTENT_TYPES

    @with_error_handling
    def decode(self, data: bytes) -> DecodedImage:
        buffer = np.frombuffer(data, dtype=np.uint8)
        # Orientation is applied explicitly from the tag, never by the decoder
        pixels = cv2.imdecode(buffer, cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION)
        if pixels is None:
            raise DecodeError("OpenCV could not decode image data")
        return OpenCVImage(pixels)

    @with_error_handling
    def orient(self, image: DecodedImage, orientation: Optional[int]) -> DecodedImage:
        rotation = rotation_for(orientation)
        if not rotation:
            return image
        return OpenCVImage(cv2.rotate(image.pixels, self.ROTATE_CODES[rotation]))

    @with_error_handling
    def _crop(self, image: DecodedImage, x: int, y: int, width: int, height: int) -> DecodedImage:
        return OpenCVImage(np.ascontiguousarray(image.pixels[y:y + height, x:x + width]))

    @with_error_handling
    def resize(self, image: DecodedImage, width: int, height: int) -> DecodedImage:
        shrinking = width * height < image.width * image.height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LANCZOS4
        return OpenCVImage(
            cv2.resize(image.pixels, (width, height), interpolation=interpolation)
        )

    @with_error_handling
    def encode(self, image: DecodedImage, fmt: OutputFormat, quality: int) -> bytes:
        extension, quality_flag = self.ENCODERS[OutputFormat(fmt)]
        params = [quality_flag, int(quality)] if quality_flag is not None else []
        ok, buffer = cv2.imencode(extension, image.pixels, params)
        if not ok:
            raise ImageProcessingError(f"OpenCV could not encode {extension} output")
        return buffer.tobytes()


class PillowBackend(_BackendBase):
    """General backend on Pillow. Pixels are normalized to RGB on decode."""

    name = "general"

    TRANSPOSE_METHODS = {
        90: Image.Transpose.ROTATE_270,
        180: Image.Transpose.ROTATE_180,
        -90: Image.Transpose.ROTATE_90,
    }

    SAVE_FORMATS = {
        OutputFormat.JPEG: "JPEG",
        OutputFormat.PNG: "PNG",
        OutputFormat.WEBP: "WEBP",
    }

    def __init__(self, heif_enabled: Optional[bool] = None):
        self.heif_enabled = HAS_HEIF_SUPPORT if heif_enabled is None else heif_enabled

    def supports(self, content_type: str) -> bool:
        if is_heif(content_type):
            return self.heif_enabled
        return content_type.startswith("image/")

    def read_tags(self, path: Path) -> Dict[str, Any]:
        # HEIF tags are exposed under both plain and "exif:" keys
        return read_exif_tags(path, dual_keyed=is_heif_path(path))

    @with_error_handling
    def decode(self, data: bytes) -> DecodedImage:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            return PillowImage(_to_rgb(source))

    @with_error_handling
    def orient(self, image: DecodedImage, orientation: Optional[int]) -> DecodedImage:
        rotation = rotation_for(orientation)
        if not rotation:
            return image
        return PillowImage(image.pixels.transpose(self.TRANSPOSE_METHODS[rotation]))

    @with_error_handling
    def _crop(self, image: DecodedImage, x: int, y: int, width: int, height: int) -> DecodedImage:
        return PillowImage(image.pixels.crop((x, y, x + width, y + height)))

    @with_error_handling
    def resize(self, image: DecodedImage, width: int, height: int) -> DecodedImage:
        return PillowImage(
            image.pixels.resize((width, height), Image.Resampling.LANCZOS)
        )

    @with_error_handling
    def encode(self, image: DecodedImage, fmt: OutputFormat, quality: int) -> bytes:
        output_stream = io.BytesIO()
        image.pixels.save(
            output_stream, format=self.SAVE_FORMATS[OutputFormat(fmt)], quality=int(quality)
        )
        return output_stream.getvalue()


def is_heif_path(path: Path) -> bool:
    return Path(path).suffix.lower() in (".heic", ".heif")


def _to_rgb(image: "Image.Image") -> "Image.Image":
    """Normalize any decoded mode to RGB; transparency is flattened onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image.copy()
