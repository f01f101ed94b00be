"""Fake implementations for testing purposes."""

import io
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from ..core.exceptions import DecodeError
from ..core.geometry import longest_edge_size, rotation_for, square_crop_box
from ..core.models import OutputFormat

# EXIF tag ids used by create_test_image
TAG_MAKE = 0x010F
TAG_MODEL = 0x0110
TAG_ORIENTATION = 0x0112
TAG_EXIF_IFD = 0x8769
TAG_EXPOSURE_TIME = 0x829A
TAG_FNUMBER = 0x829D
TAG_ISO = 0x8827
TAG_DATETIME_ORIGINAL = 0x9003
TAG_FOCAL_LENGTH = 0x920A
TAG_LENS_MODEL = 0xA434


class FakeImage:
    """Decoded image stand-in that only tracks its size and whether it was released."""

    def __init__(self, width: int, height: int, backend: str = "fake"):
        self.width = width
        self.height = height
        self.backend = backend
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeBackend:
    """Fake decode backend following the ``ImageBackend`` contract.

    Geometry is computed with the real helpers, so sizes flow through the
    pipeline exactly as with a real backend. Every image it hands out is kept
    in ``images`` so tests can check that all of them were released.
    """

    def __init__(
        self,
        name: str = "fake",
        content_types: Optional[Iterable[str]] = None,
        width: int = 300,
        height: int = 200,
        tags: Optional[Dict[str, Any]] = None,
        fail_decode: bool = False,
    ):
        self.name = name
        self.content_types = set(content_types or {"image/jpeg", "image/png"})
        self.width = width
        self.height = height
        self.tags = tags or {}
        self.fail_decode = fail_decode
        self.calls: List[str] = []
        self.images: List[FakeImage] = []

    def _new_image(self, width: int, height: int) -> FakeImage:
        image = FakeImage(width, height, self.name)
        self.images.append(image)
        return image

    def supports(self, content_type: str) -> bool:
        return content_type in self.content_types

    def decode(self, data: bytes) -> FakeImage:
        self.calls.append("decode")
        if self.fail_decode:
            raise DecodeError(f"{self.name} backend cannot decode this data")
        return self._new_image(self.width, self.height)

    def read_tags(self, path: Path) -> Dict[str, Any]:
        self.calls.append("read_tags")
        return dict(self.tags)

    def orient(self, image: FakeImage, orientation: Optional[int]) -> FakeImage:
        self.calls.append("orient")
        rotation = rotation_for(orientation)
        if not rotation:
            return image
        if rotation == 180:
            return self._new_image(image.width, image.height)
        return self._new_image(image.height, image.width)

    def crop_square_center(self, image: FakeImage) -> FakeImage:
        self.calls.append("crop_square_center")
        _, _, side = square_crop_box(image.width, image.height)
        return self._new_image(side, side)

    def resize(self, image: FakeImage, width: int, height: int) -> FakeImage:
        self.calls.append("resize")
        return self._new_image(width, height)

    def resize_longest_edge(self, image: FakeImage, target: int) -> FakeImage:
        return self.resize(image, *longest_edge_size(image.width, image.height, target))

    def encode(self, image: FakeImage, fmt: OutputFormat, quality: int) -> bytes:
        self.calls.append("encode")
        return f"{OutputFormat(fmt).value}:{image.width}x{image.height}:q{quality}".encode()


class FakeLogger:
    """Fake logger for testing with support for LogContext."""

    def __init__(self, name: str = "test_logger"):
        self.name = name
        self.logs: List[Dict[str, Any]] = []

    def _log(
        self, level: str, message: str, context: Any = None, **kwargs: Any
    ) -> None:
        """Internal logging method with context support."""
        log_entry = {
            "level": level,
            "message": message,
            "timestamp": time.time(),
            "kwargs": kwargs,
        }

        if context is not None:
            log_entry["context"] = {
                "correlation_id": getattr(context, "correlation_id", None),
                "operation": getattr(context, "operation", None),
                "asset": getattr(context, "asset", None),
                "backend": getattr(context, "backend", None),
                "metadata": getattr(context, "metadata", {}),
            }

        self.logs.append(log_entry)

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log("DEBUG", message, context, **kwargs)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log("INFO", message, context, **kwargs)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log("WARNING", message, context, **kwargs)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        self._log("ERROR", message, context, **kwargs)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get logged messages, optionally filtered by level."""
        if level:
            return [log for log in self.logs if log["level"] == level]
        return self.logs.copy()


def create_test_image(
    width: int = 100,
    height: int = 100,
    fmt: str = "JPEG",
    mode: str = "RGB",
    orientation: Optional[int] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
    datetime_original: Optional[str] = None,
    exposure_time: Optional[IFDRational] = None,
    fnumber: Optional[IFDRational] = None,
    iso: Optional[int] = None,
    focal_length: Optional[IFDRational] = None,
    lens: Optional[str] = None,
) -> bytes:
    """Create a test image in memory, optionally carrying EXIF tags."""
    color = (200, 80, 40, 128) if mode == "RGBA" else "red"
    image = Image.new(mode, (width, height), color=color)

    # A block in the top-left corner makes rotations observable
    block = (0, 0, 255, 255) if mode == "RGBA" else (0, 0, 255)
    for x in range(min(10, width)):
        for y in range(min(10, height)):
            image.putpixel((x, y), block if mode != "L" else 0)

    exif = Image.Exif()
    if orientation is not None:
        exif[TAG_ORIENTATION] = orientation
    if make is not None:
        exif[TAG_MAKE] = make
    if model is not None:
        exif[TAG_MODEL] = model

    exif_ifd: Dict[int, Any] = {}
    if datetime_original is not None:
        exif_ifd[TAG_DATETIME_ORIGINAL] = datetime_original
    if exposure_time is not None:
        exif_ifd[TAG_EXPOSURE_TIME] = exposure_time
    if fnumber is not None:
        exif_ifd[TAG_FNUMBER] = fnumber
    if iso is not None:
        exif_ifd[TAG_ISO] = iso
    if focal_length is not None:
        exif_ifd[TAG_FOCAL_LENGTH] = focal_length
    if lens is not None:
        exif_ifd[TAG_LENS_MODEL] = lens
    if exif_ifd:
        exif[TAG_EXIF_IFD] = exif_ifd

    img_bytes = io.BytesIO()
    save_kwargs: Dict[str, Any] = {"format": fmt}
    if fmt.upper() == "JPEG":
        save_kwargs["quality"] = 95
    if len(exif):
        save_kwargs["exif"] = exif.tobytes()
    image.save(img_bytes, **save_kwargs)
    return img_bytes.getvalue()


def setup_test_source_tree(root: Path) -> Path:
    """
    Set up a source tree with sample photos under ``root``.

    Layout::

        2024/07/sunset.jpg      landscape, full EXIF
        2024/07/portrait.jpg    landscape pixels, orientation 6
        2024/07/notes.txt       not an allowed type
        2024/08/logo.png        RGBA, no EXIF
        stray.jpg               outside any year/month directory
    """
    july = root / "2024" / "07"
    august = root / "2024" / "08"
    july.mkdir(parents=True, exist_ok=True)
    august.mkdir(parents=True, exist_ok=True)

    (july / "sunset.jpg").write_bytes(
        create_test_image(
            300,
            200,
            make="Canon",
            model="Canon EOS R5",
            datetime_original="2024:07:04 20:15:00",
            exposure_time=IFDRational(1, 250),
            fnumber=IFDRational(4, 1),
            iso=200,
            focal_length=IFDRational(50, 1),
            lens="RF24-105mm F4 L IS USM",
        )
    )
    (july / "portrait.jpg").write_bytes(create_test_image(300, 200, orientation=6))
    (july / "notes.txt").write_bytes(b"This is not an image")
    (august / "logo.png").write_bytes(create_test_image(120, 80, fmt="PNG", mode="RGBA"))
    (root / "stray.jpg").write_bytes(create_test_image(50, 50))

    return root
