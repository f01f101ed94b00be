"""Image and path utilities for the gallery pipeline."""

import mimetypes
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Dict, Union

from PIL import ExifTags, Image, TiffImagePlugin
from PIL.ExifTags import TAGS

from .logging_config import get_logger
from .models import DerivativeSet, PipelineConfig, SourceAsset

HEIF_CONTENT_TYPES = frozenset({"image/heic", "image/heif"})

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
}

EXIF_PREFIX = "exif:"


def content_type_for(extension: str) -> str:
    """Declared content type of a source file, from its extension."""
    ext = extension.lower().lstrip(".")
    if ext in CONTENT_TYPES:
        return CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(f"file.{ext}")
    return guessed or "application/octet-stream"


def is_heif(content_type: str) -> bool:
    return content_type in HEIF_CONTENT_TYPES


def _tag_name(tag_id: Any) -> str:
    name = TAGS.get(tag_id)
    if name:
        return name
    if isinstance(tag_id, int):
        return f"UndefinedTag:0x{tag_id:04X}"
    return str(tag_id)


def _process_value(value: Any) -> Union[str, int, float]:
    """Convert an EXIF value into a JSON-friendly scalar.

    Rationals are kept as ``"N/D"`` strings so that numeric parsing happens
    in one place, in the metadata normalizer.
    """
    if isinstance(value, TiffImagePlugin.IFDRational):
        return f"{value.numerator}/{value.denominator}"
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8").strip("\x00 ")
        except UnicodeDecodeError:
            return str(value)
    if isinstance(value, str):
        return value.strip("\x00 ")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (tuple, list)) and len(value) == 1:
        return _process_value(value[0])
    if isinstance(value, Iterable):
        return str(value)
    return str(value)


def extract_exif_data(img: "Image.Image", dual_keyed: bool = False) -> Dict[str, Any]:
    """
    Extract EXIF tags from a PIL Image, handling privacy concerns.

    Tags from the primary IFD and the Exif sub-IFD are merged and keyed by
    their EXIF names. GPS data is dropped.

    Args:
        img: PIL Image to extract EXIF from
        dual_keyed: Also store every tag under an ``exif:`` prefixed key

    Returns:
        Dictionary of tag name to value
    """
    exif = img.getexif()
    raw: Dict[Any, Any] = dict(exif.items())
    raw.update(exif.get_ifd(ExifTags.IFD.Exif))

    exif_dict: Dict[str, Any] = {}
    for tag_id, value in raw.items():
        tag = _tag_name(tag_id)

        # Skip GPS data for privacy
        if "gps" in tag.lower():
            continue

        processed_value = _process_value(value)
        exif_dict[tag] = processed_value
        if dual_keyed:
            exif_dict[f"{EXIF_PREFIX}{tag}"] = processed_value

    return exif_dict


def read_exif_tags(path: Path, dual_keyed: bool = False) -> Dict[str, Any]:
    """Read tags from a file header without decoding pixel data.

    An unreadable header yields an empty map: missing tags only mean the
    metadata record falls back to file times and omits the rest.
    """
    logger = get_logger("exif")
    try:
        with Image.open(path) as img:
            return extract_exif_data(img, dual_keyed=dual_keyed)
    except (OSError, SyntaxError, ValueError) as exc:
        logger.warning(f"[{path}] Could not read EXIF tags: {exc}")
        return {}


def derivative_paths(asset: SourceAsset, config: PipelineConfig) -> DerivativeSet:
    """
    Calculate the output paths of an asset's derivatives.

    Args:
        asset: Source asset
        config: Pipeline configuration (output root and format)

    Returns:
        Thumbnail, preview and metadata paths under
        ``<output_root>/<year>/<month>/``
    """
    base = Path(config.output_root) / asset.year / asset.month
    image_name = f"{asset.stem}.{config.output_extension}"
    return DerivativeSet(
        thumbnail=base / "thumbs" / image_name,
        preview=base / "previews" / image_name,
        metadata=base / "meta" / f"{asset.stem}.json",
    )
