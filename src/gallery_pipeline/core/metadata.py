"""Normalization of raw EXIF tag maps into the gallery metadata record."""

import json
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .image_utils import EXIF_PREFIX
from .models import Metadata, PipelineConfig

Number = Union[int, float]

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Prioritized candidate keys per logical field
FIELD_CANDIDATES: Dict[str, Sequence[str]] = {
    "datetime": ("DateTimeOriginal", "DateTime"),
    "make": ("Make",),
    "model": ("Model",),
    "lens": ("LensModel", "UndefinedTag:0xA434"),
    "exposure": ("ExposureTime",),
    "shutter_speed": ("ShutterSpeedValue",),
    "fnumber": ("FNumber",),
    "iso": ("ISOSpeedRatings", "ISO", "PhotographicSensitivity"),
    "focal_length": ("FocalLength",),
    "orientation": ("Orientation",),
}


def lookup(tags: Mapping[str, Any], field: str, prefixed: bool = False) -> Any:
    """Resolve a logical field from a tag map.

    Each candidate key is tried as-is and then, when ``prefixed``, with the
    ``exif:`` namespace. The first non-empty value wins.
    """
    for key in FIELD_CANDIDATES[field]:
        keys = (key, f"{EXIF_PREFIX}{key}") if prefixed else (key,)
        for candidate in keys:
            value = tags.get(candidate)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
    return None


def parse_number(value: Any) -> Optional[float]:
    """Parse ints, floats, numeric strings and ``"N/D"`` fractions.

    A zero denominator or anything non-numeric yields None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if "/" in text:
        numerator, denominator = text.split("/", 1)
        try:
            num, den = float(numerator), float(denominator)
        except ValueError:
            return None
        if den == 0:
            return None
        return num / den
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def round_half_away(value: float, precision: int) -> float:
    """Round to ``precision`` decimals with ties away from zero (4.25 -> 4.3).

    Works on the shortest decimal repr, so binary noise does not move a tie.
    """
    try:
        rounded = Decimal(repr(value)).quantize(
            Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP
        )
    except InvalidOperation:
        # more digits than the decimal context holds; nothing left to round
        return value
    return float(rounded)


def round_number(value: float, precision: int) -> Number:
    """Round to ``precision`` decimals; whole results come back as int."""
    rounded = round_half_away(value, precision)
    if rounded.is_integer():
        return int(rounded)
    return rounded


def strip_make(model: str, make: Optional[str]) -> str:
    """Drop a leading manufacturer name from a camera model string."""
    if make and model.lower().startswith(make.lower()):
        return model[len(make):].strip()
    return model.strip()


class MetadataNormalizer:
    """Builds sparse, stably ordered metadata records from raw tag maps."""

    def __init__(self, config: PipelineConfig):
        self._exposure_precision = config.exposure_precision
        self._precision = config.numeric_precision

    def normalize(
        self,
        tags: Mapping[str, Any],
        prefixed: bool = False,
        fallback_mtime: Optional[float] = None,
    ) -> Metadata:
        """Normalize a raw tag map.

        Args:
            tags: Raw tag map from a backend.
            prefixed: The backend emitted ``exif:`` prefixed keys as well.
            fallback_mtime: Source modification time, used when no capture
                date is present.
        """

        def get(field: str) -> Any:
            return lookup(tags, field, prefixed)

        record: Dict[str, Any] = {
            "datetime": self._datetime(get("datetime"), fallback_mtime),
            "camera": self._camera(get("model"), get("make")),
            "lens": _text(get("lens")),
            "exposure": self._number(get("exposure"), self._exposure_precision),
            "shutter_speed": self._number(get("shutter_speed"), self._precision),
            "fnumber": self._fnumber(get("fnumber")),
            "iso": self._number(get("iso"), self._precision),
            "focal_length": self._focal_length(get("focal_length")),
        }
        return Metadata(**record)

    @staticmethod
    def orientation(tags: Mapping[str, Any]) -> Optional[int]:
        """Orientation tag as an int, looked up under both key forms."""
        value = parse_number(lookup(tags, "orientation", prefixed=True))
        if value is None or not value.is_integer():
            return None
        return int(value)

    @staticmethod
    def to_json(metadata: Metadata) -> str:
        """Serialize only the present fields, in declaration order."""
        return json.dumps(
            metadata.model_dump(exclude_none=True), indent=4, ensure_ascii=False
        )

    def _datetime(self, value: Any, fallback_mtime: Optional[float]) -> Optional[str]:
        text = _text(value)
        if text:
            return text
        if fallback_mtime is None:
            return None
        return datetime.fromtimestamp(fallback_mtime).strftime(EXIF_DATETIME_FORMAT)

    def _camera(self, model: Any, make: Any) -> Optional[str]:
        model_text = _text(model)
        if not model_text:
            return None
        return strip_make(model_text, _text(make)) or None

    def _number(self, value: Any, precision: int) -> Optional[Number]:
        number = parse_number(value)
        if number is None:
            return None
        return round_number(number, precision)

    def _fnumber(self, value: Any) -> Optional[float]:
        number = parse_number(value)
        if number is None:
            return None
        return round_half_away(number, 1)

    def _focal_length(self, value: Any) -> Optional[str]:
        number = self._number(value, self._precision)
        if number is None:
            return None
        return f"{number}mm"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
