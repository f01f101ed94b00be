"""Deterministic derivative geometry shared by every backend."""

import math
from typing import Optional, Tuple

# EXIF orientation value -> clockwise rotation in degrees
ORIENTATION_ROTATIONS = {3: 180, 6: 90, 8: -90}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rotation_for(orientation: Optional[int]) -> int:
    """Clockwise rotation for an orientation value; 0 means leave as is."""
    return ORIENTATION_ROTATIONS.get(orientation, 0) if orientation is not None else 0


def square_crop_box(width: int, height: int) -> Tuple[int, int, int]:
    """Origin and side of the centered square crop: ``(x, y, side)``."""
    side = min(width, height)
    x = round_half_up((width - side) / 2)
    y = round_half_up((height - side) / 2)
    return x, y, side


def longest_edge_size(width: int, height: int, target: int) -> Tuple[int, int]:
    """Aspect-preserving size whose longer edge equals ``target``."""
    if width > height:
        return target, max(1, round_half_up(height * target / width))
    return max(1, round_half_up(width * target / height)), target
