# backend/dimensions.py

import math
from typing import Tuple

from .errors import InvalidAspectRatio, InvalidDimensions

ASPECT_RATIOS = {
    "1/1": "Square (1:1)",
    "16/9": "Landscape (16:9)",
    "9/16": "Portrait (9:16)",
}


def parse_ratio(ratio: str) -> Tuple[float, float]:
    """
    Parse "W/H" into two positive numbers.
    """
    parts = (ratio or "").split("/")
    if len(parts) != 2:
        raise InvalidAspectRatio(f"Aspect ratio must look like 'W/H', got {ratio!r}")
    try:
        w, h = float(parts[0]), float(parts[1])
    except ValueError:
        raise InvalidAspectRatio(f"Aspect ratio must look like 'W/H', got {ratio!r}")
    if not (math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        raise InvalidAspectRatio(f"Aspect ratio sides must be positive, got {ratio!r}")
    return w, h


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def snap_to_multiple(value: int, multiple: int) -> int:
    """Floor `value` to the nearest lower multiple of `multiple`."""
    if multiple <= 0:
        raise ValueError("multiple must be positive")
    return (value // multiple) * multiple


def compute_dimensions(ratio: str, base_size: int = 512, multiple: int = 16) -> Tuple[int, int]:
    """
    Turn an aspect ratio into pixel dimensions whose area is close to
    base_size**2, each side floored to a multiple of `multiple`.

    Extreme ratios with a small base size can floor a side to 0; use
    ensure_positive() before sending the values anywhere.
    """
    if base_size <= 0:
        raise InvalidDimensions(f"Base size must be positive, got {base_size}")
    w, h = parse_ratio(ratio)
    scale = base_size / math.sqrt(w * h)
    width = _round_half_up(w * scale)
    height = _round_half_up(h * scale)
    return snap_to_multiple(width, multiple), snap_to_multiple(height, multiple)


def ensure_positive(width: int, height: int) -> Tuple[int, int]:
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Image dimensions must be positive, got {width}x{height}")
    return width, height
