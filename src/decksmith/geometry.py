"""Pure arithmetic over normalized ``(ymin, xmin, ymax, xmax)`` boxes."""

from __future__ import annotations

import math
from typing import Sequence, Tuple

from .errors import GeometryViolation
from .models import NORM_SCALE, Box


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def clamp_box(box: Sequence[float]) -> Box:
    """Clamp every coordinate of *box* into ``[0, 1000]``."""
    ymin, xmin, ymax, xmax = box
    return (
        clamp(ymin, 0.0, NORM_SCALE),
        clamp(xmin, 0.0, NORM_SCALE),
        clamp(ymax, 0.0, NORM_SCALE),
        clamp(xmax, 0.0, NORM_SCALE),
    )


def is_valid_box(box: Sequence[float]) -> bool:
    """True for four finite in-range numbers with ``min < max`` on both axes."""
    if len(box) != 4:
        return False
    try:
        ymin, xmin, ymax, xmax = (float(v) for v in box)
    except (TypeError, ValueError):
        return False
    if not all(math.isfinite(v) and 0.0 <= v <= NORM_SCALE for v in (ymin, xmin, ymax, xmax)):
        return False
    return ymin < ymax and xmin < xmax


def validate_box(box: Sequence[float]) -> Box:
    """Return *box* as a float tuple or raise :class:`GeometryViolation`."""
    if not is_valid_box(box):
        raise GeometryViolation(f"invalid box {list(box)!r}")
    return tuple(float(v) for v in box)  # type: ignore[return-value]


def expand(box: Sequence[float], pad_x: float, pad_y: float) -> Box:
    """Grow *box* by normalized padding on each side, clamped to ``[0, 1000]``.

    Minimum edges are floored and maximum edges ceiled so the expanded
    box always covers the padded area on the integer grid.
    """
    ymin, xmin, ymax, xmax = box
    return (
        max(0.0, float(math.floor(ymin - pad_y))),
        max(0.0, float(math.floor(xmin - pad_x))),
        min(NORM_SCALE, float(math.ceil(ymax + pad_y))),
        min(NORM_SCALE, float(math.ceil(xmax + pad_x))),
    )


def contains(outer: Sequence[float], inner: Sequence[float]) -> bool:
    """True if *inner* lies entirely within *outer* (edges may touch)."""
    return (
        inner[0] >= outer[0]
        and inner[1] >= outer[1]
        and inner[2] <= outer[2]
        and inner[3] <= outer[3]
    )


def vertical_gap(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance between the vertical spans of *a* and *b*; negative when they overlap."""
    return max(a[0], b[0]) - min(a[2], b[2])


def horizontal_gap(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance between the horizontal spans of *a* and *b*; negative when they overlap."""
    return max(a[1], b[1]) - min(a[3], b[3])


def intersects_or_near(a: Sequence[float], b: Sequence[float], threshold: float) -> bool:
    """Adjacency relation used when merging boxes.

    Holds when the vertical gap is below *threshold* and the horizontal
    spans overlap within *threshold*, or when one box contains the other.
    """
    if contains(a, b) or contains(b, a):
        return True
    return vertical_gap(a, b) < threshold and horizontal_gap(a, b) < threshold


def overlaps(a: Sequence[float], b: Sequence[float]) -> bool:
    """True when *a* and *b* share a region of positive area."""
    return vertical_gap(a, b) < 0 and horizontal_gap(a, b) < 0


def union(a: Sequence[float], b: Sequence[float]) -> Box:
    """Smallest box containing both *a* and *b*."""
    return (
        min(a[0], b[0]),
        min(a[1], b[1]),
        max(a[2], b[2]),
        max(a[3], b[3]),
    )


def area(box: Sequence[float]) -> float:
    """Area on the normalized grid, clamped to zero."""
    return max(0.0, box[2] - box[0]) * max(0.0, box[3] - box[1])


def pixels_to_norm(padding_px: float, width: int, height: int) -> Tuple[float, float]:
    """Convert a pixel padding into ``(pad_x, pad_y)`` normalized units.

    Each axis is scaled by its own page dimension, so the padding is only
    visually equal on both axes for square pages.
    """
    safe_w = width or NORM_SCALE
    safe_h = height or NORM_SCALE
    return (padding_px / safe_w * NORM_SCALE, padding_px / safe_h * NORM_SCALE)


def norm_to_pixels(box: Sequence[float], width: int, height: int) -> Tuple[float, float, float, float]:
    """Pixel rectangle ``(x0, y0, x1, y1)`` for a normalized box."""
    ymin, xmin, ymax, xmax = box
    return (
        xmin / NORM_SCALE * width,
        ymin / NORM_SCALE * height,
        xmax / NORM_SCALE * width,
        ymax / NORM_SCALE * height,
    )


def pixels_to_box(x0: float, y0: float, x1: float, y1: float, width: int, height: int) -> Box:
    """Normalized box for a pixel rectangle on an image of the given size."""
    return clamp_box(
        (
            y0 / height * NORM_SCALE,
            x0 / width * NORM_SCALE,
            y1 / height * NORM_SCALE,
            x1 / width * NORM_SCALE,
        )
    )
