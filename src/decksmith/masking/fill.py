"""Local mask pass: paint an approximate background over each cleanup region.

For every region the pass samples colours just outside the box edges,
decides between a flat fill and a vertical or horizontal linear gradient,
paints the fill, and feathers its border with a blurred halo of the
average edge colour.  Output is a new image; the input is never touched
and the result is deterministic for the same image and regions.

Regions are painted in order and later regions sample pixels already
painted by earlier ones.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from ..config import CleanupConfig
from ..geometry import clamp, norm_to_pixels
from ..models import CleanupRegion

logger = logging.getLogger("decksmith.masking")

RGB = Tuple[float, float, float]


class FillMode(str, Enum):
    """How a masked region is painted."""

    SOLID = "solid"
    VERTICAL_GRADIENT = "vertical_gradient"
    HORIZONTAL_GRADIENT = "horizontal_gradient"


@dataclass(frozen=True)
class EdgeSamples:
    """Average colour sampled along each side of a region."""

    top: RGB
    bottom: RGB
    left: RGB
    right: RGB

    @property
    def average(self) -> RGB:
        sides = (self.top, self.bottom, self.left, self.right)
        return tuple(sum(c[i] for c in sides) / 4.0 for i in range(3))  # type: ignore[return-value]


@dataclass
class RegionFill:
    """What the mask pass did for one region (pixel coordinates)."""

    rect: Tuple[int, int, int, int]
    mode: FillMode
    samples: EdgeSamples
    feather_radius: float


@dataclass
class MaskResult:
    """Masked image plus a record of every painted region."""

    image: Image.Image
    fills: List[RegionFill] = field(default_factory=list)


def color_distance(a: RGB, b: RGB) -> float:
    """Manhattan distance between two RGB colours (0-765)."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) + abs(a[2] - b[2])


def choose_fill_mode(samples: EdgeSamples, threshold: float) -> FillMode:
    """Pick the fill for a region from its edge samples.

    A gradient is used along the axis whose opposite edges differ most,
    provided that difference exceeds *threshold*; otherwise a flat fill.
    """
    v_diff = color_distance(samples.top, samples.bottom)
    h_diff = color_distance(samples.left, samples.right)
    if v_diff > h_diff and v_diff > threshold:
        return FillMode.VERTICAL_GRADIENT
    if h_diff > v_diff and h_diff > threshold:
        return FillMode.HORIZONTAL_GRADIENT
    return FillMode.SOLID


def adaptive_expansion(box_height: float, cfg: CleanupConfig) -> float:
    """Bleed in pixels added around a region: taller text gets more."""
    return clamp(box_height * cfg.mask_expand_ratio, cfg.mask_expand_min_px, cfg.mask_expand_max_px)


def feather_radius(width: float, height: float, cfg: CleanupConfig) -> float:
    """Blur radius in pixels used to soften a painted region's border."""
    return clamp(min(width, height) * cfg.feather_ratio, cfg.feather_min_px, cfg.feather_max_px)


def _pixel(arr: np.ndarray, x: float, y: float) -> RGB:
    """Colour at (*x*, *y*), rounded half-up and clamped to the image."""
    h, w = arr.shape[:2]
    cx = int(clamp(math.floor(x + 0.5), 0, w - 1))
    cy = int(clamp(math.floor(y + 0.5), 0, h - 1))
    r, g, b = arr[cy, cx, :3]
    return (float(r), float(g), float(b))


def _mean(colors: Sequence[RGB]) -> RGB:
    n = float(len(colors))
    return tuple(sum(c[i] for c in colors) / n for i in range(3))  # type: ignore[return-value]


def sample_edges(
    arr: np.ndarray,
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    offset: float,
) -> EdgeSamples:
    """Average three samples per side, *offset* pixels outside the rectangle."""
    w = x1 - x0
    h = y1 - y0
    top = _mean([_pixel(arr, x, y0 - offset) for x in (x0, x0 + w / 2, x1)])
    bottom = _mean([_pixel(arr, x, y1 + offset) for x in (x0, x0 + w / 2, x1)])
    left = _mean([_pixel(arr, x0 - offset, y) for y in (y0, y0 + h / 2, y1)])
    right = _mean([_pixel(arr, x1 + offset, y) for y in (y0, y0 + h / 2, y1)])
    return EdgeSamples(top=top, bottom=bottom, left=left, right=right)


def render_fill(mode: FillMode, samples: EdgeSamples, width: int, height: int) -> np.ndarray:
    """Return a ``height × width × 3`` float patch for the chosen fill."""
    if mode is FillMode.VERTICAL_GRADIENT:
        t = ((np.arange(height, dtype=np.float64) + 0.5) / height)[:, None, None]
        start = np.array(samples.top, dtype=np.float64)
        end = np.array(samples.bottom, dtype=np.float64)
        col = start + (end - start) * t
        return np.broadcast_to(col, (height, width, 3)).copy()
    if mode is FillMode.HORIZONTAL_GRADIENT:
        t = ((np.arange(width, dtype=np.float64) + 0.5) / width)[None, :, None]
        start = np.array(samples.left, dtype=np.float64)
        end = np.array(samples.right, dtype=np.float64)
        row = start + (end - start) * t
        return np.broadcast_to(row, (height, width, 3)).copy()
    return np.broadcast_to(
        np.array(samples.average, dtype=np.float64), (height, width, 3)
    ).copy()


def _feather(
    arr: np.ndarray,
    rect: Tuple[int, int, int, int],
    color: RGB,
    radius: float,
) -> None:
    """Blend a blurred halo of *color* around *rect* into *arr* in place."""
    h, w = arr.shape[:2]
    x0, y0, x1, y1 = rect
    margin = int(math.ceil(radius * 2))
    wx0, wy0 = max(0, x0 - margin), max(0, y0 - margin)
    wx1, wy1 = min(w, x1 + margin), min(h, y1 + margin)

    alpha = Image.new("L", (wx1 - wx0, wy1 - wy0), 0)
    ImageDraw.Draw(alpha).rectangle(
        (x0 - wx0, y0 - wy0, x1 - wx0 - 1, y1 - wy0 - 1), fill=255
    )
    # Canvas-style shadow blur: sigma is half the blur radius.
    alpha = alpha.filter(ImageFilter.GaussianBlur(radius / 2.0))
    a = np.asarray(alpha, dtype=np.float64)[:, :, None] / 255.0

    window = arr[wy0:wy1, wx0:wx1]
    halo = np.array(color, dtype=np.float64)
    arr[wy0:wy1, wx0:wx1] = window * (1.0 - a) + halo * a


def synthesize_background(
    image: Image.Image,
    regions: Sequence[CleanupRegion],
    cfg: Optional[CleanupConfig] = None,
) -> MaskResult:
    """Paint every region of *image* with an inferred background.

    Parameters
    ----------
    image : PIL.Image.Image
        Source page image; it is copied, never modified.
    regions : sequence of CleanupRegion
        Normalized regions, converted against the image's own size.
    cfg : CleanupConfig, optional
        Expansion, sampling, gradient and feather tunables.

    Returns
    -------
    MaskResult
        The masked RGB image and one :class:`RegionFill` per painted region.
    """
    if cfg is None:
        cfg = CleanupConfig()

    arr = np.asarray(image.convert("RGB"), dtype=np.float64).copy()
    img_h, img_w = arr.shape[:2]
    fills: List[RegionFill] = []

    for region in regions:
        x0, y0, x1, y1 = norm_to_pixels(region.box, img_w, img_h)

        bleed = adaptive_expansion(y1 - y0, cfg)
        x0 = max(0.0, x0 - bleed)
        y0 = max(0.0, y0 - bleed)
        x1 = min(float(img_w), x1 + bleed)
        y1 = min(float(img_h), y1 + bleed)
        if x1 - x0 <= 0 or y1 - y0 <= 0:
            continue

        samples = sample_edges(arr, x0, y0, x1, y1, cfg.mask_sample_offset_px)
        mode = choose_fill_mode(samples, cfg.gradient_threshold)

        rect = (
            int(math.floor(x0)),
            int(math.floor(y0)),
            int(math.ceil(x1)),
            int(math.ceil(y1)),
        )
        rw, rh = rect[2] - rect[0], rect[3] - rect[1]
        radius = feather_radius(x1 - x0, y1 - y0, cfg)

        _feather(arr, rect, samples.average, radius)
        arr[rect[1] : rect[3], rect[0] : rect[2]] = render_fill(mode, samples, rw, rh)

        fills.append(RegionFill(rect=rect, mode=mode, samples=samples, feather_radius=radius))

    out = Image.fromarray(np.clip(np.rint(arr), 0, 255).astype(np.uint8))
    logger.debug("synthesize_background: painted %d of %d regions", len(fills), len(regions))
    return MaskResult(image=out, fills=fills)


def mask_regions(
    image: Image.Image,
    regions: Sequence[CleanupRegion],
    cfg: Optional[CleanupConfig] = None,
) -> Image.Image:
    """Return a copy of *image* with every region painted over."""
    return synthesize_background(image, regions, cfg).image
