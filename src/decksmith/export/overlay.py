from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from ..geometry import norm_to_pixels
from ..models import CleanupRegion, TextBlock

# Colour keys for the element types drawn on a region overlay.
COLOR_KEYS = ["included_block", "excluded_block", "region"]

DEFAULT_COLORS: Dict[str, tuple] = {
    "included_block": (0, 180, 0, 220),  # green: will be removed
    "excluded_block": (0, 0, 255, 180),  # blue: left in place
    "region": (255, 0, 0, 200),  # red: sent to reconstruction
}

# Label prefixes for each element type
LABEL_PREFIXES = {
    "included_block": "B",
    "excluded_block": "X",
    "region": "R",
}


def _get_color(color_overrides: Optional[Dict[str, tuple]], key: str) -> tuple:
    """Get color for a key, using override if provided."""
    if color_overrides and key in color_overrides:
        return color_overrides[key]
    return DEFAULT_COLORS[key]


def _load_font(size: int):
    try:
        return ImageFont.truetype("arial.ttf", size)
    except (OSError, IOError):
        return ImageFont.load_default()


def _draw_label(
    draw: ImageDraw.ImageDraw,
    x: float,
    y: float,
    label: str,
    color: tuple,
    font,
    font_size: int,
) -> None:
    """Draw a small label just above the top-left corner of an element."""
    ty = max(0, y - font_size - 2)
    bbox = draw.textbbox((x, ty), label, font=font)
    bg_bbox = (bbox[0] - 1, bbox[1] - 1, bbox[2] + 1, bbox[3] + 1)
    draw.rectangle(bg_bbox, fill=(255, 255, 255, 200))
    draw.text((x, ty), label, fill=(color[0], color[1], color[2]), font=font)


def draw_regions_overlay(
    image: Image.Image,
    blocks: Sequence[TextBlock],
    regions: Sequence[CleanupRegion] = (),
    out_path: Path | str | None = None,
    color_overrides: Optional[Dict[str, tuple]] = None,
    line_width: int = 2,
    font_size: int = 12,
) -> Image.Image:
    """Render block outlines and cleanup regions on a copy of *image*.

    Blocks that take part in cleanup and blocks that are left alone get
    different colours; regions are outlined with a translucent fill.
    Boxes are mapped against the image's own size.

    Args:
        image: Page image to draw on (not modified)
        blocks: Working text blocks, labelled in order
        regions: Consolidated cleanup regions
        out_path: When given, the overlay is also saved there as PNG
        color_overrides: Optional RGBA per key in :data:`COLOR_KEYS`
        line_width: Outline width in pixels
        font_size: Label font size in pixels

    Returns:
        The RGB overlay image.
    """
    img = image.convert("RGBA")
    w, h = img.size
    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay, "RGBA")
    font = _load_font(font_size)

    region_color = _get_color(color_overrides, "region")
    for i, region in enumerate(regions, start=1):
        x0, y0, x1, y1 = (int(round(v)) for v in norm_to_pixels(region.box, w, h))
        draw.rectangle(
            [(x0, y0), (x1, y1)],
            outline=region_color,
            fill=(region_color[0], region_color[1], region_color[2], 40),
            width=line_width,
        )
        _draw_label(draw, x0, y0, f"{LABEL_PREFIXES['region']}{i}", region_color, font, font_size)

    for i, blk in enumerate(blocks, start=1):
        key = "included_block" if blk.is_removable() else "excluded_block"
        color = _get_color(color_overrides, key)
        x0, y0, x1, y1 = (int(round(v)) for v in norm_to_pixels(blk.box, w, h))
        draw.rectangle([(x0, y0), (x1, y1)], outline=color, width=line_width)
        _draw_label(draw, x0, y0, f"{LABEL_PREFIXES[key]}{i}", color, font, font_size)

    out = Image.alpha_composite(img, overlay).convert("RGB")
    if out_path is not None:
        out.save(out_path, format="PNG")
    return out
