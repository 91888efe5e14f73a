"""Export helpers: page metadata JSON and inspection overlays."""

from .overlay import draw_regions_overlay
from .page_data import deserialize_page, serialize_page

__all__ = [
    "deserialize_page",
    "draw_regions_overlay",
    "serialize_page",
]
