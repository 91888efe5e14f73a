"""Serialization helpers for per-page metadata.

``serialize_page`` converts a :class:`~decksmith.models.Page` into a
JSON-friendly dict that can be written to ``page_N.json``.  Pixels are
not included; ``deserialize_page`` rebuilds the page around an image the
caller supplies.  Boxes use the ``box_2d`` wire key unchanged, so a
serialize/deserialize round trip preserves them exactly.

JSON layout
-----------
::

    {
      "version": 1,
      "page": 2,
      "width": 1600,
      "height": 900,
      "status": "DONE",
      "padding": 20,
      "blocks": [ {TextBlock.to_dict()}, ... ],
      "baseline_blocks": [ {TextBlock.to_dict()}, ... ]
    }
"""

from __future__ import annotations

from typing import Any, Optional

from PIL import Image

from ..models import Page, PageStatus, TextBlock

FORMAT_VERSION = 1

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _block_dict(blk: TextBlock) -> dict[str, Any]:
    d = blk.to_dict()
    # Keep boxes exactly as stored, not rounded.
    d["box_2d"] = list(blk.box)
    return d


def serialize_page(page: Page) -> dict[str, Any]:
    """Serialize a page's metadata to a JSON-friendly dict."""
    return {
        "version": FORMAT_VERSION,
        "page": page.index,
        "width": page.width,
        "height": page.height,
        "status": page.status.value,
        "padding": page.padding,
        "blocks": [_block_dict(b) for b in page.blocks],
        "baseline_blocks": [_block_dict(b) for b in page.baseline_blocks],
    }


def deserialize_page(
    data: dict[str, Any],
    image: Image.Image,
    working_image: Optional[Image.Image] = None,
) -> Page:
    """Rebuild a :class:`Page` from :func:`serialize_page` output.

    *image* becomes ``original_image``; *working_image* defaults to it.
    Width and height come from *data* so normalized boxes keep their
    meaning even if *image* was resampled.

    Raises
    ------
    ValueError
        When *data* has an unsupported ``version``.
    """
    version = data.get("version")
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported page data version: {version!r}")

    return Page(
        index=int(data["page"]),
        original_image=image,
        width=int(data.get("width", image.width)),
        height=int(data.get("height", image.height)),
        working_image=working_image if working_image is not None else image,
        blocks=tuple(TextBlock.from_dict(b) for b in data.get("blocks", [])),
        baseline_blocks=tuple(
            TextBlock.from_dict(b) for b in data.get("baseline_blocks", [])
        ),
        status=PageStatus(data.get("status", PageStatus.IDLE.value)),
        padding=data.get("padding"),
    )
