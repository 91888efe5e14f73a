"""Region consolidation: detected text boxes → padded cleanup regions.

The consolidator filters blocks to those marked for removal, merges
neighbouring boxes with a single top-to-bottom sweep, pads every merged
box by the page padding (converted from pixels to normalized units per
axis) and caps the region count.

The sweep only compares each box against the most recently extended
region, so two boxes that are adjacent on the page but separated in
sort order by an unrelated box stay apart.  This keeps consolidation at
O(n log n).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from ..config import CleanupConfig
from ..geometry import expand, intersects_or_near, pixels_to_norm, union
from ..models import Box, CleanupRegion, TextBlock

logger = logging.getLogger("decksmith.grouping")

MergedBox = Tuple[Box, Tuple[int, ...]]


def merge_boxes(boxes: Sequence[Box], threshold: float) -> List[MergedBox]:
    """Merge adjacent boxes in one sweep over ``(ymin, xmin)`` order.

    Returns ``(box, member_indices)`` pairs in sweep order, where
    *member_indices* refer to positions in *boxes*.
    """
    if not boxes:
        return []

    order = sorted(range(len(boxes)), key=lambda i: (boxes[i][0], boxes[i][1]))
    merged: List[MergedBox] = []

    current = tuple(boxes[order[0]])
    members = [order[0]]
    for i in order[1:]:
        nxt = boxes[i]
        if intersects_or_near(current, nxt, threshold):
            current = union(current, nxt)
            members.append(i)
        else:
            merged.append((current, tuple(sorted(members))))
            current = tuple(nxt)
            members = [i]
    merged.append((current, tuple(sorted(members))))
    return merged


def _cap_regions(regions: List[CleanupRegion], max_regions: int) -> List[CleanupRegion]:
    """Keep the *max_regions* highest-priority regions, preserving sweep order."""
    if len(regions) <= max_regions:
        return regions
    ranked = sorted(range(len(regions)), key=lambda i: regions[i].priority)
    keep = set(ranked[:max_regions])
    logger.info(
        "Region cap: dropping %d of %d regions", len(regions) - max_regions, len(regions)
    )
    return [r for i, r in enumerate(regions) if i in keep]


def consolidate_regions(
    blocks: Sequence[TextBlock],
    width: int,
    height: int,
    padding_px: float,
    cfg: Optional[CleanupConfig] = None,
) -> List[CleanupRegion]:
    """Build the ordered list of cleanup regions for a page.

    Parameters
    ----------
    blocks : sequence of TextBlock
        Current working blocks in detection order.  Only blocks whose
        :meth:`~decksmith.models.TextBlock.is_removable` is true take part.
    width, height : int
        Pixel dimensions of the page the boxes are normalized against.
    padding_px : float
        Padding in pixels applied around every merged region.
    cfg : CleanupConfig, optional
        Supplies ``merge_threshold`` and ``max_regions``.

    Returns
    -------
    list[CleanupRegion]
        Regions in sweep order, each carrying the indices (into *blocks*)
        of the blocks it covers.
    """
    if cfg is None:
        cfg = CleanupConfig()

    eligible = [(i, b) for i, b in enumerate(blocks) if b.is_removable()]
    if not eligible:
        return []

    merged = merge_boxes([b.box for _, b in eligible], cfg.merge_threshold)
    pad_x, pad_y = pixels_to_norm(padding_px, width, height)

    regions = [
        CleanupRegion(
            box=expand(box, pad_x, pad_y),
            source_indices=tuple(eligible[m][0] for m in members),
        )
        for box, members in merged
    ]
    regions = _cap_regions(regions, cfg.max_regions)

    logger.debug(
        "consolidate_regions: %d blocks (%d eligible) -> %d regions (pad %.1f,%.1f)",
        len(blocks),
        len(eligible),
        len(regions),
        pad_x,
        pad_y,
    )
    return regions
