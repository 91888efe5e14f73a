"""Editing boundary: validated changes to a page's working blocks.

Every helper returns a new :class:`~decksmith.models.Page`; boxes are
checked here so the pipeline can assume valid geometry on entry.
Edits leave ``baseline_blocks`` alone, which is what :func:`reset_blocks`
restores.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List

from .errors import GeometryViolation
from .geometry import validate_box
from .models import Page, TextBlock

logger = logging.getLogger("decksmith.editing")


def _block_at(page: Page, i: int) -> TextBlock:
    if not 0 <= i < len(page.blocks):
        raise IndexError(f"block index {i} out of range for page {page.index}")
    return page.blocks[i]


def _with_block(page: Page, i: int, block: TextBlock) -> Page:
    blocks: List[TextBlock] = list(page.blocks)
    blocks[i] = block
    return page.evolve(blocks=blocks)


def move_block(page: Page, i: int, dy: float, dx: float) -> Page:
    """Translate block *i* by ``(dy, dx)`` normalized units.

    The move is rejected rather than clamped when it would push the box
    off the 0-1000 grid.

    Raises
    ------
    GeometryViolation
        When the moved box leaves the grid.
    """
    blk = _block_at(page, i)
    ymin, xmin, ymax, xmax = blk.box
    box = validate_box((ymin + dy, xmin + dx, ymax + dy, xmax + dx))
    return _with_block(page, i, blk.with_box(box))


def resize_block(page: Page, i: int, box) -> Page:
    """Replace the box of block *i* with *box* ``(ymin, xmin, ymax, xmax)``.

    Raises
    ------
    GeometryViolation
        When *box* has ``min >= max`` on either axis or lies off the grid.
    """
    blk = _block_at(page, i)
    try:
        new_box = validate_box(box)
    except GeometryViolation:
        logger.debug("resize_block rejected %r on page %d", box, page.index)
        raise
    return _with_block(page, i, blk.with_box(new_box))


def set_included(page: Page, i: int, included: bool) -> Page:
    """Toggle whether block *i* takes part in cleanup."""
    blk = _block_at(page, i)
    return _with_block(page, i, replace(blk, included=bool(included)))


def reset_blocks(page: Page) -> Page:
    """Restore the blocks produced by the last recognition pass."""
    return page.evolve(blocks=page.baseline_blocks)

