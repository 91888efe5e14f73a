from __future__ import annotations

from typing import List, Sequence

from ..models import TextBlock


def sort_reading_order(blocks: Sequence[TextBlock], tolerance: float = 20.0) -> List[TextBlock]:
    """Order blocks top-to-bottom, then left-to-right within a line.

    Blocks are swept by ``ymin``; a block joins the current line when its
    ``ymin`` is within *tolerance* of the line's first block.  Each line
    is then ordered by ``xmin``.
    """
    if not blocks:
        return []

    by_top = sorted(blocks, key=lambda b: (b.ymin, b.xmin))
    lines: List[List[TextBlock]] = []
    line_top = None
    for blk in by_top:
        if line_top is not None and blk.ymin - line_top < tolerance:
            lines[-1].append(blk)
        else:
            lines.append([blk])
            line_top = blk.ymin

    ordered: List[TextBlock] = []
    for line in lines:
        ordered.extend(sorted(line, key=lambda b: b.xmin))
    return ordered
