"""Validate raw recognition output into text blocks.

Capability responses are untrusted: :func:`parse_response` turns the raw
text into either :class:`Parsed` (a list of well-formed blocks) or
:class:`Malformed` (the reason plus a truncated copy of the payload).
Nothing past this module sees the raw JSON.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from ..geometry import clamp_box, is_valid_box
from ..models import Alignment, BlockCategory, TextBlock, TextStyle

logger = logging.getLogger("decksmith.recognition")

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class Parsed:
    """A usable response: zero or more valid blocks."""

    blocks: List[TextBlock] = field(default_factory=list)
    dropped: int = 0


@dataclass(frozen=True)
class Malformed:
    """A response that could not be read as a block list."""

    reason: str
    raw: str = ""


ParseResult = Union[Parsed, Malformed]


def _strip_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw.strip())


def _coerce_box(entry: dict) -> Optional[tuple]:
    box = entry.get("box_2d", entry.get("geometry"))
    if not isinstance(box, (list, tuple)) or len(box) != 4:
        return None
    try:
        vals = [float(v) for v in box]
    except (TypeError, ValueError):
        return None
    if not all(math.isfinite(v) for v in vals):
        return None
    clamped = clamp_box(vals)
    return clamped if is_valid_box(clamped) else None


def _coerce_font_size(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        size = float(value)
    except (TypeError, ValueError):
        return None
    return size if size > 0 else None


def _coerce_align(value: Any) -> Alignment:
    try:
        return Alignment(str(value).lower())
    except ValueError:
        return Alignment.LEFT


def _coerce_category(value: Any) -> BlockCategory:
    try:
        return BlockCategory(str(value).lower())
    except ValueError:
        return BlockCategory.PRESENTATION_TEXT


def _coerce_color(value: Any) -> str:
    if isinstance(value, str) and _HEX_RE.match(value.strip()):
        return value.strip().upper()
    return "#000000"


def block_from_entry(entry: Any) -> Optional[TextBlock]:
    """Build a :class:`TextBlock` from one response entry, or *None*."""
    if not isinstance(entry, dict):
        return None
    box = _coerce_box(entry)
    if box is None:
        return None
    return TextBlock(
        text=str(entry.get("text", "")),
        box=box,
        font_size=_coerce_font_size(entry.get("font_size")),
        style=TextStyle(
            bold=bool(entry.get("is_bold", False)),
            italic=bool(entry.get("italic", False)),
            align=_coerce_align(entry.get("align", "left")),
            color=_coerce_color(entry.get("color")),
        ),
        category=_coerce_category(entry.get("type", "presentation_text")),
    )


def parse_response(raw: Optional[str]) -> ParseResult:
    """Parse raw capability text into a tagged result.

    An empty string or an empty JSON array is a valid :class:`Parsed`
    with no blocks.  A JSON object wrapping the list under ``"blocks"``
    is accepted.  Entries with a missing or degenerate box are dropped
    and counted.
    """
    if raw is None or not raw.strip():
        return Parsed()

    text = _strip_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return Malformed(reason=f"invalid JSON: {exc.msg}", raw=text[:200])

    if isinstance(data, dict) and isinstance(data.get("blocks"), list):
        data = data["blocks"]
    if not isinstance(data, list):
        return Malformed(
            reason=f"expected a JSON array, got {type(data).__name__}", raw=text[:200]
        )

    blocks: List[TextBlock] = []
    dropped = 0
    for entry in data:
        blk = block_from_entry(entry)
        if blk is None:
            dropped += 1
        else:
            blocks.append(blk)

    if dropped:
        logger.debug("parse_response: dropped %d of %d entries", dropped, len(data))
    return Parsed(blocks=blocks, dropped=dropped)
