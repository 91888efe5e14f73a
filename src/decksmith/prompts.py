"""Instruction text sent to the recognition and reconstruction capabilities."""

from __future__ import annotations

import json
from typing import Iterable, List, Optional, Sequence

OCR_FULL = """Analyze this slide image and list every overlay text block.
For each block return:
1. "text": the literal string.
2. "box_2d": [ymin, xmin, ymax, xmax] normalized to 0-1000.
3. "font_size": estimated cap height on the same 0-1000 vertical scale.
4. "is_bold": true or false.
5. "italic": true or false.
6. "color": hex colour such as "#FFFFFF".
7. "align": "left", "center" or "right".
8. "type": "presentation_text" for titles and body copy that should be
   removed, "embedded_art_text" for lettering that belongs to a logo,
   chart or illustration.

Return a strictly valid JSON array of objects."""

OCR_DETECTION = """Find every piece of text visible in this image, including
small captions, labels and faint or partially erased characters.
Ignore styling. For each text line return:
1. "text": the literal string.
2. "box_2d": [ymin, xmin, ymax, xmax] normalized to 0-1000, tight around
   the glyphs.

Return a strictly valid JSON array of objects."""


def ocr_enrichment(blocks: Sequence[dict]) -> str:
    """Second recognition pass: add style to already-detected geometry."""
    listing = json.dumps(list(blocks), ensure_ascii=False)
    return f"""The following text blocks were detected in this image:
{listing}

Keep every "text" and "box_2d" exactly as given and add for each block:
- "font_size": cap height on the 0-1000 vertical scale.
- "is_bold": true or false.
- "italic": true or false.
- "color": hex colour such as "#1A1A1A".
- "align": "left", "center" or "right".
- "type": "presentation_text" or "embedded_art_text".

Return a strictly valid JSON array with one object per input block."""


def inpainting(
    boxes: Sequence[Sequence[int]],
    premasked: bool,
    style_hints: Optional[Iterable[str]] = None,
) -> str:
    """Reconstruction instruction for the given normalized region boxes."""
    lines: List[str] = []
    if premasked:
        lines.append(
            "The regions listed below have been pre-filled with soft-edged "
            "colour patches that approximate the background behind removed text."
        )
    lines.append(
        "Restore the background inside these regions "
        "([ymin, xmin, ymax, xmax], normalized 0-1000):"
    )
    lines.append(json.dumps([list(b) for b in boxes]))
    lines.extend(
        [
            "",
            "Rules:",
            "- Blend every region into its surroundings with no seams, "
            "rectangles or colour shifts.",
            "- Continue any line, gradient, texture or pattern that enters a "
            "region instead of blurring it.",
            "- Remove all text fragments, glows and anti-aliasing residue "
            "inside the regions.",
            "- Keep any non-text artwork inside the regions.",
            "- Leave everything outside the regions unchanged.",
            "- Do not add objects, text or watermarks.",
            "- Keep the original resolution and aspect ratio.",
        ]
    )
    for hint in style_hints or ():
        lines.append(f"- {hint}")
    lines.extend(["", "Return only the restored image."])
    return "\n".join(lines)
