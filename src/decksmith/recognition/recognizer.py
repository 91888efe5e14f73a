from __future__ import annotations

import io
import logging
from dataclasses import replace
from typing import List, Optional

from PIL import Image

from .. import prompts
from ..config import CleanupConfig
from ..grouping import sort_reading_order
from ..models import RecognitionMode, RecognitionStrategy, TextBlock
from .backends import RecognitionBackend
from .parse import Malformed, Parsed, ParseResult, parse_response

logger = logging.getLogger("decksmith.recognition")


def encode_png(image: Image.Image) -> bytes:
    """PNG bytes for *image* (converted to RGB)."""
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format="PNG")
    return buf.getvalue()


def _detection_payload(blocks: List[TextBlock]) -> List[dict]:
    return [{"text": b.text, "box_2d": [round(v, 1) for v in b.box]} for b in blocks]


class TextRecognizer:
    """Recognition adapter: image in, reading-ordered text blocks out.

    Parameters
    ----------
    backend : RecognitionBackend
        Capability that turns PNG bytes plus an instruction into JSON.
    cfg : CleanupConfig, optional
        Supplies the detailed-mode strategy and reading-order tolerance.

    Malformed or empty capability output yields an empty list; only
    :class:`~decksmith.errors.RecognitionFailure` raised by the backend
    propagates.
    """

    def __init__(self, backend: RecognitionBackend, cfg: Optional[CleanupConfig] = None) -> None:
        self.backend = backend
        self.cfg = cfg or CleanupConfig()

    def _call(self, png: bytes, prompt: str, *, detailed: bool, label: str) -> ParseResult:
        raw = self.backend.detect(png, prompt, detailed=detailed)
        result = parse_response(raw)
        if isinstance(result, Malformed):
            logger.warning("%s: malformed response (%s)", label, result.reason)
        return result

    def _single_pass(self, png: bytes) -> List[TextBlock]:
        result = self._call(png, prompts.OCR_FULL, detailed=True, label="single-pass")
        return result.blocks if isinstance(result, Parsed) else []

    def _two_pass(self, png: bytes) -> List[TextBlock]:
        detected = self._call(png, prompts.OCR_DETECTION, detailed=False, label="detection")
        if not isinstance(detected, Parsed) or not detected.blocks:
            return []

        enriched = self._call(
            png,
            prompts.ocr_enrichment(_detection_payload(detected.blocks)),
            detailed=True,
            label="enrichment",
        )
        if isinstance(enriched, Parsed) and enriched.blocks:
            return enriched.blocks
        logger.info(
            "enrichment returned nothing; keeping %d detected blocks", len(detected.blocks)
        )
        return detected.blocks

    def _simple(self, png: bytes) -> List[TextBlock]:
        result = self._call(png, prompts.OCR_DETECTION, detailed=False, label="simple")
        return result.blocks if isinstance(result, Parsed) else []

    def recognize(
        self,
        image: Image.Image,
        mode: RecognitionMode = RecognitionMode.DETAILED,
        *,
        included: Optional[bool] = None,
    ) -> List[TextBlock]:
        """Detect text blocks in *image*.

        Every returned block carries an explicit ``included`` flag: the
        caller's *included* when given, otherwise whether the block is
        presentation text.  Blocks come back in reading order.

        Raises
        ------
        RecognitionFailure
            When the backend cannot be reached.
        """
        png = encode_png(image)
        if mode is RecognitionMode.SIMPLE:
            blocks = self._simple(png)
        elif self.cfg.recognition_strategy is RecognitionStrategy.SINGLE_PASS:
            blocks = self._single_pass(png)
        else:
            blocks = self._two_pass(png)

        stamped = [
            replace(b, included=included if included is not None else b.is_removable())
            for b in blocks
        ]
        ordered = sort_reading_order(stamped, self.cfg.reading_order_tolerance)
        logger.debug("recognize(%s): %d blocks", mode.value, len(ordered))
        return ordered
