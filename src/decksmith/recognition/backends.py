"""Recognition backends: the external capabilities that read text from an image.

A backend receives PNG bytes plus an instruction and returns raw JSON
text in the block wire format.  Any client-side exception is wrapped in
:class:`~decksmith.errors.RecognitionFailure`; validating the returned
text is the caller's job (see :mod:`decksmith.recognition.parse`).
"""

from __future__ import annotations

import io
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import RecognitionFailure

logger = logging.getLogger("decksmith.recognition")

# Cache: API key → genai.Client instance.
_client_cache: dict[str, object] = {}

# Cache: language → PaddleOCR instance.
_paddle_cache: dict[str, object] = {}

_API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")


def resolve_api_key(api_key: Optional[str] = None) -> str:
    """Return *api_key* or the first key found in the environment."""
    if api_key:
        return api_key
    for var in _API_KEY_VARS:
        value = os.environ.get(var)
        if value:
            return value
    return ""


def get_genai_client(api_key: Optional[str] = None):
    """Return a lazily-created ``google.genai`` client, cached per API key."""
    key = resolve_api_key(api_key)
    if key not in _client_cache:
        from google import genai

        _client_cache[key] = genai.Client(api_key=key) if key else genai.Client()
    return _client_cache[key]


def _block_schema(detailed: bool):
    """Response schema constraining the model to the block wire format."""
    from google.genai import types

    props = {
        "text": types.Schema(type=types.Type.STRING),
        "box_2d": types.Schema(
            type=types.Type.ARRAY, items=types.Schema(type=types.Type.NUMBER)
        ),
    }
    required = ["text", "box_2d"]
    if detailed:
        props.update(
            {
                "font_size": types.Schema(type=types.Type.NUMBER),
                "is_bold": types.Schema(type=types.Type.BOOLEAN),
                "italic": types.Schema(type=types.Type.BOOLEAN),
                "color": types.Schema(type=types.Type.STRING),
                "align": types.Schema(
                    type=types.Type.STRING, enum=["left", "center", "right"]
                ),
                "type": types.Schema(
                    type=types.Type.STRING,
                    enum=["presentation_text", "embedded_art_text"],
                ),
            }
        )
        required.append("type")
    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(type=types.Type.OBJECT, properties=props, required=required),
    )


class RecognitionBackend(ABC):
    """Reads text from a PNG-encoded image."""

    name: str = "backend"

    @abstractmethod
    def detect(self, image_png: bytes, prompt: str, *, detailed: bool) -> str:
        """Return raw JSON text describing the text blocks in the image.

        Raises
        ------
        RecognitionFailure
            When the capability cannot be reached or rejects the request.
        """


class GeminiRecognitionBackend(RecognitionBackend):
    """Text recognition through a Gemini multimodal model."""

    name = "gemini"

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        *,
        api_key: Optional[str] = None,
        temperature: float = 0.0,
        client=None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._api_key = api_key
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_genai_client(self._api_key)
        return self._client

    def detect(self, image_png: bytes, prompt: str, *, detailed: bool) -> str:
        try:
            from google.genai import types

            resp = self.client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_png, mime_type="image/png"),
                    prompt,
                ],
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                    response_schema=_block_schema(detailed),
                ),
            )
        except Exception as exc:
            raise RecognitionFailure(
                f"{self.name} recognition request failed: {exc}"
            ) from exc
        return resp.text or ""


class PaddleRecognitionBackend(RecognitionBackend):
    """Local geometry-only text detection with PaddleOCR.

    The prompt is ignored.  Detected lines are emitted in the same JSON
    wire format as the remote backends, with boxes normalized to the
    0-1000 scale against the image size.  Style fields are never
    produced, so this backend suits verification and SIMPLE mode.
    """

    name = "paddle"

    def __init__(self, lang: str = "en", min_confidence: float = 0.5, ocr=None) -> None:
        self.lang = lang
        self.min_confidence = min_confidence
        self._ocr = ocr

    def _get_ocr(self):
        if self._ocr is not None:
            return self._ocr
        if self.lang not in _paddle_cache:
            os.environ.setdefault("PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK", "True")

            from paddleocr import PaddleOCR

            _paddle_cache[self.lang] = PaddleOCR(
                lang=self.lang,
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                use_textline_orientation=False,
            )
        return _paddle_cache[self.lang]

    def detect(self, image_png: bytes, prompt: str, *, detailed: bool) -> str:
        import numpy as np
        from PIL import Image

        img = Image.open(io.BytesIO(image_png)).convert("RGB")
        w, h = img.size
        try:
            results = list(self._get_ocr().predict(np.asarray(img)))
        except Exception as exc:
            raise RecognitionFailure(
                f"{self.name} recognition failed: {exc}"
            ) from exc

        entries = []
        for page_result in results:
            # Dict-like OCRResult
            polys = (
                page_result.get("dt_polys")
                if hasattr(page_result, "get")
                else getattr(page_result, "dt_polys", None)
            )
            texts = (
                page_result.get("rec_texts")
                if hasattr(page_result, "get")
                else getattr(page_result, "rec_texts", None)
            )
            scores = (
                page_result.get("rec_scores")
                if hasattr(page_result, "get")
                else getattr(page_result, "rec_scores", None)
            )
            if polys is None or texts is None or scores is None:
                continue

            for poly, text, conf in zip(polys, texts, scores):
                if not text or conf < self.min_confidence:
                    continue
                xs = [float(p[0]) for p in poly]
                ys = [float(p[1]) for p in poly]
                entries.append(
                    {
                        "text": text,
                        "box_2d": [
                            round(min(ys) / h * 1000.0, 1),
                            round(min(xs) / w * 1000.0, 1),
                            round(max(ys) / h * 1000.0, 1),
                            round(max(xs) / w * 1000.0, 1),
                        ],
                    }
                )

        logger.debug("paddle detect: %d lines", len(entries))
        return json.dumps(entries)
