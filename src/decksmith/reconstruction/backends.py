"""Reconstruction backends: capabilities that repaint regions of an image.

``inpaint`` returns encoded image bytes, or *None* when the capability
answered without producing an image.  Transport problems raise
:class:`~decksmith.errors.ReconstructionFailure`.
"""

from __future__ import annotations

import io
import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from ..errors import ReconstructionFailure
from ..recognition.backends import get_genai_client

logger = logging.getLogger("decksmith.reconstruction")


class ReconstructionBackend(ABC):
    """Restores background inside normalized region boxes."""

    name: str = "backend"

    @abstractmethod
    def inpaint(
        self, image_png: bytes, boxes: List[List[int]], prompt: str
    ) -> Optional[bytes]:
        """Return the restored image bytes, or *None* if none was produced."""


class GeminiReconstructionBackend(ReconstructionBackend):
    """Background restoration through a Gemini image model."""

    name = "gemini"

    def __init__(
        self,
        model: str = "gemini-2.5-flash-image",
        *,
        api_key: Optional[str] = None,
        temperature: float = 0.1,
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

    def inpaint(
        self, image_png: bytes, boxes: List[List[int]], prompt: str
    ) -> Optional[bytes]:
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
                    response_modalities=["IMAGE"],
                ),
            )
        except Exception as exc:
            raise ReconstructionFailure(
                f"{self.name} reconstruction request failed: {exc}"
            ) from exc
        return first_inline_image(resp)


def first_inline_image(resp) -> Optional[bytes]:
    """Bytes of the first inline image part in a generate_content response."""
    for candidate in getattr(resp, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return inline.data
    return None


def boxes_to_mask(
    boxes: Sequence[Sequence[float]], width: int, height: int
) -> np.ndarray:
    """uint8 mask (255 inside any box) for normalized *boxes* on a ``width × height`` image."""
    mask = np.zeros((height, width), dtype=np.uint8)
    for ymin, xmin, ymax, xmax in boxes:
        x0 = max(0, int(math.floor(xmin / 1000.0 * width)))
        y0 = max(0, int(math.floor(ymin / 1000.0 * height)))
        x1 = min(width, int(math.ceil(xmax / 1000.0 * width)))
        y1 = min(height, int(math.ceil(ymax / 1000.0 * height)))
        if x1 > x0 and y1 > y0:
            mask[y0:y1, x0:x1] = 255
    return mask


class OpenCVReconstructionBackend(ReconstructionBackend):
    """Deterministic local inpainting with ``cv2.inpaint`` (Telea).

    The prompt is ignored.  An empty box list returns the input unchanged.
    """

    name = "opencv"

    def __init__(self, radius: int = 5) -> None:
        self.radius = radius

    def inpaint(
        self, image_png: bytes, boxes: List[List[int]], prompt: str
    ) -> Optional[bytes]:
        import cv2

        img = Image.open(io.BytesIO(image_png)).convert("RGB")
        if not boxes:
            return image_png

        w, h = img.size
        mask = boxes_to_mask(boxes, w, h)
        bgr = cv2.cvtColor(np.asarray(img), cv2.COLOR_RGB2BGR)
        try:
            out = cv2.inpaint(bgr, mask, self.radius, cv2.INPAINT_TELEA)
        except cv2.error as exc:
            raise ReconstructionFailure(f"{self.name} inpaint failed: {exc}") from exc

        restored = Image.fromarray(cv2.cvtColor(out, cv2.COLOR_BGR2RGB))
        buf = io.BytesIO()
        restored.save(buf, format="PNG")
        logger.debug("opencv inpaint: %d boxes, %dx%d", len(boxes), w, h)
        return buf.getvalue()
