from __future__ import annotations

import io
import logging
from typing import Iterable, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from .. import prompts
from ..models import CleanupRegion
from ..recognition.recognizer import encode_png
from .backends import ReconstructionBackend

logger = logging.getLogger("decksmith.reconstruction")


def decode_image(data: Optional[bytes]) -> Optional[Image.Image]:
    """Decode *data* into an RGB image, or *None* when it is not an image."""
    if not data:
        return None
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("reconstruction returned undecodable bytes: %s", exc)
        return None
    return img.convert("RGB")


class BackgroundReconstructor:
    """Reconstruction adapter: restore the background inside cleanup regions.

    The result always has the input's pixel size; a capability answer
    with a different size is resized back.  *None* means the capability
    produced no image, which is distinct from the
    :class:`~decksmith.errors.ReconstructionFailure` a backend raises
    when it cannot be reached.
    """

    def __init__(self, backend: ReconstructionBackend) -> None:
        self.backend = backend

    def reconstruct(
        self,
        image: Image.Image,
        regions: Sequence[CleanupRegion],
        *,
        premasked: bool = False,
        style_hints: Optional[Iterable[str]] = None,
    ) -> Optional[Image.Image]:
        boxes = [r.as_int_list() for r in regions]
        prompt = prompts.inpainting(boxes, premasked, style_hints)
        data = self.backend.inpaint(encode_png(image), boxes, prompt)

        result = decode_image(data)
        if result is None:
            logger.info("reconstruction produced no image (%d regions)", len(boxes))
            return None

        if result.size != image.size:
            logger.warning(
                "reconstruction size %dx%d differs from input %dx%d; resizing",
                result.width,
                result.height,
                image.width,
                image.height,
            )
            result = result.resize(image.size, Image.LANCZOS)
        return result
