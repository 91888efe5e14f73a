"""Reconstruction adapter: restore background behind removed text."""

from .backends import (
    GeminiReconstructionBackend,
    OpenCVReconstructionBackend,
    ReconstructionBackend,
    boxes_to_mask,
)
from .reconstructor import BackgroundReconstructor, decode_image

__all__ = [
    "BackgroundReconstructor",
    "GeminiReconstructionBackend",
    "OpenCVReconstructionBackend",
    "ReconstructionBackend",
    "boxes_to_mask",
    "decode_image",
]
