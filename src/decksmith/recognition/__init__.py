"""Recognition adapter: detect text blocks through a pluggable backend."""

from .backends import (
    GeminiRecognitionBackend,
    PaddleRecognitionBackend,
    RecognitionBackend,
)
from .parse import Malformed, Parsed, parse_response
from .recognizer import TextRecognizer, encode_png

__all__ = [
    "GeminiRecognitionBackend",
    "Malformed",
    "PaddleRecognitionBackend",
    "Parsed",
    "RecognitionBackend",
    "TextRecognizer",
    "encode_png",
    "parse_response",
]
