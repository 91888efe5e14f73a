"""Exception types shared across the cleanup pipeline."""


class TransportError(Exception):
    """An external capability was unreachable or rejected the request."""


class RecognitionFailure(TransportError):
    """The text-recognition capability could not be reached."""


class ReconstructionFailure(TransportError):
    """The image-synthesis capability could not be reached."""


class GeometryViolation(ValueError):
    """A box is malformed (``min >= max`` or outside the 0-1000 scale)."""
