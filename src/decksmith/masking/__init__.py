from .fill import (
    EdgeSamples,
    FillMode,
    MaskResult,
    RegionFill,
    choose_fill_mode,
    mask_regions,
    synthesize_background,
)

__all__ = [
    "EdgeSamples",
    "FillMode",
    "MaskResult",
    "RegionFill",
    "choose_fill_mode",
    "mask_regions",
    "synthesize_background",
]
