from dataclasses import dataclass

from .models import RecognitionStrategy


class ConfigValidationError(ValueError):
    """Raised when a CleanupConfig field has an invalid value."""


def _check_range(
    name: str, value: float, lo: float, hi: float, *, inclusive: bool = True
) -> None:
    if inclusive:
        if not (lo <= value <= hi):
            raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")
    else:
        if not (lo < value < hi):
            raise ConfigValidationError(f"{name}={value} out of range ({lo}, {hi})")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


def _check_ordered(lo_name: str, lo: float, hi_name: str, hi: float) -> None:
    if lo > hi:
        raise ConfigValidationError(f"{lo_name} ({lo}) must be <= {hi_name} ({hi})")


@dataclass
class CleanupConfig:
    """Tunables for region consolidation, local masking, and the page pipeline."""

    # ── Region consolidation (0-1000 units) ───────────────────────────
    # Gap below which two boxes are merged into one region.
    merge_threshold: float = 15.0
    # Cap on regions sent to reconstruction for one page.
    max_regions: int = 30
    # Job-level padding in pixels; a page's own padding overrides it.
    default_padding_px: int = 20
    # Extra padding for the residue pass after verification.
    verify_padding_boost_px: int = 10

    # ── Recognition ────────────────────────────────────────────────────
    # Two blocks whose ymin differ by less than this share a reading line.
    reading_order_tolerance: float = 20.0
    recognition_strategy: RecognitionStrategy = RecognitionStrategy.TWO_PASS
    recognition_model: str = "gemini-2.5-flash"
    recognition_temperature: float = 0.0

    # ── Reconstruction ─────────────────────────────────────────────────
    reconstruction_model: str = "gemini-2.5-flash-image"
    reconstruction_temperature: float = 0.1

    # ── Local mask pass (pixels) ───────────────────────────────────────
    enable_local_mask: bool = True
    # Bleed added around each region: clamp(box_height * ratio, min, max).
    mask_expand_ratio: float = 0.10
    mask_expand_min_px: float = 5.0
    mask_expand_max_px: float = 15.0
    # Distance outside the region at which edge colours are sampled.
    mask_sample_offset_px: int = 4
    # Summed per-channel difference above which a gradient fill is used.
    gradient_threshold: float = 40.0
    # Feather radius: clamp(min(w, h) * ratio, min, max).
    feather_ratio: float = 0.25
    feather_min_px: float = 10.0
    feather_max_px: float = 20.0

    # ── Pipeline / batch ───────────────────────────────────────────────
    # Second recognition pass over the cleaned image to find residue.
    enable_verification: bool = False
    # Pause between pages of a batch.
    inter_page_delay_s: float = 0.5
    # DPI used when rasterizing PDF pages.
    render_resolution: int = 150

    def __post_init__(self) -> None:
        """Validate field ranges to catch misconfiguration early."""
        try:
            self.recognition_strategy = RecognitionStrategy(self.recognition_strategy)
        except ValueError:
            raise ConfigValidationError(
                f"recognition_strategy={self.recognition_strategy!r} must be one of "
                f"{[s.value for s in RecognitionStrategy]}"
            ) from None

        # -- Ratios in [0, 1] --
        for name in ("mask_expand_ratio", "feather_ratio"):
            _check_range(name, getattr(self, name), 0.0, 1.0)

        # -- Values on the normalized scale --
        for name in ("merge_threshold", "reading_order_tolerance"):
            _check_range(name, getattr(self, name), 0.0, 1000.0)

        # -- Non-negative pixel values / durations --
        _nn = [
            "default_padding_px",
            "verify_padding_boost_px",
            "mask_expand_min_px",
            "mask_expand_max_px",
            "mask_sample_offset_px",
            "gradient_threshold",
            "feather_min_px",
            "feather_max_px",
            "inter_page_delay_s",
        ]
        for name in _nn:
            _check_non_negative(name, getattr(self, name))

        # -- Clamp pairs --
        _check_ordered(
            "mask_expand_min_px",
            self.mask_expand_min_px,
            "mask_expand_max_px",
            self.mask_expand_max_px,
        )
        _check_ordered(
            "feather_min_px", self.feather_min_px, "feather_max_px", self.feather_max_px
        )

        # -- Sampling temperatures --
        for name in ("recognition_temperature", "reconstruction_temperature"):
            _check_range(name, getattr(self, name), 0.0, 2.0)

        if self.max_regions < 1:
            raise ConfigValidationError(f"max_regions={self.max_regions} must be >= 1")
        if self.render_resolution < 1:
            raise ConfigValidationError(
                f"render_resolution={self.render_resolution} must be >= 1"
            )
        # Manhattan distance over three 0-255 channels.
        _check_range("gradient_threshold", self.gradient_threshold, 0.0, 765.0)
