"""Text removal for scanned slides: detect overlay text, restore the background.

Frequently-used symbols are re-exported here for convenience.
For backends and helpers import from the relevant submodule, e.g.::

    from decksmith.recognition import GeminiRecognitionBackend
    from decksmith.reconstruction import OpenCVReconstructionBackend
    from decksmith.masking import synthesize_background
"""

# ── Core models & config ──────────────────────────────────────────────

from .config import CleanupConfig, ConfigValidationError
from .errors import (
    GeometryViolation,
    RecognitionFailure,
    ReconstructionFailure,
    TransportError,
)
from .models import (
    Alignment,
    BlockCategory,
    CleanupRegion,
    Page,
    PageStatus,
    RecognitionMode,
    RecognitionStrategy,
    TextBlock,
    TextStyle,
)

# ── Geometry & grouping ───────────────────────────────────────────────

from .grouping import consolidate_regions, sort_reading_order
from .masking import mask_regions

# ── Adapters ──────────────────────────────────────────────────────────

from .recognition import TextRecognizer
from .reconstruction import BackgroundReconstructor

# ── Pipeline ──────────────────────────────────────────────────────────

from .pipeline import (
    BatchResult,
    PagePipeline,
    PageResult,
    RunOptions,
    StageResult,
    apply_merge_and_mask,
    run_batch,
)

# ── Editing, ingest & export ──────────────────────────────────────────

from .editing import move_block, reset_blocks, resize_block, set_included
from .export import deserialize_page, draw_regions_overlay, serialize_page
from .ingest import IngestError, load_image_page, load_pdf_pages, rerender_page

__all__ = [
    # Models & config
    "Alignment",
    "BlockCategory",
    "CleanupConfig",
    "CleanupRegion",
    "ConfigValidationError",
    "Page",
    "PageStatus",
    "RecognitionMode",
    "RecognitionStrategy",
    "TextBlock",
    "TextStyle",
    # Errors
    "GeometryViolation",
    "IngestError",
    "RecognitionFailure",
    "ReconstructionFailure",
    "TransportError",
    # Grouping & masking
    "consolidate_regions",
    "mask_regions",
    "sort_reading_order",
    # Adapters
    "BackgroundReconstructor",
    "TextRecognizer",
    # Pipeline
    "BatchResult",
    "PagePipeline",
    "PageResult",
    "RunOptions",
    "StageResult",
    "apply_merge_and_mask",
    "run_batch",
    # Editing
    "move_block",
    "reset_blocks",
    "resize_block",
    "set_included",
    # Ingest & export
    "deserialize_page",
    "draw_regions_overlay",
    "load_image_page",
    "load_pdf_pages",
    "rerender_page",
    "serialize_page",
]
