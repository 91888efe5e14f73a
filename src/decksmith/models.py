from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from PIL import Image

# Normalized coordinate scale shared by every box crossing a module boundary.
NORM_SCALE = 1000.0

# ``[ymin, xmin, ymax, xmax]`` on the 0-1000 scale.
Box = Tuple[float, float, float, float]


class BlockCategory(str, Enum):
    """Whether a text block belongs to the slide or to embedded artwork."""

    PRESENTATION_TEXT = "presentation_text"
    EMBEDDED_ART_TEXT = "embedded_art_text"


class Alignment(str, Enum):
    """Horizontal text alignment of a block."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class PageStatus(str, Enum):
    """Page pipeline states.

    ``DONE`` and ``ERROR`` are terminal for a single invocation;
    ``RENDERING`` is only reported while the page image is reproduced
    by a rasterizer.
    """

    IDLE = "IDLE"
    RENDERING = "RENDERING"
    ANALYZING = "ANALYZING"
    CLEANING = "CLEANING"
    VERIFYING = "VERIFYING"
    DONE = "DONE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (PageStatus.DONE, PageStatus.ERROR)


class RecognitionMode(str, Enum):
    """How much the recognition capability is asked to return."""

    DETAILED = "detailed"  # geometry + style + category
    SIMPLE = "simple"  # geometry only


class RecognitionStrategy(str, Enum):
    """One call with the full prompt, or detection followed by enrichment."""

    SINGLE_PASS = "single_pass"
    TWO_PASS = "two_pass"


@dataclass(frozen=True)
class TextStyle:
    """Typographic hints recovered by detailed recognition."""

    bold: bool = False
    italic: bool = False
    align: Alignment = Alignment.LEFT
    color: str = "#000000"


@dataclass(frozen=True)
class TextBlock:
    """A detected or user-edited text region.

    ``box`` is ``(ymin, xmin, ymax, xmax)`` on the 0-1000 scale and is
    valid on construction (``min < max`` on both axes); invalid boxes are
    rejected at the parsing and editing boundaries.
    """

    text: str
    box: Box
    font_size: Optional[float] = None
    style: TextStyle = field(default_factory=TextStyle)
    category: BlockCategory = BlockCategory.PRESENTATION_TEXT
    included: Optional[bool] = None

    @property
    def ymin(self) -> float:
        return self.box[0]

    @property
    def xmin(self) -> float:
        return self.box[1]

    @property
    def ymax(self) -> float:
        return self.box[2]

    @property
    def xmax(self) -> float:
        return self.box[3]

    def is_removable(self) -> bool:
        """True when the block takes part in background cleanup.

        An explicit ``included`` flag wins over the category.
        """
        if self.included is not None:
            return self.included
        return self.category is BlockCategory.PRESENTATION_TEXT

    def with_box(self, box: Sequence[float]) -> "TextBlock":
        return replace(self, box=tuple(float(v) for v in box))

    def to_dict(self) -> dict:
        """Serialize to the recognition wire format."""
        d = {
            "text": self.text,
            "box_2d": [round(v, 3) for v in self.box],
            "is_bold": self.style.bold,
            "italic": self.style.italic,
            "align": self.style.align.value,
            "color": self.style.color,
            "type": self.category.value,
        }
        if self.font_size is not None:
            d["font_size"] = round(self.font_size, 3)
        if self.included is not None:
            d["included"] = self.included
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TextBlock":
        """Deserialize from a dict produced by :meth:`to_dict`.

        Raises
        ------
        GeometryViolation
            When ``box_2d`` is not a valid box on the 0-1000 grid.
        """
        from .geometry import validate_box

        return cls(
            text=d.get("text", ""),
            box=validate_box(d["box_2d"]),
            font_size=d.get("font_size"),
            style=TextStyle(
                bold=bool(d.get("is_bold", False)),
                italic=bool(d.get("italic", False)),
                align=Alignment(d.get("align", Alignment.LEFT.value)),
                color=d.get("color", "#000000"),
            ),
            category=BlockCategory(
                d.get("type", BlockCategory.PRESENTATION_TEXT.value)
            ),
            included=d.get("included"),
        )


@dataclass(frozen=True)
class CleanupRegion:
    """A consolidated, padded box designated for background restoration.

    ``source_indices`` are the detection-order indices of the blocks that
    were merged into the region; the smallest one is its priority.
    """

    box: Box
    source_indices: Tuple[int, ...] = ()

    @property
    def priority(self) -> int:
        return min(self.source_indices) if self.source_indices else 0

    def as_int_list(self) -> List[int]:
        """Box as integers, the form sent to reconstruction prompts."""
        return [int(round(v)) for v in self.box]

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {"box_2d": self.as_int_list(), "source_indices": list(self.source_indices)}


@dataclass(frozen=True, eq=False)
class Page:
    """Unit of work for the page pipeline.

    Pages are values: the pipeline returns an updated copy and the batch
    driver installs it back into its collection.  ``width``/``height``
    are the pixel dimensions of ``original_image`` fixed at ingestion.
    """

    index: int
    original_image: Image.Image
    width: int
    height: int
    working_image: Optional[Image.Image] = None
    blocks: Tuple[TextBlock, ...] = ()
    baseline_blocks: Tuple[TextBlock, ...] = ()
    status: PageStatus = PageStatus.IDLE
    padding: Optional[int] = None

    @classmethod
    def from_image(
        cls, index: int, image: Image.Image, padding: Optional[int] = None
    ) -> "Page":
        """Create a fresh ``IDLE`` page whose working image is the original."""
        return cls(
            index=index,
            original_image=image,
            width=image.width,
            height=image.height,
            working_image=image,
            padding=padding,
        )

    @property
    def background(self) -> Image.Image:
        """Current best background (working image, else the original)."""
        return self.working_image if self.working_image is not None else self.original_image

    @property
    def has_blocks(self) -> bool:
        return len(self.blocks) > 0

    def evolve(self, **changes) -> "Page":
        """Return a copy with *changes* applied (blocks coerced to tuples)."""
        for key in ("blocks", "baseline_blocks"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return replace(self, **changes)
