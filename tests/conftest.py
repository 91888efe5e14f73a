"""Shared test fixtures for decksmith."""

import io

import pytest
from PIL import Image

from decksmith.config import CleanupConfig
from decksmith.models import BlockCategory, Page, TextBlock

# ── Helpers ────────────────────────────────────────────────────────────


def make_block(
    ymin: float,
    xmin: float,
    ymax: float,
    xmax: float,
    text: str = "",
    category: BlockCategory = BlockCategory.PRESENTATION_TEXT,
    included=None,
) -> TextBlock:
    """Create a TextBlock with sane defaults."""
    return TextBlock(
        text=text,
        box=(float(ymin), float(xmin), float(ymax), float(xmax)),
        category=category,
        included=included,
    )


def make_image(width: int = 200, height: int = 100, color=(255, 255, 255)) -> Image.Image:
    """Create a flat RGB image."""
    return Image.new("RGB", (width, height), color)


def make_page(
    blocks=(),
    width: int = 200,
    height: int = 100,
    color=(255, 255, 255),
    index: int = 0,
    **changes,
) -> Page:
    """Create an IDLE page over a flat image, optionally with blocks."""
    page = Page.from_image(index, make_image(width, height, color))
    return page.evolve(blocks=blocks, **changes)


def png_bytes(image: Image.Image) -> bytes:
    """Encode *image* as PNG."""
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> CleanupConfig:
    """Return a default CleanupConfig."""
    return CleanupConfig()


@pytest.fixture
def plain_cfg() -> CleanupConfig:
    """Config with the local mask pass off, so adapters see the raw image."""
    return CleanupConfig(enable_local_mask=False)


@pytest.fixture
def two_line_blocks() -> list[TextBlock]:
    """Two stacked title lines 10 units apart (adjacent at the default threshold)."""
    return [
        make_block(100, 100, 150, 400, "Title line one"),
        make_block(160, 100, 210, 400, "Title line two"),
    ]
