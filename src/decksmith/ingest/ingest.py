"""Ingest: file validation, page rasterization, and page creation.

Centralises opening source files so that the pipeline, batch driver and
CLI never call ``pdfplumber.open()`` or ``Image.open()`` directly.

Public API
----------
- :func:`load_image_page` — one image file → one ``IDLE`` page
- :func:`load_pdf_pages` — render PDF pages → ``IDLE`` pages
- :func:`load_pages` — dispatch on file suffix
- :func:`render_page_image` — render one PDF page at a given DPI
- :func:`rerender_page` — re-rasterize a page at a new resolution
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pdfplumber
from PIL import Image, UnidentifiedImageError

from ..models import Page, PageStatus

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tif", ".tiff")
PDF_SUFFIXES = (".pdf",)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when a source file cannot be ingested."""


def _validate_path(path: Path, suffixes: Sequence[str], kind: str) -> None:
    """Raise :class:`IngestError` for missing / empty / wrong-extension files."""
    if not path.exists():
        raise IngestError(f"File not found: {path}")
    if not path.is_file():
        raise IngestError(f"Not a file: {path}")
    if path.stat().st_size == 0:
        raise IngestError(f"Empty file: {path}")
    if path.suffix.lower() not in suffixes:
        raise IngestError(f"Not {kind} (suffix={path.suffix!r}): {path}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_image_page(
    path: Path | str, index: int = 0, padding: Optional[int] = None
) -> Page:
    """Read an image file into a fresh ``IDLE`` page.

    Raises
    ------
    IngestError
        When the file is missing, empty, or not a readable image.
    """
    path = Path(path)
    _validate_path(path, IMAGE_SUFFIXES, "an image")
    try:
        with Image.open(path) as src:
            img = src.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise IngestError(f"Cannot read image: {exc}") from exc

    log.info("Ingested %s: %dx%d", path.name, img.width, img.height)
    return Page.from_image(index, img, padding=padding)


def pdf_page_count(pdf_path: Path | str) -> int:
    """Number of pages in a PDF."""
    pdf_path = Path(pdf_path)
    _validate_path(pdf_path, PDF_SUFFIXES, "a PDF")
    try:
        with pdfplumber.open(pdf_path) as pdf:
            return len(pdf.pages)
    except Exception as exc:
        raise IngestError(f"Cannot open PDF: {exc}") from exc


def render_page_image(
    pdf_path: Path | str,
    page_num: int,
    resolution: int = 150,
) -> Image.Image:
    """Render a single PDF page to a PIL Image at *resolution* DPI.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the PDF.
    page_num : int
        Zero-based page index.
    resolution : int
        Render resolution in DPI.

    Returns
    -------
    PIL.Image.Image
        RGB image of the rendered page.
    """
    with pdfplumber.open(pdf_path) as pdf:
        page = pdf.pages[page_num]
        img_page = page.to_image(resolution=resolution)
        img = img_page.original.copy()
    # Ensure RGB (pdfplumber may return RGBA in some cases)
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def load_pdf_pages(
    pdf_path: Path | str,
    resolution: int = 150,
    pages: Optional[Sequence[int]] = None,
    padding: Optional[int] = None,
) -> List[Page]:
    """Render PDF pages into fresh ``IDLE`` pages.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the PDF file.
    resolution : int
        Render DPI.
    pages : sequence of int, optional
        Zero-based page indices.  ``None`` = all pages.
    padding : int, optional
        Page-level padding override stored on every page.

    Raises
    ------
    IngestError
        When the file is missing, empty, not a PDF, or cannot be rendered.
    """
    pdf_path = Path(pdf_path)
    count = pdf_page_count(pdf_path)
    indices = list(range(count)) if pages is None else list(pages)
    for i in indices:
        if not 0 <= i < count:
            raise IngestError(f"Page {i} out of range (PDF has {count} pages)")

    out: List[Page] = []
    try:
        for i in indices:
            img = render_page_image(pdf_path, i, resolution=resolution)
            out.append(Page.from_image(i, img, padding=padding))
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot render PDF page: {exc}") from exc

    log.info(
        "Ingested %s: %d of %d pages at %d DPI", pdf_path.name, len(out), count, resolution
    )
    return out


def load_pages(
    path: Path | str,
    resolution: int = 150,
    pages: Optional[Sequence[int]] = None,
    padding: Optional[int] = None,
) -> List[Page]:
    """Load a PDF or a single image file, choosing by suffix."""
    path = Path(path)
    if path.suffix.lower() in PDF_SUFFIXES:
        return load_pdf_pages(path, resolution=resolution, pages=pages, padding=padding)
    return [load_image_page(path, 0, padding=padding)]


def rerender_page(
    page: Page,
    pdf_path: Path | str,
    resolution: int,
    on_status: Optional[Callable[[Page], None]] = None,
) -> Page:
    """Re-rasterize *page* from its PDF at a new *resolution*.

    Reports ``RENDERING`` through *on_status*, swaps in the new original
    and working images and their dimensions, and returns the page in
    ``IDLE``.  Blocks are kept: their normalized coordinates are
    independent of pixel resolution.
    """
    rendering = page.evolve(status=PageStatus.RENDERING)
    if on_status is not None:
        on_status(rendering)

    try:
        img = render_page_image(pdf_path, page.index, resolution=resolution)
    except Exception as exc:
        raise IngestError(f"Cannot render page {page.index}: {exc}") from exc

    updated = rendering.evolve(
        original_image=img,
        working_image=img,
        width=img.width,
        height=img.height,
        status=PageStatus.IDLE,
    )
    if on_status is not None:
        on_status(updated)
    log.info("Re-rendered page %d at %d DPI: %dx%d", page.index, resolution, img.width, img.height)
    return updated
