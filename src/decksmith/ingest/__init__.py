"""Ingest stage — source validation, PDF rendering, and page creation.

Public API
----------
- :func:`load_pages` — PDF or image file → list of ``IDLE`` pages
- :func:`load_image_page` / :func:`load_pdf_pages` — per-format loaders
- :func:`render_page_image` — render one PDF page at a given DPI
- :func:`rerender_page` — re-rasterize a page (``RENDERING`` state)
- :class:`IngestError` — raised on validation failures
"""

from .ingest import (
    IngestError,
    load_image_page,
    load_pages,
    load_pdf_pages,
    pdf_page_count,
    render_page_image,
    rerender_page,
)

__all__ = [
    "IngestError",
    "load_image_page",
    "load_pages",
    "load_pdf_pages",
    "pdf_page_count",
    "render_page_image",
    "rerender_page",
]
