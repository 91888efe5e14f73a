"""Command-line batch runner: ``python -m decksmith INPUT --out DIR``.

Writes, per processed page, ``page_N.png`` (cleaned background),
``page_N.json`` (page metadata + stage summary) and optionally
``page_N_overlay.png``; a ``manifest.json`` summarises the run.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .config import CleanupConfig
from .export import draw_regions_overlay, serialize_page
from .grouping import consolidate_regions
from .ingest import IngestError, load_pages
from .models import PageStatus
from .pipeline import PagePipeline, PageResult, RunOptions, resolve_padding, run_batch
from .recognition import (
    GeminiRecognitionBackend,
    PaddleRecognitionBackend,
    TextRecognizer,
)
from .reconstruction import (
    BackgroundReconstructor,
    GeminiReconstructionBackend,
    OpenCVReconstructionBackend,
)

log = logging.getLogger("decksmith.cli")


def build_pipeline(
    backend: str, cfg: CleanupConfig, api_key: Optional[str] = None
) -> PagePipeline:
    """Wire recognition and reconstruction backends into a :class:`PagePipeline`.

    ``gemini`` uses the remote models for both capabilities; ``opencv``
    runs fully locally (PaddleOCR detection + Telea inpainting).
    """
    if backend == "gemini":
        rec_backend = GeminiRecognitionBackend(
            cfg.recognition_model, api_key=api_key, temperature=cfg.recognition_temperature
        )
        recon_backend = GeminiReconstructionBackend(
            cfg.reconstruction_model,
            api_key=api_key,
            temperature=cfg.reconstruction_temperature,
        )
    elif backend == "opencv":
        rec_backend = PaddleRecognitionBackend()
        recon_backend = OpenCVReconstructionBackend()
    else:
        raise ValueError(f"unknown backend {backend!r}")
    return PagePipeline(
        TextRecognizer(rec_backend, cfg), BackgroundReconstructor(recon_backend), cfg
    )


def parse_pages(text: Optional[str]) -> Optional[List[int]]:
    """``"1,3-5"`` → zero-based ``[0, 2, 3, 4]``; *None* → all pages."""
    if not text:
        return None
    out: List[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            lo, hi = part.split("-", 1)
            out.extend(range(int(lo) - 1, int(hi)))
        else:
            out.append(int(part) - 1)
    if any(i < 0 for i in out):
        raise ValueError(f"page numbers start at 1: {text!r}")
    return sorted(set(out))


def _write_page(out_dir: Path, pr: PageResult, cfg: CleanupConfig, overlays: bool) -> dict:
    page = pr.page
    stem = f"page_{page.index + 1}"
    entry = pr.to_summary_dict()

    if page.status is PageStatus.DONE and page.working_image is not None:
        png_path = out_dir / f"{stem}.png"
        page.working_image.save(png_path, format="PNG")
        entry["image"] = png_path.name

    data = serialize_page(page)
    data["stages"] = entry["stages"]
    (out_dir / f"{stem}.json").write_text(json.dumps(data, indent=2))
    entry["metadata"] = f"{stem}.json"

    if overlays:
        regions = pr.regions or consolidate_regions(
            page.blocks,
            page.width,
            page.height,
            resolve_padding(page, RunOptions(), cfg),
            cfg,
        )
        ov_path = out_dir / f"{stem}_overlay.png"
        draw_regions_overlay(page.original_image, page.blocks, regions, out_path=ov_path)
        entry["overlay"] = ov_path.name
    return entry


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="decksmith", description="Remove overlay text from slide images or PDFs"
    )
    parser.add_argument("input", type=Path, help="PDF or image file")
    parser.add_argument("--out", type=Path, required=True, help="Output directory")
    parser.add_argument(
        "--verify",
        action="store_true",
        default=False,
        help="Re-detect text on the cleaned image and clean residue once more",
    )
    parser.add_argument(
        "--padding", type=int, default=None, help="Region padding in pixels (default 20)"
    )
    parser.add_argument(
        "--pages", type=str, default=None, help="1-based pages, e.g. '1,3-5' (default: all)"
    )
    parser.add_argument(
        "--backend",
        choices=["gemini", "opencv"],
        default="gemini",
        help="Capability backends (default: gemini)",
    )
    parser.add_argument(
        "--resolution", type=int, default=None, help="PDF render DPI (default 150)"
    )
    parser.add_argument(
        "--delay", type=float, default=None, help="Seconds between pages (default 0.5)"
    )
    parser.add_argument(
        "--no-local-mask",
        action="store_true",
        default=False,
        help="Send the raw image to reconstruction without the local mask pass",
    )
    parser.add_argument(
        "--overlays", action="store_true", default=False, help="Write region overlays"
    )
    parser.add_argument("--api-key", type=str, default=None, help="Gemini API key")
    parser.add_argument(
        "--style-hint",
        action="append",
        default=[],
        help="Extra reconstruction instruction (repeatable)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg_kwargs = {"enable_verification": args.verify}
    if args.resolution is not None:
        cfg_kwargs["render_resolution"] = args.resolution
    if args.padding is not None:
        cfg_kwargs["default_padding_px"] = args.padding
    if args.no_local_mask:
        cfg_kwargs["enable_local_mask"] = False
    try:
        cfg = CleanupConfig(**cfg_kwargs)
        pages_sel = parse_pages(args.pages)
    except ValueError as exc:
        parser.error(str(exc))
    if pages_sel is not None and args.input.suffix.lower() != ".pdf":
        parser.error("--pages only applies to PDF input")

    try:
        if args.input.suffix.lower() == ".pdf":
            pages = load_pages(args.input, resolution=cfg.render_resolution, pages=pages_sel)
        else:
            pages = load_pages(args.input)
    except IngestError as exc:
        log.error("%s", exc)
        return 2

    args.out.mkdir(parents=True, exist_ok=True)
    pipeline = build_pipeline(args.backend, cfg, api_key=args.api_key)

    entries: List[dict] = []

    def _on_page(pr: PageResult) -> None:
        entries.append(_write_page(args.out, pr, cfg, args.overlays))

    options = RunOptions(style_hints=tuple(args.style_hint))
    result = run_batch(pages, pipeline, options, delay_s=args.delay, on_page=_on_page)

    manifest = {
        "created_at": datetime.now().isoformat(),
        "source": str(args.input.resolve()),
        "backend": args.backend,
        "config_snapshot": vars(cfg),
        "done": result.done,
        "errors": result.errors,
        "skipped": result.skipped,
        "pages": entries,
    }
    (args.out / "manifest.json").write_text(json.dumps(manifest, indent=2, default=str))
    log.info("Run complete: %s (%d done, %d errors)", args.out, result.done, result.errors)
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
