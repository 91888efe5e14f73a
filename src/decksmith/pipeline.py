"""Page pipeline: stage gating, timing, the per-page state machine, and batching.

One invocation walks a page through::

    IDLE → ANALYZING → CLEANING → [VERIFYING → CLEANING] → DONE

with ``ERROR`` reachable from ``ANALYZING`` and the first ``CLEANING``.
Every stage produces a :class:`StageResult`; gating is centralised in
:func:`gate` so the CLI, batch driver and tests behave identically.

Pages are values.  :meth:`PagePipeline.run` takes a page and returns a
:class:`PageResult` holding the updated copy; :func:`run_batch` installs
each returned page into a fresh list.  No stage touches the filesystem.
"""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Collection,
    Dict,
    Generator,
    List,
    Optional,
    Sequence,
)

from PIL import Image

from .config import CleanupConfig
from .errors import TransportError
from .geometry import overlaps
from .grouping import consolidate_regions
from .masking import mask_regions
from .models import CleanupRegion, Page, PageStatus, RecognitionMode, TextBlock
from .recognition import TextRecognizer
from .reconstruction import BackgroundReconstructor

logger = logging.getLogger("decksmith.pipeline")

StatusCallback = Callable[[Page], None]

# ── Skip reasons (exhaustive enumeration) ──────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    disabled_by_config = "disabled_by_config"
    disabled_by_caller = "disabled_by_caller"
    blocks_present = "blocks_present"
    no_residue = "no_residue"
    upstream_failed = "upstream_failed"
    not_applicable = "not_applicable"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.inputs:
            d["inputs"] = self.inputs
        if self.error is not None:
            d["error"] = self.error
        return d


# ── Canonical gating function ──────────────────────────────────────────

# Ordered stage names; "residue_cleaning" is the second CLEANING pass.
STAGE_ORDER: List[str] = [
    "analysis",
    "cleaning",
    "verification",
    "residue_cleaning",
]


def gate(
    stage: str,
    cfg: CleanupConfig,
    inputs: Dict[str, Any] | None = None,
) -> tuple[bool, Optional[str]]:
    """Decide whether *stage* should run.

    Parameters
    ----------
    stage : str
        One of :data:`STAGE_ORDER`.
    cfg : CleanupConfig
        Effective configuration for the run.
    inputs : dict, optional
        Lightweight facts about the page and run options (e.g.
        ``{"has_blocks": True, "force_reanalyze": False}``).

    Returns
    -------
    (should_run, skip_reason)
        *should_run* is ``True`` when the stage should execute.
        When ``False``, *skip_reason* explains why.
    """
    if inputs is None:
        inputs = {}

    if stage == "analysis":
        if inputs.get("skip_analysis"):
            return False, SkipReason.disabled_by_caller.value
        if inputs.get("has_blocks") and not inputs.get("force_reanalyze"):
            return False, SkipReason.blocks_present.value
        return True, None

    if stage == "cleaning":
        return True, None

    if stage == "verification":
        verify = inputs.get("verify")
        if verify is False:
            return False, SkipReason.disabled_by_caller.value
        if verify is None and not cfg.enable_verification:
            return False, SkipReason.disabled_by_config.value
        return True, None

    if stage == "residue_cleaning":
        if inputs.get("verification_failed"):
            return False, SkipReason.upstream_failed.value
        if not inputs.get("verification_ran"):
            return False, SkipReason.disabled_by_config.value
        if not inputs.get("residue_blocks"):
            return False, SkipReason.no_residue.value
        return True, None

    # Unknown stage: not applicable.
    return False, SkipReason.not_applicable.value


# ── Stage context manager ──────────────────────────────────────────────


def error_dict(exc: BaseException) -> Dict[str, str]:
    return {
        "type": type(exc).__name__,
        "message": str(exc),
        "stack": traceback.format_exc(),
    }


@contextmanager
def run_stage(
    stage: str,
    cfg: CleanupConfig,
    inputs: Dict[str, Any] | None = None,
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with gating + timing.

    Usage::

        with run_stage("cleaning", cfg) as sr:
            if sr.ran:
                # … do the work …
                sr.counts["regions"] = 3
                sr.status = "success"

    The yielded :class:`StageResult` has ``ran=True`` only when
    :func:`gate` approves the stage.  Exceptions raised inside the block
    mark the stage failed and are re-raised.
    """
    should_run, skip_reason = gate(stage, cfg, inputs)

    sr = StageResult(stage=stage)
    if inputs:
        sr.inputs = dict(inputs)

    if not should_run:
        sr.ran = False
        sr.status = "skipped"
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        # If the caller didn't explicitly set status, mark success if no error.
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = error_dict(exc)
        # Re-raise so the caller can decide fallback policy.
        raise
    finally:
        elapsed = time.perf_counter() - t0
        sr.duration_ms = int(elapsed * 1000)


# ── Run options ────────────────────────────────────────────────────────


@dataclass
class RunOptions:
    """Per-invocation switches for :meth:`PagePipeline.run`.

    ``verify`` and ``padding`` fall back to the page and configuration
    when left as ``None``.  ``style_hints`` are extra instructions
    appended to every reconstruction request of the run.
    """

    force_reanalyze: bool = False
    skip_analysis: bool = False
    verify: Optional[bool] = None
    padding: Optional[int] = None
    style_hints: Sequence[str] = ()

    def __post_init__(self) -> None:
        if self.force_reanalyze and self.skip_analysis:
            raise ValueError("force_reanalyze and skip_analysis are mutually exclusive")
        if self.padding is not None and self.padding < 0:
            raise ValueError(f"padding={self.padding} must be >= 0")


def resolve_padding(page: Page, options: RunOptions, cfg: CleanupConfig) -> int:
    """Pixel padding for a run: options, then page, then job default."""
    if options.padding is not None:
        return options.padding
    if page.padding is not None:
        return page.padding
    return cfg.default_padding_px


# ── Page result ────────────────────────────────────────────────────────


@dataclass
class PageResult:
    """Structured result from :meth:`PagePipeline.run` for a single page."""

    page: Page
    stages: Dict[str, StageResult] = field(default_factory=dict)
    regions: List[CleanupRegion] = field(default_factory=list)
    residue: List[TextBlock] = field(default_factory=list)

    @property
    def status(self) -> PageStatus:
        return self.page.status

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for JSON serialisation."""
        return {
            "page": self.page.index,
            "status": self.page.status.value,
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
            "counts": {
                "blocks": len(self.page.blocks),
                "regions": len(self.regions),
                "residue_blocks": len(self.residue),
            },
        }


# ── Preview ────────────────────────────────────────────────────────────


def apply_merge_and_mask(
    page: Page,
    cfg: CleanupConfig | None = None,
    padding: Optional[int] = None,
) -> Image.Image:
    """Preview the local mask pass for *page* without calling any capability.

    Consolidates the page's current blocks and paints the resulting
    regions over ``original_image``.  The page is not modified.
    """
    if cfg is None:
        cfg = CleanupConfig()
    pad = resolve_padding(page, RunOptions(padding=padding), cfg)
    regions = consolidate_regions(page.blocks, page.width, page.height, pad, cfg)
    return mask_regions(page.original_image, regions, cfg)


# ── Page pipeline ──────────────────────────────────────────────────────


class PagePipeline:
    """Drives one page through recognition, cleaning and verification.

    Parameters
    ----------
    recognizer : TextRecognizer
        Recognition adapter used for ANALYZING and VERIFYING.
    reconstructor : BackgroundReconstructor
        Reconstruction adapter used for CLEANING.
    cfg : CleanupConfig, optional
        Pipeline configuration.  Defaults to ``CleanupConfig()``.
    on_status : callable, optional
        Called with the updated page snapshot at every status change.
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        reconstructor: BackgroundReconstructor,
        cfg: CleanupConfig | None = None,
        on_status: Optional[StatusCallback] = None,
    ) -> None:
        self.recognizer = recognizer
        self.reconstructor = reconstructor
        self.cfg = cfg or CleanupConfig()
        self.on_status = on_status

    # ── helpers ─────────────────────────────────────────────────────

    def _transition(self, pr: PageResult, status: PageStatus, **changes) -> None:
        pr.page = pr.page.evolve(status=status, **changes)
        logger.debug("page %d → %s", pr.page.index, status.value)
        if self.on_status is not None:
            try:
                self.on_status(pr.page)
            except Exception:
                logger.exception("on_status observer failed for page %d", pr.page.index)

    def _clean(
        self,
        image: Image.Image,
        regions: Sequence[CleanupRegion],
        style_hints: Sequence[str] = (),
    ) -> Optional[Image.Image]:
        """Optionally pre-mask *image*, then reconstruct it."""
        premasked = self.cfg.enable_local_mask and bool(regions)
        source = mask_regions(image, regions, self.cfg) if premasked else image
        return self.reconstructor.reconstruct(
            source, regions, premasked=premasked, style_hints=list(style_hints) or None
        )

    @staticmethod
    def _actual_residue(page: Page, found: Sequence[TextBlock]) -> List[TextBlock]:
        """Drop detections lying on text the page keeps on purpose.

        Embedded art text and blocks excluded by the user are still
        visible after cleaning, so verification finds them again.
        """
        kept = [b.box for b in page.blocks if not b.is_removable()]
        return [r for r in found if not any(overlaps(r.box, k) for k in kept)]

    # ── stages ──────────────────────────────────────────────────────

    def _run_analysis_stage(self, pr: PageResult, options: RunOptions) -> bool:
        """ANALYZING.  Returns False when the page ended in ERROR."""
        inputs = {
            "has_blocks": pr.page.has_blocks,
            "force_reanalyze": options.force_reanalyze,
            "skip_analysis": options.skip_analysis,
        }
        try:
            with run_stage("analysis", self.cfg, inputs) as sr:
                pr.stages["analysis"] = sr
                if sr.ran:
                    self._transition(pr, PageStatus.ANALYZING)
                    blocks = self.recognizer.recognize(
                        pr.page.original_image, RecognitionMode.DETAILED
                    )
                    sr.counts = {
                        "blocks": len(blocks),
                        "removable": sum(1 for b in blocks if b.is_removable()),
                    }
                    pr.page = pr.page.evolve(blocks=blocks, baseline_blocks=blocks)
        except TransportError as exc:
            logger.error("page %d: analysis failed: %s", pr.page.index, exc)
            self._transition(pr, PageStatus.ERROR)
            return False
        return True

    def _run_cleaning_stage(
        self, pr: PageResult, options: RunOptions, padding: int
    ) -> bool:
        """First CLEANING pass over ``original_image``.  False on ERROR."""
        self._transition(pr, PageStatus.CLEANING)
        cleaned = None
        try:
            with run_stage("cleaning", self.cfg, {"padding": padding}) as sr:
                pr.stages["cleaning"] = sr
                page = pr.page
                pr.regions = consolidate_regions(
                    page.blocks, page.width, page.height, padding, self.cfg
                )
                sr.counts = {"regions": len(pr.regions)}
                cleaned = self._clean(
                    page.original_image, pr.regions, options.style_hints
                )
                if cleaned is None:
                    sr.status = "failed"
                    sr.error = {
                        "type": "EmptyResult",
                        "message": "reconstruction produced no image",
                    }
        except TransportError as exc:
            logger.error("page %d: cleaning failed: %s", pr.page.index, exc)
            self._transition(pr, PageStatus.ERROR)
            return False

        if cleaned is None:
            logger.error("page %d: reconstruction produced no image", pr.page.index)
            self._transition(pr, PageStatus.ERROR)
            return False

        pr.page = pr.page.evolve(working_image=cleaned)
        return True

    def _run_verification_stages(
        self, pr: PageResult, options: RunOptions, padding: int
    ) -> None:
        """VERIFYING and the residue CLEANING pass.  Never ends in ERROR."""
        failed = False
        try:
            with run_stage("verification", self.cfg, {"verify": options.verify}) as sr:
                pr.stages["verification"] = sr
                if sr.ran:
                    self._transition(pr, PageStatus.VERIFYING)
                    found = self.recognizer.recognize(
                        pr.page.background, RecognitionMode.SIMPLE, included=True
                    )
                    pr.residue = self._actual_residue(pr.page, found)
                    sr.counts = {
                        "residue_blocks": len(pr.residue),
                        "ignored": len(found) - len(pr.residue),
                    }
        except Exception as exc:
            logger.warning("page %d: verification failed, skipping second pass: %s",
                           pr.page.index, exc)
            failed = True
            pr.residue = []

        inputs = {
            "verification_ran": pr.stages["verification"].ran,
            "verification_failed": failed,
            "residue_blocks": len(pr.residue),
        }
        boosted = padding + self.cfg.verify_padding_boost_px
        try:
            with run_stage("residue_cleaning", self.cfg, inputs) as sr:
                pr.stages["residue_cleaning"] = sr
                if sr.ran:
                    self._transition(pr, PageStatus.CLEANING)
                    page = pr.page
                    regions = consolidate_regions(
                        pr.residue, page.width, page.height, boosted, self.cfg
                    )
                    sr.counts = {"regions": len(regions), "padding": boosted}
                    second = self._clean(page.background, regions, options.style_hints)
                    if second is None:
                        sr.status = "failed"
                        sr.error = {
                            "type": "EmptyResult",
                            "message": "reconstruction produced no image",
                        }
                        logger.warning(
                            "page %d: second pass produced no image; keeping first pass",
                            page.index,
                        )
                    else:
                        pr.page = pr.page.evolve(working_image=second)
        except Exception as exc:
            logger.warning("page %d: second pass failed; keeping first pass: %s",
                           pr.page.index, exc)

    # ── entry point ─────────────────────────────────────────────────

    def run(self, page: Page, options: RunOptions | None = None) -> PageResult:
        """Run one pipeline invocation on *page*.

        Always returns with the page in ``DONE`` or ``ERROR``.  A page in
        ``ERROR`` keeps whatever blocks and working image it had reached,
        so a retry can skip completed work.

        Parameters
        ----------
        page : Page
            Page to process; it is not modified.
        options : RunOptions, optional
            Per-run switches.  Defaults to ``RunOptions()``.

        Returns
        -------
        PageResult
            Updated page plus one :class:`StageResult` per stage.
        """
        if options is None:
            options = RunOptions()

        pr = PageResult(page=page)
        padding = resolve_padding(page, options, self.cfg)
        try:
            if self._run_analysis_stage(pr, options) and self._run_cleaning_stage(
                pr, options, padding
            ):
                self._run_verification_stages(pr, options, padding)
                self._transition(pr, PageStatus.DONE)
        except Exception as exc:
            logger.exception("page %d: unexpected pipeline failure", pr.page.index)
            pr.stages["pipeline"] = StageResult(
                stage="pipeline", ran=True, status="failed", error=error_dict(exc)
            )
            self._transition(pr, PageStatus.ERROR)

        logger.info(
            "page %d: %s (%d blocks, %d regions, %d residue)",
            pr.page.index,
            pr.page.status.value,
            len(pr.page.blocks),
            len(pr.regions),
            len(pr.residue),
        )
        return pr


# ── Batch driver ───────────────────────────────────────────────────────


@dataclass
class BatchResult:
    """Pages after a batch run plus the results of every page that ran."""

    pages: List[Page] = field(default_factory=list)
    results: List[PageResult] = field(default_factory=list)
    skipped: int = 0
    stopped: bool = False

    @property
    def done(self) -> int:
        return sum(1 for r in self.results if r.status is PageStatus.DONE)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status is PageStatus.ERROR)

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "pages": len(self.pages),
            "ran": len(self.results),
            "done": self.done,
            "errors": self.errors,
            "skipped": self.skipped,
            "stopped": self.stopped,
            "results": [r.to_summary_dict() for r in self.results],
        }


def run_batch(
    pages: Sequence[Page],
    pipeline: PagePipeline,
    options: RunOptions | None = None,
    *,
    selected: Optional[Collection[int]] = None,
    delay_s: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    should_stop: Optional[Callable[[], bool]] = None,
    on_page: Optional[Callable[[PageResult], None]] = None,
) -> BatchResult:
    """Run *pipeline* over pages one at a time.

    Parameters
    ----------
    pages : sequence of Page
        The job's pages in batch order.  The sequence is not modified.
    pipeline : PagePipeline
        Pipeline invoked for each page.
    options : RunOptions, optional
        Options passed to every invocation.
    selected : collection of int, optional
        Page indices to process.  ``None`` = all pages.
    delay_s : float, optional
        Pause between consecutive pages.  Defaults to the pipeline
        config's ``inter_page_delay_s``.
    sleep : callable
        Used for the pause; inject a fake to keep tests instant.
    should_stop : callable, optional
        Checked before each page; returning True stops the batch.  A page
        already in flight always finishes.
    on_page : callable, optional
        Called with each :class:`PageResult` as soon as it is available.

    Returns
    -------
    BatchResult
        The new page list and per-page results.  Pages already ``DONE``
        or not selected are counted as skipped.
    """
    out = list(pages)
    br = BatchResult(pages=out)
    delay = pipeline.cfg.inter_page_delay_s if delay_s is None else delay_s

    queue = [
        pos
        for pos, pg in enumerate(out)
        if (selected is None or pg.index in selected) and pg.status is not PageStatus.DONE
    ]
    br.skipped = len(out) - len(queue)

    for n, pos in enumerate(queue):
        if should_stop is not None and should_stop():
            br.stopped = True
            logger.info("run_batch: stop requested, %d pages not started", len(queue) - n)
            break
        if n > 0 and delay > 0:
            sleep(delay)

        page = out[pos]
        try:
            pr = pipeline.run(page, options)
        except Exception as exc:
            logger.error("run_batch page %d failed: %s", page.index, exc)
            pr = PageResult(page=page.evolve(status=PageStatus.ERROR))
            pr.stages["pipeline"] = StageResult(
                stage="pipeline", ran=True, status="failed", error=error_dict(exc)
            )

        out[pos] = pr.page
        br.results.append(pr)
        if on_page is not None:
            on_page(pr)

    logger.info(
        "run_batch: %d done, %d errors, %d skipped%s",
        br.done,
        br.errors,
        br.skipped,
        " (stopped)" if br.stopped else "",
    )
    return br
