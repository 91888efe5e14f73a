"""Tests for decksmith.pipeline.run_batch — sequencing, pacing and stop requests."""

from __future__ import annotations

from conftest import make_page

from decksmith.config import CleanupConfig
from decksmith.models import PageStatus
from decksmith.pipeline import PageResult, RunOptions, run_batch


class FakePipeline:
    """Stands in for PagePipeline; marks pages DONE unless told otherwise."""

    def __init__(self, cfg=None, outcomes=None):
        self.cfg = cfg or CleanupConfig(inter_page_delay_s=0.5)
        self.outcomes = outcomes or {}
        self.calls = []

    def run(self, page, options=None):
        self.calls.append((page.index, options))
        outcome = self.outcomes.get(page.index, PageStatus.DONE)
        if isinstance(outcome, Exception):
            raise outcome
        return PageResult(page=page.evolve(status=outcome))


def _pages(n, **statuses):
    pages = [make_page(index=i) for i in range(n)]
    for key, status in statuses.items():
        i = int(key.lstrip("p"))
        pages[i] = pages[i].evolve(status=status)
    return pages


class TestRunBatch:
    def test_all_pages_processed_in_order(self):
        pipe = FakePipeline()
        br = run_batch(_pages(3), pipe, sleep=lambda s: None)
        assert [i for i, _ in pipe.calls] == [0, 1, 2]
        assert br.done == 3
        assert [p.status for p in br.pages] == [PageStatus.DONE] * 3

    def test_delay_between_pages_only(self):
        slept = []
        run_batch(_pages(3), FakePipeline(), sleep=slept.append)
        assert slept == [0.5, 0.5]

    def test_explicit_delay(self):
        slept = []
        run_batch(_pages(2), FakePipeline(), delay_s=2.0, sleep=slept.append)
        assert slept == [2.0]

    def test_zero_delay_never_sleeps(self):
        slept = []
        run_batch(_pages(3), FakePipeline(), delay_s=0, sleep=slept.append)
        assert slept == []

    def test_done_pages_skipped(self):
        pipe = FakePipeline()
        br = run_batch(_pages(3, p1=PageStatus.DONE), pipe, sleep=lambda s: None)
        assert [i for i, _ in pipe.calls] == [0, 2]
        assert br.skipped == 1

    def test_error_pages_retried(self):
        pipe = FakePipeline()
        run_batch(_pages(2, p0=PageStatus.ERROR), pipe, sleep=lambda s: None)
        assert [i for i, _ in pipe.calls] == [0, 1]

    def test_selection(self):
        pipe = FakePipeline()
        br = run_batch(_pages(4), pipe, selected={1, 3}, sleep=lambda s: None)
        assert [i for i, _ in pipe.calls] == [1, 3]
        assert br.skipped == 2
        assert br.pages[0].status is PageStatus.IDLE

    def test_options_forwarded(self):
        pipe = FakePipeline()
        opts = RunOptions(verify=True)
        run_batch(_pages(2), pipe, opts, sleep=lambda s: None)
        assert all(o is opts for _, o in pipe.calls)

    def test_error_does_not_stop_batch(self):
        pipe = FakePipeline(outcomes={0: PageStatus.ERROR})
        br = run_batch(_pages(2), pipe, sleep=lambda s: None)
        assert br.errors == 1
        assert br.done == 1

    def test_exception_recorded_as_error(self):
        pipe = FakePipeline(outcomes={1: RuntimeError("crash")})
        br = run_batch(_pages(3), pipe, sleep=lambda s: None)
        assert [p.status for p in br.pages] == [
            PageStatus.DONE,
            PageStatus.ERROR,
            PageStatus.DONE,
        ]
        assert br.results[1].stages["pipeline"].error["message"] == "crash"

    def test_stop_checked_before_each_page(self):
        pipe = FakePipeline()
        calls = {"n": 0}

        def should_stop():
            calls["n"] += 1
            return calls["n"] > 2

        slept = []
        br = run_batch(_pages(5), pipe, sleep=slept.append, should_stop=should_stop)
        assert [i for i, _ in pipe.calls] == [0, 1]
        assert br.stopped is True
        assert len(slept) == 1
        assert br.pages[2].status is PageStatus.IDLE

    def test_input_sequence_unchanged(self):
        pages = _pages(2)
        br = run_batch(pages, FakePipeline(), sleep=lambda s: None)
        assert all(p.status is PageStatus.IDLE for p in pages)
        assert br.pages is not pages

    def test_on_page_callback(self):
        seen = []
        run_batch(_pages(2), FakePipeline(), sleep=lambda s: None, on_page=seen.append)
        assert [pr.page.index for pr in seen] == [0, 1]

    def test_summary(self):
        br = run_batch(_pages(2, p0=PageStatus.DONE), FakePipeline(), sleep=lambda s: None)
        summary = br.to_summary_dict()
        assert summary["pages"] == 2
        assert summary["ran"] == 1
        assert summary["skipped"] == 1
        assert summary["stopped"] is False
