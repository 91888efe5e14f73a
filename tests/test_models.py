"""Tests for decksmith.models — text blocks, regions, and pages."""

import pytest

from conftest import make_block, make_image, make_page

from decksmith.errors import GeometryViolation
from decksmith.models import (
    Alignment,
    BlockCategory,
    CleanupRegion,
    Page,
    PageStatus,
    TextBlock,
    TextStyle,
)


class TestTextBlock:
    def test_edge_properties(self):
        blk = make_block(10, 20, 30, 40)
        assert (blk.ymin, blk.xmin, blk.ymax, blk.xmax) == (10, 20, 30, 40)

    def test_presentation_text_removable_by_default(self):
        assert make_block(0, 0, 10, 10).is_removable() is True

    def test_embedded_art_kept_by_default(self):
        blk = make_block(0, 0, 10, 10, category=BlockCategory.EMBEDDED_ART_TEXT)
        assert blk.is_removable() is False

    def test_included_overrides_category(self):
        art = make_block(0, 0, 10, 10, category=BlockCategory.EMBEDDED_ART_TEXT, included=True)
        body = make_block(0, 0, 10, 10, included=False)
        assert art.is_removable() is True
        assert body.is_removable() is False

    def test_with_box_returns_copy(self):
        blk = make_block(0, 0, 10, 10, "A")
        moved = blk.with_box([5, 5, 15, 15])
        assert moved.box == (5.0, 5.0, 15.0, 15.0)
        assert blk.box == (0.0, 0.0, 10.0, 10.0)
        assert moved.text == "A"

    def test_to_dict_wire_keys(self):
        blk = TextBlock(
            text="Hello",
            box=(1.0, 2.0, 3.0, 4.0),
            font_size=24.0,
            style=TextStyle(bold=True, italic=False, align=Alignment.CENTER, color="#FF0000"),
            category=BlockCategory.EMBEDDED_ART_TEXT,
            included=True,
        )
        d = blk.to_dict()
        assert d["box_2d"] == [1.0, 2.0, 3.0, 4.0]
        assert d["is_bold"] is True
        assert d["align"] == "center"
        assert d["type"] == "embedded_art_text"
        assert d["font_size"] == 24.0
        assert d["included"] is True

    def test_to_dict_omits_optional(self):
        d = make_block(0, 0, 10, 10).to_dict()
        assert "font_size" not in d
        assert "included" not in d

    def test_from_dict_round_trip(self):
        blk = TextBlock(
            text="x",
            box=(10.0, 20.0, 30.0, 40.0),
            font_size=12.5,
            style=TextStyle(italic=True, align=Alignment.RIGHT, color="#00FF00"),
            included=False,
        )
        assert TextBlock.from_dict(blk.to_dict()) == blk

    @pytest.mark.parametrize(
        "box",
        [[500, 0, 100, 10], [10, 10, 10, 20], [0, 0, 10, 1200], [0, 0, 10]],
    )
    def test_from_dict_rejects_invalid_box(self, box):
        with pytest.raises(GeometryViolation):
            TextBlock.from_dict({"text": "x", "box_2d": box})


class TestCleanupRegion:
    def test_priority_is_smallest_index(self):
        assert CleanupRegion(box=(0, 0, 1, 1), source_indices=(4, 2, 7)).priority == 2

    def test_as_int_list_rounds(self):
        r = CleanupRegion(box=(84.6, 85.0, 225.4, 415.5))
        assert r.as_int_list() == [85, 85, 225, 416]

    def test_to_dict(self):
        d = CleanupRegion(box=(1, 2, 3, 4), source_indices=(0, 1)).to_dict()
        assert d == {"box_2d": [1, 2, 3, 4], "source_indices": [0, 1]}


class TestPageStatus:
    @pytest.mark.parametrize("status", [PageStatus.DONE, PageStatus.ERROR])
    def test_terminal(self, status):
        assert status.is_terminal

    @pytest.mark.parametrize(
        "status",
        [
            PageStatus.IDLE,
            PageStatus.RENDERING,
            PageStatus.ANALYZING,
            PageStatus.CLEANING,
            PageStatus.VERIFYING,
        ],
    )
    def test_non_terminal(self, status):
        assert not status.is_terminal


class TestPage:
    def test_from_image(self):
        img = make_image(320, 240)
        page = Page.from_image(3, img, padding=12)
        assert (page.index, page.width, page.height) == (3, 320, 240)
        assert page.working_image is img
        assert page.status is PageStatus.IDLE
        assert page.padding == 12
        assert not page.has_blocks

    def test_evolve_coerces_blocks_to_tuple(self):
        page = make_page()
        updated = page.evolve(blocks=[make_block(0, 0, 10, 10)])
        assert isinstance(updated.blocks, tuple)
        assert updated.has_blocks
        assert not page.has_blocks

    def test_background_falls_back_to_original(self):
        page = make_page().evolve(working_image=None)
        assert page.background is page.original_image
