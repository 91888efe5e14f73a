"""Tests for decksmith.editing — validated block edits."""

import pytest

from conftest import make_block, make_page

from decksmith.editing import move_block, reset_blocks, resize_block, set_included
from decksmith.errors import GeometryViolation


@pytest.fixture
def page():
    blocks = [make_block(100, 100, 150, 400, "A"), make_block(500, 100, 540, 300, "B")]
    return make_page(blocks, baseline_blocks=blocks)


class TestMoveBlock:
    def test_translates_box(self, page):
        moved = move_block(page, 0, 10, -50)
        assert moved.blocks[0].box == (110.0, 50.0, 160.0, 350.0)
        assert moved.blocks[1] is page.blocks[1]
        assert page.blocks[0].box == (100.0, 100.0, 150.0, 400.0)

    def test_off_grid_rejected(self, page):
        with pytest.raises(GeometryViolation):
            move_block(page, 0, 0, -200)

    def test_bad_index(self, page):
        with pytest.raises(IndexError):
            move_block(page, 5, 1, 1)


class TestResizeBlock:
    def test_replaces_box(self, page):
        resized = resize_block(page, 1, (500, 100, 600, 900))
        assert resized.blocks[1].box == (500.0, 100.0, 600.0, 900.0)
        assert resized.blocks[1].text == "B"

    @pytest.mark.parametrize(
        "box",
        [(500, 100, 500, 900), (600, 100, 500, 900), (500, 100, 600, 1001)],
    )
    def test_invalid_rejected(self, page, box):
        with pytest.raises(GeometryViolation):
            resize_block(page, 1, box)


class TestIncludedAndReset:
    def test_toggle(self, page):
        off = set_included(page, 0, False)
        assert off.blocks[0].included is False
        assert not off.blocks[0].is_removable()
        assert set_included(off, 0, True).blocks[0].is_removable()

    def test_reset_restores_baseline(self, page):
        edited = set_included(move_block(page, 0, 5, 5), 1, False)
        restored = reset_blocks(edited)
        assert restored.blocks == page.baseline_blocks

    def test_edits_leave_baseline_alone(self, page):
        edited = move_block(page, 0, 5, 5)
        assert edited.baseline_blocks == page.baseline_blocks
