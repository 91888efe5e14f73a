"""Tests for decksmith.recognition.parse — tagged parsing of capability output."""

import json

import pytest

from decksmith.models import Alignment, BlockCategory
from decksmith.recognition import Malformed, Parsed, parse_response
from decksmith.recognition.parse import block_from_entry


def _entry(**overrides) -> dict:
    d = {"text": "Hello", "box_2d": [100, 100, 150, 400]}
    d.update(overrides)
    return d


class TestParseResponse:
    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_is_zero_blocks(self, raw):
        result = parse_response(raw)
        assert isinstance(result, Parsed)
        assert result.blocks == []

    def test_empty_array(self):
        assert parse_response("[]") == Parsed()

    def test_plain_array(self):
        result = parse_response(json.dumps([_entry(), _entry(text="World")]))
        assert isinstance(result, Parsed)
        assert [b.text for b in result.blocks] == ["Hello", "World"]

    def test_code_fences_stripped(self):
        raw = "```json\n" + json.dumps([_entry()]) + "\n```"
        result = parse_response(raw)
        assert isinstance(result, Parsed)
        assert len(result.blocks) == 1

    def test_wrapped_in_blocks_key(self):
        result = parse_response(json.dumps({"blocks": [_entry()]}))
        assert isinstance(result, Parsed)
        assert len(result.blocks) == 1

    def test_invalid_json_is_malformed(self):
        result = parse_response("[{'text': 'no'")
        assert isinstance(result, Malformed)
        assert "invalid JSON" in result.reason

    def test_non_array_is_malformed(self):
        result = parse_response(json.dumps({"text": "lonely"}))
        assert isinstance(result, Malformed)
        assert "dict" in result.reason

    def test_bad_entries_dropped_and_counted(self):
        raw = json.dumps(
            [
                _entry(),
                _entry(box_2d=[100, 100, 100, 400]),  # zero height
                _entry(box_2d=[1, 2, 3]),
                _entry(box_2d="nope"),
                "not an object",
                {"text": "no box"},
            ]
        )
        result = parse_response(raw)
        assert isinstance(result, Parsed)
        assert len(result.blocks) == 1
        assert result.dropped == 5


class TestBlockFromEntry:
    def test_geometry_alias(self):
        blk = block_from_entry({"text": "a", "geometry": [1, 2, 3, 4]})
        assert blk.box == (1.0, 2.0, 3.0, 4.0)

    def test_box_clamped(self):
        blk = block_from_entry(_entry(box_2d=[-20, 10, 1050, 990]))
        assert blk.box == (0.0, 10.0, 1000.0, 990.0)

    def test_box_collapsing_after_clamp_dropped(self):
        assert block_from_entry(_entry(box_2d=[1100, 10, 1200, 20])) is None

    def test_non_finite_dropped(self):
        assert block_from_entry(_entry(box_2d=[0, 0, float("inf"), 10])) is None

    def test_style_fields(self):
        blk = block_from_entry(
            _entry(
                font_size=32,
                is_bold=True,
                italic=True,
                align="CENTER",
                color="#ff8800",
                type="embedded_art_text",
            )
        )
        assert blk.font_size == 32.0
        assert blk.style.bold and blk.style.italic
        assert blk.style.align is Alignment.CENTER
        assert blk.style.color == "#FF8800"
        assert blk.category is BlockCategory.EMBEDDED_ART_TEXT

    def test_unknown_values_fall_back(self):
        blk = block_from_entry(_entry(align="justify", color="red", type="watermark", font_size="big"))
        assert blk.style.align is Alignment.LEFT
        assert blk.style.color == "#000000"
        assert blk.category is BlockCategory.PRESENTATION_TEXT
        assert blk.font_size is None

    def test_included_left_unset(self):
        assert block_from_entry(_entry()).included is None
