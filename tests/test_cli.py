"""Tests for the decksmith command-line runner."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from conftest import make_block, make_image

from decksmith.__main__ import build_pipeline, main, parse_pages
from decksmith.config import CleanupConfig
from decksmith.pipeline import PagePipeline
from decksmith.recognition import (
    GeminiRecognitionBackend,
    PaddleRecognitionBackend,
    TextRecognizer,
)
from decksmith.reconstruction import (
    BackgroundReconstructor,
    GeminiReconstructionBackend,
    OpenCVReconstructionBackend,
)


class TestParsePages:
    def test_none(self):
        assert parse_pages(None) is None
        assert parse_pages("") is None

    def test_ranges_and_singles(self):
        assert parse_pages("1,3-5") == [0, 2, 3, 4]

    def test_duplicates_sorted(self):
        assert parse_pages("4, 2,2") == [1, 3]

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            parse_pages("0")


class TestBuildPipeline:
    def test_gemini(self):
        cfg = CleanupConfig()
        pipe = build_pipeline("gemini", cfg, api_key="k")
        assert isinstance(pipe.recognizer.backend, GeminiRecognitionBackend)
        assert isinstance(pipe.reconstructor.backend, GeminiReconstructionBackend)
        assert pipe.cfg is cfg

    def test_opencv(self):
        pipe = build_pipeline("opencv", CleanupConfig())
        assert isinstance(pipe.recognizer.backend, PaddleRecognitionBackend)
        assert isinstance(pipe.reconstructor.backend, OpenCVReconstructionBackend)

    def test_unknown(self):
        with pytest.raises(ValueError, match="unknown backend"):
            build_pipeline("photoshop", CleanupConfig())


class TestMain:
    def _fake_build(self, cleaned=None):
        def build(backend, cfg, api_key=None):
            recognizer = MagicMock(spec=TextRecognizer)
            recognizer.recognize.return_value = [make_block(400, 400, 600, 600, "Hi")]
            reconstructor = MagicMock(spec=BackgroundReconstructor)
            reconstructor.reconstruct.return_value = cleaned
            return PagePipeline(recognizer, reconstructor, cfg)

        return build

    def test_image_run_writes_outputs(self, tmp_path):
        src = tmp_path / "slide.png"
        make_image(200, 100).save(src)
        out = tmp_path / "out"
        with patch("decksmith.__main__.build_pipeline", self._fake_build(make_image(200, 100))):
            code = main([str(src), "--out", str(out), "--overlays", "--no-local-mask"])

        assert code == 0
        assert (out / "page_1.png").exists()
        assert (out / "page_1_overlay.png").exists()
        data = json.loads((out / "page_1.json").read_text())
        assert data["status"] == "DONE"
        assert len(data["blocks"]) == 1
        manifest = json.loads((out / "manifest.json").read_text())
        assert manifest["done"] == 1
        assert manifest["config_snapshot"]["enable_local_mask"] is False

    def test_failed_page_exit_code(self, tmp_path):
        src = tmp_path / "slide.png"
        make_image(200, 100).save(src)
        out = tmp_path / "out"
        with patch("decksmith.__main__.build_pipeline", self._fake_build(None)):
            code = main([str(src), "--out", str(out)])

        assert code == 1
        assert not (out / "page_1.png").exists()
        data = json.loads((out / "page_1.json").read_text())
        assert data["status"] == "ERROR"

    def test_missing_input(self, tmp_path):
        code = main([str(tmp_path / "missing.png"), "--out", str(tmp_path / "out")])
        assert code == 2

    def test_pages_rejected_for_image_input(self, tmp_path):
        src = tmp_path / "slide.png"
        make_image(200, 100).save(src)
        with patch("decksmith.__main__.build_pipeline") as build:
            with pytest.raises(SystemExit):
                main([str(src), "--out", str(tmp_path / "out"), "--pages", "2"])
        build.assert_not_called()
        assert not (tmp_path / "out").exists()

    def test_style_hints_forwarded(self, tmp_path):
        src = tmp_path / "slide.png"
        make_image(200, 100).save(src)
        built = {}

        def build(backend, cfg, api_key=None):
            pipe = self._fake_build(make_image(200, 100))(backend, cfg, api_key)
            built["reconstructor"] = pipe.reconstructor
            return pipe

        with patch("decksmith.__main__.build_pipeline", build):
            main(
                [
                    str(src),
                    "--out",
                    str(tmp_path / "out"),
                    "--style-hint",
                    "Keep the grid lines.",
                    "--style-hint",
                    "No new shadows.",
                ]
            )
        kwargs = built["reconstructor"].reconstruct.call_args.kwargs
        assert kwargs["style_hints"] == ["Keep the grid lines.", "No new shadows."]

    def test_bad_padding_is_usage_error(self, tmp_path):
        with pytest.raises(SystemExit):
            main([str(tmp_path / "x.png"), "--out", str(tmp_path), "--padding", "-5"])
