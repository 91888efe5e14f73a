"""Tests for decksmith.config — defaults and range validation."""

import pytest

from decksmith.config import CleanupConfig, ConfigValidationError
from decksmith.models import RecognitionStrategy


class TestDefaults:
    def test_region_defaults(self):
        cfg = CleanupConfig()
        assert cfg.merge_threshold == 15.0
        assert cfg.max_regions == 30
        assert cfg.default_padding_px == 20
        assert cfg.verify_padding_boost_px == 10

    def test_mask_defaults(self):
        cfg = CleanupConfig()
        assert cfg.mask_expand_ratio == pytest.approx(0.10)
        assert (cfg.mask_expand_min_px, cfg.mask_expand_max_px) == (5.0, 15.0)
        assert cfg.gradient_threshold == 40.0
        assert (cfg.feather_min_px, cfg.feather_max_px) == (10.0, 20.0)

    def test_feature_gates(self):
        cfg = CleanupConfig()
        assert cfg.enable_local_mask is True
        assert cfg.enable_verification is False
        assert cfg.recognition_strategy is RecognitionStrategy.TWO_PASS

    def test_vars_round_trip(self):
        cfg = CleanupConfig(merge_threshold=12.0, enable_verification=True)
        again = CleanupConfig(**vars(cfg))
        assert again == cfg


class TestStrategyCoercion:
    def test_string_is_coerced(self):
        cfg = CleanupConfig(recognition_strategy="single_pass")
        assert cfg.recognition_strategy is RecognitionStrategy.SINGLE_PASS

    def test_unknown_string_rejected(self):
        with pytest.raises(ConfigValidationError, match="recognition_strategy"):
            CleanupConfig(recognition_strategy="three_pass")


class TestValidation:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("mask_expand_ratio", 1.5),
            ("feather_ratio", -0.1),
            ("merge_threshold", 1001.0),
            ("reading_order_tolerance", -1.0),
            ("default_padding_px", -1),
            ("inter_page_delay_s", -0.5),
            ("recognition_temperature", 2.5),
            ("gradient_threshold", 800.0),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ConfigValidationError, match=field):
            CleanupConfig(**{field: value})

    def test_clamp_pair_order(self):
        with pytest.raises(ConfigValidationError, match="mask_expand_min_px"):
            CleanupConfig(mask_expand_min_px=20.0, mask_expand_max_px=10.0)

    def test_feather_pair_order(self):
        with pytest.raises(ConfigValidationError, match="feather_min_px"):
            CleanupConfig(feather_min_px=30.0)

    def test_max_regions_at_least_one(self):
        with pytest.raises(ConfigValidationError, match="max_regions"):
            CleanupConfig(max_regions=0)

    def test_render_resolution_positive(self):
        with pytest.raises(ConfigValidationError, match="render_resolution"):
            CleanupConfig(render_resolution=0)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            CleanupConfig(max_regions=-3)
