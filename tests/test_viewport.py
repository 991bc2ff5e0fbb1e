"""Tests for fidelity_checker.stages.viewport — mismatch detection and capping."""

from fidelity_checker.core.types import Dimensions
from fidelity_checker.stages.viewport import check_dimension_limits, detect_viewport_mismatch


class TestDetectViewportMismatch:
    def test_wide_implementation_detected(self):
        warning = detect_viewport_mismatch(Dimensions(800, 600), Dimensions(1200, 600))
        assert warning.detected is True
        assert warning.width_ratio == 1.5
        assert warning.aspect_ratio_delta == 0.67

    def test_identical_not_detected(self):
        warning = detect_viewport_mismatch(Dimensions(1440, 900), Dimensions(1440, 900))
        assert warning.detected is False
        assert warning.width_ratio is None
        assert warning.suggestion is None
        assert warning.to_dict() == {'detected': False}

    def test_within_tolerance(self):
        warning = detect_viewport_mismatch(Dimensions(1000, 600), Dimensions(1040, 624))
        assert warning.detected is False

    def test_aspect_only_recommends_fit_inside(self):
        warning = detect_viewport_mismatch(Dimensions(800, 600), Dimensions(800, 400))
        assert warning.detected is True
        assert warning.width_ratio == 1.0
        assert "'Fit inside'" in warning.suggestion

    def test_width_only_no_fit_inside(self):
        warning = detect_viewport_mismatch(Dimensions(800, 600), Dimensions(880, 660))
        assert warning.detected is True
        assert warning.width_ratio == 1.1
        assert 'Fit inside' not in warning.suggestion
        assert 'sizing mode' in warning.suggestion

    def test_remote_capture_suggests_design_viewport(self):
        warning = detect_viewport_mismatch(Dimensions(800, 600), Dimensions(1200, 600), is_remote_capture=True)
        assert warning.suggestion.startswith('Viewport mismatch detected. ')
        assert 'Use design size as viewport' in warning.suggestion
        assert 'sizing mode' not in warning.suggestion

    def test_remote_capture_already_at_design_size(self):
        warning = detect_viewport_mismatch(
            Dimensions(800, 600),
            Dimensions(1200, 600),
            is_remote_capture=True,
            used_design_viewport=True,
        )
        assert 'sizing mode' in warning.suggestion
        assert 'Use design size' not in warning.suggestion

    def test_contract_keys(self):
        obj = detect_viewport_mismatch(Dimensions(800, 600), Dimensions(1200, 600)).to_dict()
        assert set(obj) == {'detected', 'widthRatio', 'aspectRatioDelta', 'suggestion'}


class TestCheckDimensionLimits:
    def test_within_limits(self):
        check = check_dimension_limits(Dimensions(1440, 900))
        assert check.needs_capping is False
        assert check.capped_dimensions is None

    def test_at_limits(self):
        assert check_dimension_limits(Dimensions(3000, 3000)).needs_capping is False

    def test_too_wide(self):
        check = check_dimension_limits(Dimensions(6000, 3000))
        assert check.needs_capping is True
        assert check.capped_dimensions == Dimensions(3000, 1500)
        assert '6000x3000' in check.suggestion
        assert '3000x1500' in check.suggestion

    def test_too_tall_uses_smaller_factor(self):
        check = check_dimension_limits(Dimensions(4000, 9000))
        assert check.capped_dimensions == Dimensions(1333, 3000)

    def test_custom_limits(self):
        check = check_dimension_limits(Dimensions(500, 250), max_width=100, max_height=100)
        assert check.capped_dimensions == Dimensions(100, 50)
