"""Tests for fidelity_checker.stages.categorize — category and priority heuristics."""

from fidelity_checker.core.types import BoundingBox, Region, RegionStats
from fidelity_checker.stages.categorize import (
    assign_priority,
    build_mismatches,
    categorize,
    generate_explanation,
    generate_suggested_fix,
    generate_title,
)


def _stats(width: int, height: int, intensity: float = 200) -> RegionStats:
    bbox = BoundingBox(0, 0, width, height)
    return RegionStats(
        bbox=bbox,
        pixel_count=width * height,
        avg_intensity=intensity,
        aspect_ratio=width / height,
        area=width * height,
    )


class TestCategorize:
    def test_squarish_medium_is_component_state(self):
        assert categorize(_stats(80, 60)) == 'component-state'

    def test_large_area_is_color(self):
        assert categorize(_stats(300, 200)) == 'color'

    def test_text_like_strip_is_typography(self):
        assert categorize(_stats(200, 20)) == 'typography'

    def test_typography_checked_before_spacing(self):
        # 150x15 is also a thin horizontal strip, rule 1 wins
        assert categorize(_stats(150, 15)) == 'typography'

    def test_thin_horizontal_is_spacing(self):
        assert categorize(_stats(300, 10)) == 'spacing'

    def test_thin_vertical_is_spacing(self):
        assert categorize(_stats(10, 150)) == 'spacing'

    def test_wide_text_with_large_area_falls_to_color(self):
        # aspect 7.5 but area 12000: misses typography on area, component on aspect
        assert categorize(_stats(300, 40)) == 'color'

    def test_small_square_is_color(self):
        assert categorize(_stats(10, 10)) == 'color'

    def test_component_area_bounds_exclusive(self):
        assert categorize(_stats(40, 25)) == 'color'  # area exactly 1000
        assert categorize(_stats(200, 150)) == 'color'  # area exactly 30000

    def test_from_region(self):
        region = Region(bbox=BoundingBox(5, 5, 80, 60), pixel_count=4000, avg_intensity=255)
        stats = RegionStats.from_region(region)
        assert stats.area == 4800
        assert categorize(stats) == 'component-state'


class TestAssignPriority:
    def test_large_area_high_regardless_of_intensity(self):
        assert assign_priority(BoundingBox(0, 0, 100, 51), 0) == 'high'

    def test_strong_intensity_high(self):
        assert assign_priority(BoundingBox(0, 0, 10, 10), 200) == 'high'

    def test_medium_area(self):
        assert assign_priority(BoundingBox(0, 0, 40, 30), 10) == 'medium'

    def test_medium_intensity(self):
        assert assign_priority(BoundingBox(0, 0, 10, 10), 100) == 'medium'

    def test_low(self):
        assert assign_priority(BoundingBox(0, 0, 10, 10), 50) == 'low'

    def test_area_boundary_not_high(self):
        assert assign_priority(BoundingBox(0, 0, 100, 50), 0) == 'medium'


class TestTemplates:
    def test_titles(self):
        assert generate_title('color', 1) == 'Color mismatch #1'
        assert generate_title('typography', 2) == 'Text difference #2'
        assert generate_title('spacing', 3) == 'Layout spacing issue #3'
        assert generate_title('component-state', 4) == 'Component state mismatch #4'

    def test_explanation_mentions_position_size_priority(self):
        text = generate_explanation('color', BoundingBox(12, 34, 56, 78), 'high')
        assert 'at position (12, 34)' in text
        assert '56×78px' in text
        assert 'high priority' in text

    def test_suggested_fix_mentions_coordinates(self):
        text = generate_suggested_fix('spacing', BoundingBox(7, 9, 10, 10))
        assert 'x:7, y:9' in text

    def test_color_fix_wording(self):
        text = generate_suggested_fix('color', BoundingBox(1, 2, 3, 4))
        assert text == (
            'Verify the color values match the design spec. '
            'Check background colors, borders, and fills in the region around x:1, y:2.'
        )


class TestBuildMismatches:
    def _regions(self) -> list[Region]:
        return [
            Region(bbox=BoundingBox(0, 0, 10, 10), pixel_count=100, avg_intensity=50),
            Region(bbox=BoundingBox(50, 50, 100, 100), pixel_count=10000, avg_intensity=255),
        ]

    def test_sorted_by_priority_ids_from_rank(self):
        mismatches = build_mismatches(self._regions())
        assert [m.id for m in mismatches] == ['mismatch-2', 'mismatch-1']
        assert [m.priority for m in mismatches] == ['high', 'low']

    def test_fields_populated(self):
        first = build_mismatches(self._regions())[0]
        assert first.category == 'component-state'
        assert first.title == 'Component state mismatch #2'
        assert first.bbox == BoundingBox(50, 50, 100, 100)
        assert 'x:50, y:50' in first.suggested_fix

    def test_contract_keys(self):
        obj = build_mismatches(self._regions())[0].to_dict()
        assert set(obj) == {'id', 'title', 'category', 'priority', 'explanation', 'suggestedFix', 'bbox'}
        assert obj['bbox'] == {'x': 50, 'y': 50, 'width': 100, 'height': 100}

    def test_empty(self):
        assert build_mismatches([]) == []
