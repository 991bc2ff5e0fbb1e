"""Heuristic categorization and prioritization of mismatch regions.

categorize() rules, evaluated in this order, first match wins:
  1. typography       3 < aspect < 15 and area < 10000 (text-like strips)
  2. spacing          height < 20 and width > 100, or width < 20 and height > 100
  3. component-state  0.5 < aspect < 2 and 1000 < area < 30000 (buttons, icons)
  4. color            everything else, including large fills

The order matters: a 300×40 region (aspect 7.5, area 12000) misses rule 1 on
area and rule 3 on aspect, so it lands in color even though it looks like a
line of text. That outcome is kept as-is.

assign_priority():
  high    area > 5000 or intensity/255 > 0.5
  medium  area > 1000 or intensity/255 > 0.3
  low     otherwise

All functions here are pure; regions can be categorized in any order.
"""

from fidelity_checker.core.types import (
    COLOR,
    COMPONENT_STATE,
    HIGH,
    LOW,
    MEDIUM,
    PRIORITIES,
    SPACING,
    TYPOGRAPHY,
    BoundingBox,
    Mismatch,
    Region,
    RegionStats,
)

TEXT_MIN_ASPECT = 3
TEXT_MAX_ASPECT = 15
TEXT_MAX_AREA = 10000

STRIP_MAX_THICKNESS = 20
STRIP_MIN_LENGTH = 100

COMPONENT_MIN_ASPECT = 0.5
COMPONENT_MAX_ASPECT = 2
COMPONENT_MIN_AREA = 1000
COMPONENT_MAX_AREA = 30000

HIGH_PRIORITY_AREA = 5000
HIGH_PRIORITY_INTENSITY = 0.5
MEDIUM_PRIORITY_AREA = 1000
MEDIUM_PRIORITY_INTENSITY = 0.3

_TITLES = {
    COLOR: 'Color mismatch #{index}',
    TYPOGRAPHY: 'Text difference #{index}',
    SPACING: 'Layout spacing issue #{index}',
    COMPONENT_STATE: 'Component state mismatch #{index}',
}

_EXPLANATIONS = {
    COLOR: (
        'A {priority} priority color difference was detected {position}, covering an area of {size}. '
        'This may indicate a background color, border color, or fill color mismatch.'
    ),
    TYPOGRAPHY: (
        'A text-related difference was found {position} ({size}). '
        'This could be due to font changes, text color, size, weight, or content differences.'
    ),
    SPACING: (
        'A layout spacing discrepancy was detected {position} ({size}). '
        'This suggests padding, margin, or alignment differences between design and implementation.'
    ),
    COMPONENT_STATE: (
        'A component appears differently {position} ({size}). '
        'This might indicate a state mismatch such as hover/active/disabled states, or visibility differences.'
    ),
}

_FIXES = {
    COLOR: (
        'Verify the color values match the design spec. '
        'Check background colors, borders, and fills in the region around x:{x}, y:{y}.'
    ),
    TYPOGRAPHY: (
        'Review font properties (family, size, weight, color, line-height) in the text element near x:{x}, y:{y}. '
        'Ensure text content matches design.'
    ),
    SPACING: (
        'Inspect padding, margin, and positioning values near x:{x}, y:{y}. '
        'Use browser DevTools to compare computed values against design specifications.'
    ),
    COMPONENT_STATE: (
        'Check the component state at x:{x}, y:{y}. '
        'Verify hover, active, focus, disabled, or selected states match the design mockup.'
    ),
}


def categorize(stats: RegionStats) -> str:
    bbox, aspect, area = stats.bbox, stats.aspect_ratio, stats.area

    if TEXT_MIN_ASPECT < aspect < TEXT_MAX_ASPECT and area < TEXT_MAX_AREA:
        return TYPOGRAPHY

    thin_horizontal = bbox.height < STRIP_MAX_THICKNESS and bbox.width > STRIP_MIN_LENGTH
    thin_vertical = bbox.width < STRIP_MAX_THICKNESS and bbox.height > STRIP_MIN_LENGTH
    if thin_horizontal or thin_vertical:
        return SPACING

    if COMPONENT_MIN_ASPECT < aspect < COMPONENT_MAX_ASPECT and COMPONENT_MIN_AREA < area < COMPONENT_MAX_AREA:
        return COMPONENT_STATE

    return COLOR


def assign_priority(bbox: BoundingBox, avg_intensity: float) -> str:
    area = bbox.width * bbox.height
    ratio = avg_intensity / 255
    if area > HIGH_PRIORITY_AREA or ratio > HIGH_PRIORITY_INTENSITY:
        return HIGH
    if area > MEDIUM_PRIORITY_AREA or ratio > MEDIUM_PRIORITY_INTENSITY:
        return MEDIUM
    return LOW


def generate_title(category: str, index: int) -> str:
    return _TITLES[category].format(index=index)


def generate_explanation(category: str, bbox: BoundingBox, priority: str) -> str:
    return _EXPLANATIONS[category].format(
        priority=priority,
        position=f'at position ({bbox.x}, {bbox.y})',
        size=f'{bbox.width}×{bbox.height}px',
    )


def generate_suggested_fix(category: str, bbox: BoundingBox) -> str:
    return _FIXES[category].format(x=bbox.x, y=bbox.y)


def build_mismatches(regions: list[Region]) -> list[Mismatch]:
    """Turn ranked regions into mismatches.

    Ids follow the ranked region order (mismatch-1 is the top-scoring region);
    the returned list is then stably reordered high → medium → low.
    """
    mismatches = []
    for index, region in enumerate(regions, start=1):
        category = categorize(RegionStats.from_region(region))
        priority = assign_priority(region.bbox, region.avg_intensity)
        mismatches.append(
            Mismatch(
                id=f'mismatch-{index}',
                title=generate_title(category, index),
                category=category,
                priority=priority,
                bbox=region.bbox,
                explanation=generate_explanation(category, region.bbox, priority),
                suggested_fix=generate_suggested_fix(category, region.bbox),
            )
        )
    mismatches.sort(key=lambda m: PRIORITIES.index(m.priority))
    return mismatches
