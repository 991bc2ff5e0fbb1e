"""Viewport mismatch detection and dimension capping.

Compares the raw design and implementation sizes before normalization.
A width ratio outside [0.95, 1.05] or an aspect-ratio gap above 0.10
usually means the implementation was captured at the wrong viewport.
The result is advisory only and never stops a comparison.

check_dimension_limits() caps oversized designs so the comparison canvas
(and every buffer sized from it) stays within a known memory ceiling.
"""

from fidelity_checker.core.types import DimensionLimitCheck, Dimensions, ViewportWarning, round_half_up

WIDTH_TOLERANCE = 0.05
ASPECT_TOLERANCE = 0.10
DEFAULT_MAX_WIDTH = 3000
DEFAULT_MAX_HEIGHT = 3000

_SUGGEST_PREFIX = 'Viewport mismatch detected. '
_SUGGEST_DESIGN_VIEWPORT = "Enable 'Use design size as viewport' to capture screenshot at design dimensions. "
_SUGGEST_SIZING_MODE = 'Try switching the sizing mode to better handle the dimension difference. '
_SUGGEST_FIT_INSIDE = "Aspect ratios differ significantly - consider 'Fit inside' mode."


def detect_viewport_mismatch(
    design: Dimensions,
    implementation: Dimensions,
    is_remote_capture: bool = False,
    used_design_viewport: bool = False,
) -> ViewportWarning:
    width_ratio = implementation.width / design.width
    aspect_delta = abs(design.aspect_ratio - implementation.aspect_ratio)

    width_mismatch = width_ratio < 1 - WIDTH_TOLERANCE or width_ratio > 1 + WIDTH_TOLERANCE
    aspect_mismatch = aspect_delta > ASPECT_TOLERANCE
    if not (width_mismatch or aspect_mismatch):
        return ViewportWarning(detected=False)

    suggestion = _SUGGEST_PREFIX
    if is_remote_capture and not used_design_viewport:
        suggestion += _SUGGEST_DESIGN_VIEWPORT
    else:
        suggestion += _SUGGEST_SIZING_MODE
    if aspect_mismatch:
        suggestion += _SUGGEST_FIT_INSIDE

    return ViewportWarning(
        detected=True,
        width_ratio=round_half_up(width_ratio, 2),
        aspect_ratio_delta=round_half_up(aspect_delta, 2),
        suggestion=suggestion,
    )


def check_dimension_limits(
    dims: Dimensions,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_height: int = DEFAULT_MAX_HEIGHT,
) -> DimensionLimitCheck:
    if dims.width <= max_width and dims.height <= max_height:
        return DimensionLimitCheck(needs_capping=False)

    scale = min(max_width / dims.width, max_height / dims.height)
    capped = Dimensions(
        max(1, int(round_half_up(dims.width * scale))),
        max(1, int(round_half_up(dims.height * scale))),
    )
    suggestion = (
        f'Image dimensions ({dims.width}x{dims.height}) exceed safe limits. '
        f'Will be capped to {capped.width}x{capped.height} for comparison.'
    )
    return DimensionLimitCheck(needs_capping=True, suggestion=suggestion, capped_dimensions=capped)
