"""End-to-end comparison: design vs implementation → ComparisonResult.

Stages run strictly in order:
  1. reject sources above the pixel limit
  2. cap the design size, use it as the comparison canvas
  3. viewport mismatch check (advisory)
  4. normalize both images onto the canvas with the same sizing mode. In
     manual-crop mode the crop rectangle is cut from the implementation only;
     the design sets the canvas, so it is stretched whole onto it
  5. pixel diff + displayable diff image, also encoded as PNG
  6. region extraction (skipped when the images are nearly identical)
  7. categorization and prioritization

One Deadline covers the whole run. If it expires, ComparisonTimeout is raised
and nothing computed so far is returned.
"""

import logging
from datetime import UTC, datetime

from fidelity_checker.core import codec
from fidelity_checker.core.deadline import Deadline
from fidelity_checker.core.env import Settings
from fidelity_checker.core.errors import ImageTooLarge
from fidelity_checker.core.types import (
    MANUAL_CROP,
    MATCH_WIDTH_CROP,
    BoundingBox,
    ComparisonMetadata,
    ComparisonResult,
    Dimensions,
    PixelGrid,
)
from fidelity_checker.stages.categorize import build_mismatches
from fidelity_checker.stages.diff import diff, render_diff_image
from fidelity_checker.stages.normalize import normalize
from fidelity_checker.stages.regions import extract_regions
from fidelity_checker.stages.viewport import check_dimension_limits, detect_viewport_mismatch

logger = logging.getLogger(__name__)

NEAR_IDENTICAL_SIMILARITY = 99.5


def _check_source_size(name: str, dims: Dimensions, settings: Settings) -> None:
    if dims.pixels > settings.max_source_pixels:
        raise ImageTooLarge(
            f'{name} image is {dims} ({dims.pixels} pixels), above the limit of {settings.max_source_pixels} pixels'
        )


def compare_grids(
    design: PixelGrid,
    implementation: PixelGrid,
    sizing_mode: str = MATCH_WIDTH_CROP,
    crop_rect: BoundingBox | None = None,
    *,
    screen_name: str | None = None,
    platform: str | None = None,
    is_remote_capture: bool = False,
    used_design_viewport: bool = False,
    settings: Settings | None = None,
) -> ComparisonResult:
    settings = settings or Settings()
    deadline = Deadline(settings.timeout_seconds)
    design_dims = design.dimensions
    impl_dims = implementation.dimensions
    logger.info('comparing design %s with implementation %s (mode: %s)', design_dims, impl_dims, sizing_mode)

    _check_source_size('Design', design_dims, settings)
    _check_source_size('Implementation', impl_dims, settings)

    limits = check_dimension_limits(design_dims, settings.max_width, settings.max_height)
    if limits.needs_capping:
        logger.warning(limits.suggestion)
        target = limits.capped_dimensions
    else:
        target = design_dims

    warning = detect_viewport_mismatch(target, impl_dims, is_remote_capture, used_design_viewport)
    if warning.detected:
        logger.warning(
            'viewport mismatch: width ratio %s, aspect delta %s',
            warning.width_ratio,
            warning.aspect_ratio_delta,
        )

    deadline.check('normalization')
    design_crop = BoundingBox(0, 0, design_dims.width, design_dims.height) if sizing_mode == MANUAL_CROP else None
    design_norm = normalize(design, target, sizing_mode, design_crop)
    deadline.check('normalization')
    impl_norm = normalize(implementation, target, sizing_mode, crop_rect)

    result = diff(design_norm.grid, impl_norm.grid, threshold=settings.threshold, deadline=deadline)
    diff_image = render_diff_image(design_norm.grid, result.diff_mask)

    if result.similarity > NEAR_IDENTICAL_SIMILARITY:
        logger.info('images are nearly identical (%.2f%%), skipping region extraction', result.similarity)
        regions = []
    else:
        regions = extract_regions(result.diff_mask, settings.max_regions, deadline=deadline)
    mismatches = build_mismatches(regions)
    deadline.check('categorization')

    logger.info('comparison complete: %d mismatches, similarity %.2f%%', len(mismatches), result.similarity)
    return ComparisonResult(
        diff_image=diff_image,
        similarity=result.similarity,
        diff_pixel_count=result.diff_pixel_count,
        mismatches=tuple(mismatches),
        metadata=ComparisonMetadata(
            compared_at=datetime.now(UTC).isoformat(),
            target_dimensions=target,
            sizing_mode=sizing_mode,
            design_dimensions=design_dims,
            implementation_dimensions=impl_dims,
            screen_name=screen_name,
            platform=platform,
        ),
        viewport_warning=warning if warning.detected else None,
        regions=tuple(regions),
        diff_png=codec.encode_png(diff_image),
    )


def compare_bytes(design: bytes | str, implementation: bytes | str, **kwargs) -> ComparisonResult:
    """Decode both images with the codec, then run compare_grids().

    Either image may be raw file bytes or a base64 data URL
    (`data:image/png;base64,...`) as sent by a browser upload.
    """
    design_bytes = codec.data_url_to_bytes(design) if isinstance(design, str) else design
    implementation_bytes = (
        codec.data_url_to_bytes(implementation) if isinstance(implementation, str) else implementation
    )
    settings = kwargs.get('settings') or Settings()
    # Check header sizes before paying for a full decode
    _check_source_size('Design', codec.dimensions_of(design_bytes), settings)
    _check_source_size('Implementation', codec.dimensions_of(implementation_bytes), settings)
    return compare_grids(codec.decode(design_bytes), codec.decode(implementation_bytes), **kwargs)
