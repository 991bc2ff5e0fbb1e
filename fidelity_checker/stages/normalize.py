"""Canvas normalization: put a source image onto a fixed comparison canvas.

Four sizing modes, all expressed as one transform made of a scale policy and
an underflow (padding) policy applied to each axis:

  match-width-crop       scale to target width; taller → center crop,
                         shorter → pad at the bottom only
  match-width-letterbox  scale to target width; taller → center crop,
                         shorter → pad split top floor(p/2), bottom ceil(p/2)
  fit-inside             scale by min(tw/sw, th/sh) so the whole image fits,
                         center it with floor/ceil padding on both axes
  manual-crop            cut the caller's crop rectangle out of the source,
                         then stretch it to exactly the target size

Scaling always uses Lanczos resampling. Padding is opaque black.

Example:
    result = normalize(grid, Dimensions(800, 600), 'fit-inside')
    result.grid.dimensions  # Dimensions(width=800, height=600)
"""

import logging
from dataclasses import dataclass

from PIL import Image

from fidelity_checker.core.errors import InvalidCropRectangle, MissingCropRectangle, UnsupportedSizingMode
from fidelity_checker.core.types import (
    FIT_INSIDE,
    MANUAL_CROP,
    MATCH_WIDTH_CROP,
    MATCH_WIDTH_LETTERBOX,
    BoundingBox,
    Dimensions,
    NormalizationResult,
    PixelGrid,
    round_half_up,
)

logger = logging.getLogger(__name__)

PAD_COLOUR = (0, 0, 0, 255)

# Scale policies
SCALE_TO_WIDTH = 'width'
SCALE_TO_CONTAIN = 'contain'
SCALE_TO_FILL = 'fill'

# Underflow policies: where padding goes when the scaled image is short of the target
PAD_END = 'end'
PAD_SPLIT = 'split'


@dataclass(frozen=True)
class _Policy:
    scale: str
    underflow: str


_POLICIES = {
    MATCH_WIDTH_CROP: _Policy(SCALE_TO_WIDTH, PAD_END),
    MATCH_WIDTH_LETTERBOX: _Policy(SCALE_TO_WIDTH, PAD_SPLIT),
    FIT_INSIDE: _Policy(SCALE_TO_CONTAIN, PAD_SPLIT),
    MANUAL_CROP: _Policy(SCALE_TO_FILL, PAD_SPLIT),
}


def _scaled_size(source: Dimensions, target: Dimensions, scale: str) -> tuple[int, int]:
    if scale == SCALE_TO_WIDTH:
        factor = target.width / source.width
        return target.width, max(1, int(round_half_up(source.height * factor)))
    if scale == SCALE_TO_CONTAIN:
        factor = min(target.width / source.width, target.height / source.height)
        width = min(target.width, max(1, int(round_half_up(source.width * factor))))
        height = min(target.height, max(1, int(round_half_up(source.height * factor))))
        return width, height
    return target.width, target.height


def _place_axis(size: int, target: int, underflow: str) -> tuple[int, int]:
    """Return (crop_offset, pad_before) for one axis."""
    if size > target:
        return (size - target) // 2, 0
    if size < target:
        padding = target - size
        return 0, 0 if underflow == PAD_END else padding // 2
    return 0, 0


def normalize(
    grid: PixelGrid,
    target: Dimensions,
    mode: str,
    crop_rect: BoundingBox | None = None,
) -> NormalizationResult:
    """Rescale/crop/pad `grid` onto a canvas of exactly `target` size."""
    policy = _POLICIES.get(mode)
    if policy is None:
        raise UnsupportedSizingMode(mode)

    original = grid.dimensions
    image = grid.to_image()

    if mode == MANUAL_CROP:
        if crop_rect is None:
            raise MissingCropRectangle()
        if not crop_rect.fits_within(original):
            raise InvalidCropRectangle(
                f'Manual crop rectangle {crop_rect.to_dict()} lies outside the {original} source image'
            )
        image = image.crop(crop_rect.as_box())

    source = Dimensions(*image.size)
    width, height = _scaled_size(source, target, policy.scale)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    crop_x, pad_x = _place_axis(width, target.width, policy.underflow)
    crop_y, pad_y = _place_axis(height, target.height, policy.underflow)
    visible = image.crop(
        (crop_x, crop_y, crop_x + min(width, target.width), crop_y + min(height, target.height))
    )

    if visible.size == (target.width, target.height):
        canvas = visible
    else:
        canvas = Image.new('RGBA', (target.width, target.height), PAD_COLOUR)
        canvas.paste(visible, (pad_x, pad_y))

    logger.debug(
        'normalized %s -> %s (mode: %s, scaled %dx%d, offset %d,%d)',
        original,
        target,
        mode,
        width,
        height,
        pad_x - crop_x,
        pad_y - crop_y,
    )
    return NormalizationResult(
        grid=PixelGrid.from_image(canvas),
        original_dimensions=original,
        target_dimensions=target,
        mode=mode,
    )
