"""Error taxonomy for the comparison core.

Every error here is deterministic: nothing is retried internally, and a
failing operation never hands back a partial result.
"""

__all__ = [
    'ComparisonTimeout',
    'DecodeError',
    'DimensionExtractionFailed',
    'DimensionMismatch',
    'FidelityError',
    'ImageTooLarge',
    'InvalidCropRectangle',
    'MissingCropRectangle',
    'UnsupportedSizingMode',
]


class FidelityError(Exception):
    """Base class for all comparison-core failures."""


class DecodeError(FidelityError):
    """Raised when the image codec cannot read the supplied bytes."""


class DimensionExtractionFailed(DecodeError):
    """Raised when the codec returns no usable width/height."""


class UnsupportedSizingMode(FidelityError):
    """Raised for a sizing mode string outside the supported set."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f'Unknown sizing mode: {mode}')


class MissingCropRectangle(FidelityError):
    """Raised when manual-crop is requested without a crop rectangle."""

    def __init__(self) -> None:
        super().__init__('Manual crop mode requires a crop rectangle')


class InvalidCropRectangle(FidelityError):
    """Raised when the crop rectangle does not lie within the source image."""


class DimensionMismatch(FidelityError):
    """Raised when two grids handed to the diff engine differ in size."""


class ImageTooLarge(FidelityError):
    """Raised when an image exceeds the memory bounds of a comparison."""


class ComparisonTimeout(FidelityError):
    """Raised when a comparison runs past its wall-clock deadline."""
