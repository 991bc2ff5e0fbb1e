"""Shared types for the comparison core: grids, geometry, regions, results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from PIL import Image

# Sizing modes
MATCH_WIDTH_CROP = 'match-width-crop'
MATCH_WIDTH_LETTERBOX = 'match-width-letterbox'
FIT_INSIDE = 'fit-inside'
MANUAL_CROP = 'manual-crop'
SIZING_MODES = (MATCH_WIDTH_CROP, MATCH_WIDTH_LETTERBOX, FIT_INSIDE, MANUAL_CROP)

# Mismatch categories
COLOR = 'color'
TYPOGRAPHY = 'typography'
SPACING = 'spacing'
COMPONENT_STATE = 'component-state'
CATEGORIES = (COLOR, TYPOGRAPHY, SPACING, COMPONENT_STATE)

# Priorities, most urgent first
HIGH = 'high'
MEDIUM = 'medium'
LOW = 'low'
PRIORITIES = (HIGH, MEDIUM, LOW)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values (0.5 -> 1, 2.5 -> 3)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f'Dimensions must be positive, got {self.width}x{self.height}')

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def pixels(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, int]:
        return {'width': self.width, 'height': self.height}

    def __str__(self) -> str:
        return f'{self.width}x{self.height}'


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in pixel coordinates (x, y is the top-left corner)."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError(f'Bounding box origin must be non-negative, got ({self.x}, {self.y})')
        if self.width < 1 or self.height < 1:
            raise ValueError(f'Bounding box must be at least 1x1, got {self.width}x{self.height}')

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def as_box(self) -> tuple[int, int, int, int]:
        """Return PIL-style (left, top, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def fits_within(self, dims: Dimensions) -> bool:
        return self.x + self.width <= dims.width and self.y + self.height <= dims.height

    def to_dict(self) -> dict[str, int]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


@dataclass(frozen=True, eq=False)
class PixelGrid:
    """Read-only RGBA pixel buffer of shape (height, width, 4), dtype uint8."""

    data: np.ndarray

    def __post_init__(self) -> None:
        arr = np.ascontiguousarray(self.data, dtype=np.uint8)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f'PixelGrid needs an (h, w, 4) array, got shape {arr.shape}')
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError('PixelGrid cannot be empty')
        # Freeze a view so the caller's own array stays writable
        arr = arr.view()
        arr.flags.writeable = False
        object.__setattr__(self, 'data', arr)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height)

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @classmethod
    def from_image(cls, image: Image.Image) -> PixelGrid:
        return cls(np.asarray(image.convert('RGBA')))

    @classmethod
    def from_raw(cls, raw: bytes, width: int, height: int) -> PixelGrid:
        """Wrap a packed RGBA byte buffer (4 bytes per pixel, row-major)."""
        expected = width * height * 4
        if len(raw) != expected:
            raise ValueError(f'Raw buffer has {len(raw)} bytes, expected {expected} for {width}x{height} RGBA')
        return cls(np.frombuffer(raw, dtype=np.uint8).reshape(height, width, 4))

    @classmethod
    def solid(cls, width: int, height: int, rgba: tuple[int, int, int, int] = (0, 0, 0, 255)) -> PixelGrid:
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:, :] = rgba
        return cls(arr)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self.data))

    def tobytes(self) -> bytes:
        return self.data.tobytes()


@dataclass(frozen=True)
class Region:
    """A 4-connected set of mismatching pixels from the diff mask."""

    bbox: BoundingBox
    pixel_count: int
    avg_intensity: float

    @property
    def score(self) -> float:
        """Ranking score: bounding-box area weighted by mean intensity."""
        return self.bbox.width * self.bbox.height * (self.avg_intensity / 255)

    def to_dict(self) -> dict[str, Any]:
        return {
            'bbox': self.bbox.to_dict(),
            'pixelCount': self.pixel_count,
            'avgIntensity': self.avg_intensity,
        }


@dataclass(frozen=True)
class RegionStats:
    """Geometry and intensity of a region, as consumed by the categorizer."""

    bbox: BoundingBox
    pixel_count: int
    avg_intensity: float
    aspect_ratio: float
    area: int

    @classmethod
    def from_region(cls, region: Region) -> RegionStats:
        return cls(
            bbox=region.bbox,
            pixel_count=region.pixel_count,
            avg_intensity=region.avg_intensity,
            aspect_ratio=region.bbox.aspect_ratio,
            area=region.bbox.area,
        )


@dataclass(frozen=True)
class Mismatch:
    id: str
    title: str
    category: str
    priority: str
    bbox: BoundingBox
    explanation: str
    suggested_fix: str

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'priority': self.priority,
            'explanation': self.explanation,
            'suggestedFix': self.suggested_fix,
            'bbox': self.bbox.to_dict(),
        }


@dataclass(frozen=True)
class ViewportWarning:
    detected: bool
    width_ratio: float | None = None
    aspect_ratio_delta: float | None = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        obj: dict[str, Any] = {'detected': self.detected}
        if self.width_ratio is not None:
            obj['widthRatio'] = self.width_ratio
        if self.aspect_ratio_delta is not None:
            obj['aspectRatioDelta'] = self.aspect_ratio_delta
        if self.suggestion is not None:
            obj['suggestion'] = self.suggestion
        return obj


@dataclass(frozen=True)
class DimensionLimitCheck:
    needs_capping: bool
    suggestion: str | None = None
    capped_dimensions: Dimensions | None = None


@dataclass(frozen=True)
class NormalizationResult:
    grid: PixelGrid
    original_dimensions: Dimensions
    target_dimensions: Dimensions
    mode: str


@dataclass(frozen=True)
class DiffResult:
    diff_mask: PixelGrid
    diff_pixel_count: int  # hard mismatches only
    aa_pixel_count: int  # anti-aliasing differences, excluded from the score
    total_pixels: int
    similarity: float  # 0-100, two decimals

    def to_dict(self) -> dict[str, Any]:
        return {
            'diffPixelCount': self.diff_pixel_count,
            'totalPixels': self.total_pixels,
            'similarity': self.similarity,
        }


@dataclass(frozen=True)
class ComparisonMetadata:
    compared_at: str
    target_dimensions: Dimensions
    sizing_mode: str
    design_dimensions: Dimensions | None = None
    implementation_dimensions: Dimensions | None = None
    screen_name: str | None = None
    platform: str | None = None

    def to_dict(self) -> dict[str, Any]:
        obj: dict[str, Any] = {}
        if self.screen_name is not None:
            obj['screenName'] = self.screen_name
        if self.platform is not None:
            obj['platform'] = self.platform
        obj['comparedAt'] = self.compared_at
        if self.design_dimensions is not None:
            obj['designDimensions'] = self.design_dimensions.to_dict()
        if self.implementation_dimensions is not None:
            obj['implementationDimensions'] = self.implementation_dimensions.to_dict()
        obj['normalizationApplied'] = {
            'sizingMode': self.sizing_mode,
            'targetDimensions': self.target_dimensions.to_dict(),
        }
        return obj


@dataclass(frozen=True)
class ComparisonResult:
    """Everything one comparison produces. Mismatches are in report order."""

    diff_image: PixelGrid
    similarity: float
    diff_pixel_count: int
    mismatches: tuple[Mismatch, ...]
    metadata: ComparisonMetadata
    viewport_warning: ViewportWarning | None = None
    regions: tuple[Region, ...] = field(default_factory=tuple)
    diff_png: bytes = b''  # diff_image encoded as PNG

    def to_dict(self) -> dict[str, Any]:
        obj: dict[str, Any] = {
            'similarity': self.similarity,
            'diffPixelCount': self.diff_pixel_count,
            'mismatches': [m.to_dict() for m in self.mismatches],
            'metadata': self.metadata.to_dict(),
        }
        if self.viewport_warning is not None:
            obj['viewportWarning'] = self.viewport_warning.to_dict()
        return obj
