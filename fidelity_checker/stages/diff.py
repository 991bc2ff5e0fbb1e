"""Perceptual pixel diff between two equally-sized RGBA grids.

Per pixel, both colours are blended over white and converted to YIQ. The
squared distance 0.5053·ΔY² + 0.299·ΔI² + 0.1957·ΔQ² is compared against
35215·threshold² (35215 is the largest possible distance), so the default
threshold of 0.1 tolerates small colour drift and nothing else.

Pixels over the threshold are then checked for anti-aliasing: a pixel whose
3×3 neighbourhood contains both a darker and a brighter neighbour, where one
of those extremes sits in a flat area (more than two identical siblings) in
both images, is an edge-smoothing artefact rather than a content change.

Mask colours:
  (255,   0,   0, 255)  hard mismatch — counted in diff_pixel_count
  (255, 100, 100, 255)  anti-aliasing difference — not counted
  (  0,   0,   0,   0)  match

The scan runs in row bands; an optional Deadline is checked between bands.

Example:
    result = diff(design_grid, impl_grid)
    result.similarity  # 97.42
"""

import logging

import numpy as np

from fidelity_checker.core.deadline import Deadline, check
from fidelity_checker.core.errors import DimensionMismatch
from fidelity_checker.core.types import DiffResult, PixelGrid, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.1
MAX_YIQ_DELTA = 35215
DIFF_COLOUR = (255, 0, 0, 255)
AA_COLOUR = (255, 100, 100, 255)
DEFAULT_ALPHA = 0.1  # fade of unchanged pixels in the rendered diff image
ROW_BAND = 256
AA_CHUNK = 1 << 18

# 3×3 neighbourhood, x outer and y inner; tie-breaking depends on this order
_NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


def _blend_over_white(rgba: np.ndarray) -> np.ndarray:
    rgba = rgba.astype(np.float64)
    alpha = rgba[..., 3:4] / 255.0
    return 255.0 + (rgba[..., :3] - 255.0) * alpha


def _luma(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.29889531 + rgb[..., 1] * 0.58662247 + rgb[..., 2] * 0.11448223


def _in_phase(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.59597799 - rgb[..., 1] * 0.27417610 - rgb[..., 2] * 0.32180189


def _quadrature(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.21147017 - rgb[..., 1] * 0.52261711 + rgb[..., 2] * 0.31114694


def _neighbour(xs: np.ndarray, ys: np.ndarray, dx: int, dy: int, width: int, height: int):
    """Offset coordinates, clipped into the grid, plus a validity mask."""
    nx = xs + dx
    ny = ys + dy
    valid = (nx >= 0) & (nx < width) & (ny >= 0) & (ny < height)
    return np.clip(nx, 0, width - 1), np.clip(ny, 0, height - 1), valid


def _on_edge(xs: np.ndarray, ys: np.ndarray, width: int, height: int) -> np.ndarray:
    return (xs == 0) | (xs == width - 1) | (ys == 0) | (ys == height - 1)


def _has_many_siblings(rgba: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """True where more than two neighbours are exactly the same RGBA value."""
    height, width = rgba.shape[:2]
    count = _on_edge(xs, ys, width, height).astype(np.int32)
    centre = rgba[ys, xs]
    for dx, dy in _NEIGHBOURS:
        nx, ny, valid = _neighbour(xs, ys, dx, dy, width, height)
        count += valid & np.all(rgba[ny, nx] == centre, axis=-1)
    return count > 2


def _antialiased(
    luma: np.ndarray,
    rgba: np.ndarray,
    other_rgba: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
) -> np.ndarray:
    height, width = luma.shape
    n = len(xs)
    zeroes = _on_edge(xs, ys, width, height).astype(np.int32)
    darkest = np.zeros(n)
    brightest = np.zeros(n)
    min_x, min_y = xs.copy(), ys.copy()
    max_x, max_y = xs.copy(), ys.copy()
    centre = luma[ys, xs]

    for dx, dy in _NEIGHBOURS:
        nx, ny, valid = _neighbour(xs, ys, dx, dy, width, height)
        delta = centre - luma[ny, nx]
        flat = valid & (delta == 0)
        zeroes += flat
        lower = valid & ~flat & (delta < darkest)
        higher = valid & ~flat & ~lower & (delta > brightest)
        darkest = np.where(lower, delta, darkest)
        min_x = np.where(lower, nx, min_x)
        min_y = np.where(lower, ny, min_y)
        brightest = np.where(higher, delta, brightest)
        max_x = np.where(higher, nx, max_x)
        max_y = np.where(higher, ny, max_y)

    # Edge pixels need both a darker and a brighter neighbour, and few flat ones
    candidate = (zeroes <= 2) & (darkest != 0) & (brightest != 0)
    if not candidate.any():
        return candidate
    from_darkest = _has_many_siblings(rgba, min_x, min_y) & _has_many_siblings(other_rgba, min_x, min_y)
    from_brightest = _has_many_siblings(rgba, max_x, max_y) & _has_many_siblings(other_rgba, max_x, max_y)
    return candidate & (from_darkest | from_brightest)


def diff(
    grid_a: PixelGrid,
    grid_b: PixelGrid,
    threshold: float = DEFAULT_THRESHOLD,
    deadline: Deadline | None = None,
) -> DiffResult:
    """Compare two grids of identical size. Raises DimensionMismatch otherwise."""
    if grid_a.dimensions != grid_b.dimensions:
        raise DimensionMismatch(
            f'Cannot diff {grid_a.dimensions} against {grid_b.dimensions}: images must share dimensions'
        )

    a, b = grid_a.data, grid_b.data
    height, width = a.shape[:2]
    total = width * height
    mask = np.zeros((height, width, 4), dtype=np.uint8)

    if np.array_equal(a, b):
        return DiffResult(
            diff_mask=PixelGrid(mask), diff_pixel_count=0, aa_pixel_count=0, total_pixels=total, similarity=100.0
        )

    max_delta = MAX_YIQ_DELTA * threshold * threshold
    luma_a = np.empty((height, width))
    luma_b = np.empty((height, width))
    over = np.zeros((height, width), dtype=bool)

    for top in range(0, height, ROW_BAND):
        check(deadline, 'pixel diff')
        rows = slice(top, top + ROW_BAND)
        rgb_a = _blend_over_white(a[rows])
        rgb_b = _blend_over_white(b[rows])
        luma_a[rows] = _luma(rgb_a)
        luma_b[rows] = _luma(rgb_b)
        dy = luma_a[rows] - luma_b[rows]
        di = _in_phase(rgb_a) - _in_phase(rgb_b)
        dq = _quadrature(rgb_a) - _quadrature(rgb_b)
        over[rows] = 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq > max_delta

    ys, xs = np.nonzero(over)
    aa = np.zeros(len(xs), dtype=bool)
    for start in range(0, len(xs), AA_CHUNK):
        check(deadline, 'anti-aliasing check')
        part = slice(start, start + AA_CHUNK)
        px, py = xs[part], ys[part]
        aa[part] = _antialiased(luma_a, a, b, px, py) | _antialiased(luma_b, b, a, px, py)

    mask[ys[~aa], xs[~aa]] = DIFF_COLOUR
    mask[ys[aa], xs[aa]] = AA_COLOUR

    diff_count = int(len(xs) - np.count_nonzero(aa))
    similarity = round_half_up((1 - diff_count / total) * 100, 2)
    logger.info(
        'diff %dx%d: %d pixels differ, %d anti-aliased (similarity %.2f%%)',
        width,
        height,
        diff_count,
        int(np.count_nonzero(aa)),
        similarity,
    )
    return DiffResult(
        diff_mask=PixelGrid(mask),
        diff_pixel_count=diff_count,
        aa_pixel_count=int(np.count_nonzero(aa)),
        total_pixels=total,
        similarity=similarity,
    )


def render_diff_image(base: PixelGrid, mask: PixelGrid, alpha: float = DEFAULT_ALPHA) -> PixelGrid:
    """Draw the mask over a faded grayscale copy of `base` for display."""
    if base.dimensions != mask.dimensions:
        raise DimensionMismatch(f'Cannot overlay a {mask.dimensions} mask on a {base.dimensions} image')

    raw = base.data.astype(np.float64)
    grey = 255.0 + (_luma(raw[..., :3]) - 255.0) * alpha * raw[..., 3] / 255.0
    out = np.empty(base.data.shape, dtype=np.uint8)
    out[..., :3] = np.clip(np.rint(grey), 0, 255).astype(np.uint8)[..., None]
    out[..., 3] = 255
    marked = mask.data[..., 3] > 0
    out[marked] = mask.data[marked]
    return PixelGrid(out)
