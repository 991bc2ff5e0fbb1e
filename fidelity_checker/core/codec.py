"""Pillow-backed image codec: bytes in, PixelGrid out, and back.

Everything format-specific stays in this module. The stages only ever see
RGBA PixelGrids.
"""

import base64
import io
import logging
import re

from PIL import Image, UnidentifiedImageError

from fidelity_checker.core.errors import DecodeError, DimensionExtractionFailed, ImageTooLarge
from fidelity_checker.core.types import Dimensions, PixelGrid

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r'^data:image/[\w.+-]+;base64,')


def dimensions_of(data: bytes) -> Dimensions:
    """Read width/height from the image header without decoding pixels."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except Image.DecompressionBombError as exc:
        raise ImageTooLarge(str(exc)) from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DimensionExtractionFailed(f'Failed to extract dimensions: {exc}') from exc

    if not width or not height:
        raise DimensionExtractionFailed('Failed to extract dimensions: could not extract image dimensions')
    return Dimensions(width, height)


def decode(data: bytes) -> PixelGrid:
    """Decode compressed image bytes into an RGBA grid."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            grid = PixelGrid.from_image(img)
    except Image.DecompressionBombError as exc:
        raise ImageTooLarge(str(exc)) from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeError(f'Failed to decode image: {exc}') from exc
    logger.debug('decoded %dx%d image (%d bytes)', grid.width, grid.height, len(data))
    return grid


def encode_png(grid: PixelGrid) -> bytes:
    buf = io.BytesIO()
    grid.to_image().save(buf, format='PNG')
    return buf.getvalue()


def load_grid(path: str) -> PixelGrid:
    with open(path, 'rb') as f:
        return decode(f.read())


def save_grid(grid: PixelGrid, path: str) -> None:
    grid.to_image().save(path, format='PNG')


def data_url_to_bytes(data_url: str) -> bytes:
    """Strip an optional `data:image/...;base64,` prefix and decode."""
    payload = _DATA_URL_PREFIX.sub('', data_url.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as exc:
        raise DecodeError(f'Invalid base64 image payload: {exc}') from exc


def bytes_to_data_url(data: bytes, mime_type: str = 'image/png') -> str:
    return f'data:{mime_type};base64,{base64.b64encode(data).decode("ascii")}'
