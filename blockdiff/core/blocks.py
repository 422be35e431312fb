"""Block averaging: reduce a raster to a coarse grid of mean RGB colours.

The raster is split into x_segments columns and y_segments rows. Every column
is W // x_segments pixels wide except the last, which takes whatever is left
over so no pixel is dropped. Rows follow the same rule.

    W=101, x_segments=10  ->  widths 10,10,10,10,10,10,10,10,10,11

Sums are accumulated in uint64 and averaged with floor division, so each
channel of a block average is an int in [0, 255]. Alpha is discarded.
"""

import numpy as np
from PIL import Image

from blockdiff.core.errors import InvalidGridDimensions, InvalidRaster
from blockdiff.core.types import AveragedGrid


def to_rgb_array(raster) -> np.ndarray:
    """Return raster pixels as an (H, W, 3) uint8 array.

    Accepts a PIL image in any mode or a numpy array of shape (H, W),
    (H, W, 3) or (H, W, 4). Channels after the third are dropped. Arrays
    that are not uint8 must be integers within [0, 255]; anything else raises
    InvalidRaster.
    """
    if isinstance(raster, Image.Image):
        return np.asarray(raster.convert('RGB'), dtype=np.uint8)

    arr = np.asarray(raster)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    elif arr.ndim != 3 or arr.shape[2] < 3:
        raise InvalidRaster(f'raster must be (H, W), (H, W, 3) or (H, W, 4), got shape {arr.shape}')
    rgb = arr[:, :, :3]
    if rgb.dtype != np.uint8:
        if not np.issubdtype(rgb.dtype, np.integer):
            raise InvalidRaster(f'raster values must be 8-bit integers, got dtype {rgb.dtype}')
        if rgb.size and (rgb.min() < 0 or rgb.max() > 255):
            raise InvalidRaster(f'raster values must lie in [0, 255], got [{rgb.min()}, {rgb.max()}]')
        rgb = rgb.astype(np.uint8)
    return rgb


def raster_size(raster) -> tuple[int, int]:
    """Return (width, height) of a PIL image or numpy raster."""
    if isinstance(raster, Image.Image):
        return raster.size
    shape = np.shape(raster)
    return int(shape[1]), int(shape[0])


def block_spans(length: int, segments: int) -> list[tuple[int, int]]:
    """Return (start, size) of each segment along one axis of `length` pixels."""
    _check_segments(length, segments, 'segments')
    size = length // segments
    spans = [(i * size, size) for i in range(segments - 1)]
    spans.append(((segments - 1) * size, length - size * (segments - 1)))
    return spans


def _check_segments(length: int, segments: int, label: str) -> None:
    if isinstance(segments, bool) or not isinstance(segments, (int, np.integer)):
        raise InvalidGridDimensions(f'{label} must be an int, got {segments!r}')
    if length <= 0:
        raise InvalidGridDimensions(f'raster extent must be positive, got {length}')
    if segments < 1:
        raise InvalidGridDimensions(f'{label} must be >= 1, got {segments}')
    if segments > length:
        raise InvalidGridDimensions(f'{label}={segments} exceeds raster extent {length}: a block would have no pixels')


def average_blocks(raster, x_segments: int, y_segments: int) -> AveragedGrid:
    """Average each block of an x_segments by y_segments grid over the raster."""
    arr = to_rgb_array(raster)
    height, width = arr.shape[:2]
    _check_segments(width, x_segments, 'x_segments')
    _check_segments(height, y_segments, 'y_segments')

    columns = block_spans(width, x_segments)
    rows = block_spans(height, y_segments)

    blocks = []
    for y0, h in rows:
        for x0, w in columns:
            block = arr[y0 : y0 + h, x0 : x0 + w].reshape(-1, 3)
            sums = block.sum(axis=0, dtype=np.uint64)
            avg = sums // np.uint64(block.shape[0])
            blocks.append((int(avg[0]), int(avg[1]), int(avg[2])))

    return AveragedGrid(x_segments=int(x_segments), y_segments=int(y_segments), blocks=tuple(blocks))


def smaller_of(raster_a, raster_b) -> tuple[int, int, int]:
    """Return (selector, width, height) of the raster with the smaller pixel area.

    selector is 0 for raster_a and 1 for raster_b. Equal areas select raster_b.
    """
    width_a, height_a = raster_size(raster_a)
    width_b, height_b = raster_size(raster_b)
    if width_a * height_a < width_b * height_b:
        return 0, width_a, height_a
    return 1, width_b, height_b


def aspect_ratio(raster) -> int:
    """Integer width / height, used to tell whether two copies share a shape."""
    width, height = raster_size(raster)
    if height == 0:
        raise InvalidRaster('raster height must be positive')
    return width // height
