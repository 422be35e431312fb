"""blockdiff — compare two images by block-averaged colour grids."""

from blockdiff.core.blocks import aspect_ratio, average_blocks, block_spans, smaller_of
from blockdiff.core.errors import (
    BlockDiffError,
    GridMismatchError,
    ImageSourceError,
    InvalidGridDimensions,
    InvalidRaster,
    LaneAlignmentError,
)
from blockdiff.core.types import AveragedGrid
from blockdiff.metrics.scalar import compare_scalar
from blockdiff.metrics.vectorized import LANE_WIDTH, compare_vectorized

__all__ = [
    'LANE_WIDTH',
    'AveragedGrid',
    'BlockDiffError',
    'GridMismatchError',
    'ImageSourceError',
    'InvalidGridDimensions',
    'InvalidRaster',
    'LaneAlignmentError',
    'aspect_ratio',
    'average_blocks',
    'block_spans',
    'compare_scalar',
    'compare_vectorized',
    'smaller_of',
]
