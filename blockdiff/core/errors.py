"""Errors raised by blockdiff. Every error derives from BlockDiffError."""


class BlockDiffError(Exception):
    """Base class for all blockdiff errors."""


class InvalidGridDimensions(BlockDiffError, ValueError):
    """Segment count is zero, not an int, or would leave a block with no pixels."""


class LaneAlignmentError(BlockDiffError, ValueError):
    """Flattened channel data does not fill whole lanes of the vectorized comparator."""


class GridMismatchError(BlockDiffError, ValueError):
    """Grids differ in length under strict comparison, or there is nothing to compare."""


class ImageSourceError(BlockDiffError):
    """An image could not be fetched, opened or decoded."""


class InvalidRaster(BlockDiffError, ValueError):
    """Raster has an unsupported shape, or values that are not 8-bit channels."""
