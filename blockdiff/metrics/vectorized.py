"""Lane-parallel mean squared difference, numerically checked against scalar.

Flattens both grids to their channel bytes (R, G, B, R, G, B, ...) and
processes them four values at a time: each row of a (-1, 4) float64 array
is one step of width-4 lanes. Squared differences are reduced per lane
first and across lanes last, so the summation order differs from the
sequential scalar metric. Floating point addition is not associative, so
agreement with 'scalar' is a tested property (relative tolerance 1e-9),
not an identity.

The flattened length must be a multiple of LANE_WIDTH. A grid of n blocks
has 3n channel values, so n must be a multiple of 4 (e.g. 10x10, 4x3).
Other sizes raise LaneAlignmentError; nothing is padded.

Strictness and empty-grid rules are the same as for 'scalar'.

Example:
    blockdiff compare a.png b.png -m vectorized
    blockdiff compare a.png b.png -m all      # run both, check they agree
"""

import numpy as np

from blockdiff.core.errors import LaneAlignmentError
from blockdiff.core.types import AveragedGrid, GridLike, Metric
from blockdiff.metrics.scalar import paired_length

metric = Metric(
    name='vectorized',
    help='Width-4 lane mean squared channel difference (numpy).',
)

LANE_WIDTH = 4


def _channel_bytes(grid: GridLike, blocks: int) -> np.ndarray:
    """Flatten the first `blocks` entries of a grid to a 1-D uint8 array."""
    if isinstance(grid, AveragedGrid):
        arr = grid.as_array()
    else:
        arr = np.asarray(grid, dtype=np.uint8).reshape(-1, 3)
    return arr[:blocks].reshape(-1)


@metric.run
def compare_vectorized(grid_a: GridLike, grid_b: GridLike, strict: bool = True) -> float:
    paired = paired_length(grid_a, grid_b, strict)

    expected = _channel_bytes(grid_a, paired)
    observed = _channel_bytes(grid_b, paired)
    if expected.size % LANE_WIDTH:
        raise LaneAlignmentError(
            f'{expected.size} channel values do not fill lanes of width {LANE_WIDTH}; '
            f'block count must be a multiple of {LANE_WIDTH}'
        )

    expected_lanes = expected.astype(np.float64).reshape(-1, LANE_WIDTH)
    observed_lanes = observed.astype(np.float64).reshape(-1, LANE_WIDTH)

    lanes = np.square(observed_lanes - expected_lanes).sum(axis=0)

    return float(lanes.sum()) / expected.size
