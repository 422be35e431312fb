"""Sequential mean squared difference between two averaged grids.

Walks both grids block by block and channel by channel, treating the first
grid as "expected" and the second as "observed", and accumulates
(observed - expected)^2 into a single running float. The score is that sum
divided by the number of channel comparisons (3 per paired block).

The per-term division by "expected" of a true chi-square is not applied, so
the score is symmetric: compare(A, B) == compare(B, A). Identical grids
score 0.0. There is no upper bound beyond 255^2.

With strict comparison (the default) grids of different length raise
GridMismatchError. With --no-strict the grids are zipped and the tail of the
longer one is ignored.

This is the reference result the vectorized metric is checked against.

Example:
    blockdiff compare a.png b.png -m scalar
"""

from blockdiff.core.errors import GridMismatchError
from blockdiff.core.types import GridLike, Metric

metric = Metric(
    name='scalar',
    help='Sequential mean squared channel difference (reference).',
)


def paired_length(grid_a: GridLike, grid_b: GridLike, strict: bool) -> int:
    """Number of blocks that will be compared, enforcing the strictness rule."""
    len_a, len_b = len(grid_a), len(grid_b)
    if strict and len_a != len_b:
        raise GridMismatchError(f'grids differ in length: {len_a} vs {len_b} blocks')
    paired = min(len_a, len_b)
    if paired == 0:
        raise GridMismatchError('no blocks to compare')
    return paired


@metric.run
def compare_scalar(grid_a: GridLike, grid_b: GridLike, strict: bool = True) -> float:
    paired = paired_length(grid_a, grid_b, strict)

    total = 0.0
    for expected_block, observed_block in zip(grid_a, grid_b):
        for i in range(3):
            expected = float(expected_block[i])
            observed = float(observed_block[i])
            total += (observed - expected) ** 2

    return total / (paired * 3)
