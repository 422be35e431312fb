"""Shared types for blockdiff: AveragedGrid, Metric, ComparisonReport."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field

import numpy as np

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class AveragedGrid:
    """Per-block mean colours of one raster, row-major (y outer, x inner)."""

    x_segments: int
    y_segments: int
    blocks: tuple[RGB, ...] = ()

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[RGB]:
        return iter(self.blocks)

    def __getitem__(self, index: int) -> RGB:
        return self.blocks[index]

    def cell(self, x: int, y: int) -> RGB:
        """Return the average for block column x, row y."""
        if not (0 <= x < self.x_segments and 0 <= y < self.y_segments):
            raise IndexError(f'cell ({x}, {y}) outside {self.x_segments}x{self.y_segments} grid')
        return self.blocks[y * self.x_segments + x]

    def as_array(self) -> np.ndarray:
        """Return the blocks as a (n, 3) uint8 array."""
        return np.array(self.blocks, dtype=np.uint8).reshape(-1, 3)


GridLike = AveragedGrid | Sequence[Sequence[int]]


class Metric:
    """A self-registering grid comparator.

    Usage in a metric module:

        metric = Metric(name='scalar', help='Sequential sum of squared differences')

        @metric.run
        def compare_scalar(grid_a, grid_b, strict=True):
            ...
    """

    def __init__(self, name: str, help: str = ''):
        self.name = name
        self.help = help
        self._run_fn: Callable[..., float] | None = None

    def run(self, fn: Callable[..., float]) -> Callable[..., float]:
        """Decorator to register the compare function."""
        self._run_fn = fn
        return fn

    def execute(self, grid_a: GridLike, grid_b: GridLike, strict: bool = True) -> float:
        """Execute the metric's compare function."""
        if self._run_fn is None:
            raise RuntimeError(f'Metric {self.name} has no run function')
        return self._run_fn(grid_a, grid_b, strict=strict)


@dataclass
class ComparisonReport:
    """Accumulates comparison results for text/JSON output."""

    source_a: str = ''
    source_b: str = ''
    size_a: tuple[int, int] = (0, 0)
    size_b: tuple[int, int] = (0, 0)
    x_segments: int = 0
    y_segments: int = 0
    strict: bool = True
    scores: dict[str, float] = field(default_factory=dict)
    threshold: float | None = None
    consistent: bool | None = None

    def add(self, metric_name: str, score: float) -> None:
        """Record the score a metric produced."""
        self.scores[metric_name] = score

    @property
    def passed(self) -> bool:
        """True unless a metric disagreed or a score exceeded the threshold."""
        if self.consistent is False:
            return False
        if self.threshold is None:
            return True
        return all(score <= self.threshold for score in self.scores.values())
