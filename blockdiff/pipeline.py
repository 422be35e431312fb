"""End-to-end comparison: two rasters in, per-metric divergence scores out."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from PIL import Image

from blockdiff import registry
from blockdiff.core.blocks import average_blocks, raster_size, smaller_of, to_rgb_array
from blockdiff.core.types import AveragedGrid, ComparisonReport

logger = logging.getLogger(__name__)

REL_TOL = 1e-9


def _resize(raster, size: tuple[int, int]) -> Image.Image:
    if not isinstance(raster, Image.Image):
        raster = Image.fromarray(to_rgb_array(raster))
    if raster.size == size:
        return raster
    return raster.convert('RGB').resize(size, Image.Resampling.LANCZOS)


def common_resolution(raster_a, raster_b) -> tuple:
    """Resize the larger raster to the dimensions of the smaller one."""
    selector, width, height = smaller_of(raster_a, raster_b)
    logger.debug('common resolution %dx%d (raster %s is smaller)', width, height, 'ab'[selector])
    if selector == 0:
        return raster_a, _resize(raster_b, (width, height))
    return _resize(raster_a, (width, height)), raster_b


def average_pair(
    raster_a,
    raster_b,
    x_segments: int,
    y_segments: int,
    common_size: bool = False,
) -> tuple[AveragedGrid, AveragedGrid]:
    if common_size:
        raster_a, raster_b = common_resolution(raster_a, raster_b)
    return average_blocks(raster_a, x_segments, y_segments), average_blocks(raster_b, x_segments, y_segments)


def compare_grids(
    grid_a: AveragedGrid,
    grid_b: AveragedGrid,
    metrics: Iterable[str] = ('scalar',),
    strict: bool = True,
) -> dict[str, float]:
    """Run each named metric over the two grids."""
    scores: dict[str, float] = {}
    for name in metrics:
        scores[name] = registry.get(name).execute(grid_a, grid_b, strict=strict)
        logger.debug('%s score %r', name, scores[name])
    return scores


def compare_images(
    raster_a,
    raster_b,
    x_segments: int,
    y_segments: int,
    metrics: Iterable[str] = ('scalar',),
    strict: bool = True,
    common_size: bool = False,
) -> dict[str, float]:
    grid_a, grid_b = average_pair(raster_a, raster_b, x_segments, y_segments, common_size=common_size)
    return compare_grids(grid_a, grid_b, metrics=metrics, strict=strict)


def scores_consistent(scores: dict[str, float], rel_tol: float = REL_TOL) -> bool:
    """True when every score agrees with every other within rel_tol."""
    values = list(scores.values())
    if not values:
        return True
    return all(math.isclose(values[0], v, rel_tol=rel_tol, abs_tol=0.0) for v in values[1:])


def build_report(
    raster_a,
    raster_b,
    x_segments: int,
    y_segments: int,
    metrics: Iterable[str] = ('scalar',),
    strict: bool = True,
    common_size: bool = False,
    source_a: str = '',
    source_b: str = '',
    threshold: float | None = None,
) -> ComparisonReport:
    """Compare two rasters and collect everything into a ComparisonReport."""
    metrics = list(metrics)
    report = ComparisonReport(
        source_a=source_a,
        source_b=source_b,
        size_a=raster_size(raster_a),
        size_b=raster_size(raster_b),
        x_segments=x_segments,
        y_segments=y_segments,
        strict=strict,
        threshold=threshold,
    )
    scores = compare_images(
        raster_a,
        raster_b,
        x_segments,
        y_segments,
        metrics=metrics,
        strict=strict,
        common_size=common_size,
    )
    for name, score in scores.items():
        report.add(name, score)
    if len(scores) > 1:
        report.consistent = scores_consistent(scores)
        if not report.consistent:
            logger.warning('metrics disagree: %s', scores)
    return report
