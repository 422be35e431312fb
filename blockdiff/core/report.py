"""Report builder — text and JSON output for blockdiff results."""

import json
from typing import Any

from blockdiff.core.types import AveragedGrid, ComparisonReport


def format_text(report: ComparisonReport) -> str:
    """Format report as human-readable text."""
    lines = []
    grid = f'{report.x_segments}×{report.y_segments}'
    mode = 'strict' if report.strict else 'lenient'
    lines.append(f'blockdiff: {grid} blocks ({mode})')
    lines.append(f'  a: {report.source_a} ({report.size_a[0]}×{report.size_a[1]})')
    lines.append(f'  b: {report.source_b} ({report.size_b[0]}×{report.size_b[1]})')
    lines.append('')

    for name, score in report.scores.items():
        line = f'── {name:<12} {score:.6f}'
        if report.threshold is not None:
            mark = '✓' if score <= report.threshold else '✗'
            line += f'  (limit {report.threshold:g}) {mark}'
        lines.append(line)

    if report.consistent is not None:
        lines.append('')
        lines.append('metrics agree' if report.consistent else 'metrics DISAGREE')

    lines.append('')
    lines.append('PASS' if report.passed else 'FAIL')
    return '\n'.join(lines)


def format_json(report: ComparisonReport) -> str:
    """Format report as JSON."""
    obj: dict[str, Any] = {
        'a': {'source': report.source_a, 'width': report.size_a[0], 'height': report.size_a[1]},
        'b': {'source': report.source_b, 'width': report.size_b[0], 'height': report.size_b[1]},
        'grid': {'x_segments': report.x_segments, 'y_segments': report.y_segments},
        'strict': report.strict,
        'scores': report.scores,
    }
    if report.threshold is not None:
        obj['threshold'] = report.threshold
    if report.consistent is not None:
        obj['consistent'] = report.consistent
    obj['pass'] = report.passed
    return json.dumps(obj, indent=2)


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return f'#{r:02x}{g:02x}{b:02x}'


def format_grid_text(grid: AveragedGrid, source: str = '') -> str:
    """One line per grid row, each block as a hex colour."""
    lines = []
    if source:
        lines.append(f'blockdiff: {source} ({grid.x_segments}×{grid.y_segments} blocks)')
    for y in range(grid.y_segments):
        row = [_rgb_to_hex(*grid.cell(x, y)) for x in range(grid.x_segments)]
        lines.append(' '.join(row))
    return '\n'.join(lines)


def format_grid_json(grid: AveragedGrid, source: str = '') -> str:
    obj = {
        'source': source,
        'x_segments': grid.x_segments,
        'y_segments': grid.y_segments,
        'blocks': [list(block) for block in grid],
    }
    return json.dumps(obj, indent=2)
