"""blockdiff — Compare two images by block-averaged colour grids.

Usage: uv run blockdiff compare <a> <b> [options]

Each image (URL or local path) is reduced to a grid of mean RGB blocks,
then the grids are compared by one or more metrics. Metrics are
auto-discovered from blockdiff/metrics/. Run `blockdiff help <metric>`
for full metric docs.

Environment variables / .env loading:
  OS environment variables are always used first.
  If a variable is not set, blockdiff looks for a .env file starting from
  the current directory and walking up, stopping at the nearest .git boundary.
  Use --env-file to override the .env location explicitly.
  BLOCKDIFF_X_SEGMENTS, BLOCKDIFF_Y_SEGMENTS, BLOCKDIFF_TIMEOUT,
  BLOCKDIFF_STRICT and BLOCKDIFF_LOG_LEVEL set the defaults for flags.
"""

import argparse
import asyncio
import importlib
import logging
import sys
from pathlib import Path

from blockdiff import registry
from blockdiff.core.blocks import average_blocks
from blockdiff.core.env import Settings, load_env
from blockdiff.core.errors import BlockDiffError
from blockdiff.core.report import format_grid_json, format_grid_text, format_json, format_text
from blockdiff.fetch import fetch_pair, load_image, save_image
from blockdiff.pipeline import build_report

logger = logging.getLogger('blockdiff')


def _load_metric_module(name: str) -> object:
    """Load the raw module for a metric (for docstring access)."""
    return importlib.import_module(f'blockdiff.metrics.{name}')


def _short_doc(name: str) -> str:
    doc = (_load_metric_module(name).__doc__ or '').strip()
    return doc.splitlines()[0] if doc else registry.get(name).help


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    metrics = registry.all_metrics()

    epilog = (
        'Examples:\n'
        '  blockdiff compare a.png b.png\n'
        '  blockdiff compare https://example.com/a.png https://example.com/b.jpg -x 8 -y 8\n'
        '  blockdiff compare a.png b.png -m all --json\n'
        '  blockdiff compare a.png b.png --fail-above 25\n'
        '  blockdiff compare small.png big.jpg --common-size --save-dir ./tmp\n'
        '  blockdiff blocks a.png -x 4 -y 4\n'
        '  blockdiff help vectorized\n'
        '\n'
        f'Metrics: {", ".join(sorted(metrics))}\n'
    )
    parser = argparse.ArgumentParser(
        prog='blockdiff',
        description='Compare two images by block-averaged colour grids.',
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        default=None,
        help='Path to .env file (default: walk up from cwd to .git boundary)',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', help='Command to run')

    grid_opts = argparse.ArgumentParser(add_help=False)
    grid_opts.add_argument('-x', '--x-segments', type=int, default=settings.x_segments, help='Grid columns')
    grid_opts.add_argument('-y', '--y-segments', type=int, default=settings.y_segments, help='Grid rows')
    grid_opts.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')
    grid_opts.add_argument('--timeout', type=float, default=settings.timeout, help='HTTP timeout in seconds')

    p = sub.add_parser('compare', parents=[grid_opts], help='Score the difference between two images')
    p.add_argument('source_a', help='Expected image: URL or path')
    p.add_argument('source_b', help='Observed image: URL or path')
    p.add_argument(
        '-m',
        '--metric',
        action='append',
        dest='metrics',
        metavar='NAME',
        help='Metric to run, repeatable, or "all" (default: scalar)',
    )
    p.add_argument(
        '--strict',
        action=argparse.BooleanOptionalAction,
        default=settings.strict,
        help='Reject grids of different length; --no-strict compares up to the shorter one',
    )
    p.add_argument(
        '--common-size',
        action='store_true',
        help='Resize the larger image to the smaller one before averaging',
    )
    p.add_argument('--save-dir', metavar='DIR', help='Save both decoded images here')
    p.add_argument(
        '-t',
        '--fail-above',
        type=float,
        default=None,
        metavar='N',
        help='Exit 1 if any score exceeds N (CI gating)',
    )

    b = sub.add_parser('blocks', parents=[grid_opts], help='Print the averaged grid of one image')
    b.add_argument('source', help='Image: URL or path')

    help_parser = sub.add_parser('help', help='Print full docs for a metric')
    help_parser.add_argument('metric', nargs='?', help='Metric name')

    return parser


def _print_help(name: str | None) -> None:
    """Print full module docstring for a metric."""
    metrics = registry.all_metrics()

    if name is None:
        print('Available metrics:\n')
        for metric_name in sorted(metrics):
            print(f'  {metric_name:<14} {_short_doc(metric_name)}')
        print('\nRun: blockdiff help <metric> for full docs.')
        return

    if name not in metrics:
        print(f'Unknown metric: {name}', file=sys.stderr)
        print(f'Available: {", ".join(sorted(metrics))}', file=sys.stderr)
        sys.exit(1)

    doc = (_load_metric_module(name).__doc__ or '').strip()
    print(doc or f'(No module docs for {name!r})')


def _resolve_metrics(requested: list[str] | None) -> list[str]:
    if not requested:
        return ['scalar']
    if 'all' in requested:
        return sorted(registry.all_metrics())
    for name in requested:
        registry.get(name)
    return list(dict.fromkeys(requested))


def _run_compare(args: argparse.Namespace) -> int:
    try:
        metrics = _resolve_metrics(args.metrics)
    except KeyError as exc:
        print(f'blockdiff: {exc.args[0]}', file=sys.stderr)
        return 1

    image_a, image_b = asyncio.run(fetch_pair(args.source_a, args.source_b, timeout=args.timeout))

    if args.save_dir:
        save_image(image_a, Path(args.save_dir) / 'a.png')
        save_image(image_b, Path(args.save_dir) / 'b.png')

    report = build_report(
        image_a,
        image_b,
        args.x_segments,
        args.y_segments,
        metrics=metrics,
        strict=args.strict,
        common_size=args.common_size,
        source_a=args.source_a,
        source_b=args.source_b,
        threshold=args.fail_above,
    )

    print(format_json(report) if args.json else format_text(report))

    # CI gate — after output so the report is visible even on failure
    return 0 if report.passed else 1


def _run_blocks(args: argparse.Namespace) -> int:
    image = load_image(args.source, timeout=args.timeout)
    grid = average_blocks(image, args.x_segments, args.y_segments)
    print(format_grid_json(grid, args.source) if args.json else format_grid_text(grid, args.source))
    return 0


def _setup_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format='%(asctime)s  %(name)-20s  %(levelname)-7s  %(message)s',
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> None:
    # Only --env-file is needed before the full parser: settings feed its defaults
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument('--env-file', default=None)
    pre_args, _ = pre.parse_known_args(argv)

    # Load .env before anything else — OS env vars always win
    env_path = load_env(env_file=pre_args.env_file)
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        print(f'blockdiff: {exc}', file=sys.stderr)
        sys.exit(1)

    parser = _build_parser(settings)
    args = parser.parse_args(argv)
    _setup_logging(settings.log_level, args.verbose)
    if env_path:
        logger.info('loaded %s', env_path)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == 'help':
        _print_help(args.metric)
        return

    try:
        if args.command == 'blocks':
            code = _run_blocks(args)
        else:
            code = _run_compare(args)
    except BlockDiffError as exc:
        print(f'blockdiff: {exc}', file=sys.stderr)
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == '__main__':
    main()
