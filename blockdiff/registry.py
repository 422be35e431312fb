"""Metric lookup by name.

A metric is any module in blockdiff/metrics/ that exposes a module-level
`metric` (a Metric instance). Modules whose names start with an underscore
are private helpers and are not scanned. Dropping a new module into the
package is enough to make its comparator selectable with `-m <name>`.
"""

import importlib
import logging
import pkgutil

from blockdiff.core.types import Metric

logger = logging.getLogger(__name__)

_registry: dict[str, Metric] = {}


def _metric_module_names() -> list[str]:
    import blockdiff.metrics as pkg

    return sorted(name for _finder, name, _ispkg in pkgutil.iter_modules(pkg.__path__) if not name.startswith('_'))


def discover() -> dict[str, Metric]:
    """Import every metric module once and return name -> Metric."""
    if _registry:
        return _registry

    for modname in _metric_module_names():
        module = importlib.import_module(f'blockdiff.metrics.{modname}')
        found = getattr(module, 'metric', None)
        if not isinstance(found, Metric):
            logger.debug('skipping blockdiff.metrics.%s: no metric defined', modname)
            continue
        if found.name in _registry:
            raise ValueError(f'duplicate metric name {found.name!r} in blockdiff.metrics.{modname}')
        _registry[found.name] = found
        logger.debug('registered metric %s from %s', found.name, modname)

    return _registry


def get(name: str) -> Metric:
    """Get a metric by name."""
    reg = discover()
    if name not in reg:
        raise KeyError(f'Unknown metric: {name}. Available: {", ".join(sorted(reg))}')
    return reg[name]


def all_metrics() -> dict[str, Metric]:
    return discover()
