"""Environment variable loading and settings for blockdiff.

Load order (first wins):
  1. Existing OS environment variables — never overwrite.
  2. .env file at --env-file path (if explicitly provided).
  3. .env file walking up from cwd, stopping at .git (file or dir).

Walking stops at .git so we never load a .env from outside the repo.
Only sets variables that are NOT already in os.environ.

Settings read from the environment:
  BLOCKDIFF_X_SEGMENTS   grid columns (default 10)
  BLOCKDIFF_Y_SEGMENTS   grid rows (default 10)
  BLOCKDIFF_TIMEOUT      HTTP timeout in seconds (default 30)
  BLOCKDIFF_STRICT       reject grids of different length (default true)
  BLOCKDIFF_LOG_LEVEL    logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off'}


def _find_dotenv(start: Path) -> Path | None:
    """Walk up from start, return first .env found, stop at .git boundary."""
    current = start.resolve()
    while True:
        candidate = current / '.env'
        if candidate.is_file():
            return candidate
        # .git can be a dir (normal clone) or file (worktree)
        if (current / '.git').exists():
            return None
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _parse_dotenv(path: Path) -> dict[str, str]:
    """Parse a .env file into a dict. Handles KEY=value and KEY="value"."""
    result: dict[str, str] = {}
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        if '=' not in line:
            continue
        key, _, raw_value = line.partition('=')
        key = key.strip()
        value = raw_value.strip().strip('"').strip("'")
        if key:
            result[key] = value
    return result


def load_env(env_file: str | None = None) -> Path | None:
    """Load .env into os.environ for keys not already set.

    Returns the path that was loaded, or None if no .env was found/used.
    """
    if env_file:
        path = Path(env_file)
        if not path.is_file():
            return None
    else:
        path = _find_dotenv(Path.cwd())
        if path is None:
            return None

    for key, value in _parse_dotenv(path).items():
        if key not in os.environ:
            os.environ[key] = value

    return path


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}') from None


def _float_var(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f'{name} must be a number, got {raw!r}') from None
    if value <= 0:
        raise ValueError(f'{name} must be positive, got {raw!r}')
    return value


def _bool_var(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f'{name} must be true or false, got {raw!r}')


def _level_var(env: Mapping[str, str], name: str, default: str) -> str:
    raw = (env.get(name) or default).strip().upper()
    if not isinstance(logging.getLevelName(raw), int):
        raise ValueError(f'{name} must be a logging level name, got {raw!r}')
    return raw


@dataclass
class Settings:
    """Defaults for the CLI, overridable by flags."""

    x_segments: int = 10
    y_segments: int = 10
    timeout: float = 30.0
    strict: bool = True
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from BLOCKDIFF_* variables (os.environ by default)."""
        env = os.environ if env is None else env
        return cls(
            x_segments=_int_var(env, 'BLOCKDIFF_X_SEGMENTS', cls.x_segments),
            y_segments=_int_var(env, 'BLOCKDIFF_Y_SEGMENTS', cls.y_segments),
            timeout=_float_var(env, 'BLOCKDIFF_TIMEOUT', cls.timeout),
            strict=_bool_var(env, 'BLOCKDIFF_STRICT', cls.strict),
            log_level=_level_var(env, 'BLOCKDIFF_LOG_LEVEL', cls.log_level),
        )
