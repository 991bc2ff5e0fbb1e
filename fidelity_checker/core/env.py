"""Settings and .env loading for fidelity-check.

Load order (first wins):
  1. Existing OS environment variables — never overwrite.
  2. .env file at --env-file path (if explicitly provided).
  3. .env file walking up from cwd, stopping at .git (file or dir).

Recognised variables (all optional):
  FIDELITY_MAX_WIDTH          cap for the comparison canvas width (3000)
  FIDELITY_MAX_HEIGHT         cap for the comparison canvas height (3000)
  FIDELITY_MAX_REGIONS        mismatch regions kept per comparison (10)
  FIDELITY_THRESHOLD          diff tolerance on a 0-1 scale (0.1)
  FIDELITY_TIMEOUT            wall-clock seconds per comparison, 0 = none (60)
  FIDELITY_MAX_SOURCE_PIXELS  largest accepted input image, in pixels (50000000)
"""

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = 'FIDELITY_'


@dataclass(frozen=True)
class Settings:
    max_width: int = 3000
    max_height: int = 3000
    max_regions: int = 10
    threshold: float = 0.1
    timeout_seconds: float = 60.0
    max_source_pixels: int = 50_000_000


def _find_dotenv(start: Path) -> Path | None:
    """Return the nearest .env at or above start, without crossing a .git boundary."""
    current = start.resolve()
    while True:
        candidate = current / '.env'
        if candidate.is_file():
            return candidate
        # .git is a dir in a normal clone and a file in a worktree
        if (current / '.git').exists():
            return None
        if current.parent == current:
            return None
        current = current.parent


def _parse_dotenv(path: Path) -> dict[str, str]:
    """Parse KEY=value lines; quotes around values are stripped."""
    result: dict[str, str] = {}
    for raw_line in path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        if line.startswith('export '):
            line = line[len('export ') :]
        key, _, raw_value = line.partition('=')
        key = key.strip()
        if key:
            result[key] = raw_value.strip().strip('"').strip("'")
    return result


def load_env(env_file: str | None = None) -> Path | None:
    """Copy .env values into os.environ for keys not already set.

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
        os.environ.setdefault(key, value)
    return path


def _read(environ: Mapping[str, str], name: str, convert: Callable, default):
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = convert(raw.strip())
    except ValueError as exc:
        raise ValueError(f'{ENV_PREFIX}{name}: cannot parse {raw!r}') from exc
    if value < 0:
        raise ValueError(f'{ENV_PREFIX}{name}: must not be negative, got {raw!r}')
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from FIDELITY_* variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    defaults = Settings()
    settings = Settings(
        max_width=_read(env, 'MAX_WIDTH', int, defaults.max_width),
        max_height=_read(env, 'MAX_HEIGHT', int, defaults.max_height),
        max_regions=_read(env, 'MAX_REGIONS', int, defaults.max_regions),
        threshold=_read(env, 'THRESHOLD', float, defaults.threshold),
        timeout_seconds=_read(env, 'TIMEOUT', float, defaults.timeout_seconds),
        max_source_pixels=_read(env, 'MAX_SOURCE_PIXELS', int, defaults.max_source_pixels),
    )
    if settings.max_width == 0 or settings.max_height == 0:
        raise ValueError(f'{ENV_PREFIX}MAX_WIDTH and {ENV_PREFIX}MAX_HEIGHT must be positive')
    if settings.threshold > 1:
        raise ValueError(f'{ENV_PREFIX}THRESHOLD must lie in [0, 1], got {settings.threshold}')
    return settings
