"""Runtime configuration for bindings and the SQLite store adapter."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional

from .logging import get_logger

log = get_logger("config")


class ErrorPolicy(str, Enum):
    """What a live binding does with its last data when a fetch fails."""

    CLEAR_DATA = "clear"
    KEEP_DATA = "keep"


_ENV_KEYS = {
    "page_size": "LIVE_QUERY_PAGE_SIZE",
    "error_policy": "LIVE_QUERY_ERROR_POLICY",
    "database_path": "LIVE_QUERY_DB_PATH",
}


@dataclass(frozen=True)
class LiveQueryConfig:
    """Defaults applied when a binding or store is created without explicit values."""

    page_size: int = 8
    error_policy: ErrorPolicy = ErrorPolicy.CLEAR_DATA
    database_path: str = ":memory:"

    def __post_init__(self) -> None:
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int):
            raise TypeError(f"page_size must be an int, got {self.page_size!r}.")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}.")
        try:
            policy = ErrorPolicy(self.error_policy)
        except ValueError:
            raise ValueError(f"Unsupported error_policy {self.error_policy!r}.") from None
        object.__setattr__(self, "error_policy", policy)
        if not self.database_path:
            raise ValueError("database_path must be a non-empty string.")


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir."""
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read key=value pairs from the nearest `.env`; does not mutate environment."""
    env: Dict[str, str] = {}
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        return env
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            v = v.strip()
            if len(v) >= 2 and v[0] == v[-1] and v[0] in "\"'":
                v = v[1:-1]
            env[k.strip()] = v.strip()
    log.debug("Loaded %d key(s) from .env at %s", len(env), path)
    return env


def _coerce(name: str, raw: str) -> Any:
    if name == "page_size":
        return int(raw)
    return raw


def load_config(dotenv_dir: Optional[str] = None, **overrides: Any) -> LiveQueryConfig:
    """Build configuration from `.env`, then environment, then keyword overrides.

    Args:
        dotenv_dir: Directory to start the upward `.env` search from. `None`
            skips the `.env` lookup.
        **overrides: Explicit values that win over every other source.

    Raises:
        ValueError: For malformed values from any source.
    """

    known = {f.name for f in fields(LiveQueryConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown config option(s): {', '.join(sorted(unknown))}")

    dotenv = _read_dotenv(dotenv_dir) if dotenv_dir is not None else {}
    values: Dict[str, Any] = {}
    for name, env_key in _ENV_KEYS.items():
        raw = os.environ.get(env_key, dotenv.get(env_key))
        if raw is None or not raw.strip():
            continue
        try:
            values[name] = _coerce(name, raw.strip())
        except ValueError:
            raise ValueError(f"{env_key} has invalid value {raw!r}.") from None
    values.update(overrides)
    return LiveQueryConfig(**values)


@lru_cache(maxsize=1)
def get_config() -> LiveQueryConfig:
    """Process-wide defaults read once from the environment.

    A `.env` file is searched for from the working directory upwards.
    """

    return load_config(os.getcwd())
