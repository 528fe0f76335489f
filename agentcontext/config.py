"""
Ledger configuration.

Read from an optional `ledger.yml` in the context root. Every key is
optional; a missing or unreadable file yields the defaults.

    # _agent_context/ledger.yml
    lock_timeout_s: 10
    default_max_fires: 3
    elevated_debt: 7
    critical_debt: 10
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "ledger.yml"


@dataclass(frozen=True)
class LedgerConfig:
    state_file: str = "state/.sleep.json"
    history_file: str = "state/.sleep-history.json"
    lock_file: str = "state/.sleep.lock"
    lock_timeout_s: float = 10.0
    max_transcript_bytes: int = 50 * 1024 * 1024
    default_max_fires: int = 3
    default_salience: int = 2
    elevated_debt: int = 7
    critical_debt: int = 10
    snapshot_bookmarks: int = 5


def _coerce(name: str, value: Any, default: Any) -> Any:
    expected = type(default)
    if isinstance(value, bool) and expected is not bool:
        raise TypeError(f"{name} must be {expected.__name__}")
    if expected is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, expected):
        raise TypeError(f"{name} must be {expected.__name__}")
    if expected in (int, float) and value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def load_config(context_root: Path) -> LedgerConfig:
    """Load ledger.yml from the context root, falling back to defaults."""
    path = context_root / CONFIG_FILENAME
    config = LedgerConfig()
    if not path.exists():
        return config

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load %s: %s", path, e)
        return config

    if data is None:
        return config
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", path)
        return config

    updates: dict[str, Any] = {}
    for f in fields(LedgerConfig):
        if f.name not in data:
            continue
        try:
            updates[f.name] = _coerce(f.name, data[f.name], getattr(config, f.name))
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring %s in %s: %s", f.name, path, e)

    unknown = set(data) - {f.name for f in fields(LedgerConfig)}
    if unknown:
        logger.debug("Unknown keys in %s: %s", path, ", ".join(sorted(map(str, unknown))))

    return replace(config, **updates)
