# -*- coding: utf-8 -*-
"""
Configuration Module - Configurable defaults for the UOR engine.

Provides an EngineConfig dataclass with default values for worker
counts, invocation timeouts, result caching, and logging. Loads from
~/.uor/engine_config.json if it exists, otherwise uses sensible
defaults. Each loaded value is checked against its field; invalid
values fall back to the field default with a warning.

Author
------
UOR Engine contributors

License
-------
MIT License
Copyright (c) 2026 UOR Engine contributors
See LICENSE file for full text.

Created
-------
2026-10-16

Modified
--------
2026-10-16
"""

# Standard library
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path.home() / ".uor"
_CONFIG_FILE = _CONFIG_DIR / "engine_config.json"


@dataclass
class EngineConfig:
    """Global engine configuration with defaults.

    Attributes
    ----------
    max_workers : int
        Maximum concurrent operator invocations per run.
    invocation_timeout : Optional[float]
        Default per-invocation limit in seconds. None disables it.
    poll_interval : float
        Seconds between cancellation checks while waiting on workers.
    cache_results : bool
        Memoize deterministic operator results across runs.
    max_stages : int
        Maximum model stages in a cognitive stack (the kernel slot is
        extra).
    log_level : str
        Logging level name used by the CLI.
    """

    max_workers: int = 4
    invocation_timeout: Optional[float] = None
    poll_interval: float = 0.05
    cache_results: bool = True
    max_stages: int = 12
    log_level: str = "WARNING"

    def save(self, path: Optional[Path] = None) -> None:
        """Save config to JSON file."""
        path = path or _CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=2)


def _positive_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"must be at least 1, got {value}")
    return value


def _positive_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    if value <= 0:
        raise ValueError(f"must be positive, got {value}")
    return float(value)


def _optional_positive_number(value: Any) -> Optional[float]:
    return None if value is None else _positive_number(value)


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"expected true or false, got {value!r}")
    return value


def _level_name(value: Any) -> str:
    name = str(value).upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"unknown logging level {value!r}")
    return name


_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    'max_workers': _positive_int,
    'invocation_timeout': _optional_positive_number,
    'poll_interval': _positive_number,
    'cache_results': _flag,
    'max_stages': _positive_int,
    'log_level': _level_name,
}


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load configuration from file, or return defaults.

    Unknown keys are ignored. A value of the wrong type or out of range
    is logged and replaced by the field default; an unreadable file
    yields the defaults for every field.

    Parameters
    ----------
    path : Optional[Path]
        Config file path. Defaults to ~/.uor/engine_config.json.

    Returns
    -------
    EngineConfig
        Loaded or default configuration.
    """
    path = path or _CONFIG_FILE
    if not path.exists():
        return EngineConfig()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to load config from %s: %s", path, e)
        return EngineConfig()
    if not isinstance(data, dict):
        logger.warning(
            "Failed to load config from %s: expected a JSON object", path,
        )
        return EngineConfig()

    values = {}
    for key, check in _VALIDATORS.items():
        if key not in data:
            continue
        try:
            values[key] = check(data[key])
        except ValueError as e:
            logger.warning("Ignoring '%s' in %s: %s", key, path, e)
    return EngineConfig(**values)
