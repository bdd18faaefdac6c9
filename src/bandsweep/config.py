# Copyright (c) Syntropy Systems
"""Configuration management for bandsweep."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, cast

import yaml

from bandsweep.combos import DEFAULT_BANDS
from bandsweep.errors import ConfigError

CONFIG_DIR_NAME = ".bandsweep"
CONFIG_FILE_NAME = "config.yaml"
PASSWORD_ENV_VARS = ("BANDSWEEP_PASSWORD", "PASSWORD")


@dataclass
class CampaignConfig:
    """Resolved settings for one campaign."""

    # Router access
    password: str | None = None
    router_url: str = "http://192.168.8.1"
    username: str = "admin"

    # Output
    output: Path = Path("results/band-permutation-results.csv")
    progress_file: Path = Path("results/test-progress.json")

    # Timing (seconds)
    wait_time: float = 120.0  # after a band switch, before measuring
    settle_time: float = 10.0  # between a failed apply and the retry
    stabilize_time: float = 30.0  # after login, before the first attempt
    request_timeout: float = 15.0
    speedtest_timeout: float = 120.0

    # Search space
    bands: list[str] = field(default_factory=lambda: list(DEFAULT_BANDS))
    max_bands: int = 3
    limit: int = 0
    include_bands: list[str] = field(default_factory=list)
    exclude_bands: list[str] = field(default_factory=list)
    include_auto: bool = False
    shuffle: bool = False
    shuffle_seed: int | None = None

    # Behaviour
    retries: int = 2
    resume: bool = False
    visual: bool = False
    top_n: int = 5

    def validate(self) -> None:
        """Raise ConfigError for values the orchestrator cannot work with."""
        if self.retries < 0:
            msg = "retries must be zero or more"
            raise ConfigError(msg)
        if self.max_bands < 1:
            msg = "max_bands must be at least 1"
            raise ConfigError(msg)
        if self.limit < 0:
            msg = "limit must be zero (no limit) or more"
            raise ConfigError(msg)
        for name in ("wait_time", "settle_time", "stabilize_time"):
            if getattr(self, name) < 0:
                msg = f"{name} must not be negative"
                raise ConfigError(msg)
        unknown = set(self.include_bands) | set(self.exclude_bands)
        unknown -= set(self.bands)
        if unknown:
            msg = f"Unknown band(s): {', '.join(sorted(unknown))}"
            raise ConfigError(msg)

    def with_overrides(self, **overrides: object) -> CampaignConfig:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **cast("dict[str, Any]", values))


def find_config_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .bandsweep directory by walking up from start_path.

    Returns None if no .bandsweep directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        config_dir = current / CONFIG_DIR_NAME
        if config_dir.is_dir():
            return config_dir
        current = current.parent

    # Check root
    config_dir = current / CONFIG_DIR_NAME
    if config_dir.is_dir():
        return config_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global bandsweep config directory (~/.bandsweep)."""
    return Path.home() / CONFIG_DIR_NAME


def _coerce(name: str, value: object, default: object) -> object:
    if isinstance(default, Path):
        return Path(str(value))
    if isinstance(default, bool):
        if not isinstance(value, bool):
            msg = f"'{name}' must be true or false"
            raise ConfigError(msg)
        return value
    if isinstance(default, float):
        if not isinstance(value, (int, float)):
            msg = f"'{name}' must be a number"
            raise ConfigError(msg)
        return float(value)
    if isinstance(default, int):
        if not isinstance(value, int):
            msg = f"'{name}' must be an integer"
            raise ConfigError(msg)
        return value
    if isinstance(default, list):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if not isinstance(value, list):
            msg = f"'{name}' must be a list"
            raise ConfigError(msg)
        return [str(item) for item in cast("list[object]", value)]
    return value


def load_config(config_dir: Path | None = None) -> CampaignConfig:
    """Load configuration from .bandsweep/config.yaml or defaults.

    Looks for config in:
    1. Provided config_dir
    2. Nearest .bandsweep directory walking up
    3. ~/.bandsweep/config.yaml
    4. Defaults

    The password falls back to the BANDSWEEP_PASSWORD or PASSWORD environment
    variables when the file does not set it.
    """
    config = CampaignConfig()

    config_path = None

    if config_dir is not None:
        config_path = config_dir / CONFIG_FILE_NAME
    else:
        found_dir = find_config_dir()
        if found_dir is not None:
            config_path = found_dir / CONFIG_FILE_NAME
        else:
            global_config = get_global_config_dir() / CONFIG_FILE_NAME
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        try:
            with config_path.open() as f:
                data = cast("dict[str, object]", yaml.safe_load(f) or {})
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in {config_path}: {e}"
            raise ConfigError(msg) from e

        defaults = {f.name: getattr(config, f.name) for f in fields(config)}
        for key, value in data.items():
            if key not in defaults or value is None:
                continue
            setattr(config, key, _coerce(key, value, defaults[key]))

    if not config.password:
        for var in PASSWORD_ENV_VARS:
            if os.environ.get(var):
                config.password = os.environ[var]
                break

    return config


def default_config_data() -> dict[str, object]:
    """Settings written by ``bandsweep init``. The password is left out."""
    config = CampaignConfig()
    return {
        "router_url": config.router_url,
        "username": config.username,
        "output": str(config.output),
        "progress_file": str(config.progress_file),
        "wait_time": config.wait_time,
        "settle_time": config.settle_time,
        "stabilize_time": config.stabilize_time,
        "retries": config.retries,
        "max_bands": config.max_bands,
        "bands": list(config.bands),
    }
