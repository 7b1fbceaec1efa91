"""Settings loading: optional YAML file plus CARDIASTRAIN_* environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from app.core.exceptions import ConfigError

ENV_PREFIX = "CARDIASTRAIN_"
CONFIG_PATH_ENV = "CARDIASTRAIN_CONFIG"

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # advisory text service
    advisory_url: Optional[str] = None
    advisory_api_key: Optional[str] = None
    advisory_model: str = "gemini-3-flash-preview"
    advisory_timeout_s: float = 15.0

    # biplane batch walk
    batch_fps: float = 30.0
    batch_yield_s: float = 0.01

    # engine tuning
    block_size: int = 14
    search_window: int = 28
    detection_grid_step: int = 20
    detection_threshold: float = 150.0
    mask_threshold: float = 70.0


def _coerce(name: str, raw: Any) -> Any:
    target = {f.name: f for f in fields(Settings)}[name]
    default = target.default
    if raw is None:
        return None
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e
    return str(raw)


def _validate(settings: Settings) -> Settings:
    level = settings.log_level.upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {settings.log_level!r}")
    if settings.batch_fps <= 0:
        raise ConfigError("batch_fps must be positive")
    if settings.batch_yield_s < 0:
        raise ConfigError("batch_yield_s must be >= 0")
    if settings.block_size < 3:
        raise ConfigError("block_size must be >= 3")
    if settings.search_window < 0:
        raise ConfigError("search_window must be >= 0")
    if settings.detection_grid_step < 1:
        raise ConfigError("detection_grid_step must be >= 1")
    if settings.advisory_timeout_s <= 0:
        raise ConfigError("advisory_timeout_s must be positive")
    return replace(settings, log_level=level)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {path}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping at top level: {path}")
    return data


def load_settings(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from defaults, then the YAML file, then the environment.

    Unknown YAML keys are rejected so typos surface early.
    """
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    cfg_path = path or env.get(CONFIG_PATH_ENV)
    if cfg_path:
        data = _read_yaml(Path(cfg_path))
        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")
        values.update({k: _coerce(k, v) for k, v in data.items()})

    for f in fields(Settings):
        key = ENV_PREFIX + f.name.upper()
        if key in env:
            values[f.name] = _coerce(f.name, env[key])

    return _validate(Settings(**values))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
