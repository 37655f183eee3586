"""
Runtime settings for EdgeStatus.

Settings come from an optional YAML file and are then overridden by
EDGE_STATUS_<FIELD> environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

import yaml
from loguru import logger

ENV_PREFIX = "EDGE_STATUS_"


@dataclass
class Settings:
    warning_window: int = 1260  # seconds before expiry that counts as timing out
    tick_interval: float = 1.0
    strict_timers: bool = False
    log_level: str = "INFO"
    log_file: str | None = None
    auth_workers: int = 2

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown setting {!r}", key)
                continue
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def load_settings(path: str | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Load settings from a YAML file, then apply environment overrides."""
    data: dict[str, Any] = {}
    if path:
        with open(path) as f:
            loaded = yaml.safe_load(f.read())
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"settings file {path} must contain a mapping")
        data.update(loaded)

    settings = Settings.from_dict(data)

    env = os.environ if environ is None else environ
    for f in fields(settings):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        setattr(settings, f.name, _coerce(raw, getattr(settings, f.name)))
        logger.debug("Setting {} overridden from environment", f.name)

    return settings
