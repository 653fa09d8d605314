"""YAML configuration loader.

Loads a single YAML file layered on top of the env-derived config.
When no YAML is provided, env vars work exactly as before.

Example YAML:
    server:
      url: http://127.0.0.1:4096
      request_timeout: 0

    session:
      title: desktop
      health_attempts: 30
      health_interval: 1.0
      correlate_message_ids: false

    stream:
      reconnect_delay: 3.0
      reconnect_backoff: 1.0
      reconnect_max_delay: 3.0
      reconnect_max_attempts: 0

    launcher:
      terminal: alacritty

    logging:
      level: DEBUG
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import yaml

from .config import ShellConfig

logger = logging.getLogger(__name__)

# (section, key) -> ShellConfig field
_FIELD_MAP: dict[tuple[str, str], str] = {
    ("server", "url"): "server_url",
    ("server", "request_timeout"): "request_timeout_seconds",
    ("session", "title"): "session_title",
    ("session", "health_attempts"): "health_max_attempts",
    ("session", "health_interval"): "health_interval_seconds",
    ("session", "correlate_message_ids"): "correlate_message_ids",
    ("stream", "reconnect_delay"): "reconnect_delay_seconds",
    ("stream", "reconnect_backoff"): "reconnect_backoff",
    ("stream", "reconnect_max_delay"): "reconnect_max_delay_seconds",
    ("stream", "reconnect_max_attempts"): "reconnect_max_attempts",
    ("launcher", "terminal"): "terminal",
    ("logging", "level"): "log_level",
}


def discover_config_path(cwd: Path | None = None) -> Path | None:
    """Return ./.deskshell/config.yaml or ~/.deskshell/config.yaml if present."""
    candidates = [
        (cwd or Path.cwd()) / ".deskshell" / "config.yaml",
        Path.home() / ".deskshell" / "config.yaml",
    ]
    for candidate in candidates:
        if candidate.exists():
            logger.info("Auto-discovered config: %s", candidate)
            return candidate
    logger.debug(
        "No config file found (tried %s); using defaults",
        ", ".join(str(c) for c in candidates),
    )
    return None


def load_yaml_config(
    path: str | Path,
    base: ShellConfig | None = None,
) -> ShellConfig:
    """Load *path* and return *base* (or the env config) with overrides applied.

    Raises FileNotFoundError if the file does not exist and ValueError
    if it is not a mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    config = base if base is not None else ShellConfig.from_env()
    field_types = {f.name: f.type for f in dataclasses.fields(ShellConfig)}
    overrides: dict[str, object] = {}

    for section, values in raw.items():
        if not isinstance(values, dict):
            logger.warning("Ignoring non-mapping config section: %s", section)
            continue
        for key, value in values.items():
            field_name = _FIELD_MAP.get((section, key))
            if field_name is None:
                logger.warning("Ignoring unknown config key: %s.%s", section, key)
                continue
            overrides[field_name] = _coerce(value, field_types[field_name])

    if overrides:
        logger.info(
            "Loaded config %s (overrides: %s)",
            config_path, ", ".join(sorted(overrides)),
        )
    return dataclasses.replace(config, **overrides)


def _coerce(value: object, type_name: object) -> object:
    # Annotations are strings under `from __future__ import annotations`
    name = type_name if isinstance(type_name, str) else getattr(type_name, "__name__", "")
    if name == "bool":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if name == "int":
        return int(value)
    if name == "float":
        return float(value)
    return str(value)
