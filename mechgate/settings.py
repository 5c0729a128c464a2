"""SettingsManager — environment profiles, layered settings and log level."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from mechgate.errors import ConfigError

logger = logging.getLogger(__name__)

# Known settings keys and their defaults
_DEFAULTS: dict[str, str] = {
    "MECHGATE_ENV": "development",
    "MECHGATE_LOG_LEVEL": "INFO",
    "MECHGATE_WORKERS": "1",
    "MECHGATE_AUDIT_DB": "overrides.db",
    # empty: exports are discarded after the run
    "MECHGATE_EXPORT_DIR": "",
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "MECHGATE_ENV": "development",
        "MECHGATE_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "MECHGATE_ENV": "production",
        "MECHGATE_LOG_LEVEL": "WARNING",
        "MECHGATE_WORKERS": "4",
    },
    "testing": {
        "MECHGATE_ENV": "testing",
        "MECHGATE_LOG_LEVEL": "DEBUG",
        "MECHGATE_AUDIT_DB": ":memory:",
    },
}


def _read_json_layer(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed settings file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must hold a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def _read_env_layer(path: Path) -> dict[str, str]:
    """``KEY=value`` lines; blanks and ``#`` comments are skipped."""
    if not path.is_file():
        return {}
    layer: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line and not line.startswith("#") and "=" in line:
            key, value = line.split("=", 1)
            layer[key.strip()] = value.strip()
    return layer


class SettingsManager:
    """Manage mechgate settings across environments."""

    def load_settings(self, project_path: str | Path) -> dict[str, str]:
        """Load merged settings: defaults -> profile -> config.json -> .env -> env vars.

        Returns a flat dict of settings values.
        """
        root = Path(project_path)
        settings = dict(_DEFAULTS)

        profile = os.environ.get("MECHGATE_ENV", settings["MECHGATE_ENV"])
        if profile not in _PROFILES:
            logger.warning("Unknown settings profile %r; using defaults", profile)
        settings.update(_PROFILES.get(profile, {}))
        settings.update(_read_json_layer(root / ".mechgate" / "config.json"))
        settings.update(_read_env_layer(root / ".env"))
        settings.update({k: os.environ[k] for k in _DEFAULTS if k in os.environ})
        return settings


def workers(settings: dict[str, str]) -> int:
    """Parse ``MECHGATE_WORKERS``; must be a positive integer."""
    raw = settings.get("MECHGATE_WORKERS", "1")
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"MECHGATE_WORKERS must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"MECHGATE_WORKERS must be at least 1, got {value}")
    return value


def apply_log_level(settings: dict[str, str]) -> int:
    """Set the level of the ``mechgate`` logger from ``MECHGATE_LOG_LEVEL``."""
    name = settings.get("MECHGATE_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {name!r}")
    logging.getLogger("mechgate").setLevel(level)
    logger.debug("mechgate log level set to %s", name)
    return level
