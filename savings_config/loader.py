"""
Settings loader (``savings_config.loader``).

Responsibility
--------------
Read a YAML settings file, layer environment overrides on top and produce a
validated ``SavingsSettings``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or unparseable values  -> ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from savings_config.schema import SavingsSettings

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Environment variable -> settings key
ENV_OVERRIDES = {
    "DATABASE_URL": "database_url",
    "USE_TRANSACTIONS": "use_transactions",
    "SAVINGS_LOG_LEVEL": "log_level",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _coerce(key: str, value: Any) -> Any:
    default = getattr(SavingsSettings, key)
    if isinstance(default, bool):
        return parse_bool(value)
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        return int(value)
    return str(value)


def build_settings(
    data: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> SavingsSettings:
    """
    Merge file data with environment overrides into SavingsSettings.

    Environment values win over file values.
    """
    known = SavingsSettings.field_names()
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")

    merged: dict[str, Any] = dict(data)
    for env_name, key in ENV_OVERRIDES.items():
        if environ and environ.get(env_name):
            merged[key] = environ[env_name]

    values = {key: _coerce(key, value) for key, value in merged.items() if value is not None}
    return SavingsSettings(**values)


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> SavingsSettings:
    """Load settings from ``path`` (or the packaged defaults) plus ``environ``."""
    return build_settings(load_yaml_file(path or DEFAULT_CONFIG_PATH), environ)
