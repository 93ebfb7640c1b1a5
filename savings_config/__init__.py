"""
savings_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_settings()`` is the only place that reads the settings file and
    the environment.  The result is loaded once per process and injected
    into executors and services; the kernel never imports this package.

Failure modes:
    - ``FileNotFoundError`` when ``SAVINGS_CONFIG_FILE`` names a missing file.
    - ``ValueError`` for unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from savings_config.loader import DEFAULT_CONFIG_PATH, build_settings, load_settings
from savings_config.schema import SavingsSettings

_logger = logging.getLogger("savings_kernel.config")

_settings: SavingsSettings | None = None


def get_settings(reload: bool = False) -> SavingsSettings:
    """
    Settings for this process.

    The file is ``$SAVINGS_CONFIG_FILE`` when set, else the packaged
    ``defaults.yaml``; environment overrides are applied on top.
    """
    global _settings
    if _settings is None or reload:
        override = os.environ.get("SAVINGS_CONFIG_FILE")
        path = Path(override) if override else DEFAULT_CONFIG_PATH
        _settings = load_settings(path, os.environ)
        _logger.info(
            "settings_loaded",
            extra={
                "config_file": str(path),
                "use_transactions": _settings.use_transactions,
                "bulk_chunk_size": _settings.bulk_chunk_size,
            },
        )
    return _settings


def reset_settings() -> None:
    """Forget the cached settings (tests)."""
    global _settings
    _settings = None


__all__ = [
    "SavingsSettings",
    "build_settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
