"""
Process-wide logging setup for the API and the CLI.

The handler layout comes from the packaged `logging.yaml`; only the level is taken from
`settings.app.log_level`, so `TONTINE_GEO_LOG_LEVEL=DEBUG` turns on search diagnostics.
"""

from __future__ import annotations

import copy
import logging.config

from tontine_geo.config.settings import get_logging_config, get_settings


def configure_logging() -> None:
    """Apply the packaged dictConfig with every level set from settings."""
    settings = get_settings()
    config = copy.deepcopy(get_logging_config())

    level = settings.app.log_level.upper()
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
