from __future__ import annotations

import logging
import logging.config

from petalhub.app.core.config import get_settings

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
KV_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)r"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install the root handler once; later calls only adjust the level."""
    global _configured
    settings = get_settings()
    level = (level or settings.log_level).upper()

    if _configured:
        logging.getLogger().setLevel(level)
        return

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": KV_FORMAT if settings.log_format == "kv" else PLAIN_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                # SQL echo stays opt-in
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
    _configured = True
