"""Console logging shared by the API process and uvicorn."""
from __future__ import annotations

import logging
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

_configured_level: str | None = None


def configure_logging(level: str = "INFO") -> None:
    """Install the console handler once; later calls only adjust the level."""
    global _configured_level

    log_level = level.upper()
    if _configured_level is not None:
        if log_level != _configured_level:
            logging.getLogger().setLevel(log_level)
            _configured_level = log_level
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"}},
            "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "standard"}},
            "root": {"handlers": ["console"], "level": log_level},
            # uvicorn installs its own handlers; route its records through ours instead.
            "loggers": {
                "uvicorn": {"handlers": [], "propagate": True},
                "uvicorn.error": {"handlers": [], "propagate": True},
                "uvicorn.access": {"handlers": [], "propagate": True},
            },
        }
    )
    _configured_level = log_level
