# shortlet/core/logging.py
import logging
import logging.config

from shortlet.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Console logging for the app loggers. Uvicorn keeps its own handlers.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": "WARNING"},
            "loggers": {
                "shortlet": {"level": settings.LOG_LEVEL.upper()},
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
