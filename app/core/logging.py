import logging.config
import sys

from app.core.config import get_settings


def configure_logging(log_level: str | None = None) -> None:
    level = (log_level or get_settings().log_level or "INFO").upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "simple": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "formatter": "simple",
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                },
            },
            "loggers": {
                "": {"handlers": ["console"], "level": level},
                "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
                "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
                # SQL echo is too chatty for the ledger paths.
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
