from __future__ import annotations

import logging.config


def get_logging_config(settings) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": getattr(settings, "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
            "handlers": ["default"],
        },
        "loggers": {
            # APScheduler logs every job run at INFO; the ticker fires each second.
            "apscheduler": {"level": "WARNING"},
        },
    }


def configure_logging(settings) -> None:
    logging.config.dictConfig(get_logging_config(settings))
