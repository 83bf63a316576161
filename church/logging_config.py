"""Centralised logging configuration."""

import logging
import logging.config


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the ``church`` and uvicorn loggers.

    Args:
        level (str): Level applied to the application logger.
        log_file (str | None): When given, also write to a rotating file.
    """
    handlers = ["console"]
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "church": {
                "level": level.upper(),
                "handlers": handlers,
                "propagate": False,
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": handlers,
                "propagate": False,
            },
        },
    }

    if log_file:
        logging_config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "detailed",
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }
        handlers.append("file")

    logging.config.dictConfig(logging_config)
    logging.getLogger(__name__).debug("Logging configured at level %s", level)
