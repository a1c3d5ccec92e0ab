import logging
from logging import config as logging_config

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("botocore", "boto3", "aiobotocore", "urllib3", "s3transfer")

LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[41m",
}
RESET = "\x1b[0m"


class ColoredFormatter(logging.Formatter):
    """Wraps the level name in the ANSI color of its level for console output."""

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{levelname}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def configure_logging(level: str = "INFO") -> None:
    """Configure process-wide logging: colored stdout for the app and uvicorn, boto noise turned down."""

    default_fmt = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
    access_fmt = "%(asctime)s %(levelname)-5s %(message)s"

    loggers: dict[str, dict] = {
        "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
    }
    for name in NOISY_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    cfg = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"()": "picshelf.logging_config.ColoredFormatter", "format": default_fmt, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "access": {"()": "picshelf.logging_config.ColoredFormatter", "format": access_fmt, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default", "stream": "ext://sys.stdout"},
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
        },
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }

    logging_config.dictConfig(cfg)


__all__ = ["configure_logging", "ColoredFormatter"]
