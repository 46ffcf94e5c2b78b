import logging.config

from docshare.config import settings

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_KV_FORMAT = (
    "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=\"%(message)s\""
)


def configure_logging(level: str | None = None) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": _KV_FORMAT if settings.log_format == "kv" else _PLAIN_FORMAT,
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "handlers": ["console"],
                "level": (level or settings.log_level).upper(),
            },
            "loggers": {
                "uvicorn.access": {"level": "WARNING"},
                "botocore": {"level": "WARNING"},
            },
        }
    )
