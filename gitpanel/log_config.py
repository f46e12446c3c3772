"""Structlog configuration shared by gitpanel modules and Uvicorn."""

from __future__ import annotations

import logging
import logging.config
import sys

import structlog

from gitpanel.settings import settings

# Third-party loggers that are chatty at DEBUG and only interesting on warnings.
_NOISY_LOGGERS = ("sqlalchemy.engine", "multiprocessing", "asyncio")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _add_uvicorn_access_fields(
    logger: logging.Logger | None, name: str, event_dict: dict
) -> dict:
    """Split uvicorn access records into client, method, path and status fields."""
    record = event_dict.get("_record")
    if record is None or record.name != "uvicorn.access":
        return event_dict
    args = record.args
    if isinstance(args, tuple) and len(args) >= 5:
        event_dict.update(
            client_addr=args[0],
            method=args[1],
            path=args[2],
            status_code=args[4],
        )
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer():
    if settings.log_format() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging() -> None:
    """Route structlog and stdlib logging through one handler on stdout.

    Level and output format come from ``GITPANEL_LOG_LEVEL`` and
    ``GITPANEL_LOG_FORMAT``. Safe to call more than once.
    """
    level = getattr(logging, settings.log_level(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_renderer(),
        foreign_pre_chain=[*shared, _add_uvicorn_access_fields],
    )

    loggers: dict[str, dict] = {
        name: {"handlers": ["stdout"], "level": level, "propagate": False}
        for name in _UVICORN_LOGGERS
    }
    noisy_level = max(level, logging.WARNING)
    loggers.update({name: {"level": noisy_level} for name in _NOISY_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"structlog": {"()": lambda: formatter}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "structlog",
                    "stream": sys.stdout,
                }
            },
            "root": {"handlers": ["stdout"], "level": level},
            "loggers": loggers,
        }
    )
