"""structlog setup for the scanner, rendered through stdlib logging on stderr."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

import structlog

from confused.exceptions import ConfigError

LOG_FORMATS = ("console", "json")

# Chatty per-request loggers of the HTTP stack.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def _logging_config(
    log_level: str,
    renderer: structlog.types.Processor,
    pre_chain: list[structlog.types.Processor],
) -> dict[str, Any]:
    loggers: dict[str, dict[str, str]] = {"confused": {"level": log_level}}
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "confused": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": pre_chain,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
            },
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "confused",
            },
        },
        "root": {"handlers": ["stderr"], "level": log_level},
        "loggers": loggers,
    }


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Explicit arguments win over the environment:
        CONFUSED_LOG_LEVEL  : log level (default: INFO)
        CONFUSED_LOG_FORMAT : console | json (default: console)

    Raises ConfigError for an unknown level or format.
    """
    log_level = (level or os.environ.get("CONFUSED_LOG_LEVEL", "INFO")).upper()
    log_format = (fmt or os.environ.get("CONFUSED_LOG_FORMAT", "console")).lower()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"unknown log level {log_level!r}")
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"log format must be one of {', '.join(LOG_FORMATS)}, got {log_format!r}")

    processors = _processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(_logging_config(log_level, _renderer(log_format), processors))
