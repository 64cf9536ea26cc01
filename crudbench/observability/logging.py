"""
Structured Logging Configuration.

Configures structlog for benchmark runs:
- Level filtering before any other processing
- Run, scenario and phase context from ``structlog.contextvars``
- JSON or colored console rendering on stderr
"""

import logging
import sys
from typing import Any, Literal, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

REDACTED = "***REDACTED***"
SENSITIVE_KEYS = frozenset({"password", "secret", "token", "authorization", "credential"})

QUIET_LOGGERS = ("httpx", "httpcore", "neo4j")


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and any(s in key.lower() for s in SENSITIVE_KEYS)


def _redact(key: Any, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _redact(k, v) for k, v in value.items()}
    if isinstance(value, str) and _is_sensitive(key):
        return REDACTED
    return value


def censor_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace credential values, including nested ones, before rendering."""
    return {key: _redact(key, value) for key, value in event_dict.items()}


def _renderer(format: Literal["json", "console"]) -> list[Processor]:
    if format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "console",
    service_name: str = "crudbench",
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog for the harness.

    Events below ``level`` are dropped by the first processor, so disabled
    debug calls inside timed operations cost a level check only.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" or "console")
        service_name: Service name for log identification
        stream: Output stream for log records (default stderr)
    """

    def add_service_info(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        *_renderer(format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Console summaries own stdout
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
