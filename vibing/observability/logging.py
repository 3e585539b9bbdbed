"""
Structured Logging with Structlog.

Client logs go to stderr through a handler on the "vibing" logger only, so
an embedding application's root logging is left alone and CLI output on
stdout stays clean. Console output by default; JSON when
VIBING_LOG_FORMAT=json.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor

from vibing.config import settings

LOGGER_NAME = "vibing"

# Event keys whose values never reach a log line verbatim.
SENSITIVE_KEYS = frozenset(
    {"token", "refresh_token", "password", "authorization", "verification_code"}
)

_handler: logging.Handler | None = None


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add client-level context to all log entries."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.client_version
    return event_dict


def mask_credentials(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = f"{value[:4]}***" if len(value) > 8 else "***"
    return event_dict


def resolve_log_level(verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    return getattr(logging, settings.log_level.upper())


def setup_logging(verbose: bool = False, stream: TextIO | None = None) -> logging.Logger:
    """
    Configure structured logging for the client.

    verbose forces DEBUG regardless of VIBING_LOG_LEVEL. Calling this again
    replaces the previous handler rather than stacking another one.

    JSON entries look like:
    {
        "event": "api_request_completed",
        "level": "info",
        "timestamp": "2025-01-08T12:00:00.123456Z",
        "logger": "vibing.api.client",
        "service": "vibing-client",
        "version": "0.1.0",
        ...additional context
    }
    """
    global _handler

    level = resolve_log_level(verbose)
    client_logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        client_logger.removeHandler(_handler)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    client_logger.addHandler(_handler)
    client_logger.setLevel(level)
    client_logger.propagate = False

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        mask_credentials,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if level == logging.DEBUG:
        processors.append(structlog.processors.ExceptionRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        colors = stream is None and sys.stderr.isatty()
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return client_logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("conversation_selected", conversation_id=conversation_id)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


class log_context:
    """
    Context manager for adding structured logging context.

    Usage:
        with log_context(command="products"):
            logger.info("command_started")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
