"""Structured logging built on structlog."""

import logging
import sys

import structlog

# Third-party loggers that are chatty at INFO (request lines, bcrypt version probes)
_QUIET_LOGGERS = ("httpx", "httpcore", "passlib")


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "karaoke",
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines when True, coloured console output otherwise
        service_name: Bound into every log entry as ``service``
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, **kwargs) -> None:
    """Attach request-scoped fields (request id, path, user) to later log entries."""
    structlog.contextvars.bind_contextvars(request_id=request_id, **kwargs)


def clear_request_context(*keys: str) -> None:
    """Drop request-scoped fields bound by ``bind_request_context``."""
    structlog.contextvars.unbind_contextvars(*keys)
