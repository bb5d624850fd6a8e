"""Structured logging configuration using structlog.

This module configures structlog for structured logging with:
- Pretty-printed console output or JSON lines
- UTC timestamps
- Component tracking derived from the logger name

All output goes to stderr. With the stdio transport, stdout carries the
protocol stream and must never receive log lines.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "mcp", "uvicorn.access", "sse_starlette")


def _get_log_level() -> str:
    """Get log level from configuration.

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    # Bootstrap from environment to avoid circular imports during startup.
    from ig_mcp_server.config.bootstrap import get_bootstrap_log_level  # noqa: PLC0415

    return get_bootstrap_log_level()


def _get_log_format() -> str:
    """Get log format (console or json) from configuration."""
    from ig_mcp_server.config.bootstrap import get_bootstrap_log_format  # noqa: PLC0415

    return get_bootstrap_log_format()


def _add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add UTC timestamp to log event.

    Args:
        logger: The logger instance.
        method_name: The log method name (info, error, etc.).
        event_dict: The event dictionary.

    Returns:
        Event dictionary with timestamp added.
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_component(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add component name to log event.

    Args:
        logger: The logger instance.
        method_name: The log method name (info, error, etc.).
        event_dict: The event dictionary.

    Returns:
        Event dictionary with component added.
    """
    # Guard against None logger (can happen with third-party libraries during shutdown)
    if logger is None or not hasattr(logger, "name"):
        event_dict["component"] = "unknown"
        return event_dict

    event_dict["component"] = logger.name.split(".")[-1]
    return event_dict


def _add_component_from_event_dict(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add component name to log event from event_dict logger name.

    This processor works with structlog's event_dict which contains the logger name
    after add_logger_name processor runs.
    """
    logger_name = event_dict.get("logger", "")
    event_dict["component"] = logger_name.split(".")[-1] if logger_name else "unknown"
    return event_dict


def _build_handler(log_format: str) -> logging.StreamHandler[Any]:
    """Configure the stderr handler for console or JSON output.

    Args:
        log_format: "console" or "json".

    Returns:
        Configured StreamHandler.
    """
    handler = logging.StreamHandler(sys.stderr)

    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                _add_timestamp,  # type: ignore[list-item]
                _add_component,  # type: ignore[list-item]
            ],
        )
    )
    return handler


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog for structured logging.

    Safe to call more than once: the CLI calls it with bootstrap values first
    and again after the full settings (including flags) are known.

    Args:
        level: Log level. Defaults to the IG_MCP_LOG_LEVEL bootstrap value.
        log_format: "console" or "json". Defaults to the bootstrap value.
    """
    log_level = level or _get_log_level()
    fmt = log_format or _get_log_format()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.addHandler(_build_handler(fmt))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_component_from_event_dict,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:  # Returns structlog.stdlib.BoundLogger
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger instance.

    Example:
        >>> from ig_mcp_server.telemetry import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("gadget_run_started", image="trace_dns:latest")
    """
    # Ensure logging is configured (idempotent)
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)
