"""Structured logging for toolsmithy using structlog."""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger, Processor


def _resolve_level(value: str | None, default: int = logging.INFO) -> int:
    if not value:
        return default
    return getattr(logging, value.upper(), default)


# Libraries that are noisy below WARNING while a config file is watched
_QUIET_LOGGERS = ("watchdog", "asyncio")


def _renderer(log_format: str | None, log_colors: bool | None) -> Processor:
    if log_format is None:
        log_format = os.getenv("LOG_FORMAT", "pretty")
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    if log_colors is None:
        log_colors = os.getenv("LOG_COLORS", "true").lower() in ("true", "1", "yes", "on")
    return structlog.dev.ConsoleRenderer(colors=log_colors)


def configure_structlog(
    log_format: str | None = None,
    log_colors: bool | None = None,
    log_level: str | None = None,
):
    """Send structlog and stdlib ``logging`` through one ProcessorFormatter.

    Arguments left as None come from LOG_FORMAT, LOG_COLORS and LOG_LEVEL.
    Tool implementations that log with plain ``logging`` share the same stream.
    Safe to call again; the root handler is replaced.
    """
    renderer = _renderer(log_format, log_colors)

    logging.root.handlers = []
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(_resolve_level(log_level or os.getenv("LOG_LEVEL")))
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # structlog pipeline; wrap_for_formatter hands off to ProcessorFormatter above
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog on module import
configure_structlog()


def event_log(
    logger: FilteringBoundLogger,
    event_type: str,
    request_id: str | None = None,
    **kwargs,
):
    """Log an outgoing lifecycle notification."""
    logger.debug(
        f"Event: {event_type}",
        event_type=event_type,
        request_id=request_id,
        **kwargs,
    )


def get_logger(name: str, level: int | None = None) -> FilteringBoundLogger:
    """Get a configured structlog logger."""
    stdlib_logger = logging.getLogger(name)
    if level is not None:
        stdlib_logger.setLevel(level)
    return structlog.get_logger(name)


# Shared loggers, one per subsystem
lifecycle_logger = get_logger("toolsmithy.lifecycle")
agent_logger = get_logger("toolsmithy.agents")
tool_logger = get_logger("toolsmithy.tools")
