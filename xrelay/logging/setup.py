"""Structlog configuration for xrelay."""

import logging
import sys

import structlog

from xrelay.config import RelayConfig, LogFormat

# Loggers owned by the ASGI server; kept at the relay's level so their
# access lines interleave with relay events.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(config: RelayConfig | None = None) -> None:
    """
    Configure structlog for the relay and its CLI.

    Output goes to stderr so the CLI can print cookie strings and
    summaries on stdout without interleaving log lines.

    Args:
        config: RelayConfig instance, uses defaults if None
    """
    if config is None:
        config = RelayConfig()

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in _SERVER_LOGGERS:
        logging.getLogger(name).setLevel(log_level)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.log_format == LogFormat.JSON:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.extend([
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a structlog logger, optionally bound to a component name.

    Args:
        name: Optional logger name for context

    Returns:
        structlog BoundLogger
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger
