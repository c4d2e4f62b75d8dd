"""
Structured Logging Configuration with structlog
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog for JSON structured logging

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
    """
    # Set standard library logging level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )
    logging.getLogger().setLevel(getattr(logging, log_level.upper()))

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Console format for development
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all log messages in current context

    Args:
        **kwargs: Key-value pairs to add to log context
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**kwargs)


def bind_source(server_name: str, db_name: str) -> None:
    """Bind the source identity so every log line names the server being read"""
    bind_context(server=server_name, db=db_name)


def log_snapshot_transition(
    logger: structlog.stdlib.BoundLogger,
    transition: str,
    server_name: str,
    lsn: Any = None,
    snapshot_in_effect: bool = False,
) -> None:
    """
    Log a snapshot lifecycle transition (audit trail)

    Args:
        logger: Structlog logger
        transition: started, last_record, or completed
        server_name: Logical server name
        lsn: Position at the time of the transition, if known
        snapshot_in_effect: Snapshot predicate after the transition
    """
    logger.info(
        "snapshot_" + transition,
        server=server_name,
        lsn=lsn,
        snapshot_in_effect=snapshot_in_effect,
    )
