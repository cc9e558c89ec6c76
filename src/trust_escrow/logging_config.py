"""Structured logging configuration using structlog.

The core itself only emits events; the embedding service decides where they
go by calling ``setup_logging`` once at startup. JSON output for production,
colored console output for development.

Service methods wrap their work in ``deal_context`` so the domain events
emitted underneath (``deal.*``, ``payout.*``, ``ticket.*``) carry the deal id
without every pure function having to know it.

Usage:
    from trust_escrow.logging_config import deal_context, get_logger, setup_logging
    setup_logging(log_level="INFO", json_logs=True)
    logger = get_logger(__name__)
    with deal_context("d-1"):
        logger.info("payout.settled", seller_payout=9500)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from contextlib import AbstractContextManager


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog with shared processors.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON. If False, colored console.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    # Only the package logger is touched; the host application owns the root.
    package_logger = logging.getLogger("trust_escrow")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    package_logger.propagate = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name, normally the calling module's ``__name__``.
    """
    return structlog.get_logger(name)


def deal_context(deal_id: str) -> AbstractContextManager[None]:
    """Bind ``deal_id`` to every event logged inside the ``with`` block."""
    return structlog.contextvars.bound_contextvars(deal_id=deal_id)
