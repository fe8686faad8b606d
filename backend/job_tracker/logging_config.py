"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

_NOISY_LOGGERS = ("httpcore", "httpx", "urllib3", "openai", "sqlalchemy.engine")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _make_handler(
    handler: logging.Handler,
    level: int,
    renderer: structlog.types.Processor,
    pre_chain: list[structlog.types.Processor],
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_console: bool = False,
) -> None:
    """Configure structlog and stdlib logging for the application.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file path to also write JSON lines to.
        json_console: Render console output as JSON (for log shippers)
            instead of the human-readable dev renderer.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    pre_chain = _shared_processors()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_renderer: structlog.types.Processor
    if json_console:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(
        _make_handler(logging.StreamHandler(sys.stdout), log_level, console_renderer, pre_chain)
    )

    if log_file:
        root_logger.addHandler(
            _make_handler(
                logging.FileHandler(log_file, encoding="utf-8"),
                log_level,
                structlog.processors.JSONRenderer(),
                pre_chain,
            )
        )

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
