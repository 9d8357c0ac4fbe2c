# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Engine modules log through the standard library (logging.getLogger with
%-style arguments). setup_logging installs a single root handler whose
structlog ProcessorFormatter renders those records, and structlog's own
loggers, through the same processor chain: colored console output in
development, JSON lines everywhere else. Context bound with bind_context
(operator, planning session) is merged into every record.

Example:
    >>> from admissions.utils.logging import setup_logging, bind_context
    >>> setup_logging(get_settings())
    >>> bind_context(session_key="2026:operator-42")
    >>> logging.getLogger("admissions.planning").info("Plan executed: %d", 42)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from admissions.core.config.settings import Settings

# Third-party loggers kept at WARNING whatever the configured level
QUIET_LOGGERS = ("sqlalchemy", "asyncio", "redis", "aiosqlite", "asyncpg")

_HANDLER_NAME = "admissions"


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development or settings.debug:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(settings: "Settings") -> None:
    """Route standard-library and structlog records through one renderer.

    Calling it again replaces the handler installed by the previous call.

    Args:
        settings: Application settings containing log_level, debug flag and
            environment.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if not (settings.is_development or settings.debug):
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(settings))

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processors=final)
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("admissions").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger that accepts key-value context.

    Args:
        name: Usually __name__ of the calling module.
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log records in this context.

    Used for the operator and the planning session key.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
