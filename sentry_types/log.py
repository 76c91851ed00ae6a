"""Structured logging setup."""

import logging
from typing import List, Optional

import structlog

from .config import settings


def _processors(json: bool) -> List[structlog.types.Processor]:
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Return a structlog logger backed by the stdlib logger ``name``.

    Records are filtered by the stdlib level before any processing, so the
    package stays silent unless the host application enables its loggers.
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_processors(settings.log_json),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """
    Configure stdlib logging and structlog for an application.

    Args:
        level: Log level name, defaults to ``settings.log_level``
        json: Render JSON lines instead of console output,
            defaults to ``settings.log_json``
    """
    level = (level or settings.log_level).upper()
    json = settings.log_json if json is None else json

    structlog.configure(
        processors=_processors(json),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
    )
    logging.getLogger("sentry_types").setLevel(getattr(logging, level, logging.INFO))
