"""Structlog setup for the redirect service."""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from affiliate_redirect.utils.pages import SERVICE_NAME

# Third-party loggers that would otherwise log every shortlink hop and webhook POST.
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(environment: str) -> list[Processor]:
    """Return the processors shared by structlog and stdlib log records.

    Production renders exceptions as structured dicts; development keeps
    readable tracebacks.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="logged_at"),
    ]
    if environment == "production":
        processors.append(structlog.processors.dict_tracebacks)
    else:
        processors.append(structlog.processors.StackInfoRenderer())
    return processors


def configure_logging(environment: str, log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Every ``redirect.decision`` record carries the decision under its own
    key; the line itself is stamped with ``logged_at``.

    Args:
        environment: ``"production"`` for JSON lines, anything else for the
                     colourised console renderer.
        log_level:   Standard Python log-level name, e.g. ``"INFO"``.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    shared = build_processors(environment)

    renderer: Processor
    if environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
