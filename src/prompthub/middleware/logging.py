"""Structured logging configuration with structlog.

The API logs through structlog directly. The sweep worker and the activity
consumer log through stdlib ``logging``; their records are rendered by the
same structlog renderer so one process type is indistinguishable from another
in the log stream.
"""

import logging

import structlog

from prompthub.config import Settings

# Chatty libraries kept at WARNING unless debug is on.
_QUIET_LOGGERS = ("aiosqlite", "asyncio", "sqlalchemy.engine", "arq.jobs")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _level(settings: Settings) -> int:
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output."""
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(settings),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=_level(settings))
    if not settings.debug:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def setup_worker_logging(settings: Settings) -> None:
    """Logging for background processes: stdlib records rendered by structlog."""
    setup_logging(settings)

    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(settings),
        ],
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_level(settings))
