"""
Logging Configuration for the ORM benchmark

Structured logging through structlog, rendered as JSON lines or as console
output on stdout. Library loggers (SQLAlchemy, Faker, the database drivers)
are routed through the same handler so a seeding run produces one stream.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from ormbench.config.settings import Settings, get_settings
from ormbench.exceptions import ConfigurationError

LOG_FORMATS = ("json", "console")

# Emit per-statement or per-lookup records at DEBUG; kept at WARNING so a
# DEBUG run over millions of rows stays readable.
QUIET_LOGGERS = ("faker", "aiosqlite", "asyncpg", "asyncio")

ENGINE_LOGGER = "sqlalchemy.engine"


def _resolve_level(level: str) -> int:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Unknown log level '{level}'")
    return numeric_level


def _renderer(log_format: str):
    if log_format == "json":
        return JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    raise ConfigurationError(f"Unknown log format '{log_format}', expected one of {list(LOG_FORMATS)}")


def configure_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for a seeding or benchmark run.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        settings: Settings to read the format and SQL echo from; defaults to cached settings

    Raises:
        ConfigurationError: Unknown log level or format
    """
    settings = settings or get_settings()
    level = log_level or settings.monitoring.log_level
    numeric_level = _resolve_level(level)
    renderer = _renderer(settings.monitoring.log_format)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Statement logging only when echo is on, whatever the root level
    engine_logger = logging.getLogger(ENGINE_LOGGER)
    engine_logger.handlers = []
    engine_logger.propagate = True
    engine_logger.setLevel(logging.INFO if settings.database.echo else logging.WARNING)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=logging.getLevelName(numeric_level),
        format=settings.monitoring.log_format,
        sql_echo=settings.database.echo,
        environment=settings.app_env,
    )


def get_logger(name: str):
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)
