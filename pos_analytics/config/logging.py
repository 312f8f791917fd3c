"""
Logging Configuration for the POS Analytics Engine

structlog renders both structlog and stdlib records through one stdout
handler. Every event carries the application name and environment.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.typing import Processor

from pos_analytics.config.settings import Settings, get_settings

# loggers kept at WARNING unless SQL echo is requested
SQL_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _pre_chain() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(settings: Settings) -> Processor:
    if settings.monitoring.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> None:
    """
    Route all logging through structlog.

    Args:
        log_level: Overrides ``LOG_LEVEL``; unknown names mean INFO
        settings: Settings to read defaults from
    """
    settings = settings or get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    numeric_level = logging.getLevelName(level)
    if not isinstance(numeric_level, int):
        level, numeric_level = "INFO", logging.INFO

    pre_chain = _pre_chain()
    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings),
        ],
    ))
    logging.basicConfig(handlers=[handler], level=numeric_level, force=True)

    sql_level = numeric_level if settings.database.echo else logging.WARNING
    for name in SQL_LOGGERS:
        logging.getLogger(name).setLevel(sql_level)

    structlog.contextvars.bind_contextvars(app=settings.app_name, env=settings.app_env)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
    )
