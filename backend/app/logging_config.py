import logging
import sys

import structlog

from app.settings import get_settings


def configure_logging() -> None:
    """Route stdlib logging and structlog through one handler.

    Development gets the coloured console renderer, ``LOG_JSON=true``
    switches to one JSON object per line for log shipping.
    """
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_JSON
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # SQL echo is driven by APP_DEBUG on the engine; keep it out of INFO noise otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.APP_DEBUG else logging.WARNING)

    structlog.get_logger("app.logging").info(
        "logging_configured", level=settings.LOG_LEVEL, json=settings.LOG_JSON, env=settings.APP_ENV,
    )
