"""Logging setup for the whisper STT service.

Modules log through plain stdlib loggers and attach context with
``extra={...}``. Records are rendered by structlog, as JSON in production
and human-readable on a console.
"""

import logging

import structlog

from ..config.settings import Settings

_configured = False


def setup_logging(settings: Settings) -> None:
    """Configure the root logger from settings.

    Idempotent; only the first call takes effect.

    Args:
        settings: Application settings (``log_level`` and ``log_format``)
    """
    global _configured
    if _configured:
        return

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ExtraAdder(),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # The gateway logs every request itself
    logging.getLogger("uvicorn.access").disabled = True

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
