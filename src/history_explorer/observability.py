"""structlog configuration for history-explorer.

Modules obtain a logger with ``get_logger(__name__)`` and log key/value
events. ``configure_logging`` is optional; without it structlog's defaults
apply.
"""

import logging

import structlog

from history_explorer.settings import Settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog processors and the minimum level.

    Args:
        settings: Settings to read log_level and log_json from. Defaults to
            a fresh Settings() read from the environment.
    """
    settings = settings or Settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.typing.Processor
    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger bound to the given module name.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A bound logger accepting key/value event fields.
    """
    return structlog.get_logger(name)
