"""structlog configuration."""

import logging
import sys

import structlog

from chatbridge.core.settings import AppConfig

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "uvicorn.access")


def configure_logging(app_config: AppConfig) -> None:
    """Configure structlog and the stdlib root logger.

    Development gets a colourised console renderer; every other environment
    emits one JSON object per line.
    """
    level = getattr(logging, app_config.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if app_config.is_development:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s", force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
