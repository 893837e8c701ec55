"""
structlog setup for the interest engine.

Service and pipeline code logs through structlog; repositories and pure
helpers use stdlib loggers, which are routed through the same renderer
so both kinds of line look alike. Production renders JSON, everything
else a coloured console line.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import Processor

from interest_engine.config.settings import Settings, get_settings

# SDK loggers that report every HTTP request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio", "asyncpg")


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def setup_logging(settings: Settings | None = None, *, json_logs: bool | None = None) -> None:
    """
    Route structlog and stdlib logging through one formatter.

    Args:
        settings: Source of log level and environment (defaults to the
            cached application settings)
        json_logs: Force JSON (True) or console (False) output; by
            default JSON is used in production only
    """
    settings = settings or get_settings()
    if json_logs is None:
        json_logs = settings.is_production
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)

    renderer: Processor = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=_pre_chain()
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_context(**kwargs) -> None:
    """Attach key-values (job_id, user_id, ...) to every later line in this task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """Bind key-values for the duration of a block, restoring the previous ones."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
