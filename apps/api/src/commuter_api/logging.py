"""structlog setup shared by the API and its background fetchers.

Every event carries the service name and deployment environment. Events
emitted while handling a request also carry ``request_id`` and ``path``
(see :func:`request_context`).
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping

    from structlog.types import Processor

from commuter_api.config import Settings, get_settings

# Third-party loggers and the level they are clamped to outside debug mode.
NOISY_LOGGERS: dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def _service_fields(settings: Settings) -> Processor:
    def add_service_fields(
        _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_service_fields


def _renderer(settings: Settings) -> list[Processor]:
    if settings.environment == "development":
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def setup_logging() -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    settings = get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _service_fields(settings),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level.upper())

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


@contextmanager
def request_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every event logged inside the block.

    Previously bound values are restored on exit, so nested blocks do not
    leak into the enclosing request.
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield
