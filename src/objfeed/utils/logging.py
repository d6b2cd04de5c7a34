"""structlog setup shared by every objfeed component."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional, cast

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from structlog.types import Processor

try:
    from objfeed import __version__ as OBJFEED_VERSION
except ImportError:
    OBJFEED_VERSION = "unknown"

_TRUTHY = {"1", "true", "yes", "on"}


def resolve_level(level: str | int) -> int:
    """Numeric logging level for a name such as "debug", or a number."""
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    try:
        return logging.getLevelNamesMapping()[name]
    except KeyError as e:
        raise ValueError(f"Invalid log level: {level}") from e


def _pre_chain() -> list[Processor]:
    # Applied to structlog events and to records from plain stdlib loggers.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _formatter(json_output: bool) -> ProcessorFormatter:
    render: list[Processor]
    if json_output:
        render = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=False)]
    return ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[ProcessorFormatter.remove_processors_meta, *render],
    )


def configure_logging(
    level: Optional[str | int] = None, json_output: Optional[bool] = None
) -> None:
    """
    Route structlog events through a single handler on the root logger.

    Args:
        level: Log level (default: OBJFEED_LOG_LEVEL or INFO)
        json_output: JSON lines when True, plain console lines when False
            (default: OBJFEED_LOG_JSON, on unless set to a false value)

    Raises:
        ValueError: If level is not a known level name or number
    """
    if level is None:
        level = os.getenv("OBJFEED_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.getenv("OBJFEED_LOG_JSON", "true").strip().lower() in _TRUTHY
    numeric_level = resolve_level(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(_formatter(json_output))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger bound with the service name and version."""
    return cast(
        BoundLogger,
        structlog.get_logger(
            name,
            service_name=os.getenv("SERVICE_NAME", "objfeed"),
            version=OBJFEED_VERSION,
        ),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind contextual fields (bucket, task index, ...) for the duration of a block."""
    if not kwargs:
        yield
        return
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = ["configure_logging", "get_logger", "log_context", "resolve_level"]
