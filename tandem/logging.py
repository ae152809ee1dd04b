"""
Structlog setup for the API.

Every line carries the UTC timestamp, the level and, while a request is being
served, its request_id, method and path (bound by ``request_context``).
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """JSON lines in production, plain console lines when json_format is False."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    return structlog.get_logger(name)


@contextmanager
def request_context(method: str, path: str, request_id: Optional[str] = None) -> Iterator[str]:
    """Bind request fields to every log line emitted inside the block; yields the request_id."""
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    try:
        yield request_id
    finally:
        structlog.contextvars.unbind_contextvars("request_id", "method", "path")
