"""structlog setup for the API process.

Per-request fields (request_id, user_id, path) live in structlog's contextvars
and are merged into every event logged while the request is being handled.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog


def configure_logging(json: bool = True, level: str = "INFO", **static: Any) -> None:
    """Route structlog through stdlib logging at ``level``.

    ``static`` fields (app name, environment) are stamped on every event.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")

    def stamp_static(_logger: Any, _method: str, event_dict: dict[str, Any]):
        for key, value in static.items():
            event_dict.setdefault(key, value)
        return event_dict

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            stamp_static,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="ts", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_request(request_id: str | None, **fields: Any) -> str:
    """Start a fresh log context for one request and return its id."""
    structlog.contextvars.clear_contextvars()
    rid = request_id or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=rid, **fields)
    return rid


def set_user_id(user_id: str | None) -> None:
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def current_request_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("request_id")
