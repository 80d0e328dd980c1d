from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from clinic.core.logging import bind_request, get_logger

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with its id and times the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = bind_request(
            request.headers.get(REQUEST_ID_HEADER),
            method=request.method,
            path=request.url.path,
        )
        log = get_logger("clinic.request")
        log.debug("request.start", query=str(request.query_params) or None)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "request.error",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = rid
        log.info(
            "request.end",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
