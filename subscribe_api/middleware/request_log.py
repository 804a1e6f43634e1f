import logging
import re
import time
import uuid
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from subscribe_api.core.logging_config import request_id_ctx_var

logger = logging.getLogger("subscribe_api.request")

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    if _REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return uuid.uuid4().hex


def _summary(request: Request, status_code: int, started: float) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "duration_ms": int((time.perf_counter() - started) * 1000),
    }
    # Only subscribe requests pass through the guard.
    stage = getattr(request.state, "guard_stage", None)
    if stage is not None:
        summary["guard_stage"] = stage
        summary["client"] = getattr(request.state, "guard_client", None)
    return summary


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs one summary line for it.

    A well-formed incoming ``X-Request-ID`` is reused so the id can be traced
    through a proxy. Subscribe requests also log the guard stage that answered
    and the client key the rate limiter counted against.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = _request_id(request)
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info("request", extra=_summary(request, response.status_code, started))
            return response
        finally:
            request_id_ctx_var.reset(token)
