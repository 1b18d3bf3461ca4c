"""
PropDesk Backend — Access Log Middleware
==========================================

One line per request:

    POST /api/properties 201 84.2ms rid=a1b2c3d4 owner=u1 client=10.0.0.7

The owner is the x-user-id header as sent (or "-"); form-field owners are
not visible here because the body is never read by this middleware.
Severity follows the status class: 5xx ERROR, 4xx WARNING, else INFO.
Probe traffic on /health is not logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from propdesk.middleware.request_id import request_id_var

logger = logging.getLogger("propdesk.access")

SKIP_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "owner_id": request.headers.get("x-user-id") or "-",
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms rid=%s owner=%s client=%s",
            fields["method"],
            fields["path"],
            fields["status"],
            elapsed_ms,
            fields["request_id"],
            fields["owner_id"],
            fields["client_ip"],
            extra=fields,
        )
        return response
