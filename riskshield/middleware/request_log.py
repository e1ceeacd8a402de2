"""Request logging middleware — records method, path, status and latency for every request."""


import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from riskshield.core.request_context import RequestInfo, set_request_info

logger = logging.getLogger("riskshield.request")

# Methods that mutate state are logged at INFO, reads at DEBUG
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

class RequestLogMiddleware(BaseHTTPMiddleware):
    """Logs every request and exposes client details to the audit writer.

    The client IP honours the first ``X-Forwarded-For`` hop when the API
    runs behind a proxy.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        forwarded = request.headers.get("x-forwarded-for")
        ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
        set_request_info(RequestInfo(ip_address=ip, user_agent=request.headers.get("user-agent")))

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        level = logging.INFO if request.method in _WRITE_METHODS or response.status_code >= 400 else logging.DEBUG
        logger.log(
            level,
            "%s %s -> %d (%dms)",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response
