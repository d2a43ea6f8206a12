"""
SmartQuery Backend: Request Logging Middleware
==============================================

What:  One access-log line per request with status and duration.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware, so the correlation id is available.

What we log vs what we DON'T log:
    ✅ Log: method, path, status, duration, client IP, request ID
    ❌ Don't log: request bodies (passwords, SQL text), Authorization header,
       share tokens in /share/ paths (they grant read access)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from smartquery.middleware.request_id import request_id_var

logger = logging.getLogger("smartquery.access")

SHARE_PREFIXES = ("/share/", "/api/share/")


def loggable_path(path: str) -> str:
    """Path with any share token masked."""
    for prefix in SHARE_PREFIXES:
        if path.startswith(prefix) and len(path) > len(prefix):
            return f"{prefix}***"
    return path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration for each request.

    Level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
    /health is skipped because probes hit it every few seconds.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path

        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        shown_path = loggable_path(path)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            shown_path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": shown_path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
