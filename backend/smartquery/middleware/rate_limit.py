"""
SmartQuery Backend: Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter with two budgets.
How:   Tracks request timestamps per (bucket, IP) in memory.

    Buckets:
        "ai"       /api/ai/*        ai_rate_limit_requests per window
        "default"  everything else  rate_limit_requests per window

    Excluded: /health and the API docs.

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window
    2. If the remaining count >= limit, reject with 429 and Retry-After
    3. Otherwise record the current timestamp and let the request through

Single-process only. Multiple workers each keep their own counters.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from smartquery.config import settings
from smartquery.exceptions import RateLimitExceededError
from smartquery.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

AI_PREFIX = "/api/ai/"


def bucket_for(path: str) -> Tuple[str, int]:
    """(bucket name, request limit) for a request path."""
    if path.startswith(AI_PREFIX):
        return "ai", settings.ai_rate_limit_requests
    return "default", settings.rate_limit_requests


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding window rate limiter."""

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Sweep idle clients every this many recorded requests
    CLEANUP_EVERY = 1000

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address; configure
        # uvicorn --proxy-headers in that case.
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )
        bucket, limit = bucket_for(path)
        key = (bucket, client_ip)

        now = time.time()
        window_start = now - settings.rate_limit_window
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for IP %s (%s bucket): %d requests in %ds window",
                client_ip,
                bucket,
                len(timestamps),
                settings.rate_limit_window,
            )
            # Raised exceptions never reach FastAPI's handlers from a
            # BaseHTTPMiddleware, so the error body is rendered here.
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Forget clients with no requests inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(inactive))
