"""
Plant Progression Backend — Request Logging Middleware
=======================================================

What:  One access-log line per HTTP request.
How:   Times the request and logs method, path, status, duration, and client
       IP at a level chosen by status code (5xx ERROR, 4xx WARNING, else INFO).
When:  Runs inside RequestIDMiddleware, so the line carries the request ID.

Privacy:
    Logged:     method, path, status, duration, client IP, request ID
    Not logged: query strings, bodies, uploaded files, Authorization header
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("plant_progression.access")

# Probes hit these every few seconds
_QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
