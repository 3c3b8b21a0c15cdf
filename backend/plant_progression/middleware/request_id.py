"""
Plant Progression Backend — Request ID Middleware
==================================================

What:  Tags every request with a short correlation ID.
Why:   Every log line and every error body of one request carries the same
       ID, so a user-reported error maps straight to the server logs.
How:   Reuses a well-formed inbound X-Request-ID (the frontend may set one),
       otherwise generates 8 hex chars. The ID lives in a ContextVar (one value
       per in-flight request, safe under asyncio) and is echoed back in the
       X-Request-ID response header.
"""

import logging
import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Inbound IDs end up in log lines; only accept short, printable tokens
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDFilter(logging.Filter):
    """Injects the current request ID as %(request_id)s on every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        inbound = request.headers.get("X-Request-ID", "")
        rid = inbound if _VALID_REQUEST_ID.match(inbound) else uuid.uuid4().hex[:8]

        # Each request runs in its own task context; no reset needed
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
