"""
CellSync Backend — Request Logging Middleware
===============================================

What:  One access-log line per HTTP request with method, path, status,
       duration and client IP.
Who:   Applied to every HTTP request; WebSocket sessions are logged by the
       realtime route instead.
When:  After RequestIDMiddleware, so the request ID is already set.

Log level by status:
    5xx → ERROR, 4xx → WARNING, otherwise INFO

Request bodies are never logged; cell values may contain user data.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cellsync.middleware.request_id import request_id_var

logger = logging.getLogger("cellsync.access")

# Paths polled by infrastructure; logging them drowns out real traffic
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

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
            method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "request_id": request_id_var.get(""),
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
