"""
Postify Backend — Access Log Middleware
=========================================

What:  One access-log line per API call.
How:   Logs the matched route template rather than the raw path, so
       "PUT /api/posts/{post_id}" lines group together no matter which post
       was edited, plus the acting user when the route authenticated one
       (get_current_user records it on request.state).

Example line:
    PUT /api/posts/{post_id} 403 12.4ms user=3f0c... [a1b2c3d4]

Log levels follow the status class:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

Request bodies, tokens and post/comment text are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("postify.access")

# Polled by load balancers
SKIPPED_PATHS = {"/api/health"}

ANONYMOUS = "-"


def route_template(request: Request) -> str:
    """`/api/posts/{post_id}` for a matched route, the raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        route = route_template(request)
        user_id = getattr(request.state, "user_id", None) or ANONYMOUS
        rid = request_id_var.get("")

        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms user=%s [%s]",
            request.method,
            route,
            response.status_code,
            duration_ms,
            user_id,
            rid,
            extra={
                "request_id": rid,
                "route": route,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
            },
        )
        return response
