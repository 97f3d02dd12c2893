"""
Postify Backend — Request ID Middleware
=========================================

What:  Assigns a short correlation id to each request and echoes it back.
How:   A client-supplied X-Request-ID is reused only when it is a short
       token of letters, digits, dot, dash or underscore; anything else
       (empty, too long, containing spaces or newlines) is replaced with a
       fresh id so it can't forge or split access-log lines.
Who:   Read by the access logger and the exception handlers, which put it
       in every error body.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def resolve_request_id(header_value: Optional[str]) -> str:
    """Client's id when it is a safe token, otherwise a new one."""
    if header_value and _CLIENT_ID_PATTERN.match(header_value):
        return header_value
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
