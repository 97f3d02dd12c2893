"""
Postify Backend — Request Body Size Limit
===========================================

What:  Rejects requests whose declared Content-Length exceeds the limit.
How:   Reads the Content-Length header before the body is consumed and
       short-circuits with 413 and the standard error body.

Configuration (from settings):
    max_body_size: Maximum accepted body in bytes (default 10MB)

Chunked uploads without Content-Length are not counted here; uvicorn's own
limits apply to those.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Returns 413 Payload Too Large for oversized request bodies."""

    def __init__(self, app, max_body_size: int = 10_485_760, **kwargs):
        super().__init__(app, **kwargs)
        self.max_body_size = max_body_size

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0

            if declared > self.max_body_size:
                logger.warning(
                    "Rejected %s %s: body of %d bytes exceeds limit of %d",
                    request.method,
                    request.url.path,
                    declared,
                    self.max_body_size,
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": "payload_too_large",
                        "message": "Request body is too large",
                        "details": {"max_body_size": self.max_body_size},
                        "request_id": request_id_var.get(""),
                    },
                )

        return await call_next(request)
