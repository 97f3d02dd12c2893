"""
Postify Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    PostifyError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden (not the owner)
    ├── NotFoundError            → 404 Not Found
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class PostifyError(Exception):
    """
    Base exception for all Postify application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PostifyError):
    """
    Raised when client input fails validation.

    When:    Blank post content, blank comment text, malformed body or id.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Post content is required",
            "details": {"field": "content"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(PostifyError):
    """
    Raised when a protected route is called without a usable bearer token.

    When:    Missing Authorization header, bad signature, expired token,
             or a token whose user no longer exists.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(PostifyError):
    """
    Raised when the authenticated user does not own the resource.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Not authorized to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PostifyError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/posts/{id} with an unknown id, or a comment id that
             does not belong to the post.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; the service layer converts
    that into this exception.
    """

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(PostifyError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL, constraint names) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
