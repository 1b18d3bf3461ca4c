"""
PropDesk Backend — Custom Exception Hierarchy
===============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions let services fail with intent (bad input, missing
       record, broken backing store) while global handlers pick the status code.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses.
Who:   Raised by services and store adapters; caught by global handlers.

Exception Hierarchy:
    PropDeskError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── InvalidIdError           → 400 Bad Request (id is not a UUID)
    ├── NotFoundError            → 404 Not Found
    └── UpstreamError            → 500 Internal Server Error
        ├── DatabaseError        → record store failed
        └── ObjectStorageError   → object store failed
"""

from typing import Any, Dict, Optional


class PropDeskError(Exception):
    """
    Base exception for all PropDesk application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PropDeskError):
    """
    Raised when client input fails validation.

    When:    Missing owner id, empty note text, too many or too large files.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "Note text is required",
            "code": "validation_error",
            "details": {"field": "text"}
        }
    """

    code = "validation_error"

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


class InvalidIdError(PropDeskError):
    """
    Raised when a path id cannot be parsed as a property identifier.

    HTTP:    400 Bad Request
    """

    code = "invalid_id"

    def __init__(self, raw_id: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["raw_id"] = raw_id
        super().__init__(message=f"'{raw_id}' is not a valid property id", context=ctx)
        self.raw_id = raw_id


class NotFoundError(PropDeskError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown property id, or an image key that is not on the property.
    HTTP:    404 Not Found
    """

    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UpstreamError(PropDeskError):
    """
    Raised when a backing service call fails.

    HTTP:    500 Internal Server Error
    Nothing is retried and nothing already written is cleaned up; blobs
    uploaded before a failure stay in the bucket.
    """

    code = "upstream_error"


class DatabaseError(UpstreamError):
    """
    Raised when record store operations fail unexpectedly.

    Security Note:
        Detailed error info (SQL, constraint names) goes to the server log
        only; the client sees the generic message.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ObjectStorageError(UpstreamError):
    """Raised when writing to (or probing) the object store fails."""

    def __init__(
        self,
        message: str = "Failed to store uploaded image. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
