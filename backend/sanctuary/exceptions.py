"""
Sanctuary Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) map them to
       HTTP status codes and a JSON error body.
Who:   Raised by services and the authentication gate; caught by handlers.

Exception Hierarchy:
    SanctuaryError (base)
    ├── ValidationError            → 400 Bad Request
    ├── LimitExceededError         → 400 Bad Request (sermon cap reached)
    ├── UnauthorizedError          → 401 Unauthorized
    ├── InvalidTokenError          → 401 (raised by TokenService, translated by the gate)
    ├── NotFoundError              → 404 Not Found
    ├── ConflictError              → 409 Conflict
    ├── UnsupportedMediaTypeError  → 415 Unsupported Media Type
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── FileStorageError           → 500 Internal Server Error
    └── DatabaseError              → 500 Internal Server Error
"""

from typing import Any, Dict, Iterable, Optional


class SanctuaryError(Exception):
    """
    Base exception for all Sanctuary application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, NOT returned for server errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SanctuaryError):
    """Client input failed a business rule (empty upload, oversized file)."""

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


class LimitExceededError(SanctuaryError):
    """
    Raised when creating a sermon would exceed the stored-sermon cap.

    HTTP: 400 Bad Request
    """

    def __init__(
        self,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "You have reached your limit for sermons. "
            f"Your account only allows {limit} sermons at a time."
        )
        ctx = context or {}
        ctx["limit"] = limit
        super().__init__(message=message, context=ctx)
        self.limit = limit


class UnauthorizedError(SanctuaryError):
    """
    Raised when a request lacks valid credentials or is not permitted.

    When:    Missing/invalid/expired bearer token, unapproved account,
             wrong password, or an update that affected zero records.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "You must login to access this page.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(SanctuaryError):
    """Token signature, structure, claims or expiry failed verification."""

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SanctuaryError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that None
    into NotFoundError so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"Could not find a {resource} with ID of {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(SanctuaryError):
    """Raised when a unique value (user email) is already taken. HTTP 409."""

    def __init__(
        self,
        message: str = "A record with this value already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnsupportedMediaTypeError(SanctuaryError):
    """
    Raised when an uploaded file's declared MIME type is not allowed.

    HTTP: 415 Unsupported Media Type
    """

    def __init__(
        self,
        media_type: Optional[str],
        allowed: Iterable[str] = (),
        context: Optional[Dict[str, Any]] = None,
    ):
        allowed_list = sorted(allowed)
        message = (
            f"File type '{media_type or 'unknown'}' is not supported. "
            f"Allowed types: {', '.join(allowed_list)}"
        )
        ctx = context or {}
        ctx["media_type"] = media_type
        ctx["allowed"] = allowed_list
        super().__init__(message=message, context=ctx)
        self.media_type = media_type


class FileStorageError(SanctuaryError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, or the audio file backing a
             sermon is missing at delete time.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SanctuaryError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SanctuaryError):
    """Client exceeded the per-IP credential endpoint rate limit. HTTP 429."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
