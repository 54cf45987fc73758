"""
SocialHub Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py turn them into JSON error
       responses with the matching HTTP status code.
Who:   Raised by services, dependencies and routes; caught by global handlers.

Exception Hierarchy:
    SocialHubError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 Internal Server Error (generic message)
    └── ExternalServiceError     → 500 Internal Server Error (drive / sheets)

The context dict is logged server-side. Only ValidationError and
PermissionDeniedError echo it back to the client as `details`.
"""

from typing import Any, Dict, Optional


class SocialHubError(Exception):
    """
    Base exception for all SocialHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SocialHubError):
    """
    Raised when client input fails a business rule.

    When:    Duplicate username/email, empty comment text, self-follow,
             media post without files, reply to a reply.
    HTTP:    400 Bad Request

    Schema-level failures (wrong types, missing fields) are raised by FastAPI
    as RequestValidationError and are mapped to the same 400 response.
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


class AuthenticationError(SocialHubError):
    """
    Raised when the caller cannot be identified.

    When:    Missing bearer token, bad signature, expired token, token subject
             that no longer resolves to a user, wrong login credentials.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(SocialHubError):
    """
    Raised when an authenticated user acts on a resource they do not own.

    When:    Archiving another user's post, reading another user's archived
             post, listing a private profile's posts without following it,
             creating a media post without a connected drive.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SocialHubError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    NotFoundError so the HTTP layer can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(SocialHubError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The message returned to the client is always generic.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExternalServiceError(SocialHubError):
    """
    Raised when a third-party call that is the primary action fails.

    When:    Google OAuth code exchange, media upload for a new post.
    HTTP:    500 Internal Server Error

    Side-channel calls (the spreadsheet mirror, token refresh, cleanup of
    uploaded files) never raise this; they log and continue.
    """

    def __init__(
        self,
        service: str = "external service",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(
            message=message or f"The {service} is temporarily unavailable. Please try again later.",
            context=ctx,
        )
        self.service = service
