"""
CellSync Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the edit log, spreadsheets,
       permissions and the authentication boundary.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py translate them into
       structured JSON error responses with the matching HTTP status code.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    CellSyncError (base)
    ├── ValidationError            → 400 Bad Request
    ├── AuthenticationError        → 401 Unauthorized
    ├── PermissionDenied           → 403 Forbidden
    ├── NotFoundError              → 404 Not Found
    ├── DatabaseError              → 500 Internal Server Error
    │   └── StoreUnavailable       → 500 Internal Server Error
    └── AuthProviderUnavailable    → 503 Service Unavailable

Nothing in this hierarchy is retried. Store and provider failures are wrapped
once at the layer that talks to the external system and then propagate
unchanged to the gateway.
"""


from typing import Any, Dict, Optional


class CellSyncError(Exception):
    """
    Base exception for all CellSync application errors.

    Attributes:
        message:  User-facing description, safe to return in the API response.
                  Falls back to the class's ``default_message``.
        context:  Debug details for the logs; only returned to the client
                  when a handler exposes them as ``details``.
    """

    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CellSyncError):
    """
    Raised when client input fails validation.

    When:    Missing or blank edit fields, malformed cell address, page size
             out of range, duplicate permission grant.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "'cell' is required and must be a non-empty string",
            "details": {"field": "cell"}
        }
    """

    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        details = dict(context or {})
        if field:
            details["field"] = field
        super().__init__(message=message, context=details)
        self.field = field


class AuthenticationError(CellSyncError):
    """
    Raised when a bearer credential is missing, invalid or expired, or when
    the auth provider reports a role this service does not recognise.

    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    default_message = "Authentication required"


class PermissionDenied(CellSyncError):
    """Authenticated user acting on a spreadsheet they neither own nor administer (403)."""

    default_message = "You do not have permission to perform this action"


class NotFoundError(CellSyncError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown spreadsheet or permission id, or a history ``before``
             watermark that names no edit of that spreadsheet.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        details = dict(context or {}, resource=resource)
        if resource_id:
            details["resource_id"] = resource_id
            message = f"{resource} with ID '{resource_id}' was not found"
        else:
            message = f"The requested {resource} was not found"
        super().__init__(message=message, context=details)


class DatabaseError(CellSyncError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The SQL statement,
    constraint name and driver error stay in the server logs.
    """

    default_message = "A database error occurred. Please try again later."


class StoreUnavailable(DatabaseError):
    """
    Raised when the relational store cannot be reached or rejects a
    statement (connection refused, dropped connection, lock timeout).

    Writes are all-or-nothing: when this surfaces from an append, the caller
    must assume nothing was stored.
    """

    default_message = "The data store is currently unavailable. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        details = dict(context or {})
        if operation:
            details["operation"] = operation
        super().__init__(message=message, context=details)
        self.operation = operation


class AuthProviderUnavailable(CellSyncError):
    """
    Raised when the external auth provider cannot verify a token because it
    is unreachable, misconfigured, or answered with a server error.

    HTTP:    503 Service Unavailable
    """

    default_message = "Authentication service is temporarily unavailable"
