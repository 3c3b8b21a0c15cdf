"""
Plant Progression Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions, one per error outcome the API reports.
Why:   Services raise these instead of building HTTP responses; global handlers
       registered in main.py turn each type into its status code and a short
       JSON body.
How:   Each exception carries a user-facing message and an optional context
       dict. Context is logged server-side and never returned to clients.

Exception Hierarchy:
    PlantProgressionError (base)  → 500
    ├── ValidationError           → 400 Bad Request
    ├── AuthenticationError       → 401 Unauthorized (missing token, bad login)
    ├── ForbiddenError            → 403 Forbidden (bad/expired token, not the owner)
    ├── NotFoundError             → 404 Not Found
    ├── ConflictError             → 409 Conflict (username taken)
    ├── FileStorageError          → 500 Internal Server Error
    └── DatabaseError             → 500 Internal Server Error

Note on 403:
    An invalid token and a valid token for the wrong owner share one status
    code. Clients cannot tell "not authenticated" apart from "not entitled".
"""

from typing import Any, Dict, Optional


class PlantProgressionError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlantProgressionError):
    """
    Raised when client input fails validation.

    When:    Malformed plant id, bad image type or size, missing fields,
             or a PATCH that changes nothing.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "bad_request"

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


class AuthenticationError(PlantProgressionError):
    """
    Raised when the caller has not proven an identity.

    When:    No bearer token on a protected route, or wrong username/password
             on login. The login message never says which half was wrong.
    HTTP:    401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Missing auth token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(PlantProgressionError):
    """
    Raised when the presented identity may not perform the request.

    When:    Token signature/expiry check fails, or the caller is not the
             plant's author.
    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PlantProgressionError):
    """
    Raised when a requested plant or progress entry does not exist.

    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

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


class ConflictError(PlantProgressionError):
    """
    Raised when a create collides with an existing record.

    When:    Registering a username that is already taken.
    HTTP:    409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(PlantProgressionError):
    """
    Raised when writing an uploaded image to disk fails.

    When:    Disk full, permission denied, upload directory missing.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PlantProgressionError):
    """
    Raised when a store operation fails unexpectedly.

    Security Note:
        The message returned to the client is always generic. The driver
        error is logged server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
