"""Custom exceptions and error handling utilities.

Services raise subclasses of :class:`AppException`. Each carries a stable
``code`` and the HTTP status it maps to; ``portal.main`` turns them into
``{"error": code, "message": ...}`` responses.
"""
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base exception for application errors."""

    code = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "", **extra):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.extra = extra


class NotFoundError(AppException):
    """Raised when a project or token is unknown."""
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(AppException):
    """Raised when a required field is missing or malformed."""
    code = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppException):
    """Raised for a wrong password or a bad/missing shared secret."""
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ConflictError(AppException):
    """Raised when an operation does not apply to the current state."""
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ExpiredError(AppException):
    """Raised when a token is past its expiry."""
    code = "expired"
    status_code = status.HTTP_410_GONE


class AlreadyUsedError(AppException):
    """Raised when a single-use token is presented again."""
    code = "already_used"
    status_code = status.HTTP_409_CONFLICT


class UnavailableError(AppException):
    """Raised when the key-value store is unreachable or misconfigured."""
    code = "unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException as a JSON error response."""
    body = {"error": exc.code, "message": exc.message}
    body.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=body)


def authentication_error(message: str = "Invalid credentials") -> HTTPException:
    """
    Create a standardized 401 authentication error.

    Args:
        message: Authentication error message

    Returns:
        HTTPException with 401 status
    """
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )
