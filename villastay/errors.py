"""Domain error taxonomy.

Every business-rule failure raised by the services is an :class:`AppError`.
The API layer converts them into the standard response envelope, so services
never import FastAPI.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto an HTTP status and client message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input: dates, amounts, ids."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticityError(AppError):
    """Payment proof does not check out. Terminal, never retried."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Payment verification failed"


class StateError(AppError):
    """Operation not allowed in the entity's current state."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid state for this operation"


class NotFoundError(AppError):
    """Entity is absent or not owned by the requester."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    """Dates unavailable, coupon scope mismatch, duplicate code or payment."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class ProviderError(AppError):
    """External payment provider unreachable or rejected the call."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Payment provider error"
