"""
Error taxonomy shared by the storage layer, the services and the HTTP layer.

Each error carries the HTTP status it maps to; the exception handlers
registered in ``utsalapp.main`` turn them into JSON responses.
"""
from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors raised by the core."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(AppError):
    """Malformed or rule-violating input. Names the offending field."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"

    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        super().__init__(detail or f"Invalid value for '{field}'")

    def to_dict(self) -> dict:
        return {"detail": self.detail, "field": self.field}


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed"


class BackendUnavailable(AppError):
    """The entity store could not complete an operation. Never retried here."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage backend unavailable"
