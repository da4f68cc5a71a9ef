"""
Application error taxonomy.

Every error raised by the resource managers derives from AppError and
carries the HTTP status the request boundary should answer with.
"""

from fastapi import status


class AppError(Exception):
    """Base exception for all dashboard operations."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed required input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """State-transition precondition not met."""

    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(AppError):
    """Database operation failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
