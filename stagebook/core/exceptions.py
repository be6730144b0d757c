"""
Application exceptions.

Domain errors are raised by services and never carry HTTP details.
Routers translate them into the HTTP exceptions below, which the app
renders as ``{"error": ...}`` bodies.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


# ============== Domain Errors ==============

class ArtistError(Exception):
    """Base class for artist repository failures."""


class ArtistValidationError(ArtistError):
    """Required fields are missing or a field has an invalid value."""

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.missing_fields = missing_fields or []


class DuplicateEmailError(ArtistError):
    """An artist with the same email already exists."""

    def __init__(self, email: str):
        super().__init__("An artist with this email already exists")
        self.email = email


class StoreError(ArtistError):
    """The key-value store could not be read or written."""


class StorageError(Exception):
    """Uploading a file to blob storage failed."""


class StorageNotConfiguredError(StorageError):
    """Blob storage credentials are missing."""


class InvalidUploadError(StorageError):
    """The uploaded file has a disallowed type or is too large."""


# ============== HTTP Exceptions ==============

class AppHTTPException(HTTPException):
    """HTTPException with optional extra fields merged into the error body."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.extra = extra or {}


class BadRequestException(AppHTTPException):
    def __init__(self, detail: str = "Bad request", extra: Optional[dict[str, Any]] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, extra)


class ForbiddenException(AppHTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class NotFoundException(AppHTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class ConflictException(AppHTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status.HTTP_409_CONFLICT, detail)


class InternalServerException(AppHTTPException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)
