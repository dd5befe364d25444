"""Application error types.

Every error raised on purpose by the image ingestion workflow derives from
``AppError``. Anything else reaching the service boundary is unexpected and
gets wrapped in ``ServiceError``.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for expected application errors."""

    status_code = 500
    code = "APP_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error for API responses."""
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(AppError):
    """Invalid input or a violated business rule."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """Referenced record does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class FileSystemError(AppError):
    """Fetching, reading or writing a file failed."""

    code = "FILE_SYSTEM_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message, details)
        self.retryable = retryable


class SourceFetchError(FileSystemError):
    """Remote image source could not be downloaded."""

    code = "SOURCE_FETCH_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details, retryable=retryable)
        self.http_status = status_code


class SourceNotFoundError(FileSystemError):
    """Local image source does not exist."""

    code = "SOURCE_NOT_FOUND"


class DatabaseError(AppError):
    """A database query or write failed."""

    code = "DATABASE_ERROR"


class ServiceError(AppError):
    """Unexpected runtime failure wrapped at the service boundary."""

    code = "SERVICE_ERROR"
