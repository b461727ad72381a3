"""Centralized exception classes for the AAC icon importer.

This module provides a hierarchy of custom exceptions with error codes,
HTTP status code mapping, and structured error details for consistent
error handling throughout the application.

Exception Hierarchy:
    AACError (base)
    ├── FileError
    │   ├── FileTooLargeError
    │   └── SpreadsheetFormatError
    ├── FetchError
    │   └── ImageDecodeError
    ├── JobError
    │   ├── JobNotFoundError
    │   └── JobExpiredError
    ├── BoardError
    │   ├── FolderNotFoundError
    │   ├── IconNotFoundError
    │   └── ProtectedFolderError
    └── ValidationError

Only SpreadsheetFormatError is fatal to an import batch. FetchError is
raised per icon and absorbed by the pipeline, which drops the record.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the application.

    Error codes are grouped by category:
    - E1xxx: File/spreadsheet errors
    - E3xxx: Import job errors
    - E4xxx: Import processing errors
    - E5xxx: External resource errors
    - E6xxx: Folder/icon board errors
    - E9xxx: Internal/unexpected errors
    """

    # File errors (E1xxx)
    FILE_READ_ERROR = "E1001"
    FILE_TOO_LARGE = "E1002"
    SPREADSHEET_FORMAT = "E1003"
    FILE_WRITE_ERROR = "E1004"

    # Job errors (E3xxx)
    JOB_NOT_FOUND = "E3001"
    JOB_EXPIRED = "E3002"
    JOB_PROCESSING_FAILED = "E3003"

    # Input errors (E4xxx)
    INVALID_INPUT = "E4002"

    # External resource errors (E5xxx)
    FETCH_FAILED = "E5001"
    IMAGE_DECODE_FAILED = "E5002"

    # Board errors (E6xxx)
    FOLDER_NOT_FOUND = "E6001"
    ICON_NOT_FOUND = "E6002"
    FOLDER_PROTECTED = "E6003"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class HTTPStatusMixin:
    """Mixin that provides HTTP status code for exceptions.

    Subclasses should set the `http_status` class attribute.
    """

    http_status: int = 500

    def get_http_status(self) -> int:
        """Get the HTTP status code for this exception.

        Returns:
            HTTP status code appropriate for this error.
        """
        return self.http_status


class AACError(Exception, HTTPStatusMixin):
    """Base exception for all icon importer errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# File Errors (E1xxx)
# =============================================================================


class FileError(AACError):
    """Base class for file-related errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FILE_READ_ERROR,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic file.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path


class FileTooLargeError(FileError):
    """Raised when an uploaded workbook exceeds the maximum allowed size."""

    http_status: int = 413

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"File size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_TOO_LARGE,
            file_path=file_path,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class SpreadsheetFormatError(FileError):
    """Raised when a workbook cannot be opened or a worksheet cannot be read.

    This is the only error that aborts an import batch.
    """

    http_status: int = 422

    def __init__(
        self,
        message: str,
        sheet_name: str | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending sheet, if any.

        Args:
            message: Error message.
            sheet_name: Worksheet that could not be read.
            file_path: Optional workbook path.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(
            message=message,
            error_code=ErrorCode.SPREADSHEET_FORMAT,
            file_path=file_path,
            details=details,
        )
        self.sheet_name = sheet_name


# =============================================================================
# Fetch Errors (E5xxx)
# =============================================================================


class FetchError(AACError):
    """Raised when an icon image cannot be downloaded."""

    http_status: int = 502

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        error_code: ErrorCode = ErrorCode.FETCH_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the URL that failed.

        Args:
            message: Error message.
            url: The image link that could not be fetched.
            status_code: HTTP status returned by the remote host, if any.
            error_code: Error code.
            details: Additional details.
        """
        details = details or {}
        details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, error_code, details)
        self.url = url
        self.status_code = status_code


class ImageDecodeError(FetchError):
    """Raised when downloaded bytes are not a decodable image."""

    def __init__(
        self,
        url: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message or f"Downloaded content is not a valid image: {url}",
            url=url,
            error_code=ErrorCode.IMAGE_DECODE_FAILED,
            details=details,
        )


# =============================================================================
# Job Errors (E3xxx)
# =============================================================================


class JobError(AACError):
    """Base class for import job errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.JOB_PROCESSING_FAILED,
        job_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if job_id:
            details["job_id"] = job_id
        super().__init__(message, error_code, details)
        self.job_id = job_id


class JobNotFoundError(JobError):
    """Raised when an import job is not found."""

    http_status: int = 404

    def __init__(
        self,
        job_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = message or f"Import job not found: {job_id}"
        super().__init__(
            message=message,
            error_code=ErrorCode.JOB_NOT_FOUND,
            job_id=job_id,
            details=details,
        )


class JobExpiredError(JobError):
    """Raised when an import job record has outlived its TTL."""

    http_status: int = 410

    def __init__(
        self,
        job_id: str,
        ttl_hours: int | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if ttl_hours:
            details["ttl_hours"] = ttl_hours
        message = message or f"Import job has expired: {job_id}"
        super().__init__(
            message=message,
            error_code=ErrorCode.JOB_EXPIRED,
            job_id=job_id,
            details=details,
        )


# =============================================================================
# Board Errors (E6xxx)
# =============================================================================


class BoardError(AACError):
    """Base class for folder and icon collection errors."""

    http_status: int = 400


class FolderNotFoundError(BoardError):
    """Raised when a folder id does not exist in the store."""

    http_status: int = 404

    def __init__(self, folder_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["folder_id"] = folder_id
        super().__init__(
            f"Folder not found: {folder_id}", ErrorCode.FOLDER_NOT_FOUND, details
        )
        self.folder_id = folder_id


class IconNotFoundError(BoardError):
    """Raised when an icon id does not exist in any folder."""

    http_status: int = 404

    def __init__(self, icon_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["icon_id"] = icon_id
        super().__init__(
            f"Icon not found: {icon_id}", ErrorCode.ICON_NOT_FOUND, details
        )
        self.icon_id = icon_id


class ProtectedFolderError(BoardError):
    """Raised when deleting a folder flagged as default."""

    http_status: int = 409

    def __init__(self, folder_name: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["folder_name"] = folder_name
        super().__init__(
            f"Default folder cannot be deleted: {folder_name}",
            ErrorCode.FOLDER_PROTECTED,
            details,
        )
        self.folder_name = folder_name


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(AACError):
    """General validation error for input data."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            field: Field that failed validation.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_INPUT,
            details=details,
        )
