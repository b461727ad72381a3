"""Utilities package for the AAC icon importer.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from aac_icon_import.utils.exceptions import (
    AACError,
    ErrorCode,
    FetchError,
    FileError,
    HTTPStatusMixin,
    JobError,
    SpreadsheetFormatError,
    ValidationError,
)
from aac_icon_import.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "AACError",
    "ErrorCode",
    "FetchError",
    "FileError",
    "HTTPStatusMixin",
    "JobError",
    "SpreadsheetFormatError",
    "ValidationError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
