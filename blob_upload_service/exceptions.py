"""
Exception classes for the blob upload service.
"""
from typing import Any, Dict, Optional


class BlobUploadError(Exception):
    """Base exception for all blob upload errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(BlobUploadError):
    """Raised when an upload request is not a valid combination of options."""

    def __init__(self, message: str, blob: Optional[str] = None) -> None:
        details = {"blob": blob} if blob else {}
        super().__init__(message, details)
        self.blob = blob


class ConfigurationError(BlobUploadError):
    """Raised for configuration-related errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class SourceError(BlobUploadError):
    """Raised when the source file cannot be opened or inspected."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class ScanError(BlobUploadError):
    """Raised when the source cannot be read while looking for non-empty pages."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.offset = offset


class RangeUploadError(BlobUploadError):
    """Raised when a single byte range cannot be read or written."""

    def __init__(self, message: str, offset: int, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.offset = offset
        self.source = source
