"""
Custom exceptions for the taxquote analyzer.

Every failure that aborts a whole document is a ``PDFProcessingError`` so
callers only handle one error shape. ``PageExtractionError`` is the only
non-fatal kind: it is recorded against a single page and never raised to
the caller of the processor.
"""

from typing import Any, Optional


class TaxQuoteException(Exception):
    """Base exception for all taxquote errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# PDF Processing Exceptions
# =============================================================================


class PDFProcessingError(TaxQuoteException):
    """Fatal error processing a tax return document."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize with an optional underlying cause.

        Args:
            message: Error message shown to the caller
            original_error: The exception that triggered this failure, if any
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.original_error = original_error


class PDFValidationError(PDFProcessingError):
    """Upload rejected before any parsing took place."""

    pass


class UnsupportedFileTypeError(PDFValidationError):
    """Declared media type is not a PDF."""

    def __init__(self, content_type: str, filename: str) -> None:
        """Initialize with the rejected type."""
        super().__init__(
            "Invalid file type. Only PDF files are supported.",
            details={"content_type": content_type, "filename": filename},
        )


def format_size_limit(max_size: int) -> str:
    """Human-readable size limit: whole or one-decimal MB, bytes below 1MB."""
    megabytes = max_size / (1024 * 1024)
    if megabytes < 1:
        return f"{max_size} bytes"
    if megabytes.is_integer():
        return f"{int(megabytes)}MB"
    return f"{megabytes:.1f}MB"


class PDFSizeError(PDFValidationError):
    """PDF exceeds maximum allowed size."""

    def __init__(self, file_size: int, max_size: int, filename: str) -> None:
        """Initialize with size information."""
        message = f"File size exceeds maximum limit of {format_size_limit(max_size)}."
        super().__init__(
            message,
            details={"file_size": file_size, "max_size": max_size, "filename": filename},
        )


class PDFCorruptedError(PDFProcessingError):
    """PDF could not be opened as a document at all."""

    pass


class PageExtractionError(TaxQuoteException):
    """Text for a single page could not be obtained or analyzed."""

    def __init__(self, page_number: int, message: str) -> None:
        """Initialize with the failing page number."""
        super().__init__(message, {"page_number": page_number})
        self.page_number = page_number


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(TaxQuoteException):
    """Configuration error."""

    pass
