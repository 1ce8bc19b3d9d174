"""
Custom exceptions for the archive importer with structured error context.

Each exception carries a context dictionary for logging, and the
hierarchy mirrors how far an error is allowed to propagate: usage and
provisioning errors end the process, everything below the hour level is
logged and contained.

Exception Hierarchy:
    ImporterException (base)
    ├── UsageError
    │   └── InvalidRangeError
    ├── SkyError
    ├── ProvisioningError
    │   ├── ServerUnavailableError
    │   └── TableExistsError
    ├── ExtractionError
    │   ├── FetchError
    │   └── DecompressionError
    ├── DecodeError
    └── DeliveryError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ImporterException(Exception):
    """
    Base exception for all importer errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, hour, table, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Usage Errors
# ============================================================================

class UsageError(ImporterException):
    """Bad or missing command line arguments. Fatal, no network activity."""
    pass


class InvalidRangeError(UsageError):
    """
    Raised when the requested hour range cannot be built.

    Context should include:
        - value: The textual bound that failed to parse (if applicable)
    """
    pass


# ============================================================================
# Sky Client Errors
# ============================================================================

class SkyError(ImporterException):
    """
    Raised when a request to the Sky server fails.

    Context should include:
        - method: HTTP method
        - path: Request path on the Sky server
        - status_code: HTTP status code (if a response was received)
    """
    pass


# ============================================================================
# Provisioning Errors
# ============================================================================

class ProvisioningError(ImporterException):
    """Setup of the destination table failed. Fatal, nothing is fetched."""
    pass


class ServerUnavailableError(ProvisioningError):
    """The Sky server did not answer the ping."""
    pass


class TableExistsError(ProvisioningError):
    """The table already exists and overwriting was not requested."""
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ImporterException):
    """Base exception for per-hour archive failures. The hour is skipped."""
    pass


class FetchError(ExtractionError):
    """
    Exception raised when an hourly archive cannot be retrieved.

    Context should include:
        - url: The archive URL
        - status_code: HTTP status code (if applicable)
    """
    pass


class DecompressionError(ExtractionError):
    """
    Exception raised when an archive body is not valid gzip.

    Context should include:
        - url: The archive URL
    """
    pass


# ============================================================================
# Record Errors
# ============================================================================

class DecodeError(ImporterException):
    """
    A single archive record could not be parsed. The record is dropped.

    Attributes:
        line_number: 1-based record number within the hour
    """

    def __init__(
        self,
        message: str,
        line_number: int,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.line_number = line_number
        context = dict(context or {})
        context["line_number"] = line_number
        super().__init__(message, context, original_exception)


# ============================================================================
# Delivery Errors
# ============================================================================

class DeliveryError(ImporterException):
    """
    Exception raised when an hour batch could not be written to Sky.

    Context should include:
        - table_name: Destination table
        - hour: The hour the batch belongs to
        - events: Number of events in the batch
    """
    pass
