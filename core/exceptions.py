"""
Custom exceptions for the fuel transaction service with structured error context.

This module provides the exception hierarchy used by the import pipeline,
the enrichment engine and the Mapon telematics client. Each exception
carries context information for debugging and logging.

Exception Hierarchy:
    FuelServiceError (base)
    ├── TelematicsError
    │   ├── NetworkError
    │   ├── AuthenticationError
    │   ├── ResourceNotFoundError
    │   ├── RateLimitError
    │   ├── APIRequestError
    │   ├── InvalidResponseError
    │   └── UnitDataNotFoundError
    ├── EnrichmentError
    │   ├── EnrichmentNotFoundError
    │   └── EnrichmentFailedError
    ├── CSVImportError
    │   └── RowValidationError
    ├── StorageError
    └── TransactionNotFoundError

Recoverable per-record conditions (EnrichmentNotFoundError,
EnrichmentFailedError, RowValidationError) are caught and recorded as data.
StorageError always propagates to the caller.
"""

from typing import Optional, Dict, Any
from datetime import datetime


class FuelServiceError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (transaction id, row, url, ...)
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
        self.timestamp = datetime.utcnow()

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
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
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Telematics (Mapon API) Errors
# ============================================================================

class TelematicsError(FuelServiceError):
    """
    Base exception for Mapon API failures.

    Context should include:
        - api_url: The endpoint that failed
        - unit_id: Mapon unit queried
        - status_code: HTTP status code (if applicable)
    """
    pass


class NetworkError(TelematicsError):
    """Transport errors and timeouts."""
    pass


class AuthenticationError(TelematicsError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(TelematicsError):
    """Resource not found (HTTP 404)."""
    pass


class RateLimitError(TelematicsError):
    """Rate limiting errors (HTTP 429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds the provider asked us to wait
        if retry_after:
            self.context["retry_after"] = retry_after


class APIRequestError(TelematicsError):
    """Any other HTTP error status returned by the provider."""
    pass


class InvalidResponseError(TelematicsError):
    """Response body is not valid JSON or has an unexpected shape."""
    pass


class UnitDataNotFoundError(TelematicsError):
    """The provider returned zero or more than one unit for the query."""
    pass


# ============================================================================
# Enrichment Errors
# ============================================================================

class EnrichmentError(FuelServiceError):
    """Base exception for per-transaction enrichment outcomes."""
    pass


class EnrichmentNotFoundError(EnrichmentError):
    """
    No usable sample could be obtained for the transaction.

    Recorded on the transaction as `not_found`.
    """

    @classmethod
    def for_transaction(cls, transaction_id: Optional[int], reason: str) -> "EnrichmentNotFoundError":
        return cls(
            f"Enrichment not found: {reason}",
            context={"transaction_id": transaction_id}
        )


class EnrichmentFailedError(EnrichmentError):
    """
    A sample (or the transaction itself) is incomplete.

    Recorded on the transaction as `failed`.
    """

    @classmethod
    def for_transaction(cls, transaction_id: Optional[int], reason: str) -> "EnrichmentFailedError":
        return cls(reason, context={"transaction_id": transaction_id})


# ============================================================================
# Import Errors
# ============================================================================

class CSVImportError(FuelServiceError):
    """
    The CSV payload as a whole cannot be imported (no header, missing columns).

    Context should include:
        - missing_columns: Required columns absent from the header
    """
    pass


class RowValidationError(CSVImportError):
    """
    A single CSV row failed validation.

    Context should include:
        - row_number: 1-based line number (header is row 1)
        - field_name: Field that failed (if applicable)
    """

    def __init__(
        self,
        message: str,
        row_number: int,
        field_name: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message,
            context={"row_number": row_number, "field_name": field_name},
            original_exception=original_exception
        )
        self.row_number = row_number
        self.field_name = field_name

    def row_message(self) -> str:
        """Message shown to the user in the import report."""
        return f"Row {self.row_number}: {self.message}"


# ============================================================================
# Storage Errors
# ============================================================================

class StorageError(FuelServiceError):
    """
    Exception raised when database operations fail.

    Never converted into an enrichment status or a row failure.

    Context should include:
        - operation: Type of database operation (INSERT, UPDATE, SELECT, DELETE)
        - table_name: Name of the table
    """
    pass


class TransactionNotFoundError(FuelServiceError):
    """Requested transaction id does not exist."""
    pass
