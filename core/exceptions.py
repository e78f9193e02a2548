"""
Custom exceptions for the report pipelines with structured error context.

Every exception carries a human-readable message, a context dictionary and the
original exception (if any) so failures can be logged and stored uniformly.

Exception Hierarchy:
    ETLException (base)
    ├── ConfigurationError
    ├── ExtractionError
    │   ├── APIExtractionError
    │   │   ├── NetworkError
    │   │   ├── AuthenticationError
    │   │   └── ReportFailedError
    │   ├── ResourceNotFoundError
    │   └── ReportTimeoutError (also a builtin TimeoutError)
    ├── TransformationError
    │   └── DataFormatError
    ├── LoadError
    │   ├── DatabaseError
    │   └── PartialWriteError
    └── CheckpointError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (report, ids, counts, etc.)
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

        self.context["error_timestamp"] = self.timestamp.isoformat()

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
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """
    Raised when required configuration is absent. Always raised before any
    external call is made.

    Context should include:
        - missing: Names of the missing settings
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for report extraction failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when a reporting API call fails.

    Context should include:
        - api_url: The API endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated if large)
    """
    pass


class NetworkError(APIExtractionError):
    """Connection failures, timeouts and 5xx responses from a reporting API."""
    pass


class AuthenticationError(APIExtractionError):
    """Authentication failures (HTTP 401, 403) or missing credentials."""
    pass


class ReportFailedError(APIExtractionError):
    """
    The reporting API accepted the job but reported it as failed.

    Context should include:
        - report_id: External id of the failed artifact
        - detail: Error payload returned by the API
    """
    pass


class ResourceNotFoundError(ExtractionError):
    """Resource not found errors (HTTP 404)."""
    pass


class ReportTimeoutError(ExtractionError, TimeoutError):
    """
    Polling exhausted its attempt ceiling before the external job finished.

    Context should include:
        - description: What was being polled
        - attempts: Number of attempts made
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for parsing/aggregation failures."""
    pass


class DataFormatError(TransformationError):
    """
    Downloaded report data is not in a usable shape.

    Context should include:
        - report_id: External id of the report
        - detail: What was wrong with the payload
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for warehouse write failures."""
    pass


class DatabaseError(LoadError):
    """
    Exception raised when warehouse operations fail.

    Context should include:
        - operation: Type of database operation (INSERT, SELECT, CREATE)
        - table_name: Name of the table
    """
    pass


class PartialWriteError(LoadError):
    """
    The warehouse accepted some rows of a write and rejected the rest.

    Context should include:
        - table_name: Name of the table
        - inserted: Number of rows written before the failure
        - failed_rows: Number of rows in the rejected batch
        - batch_index: Index of the rejected batch
    """
    pass


# ============================================================================
# Checkpoint Errors
# ============================================================================

class CheckpointError(ETLException):
    """
    Exception raised when a checkpoint cannot be persisted.

    Context should include:
        - report_key: Checkpoint key
        - path: Checkpoint file path
        - operation: Operation that failed (write, replace)
    """
    pass
