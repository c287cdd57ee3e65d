"""
Custom exceptions for the migration pipeline with structured error context.

This module provides the exception hierarchy used by the sensor-data
migration pipeline. Each exception carries context information for
debugging and monitoring.

Exception Hierarchy:
    MigrationException (base)
    ├── ExtractionError
    │   ├── SourceConnectionError
    │   └── SourceQueryError
    ├── TransformationError
    │   ├── MalformedDocumentError
    │   ├── CalibrationError
    │   └── ExpressionError
    │       ├── ExpressionSyntaxError
    │       ├── UnboundVariableError
    │       └── ExpressionEvaluationError
    ├── LoadError
    │   └── BatchPersistenceError
    ├── SyncStateError
    ├── MigrationAlreadyRunningError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class MigrationException(Exception):
    """
    Base exception for all migration-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source id, sync name, etc.)
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
# Retry Strategy Mixins
# ============================================================================

class RetryableError(MigrationException):
    """
    Mixin for errors that a later run may recover from.

    Use this for transient errors like:
    - Raw data source unreachable
    - Temporary database connection issues
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(MigrationException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent or caller errors like:
    - A migration already in progress
    - Invalid calibration configuration
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(MigrationException):
    """Base exception for raw data source failures."""
    pass


class SourceConnectionError(RetryableError, ExtractionError):
    """
    Raised when the raw data source cannot be reached at run start.

    Context should include:
        - database: Source database name
        - collection: Source collection name
    """
    pass


class SourceQueryError(ExtractionError):
    """
    Raised when querying the raw data source fails or the source is not connected.

    Context should include:
        - operation: Query that failed (fetch_since, fetch_all, ...)
        - collection: Source collection name
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(MigrationException):
    """Base exception for per-record transformation failures."""
    pass


class MalformedDocumentError(TransformationError):
    """
    Raised when a raw source document lacks a usable id or timestamp.

    Context should include:
        - field: Offending identity field
        - value: Offending value (repr)
    """
    pass


class CalibrationError(TransformationError):
    """
    Raised when a raw sensor value cannot be calibrated.

    Context should include:
        - parameter: Name of the parameter type
        - reading_key: Raw channel name
        - reading_value: Offending raw value
    """
    pass


class ExpressionError(TransformationError):
    """Base exception for polynomial parsing and evaluation failures."""
    pass


class ExpressionSyntaxError(ExpressionError):
    """
    Raised when an expression cannot be parsed.

    Context should include:
        - expression: The expression text
        - position: Character offset of the failure
    """
    pass


class UnboundVariableError(ExpressionError):
    """
    Raised when an expression references a variable with no bound value.

    Context should include:
        - expression: The expression text
        - variable: Name of the unresolved variable
    """
    pass


class ExpressionEvaluationError(ExpressionError):
    """Raised for arithmetic failures (division by zero, overflow, complex results)."""
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(MigrationException):
    """Base exception for data loading failures."""
    pass


class BatchPersistenceError(LoadError):
    """
    Raised when writing a batch of normalized readings fails.

    Context should include:
        - batch_size: Number of readings in the failed write
        - table_name: Table being written
    """
    pass


# ============================================================================
# Sync State / Scheduling Errors
# ============================================================================

class SyncStateError(MigrationException):
    """
    Raised when reading or writing the sync watermark fails.

    Context should include:
        - sync_name: Name of the sync process
        - operation: Operation that failed (read, upsert, reset)
    """
    pass


class MigrationAlreadyRunningError(NonRetryableError):
    """Raised when a manual migration is requested while another run is in progress."""

    def __init__(
        self,
        message: str = "Migration is already running",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
