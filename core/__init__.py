"""
Core utilities and configuration for the sensor sync backend.

This package provides foundational components used throughout the migration pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import get_session
    from core.exceptions import SourceConnectionError, CalibrationError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()
    
    # Get database session
    async for session in get_session():
        # Perform database operations
        pass
"""

from core.config import settings
from core.logging import setup_logging
from core.exceptions import (
    MigrationException,
    ExtractionError,
    SourceConnectionError,
    SourceQueryError,
    TransformationError,
    MalformedDocumentError,
    CalibrationError,
    ExpressionError,
    ExpressionSyntaxError,
    UnboundVariableError,
    ExpressionEvaluationError,
    LoadError,
    BatchPersistenceError,
    SyncStateError,
    MigrationAlreadyRunningError,
    RetryableError,
    NonRetryableError,
)

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "MigrationException",
    "ExtractionError",
    "SourceConnectionError",
    "SourceQueryError",
    "TransformationError",
    "MalformedDocumentError",
    "CalibrationError",
    "ExpressionError",
    "ExpressionSyntaxError",
    "UnboundVariableError",
    "ExpressionEvaluationError",
    "LoadError",
    "BatchPersistenceError",
    "SyncStateError",
    "MigrationAlreadyRunningError",
    "RetryableError",
    "NonRetryableError",
]
