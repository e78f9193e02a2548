"""
Core utilities and configuration for the ad report ETL.

Modules:
    config: Settings object built once per process from environment / .env
    database: Warehouse engine and session factory
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import load_settings
    from core.database import create_engine, create_session_maker
    from core.exceptions import APIExtractionError, ReportTimeoutError
    from core.logging import setup_logging

Example:
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)
    settings.validate_for_run()
"""

__all__ = [
    "Settings",
    "load_settings",
    "create_engine",
    "create_session_maker",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ConfigurationError",
    "ExtractionError",
    "APIExtractionError",
    "NetworkError",
    "AuthenticationError",
    "ReportFailedError",
    "ResourceNotFoundError",
    "ReportTimeoutError",
    "TransformationError",
    "DataFormatError",
    "LoadError",
    "DatabaseError",
    "PartialWriteError",
    "CheckpointError",
]
