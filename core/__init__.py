"""
Core utilities and configuration for the contactflow service.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import build_engine, build_session_factory
    from core.exceptions import ExtractError, MappingError, LoadError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Open a session
    session_factory = build_session_factory(build_engine())
    async with session_factory() as session:
        pass
"""

__all__ = [
    "config",
    "database",
    "exceptions",
    "logging",
]
