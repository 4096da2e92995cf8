"""
Error Handler Utility
=====================

This module provides the exception taxonomy for the statemap explorer, the
logging setup shared by the package, and the guard used by the selection
controller so that a failing collaborator turns a gesture into a no-op
instead of tearing down the interactive session.

Author: Statemap Explorer
Version: 1.0
"""

import logging
import sys
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

T = TypeVar('T')

# Configure logger
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ErrorSeverity:
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_SEVERITY_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class StatemapError(Exception):
    """Base exception for statemap-related errors."""

    def __init__(self, message: str, details: Optional[str] = None,
                 severity: str = ErrorSeverity.ERROR):
        """
        Initialize statemap error.

        Args:
            message: User-friendly error message
            details: Technical details for logging
            severity: Error severity level
        """
        super().__init__(message)
        self.message = message
        self.details = details or message
        self.severity = severity


class DatasetError(StatemapError):
    """Exception for malformed or inconsistent input datasets."""

    def __init__(self, message: str, entity: Optional[str] = None,
                 index: Optional[int] = None, source: Optional[str] = None):
        details = f"{message}\n"
        if source:
            details += f"Source: {source}\n"
        if entity is not None:
            details += f"Entity: {entity}\n"
        if index is not None:
            details += f"Sample index: {index}\n"

        super().__init__(message, details, ErrorSeverity.ERROR)
        self.entity = entity
        self.index = index
        self.source = source


class ConfigError(StatemapError):
    """Exception for invalid viewer configuration values."""
    pass


class RenderError(StatemapError):
    """Exception raised by rendering collaborators."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message, details, ErrorSeverity.WARNING)


def setup_logging(log_level: int = logging.INFO, log_file: Optional[str] = None,
                  logger_name: str = 'statemap') -> logging.Logger:
    """
    Configure logging for the statemap package.

    Args:
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)
        log_file: Optional file to write logs to
        logger_name: Logger to configure (the package logger by default)

    Returns:
        logging.Logger: The configured logger
    """
    package_logger = logging.getLogger(logger_name)

    # Clear any existing handlers
    package_logger.handlers = []
    package_logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            package_logger.error(f"Failed to set up file logging: {e}")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    return package_logger


def log_statemap_error(error: StatemapError, context: str = "") -> None:
    """
    Log a StatemapError at the level matching its severity.

    Args:
        error: The error to log
        context: Context description (e.g., "primary click")
    """
    level = _SEVERITY_LEVELS.get(error.severity, logging.ERROR)
    if context:
        logger.log(level, f"Error in {context}: {error.details}")
    else:
        logger.log(level, f"Error: {error.details}")


def guard_gesture(return_value: Any = None):
    """
    Decorator for gesture handlers.

    A StatemapError raised while handling a gesture is logged and the gesture
    becomes a no-op returning ``return_value``. Any other exception propagates.

    Args:
        return_value: Value to return when an error is caught

    Returns:
        Decorator function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except StatemapError as e:
                log_statemap_error(e, func.__name__)
                return return_value
        return wrapper
    return decorator
