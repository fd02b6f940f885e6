"""Core primitives shared by every preserve layer: errors, logging, settings."""

from .errors import (
    ConfigurationError,
    CycleDetectedError,
    DuplicateModuleError,
    ErrorCategory,
    ErrorContext,
    InvalidRequestError,
    LoadError,
    PreserveError,
    StepLifecycleError,
    UnknownModuleError,
    categorize_error,
)
from .logging import LogContext, configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "CycleDetectedError",
    "DuplicateModuleError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidRequestError",
    "LoadError",
    "PreserveError",
    "StepLifecycleError",
    "UnknownModuleError",
    "categorize_error",
    "LogContext",
    "configure_logging",
    "get_logger",
]
