"""Shared types for trycore.

Import from here rather than submodules:
    from trycore.types import DebugLevel, Verbosity, ValidationResult
"""

from .enums import (
    DebugLevel,
    DispatchState,
    FailureOrigin,
    LogFormat,
    LogLevel,
    Verbosity,
)
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "DebugLevel",
    "Verbosity",
    "FailureOrigin",
    "DispatchState",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
