"""trycore logging - Structured and colored logging for the engine."""

from .colors import CYAN, LIGHT_BLUE, MAGENTA, RED, RESET, YELLOW
from .logger import (
    ColoredLogFormatter,
    StructuredLogFormatter,
    TrycoreLogger,
    configure_logging,
    get_logger,
    reset_loggers,
)

__all__ = [
    # Loggers
    "TrycoreLogger",
    "StructuredLogFormatter",
    "ColoredLogFormatter",
    "configure_logging",
    "get_logger",
    "reset_loggers",
    # Colors
    "RESET",
    "RED",
    "YELLOW",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
