"""trycore logging - Structured logging with trace context.

Records go through the stdlib ``logging`` tree under the ``trycore`` logger.
Nothing is printed until the host calls ``configure_logging``, which installs
a JSON or colored handler.

Usage:
    from trycore.logging import get_logger

    logger = get_logger("dispatch")
    logger.debug("State changed", state="handling")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from opentelemetry import trace

from trycore.types import LogFormat, LogLevel

from .colors import LEVEL_COLORS, LIGHT_BLUE, MAGENTA, RESET

ROOT_LOGGER = "trycore"

_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "taskName",
    }
)

_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter with trace context injection.

    Formats log records as JSON with:
    - timestamp (ISO 8601)
    - level
    - component (logger name)
    - message
    - trace_id / span_id (if a span is recording)
    - Additional fields from extra
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                log_data["trace_id"] = format(ctx.trace_id, "032x")
                log_data["span_id"] = format(ctx.span_id, "016x")

        log_data.update(_extra_fields(record))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ColoredLogFormatter(logging.Formatter):
    """Human-readable formatter: ``[COMPONENT] message {extra}``."""

    def __init__(self, truncate_at: int = 200):
        """Initialize colored formatter.

        Args:
            truncate_at: Maximum length of the rendered extra fields
        """
        super().__init__()
        self.truncate_at = truncate_at

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with ANSI colors.

        Args:
            record: Log record to format

        Returns:
            Colored log line
        """
        color = LEVEL_COLORS.get(record.levelname, RESET)
        component = record.name.removeprefix(f"{ROOT_LOGGER}.").upper()
        output = f"{MAGENTA}[{component}]{RESET} {color}{record.getMessage()}{RESET}"

        extra = _extra_fields(record)
        if extra:
            extra_str = str(extra)
            if len(extra_str) > self.truncate_at:
                extra_str = extra_str[: self.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{extra_str}{RESET}"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


class TrycoreLogger:
    """Structured logger for one engine component.

    Wraps Python logging with keyword fields passed as ``extra``.
    """

    def __init__(self, name: str):
        """Initialize logger.

        Args:
            name: Component name (e.g. "dispatch")
        """
        self._logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")

    @property
    def name(self) -> str:
        """Underlying stdlib logger name."""
        return self._logger.name

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        """Log message with extra fields.

        Args:
            level: Log level
            message: Log message
            **kwargs: Additional fields to include
        """
        self._logger.log(level, message, extra=kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._logger.exception(message, extra=kwargs)


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    format: LogFormat = LogFormat.JSON,
    output: TextIO | None = None,
    truncate_at: int = 200,
) -> logging.Handler:
    """Install a handler on the ``trycore`` logger.

    Replaces any handler installed by a previous call.

    Args:
        level: Minimum level to emit
        format: JSON or colored output
        output: Stream to write to (defaults to stderr)
        truncate_at: Extra-field truncation for colored output

    Returns:
        The installed handler
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_trycore_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(output or sys.stderr)
    if format == LogFormat.JSON:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(ColoredLogFormatter(truncate_at=truncate_at))
    handler._trycore_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(_LEVELS.get(LogLevel(level), logging.INFO))
    return handler


# Logger cache
_loggers: dict[str, TrycoreLogger] = {}


def get_logger(name: str) -> TrycoreLogger:
    """Get or create a component logger.

    Args:
        name: Component name

    Returns:
        TrycoreLogger instance
    """
    if name not in _loggers:
        _loggers[name] = TrycoreLogger(name)
    return _loggers[name]


def reset_loggers() -> None:
    """Reset logger cache and installed handlers (for testing)."""
    global _loggers  # noqa: PLW0603
    _loggers = {}
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_trycore_handler", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())
