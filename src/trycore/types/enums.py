"""Shared enumerations for trycore."""

from enum import Enum, IntEnum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class DebugLevel(IntEnum):
    """How much call-stack context is captured when an error is raised."""

    NONE = 0  # no capture
    CONTEXT = 1  # raise call site only
    STACK = 2  # full stack, engine frames excluded
    ALL = 3  # full stack, engine frames included


class Verbosity(IntEnum):
    """How much of an error ``render()`` prints."""

    SILENT = 0
    MESSAGE = 1
    LOCATION = 2
    FULL = 3


class FailureOrigin(str, Enum):
    """Where a failure came from."""

    USER_RAISED = "user_raised"
    RUNTIME_RAISED = "runtime_raised"
    HANDLER_FAILURE = "handler_failure"


class DispatchState(str, Enum):
    """Dispatcher state machine."""

    RUNNING = "running"
    HANDLING = "handling"
    FINALIZING = "finalizing"
    DONE = "done"
    RETURNED = "returned"
