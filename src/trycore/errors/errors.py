"""trycore error record - structured errors with provenance and stack."""

import os
import re
import sys
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import FrameType, MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any

from trycore.stack import StackSnapshot, capture, merge
from trycore.types import DebugLevel, FailureOrigin, Verbosity

from .display import DisplayChain, RenderOptions, render

if TYPE_CHECKING:
    from .registry import KindRegistry

# Property values are strings, ints and bools; anything else is carried opaquely.
PropertyValue = str | int | bool | object

DEFAULT_MESSAGE = "Unknown error"


class _Unset:
    """Marker for an omitted condition (None is a meaningful condition)."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ProcessInfo:
    """Process identity at the moment an error was raised."""

    pid: int
    tid: int
    uid: int | None = None
    euid: int | None = None
    gid: int | None = None
    egid: int | None = None


def collect_process_info() -> ProcessInfo:
    """Collect pid, thread id and (on POSIX) real/effective uid and gid.

    Returns:
        ProcessInfo for the calling thread
    """
    posix = hasattr(os, "getuid")
    return ProcessInfo(
        pid=os.getpid(),
        tid=threading.get_ident(),
        uid=os.getuid() if posix else None,
        euid=os.geteuid() if posix else None,
        gid=os.getgid() if posix else None,
        egid=os.getegid() if posix else None,
    )


def check_condition(expected: Any, actual: Any) -> bool:
    """Evaluate one ``satisfies`` condition against a value.

    Args:
        expected: Literal, compiled regex, callable, or None (must be absent)
        actual: Value found on the error (None when absent)

    Returns:
        True if the condition holds
    """
    if expected is None:
        return actual is None
    if actual is None:
        return False
    if isinstance(expected, re.Pattern):
        return expected.search(str(actual)) is not None
    if callable(expected):
        return bool(expected(actual))
    return bool(actual == expected)


_RECORD_FIELDS = frozenset(
    {"kind", "exit_code", "origin", "timestamp", "debug_level", "verbosity"}
)
_PROCESS_FIELDS = frozenset({"pid", "tid", "uid", "euid", "gid", "egid"})


@dataclass(eq=False)
class ErrorRecord(Exception):
    """Structured error. Raised natively, handled through a Dispatcher.

    Records are value objects: every operation that changes an error
    (appending lines, re-raising, merging a cascade) returns a new record and
    leaves an already-delivered one untouched.
    """

    # Identity
    kind: str = ""  # "" = unknown

    # Messages, one entry per raise that added context
    lines: tuple[str, ...] = ()

    # Read-only bag set at construction
    properties: Mapping[str, PropertyValue] = field(default_factory=dict)

    # Stack
    stack: StackSnapshot | None = field(default=None, repr=False)
    debug_level: DebugLevel = DebugLevel.STACK

    # Display / exit behaviour, copied from the template
    verbosity: Verbosity = Verbosity.FULL
    display_chain: DisplayChain = field(default_factory=DisplayChain.default, repr=False)
    exit_code: int = 1
    default_message: str = field(default=DEFAULT_MESSAGE, repr=False)

    # Provenance, filled when raised
    origin: FailureOrigin = FailureOrigin.USER_RAISED
    timestamp: datetime | None = None
    process: ProcessInfo | None = field(default=None, repr=False)
    cause: BaseException | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Freeze collections and set Exception message."""
        if isinstance(self.lines, str):
            self.lines = (self.lines,)
        else:
            self.lines = tuple(self.lines)
        self.properties = MappingProxyType(dict(self.properties))
        self.debug_level = DebugLevel(self.debug_level)
        self.verbosity = Verbosity(self.verbosity)
        self.origin = FailureOrigin(self.origin)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Message lines joined by newlines, or the default message."""
        if not self.lines:
            return self.default_message
        return "\n".join(self.lines)

    # -- copy-on-write operations -------------------------------------------

    def with_lines(self, *lines: str) -> "ErrorRecord":
        """Return copy with extra message lines appended.

        Args:
            *lines: Lines to append

        Returns:
            New ErrorRecord
        """
        return replace(self, lines=self.lines + tuple(lines))

    def raised(
        self,
        *lines: str,
        frame: FrameType | None = None,
        tb: TracebackType | None = None,
        internal_prefixes: tuple[str, ...] | None = None,
    ) -> "ErrorRecord":
        """Return the copy of this error that a raise delivers.

        The copy is stamped with the time and process identity, gets ``lines``
        appended, and carries a freshly captured stack merged onto any stack
        this error already had.

        Args:
            *lines: Context lines to append
            frame: Frame to capture from (defaults to this call)
            tb: Native traceback to capture from instead of a live frame
            internal_prefixes: Module prefixes treated as engine frames
                (defaults to the thread context's)

        Returns:
            New ErrorRecord ready to be raised
        """
        from trycore.context import get_context

        if frame is None and tb is None:
            frame = sys._getframe()
        if internal_prefixes is None:
            internal_prefixes = get_context().internal_prefixes

        fresh = capture(
            self.debug_level,
            frame=frame,
            tb=tb,
            internal_prefixes=internal_prefixes,
        )
        return replace(
            self,
            lines=self.lines + tuple(lines),
            stack=merge(self.stack, fresh),
            timestamp=datetime.now(UTC),
            process=collect_process_info(),
        )

    def throw(self, *lines: str) -> None:
        """Raise this error (a new copy of it) with optional extra lines.

        Args:
            *lines: Context lines to append

        Raises:
            ErrorRecord: Always
        """
        raise self.raised(*lines)

    def merge_failure(self, other: "ErrorRecord") -> "ErrorRecord":
        """Combine this failure with one raised later during cleanup.

        Args:
            other: Failure raised while this one was being carried

        Returns:
            New ErrorRecord with both sets of lines and a merged stack
        """
        return replace(
            self,
            lines=self.lines + other.lines,
            stack=merge(self.stack, other.stack),
        )

    # -- queries --------------------------------------------------------------

    def is_kind_of(self, kind: str, registry: "KindRegistry | None" = None) -> bool:
        """Check this error's kind against the kind hierarchy.

        Args:
            kind: Kind to test against
            registry: Kind registry (defaults to the current context's)

        Returns:
            True if this error's kind is ``kind`` or descends from it
        """
        if registry is None:
            from trycore.context import get_context

            registry = get_context().registry
        return registry.is_kind_of(self.kind, kind)

    def field_value(self, key: str) -> Any:
        """Look up a well-known field by name (None if unset or unknown).

        Args:
            key: Field name, e.g. "kind", "exit_code", "pid", "message"

        Returns:
            Field value or None
        """
        if key == "message":
            return self.message if self.lines else None
        if key in _RECORD_FIELDS:
            return getattr(self, key)
        if key in _PROCESS_FIELDS and self.process is not None:
            return getattr(self.process, key)
        return None

    def candidates(self, key: str) -> Iterator[Any]:
        """Yield values for ``key``: the property first, then the field.

        Args:
            key: Property or field name

        Yields:
            Non-None candidate values
        """
        value = self.properties.get(key)
        if value is not None:
            yield value
        value = self.field_value(key)
        if value is not None:
            yield value

    def get(self, key: str, default: Any = None) -> Any:
        """Property value for ``key``, falling back to the well-known field."""
        return next(self.candidates(key), default)

    def satisfies(self, message: Any = UNSET, /, **conditions: Any) -> bool:
        """Check the error against message and property conditions.

        Each condition may be a literal (equality), a compiled regex
        (search), a callable (truthy result) or None (must be absent). A
        keyword condition holds if either the property or the well-known
        field of that name satisfies it. All conditions must hold.

        Args:
            message: Condition on the message text
            **conditions: Conditions on properties or fields

        Returns:
            True if every condition holds
        """
        if message is not UNSET:
            actual = self.message if self.lines else None
            if not check_condition(message, actual):
                return False

        for key, expected in conditions.items():
            values = list(self.candidates(key))
            if expected is None:
                if values:
                    return False
                continue
            if not any(check_condition(expected, value) for value in values):
                return False
        return True

    # -- output ---------------------------------------------------------------

    def render(
        self,
        verbosity: Verbosity | int | None = None,
        options: RenderOptions | None = None,
    ) -> str:
        """Render this error as text.

        Args:
            verbosity: Level to use (defaults to this error's verbosity)
            options: Backtrace formatting limits

        Returns:
            Rendered text
        """
        return render(self, verbosity, options)

    def display(self) -> None:
        """Run this error's display chain."""
        self.display_chain.run(self)

    def exit(self) -> None:
        """Display this error and terminate with its exit code.

        Raises:
            SystemExit: Always
        """
        self.display()
        sys.exit(self.exit_code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and API responses.

        Returns:
            Dictionary representation of the error
        """
        return {
            "kind": self.kind,
            "message": self.message,
            "lines": list(self.lines),
            "properties": {k: _plain(v) for k, v in self.properties.items()},
            "origin": self.origin.value,
            "exit_code": self.exit_code,
            "debug_level": int(self.debug_level),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "process": (
                {
                    "pid": self.process.pid,
                    "tid": self.process.tid,
                    "uid": self.process.uid,
                    "euid": self.process.euid,
                    "gid": self.process.gid,
                    "egid": self.process.egid,
                }
                if self.process
                else None
            ),
            "stack": self.stack.to_list() if self.stack is not None else None,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


def _plain(value: Any) -> Any:
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    return repr(value)


class MatchPredicate(ABC):
    """Base class for handler-clause match conditions."""

    @abstractmethod
    def matches(self, error: ErrorRecord) -> bool:
        """Check if this predicate applies to the error.

        Args:
            error: Error being dispatched

        Returns:
            True if the predicate applies
        """


@dataclass
class NativeMatch:
    """Result of classifying a native exception."""

    kind: str
    properties: dict[str, Any]


class NativeMatcher(ABC):
    """Base class for native exception classifiers."""

    @abstractmethod
    def matches(self, error: BaseException) -> bool:
        """Check if this matcher handles the exception.

        Args:
            error: Native exception to check

        Returns:
            True if this matcher can classify the exception
        """

    @abstractmethod
    def extract(self, error: BaseException) -> NativeMatch:
        """Extract kind and properties from the exception.

        Args:
            error: Native exception to classify

        Returns:
            NativeMatch with kind and properties
        """
