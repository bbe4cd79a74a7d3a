"""Match predicates deciding whether a handler clause applies to an error."""

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import UNSET, ErrorRecord, MatchPredicate

if TYPE_CHECKING:
    from .registry import KindRegistry

ClauseAction = Callable[[ErrorRecord, Any], Any]


class ExactKindValue(MatchPredicate):
    """Matches errors of a kind, or of any kind registered beneath it."""

    def __init__(self, kind: str, registry: "KindRegistry | None" = None):
        """Initialize kind predicate.

        Args:
            kind: Kind to match
            registry: Kind registry (defaults to the current context's)
        """
        self.kind = kind
        self.registry = registry

    def matches(self, error: ErrorRecord) -> bool:
        """Check kind equality, then the kind hierarchy.

        Args:
            error: Error being dispatched

        Returns:
            True if the error's kind is or descends from this kind
        """
        if error.kind == self.kind:
            return True
        return error.is_kind_of(self.kind, self.registry)

    def __repr__(self) -> str:
        return f"ExactKindValue({self.kind!r})"


class ExactErrorInstance(MatchPredicate):
    """Matches errors of the same concrete type and kind as a sample error.

    Covers re-raised clones, which keep their kind.
    """

    def __init__(self, sample: ErrorRecord):
        """Initialize instance predicate.

        Args:
            sample: Error whose type and kind must match
        """
        self.sample = sample

    def matches(self, error: ErrorRecord) -> bool:
        """Check concrete type and kind against the sample."""
        return type(error) is type(self.sample) and error.kind == self.sample.kind

    def __repr__(self) -> str:
        return f"ExactErrorInstance({type(self.sample).__name__}, {self.sample.kind!r})"


class TextPattern(MatchPredicate):
    """Matches the rendered message text.

    A plain string must equal the message; a compiled regex is searched.
    """

    def __init__(self, pattern: str | re.Pattern[str]):
        """Initialize text predicate.

        Args:
            pattern: Literal message text or compiled regex
        """
        self.pattern = pattern

    def matches(self, error: ErrorRecord) -> bool:
        """Check the message against the pattern."""
        if isinstance(self.pattern, re.Pattern):
            return self.pattern.search(error.message) is not None
        return error.message == self.pattern

    def __repr__(self) -> str:
        return f"TextPattern({self.pattern!r})"


class Predicate(MatchPredicate):
    """Matches when a function returns truthy for the message or a property."""

    def __init__(self, fn: Callable[[Any], Any], key: str | None = None):
        """Initialize function predicate.

        Args:
            fn: Called with the candidate value
            key: Property (or field) to pass; None passes the message text
        """
        self.fn = fn
        self.key = key

    def matches(self, error: ErrorRecord) -> bool:
        """Call the function with the message or each candidate value.

        A missing property never matches.
        """
        if self.key is None:
            return bool(self.fn(error.message))
        return any(self.fn(value) for value in error.candidates(self.key))

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", repr(self.fn))
        return f"Predicate({name}, key={self.key!r})"


class ErrorType(MatchPredicate):
    """Matches by Python exception class.

    An ErrorRecord subclass is checked against the error itself; any other
    exception class is checked against the native failure it was built from.
    """

    def __init__(self, error_type: type[BaseException]):
        """Initialize type predicate.

        Args:
            error_type: Exception class to match
        """
        self.error_type = error_type

    def matches(self, error: ErrorRecord) -> bool:
        """Check the error, then its native cause."""
        if isinstance(error, self.error_type):
            return True
        return error.cause is not None and isinstance(error.cause, self.error_type)

    def __repr__(self) -> str:
        return f"ErrorType({self.error_type.__name__})"


class PropertyMatch(MatchPredicate):
    """Matches through ``ErrorRecord.satisfies``."""

    def __init__(self, message: Any = UNSET, /, **conditions: Any):
        """Initialize property predicate.

        Args:
            message: Condition on the message text
            **conditions: Conditions on properties or fields
        """
        self.message = message
        self.conditions = conditions

    def matches(self, error: ErrorRecord) -> bool:
        """Check every condition."""
        return error.satisfies(self.message, **self.conditions)

    def __repr__(self) -> str:
        return f"PropertyMatch({self.message!r}, {self.conditions!r})"


def as_predicate(value: Any) -> MatchPredicate:
    """Coerce shorthand values into predicates.

    - ``str``: ExactKindValue
    - ``ErrorRecord``: ExactErrorInstance
    - compiled regex: TextPattern
    - exception class: ErrorType
    - other callable: Predicate on the message text

    Args:
        value: Predicate or shorthand

    Returns:
        MatchPredicate

    Raises:
        TypeError: If the value cannot be used as a predicate
    """
    if isinstance(value, MatchPredicate):
        return value
    if isinstance(value, str):
        return ExactKindValue(value)
    if isinstance(value, ErrorRecord):
        return ExactErrorInstance(value)
    if isinstance(value, re.Pattern):
        return TextPattern(value)
    if isinstance(value, type) and issubclass(value, BaseException):
        return ErrorType(value)
    if callable(value):
        return Predicate(value)
    msg = f"Cannot use {type(value).__name__} as a match predicate"
    raise TypeError(msg)


@dataclass
class HandlerClause:
    """One except/catch unit.

    An empty predicate tuple makes this a default (catch-all) clause. The
    clause applies when any of its predicates matches. ``action=None``
    re-raises the original error unchanged.
    """

    predicates: tuple[MatchPredicate, ...] = field(default_factory=tuple)
    action: ClauseAction | None = None

    def __post_init__(self) -> None:
        """Coerce shorthand predicates."""
        self.predicates = tuple(as_predicate(p) for p in self.predicates)

    @property
    def is_default(self) -> bool:
        """True for catch-all clauses."""
        return not self.predicates

    def matches(self, error: ErrorRecord) -> bool:
        """Check whether any predicate applies."""
        return any(predicate.matches(error) for predicate in self.predicates)


def select_clauses(
    error: ErrorRecord, clauses: Sequence[HandlerClause]
) -> list[tuple[int, HandlerClause]]:
    """Pick the clauses that handle an error, in the order they run.

    Every matching predicate-bearing clause is selected, in registration
    order. Default clauses are selected, in registration order, only when
    no predicate-bearing clause matched.

    Args:
        error: Error being dispatched
        clauses: Clauses in registration order

    Returns:
        (index, clause) pairs to run
    """
    matched = [
        (index, clause)
        for index, clause in enumerate(clauses)
        if not clause.is_default and clause.matches(error)
    ]
    if matched:
        return matched
    return [(index, clause) for index, clause in enumerate(clauses) if clause.is_default]


def matches_any(error: ErrorRecord, predicates: Iterable[Any]) -> bool:
    """Check an error against shorthand or predicate values."""
    return any(as_predicate(p).matches(error) for p in predicates)
