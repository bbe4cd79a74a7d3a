"""try/except/finally vocabulary on top of the Dispatcher."""

from typing import Any, NoReturn

from trycore.context import Context
from trycore.errors import ErrorRecord, HandlerClause, normalize
from trycore.errors.predicates import ClauseAction, matches_any

from .dispatcher import Dispatcher
from .types import DispatchOutcome, Finalizer, ReraiseRequest, Work


class TryBlock:
    """Fluent builder for one protected execution.

    Example:
        value = (
            try_(load_settings)
            .except_("io", action=lambda err, value: DEFAULTS)
            .otherwise(lambda err, value: report(err))
            .finally_(lambda failure, value: close_handles())
            .run()
        )
    """

    def __init__(self, work: Work, context: Context | None = None):
        """Initialize try block.

        Args:
            work: Zero-argument protected computation
            context: Context used to normalize failures
        """
        self.work = work
        self.clauses: list[HandlerClause] = []
        self.finalizers: list[Finalizer] = []
        self._dispatcher = Dispatcher(context)

    def except_(self, *predicates: Any, action: ClauseAction | None = None) -> "TryBlock":
        """Add a clause. No predicates makes it a default clause.

        Predicates may be MatchPredicates or shorthand: a kind name, an
        ErrorRecord sample, an exception class, a compiled regex or a
        callable on the message.

        Args:
            *predicates: Conditions, any of which selects the clause
            action: ``action(error, value)``; its result becomes the value.
                None re-raises the original error.

        Returns:
            self
        """
        self.clauses.append(HandlerClause(tuple(predicates), action))
        return self

    catch = except_

    def otherwise(self, action: ClauseAction | None = None) -> "TryBlock":
        """Add a default clause, run only when no other clause matched."""
        return self.except_(action=action)

    def finally_(self, finalizer: Finalizer) -> "TryBlock":
        """Add a finally callable ``finalizer(failure_or_None, value)``.

        A non-None return value replaces the carried value.

        Returns:
            self
        """
        self.finalizers.append(finalizer)
        return self

    def execute(self) -> DispatchOutcome:
        """Run and return the outcome without raising."""
        return self._dispatcher.execute(self.work, self.clauses, self.finalizers)

    def run(self, exit_on_failure: bool = False) -> Any:
        """Run and deliver the result.

        Args:
            exit_on_failure: Display a residual failure and exit the process
                with its exit code instead of raising it

        Returns:
            Carried return value

        Raises:
            ErrorRecord: The residual failure, if any
            SystemExit: With ``exit_on_failure`` and a residual failure
        """
        outcome = self.execute()
        if exit_on_failure and outcome.failure is not None:
            outcome.failure.exit()
        return outcome.unwrap()


def try_(work: Work, context: Context | None = None) -> TryBlock:
    """Start a try block around ``work``."""
    return TryBlock(work, context)


def catch(error: BaseException, *kinds: Any) -> ErrorRecord:
    """Normalize a natively caught exception, re-raising it if unwanted.

    Usage::

        try:
            copy_files()
        except Exception as exc:
            err = catch(exc, "io")  # anything but io errors propagates

    Args:
        error: Exception from an ``except`` block
        *kinds: Kinds (or other predicate shorthand) to accept; none accepts all

    Returns:
        ErrorRecord for the exception

    Raises:
        ErrorRecord: The normalized error, when it matches none of ``kinds``
    """
    record = normalize(error)
    if kinds and not matches_any(record, kinds):
        raise record from record.cause
    return record


def rethrow(error: BaseException, *lines: str) -> NoReturn:
    """Re-raise an error with extra context lines and a merged stack.

    Args:
        error: ErrorRecord or native exception
        *lines: Context lines to append

    Raises:
        ErrorRecord: Always
    """
    record = normalize(error)
    raise record.raised(*lines) from record.cause


def reraise() -> NoReturn:
    """From inside a clause action, propagate the original error unchanged.

    Raises:
        ReraiseRequest: Always
    """
    raise ReraiseRequest()
