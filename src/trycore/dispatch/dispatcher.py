"""Dispatcher - try/except/finally orchestration over ErrorRecords."""

from collections.abc import Sequence
from contextlib import nullcontext
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from trycore.context import Context, use_context
from trycore.errors import ErrorFactory, ErrorRecord, HandlerClause, select_clauses
from trycore.logging import get_logger
from trycore.types import DispatchState, FailureOrigin

from .types import DispatchOutcome, Finalizer, ReraiseRequest, Work


class Dispatcher:
    """Runs protected work, handler clauses and finally blocks.

    State machine::

        RUNNING -> [HANDLING] -> FINALIZING -> DONE | RETURNED

    Failures are carried as values through the phases and only turned back
    into a native raise by ``run()`` (or ``DispatchOutcome.unwrap()``).
    """

    def __init__(self, context: Context | None = None):
        """Initialize dispatcher.

        Args:
            context: Context installed for the whole execution, so failures,
                kind lookups and captures use it (defaults to the calling
                thread's context)
        """
        self._context = context
        self._factory = ErrorFactory(context)
        self._logger = get_logger("dispatch")
        self._tracer = trace.get_tracer("trycore")

    def run(
        self,
        work: Work,
        clauses: Sequence[HandlerClause] = (),
        finalizers: Sequence[Finalizer] = (),
    ) -> Any:
        """Execute and deliver the result natively.

        Args:
            work: Zero-argument protected computation
            clauses: Handler clauses in registration order
            finalizers: Finally callables in registration order

        Returns:
            Carried return value

        Raises:
            ErrorRecord: The residual failure, if any
        """
        return self.execute(work, clauses, finalizers).unwrap()

    def execute(
        self,
        work: Work,
        clauses: Sequence[HandlerClause] = (),
        finalizers: Sequence[Finalizer] = (),
    ) -> DispatchOutcome:
        """Execute protected work and return the outcome without raising.

        Only ``Exception`` subclasses are normalized. ``SystemExit``,
        ``KeyboardInterrupt`` and other base exceptions still get the
        finally blocks run, then propagate untouched.

        Args:
            work: Zero-argument protected computation
            clauses: Handler clauses in registration order
            finalizers: Finally callables in registration order

        Returns:
            DispatchOutcome in state DONE or RETURNED
        """
        outcome = DispatchOutcome()
        scope = use_context(self._context) if self._context is not None else nullcontext()

        with scope, self._tracer.start_as_current_span("trycore.dispatch") as span:
            span.set_attribute("trycore.clauses", len(clauses))
            span.set_attribute("trycore.finalizers", len(finalizers))

            self._enter(outcome, DispatchState.RUNNING)
            try:
                outcome.value = work()
            except Exception as exc:
                outcome.failure = self._factory.normalize(exc)
            except BaseException:
                self._finalize(outcome, finalizers)
                raise

            if outcome.failure is not None:
                self._handle(outcome, outcome.failure, clauses)

            self._finalize(outcome, finalizers)

            if outcome.failure is not None:
                self._enter(outcome, DispatchState.DONE)
                span.set_attribute("trycore.error.kind", outcome.failure.kind)
                span.set_status(Status(StatusCode.ERROR, outcome.failure.message))
                span.record_exception(outcome.failure)
            else:
                self._enter(outcome, DispatchState.RETURNED)
            span.set_attribute("trycore.state", outcome.state.value)

        return outcome

    def _enter(self, outcome: DispatchOutcome, state: DispatchState) -> None:
        outcome.state = state
        outcome.transitions.append(state)
        self._logger.debug(f"Dispatch entered {state.value}", state=state.value)

    def _handle(
        self,
        outcome: DispatchOutcome,
        original: ErrorRecord,
        clauses: Sequence[HandlerClause],
    ) -> None:
        """Run the selected clauses against the failure raised by the work.

        A predicate that raises while clauses are selected is a handler
        failure: it replaces the carried failure and no clause runs.
        """
        self._enter(outcome, DispatchState.HANDLING)

        try:
            selected = select_clauses(original, clauses)
        except Exception as exc:
            replacement = self._factory.normalize(exc, origin=FailureOrigin.HANDLER_FAILURE)
            self._logger.warning(
                f"Clause matching failed while handling '{original.kind}'",
                kind=original.kind,
                replacement_kind=replacement.kind,
            )
            outcome.failure = replacement
            return

        if not selected:
            self._logger.debug("No clause matched", kind=original.kind)
            return

        for index, clause in selected:
            if clause.action is None:
                self._logger.debug("Clause re-raised", kind=original.kind, clause=index)
                outcome.failure = original
                return

            try:
                outcome.value = clause.action(original, outcome.value)
            except ReraiseRequest:
                self._logger.debug("Clause re-raised", kind=original.kind, clause=index)
                outcome.failure = original
                return
            except Exception as exc:
                replacement = self._factory.normalize(exc, origin=FailureOrigin.HANDLER_FAILURE)
                self._logger.warning(
                    f"Clause {index} failed while handling '{original.kind}'",
                    kind=original.kind,
                    replacement_kind=replacement.kind,
                    clause=index,
                )
                outcome.failure = replacement
                return

            outcome.failure = None
            outcome.handled_by.append(index)

    def _finalize(self, outcome: DispatchOutcome, finalizers: Sequence[Finalizer]) -> None:
        """Run every finally callable, merging failures that cascade."""
        self._enter(outcome, DispatchState.FINALIZING)

        for index, finalizer in enumerate(finalizers):
            try:
                result = finalizer(outcome.failure, outcome.value)
            except Exception as exc:
                secondary = self._factory.normalize(exc, origin=FailureOrigin.HANDLER_FAILURE)
                if outcome.failure is not None:
                    self._logger.warning(
                        f"Finally block {index} failed while carrying '{outcome.failure.kind}'",
                        kind=outcome.failure.kind,
                        secondary_kind=secondary.kind,
                        finalizer=index,
                    )
                outcome.failure = merge_residual(outcome.failure, secondary)
                continue

            if result is not None:
                outcome.value = result


def merge_residual(first: ErrorRecord | None, second: ErrorRecord | None) -> ErrorRecord | None:
    """Combine two carried failures the way the finally phase does.

    Args:
        first: Failure carried so far
        second: Failure raised later

    Returns:
        The merged failure, whichever one exists, or None
    """
    if first is None:
        return second
    if second is None:
        return first
    return first.merge_failure(second)
