"""Tests for the Dispatcher state machine."""

import logging

import pytest

from trycore.context import Context, get_context
from trycore.dispatch import Dispatcher, DispatchOutcome, merge_residual, reraise
from trycore.errors import (
    ErrorRecord,
    ExactKindValue,
    HandlerClause,
    Predicate,
    create_error,
    throw,
)
from trycore.stack import merge
from trycore.types import DispatchState, FailureOrigin


def fail_io():
    throw("io", "cannot open file")


def append(text):
    return lambda error, value: (value or "") + text


@pytest.fixture
def dispatcher(context: Context) -> Dispatcher:
    return Dispatcher(context)


class TestSuccess:
    """Tests for protected work that returns normally."""

    def test_returns_value(self, dispatcher):
        """Test the value is delivered with no failure."""
        outcome = dispatcher.execute(lambda: 42)
        assert outcome.succeeded
        assert outcome.value == 42
        assert outcome.state == DispatchState.RETURNED
        assert outcome.transitions == [
            DispatchState.RUNNING,
            DispatchState.FINALIZING,
            DispatchState.RETURNED,
        ]

    def test_clauses_do_not_run(self, dispatcher):
        """Test handlers are skipped without a failure."""
        calls = []
        clause = HandlerClause((), lambda e, v: calls.append(e))
        assert dispatcher.run(lambda: "ok", [clause]) == "ok"
        assert calls == []

    def test_finalizer_sees_value(self, dispatcher):
        """Test finalizers receive no failure and the carried value."""
        seen = []
        dispatcher.run(lambda: "ok", finalizers=[lambda f, v: seen.append((f, v))])
        assert seen == [(None, "ok")]


class TestHandling:
    """Tests for the HANDLING phase."""

    def test_matching_clause_handles(self, dispatcher):
        """Test a matching clause's result becomes the value."""
        outcome = dispatcher.execute(fail_io, [HandlerClause(("io",), append("handled"))])
        assert outcome.succeeded
        assert outcome.value == "handled"
        assert outcome.handled_by == [0]
        assert DispatchState.HANDLING in outcome.transitions

    def test_all_matching_clauses_run(self, dispatcher):
        """Test every matching predicate clause runs in order."""
        clauses = [
            HandlerClause(("io",), append("a")),
            HandlerClause(("value",), append("x")),
            HandlerClause(("runtime",), append("b")),
        ]
        assert dispatcher.run(fail_io, clauses) == "ab"

    @pytest.mark.parametrize("default_first", [True, False])
    def test_predicate_priority(self, dispatcher, default_first):
        """Test a matching clause outranks a default regardless of order."""
        default = HandlerClause((), append("default"))
        matching = HandlerClause(("io",), append("io"))
        clauses = [default, matching] if default_first else [matching, default]
        assert dispatcher.run(fail_io, clauses) == "io"

    def test_catch_all_fallback(self, dispatcher):
        """Test the default clause handles unmatched errors."""
        clauses = [HandlerClause(("value",), append("value")), HandlerClause((), append("default"))]
        assert dispatcher.run(fail_io, clauses) == "default"

    def test_unhandled_propagates_unchanged(self, dispatcher):
        """Test errors matching nothing propagate with kind and lines intact."""
        with pytest.raises(ErrorRecord) as exc_info:
            dispatcher.run(fail_io, [HandlerClause(("value",), append("x"))])
        assert exc_info.value.kind == "io"
        assert exc_info.value.lines == ("cannot open file",)

    def test_same_record_is_delivered(self, dispatcher):
        """Test the raised record itself comes out when nothing matches."""
        error = create_error("io", "cannot open file")

        def work():
            raise error

        outcome = dispatcher.execute(work)
        assert outcome.failure is error
        assert outcome.state == DispatchState.DONE

    def test_clause_without_action_reraises(self, dispatcher):
        """Test a clause with no action halts evaluation with the original."""
        calls = []
        clauses = [HandlerClause(("io",)), HandlerClause(("io",), lambda e, v: calls.append(e))]
        outcome = dispatcher.execute(fail_io, clauses)
        assert outcome.failure.kind == "io"
        assert calls == []

    def test_reraise_helper(self, dispatcher):
        """Test reraise() inside an action propagates the original."""
        calls = []

        def action(error, value):
            calls.append("first")
            reraise()

        clauses = [HandlerClause(("io",), action), HandlerClause(("io",), append("later"))]
        outcome = dispatcher.execute(fail_io, clauses)
        assert outcome.failure.kind == "io"
        assert outcome.failure.origin == FailureOrigin.USER_RAISED
        assert calls == ["first"]

    def test_failing_action_replaces_failure(self, dispatcher, caplog):
        """Test a clause failure replaces the carried one without merging."""

        def action(error, value):
            raise KeyError("missing")

        with caplog.at_level(logging.WARNING, logger="trycore"):
            outcome = dispatcher.execute(
                fail_io, [HandlerClause(("io",), action), HandlerClause(("io",), append("x"))]
            )

        assert outcome.failure.kind == "lookup"
        assert outcome.failure.origin == FailureOrigin.HANDLER_FAILURE
        assert "cannot open file" not in outcome.failure.lines
        assert "Clause 0 failed" in caplog.text

    def test_native_failure_is_normalized(self, dispatcher):
        """Test native exceptions reach clauses as records."""
        seen = []

        def work():
            raise ValueError("bad input")

        def action(error, value):
            seen.append(error)
            return "recovered"

        assert dispatcher.run(work, [HandlerClause(("value",), action)]) == "recovered"
        assert seen[0].kind == "value"
        assert seen[0].origin == FailureOrigin.RUNTIME_RAISED
        assert isinstance(seen[0].cause, ValueError)

    def test_failing_predicate_replaces_failure(self, dispatcher, caplog):
        """Test a predicate that raises becomes the carried failure and cleanup still runs."""
        calls = []

        def explode(message):
            raise ValueError("bad predicate")

        clauses = [HandlerClause((Predicate(explode),), append("x")), HandlerClause((), append("y"))]
        with caplog.at_level(logging.WARNING, logger="trycore"):
            outcome = dispatcher.execute(fail_io, clauses, [lambda f, v: calls.append(f)])

        assert outcome.failure.kind == "value"
        assert outcome.failure.origin == FailureOrigin.HANDLER_FAILURE
        assert outcome.handled_by == []
        assert outcome.value is None
        assert calls == [outcome.failure]
        assert outcome.transitions == [
            DispatchState.RUNNING,
            DispatchState.HANDLING,
            DispatchState.FINALIZING,
            DispatchState.DONE,
        ]
        assert "Clause matching failed" in caplog.text

    def test_run_chains_native_cause(self, dispatcher):
        """Test run() raises the record from the native exception."""

        def work():
            raise ValueError("bad input")

        with pytest.raises(ErrorRecord) as exc_info:
            dispatcher.run(work)
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestFinalizing:
    """Tests for the FINALIZING phase."""

    @pytest.mark.parametrize("scenario", ["success", "failure", "reraise"])
    def test_finally_runs_exactly_once(self, dispatcher, scenario):
        """Test every finalizer runs once whatever happened before."""
        calls = []
        work = {"success": lambda: "ok", "failure": fail_io, "reraise": fail_io}[scenario]
        clauses = [HandlerClause(("io",))] if scenario == "reraise" else []
        finalizers = [lambda f, v: calls.append("a"), lambda f, v: calls.append("b")]

        dispatcher.execute(work, clauses, finalizers)
        assert calls == ["a", "b"]

    def test_finalizer_receives_carried_failure(self, dispatcher):
        """Test finalizers see the failure that will be delivered."""
        seen = []
        dispatcher.execute(fail_io, finalizers=[lambda f, v: seen.append(f)])
        assert seen[0].kind == "io"

    def test_finalizer_result_replaces_value(self, dispatcher):
        """Test a non-None finalizer result becomes the value."""
        finalizers = [lambda f, v: v + "!", lambda f, v: None]
        assert dispatcher.run(lambda: "ok", finalizers=finalizers) == "ok!"

    def test_failing_finalizer_becomes_failure(self, dispatcher):
        """Test a finalizer failure after success is delivered."""

        def cleanup(failure, value):
            throw("io", "cleanup failed")

        outcome = dispatcher.execute(lambda: "ok", finalizers=[cleanup])
        assert outcome.failure.lines == ("cleanup failed",)
        assert outcome.state == DispatchState.DONE

    def test_cascade_merges_failures(self, dispatcher):
        """Test a finalizer failure merges into the carried failure."""
        raised = []

        def cleanup(failure, value):
            second = create_error("value", "cleanup failed").raised()
            raised.append((failure, second))
            raise second

        with pytest.raises(ErrorRecord) as exc_info:
            dispatcher.run(fail_io, [HandlerClause(("value",), append("x"))], [cleanup])

        first, second = raised[0]
        delivered = exc_info.value
        assert delivered.lines == ("cannot open file", "cleanup failed")
        assert delivered.stack == merge(first.stack, second.stack)

    def test_later_finalizers_still_run(self, dispatcher):
        """Test a failing finalizer does not stop the rest."""
        calls = []

        def broken(failure, value):
            raise RuntimeError("boom")

        dispatcher.execute(lambda: "ok", finalizers=[broken, lambda f, v: calls.append(f)])
        assert calls[0].kind == "runtime"

    def test_base_exception_propagates_after_finally(self, dispatcher):
        """Test KeyboardInterrupt is not normalized but finalizers run."""
        calls = []

        def work():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            dispatcher.execute(work, [HandlerClause((), append("x"))], [lambda f, v: calls.append(f)])
        assert calls == [None]


class TestEndToEnd:
    """End-to-end dispatch scenarios."""

    def test_handled_then_cleanup(self, dispatcher):
        """Test handled io error followed by cleanup composes the value."""

        def work():
            throw("io", "cannot open file")

        outcome = dispatcher.execute(
            work,
            [HandlerClause(("io",), lambda error, value: (value or "") + "(handled)")],
            [lambda failure, value: value + "(cleanup)"],
        )
        assert outcome.value == "(handled)(cleanup)"
        assert outcome.failure is None
        assert outcome.transitions == [
            DispatchState.RUNNING,
            DispatchState.HANDLING,
            DispatchState.FINALIZING,
            DispatchState.RETURNED,
        ]

    def test_default_context(self):
        """Test a dispatcher without a context uses the thread's."""
        assert Dispatcher().run(lambda: 1) == 1

    def test_explicit_context_registry(self, context: Context):
        """Test kinds registered on the dispatcher's context match hierarchically."""
        bound = Context()
        bound.register_kind("io.missing", "io")

        def work():
            raise ErrorRecord(kind="io.missing", lines=("gone",))

        outcome = Dispatcher(bound).execute(
            work, [HandlerClause((ExactKindValue("io"),), lambda error, value: "handled")]
        )
        assert outcome.value == "handled"
        assert outcome.handled_by == [0]
        assert outcome.state == DispatchState.RETURNED

    def test_explicit_context_is_scoped(self, context: Context):
        """Test the dispatcher's context is active only while it executes."""
        bound = Context()
        seen = []
        Dispatcher(bound).execute(lambda: seen.append(get_context()))
        assert seen == [bound]
        assert get_context() is context


class TestOutcome:
    """Tests for DispatchOutcome and merge_residual."""

    def test_unwrap_value(self):
        """Test unwrap returns the value without failure."""
        assert DispatchOutcome(value=3).unwrap() == 3

    def test_unwrap_failure(self):
        """Test unwrap raises the failure."""
        error = ErrorRecord(kind="io")
        with pytest.raises(ErrorRecord) as exc_info:
            DispatchOutcome(failure=error).unwrap()
        assert exc_info.value is error

    def test_merge_residual(self):
        """Test residual merging handles missing sides."""
        first = ErrorRecord(kind="io", lines=("a",))
        second = ErrorRecord(kind="value", lines=("b",))
        assert merge_residual(None, None) is None
        assert merge_residual(first, None) is first
        assert merge_residual(None, second) is second
        assert merge_residual(first, second).lines == ("a", "b")
