"""Tests for match predicates and clause selection."""

import re
from dataclasses import dataclass

import pytest

from trycore.context import Context
from trycore.errors import (
    ErrorRecord,
    ErrorType,
    ExactErrorInstance,
    ExactKindValue,
    HandlerClause,
    KindRegistry,
    Predicate,
    PropertyMatch,
    TextPattern,
    as_predicate,
    select_clauses,
)


@dataclass(eq=False)
class QuotaError(ErrorRecord):
    """Record subclass used to test instance matching."""


def io_error(*lines: str, **properties) -> ErrorRecord:
    return ErrorRecord(kind="io", lines=lines or ("cannot open file",), properties=properties)


class TestExactKindValue:
    """Tests for ExactKindValue."""

    def test_equal_kind(self):
        """Test equal kinds match."""
        assert ExactKindValue("io").matches(io_error())

    def test_descendant_kind(self, context: Context):
        """Test a parent kind matches its descendants."""
        assert ExactKindValue("runtime").matches(io_error())
        assert not ExactKindValue("value").matches(io_error())

    def test_explicit_registry(self):
        """Test an explicit registry overrides the context's."""
        registry = KindRegistry(load_builtins=False)
        assert not ExactKindValue("runtime", registry).matches(io_error())
        registry.register_kind("storage")
        registry.register_kind("storage.disk", "storage")
        assert ExactKindValue("storage", registry).matches(ErrorRecord(kind="storage.disk"))


class TestExactErrorInstance:
    """Tests for ExactErrorInstance."""

    def test_same_type_and_kind(self):
        """Test clones of the sample match."""
        sample = QuotaError(kind="quota")
        assert ExactErrorInstance(sample).matches(sample.with_lines("again"))

    def test_different_type(self):
        """Test a plain record with the same kind does not match."""
        sample = QuotaError(kind="quota")
        assert not ExactErrorInstance(sample).matches(ErrorRecord(kind="quota"))

    def test_different_kind(self):
        """Test the same type with another kind does not match."""
        assert not ExactErrorInstance(QuotaError(kind="quota")).matches(QuotaError(kind="other"))


class TestTextPattern:
    """Tests for TextPattern."""

    def test_literal_is_exact(self):
        """Test a string must equal the whole message."""
        assert TextPattern("cannot open file").matches(io_error())
        assert not TextPattern("cannot open").matches(io_error())

    def test_regex_is_searched(self):
        """Test a compiled pattern matches anywhere in the message."""
        assert TextPattern(re.compile(r"open \w+")).matches(io_error())
        assert not TextPattern(re.compile(r"^file")).matches(io_error())


class TestPredicate:
    """Tests for Predicate."""

    def test_message_value(self):
        """Test the function receives the message by default."""
        assert Predicate(lambda text: "open" in text).matches(io_error())

    def test_property_value(self):
        """Test the function receives a named property."""
        error = io_error(errno=2)
        assert Predicate(lambda n: n == 2, key="errno").matches(error)
        assert not Predicate(lambda n: n == 3, key="errno").matches(error)

    def test_missing_property_never_matches(self):
        """Test absent keys do not call the function."""
        calls = []
        assert not Predicate(calls.append, key="missing").matches(io_error())
        assert calls == []


class TestErrorType:
    """Tests for ErrorType."""

    def test_record_subclass(self):
        """Test record subclasses match by type."""
        assert ErrorType(QuotaError).matches(QuotaError(kind="quota"))
        assert not ErrorType(QuotaError).matches(io_error())

    def test_native_cause(self):
        """Test native exception classes match the cause."""
        error = ErrorRecord(kind="lookup", cause=KeyError("x"))
        assert ErrorType(LookupError).matches(error)
        assert not ErrorType(ValueError).matches(error)


class TestPropertyMatch:
    """Tests for PropertyMatch."""

    def test_conditions(self):
        """Test conditions go through satisfies."""
        error = io_error(path="/tmp/x")
        assert PropertyMatch(path=re.compile("tmp")).matches(error)
        assert not PropertyMatch("other message").matches(error)


class TestAsPredicate:
    """Tests for shorthand coercion."""

    def test_shorthand_types(self):
        """Test each shorthand maps to its predicate."""
        assert isinstance(as_predicate("io"), ExactKindValue)
        assert isinstance(as_predicate(io_error()), ExactErrorInstance)
        assert isinstance(as_predicate(re.compile("x")), TextPattern)
        assert isinstance(as_predicate(KeyError), ErrorType)
        assert isinstance(as_predicate(lambda text: True), Predicate)

    def test_predicates_pass_through(self):
        """Test predicates are returned unchanged."""
        predicate = TextPattern("x")
        assert as_predicate(predicate) is predicate

    def test_rejects_other_values(self):
        """Test unusable values raise TypeError."""
        with pytest.raises(TypeError):
            as_predicate(42)


class TestSelectClauses:
    """Tests for select_clauses."""

    def test_any_predicate_matches(self):
        """Test a clause applies when one of its predicates matches."""
        clause = HandlerClause(("value", "io"))
        assert clause.matches(io_error())

    def test_all_matching_clauses_in_order(self):
        """Test every matching predicate clause is selected."""
        clauses = [HandlerClause(("io",)), HandlerClause(("value",)), HandlerClause(("io",))]
        assert [i for i, _ in select_clauses(io_error(), clauses)] == [0, 2]

    @pytest.mark.parametrize("default_first", [True, False])
    def test_predicates_outrank_defaults(self, default_first):
        """Test defaults are skipped when a predicate clause matches."""
        default = HandlerClause()
        matching = HandlerClause(("io",))
        clauses = [default, matching] if default_first else [matching, default]
        selected = [clause for _, clause in select_clauses(io_error(), clauses)]
        assert selected == [matching]

    def test_defaults_run_when_nothing_matches(self):
        """Test all defaults are selected, in order, as a fallback."""
        clauses = [HandlerClause(), HandlerClause(("value",)), HandlerClause()]
        assert [i for i, _ in select_clauses(io_error(), clauses)] == [0, 2]

    def test_nothing_selected(self):
        """Test no match and no default selects nothing."""
        assert select_clauses(io_error(), [HandlerClause(("value",))]) == []
