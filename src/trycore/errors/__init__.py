"""trycore errors - Structured error records, kinds and match predicates."""

from .errors import (
    UNSET,
    ErrorRecord,
    MatchPredicate,
    NativeMatch,
    NativeMatcher,
    ProcessInfo,
    collect_process_info,
)
from .display import DisplayChain, RenderOptions, render, stderr_display
from .registry import ROOT_KIND, KindRegistry
from .predicates import (
    ErrorType,
    ExactErrorInstance,
    ExactKindValue,
    HandlerClause,
    Predicate,
    PropertyMatch,
    TextPattern,
    as_predicate,
    select_clauses,
)
from .matchers import NativeMatcherChain
from .factory import ErrorFactory, create_error, get_error_factory, normalize, throw

__all__ = [
    # Core error types
    "ErrorRecord",
    "ProcessInfo",
    "collect_process_info",
    "UNSET",
    # Display
    "DisplayChain",
    "RenderOptions",
    "render",
    "stderr_display",
    # Kinds
    "KindRegistry",
    "ROOT_KIND",
    # Predicates and clauses
    "MatchPredicate",
    "ExactKindValue",
    "ExactErrorInstance",
    "TextPattern",
    "Predicate",
    "PropertyMatch",
    "ErrorType",
    "HandlerClause",
    "as_predicate",
    "select_clauses",
    # Native normalization
    "NativeMatch",
    "NativeMatcher",
    "NativeMatcherChain",
    "ErrorFactory",
    # Convenience functions
    "get_error_factory",
    "create_error",
    "normalize",
    "throw",
]
