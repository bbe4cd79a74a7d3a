"""trycore - Structured errors with try/except/finally dispatch.

Error records carry a kind, message lines, read-only properties, provenance
and a captured call stack. Handler clauses select errors by kind hierarchy,
instance, text, pattern or predicate.
"""

from trycore.context import Context, get_context, reset_context, set_context, use_context
from trycore.dispatch import Dispatcher, TryBlock, catch, reraise, rethrow, try_
from trycore.errors import (
    ErrorRecord,
    HandlerClause,
    KindRegistry,
    create_error,
    normalize,
    throw,
)
from trycore.types import DebugLevel, Verbosity

__version__ = "0.1.0"
__all__ = [
    "__version__",
    # Errors
    "ErrorRecord",
    "HandlerClause",
    "KindRegistry",
    "create_error",
    "normalize",
    "throw",
    # Dispatch
    "Dispatcher",
    "TryBlock",
    "try_",
    "catch",
    "rethrow",
    "reraise",
    # Context
    "Context",
    "get_context",
    "set_context",
    "reset_context",
    "use_context",
    "DebugLevel",
    "Verbosity",
]
