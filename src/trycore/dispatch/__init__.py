"""trycore dispatch - try/except/finally orchestration."""

from .block import TryBlock, catch, reraise, rethrow, try_
from .dispatcher import Dispatcher, merge_residual
from .types import DispatchOutcome, Finalizer, ReraiseRequest, Work

__all__ = [
    "Dispatcher",
    "DispatchOutcome",
    "ReraiseRequest",
    "Finalizer",
    "Work",
    "merge_residual",
    # Vocabulary
    "TryBlock",
    "try_",
    "catch",
    "rethrow",
    "reraise",
]
