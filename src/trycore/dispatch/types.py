"""Dispatcher types."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from trycore.errors import ErrorRecord
from trycore.types import DispatchState

Work = Callable[[], Any]
Finalizer = Callable[[ErrorRecord | None, Any], Any]


class ReraiseRequest(Exception):
    """Raised inside a clause action to propagate the original error unchanged."""


@dataclass
class DispatchOutcome:
    """Result of one protected execution."""

    state: DispatchState = DispatchState.RUNNING
    value: Any = None
    failure: ErrorRecord | None = None
    transitions: list[DispatchState] = field(default_factory=list)
    handled_by: list[int] = field(default_factory=list)  # clause indices whose action ran

    @property
    def succeeded(self) -> bool:
        """True when no failure is left after finally blocks."""
        return self.failure is None

    def unwrap(self) -> Any:
        """Return the value, or raise the residual failure.

        Returns:
            Carried return value

        Raises:
            ErrorRecord: The residual failure, if any
        """
        if self.failure is not None:
            raise self.failure from self.failure.cause
        return self.value
