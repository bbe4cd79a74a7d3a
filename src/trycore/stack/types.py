"""Call-stack frame and snapshot types."""

from collections.abc import Iterator
from dataclasses import asdict, dataclass, field
from typing import Any, overload


@dataclass(frozen=True)
class StackFrame:
    """One captured call site. Immutable once captured."""

    unit: str | None  # module name, e.g. "myapp.io"
    source: str | None  # file name
    line: int | None
    activation: str | None  # function name
    has_arguments: bool = False
    multiple_return: bool = False  # generator/coroutine frame
    arguments: tuple[str, ...] = ()  # repr() of positional arguments

    def to_dict(self) -> dict[str, Any]:
        """Serialize frame.

        Returns:
            Dictionary representation of the frame
        """
        data = asdict(self)
        data["arguments"] = list(self.arguments)
        return data


@dataclass(frozen=True)
class StackSnapshot:
    """Ordered frames captured at one point in time.

    Frames run oldest caller first, innermost (the raise point) last, the same
    order Python prints tracebacks in. Snapshots are never mutated; merging
    and re-raising always produce a new snapshot.
    """

    frames: tuple[StackFrame, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[StackFrame]:
        return iter(self.frames)

    @overload
    def __getitem__(self, index: int) -> StackFrame: ...

    @overload
    def __getitem__(self, index: slice) -> "StackSnapshot": ...

    def __getitem__(self, index: int | slice) -> "StackFrame | StackSnapshot":
        if isinstance(index, slice):
            return StackSnapshot(self.frames[index])
        return self.frames[index]

    @property
    def is_empty(self) -> bool:
        """True when no frames were captured."""
        return not self.frames

    @property
    def innermost(self) -> StackFrame | None:
        """The raise point, or None for an empty snapshot."""
        return self.frames[-1] if self.frames else None

    @property
    def outermost(self) -> StackFrame | None:
        """The oldest caller, or None for an empty snapshot."""
        return self.frames[0] if self.frames else None

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize snapshot, oldest frame first.

        Returns:
            List of frame dictionaries
        """
        return [frame.to_dict() for frame in self.frames]
