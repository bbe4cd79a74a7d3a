"""Error rendering and the display handler chain."""

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trycore.logging import get_logger
from trycore.logging.colors import CYAN, LIGHT_BLUE, RED, RESET
from trycore.types import Verbosity

if TYPE_CHECKING:
    from trycore.stack import StackFrame

    from .errors import ErrorRecord

logger = get_logger("display")

DisplayHandler = Callable[["ErrorRecord"], None]


@dataclass(frozen=True)
class RenderOptions:
    """Formatting limits for backtrace output."""

    max_arg_len: int = 64  # 0 = unlimited
    max_arg_nums: int = 8  # 0 = unlimited
    color: bool = False


def trim(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, ending with ``...``.

    Limits of 3 or less (including 0) leave the text alone.
    """
    if limit > 3 and len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def format_activation(frame: "StackFrame", options: RenderOptions) -> str:
    """Format ``name(arg, ...)`` for one frame.

    Args:
        frame: Captured frame
        options: Argument length and count limits

    Returns:
        Activation name with its arguments when the function takes any
    """
    name = frame.activation or "<unknown>"
    if not frame.has_arguments:
        return name

    args = [trim(arg, options.max_arg_len) for arg in frame.arguments]
    if options.max_arg_nums > 0 and len(args) > options.max_arg_nums:
        args = args[: options.max_arg_nums - 1] + ["..."]
    return f"{name}({', '.join(args)})"


def render(
    record: "ErrorRecord",
    verbosity: Verbosity | int | None = None,
    options: RenderOptions | None = None,
) -> str:
    """Render an error as text.

    Levels:
        SILENT: empty string
        MESSAGE: ``message``
        LOCATION: ``message at <file> line <n>.``
        FULL: ``kind: message at <file> line <n>`` plus one line per caller

    Args:
        record: Error to render
        verbosity: Level to use (defaults to the record's verbosity)
        options: Backtrace formatting limits

    Returns:
        Rendered text, newline-terminated unless empty
    """
    level = Verbosity(record.verbosity if verbosity is None else verbosity)
    options = options or RenderOptions()
    message = record.message

    if level == Verbosity.SILENT:
        return ""
    if level == Verbosity.MESSAGE:
        return f"{message}\n"

    innermost = record.stack.innermost if record.stack is not None else None
    source = (innermost.source if innermost else None) or "unknown"
    line = (innermost.line if innermost else None) or 0

    if level == Verbosity.LOCATION:
        return f"{message} at {source} line {line}.\n"

    thread = ""
    if record.process is not None and record.process.tid:
        thread = f" thread {record.process.tid}"

    kind = record.kind or type(record).__name__
    if options.color:
        head = f"{RED}{kind}{RESET}: {message} at {CYAN}{source}{RESET} line {line}{thread}\n"
    else:
        head = f"{kind}: {message} at {source} line {line}{thread}\n"

    lines = [head]
    if record.stack is not None:
        # Each caller line names the function whose frame sits one level in.
        frames = record.stack.frames
        for index in range(len(frames) - 1, 0, -1):
            callee = frames[index]
            caller = frames[index - 1]
            activation = format_activation(callee, options)
            caller_source = caller.source or "unknown"
            caller_line = caller.line or 0
            if options.color:
                activation = f"{LIGHT_BLUE}{activation}{RESET}"
            lines.append(
                f"\t{activation} called at {caller_source} line {caller_line}{thread}\n"
            )
    return "".join(lines)


def stderr_display(record: "ErrorRecord") -> None:
    """Default display handler: write the rendered error to stderr."""
    from trycore.context import get_context

    sys.stderr.write(record.render(options=get_context().render_options))


class DisplayChain:
    """Immutable chain of display handlers. Last registered runs first."""

    def __init__(self, handlers: tuple[DisplayHandler, ...] = ()):
        """Initialize display chain.

        Args:
            handlers: Handlers in registration order
        """
        self._handlers = tuple(handlers)

    @classmethod
    def default(cls) -> "DisplayChain":
        """Chain holding only the stderr handler."""
        return cls((stderr_display,))

    @property
    def handlers(self) -> tuple[DisplayHandler, ...]:
        """Handlers in registration order."""
        return self._handlers

    def push(self, handler: DisplayHandler) -> "DisplayChain":
        """Return a new chain with ``handler`` registered last.

        Args:
            handler: Callable receiving the error

        Returns:
            New DisplayChain
        """
        return DisplayChain(self._handlers + (handler,))

    def __len__(self) -> int:
        return len(self._handlers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DisplayChain):
            return NotImplemented
        return self._handlers == other._handlers

    def __hash__(self) -> int:
        return hash(self._handlers)

    def __repr__(self) -> str:
        names = [getattr(h, "__name__", repr(h)) for h in self._handlers]
        return f"DisplayChain({names})"

    def run(self, record: "ErrorRecord") -> None:
        """Invoke every handler, last registered first.

        A failing handler is logged and skipped; display never raises into
        the caller.

        Args:
            record: Error to display
        """
        for handler in reversed(self._handlers):
            try:
                handler(record)
            except Exception:
                name = getattr(handler, "__name__", repr(handler))
                logger.exception(
                    f"Display handler {name} failed for error kind '{record.kind}'",
                    handler=name,
                    kind=record.kind,
                )
