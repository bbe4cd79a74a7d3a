"""Call-stack capture driven by the debug level."""

import inspect
import reprlib
import sys
from collections.abc import Iterator
from types import FrameType, TracebackType

from trycore.types import DebugLevel

from .types import StackFrame, StackSnapshot

DEFAULT_INTERNAL_PREFIXES: tuple[str, ...] = ("trycore",)

_MULTI_RETURN_FLAGS = (
    inspect.CO_GENERATOR
    | inspect.CO_COROUTINE
    | inspect.CO_ASYNC_GENERATOR
    | inspect.CO_ITERABLE_COROUTINE
)

_arg_repr = reprlib.Repr()
_arg_repr.maxstring = 256
_arg_repr.maxother = 256
_arg_repr.maxlevel = 3


def is_internal_module(module: str | None, prefixes: tuple[str, ...]) -> bool:
    """Check whether a module belongs to the engine itself.

    Args:
        module: Module name of a frame (``__name__`` of its globals)
        prefixes: Package prefixes treated as engine-internal

    Returns:
        True if ``module`` equals or lives under one of ``prefixes``
    """
    if not module:
        return False
    return any(module == prefix or module.startswith(prefix + ".") for prefix in prefixes)


def frame_record(frame: FrameType, line: int | None = None) -> StackFrame:
    """Build an immutable StackFrame from a live frame.

    Args:
        frame: Interpreter frame
        line: Line number override (tracebacks carry their own)

    Returns:
        StackFrame for the frame
    """
    code = frame.f_code
    positional = code.co_varnames[: code.co_argcount]
    has_varargs = bool(code.co_flags & inspect.CO_VARARGS)
    has_arguments = bool(
        code.co_argcount
        or code.co_kwonlyargcount
        or code.co_flags & (inspect.CO_VARARGS | inspect.CO_VARKEYWORDS)
    )

    local_vars = frame.f_locals
    arguments = [_arg_repr.repr(local_vars[name]) for name in positional if name in local_vars]
    if has_varargs:
        varargs_name = code.co_varnames[code.co_argcount + code.co_kwonlyargcount]
        arguments.extend(_arg_repr.repr(value) for value in local_vars.get(varargs_name, ()))

    return StackFrame(
        unit=frame.f_globals.get("__name__"),
        source=code.co_filename,
        line=line if line is not None else frame.f_lineno,
        activation=code.co_name,
        has_arguments=has_arguments,
        multiple_return=bool(code.co_flags & _MULTI_RETURN_FLAGS),
        arguments=tuple(arguments),
    )


def _walk_outward(frame: FrameType | None) -> Iterator[tuple[FrameType, int | None]]:
    while frame is not None:
        yield frame, None
        frame = frame.f_back


def _walk_traceback(tb: TracebackType) -> list[tuple[FrameType, int | None]]:
    """Traceback frames innermost first, then the frames outside the catcher."""
    inner: list[tuple[FrameType, int | None]] = []
    current: TracebackType | None = tb
    while current is not None:
        inner.append((current.tb_frame, current.tb_lineno))
        current = current.tb_next
    inner.reverse()
    inner.extend(_walk_outward(tb.tb_frame.f_back))
    return inner


def capture(
    debug_level: DebugLevel | int,
    *,
    frame: FrameType | None = None,
    tb: TracebackType | None = None,
    internal_prefixes: tuple[str, ...] = DEFAULT_INTERNAL_PREFIXES,
) -> StackSnapshot | None:
    """Capture the call stack according to the debug level.

    Capture runs to the top of the call stack; there is no depth limit.

    Args:
        debug_level: NONE, CONTEXT, STACK or ALL
        frame: Innermost frame to start from (defaults to the caller)
        tb: Native traceback; when given, the snapshot ends at the original
            raise point and ``frame`` is ignored
        internal_prefixes: Module prefixes treated as engine-internal

    Returns:
        StackSnapshot ordered oldest caller first, or None for NONE
    """
    level = DebugLevel(debug_level)
    if level == DebugLevel.NONE:
        return None

    if tb is not None:
        entries = _walk_traceback(tb)
    else:
        if frame is None:
            frame = sys._getframe(1)
        entries = list(_walk_outward(frame))

    def internal(entry: tuple[FrameType, int | None]) -> bool:
        return is_internal_module(entry[0].f_globals.get("__name__"), internal_prefixes)

    if level == DebugLevel.CONTEXT:
        chosen = next((entry for entry in entries if not internal(entry)), None)
        if chosen is None and entries:
            chosen = entries[0]
        selected = [chosen] if chosen is not None else []
    elif level == DebugLevel.STACK:
        selected = [entry for entry in entries if not internal(entry)]
    else:
        selected = entries

    return StackSnapshot(tuple(frame_record(f, line) for f, line in reversed(selected)))
