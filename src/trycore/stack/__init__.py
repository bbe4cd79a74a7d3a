"""trycore stack - Call-stack snapshots, capture and merge."""

from .capture import DEFAULT_INTERNAL_PREFIXES, capture, frame_record, is_internal_module
from .merger import merge, shared_suffix_length
from .types import StackFrame, StackSnapshot

__all__ = [
    "StackFrame",
    "StackSnapshot",
    "capture",
    "frame_record",
    "is_internal_module",
    "DEFAULT_INTERNAL_PREFIXES",
    "merge",
    "shared_suffix_length",
]
