"""Merge a previously attached stack snapshot with a fresh one."""

from .types import StackSnapshot


def shared_suffix_length(old: StackSnapshot, new: StackSnapshot) -> int:
    """Count frames both snapshots share at their innermost end.

    Args:
        old: Previously attached snapshot
        new: Freshly captured snapshot

    Returns:
        Number of equal frames walking inward from the innermost frame
    """
    count = 0
    limit = min(len(old), len(new))
    while count < limit and old.frames[-1 - count] == new.frames[-1 - count]:
        count += 1
    return count


def merge(old: StackSnapshot | None, new: StackSnapshot | None) -> StackSnapshot | None:
    """Reconcile an old snapshot with a new one on re-raise.

    Walks both snapshots from their innermost frames while the frames are
    equal. The part of ``old`` older than the point where the walk stopped
    is prepended to ``new``; everything already represented in ``new`` is
    dropped, so a snapshot merged with itself is returned unchanged.

    Args:
        old: Snapshot already attached to the error (may be None or empty)
        new: Snapshot captured by the current raise (may be None)

    Returns:
        Merged snapshot, or None if both inputs are None
    """
    if old is None:
        return new
    if new is None:
        return old

    consumed = shared_suffix_length(old, new)
    prefix = old.frames[: len(old) - consumed]
    if not prefix:
        return new
    return StackSnapshot(prefix + new.frames)
