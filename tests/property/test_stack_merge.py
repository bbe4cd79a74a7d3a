"""Property-based tests for stack snapshot merging.

Tests idempotence, the length bound and preservation of the old outer prefix.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from trycore.stack import StackFrame, StackSnapshot, merge, shared_suffix_length

# =============================================================================
# Strategies
# =============================================================================

frames = st.builds(
    StackFrame,
    unit=st.sampled_from(["app", "app.io", None]),
    source=st.sampled_from(["app.py", "io.py"]),
    line=st.integers(min_value=1, max_value=5),
    activation=st.sampled_from(["main", "load", "parse"]),
)

snapshots = st.lists(frames, max_size=8).map(lambda fs: StackSnapshot(tuple(fs)))


# =============================================================================
# Property Tests
# =============================================================================


@pytest.mark.property
class TestMergeProperties:
    """Property tests for merge."""

    @given(snapshots)
    @settings(max_examples=100)
    def test_idempotent(self, snap):
        """Merging a snapshot with itself returns it unchanged."""
        assert merge(snap, snap) == snap

    @given(snapshots, snapshots)
    @settings(max_examples=100)
    def test_length_bound(self, old, new):
        """Merged length never exceeds the combined lengths."""
        assert len(merge(old, new)) <= len(old) + len(new)

    @given(snapshots, snapshots)
    @settings(max_examples=100)
    def test_ends_with_new(self, old, new):
        """The fresh snapshot is always kept whole at the inner end."""
        merged = merge(old, new)
        assert merged.frames[len(merged) - len(new) :] == new.frames

    @given(snapshots, snapshots, st.lists(frames, min_size=1, max_size=4))
    @settings(max_examples=100)
    def test_prefix_preserved_with_shared_suffix(self, old_outer, new_outer, shared):
        """With a shared innermost suffix, old's unconsumed prefix leads the result."""
        old = StackSnapshot(old_outer.frames + tuple(shared))
        new = StackSnapshot(new_outer.frames + tuple(shared))
        consumed = shared_suffix_length(old, new)
        merged = merge(old, new)

        assert consumed >= len(shared)
        assert len(merged) <= len(old) + len(new)
        assert merged.frames[: len(old) - consumed] == old.frames[: len(old) - consumed]
