"""Kind registry: named error kinds with a single-parent hierarchy."""

from .errors import ErrorRecord

ROOT_KIND = "error"

# kind -> parent, in registration order
_BUILTIN_KINDS: tuple[tuple[str, str], ...] = (
    ("runtime", ROOT_KIND),
    ("io", "runtime"),
    ("timeout", "runtime"),
    ("value", "runtime"),
    ("lookup", "runtime"),
    ("type", "runtime"),
    ("config", ROOT_KIND),
    ("config.invalid", "config"),
    ("kind.invalid", ROOT_KIND),
)


class KindRegistry:
    """Registry of error kinds. Answers "is-a" queries over parent links."""

    def __init__(self, load_builtins: bool = True) -> None:
        """Initialize kind registry.

        Args:
            load_builtins: Register the built-in kinds (default True)
        """
        self._parents: dict[str, str | None] = {ROOT_KIND: None}
        if load_builtins:
            self._load_builtin_kinds()

    def register_kind(self, name: str, parent: str | None = None) -> str:
        """Register a new kind.

        Re-registering a kind with the same parent is a no-op.

        Args:
            name: Kind name, e.g. "io.not_found"
            parent: Parent kind (defaults to the root kind)

        Returns:
            The registered kind name

        Raises:
            ErrorRecord: kind.invalid if the name is empty, the parent is
                unknown, or the kind exists with a different parent
        """
        parent = parent or ROOT_KIND
        if not name:
            raise ErrorRecord(kind="kind.invalid", lines=("Kind name must not be empty",))
        if name == ROOT_KIND:
            raise ErrorRecord(
                kind="kind.invalid",
                lines=(f"Kind '{ROOT_KIND}' is the root and cannot be registered",),
            )
        if parent not in self._parents:
            raise ErrorRecord(
                kind="kind.invalid",
                lines=(f"Unknown parent kind '{parent}' for kind '{name}'",),
                properties={"kind_name": name, "parent": parent},
            )
        existing = self._parents.get(name, parent)
        if existing != parent:
            raise ErrorRecord(
                kind="kind.invalid",
                lines=(f"Kind '{name}' is already registered with parent '{existing}'",),
                properties={"kind_name": name, "parent": parent},
            )
        self._parents[name] = parent
        return name

    def parent_of(self, kind: str) -> str | None:
        """Get the parent of a kind (None for the root or unknown kinds)."""
        return self._parents.get(kind)

    def lineage(self, kind: str) -> list[str]:
        """List ``kind`` followed by its ancestors up to the root.

        Args:
            kind: Kind to walk from

        Returns:
            Kind names, nearest first; just ``[kind]`` for unknown kinds
        """
        chain = [kind]
        parent = self._parents.get(kind)
        while parent is not None:
            chain.append(parent)
            parent = self._parents.get(parent)
        return chain

    def is_kind_of(self, kind: str, ancestor: str) -> bool:
        """Check whether ``kind`` is ``ancestor`` or descends from it.

        Args:
            kind: Kind under test
            ancestor: Kind to test against

        Returns:
            True if ``ancestor`` appears in the lineage of ``kind``
        """
        return ancestor in self.lineage(kind)

    def list_kinds(self) -> list[str]:
        """List all registered kinds in registration order."""
        return list(self._parents.keys())

    def copy(self) -> "KindRegistry":
        """Return an independent copy of this registry."""
        clone = KindRegistry(load_builtins=False)
        clone._parents = dict(self._parents)
        return clone

    def __contains__(self, kind: object) -> bool:
        return kind in self._parents

    def _load_builtin_kinds(self) -> None:
        """Load built-in kinds."""
        for name, parent in _BUILTIN_KINDS:
            self._parents[name] = parent
