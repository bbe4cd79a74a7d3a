"""Per-thread engine context: default error template, kinds and capture settings."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from trycore.errors.display import DisplayChain, DisplayHandler, RenderOptions
from trycore.errors.errors import ErrorRecord
from trycore.errors.matchers import NativeMatcherChain
from trycore.errors.registry import KindRegistry
from trycore.stack import DEFAULT_INTERNAL_PREFIXES
from trycore.types import DebugLevel

if TYPE_CHECKING:
    from trycore.config import TrycoreConfig


@dataclass
class Context:
    """Everything a thread needs to create, match and display errors.

    New errors are cloned from ``template``, so changing the template (its
    debug level, display chain, exit code...) only affects errors created
    afterwards.
    """

    template: ErrorRecord = field(default_factory=ErrorRecord)
    registry: KindRegistry = field(default_factory=KindRegistry)
    matcher_chain: NativeMatcherChain = field(default_factory=NativeMatcherChain)
    internal_prefixes: tuple[str, ...] = DEFAULT_INTERNAL_PREFIXES
    render_options: RenderOptions = field(default_factory=RenderOptions)

    @classmethod
    def from_config(cls, config: "TrycoreConfig") -> "Context":
        """Build a context from loaded configuration.

        Args:
            config: Loaded configuration

        Returns:
            New Context
        """
        template = ErrorRecord(
            kind=config.defaults.kind,
            default_message=config.defaults.message,
            exit_code=config.defaults.exit_code,
            debug_level=config.capture.debug_level,
            verbosity=config.display.verbosity,
        )
        return cls(
            template=template,
            internal_prefixes=tuple(config.capture.internal_prefixes),
            render_options=RenderOptions(
                max_arg_len=config.display.max_arg_len,
                max_arg_nums=config.display.max_arg_nums,
                color=config.display.color,
            ),
        )

    @property
    def debug_level(self) -> DebugLevel:
        """Debug level new errors are created with."""
        return self.template.debug_level

    @property
    def display_chain(self) -> DisplayChain:
        """Display chain new errors are created with."""
        return self.template.display_chain

    def update_template(self, **changes: Any) -> ErrorRecord:
        """Replace the template with a modified copy.

        Args:
            **changes: ErrorRecord fields to change

        Returns:
            The new template
        """
        self.template = replace(self.template, **changes)
        return self.template

    def set_debug_level(self, level: DebugLevel | int) -> None:
        """Change the debug level for errors created from now on."""
        self.update_template(debug_level=DebugLevel(level))

    def push_display_handler(self, handler: DisplayHandler) -> None:
        """Register a display handler for errors created from now on."""
        self.update_template(display_chain=self.template.display_chain.push(handler))

    def register_kind(self, name: str, parent: str | None = None) -> str:
        """Register a kind in this context's registry."""
        return self.registry.register_kind(name, parent)


_local = threading.local()


def get_context() -> Context:
    """Get the calling thread's context, creating a default one on first use.

    Returns:
        Context for the current thread
    """
    context = getattr(_local, "context", None)
    if context is None:
        context = Context()
        _local.context = context
    return context


def set_context(context: Context) -> None:
    """Install a context for the calling thread."""
    _local.context = context


def reset_context() -> None:
    """Drop the calling thread's context (for testing)."""
    _local.context = None


@contextmanager
def use_context(context: Context) -> Iterator[Context]:
    """Install a context for the duration of a block.

    Args:
        context: Context to use

    Yields:
        The installed context
    """
    previous = getattr(_local, "context", None)
    _local.context = context
    try:
        yield context
    finally:
        _local.context = previous
