"""Error factory for creating ErrorRecords and normalizing native failures."""

from dataclasses import replace
from types import TracebackType
from typing import TYPE_CHECKING, Any, NoReturn

from trycore.types import FailureOrigin

from .errors import ErrorRecord

if TYPE_CHECKING:
    from trycore.context import Context


class ErrorFactory:
    """Creates ErrorRecords from the context template or from any exception."""

    def __init__(self, context: "Context | None" = None):
        """Initialize error factory.

        Args:
            context: Context to clone errors from (defaults to the calling
                thread's context at call time)
        """
        self._context = context

    @property
    def context(self) -> "Context":
        """Context errors are created from."""
        if self._context is not None:
            return self._context
        from trycore.context import get_context

        return get_context()

    def create(
        self,
        kind: str | None = None,
        *lines: str,
        **properties: Any,
    ) -> ErrorRecord:
        """Create an ErrorRecord from the template.

        Args:
            kind: Error kind (defaults to the template's kind)
            *lines: Message lines
            **properties: Read-only properties

        Returns:
            ErrorRecord instance (not yet raised)
        """
        template = self.context.template
        return replace(
            template,
            kind=template.kind if kind is None else kind,
            lines=lines or template.lines,
            properties=properties or template.properties,
            origin=FailureOrigin.USER_RAISED,
            stack=None,
            timestamp=None,
            process=None,
            cause=None,
        )

    def normalize(
        self,
        error: BaseException,
        tb: TracebackType | None = None,
        origin: FailureOrigin = FailureOrigin.RUNTIME_RAISED,
    ) -> ErrorRecord:
        """Convert any exception to an ErrorRecord.

        ErrorRecords pass through unchanged. Anything else becomes a new
        record cloned from the template, classified by the matcher chain,
        and stamped with a stack captured from its traceback.

        Args:
            error: Exception to convert
            tb: Traceback to capture from (defaults to the exception's own)
            origin: Origin to record for a native failure

        Returns:
            ErrorRecord instance
        """
        if isinstance(error, ErrorRecord):
            return error

        context = self.context
        match = context.matcher_chain.match(error)
        template = context.template
        record = replace(
            template,
            kind=match.kind,
            lines=(str(error) or type(error).__name__,),
            properties=match.properties,
            origin=origin,
            stack=None,
            cause=error,
        )
        return record.raised(
            tb=tb or error.__traceback__,
            internal_prefixes=context.internal_prefixes,
        )


# Convenience singleton
_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton.

    The singleton holds no context of its own; it always works against the
    calling thread's context.

    Returns:
        Default ErrorFactory instance
    """
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(kind: str, *lines: str, **properties: Any) -> ErrorRecord:
    """Convenience function to create an error.

    Args:
        kind: Error kind
        *lines: Message lines
        **properties: Read-only properties

    Returns:
        ErrorRecord instance
    """
    return get_error_factory().create(kind, *lines, **properties)


def normalize(error: BaseException, tb: TracebackType | None = None) -> ErrorRecord:
    """Convenience function to normalize a raw failure.

    Args:
        error: Exception to convert
        tb: Optional traceback override

    Returns:
        ErrorRecord instance
    """
    return get_error_factory().normalize(error, tb)


def throw(kind_or_error: str | ErrorRecord, *lines: str, **properties: Any) -> NoReturn:
    """Raise a new error of a kind, or re-raise an existing one.

    Args:
        kind_or_error: Kind for a new error, or an ErrorRecord to re-raise
        *lines: Message lines (appended when re-raising)
        **properties: Properties for a new error

    Raises:
        ErrorRecord: Always
        TypeError: If properties are given together with an existing error
    """
    if isinstance(kind_or_error, ErrorRecord):
        if properties:
            msg = "Properties are read-only; create a new error instead"
            raise TypeError(msg)
        raise kind_or_error.raised(*lines)
    raise create_error(kind_or_error, **properties).raised(*lines)
