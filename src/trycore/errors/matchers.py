"""Native exception matchers for normalizing raw failures into ErrorRecords."""

from typing import Any

from .errors import NativeMatch, NativeMatcher


def _base_properties(error: BaseException) -> dict[str, Any]:
    return {"exception_type": type(error).__name__}


class TimeoutErrorMatcher(NativeMatcher):
    """Matches timeout errors."""

    def matches(self, error: BaseException) -> bool:
        """Check if error is a timeout error.

        Args:
            error: Native exception to check

        Returns:
            True if error is a timeout error
        """
        return isinstance(error, TimeoutError)

    def extract(self, error: BaseException) -> NativeMatch:
        """Extract timeout error info.

        Args:
            error: Native exception to extract from

        Returns:
            NativeMatch with the timeout kind
        """
        return NativeMatch(kind="timeout", properties=_base_properties(error))


class OSErrorMatcher(NativeMatcher):
    """Matches I/O and operating-system errors."""

    def matches(self, error: BaseException) -> bool:
        """Check if error is an OSError.

        Args:
            error: Native exception to check

        Returns:
            True if error is an OSError
        """
        return isinstance(error, OSError)

    def extract(self, error: BaseException) -> NativeMatch:
        """Extract errno and filename.

        Args:
            error: Native exception to extract from

        Returns:
            NativeMatch with the io kind
        """
        properties = _base_properties(error)
        if isinstance(error, OSError):
            if error.errno is not None:
                properties["errno"] = error.errno
            if error.filename is not None:
                properties["filename"] = str(error.filename)
        return NativeMatch(kind="io", properties=properties)


class TypedErrorMatcher(NativeMatcher):
    """Matches one family of built-in exceptions to a fixed kind."""

    def __init__(self, error_type: type[BaseException], kind: str):
        """Initialize typed matcher.

        Args:
            error_type: Exception class to match (subclasses included)
            kind: Kind assigned to matching exceptions
        """
        self.error_type = error_type
        self.kind = kind

    def matches(self, error: BaseException) -> bool:
        """Check if error is an instance of the configured type."""
        return isinstance(error, self.error_type)

    def extract(self, error: BaseException) -> NativeMatch:
        """Assign the configured kind."""
        return NativeMatch(kind=self.kind, properties=_base_properties(error))


class GenericErrorMatcher(NativeMatcher):
    """Fallback matcher for any exception."""

    def matches(self, error: BaseException) -> bool:
        """Always matches.

        Args:
            error: Native exception to check

        Returns:
            Always True (fallback matcher)
        """
        return True

    def extract(self, error: BaseException) -> NativeMatch:
        """Extract generic error info.

        Args:
            error: Native exception to extract from

        Returns:
            NativeMatch with the runtime kind
        """
        return NativeMatch(kind="runtime", properties=_base_properties(error))


class NativeMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self) -> None:
        """Initialize matcher chain with built-in matchers."""
        self.matchers: list[NativeMatcher] = []
        self._load_builtin_matchers()

    def match(self, error: BaseException) -> NativeMatch:
        """Find first matching matcher and extract result.

        Args:
            error: Native exception to classify

        Returns:
            NativeMatch from first matching matcher
        """
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)

        # Should never reach here due to GenericErrorMatcher
        return NativeMatch(kind="runtime", properties=_base_properties(error))

    def register(self, matcher: NativeMatcher) -> None:
        """Add a matcher ahead of the built-in fallback.

        Args:
            matcher: Matcher to try before the generic one
        """
        self.matchers.insert(len(self.matchers) - 1, matcher)

    def _load_builtin_matchers(self) -> None:
        """Load built-in matchers in priority order."""
        # Order matters - TimeoutError is an OSError subclass
        self.matchers = [
            TimeoutErrorMatcher(),
            OSErrorMatcher(),
            TypedErrorMatcher(LookupError, "lookup"),
            TypedErrorMatcher(ValueError, "value"),
            TypedErrorMatcher(TypeError, "type"),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
