"""
Pytest configuration and shared fixtures for trycore tests.
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trycore.context import Context, reset_context, use_context  # noqa: E402
from trycore.errors import DisplayChain  # noqa: E402
from trycore.logging import reset_loggers  # noqa: E402
from trycore.types import DebugLevel  # noqa: E402


# =============================================================================
# State Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None, None, None]:
    """Reset the thread context and logger cache around every test."""
    reset_context()
    reset_loggers()
    yield
    reset_context()
    reset_loggers()


@pytest.fixture
def context() -> Generator[Context, None, None]:
    """Fresh context with display output collected instead of printed."""
    ctx = Context()
    ctx.update_template(display_chain=DisplayChain())
    with use_context(ctx):
        yield ctx


@pytest.fixture
def debug_context(context: Context):
    """Factory switching the active context's debug level."""

    def _set(level: DebugLevel) -> Context:
        context.set_debug_level(level)
        return context

    return _set


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def config_file(tmp_path: Path):
    """Factory writing a YAML config file and returning its path."""

    def _write(content: str, name: str = "trycore.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
