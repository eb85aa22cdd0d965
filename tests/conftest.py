"""Pytest configuration for lockgraph tests."""

import pytest

from lockgraph.ui.console import set_console


@pytest.fixture(autouse=True)
def reset_console():
    """Each test starts with a fresh, non-debug console."""
    set_console(None)
    yield
    set_console(None)
