"""Shared fixtures."""

import pytest
from fakes import FakeRuntime

from ig_mcp_server.gadgets.manager import GadgetManager


@pytest.fixture
def runtime() -> FakeRuntime:
    """Fresh in-memory gadget runtime."""
    return FakeRuntime()


@pytest.fixture
def manager(runtime: FakeRuntime) -> GadgetManager:
    """GadgetManager over the fake runtime."""
    return GadgetManager(runtime)
