"""
Shared test fixtures and helpers for the Nidus test suite.
"""

import sys
from pathlib import Path

import pytest

# Project root, for the bundled examples package
sys.path.insert(0, str(Path(__file__).parent.parent))

from nidus.di import DependencyRegistry
from nidus.events import EventManager
from nidus.testing import TestClient
from nidus.transport import Application


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def registry():
    """Fresh root dependency registry."""
    return DependencyRegistry()


@pytest.fixture
def events():
    return EventManager()


@pytest.fixture
def app():
    """Bare transport application."""
    return Application(name="test")


@pytest.fixture
def client(app):
    return TestClient(app)


# ============================================================================
# Helpers
# ============================================================================


class Recorder:
    """Collects labels in call order."""

    def __init__(self):
        self.calls = []

    def __call__(self, label):
        self.calls.append(label)


@pytest.fixture
def recorder():
    return Recorder()
