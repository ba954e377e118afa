"""
Configuration for pytest: import path setup and shared fixtures.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the project root to the Python path so the package imports without installing
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

# Import after path setup
from underbar.app import app
from underbar.config import Settings


class CallRecorder:
    """Callable that records every invocation and returns a configurable value."""

    def __init__(self, result=None, side_effect=None):
        self.calls = []
        self.result = result
        self.side_effect = side_effect
        self.__name__ = "recorder"

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.side_effect is not None:
            return self.side_effect(*args, **kwargs)
        return self.result

    @property
    def call_count(self):
        return len(self.calls)


@pytest.fixture
def recorder():
    """Fresh recording callable returning None."""
    return CallRecorder()


@pytest.fixture
def make_recorder():
    """Factory for recording callables with a result or side effect."""
    return CallRecorder


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def small_limit(monkeypatch):
    """Shrink the service's collection size limit to 3 items."""
    settings = Settings(max_collection_size=3)
    monkeypatch.setattr("underbar.models.get_settings", lambda: settings)
    return settings


@pytest.fixture
def stooges():
    return [
        {"name": "moe", "age": 40},
        {"name": "larry", "age": 50},
        {"name": "curly", "age": 60},
    ]
