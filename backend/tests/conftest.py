"""Shared test configuration, pytest markers and fakes."""

import pytest

from services.cache.store import MemoryStore
from services.cache.user_cache import UserCache
from services.errors import TransientError
from services.inference.client import InferenceClient


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: loads real ML models (slow, needs GPU/CPU)"
    )


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInference(InferenceClient):
    """Scripted inference backend; ``None`` outputs raise TransientError."""

    def __init__(self, tags=None, classification=None):
        self.tags = tags
        self.classification = classification
        self.tag_calls = 0
        self.classify_calls = 0
        self.closed = False

    async def tag_entities(self, text):
        self.tag_calls += 1
        if self.tags is None:
            raise TransientError("NER backend unavailable")
        return self.tags

    async def classify(self, text):
        self.classify_calls += 1
        if self.classification is None:
            raise TransientError("sentiment backend unavailable")
        return self.classification

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def cache(store):
    return UserCache(store)


@pytest.fixture
def failing_inference():
    return FakeInference()
