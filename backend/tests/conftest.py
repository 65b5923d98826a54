"""Pytest configuration and shared fixtures.

Environment defaults are set before the application package is imported so
the cached settings never wait on simulated latency or real tick intervals.
"""

import os

os.environ.setdefault("CONTENT_LATENCY_SECONDS", "0")
os.environ.setdefault("TICK_INTERVAL_SECONDS", "3600")
os.environ.setdefault("REDIS_URL", "")

import pytest

from therapy_session.core.config import get_settings
from therapy_session.engine.clock import ElapsedClock
from therapy_session.engine.session import SessionEngine
from therapy_session.models.session import (
    ActivityDescriptor,
    ActivityKind,
    SessionConfig,
)


class FakeTime:
    """Manually advanced monotonic time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_config(durations=(5, 10, 3), **overrides) -> SessionConfig:
    """Build a session config with one activity per duration."""
    kinds = [ActivityKind.SPEECH, ActivityKind.MOVEMENT, ActivityKind.BREAK, ActivityKind.EXPERT]
    activities = [
        ActivityDescriptor(
            id=f"activity-{index}",
            name=f"Activity {index}",
            kind=kinds[index % len(kinds)],
            duration=duration,
        )
        for index, duration in enumerate(durations)
    ]
    values = {
        "id": "session-123",
        "name": "Dragon Kingdom Adventure",
        "duration": 45,
        "activities": activities,
        "speech_targets": ["Final Consonants", "Consonant Blends"],
        "behavior_focus": ["Engagement", "Boundaries"],
    }
    values.update(overrides)
    return SessionConfig(**values)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def clock(fake_time: FakeTime) -> ElapsedClock:
    return ElapsedClock(time_source=fake_time)


@pytest.fixture
def config() -> SessionConfig:
    return make_config()


@pytest.fixture
def engine(config: SessionConfig, clock: ElapsedClock) -> SessionEngine:
    return SessionEngine(config, max_tokens=10, clock=clock)


@pytest.fixture
def running_engine(engine: SessionEngine) -> SessionEngine:
    engine.start()
    return engine
