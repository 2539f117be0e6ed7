"""Shared fixtures and helpers for the bewell test suite."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import pytest

from bewell.analytics.activity import ActivityEvent, ActivityType
from bewell.analytics.conversation import ConversationEvent, ConversationState
from bewell.storage import MemoryCache, MemoryScoreStore

DAY = date(2026, 10, 18)


# ---------------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------------


def at(hour: int, minute: int = 0, second: int = 0, day: date = DAY) -> datetime:
    """A naive local datetime on *day*."""
    return datetime(day.year, day.month, day.day, hour, minute, second)


def activity(
    when: datetime,
    kind: ActivityType | str,
    confidence: float = 90.0,
) -> ActivityEvent:
    return ActivityEvent(timestamp=when, activity=ActivityType(kind), confidence=confidence)


def conversation(
    when: datetime,
    state: ConversationState | str,
    duration: float,
) -> ConversationEvent:
    return ConversationEvent(timestamp=when, state=ConversationState(state), duration=duration)


class FakeClock:
    """Settable clock for code that takes ``clock=``."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FailingScoreStore(MemoryScoreStore):
    """A score store whose every call fails, like an unreachable backend."""

    def __init__(self, exc: Exception | None = None) -> None:
        super().__init__()
        self.exc = exc or ConnectionError("store unreachable")
        self.calls = 0

    async def get_current(self, user_id):
        self.calls += 1
        raise self.exc

    async def upsert_current(self, user_id, score):
        self.calls += 1
        raise self.exc

    async def upsert_daily(self, user_id, daily):
        self.calls += 1
        raise self.exc

    async def list_daily(self, user_id, since=None):
        self.calls += 1
        raise self.exc


# ---------------------------------------------------------------------------
# Capture file helpers
# ---------------------------------------------------------------------------


def write_jsonl(path: Path, entries: list[dict]) -> Path:
    """Write a list of dicts as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(at(12))


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def store() -> MemoryScoreStore:
    return MemoryScoreStore()
