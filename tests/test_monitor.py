"""Tests for bewell.monitor -- the tick-driven session pipeline."""

from __future__ import annotations

from datetime import timedelta

import pytest

from bewell.analytics.activity import ActivityType
from bewell.analytics.conversation import ConversationState
from bewell.analytics.location import LocationState
from bewell.config import Settings
from bewell.engine import ScoringEngine
from bewell.monitor import SessionMonitor
from bewell.storage import MemoryCache

from tests.conftest import FakeClock, activity, at


def push_still(monitor: SessionMonitor, n: int = 30) -> None:
    for _ in range(n):
        monitor.push_acceleration(0.0, 0.0, 1.0)
    for _ in range(10):
        monitor.push_location(0.0, 5.0)


def push_audio(monitor: SessionMonitor, level: float, n: int) -> None:
    for _ in range(n):
        monitor.push_audio(level=level)


@pytest.fixture
def monitor(clock):
    return SessionMonitor(clock=clock)


class TestTick:
    def test_no_samples(self, monitor):
        result = monitor.tick()
        assert result.activity == ActivityType.UNKNOWN
        assert not result.activity_changed
        assert result.conversation == ConversationState.SILENT
        assert result.location == LocationState.STATIONARY
        assert not result.possibly_sleeping
        assert monitor.aggregator.activity_history == []

    def test_transition_reaches_aggregator(self, monitor):
        push_still(monitor)
        result = monitor.tick(at(12, 0, 1))
        assert result.activity == ActivityType.STATIONARY
        assert result.activity_changed
        assert result.confidence == pytest.approx(95.0)
        assert result.location == LocationState.OUTDOOR
        events = monitor.aggregator.activity_history
        assert [e.activity for e in events] == [ActivityType.STATIONARY]

        # Same label again: no new event
        assert not monitor.tick(at(12, 0, 2)).activity_changed
        assert len(monitor.aggregator.activity_history) == 1
        assert monitor.tick(at(12, 0, 3)).inactive_seconds == 3

    def test_conversation_bouts_reach_aggregator(self, monitor):
        push_audio(monitor, 50.0, 30)
        result = monitor.tick(at(12, 1))
        assert result.conversation == ConversationState.CONVERSATION
        assert result.speaking_seconds == 0.0

        assert monitor.tick(at(12, 2)).speaking_seconds == 60.0

        push_audio(monitor, 5.0, 50)
        monitor.tick(at(12, 11))
        events = monitor.aggregator.conversation_history
        assert [(e.state, e.duration) for e in events] == [
            (ConversationState.SILENT, 60.0),
            (ConversationState.CONVERSATION, 600.0),
        ]
        assert monitor.today_metrics(at(12, 30)).social_interaction_minutes == pytest.approx(10.0)

    def test_sleep_gates_at_night(self):
        clock = FakeClock(at(23))
        monitor = SessionMonitor(clock=clock)
        push_still(monitor)
        push_audio(monitor, 3.0, 30)
        # The inactivity counter must pass 30 s first
        for i in range(30):
            result = monitor.tick(at(23, 0, i))
            assert not result.possibly_sleeping
        result = monitor.tick(at(23, 0, 30))
        assert result.inactive_seconds == 31
        assert result.possibly_sleeping

    def test_metering_input(self, monitor):
        for _ in range(30):
            monitor.push_audio(metering=-150.0)
        monitor.tick()
        assert monitor.windows.audio_level == pytest.approx(6.25)
        assert monitor.conversation.state == ConversationState.SILENT


class TestScoringUpdates:
    @pytest.mark.asyncio
    async def test_without_engine(self, monitor):
        assert await monitor.update_scores() is None
        assert monitor.last_metrics is not None
        assert not monitor.last_metrics.has_data

    @pytest.mark.asyncio
    async def test_feeds_engine(self, clock):
        engine = ScoringEngine(MemoryCache(), clock=clock)
        engine.load()
        monitor = SessionMonitor(engine=engine, clock=clock)
        monitor.aggregator.add_activity(activity(at(8), "walking", 80))
        monitor.aggregator.add_activity(activity(at(8, 30), "stationary"))
        score = await monitor.update_scores()
        assert score.physical_activity == pytest.approx(100.0)
        assert not engine.is_using_sample_data

    @pytest.mark.asyncio
    async def test_no_data_leaves_engine_on_sample_data(self, clock):
        engine = ScoringEngine(MemoryCache(), clock=clock)
        engine.load()
        monitor = SessionMonitor(engine=engine, clock=clock)
        assert await monitor.update_scores() is None
        assert engine.is_using_sample_data


class TestRun:
    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self, monitor):
        seen = []

        def on_tick(result):
            seen.append(result)
            if len(seen) == 3:
                monitor.stop()

        await monitor.run(tick_interval=0.001, update_interval=1000.0, on_tick=on_tick)
        assert len(seen) == 3
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_schedules_periodic_updates(self, monitor):
        calls = []

        async def record_update(now=None):
            calls.append(now)

        monitor.update_scores = record_update
        ticks = []

        def on_tick(result):
            ticks.append(result)
            if len(ticks) == 3:
                monitor.stop()

        await monitor.run(tick_interval=0.001, update_interval=0.0, on_tick=on_tick)
        # One at start, then one per tick
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_failed_update_does_not_stop_ticking(self, monitor):
        async def broken_update(now=None):
            raise RuntimeError("store exploded")

        monitor.update_scores = broken_update
        ticks = []

        def on_tick(result):
            ticks.append(result)
            if len(ticks) == 2:
                monitor.stop()

        await monitor.run(tick_interval=0.001, update_interval=0.0, on_tick=on_tick)
        assert len(ticks) == 2

    @pytest.mark.asyncio
    async def test_tick_error_does_not_stop_ticking(self, monitor):
        ticks = []

        def on_tick(result):
            ticks.append(result)
            if len(ticks) == 3:
                monitor.stop()
            raise ValueError("display went away")

        await monitor.run(tick_interval=0.001, update_interval=1000.0, on_tick=on_tick)
        assert len(ticks) == 3

    @pytest.mark.asyncio
    async def test_uses_configured_intervals(self, clock):
        settings = Settings(tick_interval_sec=0.001, update_interval_sec=0.0)
        monitor = SessionMonitor.from_settings(settings, clock=clock)
        calls = []

        async def record_update(now=None):
            calls.append(now)

        monitor.update_scores = record_update
        ticks = []

        def on_tick(result):
            ticks.append(result)
            if len(ticks) == 2:
                monitor.stop()

        await monitor.run(on_tick=on_tick)
        assert len(calls) == 3


class TestFromSettings:
    def test_applies_settings(self, clock):
        settings = Settings(retention_days=2, tick_interval_sec=0.5, update_interval_sec=60.0)
        monitor = SessionMonitor.from_settings(settings, clock=clock)
        assert monitor.aggregator.retention == timedelta(days=2)
        assert monitor.tick_interval == 0.5
        assert monitor.update_interval == 60.0
        assert monitor.engine is None

    def test_retention_prunes_old_events(self, clock):
        monitor = SessionMonitor.from_settings(Settings(retention_days=1), clock=clock)
        monitor.aggregator.add_activity(activity(at(12) - timedelta(days=2), "walking"))
        monitor.aggregator.add_activity(activity(at(11), "stationary"))
        assert [e.activity for e in monitor.aggregator.activity_history] == [ActivityType.STATIONARY]
