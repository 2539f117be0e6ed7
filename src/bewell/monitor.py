"""Tick-driven session monitor.

Wires the sample windows, the four classifiers, the conversation bout
tracker, the event aggregator and (optionally) the scoring engine for one
user session.  Create one at sign-in and drop it at sign-out.

Ingestion (``push_*``) and :meth:`SessionMonitor.tick` run on the same
thread / event loop; classification is synchronous.  The periodic scoring
update is scheduled as a background task so that a slow store never delays
ticks.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import structlog

from bewell.analytics.activity import ActivityClassifier, ActivityType
from bewell.analytics.aggregator import EventAggregator, WellbeingMetrics
from bewell.analytics.conversation import (
    ConversationClassifier,
    ConversationState,
    ConversationTracker,
)
from bewell.analytics.location import LocationClassifier, LocationState
from bewell.analytics.scoring import WellbeingScore
from bewell.analytics.sleep import SleepDetector
from bewell.config import Settings
from bewell.engine import ScoringEngine
from bewell.samples import SensorSample, SensorWindows

logger = structlog.get_logger(__name__)

TICK_INTERVAL_SEC = 1.0
UPDATE_INTERVAL_SEC = 300.0


@dataclass
class TickResult:
    """Everything the display layer needs after one tick."""

    timestamp: datetime
    activity: ActivityType
    confidence: float
    activity_changed: bool
    conversation: ConversationState
    speaking_seconds: float
    location: LocationState
    possibly_sleeping: bool
    inactive_seconds: int

    def __repr__(self) -> str:
        return (
            f"TickResult({self.timestamp:%H:%M:%S} {self.activity.value} "
            f"{self.confidence:.0f}%, {self.conversation.value}, "
            f"{self.location.value}, sleep={self.possibly_sleeping})"
        )


class SessionMonitor:
    """Per-session pipeline: samples → classifiers → events → scores."""

    def __init__(
        self,
        engine: ScoringEngine | None = None,
        aggregator: EventAggregator | None = None,
        windows: SensorWindows | None = None,
        clock: Callable[[], datetime] | None = None,
        tick_interval: float = TICK_INTERVAL_SEC,
        update_interval: float = UPDATE_INTERVAL_SEC,
    ) -> None:
        self._clock = clock or datetime.now
        self.tick_interval = tick_interval
        self.update_interval = update_interval
        self.engine = engine
        self.aggregator = aggregator or EventAggregator(clock=self._clock)
        self.windows = windows or SensorWindows()

        self.activity = ActivityClassifier()
        self.conversation = ConversationClassifier()
        self.location = LocationClassifier()
        self.sleep = SleepDetector()
        self.tracker = ConversationTracker(now=self._clock())

        self.last_metrics: WellbeingMetrics | None = None
        self._running = False
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        engine: ScoringEngine | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> SessionMonitor:
        clock = clock or datetime.now
        return cls(
            engine=engine,
            aggregator=EventAggregator(retention_days=settings.retention_days, clock=clock),
            clock=clock,
            tick_interval=settings.tick_interval_sec,
            update_interval=settings.update_interval_sec,
        )

    # -----------------------------------------------------------------------
    # Ingestion
    # -----------------------------------------------------------------------

    def push_acceleration(
        self, x: float, y: float, z: float, timestamp: datetime | None = None
    ) -> SensorSample:
        return self.windows.push_acceleration(x, y, z, timestamp or self._clock())

    def push_location(
        self, speed: float | None, accuracy: float | None, timestamp: datetime | None = None
    ) -> SensorSample:
        return self.windows.push_location(speed, accuracy, timestamp or self._clock())

    def push_audio(
        self,
        level: float | None = None,
        metering: float | None = None,
        timestamp: datetime | None = None,
    ) -> SensorSample:
        return self.windows.push_audio(level, metering, timestamp or self._clock())

    # -----------------------------------------------------------------------
    # Classification
    # -----------------------------------------------------------------------

    def tick(self, now: datetime | None = None) -> TickResult:
        """Run every classifier once and forward transitions to the aggregator."""
        now = now or self._clock()
        accel = self.windows.acceleration.values()
        speeds = self.windows.speed.values()
        gps_accuracy = self.windows.gps_accuracy

        update = self.activity.update(accel, speeds, gps_accuracy, now)
        changed = False
        if update is not None and update.event is not None:
            self.aggregator.add_activity(update.event)
            changed = True

        state = self.conversation.update(self.windows.audio.values())
        if state is not None:
            event = self.tracker.observe(state, now)
            if event is not None:
                self.aggregator.add_conversation(event)

        self.location.update(speeds, gps_accuracy)
        self.sleep.update(
            now,
            self.activity.inactive_seconds,
            self.windows.audio_level,
            accel,
        )

        return TickResult(
            timestamp=now,
            activity=self.activity.activity,
            confidence=self.activity.confidence,
            activity_changed=changed,
            conversation=self.conversation.state,
            speaking_seconds=self.tracker.speaking_seconds(now),
            location=self.location.state,
            possibly_sleeping=self.sleep.possibly_sleeping,
            inactive_seconds=self.activity.inactive_seconds,
        )

    def flush_conversation(self, now: datetime | None = None) -> None:
        """Record the open conversation bout so far."""
        event = self.tracker.flush(now or self._clock())
        if event is not None:
            self.aggregator.add_conversation(event)

    def today_metrics(self, now: datetime | None = None) -> WellbeingMetrics:
        now = now or self._clock()
        self.flush_conversation(now)
        self.last_metrics = self.aggregator.calculate_metrics_for_date(now.date())
        return self.last_metrics

    async def update_scores(self, now: datetime | None = None) -> WellbeingScore | None:
        """Hand today's metrics to the scoring engine (no-op without an engine)."""
        now = now or self._clock()
        metrics = self.today_metrics(now)
        if self.engine is None:
            return None
        return await self.engine.update_scores(metrics, now.date())

    # -----------------------------------------------------------------------
    # Scheduling
    # -----------------------------------------------------------------------

    async def _update_in_background(self) -> None:
        try:
            await self.update_scores()
        except Exception as e:
            logger.error("monitor.update_failed", error=str(e), error_type=type(e).__name__)

    def _schedule_update(self) -> None:
        task = asyncio.create_task(self._update_in_background())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(
        self,
        tick_interval: float | None = None,
        update_interval: float | None = None,
        on_tick: Callable[[TickResult], None] | None = None,
    ) -> None:
        """Tick until :meth:`stop` is called.

        A scoring update is scheduled immediately and then every
        *update_interval* seconds; in-flight updates are awaited on exit.
        Intervals default to the ones the monitor was built with.
        """
        tick_interval = self.tick_interval if tick_interval is None else tick_interval
        update_interval = self.update_interval if update_interval is None else update_interval
        loop = asyncio.get_running_loop()
        self._running = True
        logger.info("monitor.started", tick_interval=tick_interval, update_interval=update_interval)

        self._schedule_update()
        last_update = loop.time()
        try:
            while self._running:
                await asyncio.sleep(tick_interval)
                if not self._running:
                    break
                try:
                    result = self.tick()
                    if on_tick is not None:
                        on_tick(result)
                except Exception as e:
                    logger.error("monitor.tick_error", error=str(e), error_type=type(e).__name__)
                if loop.time() - last_update >= update_interval:
                    self._schedule_update()
                    last_update = loop.time()
        finally:
            self._running = False
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("monitor.stopped")

    def stop(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running
