"""Event aggregation: classified event histories → daily wellbeing metrics.

Activity events are label transitions, so the time spent in a state is the
gap until the next observed transition.  An event is attributed to the
calendar day it starts on.  The most recent event contributes nothing:
there is no "next" to bound it.  This undercounts a state that is
still ongoing (e.g. sleep running past the last sample).

Conversation events already carry their own duration and are summed
directly.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

from bewell.analytics.activity import ActivityEvent, ActivityType
from bewell.analytics.conversation import SPEAKING_STATES, ConversationEvent
from bewell.analytics.sleep import is_night_hour


@dataclass
class WellbeingMetrics:
    """Raw per-day quantities, before curve mapping."""

    sleep_hours: float = 0.0
    physical_activity_minutes: float = 0.0
    social_interaction_minutes: float = 0.0

    @property
    def has_data(self) -> bool:
        """True when at least one metric is strictly positive."""
        return (
            self.sleep_hours > 0
            or self.physical_activity_minutes > 0
            or self.social_interaction_minutes > 0
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"WellbeingMetrics(sleep={self.sleep_hours:.1f}h, "
            f"active={self.physical_activity_minutes:.0f}min, "
            f"social={self.social_interaction_minutes:.0f}min)"
        )


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

RETENTION_DAYS = 7

SLEEP_MIN_CONFIDENCE = 70.0
ACTIVE_MIN_CONFIDENCE = 60.0

# Weighted minutes per real minute of activity
ACTIVITY_WEIGHTS = {
    ActivityType.WALKING: 1.0,
    ActivityType.RUNNING: 1.5,
    ActivityType.CYCLING: 1.3,
}


# ---------------------------------------------------------------------------
# Metric extraction (pure)
# ---------------------------------------------------------------------------


def events_on(events: Iterable[Any], day: date) -> list[Any]:
    """Events whose timestamp falls on *day* (00:00:00 to 23:59:59.999999), in time order."""
    return sorted((e for e in events if e.timestamp.date() == day), key=lambda e: e.timestamp)


def timed_events(
    events: Iterable[ActivityEvent],
    day: date,
) -> Iterable[tuple[ActivityEvent, float]]:
    """Yield each event starting on *day* with the seconds until the next event.

    The next event may fall after midnight (a 23:00 sleep ended by a 06:00
    walk lasts 7 h).  The last event of the history is never yielded.
    """
    ordered: Sequence[ActivityEvent] = sorted(events, key=lambda e: e.timestamp)
    for current, nxt in zip(ordered, ordered[1:]):
        if current.timestamp.date() == day:
            yield current, (nxt.timestamp - current.timestamp).total_seconds()


def sleep_hours_from_activities(events: Iterable[ActivityEvent], day: date) -> float:
    """Hours of confident night-time ``sleeping`` that started on *day*."""
    sleep_seconds = 0.0
    for event, duration in timed_events(events, day):
        if (
            event.activity == ActivityType.SLEEPING
            and event.confidence >= SLEEP_MIN_CONFIDENCE
            and is_night_hour(event.timestamp.hour)
        ):
            sleep_seconds += duration
    return sleep_seconds / 3600.0


def active_minutes_from_activities(events: Iterable[ActivityEvent], day: date) -> float:
    """Weighted minutes of confident walking, running or cycling started on *day*."""
    active_seconds = 0.0
    for event, duration in timed_events(events, day):
        weight = ACTIVITY_WEIGHTS.get(event.activity)
        if weight is not None and event.confidence >= ACTIVE_MIN_CONFIDENCE:
            active_seconds += duration * weight
    return active_seconds / 60.0


def social_minutes_from_conversations(events: Iterable[ConversationEvent], day: date) -> float:
    """Minutes spent talking or in conversation on *day*."""
    seconds = sum(e.duration for e in events_on(events, day) if e.state in SPEAKING_STATES)
    return seconds / 60.0


def metrics_for_date(
    activities: Iterable[ActivityEvent],
    conversations: Iterable[ConversationEvent],
    day: date,
) -> WellbeingMetrics:
    activities = list(activities)
    return WellbeingMetrics(
        sleep_hours=sleep_hours_from_activities(activities, day),
        physical_activity_minutes=active_minutes_from_activities(activities, day),
        social_interaction_minutes=social_minutes_from_conversations(conversations, day),
    )


# ---------------------------------------------------------------------------
# Bounded-retention aggregator
# ---------------------------------------------------------------------------


class EventAggregator:
    """Owns the activity and conversation event histories of one session.

    Histories are pruned to the retention window on every write and every
    read, relative to *clock* (``datetime.now`` by default).
    """

    def __init__(
        self,
        retention_days: int = RETENTION_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if retention_days <= 0:
            raise ValueError(f"retention_days must be positive, got {retention_days}")
        self.retention = timedelta(days=retention_days)
        self._clock = clock or datetime.now
        self._activities: list[ActivityEvent] = []
        self._conversations: list[ConversationEvent] = []

    def _cutoff(self) -> datetime:
        return self._clock() - self.retention

    def _prune(self) -> None:
        cutoff = self._cutoff()
        self._activities = [a for a in self._activities if a.timestamp >= cutoff]
        self._conversations = [c for c in self._conversations if c.timestamp >= cutoff]

    def add_activity(self, event: ActivityEvent) -> None:
        self._activities.append(event)
        self._prune()

    def add_conversation(self, event: ConversationEvent) -> None:
        self._conversations.append(event)
        self._prune()

    @property
    def activity_history(self) -> list[ActivityEvent]:
        self._prune()
        return list(self._activities)

    @property
    def conversation_history(self) -> list[ConversationEvent]:
        self._prune()
        return list(self._conversations)

    def calculate_metrics_for_date(self, day: date | datetime) -> WellbeingMetrics:
        if isinstance(day, datetime):
            day = day.date()
        return metrics_for_date(self.activity_history, self.conversation_history, day)

    def calculate_today_metrics(self) -> WellbeingMetrics:
        return self.calculate_metrics_for_date(self._clock().date())

    def clear(self) -> None:
        self._activities = []
        self._conversations = []

    def __repr__(self) -> str:
        return (
            f"EventAggregator(activities={len(self._activities)}, "
            f"conversations={len(self._conversations)})"
        )
