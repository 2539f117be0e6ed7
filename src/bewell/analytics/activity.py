"""Activity classification from phone accelerometer + GPS speed windows.

Every tick the last ~3 s of acceleration magnitudes (10 Hz) and the last
10 filtered GPS speeds are reduced to a handful of statistics, which are
run through an ordered decision table.  Confidence grows with how far the
statistic sits inside the rule's range and is capped per rule.

The classifier also owns the "seconds inactive" counter: stationary rules
increment it, locomotion rules reset it, the sleeping rule leaves it alone.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

from bewell.analytics.features import tail, window_stats
from bewell.analytics.rules import Decision, Rule, decide


class ActivityType(str, Enum):
    """Discrete activity label."""

    STATIONARY = "stationary"
    WALKING = "walking"
    RUNNING = "running"
    CYCLING = "cycling"
    SLEEPING = "sleeping"
    UNKNOWN = "unknown"


class Inactivity(str, Enum):
    """What a rule does to the inactivity counter."""

    INCREMENT = "increment"
    RESET = "reset"
    KEEP = "keep"


@dataclass(frozen=True)
class ActivityEvent:
    """A label transition, as recorded by the event aggregator."""

    timestamp: datetime
    activity: ActivityType
    confidence: float  # 0-100


@dataclass
class ActivityFeatures:
    """Statistics the decision table looks at."""

    accel_mean: float
    accel_std: float
    speed_mean: float
    deviation_from_gravity: float  # |accel_mean - 1 g|
    gps_accuracy: float  # metres
    inactive_seconds: int


# ---------------------------------------------------------------------------
# Windows and thresholds
# ---------------------------------------------------------------------------

ACCEL_WINDOW = 30  # samples (~3 s at 10 Hz)
SPEED_WINDOW = 10
MIN_ACCEL_SAMPLES = 10
GRAVITY_G = 1.0

SLEEP_INACTIVE_SEC = 30
SLEEP_CONFIDENCE_RAMP_SEC = 120.0

UNKNOWN_CONFIDENCE = 35.0
HISTORY_SIZE = 20


def extract_activity_features(
    accel_magnitudes: Sequence[float],
    speeds: Sequence[float],
    gps_accuracy: float,
    inactive_seconds: int = 0,
) -> ActivityFeatures | None:
    """Reduce the raw windows to :class:`ActivityFeatures`.

    Returns None when fewer than ``MIN_ACCEL_SAMPLES`` accelerometer samples
    are available in the window.
    """
    accel = tail(accel_magnitudes, ACCEL_WINDOW)
    if len(accel) < MIN_ACCEL_SAMPLES:
        return None
    accel_stats = window_stats(accel)
    speed_stats = window_stats(tail(speeds, SPEED_WINDOW))
    return ActivityFeatures(
        accel_mean=accel_stats.mean,
        accel_std=accel_stats.std,
        speed_mean=speed_stats.mean,
        deviation_from_gravity=abs(accel_stats.mean - GRAVITY_G),
        gps_accuracy=float(gps_accuracy),
        inactive_seconds=int(inactive_seconds),
    )


# ---------------------------------------------------------------------------
# Decision table (first match wins)
# ---------------------------------------------------------------------------


def _still(f: ActivityFeatures) -> bool:
    return f.accel_std < 0.05 and f.speed_mean < 0.3 and f.deviation_from_gravity < 0.1


def _walking(f: ActivityFeatures) -> bool:
    walking_speed = 0.3 <= f.speed_mean < 2.5
    return walking_speed and (0.05 <= f.accel_std < 0.4 or f.deviation_from_gravity >= 0.1)


def _running(f: ActivityFeatures) -> bool:
    return (f.accel_std >= 0.4 and f.speed_mean >= 2.0) or 2.5 <= f.speed_mean < 7.0


def _cycling(f: ActivityFeatures) -> bool:
    return 3.5 <= f.speed_mean < 12.0 and f.accel_std < 0.4


def _walking_indoors(f: ActivityFeatures) -> bool:
    # Movement without a usable GPS fix
    return 0.05 <= f.accel_std < 0.5 and f.speed_mean < 0.3 and f.gps_accuracy > 20.0


def _sleeping(f: ActivityFeatures) -> bool:
    return f.accel_std < 0.03 and f.speed_mean < 0.2 and f.inactive_seconds > SLEEP_INACTIVE_SEC


def _slow(f: ActivityFeatures) -> bool:
    return f.speed_mean < 0.3


ACTIVITY_RULES: list[Rule[ActivityFeatures]] = [
    Rule(
        name="still",
        label=ActivityType.STATIONARY,
        predicate=_still,
        confidence=lambda f: min(95.0, 80.0 + (1.0 - f.accel_std * 10.0) * 15.0),
        effect=Inactivity.INCREMENT,
    ),
    Rule(
        name="walking",
        label=ActivityType.WALKING,
        predicate=_walking,
        confidence=lambda f: min(92.0, 65.0 + f.accel_std * 60.0),
        effect=Inactivity.RESET,
    ),
    Rule(
        name="running",
        label=ActivityType.RUNNING,
        predicate=_running,
        confidence=lambda f: min(95.0, 75.0 + min(f.accel_std, 1.0) * 20.0),
        effect=Inactivity.RESET,
    ),
    Rule(
        name="cycling",
        label=ActivityType.CYCLING,
        predicate=_cycling,
        confidence=lambda f: min(88.0, 65.0 + (f.speed_mean / 12.0) * 23.0),
        effect=Inactivity.RESET,
    ),
    Rule(
        name="walking_indoors",
        label=ActivityType.WALKING,
        predicate=_walking_indoors,
        confidence=lambda f: min(75.0, 50.0 + f.accel_std * 50.0),
        effect=Inactivity.RESET,
    ),
    Rule(
        name="sleeping",
        label=ActivityType.SLEEPING,
        predicate=_sleeping,
        confidence=lambda f: min(
            90.0, 60.0 + min(f.inactive_seconds / SLEEP_CONFIDENCE_RAMP_SEC, 1.0) * 30.0
        ),
        effect=Inactivity.KEEP,
    ),
    Rule(
        name="slow",
        label=ActivityType.STATIONARY,
        predicate=_slow,
        confidence=lambda f: 55.0,
        effect=Inactivity.INCREMENT,
    ),
]

UNKNOWN_RULE: Rule[ActivityFeatures] = Rule(
    name="unknown",
    label=ActivityType.UNKNOWN,
    predicate=lambda f: True,
    confidence=lambda f: UNKNOWN_CONFIDENCE,
    effect=Inactivity.RESET,
)


def classify_activity(features: ActivityFeatures) -> Decision:
    """Run the decision table; never returns None thanks to the unknown fallback."""
    decision = decide(ACTIVITY_RULES, features, fallback=UNKNOWN_RULE)
    assert decision is not None
    return decision


def apply_inactivity(inactive_seconds: int, effect: Inactivity, step: int = 1) -> int:
    """New inactivity counter after a rule with *effect* fired."""
    if effect == Inactivity.INCREMENT:
        return inactive_seconds + step
    if effect == Inactivity.RESET:
        return 0
    return inactive_seconds


# ---------------------------------------------------------------------------
# Stateful classifier
# ---------------------------------------------------------------------------


@dataclass
class ActivityUpdate:
    """Result of one classifier tick."""

    activity: ActivityType
    confidence: float
    changed: bool  # label differs from the previous emitted label
    event: ActivityEvent | None  # set only when changed
    rule: str

    def __repr__(self) -> str:
        flag = " *" if self.changed else ""
        return f"ActivityUpdate({self.activity.value}, {self.confidence:.0f}%{flag})"


class ActivityClassifier:
    """Tick-driven activity classifier with run-length encoded output.

    Holds the inactivity counter and the last emitted label.  A new
    :class:`ActivityEvent` is produced only when the label changes.
    """

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        self.inactive_seconds = 0
        self.activity = ActivityType.UNKNOWN
        self.confidence = 0.0
        self._last_label: ActivityType | None = None
        self._history: deque[ActivityEvent] = deque(maxlen=history_size)

    @property
    def history(self) -> tuple[ActivityEvent, ...]:
        """Recent label transitions, oldest first."""
        return tuple(self._history)

    def update(
        self,
        accel_magnitudes: Sequence[float],
        speeds: Sequence[float],
        gps_accuracy: float,
        timestamp: datetime,
    ) -> ActivityUpdate | None:
        """Classify one tick.  Returns None (state untouched) on insufficient data."""
        features = extract_activity_features(
            accel_magnitudes, speeds, gps_accuracy, self.inactive_seconds
        )
        if features is None:
            return None

        decision = classify_activity(features)
        self.inactive_seconds = apply_inactivity(self.inactive_seconds, decision.rule.effect)

        label: ActivityType = decision.label
        confidence = float(decision.confidence or 0.0)
        self.activity = label
        self.confidence = confidence

        event = None
        changed = label != self._last_label
        if changed:
            event = ActivityEvent(timestamp=timestamp, activity=label, confidence=confidence)
            self._history.append(event)
            self._last_label = label

        return ActivityUpdate(
            activity=label,
            confidence=confidence,
            changed=changed,
            event=event,
            rule=decision.rule.name,
        )

    def reset(self) -> None:
        self.inactive_seconds = 0
        self.activity = ActivityType.UNKNOWN
        self.confidence = 0.0
        self._last_label = None
        self._history.clear()
