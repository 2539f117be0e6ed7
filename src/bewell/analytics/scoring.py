"""BeWell-style wellbeing scoring.

Three dimensions (sleep, physical activity, social interaction), each
mapped from a daily metric onto 0-100 by a piecewise-linear curve:

  - 100 means the day meets accepted guidelines
  - 0 means the day falls short of the minimum recommended pattern

Daily scores are folded into a running "current" score with an
exponentially weighted moving average; the overall score is always the
plain mean of the three current dimension scores.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Sequence

import numpy as np

from bewell.analytics.aggregator import WellbeingMetrics


# ---------------------------------------------------------------------------
# Curves: (metric value, score) knots, ascending
# ---------------------------------------------------------------------------

# Hours of sleep: 8 h meets the guideline, under 4 h is severely short
SLEEP_CURVE = ((0.0, 0.0), (4.0, 10.0), (5.0, 30.0), (6.0, 60.0), (7.0, 80.0), (7.5, 90.0), (8.0, 100.0))

# Weighted minutes of moderate/vigorous activity (150 min/week ≈ 30 min/day target)
ACTIVITY_CURVE = ((0.0, 0.0), (5.0, 25.0), (10.0, 50.0), (15.0, 65.0), (20.0, 80.0), (30.0, 100.0))

# Minutes of conversation
SOCIAL_CURVE = (
    (0.0, 0.0), (5.0, 20.0), (10.0, 40.0), (20.0, 55.0), (30.0, 70.0), (45.0, 85.0), (60.0, 100.0),
)

SMOOTHING_ALPHA = 0.3
SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return min(max(value, low), high)


def piecewise_linear(value: float, curve: Sequence[tuple[float, float]]) -> float:
    """Linear interpolation through *curve*, flat beyond both ends, clamped to 0-100."""
    if value is None or math.isnan(value):
        return SCORE_MIN
    xs = [x for x, _ in curve]
    ys = [y for _, y in curve]
    return clamp(float(np.interp(value, xs, ys)))


def calculate_sleep_score(sleep_hours: float) -> float:
    return piecewise_linear(sleep_hours, SLEEP_CURVE)


def calculate_physical_activity_score(activity_minutes: float) -> float:
    return piecewise_linear(activity_minutes, ACTIVITY_CURVE)


def calculate_social_interaction_score(interaction_minutes: float) -> float:
    return piecewise_linear(interaction_minutes, SOCIAL_CURVE)


def exponential_smoothing(previous: float, today: float, alpha: float = SMOOTHING_ALPHA) -> float:
    """EMA step: ``alpha * today + (1 - alpha) * previous``."""
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be within [0, 1], got {alpha}")
    return alpha * today + (1.0 - alpha) * previous


def overall_score(sleep: float, physical_activity: float, social_interaction: float) -> float:
    return (sleep + physical_activity + social_interaction) / 3.0


# ---------------------------------------------------------------------------
# Score records
# ---------------------------------------------------------------------------


@dataclass
class DailyWellbeingScores:
    """One calendar day's dimension scores."""

    date: str  # ISO date, e.g. "2026-10-19"
    sleep: float
    physical_activity: float
    social_interaction: float

    @property
    def overall(self) -> float:
        return overall_score(self.sleep, self.physical_activity, self.social_interaction)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "sleep": self.sleep,
            "physical_activity": self.physical_activity,
            "social_interaction": self.social_interaction,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyWellbeingScores:
        return cls(
            date=str(data["date"]),
            sleep=clamp(float(data["sleep"])),
            physical_activity=clamp(float(data["physical_activity"])),
            social_interaction=clamp(float(data["social_interaction"])),
        )

    def __repr__(self) -> str:
        return (
            f"DailyWellbeingScores({self.date}: sleep={self.sleep:.0f}, "
            f"activity={self.physical_activity:.0f}, social={self.social_interaction:.0f})"
        )


@dataclass
class WellbeingScore:
    """The running (smoothed) score.

    ``overall`` is derived on every read, so it can never go stale.
    """

    sleep: float
    physical_activity: float
    social_interaction: float
    last_updated: datetime = field(default_factory=datetime.now)

    @property
    def overall(self) -> float:
        return overall_score(self.sleep, self.physical_activity, self.social_interaction)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleep": self.sleep,
            "physical_activity": self.physical_activity,
            "social_interaction": self.social_interaction,
            "overall": self.overall,
            "last_updated": self.last_updated.isoformat(),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WellbeingScore:
        """Rebuild from :meth:`to_dict` output; a stored ``overall`` is ignored."""
        return cls(
            sleep=clamp(float(data["sleep"])),
            physical_activity=clamp(float(data["physical_activity"])),
            social_interaction=clamp(float(data["social_interaction"])),
            last_updated=datetime.fromisoformat(data["last_updated"]),
        )

    def __repr__(self) -> str:
        return (
            f"WellbeingScore(overall={self.overall:.1f}, sleep={self.sleep:.1f}, "
            f"activity={self.physical_activity:.1f}, social={self.social_interaction:.1f})"
        )


def calculate_daily_scores(
    metrics: WellbeingMetrics,
    day: date | str | None = None,
) -> DailyWellbeingScores:
    """Map one day's metrics onto the three curves."""
    if day is None:
        day = date.today()
    date_str = day if isinstance(day, str) else day.isoformat()
    return DailyWellbeingScores(
        date=date_str,
        sleep=calculate_sleep_score(metrics.sleep_hours),
        physical_activity=calculate_physical_activity_score(metrics.physical_activity_minutes),
        social_interaction=calculate_social_interaction_score(metrics.social_interaction_minutes),
    )


def smooth_scores(
    previous: WellbeingScore | None,
    today: DailyWellbeingScores,
    alpha: float = SMOOTHING_ALPHA,
    now: datetime | None = None,
) -> WellbeingScore:
    """Fold today's scores into the running score.

    With no previous score the daily scores are taken as-is; there is no
    baseline to smooth against.
    """
    now = now or datetime.now()
    if previous is None:
        return WellbeingScore(
            sleep=today.sleep,
            physical_activity=today.physical_activity,
            social_interaction=today.social_interaction,
            last_updated=now,
        )
    return WellbeingScore(
        sleep=exponential_smoothing(previous.sleep, today.sleep, alpha),
        physical_activity=exponential_smoothing(
            previous.physical_activity, today.physical_activity, alpha
        ),
        social_interaction=exponential_smoothing(
            previous.social_interaction, today.social_interaction, alpha
        ),
        last_updated=now,
    )


# ---------------------------------------------------------------------------
# Interpretation
# ---------------------------------------------------------------------------


class ScoreLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ScoreInterpretation:
    level: ScoreLevel
    color: str  # hex, for display
    message: str


# (lower bound, interpretation), highest first
INTERPRETATION_BANDS = (
    (80.0, ScoreInterpretation(ScoreLevel.EXCELLENT, "#10B981", "Excellent - Meeting recommended guidelines")),
    (60.0, ScoreInterpretation(ScoreLevel.GOOD, "#3B82F6", "Good - Close to recommended levels")),
    (40.0, ScoreInterpretation(ScoreLevel.FAIR, "#F59E0B", "Fair - Below recommended levels")),
    (20.0, ScoreInterpretation(ScoreLevel.POOR, "#EF4444", "Poor - Significantly below recommended levels")),
)
CRITICAL = ScoreInterpretation(
    ScoreLevel.CRITICAL, "#DC2626", "Critical - Well below minimum recommended levels"
)


def interpret_score(score: float) -> ScoreInterpretation:
    for lower, interpretation in INTERPRETATION_BANDS:
        if score >= lower:
            return interpretation
    return CRITICAL


# ---------------------------------------------------------------------------
# Synthetic baseline
# ---------------------------------------------------------------------------


def generate_sample_data(
    days: int = 10,
    now: datetime | None = None,
) -> tuple[list[DailyWellbeingScores], WellbeingScore]:
    """A smooth, plausible placeholder history for display before real data exists.

    Deterministic: sine/cosine variation around fixed bases.  Returns the
    daily list (newest first) and a current score equal to the newest day.
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")
    now = now or datetime.now()
    today = now.date()

    daily: list[DailyWellbeingScores] = []
    for i in range(days):
        day = today - timedelta(days=i)
        sleep = clamp(85.0 + math.sin((i + 1) * 0.6) * 8.0, 70.0, 98.0)
        activity = clamp(78.0 + math.cos((i + 1) * 0.4) * 10.0, 60.0, 95.0)
        social = clamp(72.0 + math.sin((i + 2) * 0.7) * 12.0, 55.0, 92.0)
        daily.append(DailyWellbeingScores(
            date=day.isoformat(),
            sleep=round(sleep, 1),
            physical_activity=round(activity, 1),
            social_interaction=round(social, 1),
        ))

    daily.sort(key=lambda d: d.date, reverse=True)
    latest = daily[0]
    current = WellbeingScore(
        sleep=latest.sleep,
        physical_activity=latest.physical_activity,
        social_interaction=latest.social_interaction,
        last_updated=now,
    )
    return daily, current
