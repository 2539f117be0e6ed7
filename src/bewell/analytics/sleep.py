"""Hard-gated sleep detection.

A phone is considered "possibly sleeping" when all four gates hold at once:

  1. it is night (21:00-08:59 local time),
  2. the activity classifier has counted more than 30 s of inactivity,
  3. the latest audio level is below 15,
  4. the last 20 acceleration magnitudes are all within 0.1 g of gravity.

There is no partial scoring.  This signal is independent of the activity
classifier's own ``sleeping`` rule, which uses different gates; the two may
disagree and both are reported as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from bewell.analytics.features import is_still, tail

NIGHT_START_HOUR = 21
NIGHT_END_HOUR = 8  # inclusive
MIN_INACTIVE_SEC = 30
QUIET_AUDIO_LEVEL = 15.0
STILL_WINDOW = 20
STILL_TOLERANCE_G = 0.1
GRAVITY_G = 1.0


def is_night_hour(hour: int) -> bool:
    """True for hours 21, 22, 23 and 0 through 8."""
    return hour >= NIGHT_START_HOUR or hour <= NIGHT_END_HOUR


@dataclass
class SleepGates:
    """The individual gate results for one evaluation."""

    night: bool
    inactive: bool
    quiet: bool
    still: bool

    @property
    def possibly_sleeping(self) -> bool:
        return self.night and self.inactive and self.quiet and self.still


def evaluate_sleep_gates(
    now: datetime,
    inactive_seconds: int,
    audio_level: float,
    accel_magnitudes: Sequence[float],
) -> SleepGates:
    return SleepGates(
        night=is_night_hour(now.hour),
        inactive=inactive_seconds > MIN_INACTIVE_SEC,
        quiet=audio_level < QUIET_AUDIO_LEVEL,
        still=is_still(tail(accel_magnitudes, STILL_WINDOW), GRAVITY_G, STILL_TOLERANCE_G),
    )


class SleepDetector:
    """Re-evaluates the sleep gates every tick and keeps the last answer."""

    def __init__(self) -> None:
        self.possibly_sleeping = False
        self.gates: SleepGates | None = None

    def update(
        self,
        now: datetime,
        inactive_seconds: int,
        audio_level: float,
        accel_magnitudes: Sequence[float],
    ) -> bool:
        self.gates = evaluate_sleep_gates(now, inactive_seconds, audio_level, accel_magnitudes)
        self.possibly_sleeping = self.gates.possibly_sleeping
        return self.possibly_sleeping
