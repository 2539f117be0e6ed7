"""Coarse location context from GPS speed and fix accuracy.

A good fix (accuracy within 30 m) while not moving suggests open sky, i.e.
outdoors; a poor fix suggests being indoors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from bewell.analytics.features import tail, window_stats
from bewell.analytics.rules import Rule, decide


class LocationState(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    MOVING = "moving"
    STATIONARY = "stationary"


@dataclass
class LocationFeatures:
    speed_mean: float
    speed_max: float
    gps_accuracy: float


SPEED_WINDOW = 10
MIN_SPEED_SAMPLES = 3
MOVING_MEAN_SPEED = 0.5  # m/s
MOVING_MAX_SPEED = 0.8
OUTDOOR_MAX_ACCURACY = 30.0  # metres


LOCATION_RULES: list[Rule[LocationFeatures]] = [
    Rule(
        "moving",
        LocationState.MOVING,
        lambda f: f.speed_mean >= MOVING_MEAN_SPEED or f.speed_max >= MOVING_MAX_SPEED,
    ),
    Rule("outdoor", LocationState.OUTDOOR, lambda f: f.gps_accuracy <= OUTDOOR_MAX_ACCURACY),
    Rule("indoor", LocationState.INDOOR, lambda f: f.gps_accuracy > OUTDOOR_MAX_ACCURACY),
]

# Only reachable when accuracy is NaN
STATIONARY_FALLBACK: Rule[LocationFeatures] = Rule(
    "stationary", LocationState.STATIONARY, lambda f: True
)


def extract_location_features(
    speeds: Sequence[float],
    gps_accuracy: float,
) -> LocationFeatures | None:
    window = tail(speeds, SPEED_WINDOW)
    if len(window) < MIN_SPEED_SAMPLES:
        return None
    stats = window_stats(window)
    return LocationFeatures(
        speed_mean=stats.mean,
        speed_max=stats.maximum,
        gps_accuracy=float(gps_accuracy),
    )


def classify_location(features: LocationFeatures) -> LocationState:
    decision = decide(LOCATION_RULES, features, fallback=STATIONARY_FALLBACK)
    assert decision is not None
    return decision.label


class LocationClassifier:
    """Holds the last location context across ticks."""

    def __init__(self) -> None:
        self.state = LocationState.STATIONARY

    def update(self, speeds: Sequence[float], gps_accuracy: float) -> LocationState | None:
        features = extract_location_features(speeds, gps_accuracy)
        if features is None:
            return None
        self.state = classify_location(features)
        return self.state
