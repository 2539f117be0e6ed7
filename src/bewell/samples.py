"""Rolling sample windows for the phone sensor streams.

Each stream (acceleration magnitude, filtered GPS speed, audio level) is kept
in a single fixed-capacity FIFO.  Pushing beyond capacity silently drops the
oldest sample; there is no backpressure.  Readers get immutable snapshots.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SensorKind(str, Enum):
    """The three scalar streams fed by the device."""

    ACCELERATION = "acceleration"
    SPEED = "speed"
    AUDIO = "audio"


@dataclass(frozen=True)
class SensorSample:
    """One timestamped scalar reading."""

    timestamp: datetime
    value: float


# ---------------------------------------------------------------------------
# Stream capacities and ingestion filters
# ---------------------------------------------------------------------------

ACCEL_CAPACITY = 100  # 10 s at 10 Hz
SPEED_CAPACITY = 10
AUDIO_CAPACITY = 100

GPS_ACCURACY_UNKNOWN = 999.0  # metres; worst case until the first fix

# Speeds reported with poor accuracy, or below walking jitter, are zeroed
SPEED_FILTER_MAX_ACCURACY = 20.0
SPEED_FILTER_MIN_SPEED = 0.2

# Microphone metering is dBFS in [-160, 0]
METERING_FLOOR_DB = -160.0
METERING_SCALE = 1.6


class SampleBuffer:
    """Fixed-capacity FIFO of :class:`SensorSample`."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._samples: deque[SensorSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, value: float, timestamp: datetime | None = None) -> SensorSample:
        sample = SensorSample(
            timestamp=timestamp if timestamp is not None else datetime.now(),
            value=float(value),
        )
        self._samples.append(sample)
        return sample

    def snapshot(self) -> tuple[SensorSample, ...]:
        """All buffered samples, oldest first."""
        return tuple(self._samples)

    def values(self, last: int | None = None) -> tuple[float, ...]:
        """The values of the newest *last* samples (all when None), oldest first."""
        if last is None or last >= len(self._samples):
            return tuple(s.value for s in self._samples)
        if last <= 0:
            return ()
        start = len(self._samples) - last
        return tuple(s.value for i, s in enumerate(self._samples) if i >= start)

    def latest(self) -> SensorSample | None:
        return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        self._samples.clear()

    def __repr__(self) -> str:
        return f"SampleBuffer({len(self)}/{self.capacity})"


# ---------------------------------------------------------------------------
# Ingestion helpers
# ---------------------------------------------------------------------------


def accel_magnitude(x: float, y: float, z: float) -> float:
    """Euclidean norm of an (x, y, z) reading in g."""
    return math.sqrt(x * x + y * y + z * z)


def filter_speed(speed: float | None, accuracy: float | None) -> float:
    """Zero out GPS speeds that are too inaccurate or too small to trust."""
    spd = speed or 0.0
    acc = accuracy if accuracy is not None else GPS_ACCURACY_UNKNOWN
    if acc > SPEED_FILTER_MAX_ACCURACY or spd < SPEED_FILTER_MIN_SPEED:
        return 0.0
    return float(spd)


def normalize_metering(metering_db: float) -> float:
    """Map microphone metering (dBFS, -160..0) onto a 0-100 level."""
    level = (metering_db - METERING_FLOOR_DB) / METERING_SCALE
    return max(0.0, min(100.0, level))


class SensorWindows:
    """The three rolling windows plus the latest GPS accuracy.

    Not reentrant: a single producer context is expected to push samples
    between classifier ticks.
    """

    def __init__(
        self,
        accel_capacity: int = ACCEL_CAPACITY,
        speed_capacity: int = SPEED_CAPACITY,
        audio_capacity: int = AUDIO_CAPACITY,
    ) -> None:
        self.acceleration = SampleBuffer(accel_capacity)
        self.speed = SampleBuffer(speed_capacity)
        self.audio = SampleBuffer(audio_capacity)
        self.gps_accuracy = GPS_ACCURACY_UNKNOWN

    def buffer(self, kind: SensorKind) -> SampleBuffer:
        return {
            SensorKind.ACCELERATION: self.acceleration,
            SensorKind.SPEED: self.speed,
            SensorKind.AUDIO: self.audio,
        }[SensorKind(kind)]

    def push_acceleration(
        self,
        x: float,
        y: float,
        z: float,
        timestamp: datetime | None = None,
    ) -> SensorSample:
        return self.acceleration.push(accel_magnitude(x, y, z), timestamp)

    def push_location(
        self,
        speed: float | None,
        accuracy: float | None,
        timestamp: datetime | None = None,
    ) -> SensorSample:
        self.gps_accuracy = float(accuracy) if accuracy is not None else GPS_ACCURACY_UNKNOWN
        return self.speed.push(filter_speed(speed, accuracy), timestamp)

    def push_audio(
        self,
        level: float | None = None,
        metering: float | None = None,
        timestamp: datetime | None = None,
    ) -> SensorSample:
        """Push either a normalized level (0-100) or raw metering in dBFS."""
        if level is None and metering is None:
            raise ValueError("push_audio needs a level or a metering value")
        value = float(level) if level is not None else normalize_metering(metering)
        return self.audio.push(value, timestamp)

    @property
    def smoothed_speed(self) -> float:
        """Mean of the buffered (filtered) speeds, 0 when empty."""
        speeds = self.speed.values()
        return sum(speeds) / len(speeds) if speeds else 0.0

    @property
    def audio_level(self) -> float:
        """Most recent audio level, 0 when nothing has been heard yet."""
        latest = self.audio.latest()
        return latest.value if latest is not None else 0.0

    def clear(self) -> None:
        self.acceleration.clear()
        self.speed.clear()
        self.audio.clear()
        self.gps_accuracy = GPS_ACCURACY_UNKNOWN
