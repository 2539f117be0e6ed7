"""Replay recorded sensor captures through the classification pipeline.

A capture is a JSONL file with one sample per line::

    {"timestamp": "2026-10-18T23:00:00.100", "type": "accel", "x": 0.0, "y": 0.0, "z": 1.0}
    {"timestamp": "2026-10-18T23:00:00.500", "type": "location", "speed": 0.0, "accuracy": 35}
    {"timestamp": "2026-10-18T23:00:00.100", "type": "audio", "level": 8.5}
    {"timestamp": "2026-10-18T23:00:00.200", "type": "audio", "metering": -150.0}

Samples are fed in timestamp order into a fresh :class:`SessionMonitor`
whose clock is the capture time, with one classifier tick per elapsed
second of capture time.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from bewell.analytics.activity import ActivityEvent
from bewell.analytics.aggregator import WellbeingMetrics
from bewell.analytics.conversation import ConversationEvent
from bewell.monitor import SessionMonitor, TickResult

SAMPLE_TYPES = ("accel", "location", "audio")
TICK_SEC = 1.0


@dataclass
class CaptureSample:
    timestamp: datetime
    type: str
    fields: dict[str, Any]


@dataclass
class ReplayResult:
    """What came out of replaying one capture."""

    samples: int = 0
    skipped: int = 0
    ticks: int = 0
    activity_events: list[ActivityEvent] = field(default_factory=list)
    conversation_events: list[ConversationEvent] = field(default_factory=list)
    metrics_by_date: dict[str, WellbeingMetrics] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "samples": self.samples,
            "skipped": self.skipped,
            "ticks": self.ticks,
            "activity_events": [
                {
                    "timestamp": e.timestamp.isoformat(),
                    "activity": e.activity.value,
                    "confidence": round(e.confidence, 1),
                }
                for e in self.activity_events
            ],
            "conversation_events": [
                {
                    "timestamp": e.timestamp.isoformat(),
                    "state": e.state.value,
                    "duration": round(e.duration, 1),
                }
                for e in self.conversation_events
            ],
            "metrics_by_date": {d: m.to_dict() for d, m in self.metrics_by_date.items()},
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"ReplayResult(samples={self.samples}, ticks={self.ticks}, "
            f"transitions={len(self.activity_events)}, days={len(self.metrics_by_date)})"
        )


def parse_timestamp(value: Any) -> datetime:
    """ISO-8601 string or epoch seconds → naive local datetime."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def read_capture(capture_path: str | Path, verbose: bool = False) -> tuple[list[CaptureSample], int]:
    """Parse a capture file.  Returns ``(samples sorted by time, skipped line count)``."""
    samples: list[CaptureSample] = []
    skipped = 0

    with open(capture_path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
                kind = entry.pop("type")
                ts = parse_timestamp(entry.pop("timestamp"))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError,
                    OverflowError, OSError):
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] unreadable sample, skipping")
                continue
            if kind not in SAMPLE_TYPES:
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] unknown sample type {kind!r}, skipping")
                continue
            samples.append(CaptureSample(timestamp=ts, type=kind, fields=entry))

    samples.sort(key=lambda s: s.timestamp)
    return samples, skipped


def _push(monitor: SessionMonitor, sample: CaptureSample) -> None:
    f = sample.fields
    if sample.type == "accel":
        monitor.push_acceleration(float(f["x"]), float(f["y"]), float(f["z"]), sample.timestamp)
    elif sample.type == "location":
        monitor.push_location(f.get("speed"), f.get("accuracy"), sample.timestamp)
    else:
        monitor.push_audio(
            level=f.get("level"),
            metering=f.get("metering"),
            timestamp=sample.timestamp,
        )


class _CaptureClock:
    """A clock that reads the capture time being replayed."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def replay_samples(
    samples: list[CaptureSample],
    tick_sec: float = TICK_SEC,
    on_tick: Callable[[TickResult], None] | None = None,
) -> tuple[SessionMonitor | None, ReplayResult]:
    """Feed time-ordered samples through a fresh monitor.

    Returns the monitor (None for an empty capture) and the result.
    """
    result = ReplayResult()
    if not samples:
        return None, result

    step = timedelta(seconds=tick_sec)
    clock = _CaptureClock(samples[0].timestamp)
    monitor = SessionMonitor(clock=clock)

    def do_tick(at: datetime) -> None:
        clock.now = at
        tick = monitor.tick(at)
        result.ticks += 1
        if on_tick is not None:
            on_tick(tick)

    next_tick = samples[0].timestamp + step
    for sample in samples:
        while next_tick <= sample.timestamp:
            do_tick(next_tick)
            next_tick += step
        clock.now = sample.timestamp
        try:
            _push(monitor, sample)
        except (KeyError, TypeError, ValueError):
            result.skipped += 1
            continue
        result.samples += 1

    do_tick(next_tick)
    monitor.flush_conversation(next_tick)

    result.activity_events = monitor.aggregator.activity_history
    result.conversation_events = monitor.aggregator.conversation_history
    for day in sorted({s.timestamp.date() for s in samples}):
        result.metrics_by_date[day.isoformat()] = monitor.aggregator.calculate_metrics_for_date(day)
    return monitor, result


def replay_file(
    capture_path: str,
    output_path: str | None = None,
    verbose: bool = False,
) -> ReplayResult:
    """Replay a .jsonl capture file through the pipeline.

    Args:
        capture_path: Path to the .jsonl capture file.
        output_path: Optional path to write the result as JSON.
        verbose: If True, print skipped lines and every tick.

    Returns:
        The :class:`ReplayResult` (empty if the file does not exist).
    """
    path = Path(capture_path)
    if not path.exists():
        print(f"File not found: {capture_path}")
        return ReplayResult()

    print(f"Replaying {path.name}...\n")
    samples, skipped = read_capture(path, verbose)

    def show(tick: TickResult) -> None:
        if tick.activity_changed:
            print(f"  [{tick.timestamp:%Y-%m-%d %H:%M:%S}] {tick.activity.value} "
                  f"({tick.confidence:.0f}%)")
        elif verbose:
            print(f"  {tick!r}")

    _, result = replay_samples(samples, on_tick=show)
    result.skipped += skipped

    print(f"\nSummary: {result.samples} samples, {result.skipped} skipped, "
          f"{result.ticks} ticks, {len(result.activity_events)} activity transitions")
    for day, metrics in result.metrics_by_date.items():
        print(f"  {day}: {metrics!r}")

    if output_path:
        with open(output_path, "w") as out:
            out.write(result.to_json())
        print(f"Output written to {output_path}")

    return result


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m bewell.replay <capture_file.jsonl> [output.json]")
        sys.exit(1)

    capture_path = sys.argv[1]
    output_path = sys.argv[2] if len(sys.argv) > 2 and not sys.argv[2].startswith("-") else None
    verbose = "--verbose" in sys.argv or "-v" in sys.argv

    replay_file(capture_path, output_path, verbose)


if __name__ == "__main__":
    main()
