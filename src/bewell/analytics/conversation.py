"""Conversation detection from the microphone level window.

The audio level (0-100, normalized from dBFS metering) is summarised by its
mean, population std and peak rate, then mapped onto three states through
level bands.  The classifier itself knows nothing about time; bout
durations are measured by :class:`ConversationTracker`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

from bewell.analytics.features import peak_rate, tail, window_stats
from bewell.analytics.rules import Rule, decide


class ConversationState(str, Enum):
    """Conversational state of the surroundings."""

    SILENT = "silent"
    TALKING = "talking"
    CONVERSATION = "conversation"


SPEAKING_STATES = frozenset({ConversationState.TALKING, ConversationState.CONVERSATION})


@dataclass(frozen=True)
class ConversationEvent:
    """A finished bout of one conversation state."""

    timestamp: datetime
    state: ConversationState
    duration: float  # seconds spent in *state*


@dataclass
class AudioFeatures:
    mean: float
    std: float
    peak_rate: float  # fraction of samples above mean + PEAK_MARGIN


AUDIO_WINDOW = 50
MIN_AUDIO_SAMPLES = 20
PEAK_MARGIN = 8.0

# Level bands
SILENT_BELOW = 12.0
TALKING_FROM = 30.0
CONVERSATION_FROM = 45.0
MIN_TALKING_PEAK_RATE = 0.25
BURSTY_PEAK_RATE = 0.35
BURSTY_STD = 12.0


def extract_audio_features(levels: Sequence[float]) -> AudioFeatures | None:
    """Statistics over the last ``AUDIO_WINDOW`` levels, or None if too few."""
    window = tail(levels, AUDIO_WINDOW)
    if len(window) < MIN_AUDIO_SAMPLES:
        return None
    stats = window_stats(window)
    return AudioFeatures(
        mean=stats.mean,
        std=stats.std,
        peak_rate=peak_rate(window, PEAK_MARGIN),
    )


CONVERSATION_RULES: list[Rule[AudioFeatures]] = [
    Rule("quiet", ConversationState.SILENT, lambda f: f.mean < SILENT_BELOW),
    # Low but steady background noise is not speech
    Rule(
        "steady_murmur",
        ConversationState.SILENT,
        lambda f: f.mean < TALKING_FROM and f.peak_rate < MIN_TALKING_PEAK_RATE,
    ),
    Rule("murmur", ConversationState.TALKING, lambda f: f.mean < TALKING_FROM),
    Rule("talking", ConversationState.TALKING, lambda f: f.mean < CONVERSATION_FROM),
    Rule(
        "loud_or_bursty",
        ConversationState.CONVERSATION,
        lambda f: f.mean >= CONVERSATION_FROM
        or (f.peak_rate >= BURSTY_PEAK_RATE and f.std > BURSTY_STD),
    ),
]

TALKING_FALLBACK: Rule[AudioFeatures] = Rule("fallback", ConversationState.TALKING, lambda f: True)


def classify_conversation(features: AudioFeatures) -> ConversationState:
    decision = decide(CONVERSATION_RULES, features, fallback=TALKING_FALLBACK)
    assert decision is not None
    return decision.label


class ConversationClassifier:
    """Holds the last conversation state across ticks."""

    def __init__(self) -> None:
        self.state = ConversationState.SILENT

    def update(self, levels: Sequence[float]) -> ConversationState | None:
        """Classify one tick; None (state held) when the window is too small."""
        features = extract_audio_features(levels)
        if features is None:
            return None
        self.state = classify_conversation(features)
        return self.state


class ConversationTracker:
    """Measures how long each conversation state lasts.

    Emits a :class:`ConversationEvent` describing the bout that just ended
    whenever the observed state changes.
    """

    def __init__(
        self,
        now: datetime,
        state: ConversationState = ConversationState.SILENT,
    ) -> None:
        self.state = state
        self.changed_at = now

    def elapsed(self, now: datetime) -> float:
        """Seconds since the state last changed."""
        return max(0.0, (now - self.changed_at).total_seconds())

    def speaking_seconds(self, now: datetime) -> float:
        """Duration of the current speaking bout; 0 while silent."""
        if self.state not in SPEAKING_STATES:
            return 0.0
        return self.elapsed(now)

    def observe(self, state: ConversationState, now: datetime) -> ConversationEvent | None:
        if state == self.state:
            return None
        event = ConversationEvent(timestamp=now, state=self.state, duration=self.elapsed(now))
        self.state = state
        self.changed_at = now
        return event

    def flush(self, now: datetime) -> ConversationEvent | None:
        """Close the open bout at *now* and start a new one in the same state."""
        duration = self.elapsed(now)
        if duration <= 0:
            return None
        event = ConversationEvent(timestamp=now, state=self.state, duration=duration)
        self.changed_at = now
        return event
