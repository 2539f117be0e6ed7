"""Classification and scoring engine for phone sensor windows.

Modules:
    features     -- Window statistics (mean, std, peak rate, stillness)
    rules        -- Ordered first-match decision tables
    activity     -- Activity classification (accel + GPS speed)
    conversation -- Conversation state from audio level + bout tracking
    location     -- Coarse location context (GPS speed + accuracy)
    sleep        -- Hard-gated sleep detection
    aggregator   -- Event histories → daily wellbeing metrics
    scoring      -- Daily curves, EMA smoothing, interpretation, baseline data
"""

from bewell.analytics.features import window_stats, peak_rate, is_still, WindowStats
from bewell.analytics.rules import Rule, Decision, decide, first_match
from bewell.analytics.activity import (
    ActivityType,
    ActivityEvent,
    ActivityFeatures,
    ActivityClassifier,
    ActivityUpdate,
    classify_activity,
    extract_activity_features,
)
from bewell.analytics.conversation import (
    ConversationState,
    ConversationEvent,
    ConversationClassifier,
    ConversationTracker,
    classify_conversation,
    extract_audio_features,
)
from bewell.analytics.location import LocationState, LocationClassifier, classify_location
from bewell.analytics.sleep import SleepDetector, SleepGates, evaluate_sleep_gates, is_night_hour
from bewell.analytics.aggregator import (
    EventAggregator,
    WellbeingMetrics,
    sleep_hours_from_activities,
    active_minutes_from_activities,
    social_minutes_from_conversations,
)
from bewell.analytics.scoring import (
    DailyWellbeingScores,
    WellbeingScore,
    calculate_sleep_score,
    calculate_physical_activity_score,
    calculate_social_interaction_score,
    calculate_daily_scores,
    exponential_smoothing,
    overall_score,
    smooth_scores,
    interpret_score,
    generate_sample_data,
)

__all__ = [
    # features
    "window_stats",
    "peak_rate",
    "is_still",
    "WindowStats",
    # rules
    "Rule",
    "Decision",
    "decide",
    "first_match",
    # activity
    "ActivityType",
    "ActivityEvent",
    "ActivityFeatures",
    "ActivityClassifier",
    "ActivityUpdate",
    "classify_activity",
    "extract_activity_features",
    # conversation
    "ConversationState",
    "ConversationEvent",
    "ConversationClassifier",
    "ConversationTracker",
    "classify_conversation",
    "extract_audio_features",
    # location
    "LocationState",
    "LocationClassifier",
    "classify_location",
    # sleep
    "SleepDetector",
    "SleepGates",
    "evaluate_sleep_gates",
    "is_night_hour",
    # aggregator
    "EventAggregator",
    "WellbeingMetrics",
    "sleep_hours_from_activities",
    "active_minutes_from_activities",
    "social_minutes_from_conversations",
    # scoring
    "DailyWellbeingScores",
    "WellbeingScore",
    "calculate_sleep_score",
    "calculate_physical_activity_score",
    "calculate_social_interaction_score",
    "calculate_daily_scores",
    "exponential_smoothing",
    "overall_score",
    "smooth_scores",
    "interpret_score",
    "generate_sample_data",
]
