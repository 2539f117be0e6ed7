"""Scoring engine: daily metrics → smoothed, persisted wellbeing scores.

The engine holds the display state (current score, up to 30 daily rows,
loading flag, sample-data flag) and keeps it in step with two
collaborators:

  - the local string cache, written on every committed update and read by
    :meth:`ScoringEngine.load`;
  - the remote score store, synced after every committed update and read by
    :meth:`ScoringEngine.refresh` when a user is signed in.

Local state is the source of truth between syncs: a failed cache write or
remote sync is logged and never rolls back an update.  Until real data
exists the engine shows a synthetic baseline and says so via
``is_using_sample_data``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

import structlog

from bewell.analytics.aggregator import WellbeingMetrics
from bewell.analytics.scoring import (
    SMOOTHING_ALPHA,
    DailyWellbeingScores,
    WellbeingScore,
    calculate_daily_scores,
    generate_sample_data,
    smooth_scores,
)
from bewell.config import Settings
from bewell.storage import (
    JsonFileCache,
    JsonFileScoreStore,
    ScoreStore,
    StoreError,
    StringCache,
)

logger = structlog.get_logger(__name__)

CURRENT_SCORES_KEY = "wellbeing_scores"
DAILY_SCORES_KEY = "wellbeing_daily_scores"
BASELINE_KEY = "wellbeing_smoothing_baseline"

MAX_DAILY_SCORES = 30
SAMPLE_HISTORY_DAYS = 10


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view for the display layer."""

    current_scores: WellbeingScore | None
    daily_scores: tuple[DailyWellbeingScores, ...]
    is_loading: bool
    is_using_sample_data: bool


def _score_from_daily(daily: DailyWellbeingScores, now: datetime) -> WellbeingScore:
    return WellbeingScore(
        sleep=daily.sleep,
        physical_activity=daily.physical_activity,
        social_interaction=daily.social_interaction,
        last_updated=now,
    )


class ScoringEngine:
    """Owns the current and daily wellbeing scores of one user session.

    Smoothing runs across days: every update on day D folds today's scores
    into the score as it stood before D's first update, so the periodic
    intra-day updates refine today's contribution instead of compounding it.
    """

    def __init__(
        self,
        cache: StringCache,
        store: ScoreStore | None = None,
        user_id: str | None = None,
        alpha: float = SMOOTHING_ALPHA,
        max_daily_scores: int = MAX_DAILY_SCORES,
        sample_days: int = SAMPLE_HISTORY_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be within [0, 1], got {alpha}")
        if max_daily_scores <= 0:
            raise ValueError(f"max_daily_scores must be positive, got {max_daily_scores}")
        self.cache = cache
        self.store = store
        self.user_id = user_id
        self.alpha = alpha
        self.max_daily_scores = max_daily_scores
        self.sample_days = sample_days
        self._clock = clock or datetime.now

        self._current: WellbeingScore | None = None
        self._daily: list[DailyWellbeingScores] = []
        self._is_loading = True
        self._is_using_sample_data = False
        self._baseline: WellbeingScore | None = None
        self._baseline_day: str | None = None

        # Something to render before the first load() completes
        self._apply_sample_data()

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringEngine:
        return cls(
            cache=JsonFileCache(settings.cache_path),
            store=JsonFileScoreStore(settings.store_path),
            user_id=settings.user_id,
            alpha=settings.smoothing_alpha,
            max_daily_scores=settings.max_daily_scores,
            sample_days=settings.sample_history_days,
        )

    # -----------------------------------------------------------------------
    # Read side
    # -----------------------------------------------------------------------

    @property
    def current_scores(self) -> WellbeingScore | None:
        return self._current

    @property
    def daily_scores(self) -> list[DailyWellbeingScores]:
        return list(self._daily)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_using_sample_data(self) -> bool:
        return self._is_using_sample_data

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            current_scores=self._current,
            daily_scores=tuple(self._daily),
            is_loading=self._is_loading,
            is_using_sample_data=self._is_using_sample_data,
        )

    def score_history(self, days: int) -> list[DailyWellbeingScores]:
        """Up to *days* recent daily rows, oldest first (for charting)."""
        if days <= 0:
            return []
        cutoff = (self._clock().date() - timedelta(days=days)).isoformat()
        recent = [d for d in self._daily if d.date >= cutoff][:days]
        return list(reversed(recent))

    # -----------------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------------

    def _apply_sample_data(self) -> None:
        daily, current = generate_sample_data(self.sample_days, now=self._clock())
        self._current = current
        self._daily = daily
        self._is_using_sample_data = True
        self._baseline = None
        self._baseline_day = None

    def _read_cached(self) -> tuple[WellbeingScore | None, list[DailyWellbeingScores]]:
        current = None
        raw_current = self.cache.get_string(CURRENT_SCORES_KEY)
        if raw_current:
            current = WellbeingScore.from_dict(json.loads(raw_current))

        daily: list[DailyWellbeingScores] = []
        raw_daily = self.cache.get_string(DAILY_SCORES_KEY)
        if raw_daily:
            daily = [DailyWellbeingScores.from_dict(d) for d in json.loads(raw_daily)]
            daily.sort(key=lambda d: d.date, reverse=True)
        return current, daily

    def _read_cached_baseline(self) -> None:
        raw = self.cache.get_string(BASELINE_KEY)
        if not raw:
            return
        data = json.loads(raw)
        score = data.get("score")
        self._baseline = WellbeingScore.from_dict(score) if score else None
        self._baseline_day = data.get("date")

    def load(self) -> EngineSnapshot:
        """Restore state from the local cache, or fall back to the synthetic baseline."""
        self._is_loading = True
        try:
            try:
                current, daily = self._read_cached()
            except (StoreError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("engine.cache_unreadable", error=str(e))
                current, daily = None, []

            try:
                self._read_cached_baseline()
            except (StoreError, ValueError, KeyError, TypeError, AttributeError) as e:
                # Scores are still usable; the next update smooths against them
                logger.warning("engine.baseline_unreadable", error=str(e))
                self._baseline, self._baseline_day = None, None

            if current is None and not daily:
                logger.info("engine.using_sample_data", days=self.sample_days)
                self._apply_sample_data()
            else:
                if current is None:
                    current = _score_from_daily(daily[0], self._clock())
                self._current = current
                self._daily = daily[: self.max_daily_scores]
                self._is_using_sample_data = False
        finally:
            self._is_loading = False
        return self.snapshot()

    async def refresh(self) -> EngineSnapshot:
        """Pull the latest state from the remote store, falling back to :meth:`load`."""
        if not self.user_id or self.store is None:
            return self.load()

        self._is_loading = True
        try:
            since = self._clock().date() - timedelta(days=self.max_daily_scores)
            try:
                current = await self.store.get_current(self.user_id)
                daily = await self.store.list_daily(self.user_id, since)
            except Exception as e:
                logger.warning("engine.refresh_failed", user_id=self.user_id, error=str(e))
                return self.load()

            if current is None and not daily:
                logger.info("engine.refresh_empty", user_id=self.user_id)
                return self.load()

            daily = sorted(daily, key=lambda d: d.date, reverse=True)[: self.max_daily_scores]
            if current is None:
                current = _score_from_daily(daily[0], self._clock())
            self._current = current
            self._daily = daily
            self._is_using_sample_data = False
            self._save_local()
            logger.info("engine.refreshed", user_id=self.user_id, days=len(daily))
        finally:
            self._is_loading = False
        return self.snapshot()

    # -----------------------------------------------------------------------
    # Updating
    # -----------------------------------------------------------------------

    def _smoothing_baseline(self, day: str) -> WellbeingScore | None:
        if self._is_using_sample_data:
            return None
        if self._baseline_day == day:
            return self._baseline
        return self._current

    async def update_scores(
        self,
        metrics: WellbeingMetrics,
        day: date | None = None,
    ) -> WellbeingScore | None:
        """Score one day's metrics and commit the result.

        All-zero metrics mean "no data yet": nothing is committed and None is
        returned.  Otherwise the new current score is returned.
        """
        if not metrics.has_data:
            logger.debug("engine.update_discarded", reason="no_data")
            return None

        now = self._clock()
        today = calculate_daily_scores(metrics, day or now.date())

        baseline = self._smoothing_baseline(today.date)
        if self._baseline_day != today.date:
            self._baseline = baseline
            self._baseline_day = today.date
        updated = smooth_scores(baseline, today, self.alpha, now)

        prior_daily = [] if self._is_using_sample_data else self._daily
        daily = [d for d in prior_daily if d.date != today.date]
        daily.append(today)
        daily.sort(key=lambda d: d.date, reverse=True)

        self._current = updated
        self._daily = daily[: self.max_daily_scores]
        self._is_using_sample_data = False
        logger.info(
            "engine.scores_updated",
            date=today.date,
            overall=round(updated.overall, 1),
            sleep=round(updated.sleep, 1),
            physical_activity=round(updated.physical_activity, 1),
            social_interaction=round(updated.social_interaction, 1),
        )

        self._save_local()
        await self._sync_remote(updated, today)
        return updated

    def _save_local(self) -> None:
        if self._current is None:
            return
        baseline = {
            "date": self._baseline_day,
            "score": self._baseline.to_dict() if self._baseline is not None else None,
        }
        try:
            self.cache.set_string(CURRENT_SCORES_KEY, json.dumps(self._current.to_dict()))
            self.cache.set_string(DAILY_SCORES_KEY, json.dumps([d.to_dict() for d in self._daily]))
            self.cache.set_string(BASELINE_KEY, json.dumps(baseline))
        except (StoreError, OSError) as e:
            logger.error("engine.cache_write_failed", error=str(e))

    async def _sync_remote(self, score: WellbeingScore, daily: DailyWellbeingScores) -> None:
        if not self.user_id or self.store is None:
            return
        try:
            await self.store.upsert_daily(self.user_id, daily)
            await self.store.upsert_current(self.user_id, score)
        except Exception as e:
            # Remote failures never undo the local update
            logger.error(
                "engine.sync_failed",
                user_id=self.user_id,
                date=daily.date,
                error=str(e),
                error_type=type(e).__name__,
            )
