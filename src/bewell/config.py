"""Runtime settings loaded from environment variables / a .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """All runtime configuration for bewell.

    Every variable lives in the flat ``BEWELL_`` namespace, e.g.
    ``BEWELL_USER_ID`` or ``BEWELL_SMOOTHING_ALPHA``.  Classifier thresholds
    are not configurable here; they are constants next to the rules that
    use them.
    """

    model_config = SettingsConfigDict(
        env_prefix="BEWELL_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------------------------------------------------
    # Storage
    # -----------------------------------------------------------------------
    data_dir: Path = _PROJECT_ROOT / "data"
    user_id: str | None = None

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    log_level: str = "INFO"

    # -----------------------------------------------------------------------
    # Scoring
    # -----------------------------------------------------------------------
    smoothing_alpha: float = 0.3
    max_daily_scores: int = 30
    sample_history_days: int = 10

    # -----------------------------------------------------------------------
    # Event history / scheduling
    # -----------------------------------------------------------------------
    retention_days: int = 7
    tick_interval_sec: float = 1.0
    update_interval_sec: float = 300.0

    @property
    def store_path(self) -> Path:
        return self.data_dir / "scores.json"

    @property
    def cache_path(self) -> Path:
        return self.data_dir / "cache.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
