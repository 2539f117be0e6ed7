"""Tests for bewell.storage -- score store and string cache backends."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from bewell.analytics.scoring import DailyWellbeingScores, WellbeingScore
from bewell.storage import (
    JsonFileCache,
    JsonFileScoreStore,
    MemoryCache,
    MemoryScoreStore,
    StoreError,
)

from tests.conftest import at


def daily(day: str, value: float = 50.0) -> DailyWellbeingScores:
    return DailyWellbeingScores(day, value, value, value)


@pytest.fixture(params=["memory", "json"])
def score_store(request, tmp_path):
    if request.param == "memory":
        return MemoryScoreStore()
    return JsonFileScoreStore(tmp_path / "scores.json")


class TestScoreStore:
    @pytest.mark.asyncio
    async def test_current_roundtrip(self, score_store):
        score = WellbeingScore(70.0, 60.0, 50.0, at(12))
        assert await score_store.get_current("alice") is None
        await score_store.upsert_current("alice", score)
        stored = await score_store.get_current("alice")
        assert stored.sleep == 70.0
        assert stored.overall == pytest.approx(60.0)
        assert stored.last_updated == at(12)

    @pytest.mark.asyncio
    async def test_daily_upsert_replaces_same_date(self, score_store):
        await score_store.upsert_daily("alice", daily("2026-10-17", 40.0))
        await score_store.upsert_daily("alice", daily("2026-10-17", 60.0))
        rows = await score_store.list_daily("alice")
        assert len(rows) == 1
        assert rows[0].sleep == 60.0

    @pytest.mark.asyncio
    async def test_list_newest_first_since(self, score_store):
        for day in ("2026-10-10", "2026-10-18", "2026-10-14"):
            await score_store.upsert_daily("alice", daily(day))
        await score_store.upsert_daily("bob", daily("2026-10-18"))
        everything = await score_store.list_daily("alice")
        recent = await score_store.list_daily("alice", since=date(2026, 10, 14))
        assert [r.date for r in everything] == ["2026-10-18", "2026-10-14", "2026-10-10"]
        assert [r.date for r in recent] == ["2026-10-18", "2026-10-14"]

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, score_store):
        await score_store.upsert_current("alice", WellbeingScore(1.0, 2.0, 3.0, at(12)))
        assert await score_store.get_current("bob") is None


class TestJsonFileScoreStore:
    @pytest.mark.asyncio
    async def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "scores.json"
        path.write_text("{not json")
        with pytest.raises(StoreError):
            await JsonFileScoreStore(path).get_current("alice")

    @pytest.mark.asyncio
    async def test_malformed_row_raises_store_error(self, tmp_path):
        path = tmp_path / "scores.json"
        path.write_text('{"current": {"alice": {"sleep": "lots"}}}')
        with pytest.raises(StoreError):
            await JsonFileScoreStore(path).get_current("alice")

    @pytest.mark.asyncio
    async def test_creates_parent_directories(self, tmp_path):
        store = JsonFileScoreStore(tmp_path / "nested" / "dir" / "scores.json")
        await store.upsert_daily("alice", daily("2026-10-18"))
        assert store.path.exists()

    @pytest.mark.asyncio
    async def test_concurrent_upserts_are_all_kept(self, tmp_path):
        store = JsonFileScoreStore(tmp_path / "scores.json")
        days = [f"2026-10-{d:02d}" for d in range(1, 11)]
        await asyncio.gather(*(store.upsert_daily("alice", daily(d)) for d in days))
        rows = await store.list_daily("alice")
        assert sorted(r.date for r in rows) == days


class TestStringCache:
    def test_memory_cache(self):
        cache = MemoryCache({"a": "1"})
        assert cache.get_string("a") == "1"
        assert cache.get_string("b") is None
        cache.set_string("b", "2")
        assert cache.values == {"a": "1", "b": "2"}

    def test_json_cache_persists(self, tmp_path):
        path = tmp_path / "cache.json"
        JsonFileCache(path).set_string("key", "value")
        assert JsonFileCache(path).get_string("key") == "value"

    def test_json_cache_missing_file(self, tmp_path):
        assert JsonFileCache(tmp_path / "absent.json").get_string("key") is None

    def test_json_cache_non_object(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(StoreError):
            JsonFileCache(path).get_string("key")
