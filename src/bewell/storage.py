"""Persistence contracts for wellbeing scores.

Two collaborators sit behind narrow interfaces:

  - a *score store* (remote row store): the current score keyed by user,
    daily rows keyed by ``(user, date)``.  Calls may suspend, so the
    interface is async.
  - a *string cache* (local key-value store) used to survive restarts
    without a round-trip.  Synchronous.

Each has an in-memory backend for tests and a JSON-file backend for the
CLI.  Backends raise :class:`StoreError` on I/O or decoding failures.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import Any, Callable, Protocol

from bewell.analytics.scoring import DailyWellbeingScores, WellbeingScore


class StoreError(Exception):
    """A persistence backend could not complete a read or write."""


class ScoreStore(Protocol):
    async def get_current(self, user_id: str) -> WellbeingScore | None: ...

    async def upsert_current(self, user_id: str, score: WellbeingScore) -> None: ...

    async def upsert_daily(self, user_id: str, daily: DailyWellbeingScores) -> None: ...

    async def list_daily(
        self,
        user_id: str,
        since: date | None = None,
    ) -> list[DailyWellbeingScores]: ...


class StringCache(Protocol):
    def get_string(self, key: str) -> str | None: ...

    def set_string(self, key: str, value: str) -> None: ...


def _newest_first(rows: list[DailyWellbeingScores], since: date | None) -> list[DailyWellbeingScores]:
    if since is not None:
        cutoff = since.isoformat()
        rows = [r for r in rows if r.date >= cutoff]
    return sorted(rows, key=lambda r: r.date, reverse=True)


# ---------------------------------------------------------------------------
# In-memory backends
# ---------------------------------------------------------------------------


class MemoryScoreStore:
    """Dict-backed :class:`ScoreStore`."""

    def __init__(self) -> None:
        self.current: dict[str, WellbeingScore] = {}
        self.daily: dict[tuple[str, str], DailyWellbeingScores] = {}

    async def get_current(self, user_id: str) -> WellbeingScore | None:
        return self.current.get(user_id)

    async def upsert_current(self, user_id: str, score: WellbeingScore) -> None:
        self.current[user_id] = score

    async def upsert_daily(self, user_id: str, daily: DailyWellbeingScores) -> None:
        self.daily[(user_id, daily.date)] = daily

    async def list_daily(
        self,
        user_id: str,
        since: date | None = None,
    ) -> list[DailyWellbeingScores]:
        rows = [row for (uid, _), row in self.daily.items() if uid == user_id]
        return _newest_first(rows, since)


class MemoryCache:
    """Dict-backed :class:`StringCache`."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get_string(self, key: str) -> str | None:
        return self.values.get(key)

    def set_string(self, key: str, value: str) -> None:
        self.values[key] = value


# ---------------------------------------------------------------------------
# JSON-file backends
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise StoreError(f"{path} does not hold a JSON object")
    return data


def _write_json(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        tmp.replace(path)
    except OSError as e:
        raise StoreError(f"cannot write {path}: {e}") from e


class JsonFileScoreStore:
    """:class:`ScoreStore` kept in a single JSON document.

    Layout::

        {"current": {user_id: {...}},
         "daily":   {user_id: {"YYYY-MM-DD": {...}}}}

    File access runs in a worker thread so the event loop keeps ticking.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    async def get_current(self, user_id: str) -> WellbeingScore | None:
        data = await asyncio.to_thread(_read_json, self.path)
        row = data.get("current", {}).get(user_id)
        if row is None:
            return None
        try:
            return WellbeingScore.from_dict(row)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"malformed current score for {user_id}: {e}") from e

    async def _update(self, apply: Callable[[dict[str, Any]], None]) -> None:
        def _read_modify_write() -> None:
            data = _read_json(self.path)
            apply(data)
            _write_json(self.path, data)

        async with self._write_lock:
            await asyncio.to_thread(_read_modify_write)

    async def upsert_current(self, user_id: str, score: WellbeingScore) -> None:
        def apply(data: dict[str, Any]) -> None:
            data.setdefault("current", {})[user_id] = score.to_dict()

        await self._update(apply)

    async def upsert_daily(self, user_id: str, daily: DailyWellbeingScores) -> None:
        def apply(data: dict[str, Any]) -> None:
            data.setdefault("daily", {}).setdefault(user_id, {})[daily.date] = daily.to_dict()

        await self._update(apply)

    async def list_daily(
        self,
        user_id: str,
        since: date | None = None,
    ) -> list[DailyWellbeingScores]:
        data = await asyncio.to_thread(_read_json, self.path)
        rows = data.get("daily", {}).get(user_id, {})
        try:
            parsed = [DailyWellbeingScores.from_dict(r) for r in rows.values()]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"malformed daily scores for {user_id}: {e}") from e
        return _newest_first(parsed, since)


class JsonFileCache:
    """:class:`StringCache` kept as one JSON object of string values."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_string(self, key: str) -> str | None:
        value = _read_json(self.path).get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str) -> None:
        data = _read_json(self.path)
        data[key] = value
        _write_json(self.path, data)
