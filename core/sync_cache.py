"""
Remote read cache for leaderboard and friends data.

Usage:
    cache = SyncCache()
    result = await cache.get("leaderboard:global", api.fetch_global, ttl_ms=15000,
                             fallback=lambda: local_leaderboard(angler))
    if result.is_degraded:
        ...  # show the offline badge

Reads within the TTL are served from memory. A failed fetch falls back to
the last good payload (even if expired), then to the caller's local
approximation. Concurrent reads of one key share a single fetch, and a slow
fetch never overwrites an entry written by a fetch issued after it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional

from core.logging import get_logger

logger = get_logger("sync_cache")

SOURCE_REMOTE = "remote"
SOURCE_CACHE = "cache"
SOURCE_STALE = "stale"
SOURCE_LOCAL = "local"


def _wall_clock_ms() -> float:
    return time.time() * 1000


@dataclass
class CacheEntry:
    """Cached payload with the time it was fetched and the time its request was issued."""
    payload: Any
    fetched_at: float
    issued_at: float = 0.0
    expired: bool = False

    def is_fresh(self, now: float, ttl_ms: float) -> bool:
        return not self.expired and (now - self.fetched_at) < ttl_ms


@dataclass
class CacheResult:
    payload: Any
    source: str
    fetched_at: Optional[float] = None

    @property
    def is_degraded(self) -> bool:
        return self.source in (SOURCE_STALE, SOURCE_LOCAL)


def _item_id(item: Any, id_key: str) -> Hashable:
    if isinstance(item, dict):
        return item.get(id_key)
    return getattr(item, id_key, None)


def notification_diff(previous_ids: Iterable[Hashable], fresh: Iterable[Any], id_key: str = "id") -> list:
    """Items of ``fresh`` whose id is not in ``previous_ids``, in their original order."""
    seen = set(previous_ids)
    return [item for item in fresh if _item_id(item, id_key) not in seen]


@dataclass
class FriendSnapshot:
    """Ids seen on the last successful friends refresh.

    The first commit only primes the snapshot, so a fresh session does not
    announce the whole backlog as new.
    """
    friend_ids: set = field(default_factory=set)
    activity_ids: set = field(default_factory=set)
    request_ids: set = field(default_factory=set)
    primed: bool = False

    def new_activities(self, activities: Iterable[Any]) -> list:
        if not self.primed:
            return []
        return notification_diff(self.activity_ids, activities)

    def new_requests(self, requests: Iterable[Any]) -> list:
        if not self.primed:
            return []
        return notification_diff(self.request_ids, requests)

    def commit(self, friends: Iterable[Any], activities: Iterable[Any], requests: Iterable[Any]) -> None:
        self.friend_ids = {_item_id(item, "id") for item in friends}
        self.activity_ids = {_item_id(item, "id") for item in activities}
        self.request_ids = {_item_id(item, "id") for item in requests}
        self.primed = True


class SyncCache:
    """
    TTL cache keyed by string, populated by async fetchers.

    Single-flight per key: non-forced callers that arrive while a fetch for
    the same key is running await that fetch instead of starting another.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or _wall_clock_ms
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    def now(self) -> float:
        return self._clock()

    def peek(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def get(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl_ms: float,
        force: bool = False,
        fallback: Optional[Callable[[], Any]] = None,
    ) -> CacheResult:
        """Read ``key``, fetching when missing, expired or forced."""
        if not force:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self.now(), ttl_ms):
                return CacheResult(entry.payload, SOURCE_CACHE, entry.fetched_at)

            inflight = self._inflight.get(key)
            if inflight is not None and not inflight.done():
                logger.debug("cache_join_inflight", key=key)
                return await asyncio.shield(inflight)

        task = asyncio.ensure_future(self._refresh(key, fetcher, fallback))
        self._inflight[key] = task
        task.add_done_callback(lambda done, key=key: self._clear_inflight(key, done))
        return await asyncio.shield(task)

    def _clear_inflight(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _refresh(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        fallback: Optional[Callable[[], Any]],
    ) -> CacheResult:
        issued_at = self.now()
        try:
            payload = await fetcher()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("cache_refresh_failed", key=key, error=str(e))
            return self._degraded(key, fallback)

        return self._store(key, payload, issued_at)

    def _store(self, key: str, payload: Any, issued_at: float) -> CacheResult:
        current = self._entries.get(key)
        if current is not None and current.issued_at > issued_at:
            # A request issued later already landed; keep its payload.
            logger.debug("cache_write_superseded", key=key)
            return CacheResult(current.payload, SOURCE_REMOTE, current.fetched_at)

        entry = CacheEntry(payload=payload, fetched_at=self.now(), issued_at=issued_at)
        self._entries[key] = entry
        return CacheResult(entry.payload, SOURCE_REMOTE, entry.fetched_at)

    def _degraded(self, key: str, fallback: Optional[Callable[[], Any]]) -> CacheResult:
        entry = self._entries.get(key)
        if entry is not None:
            return CacheResult(entry.payload, SOURCE_STALE, entry.fetched_at)

        payload = None
        if fallback is not None:
            try:
                payload = fallback()
            except Exception as e:
                logger.error("cache_fallback_failed", key=key, error=str(e))
        return CacheResult(payload, SOURCE_LOCAL, None)

    def invalidate(self, key: str) -> None:
        """Expire ``key``. The payload stays available as a stale fallback."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.expired = True
            logger.debug("cache_invalidated", key=key)

    def invalidate_prefix(self, prefix: str) -> int:
        count = 0
        for key in list(self._entries):
            if key.startswith(prefix):
                self.invalidate(key)
                count += 1
        return count

    def clear(self) -> None:
        self._entries.clear()
