"""Leaderboards, friends and activity feed, read through :class:`SyncCache`."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional

from configs.settings import (
    FRIEND_ACTIVITY_LIMIT, FRIEND_COLLECTION_TTL_MS, FRIENDS_POLL_SECONDS, FRIENDS_TTL_MS,
    LEADERBOARD_LIMIT, LEADERBOARD_TTL_MS,
)
from core.errors import RemoteUnavailable
from core.logging import get_logger
from core.sync_cache import SOURCE_LOCAL, CacheResult, FriendSnapshot, SyncCache

if TYPE_CHECKING:
    from core.database import AnglerRepository
    from ..core.models import Angler

logger = get_logger("fishing.social")

LEADERBOARD_KINDS = ("global", "speed", "local")


@dataclass
class FriendsRefresh:
    friends: list = field(default_factory=list)
    sent: list = field(default_factory=list)
    received: list = field(default_factory=list)
    activities: list = field(default_factory=list)
    new_activities: list = field(default_factory=list)
    new_requests: list = field(default_factory=list)
    degraded: bool = False

    @property
    def badge_count(self) -> int:
        return len(self.received)


def local_leaderboard(angler: "Angler", kind: str = "global") -> list[dict[str, Any]]:
    """Approximate a leaderboard from the angler's own history."""
    if kind == "speed":
        timed = [c for c in angler.recent_catches if c.get("reaction_time_ms")]
        timed.sort(key=lambda c: c["reaction_time_ms"])
        return [
            {
                "player_id": angler.remote_id,
                "username": angler.name,
                "fish_name": c.get("fish_name"),
                "reaction_time_ms": c["reaction_time_ms"],
                "local": True,
            }
            for c in timed
        ]
    return [
        {
            "player_id": angler.remote_id,
            "username": angler.name,
            "fish_name": c.get("fish_name"),
            "fish_weight": c.get("weight"),
            "local": True,
        }
        for c in angler.top_catches
    ]


async def _offline() -> Any:
    raise RemoteUnavailable("offline", reason="angler not registered")


class SocialService:
    """
    Per-player caches and friend snapshots.

    Friend mutations go straight to the server and expire every ``friends:``
    key so the next read refetches.
    """

    def __init__(self, repository: Optional["AnglerRepository"] = None, clock: Optional[Callable[[], float]] = None):
        self.repository = repository
        self._clock = clock
        self._caches: dict[int, SyncCache] = {}
        self._snapshots: dict[int, FriendSnapshot] = {}
        self._pollers: dict[Any, asyncio.Task] = {}
        self._poll_owners: dict[Any, int] = {}

    def cache_for(self, user_id: int) -> SyncCache:
        cache = self._caches.get(user_id)
        if cache is None:
            cache = self._caches[user_id] = SyncCache(clock=self._clock)
        return cache

    def snapshot_for(self, user_id: int) -> FriendSnapshot:
        snapshot = self._snapshots.get(user_id)
        if snapshot is None:
            snapshot = self._snapshots[user_id] = FriendSnapshot()
        return snapshot

    def _client(self, angler: "Angler"):
        return self.repository.client_for(angler) if self.repository else None

    def invalidate_leaderboards(self) -> None:
        """A catch can move anyone's leaderboard, so expire them for every player."""
        for cache in self._caches.values():
            cache.invalidate_prefix("leaderboard:")

    def prune(self, keep: Iterable[int] = ()) -> int:
        """Drop caches and snapshots of players who are neither in ``keep`` nor being polled."""
        active = set(keep) | set(self._poll_owners.values())
        idle = [user_id for user_id in set(self._caches) | set(self._snapshots) if user_id not in active]
        for user_id in idle:
            self._caches.pop(user_id, None)
            self._snapshots.pop(user_id, None)
        if idle:
            logger.debug("social_state_pruned", count=len(idle))
        return len(idle)

    # ==================== LEADERBOARD ====================

    async def leaderboard(self, angler: "Angler", kind: str = "global", force: bool = False) -> CacheResult:
        if kind not in LEADERBOARD_KINDS:
            raise ValueError(f"unknown leaderboard kind: {kind}")
        if kind == "local":
            return CacheResult(local_leaderboard(angler, "global"), SOURCE_LOCAL)

        client = self._client(angler)
        fetcher = (lambda: client.fetch_leaderboard(kind, LEADERBOARD_LIMIT)) if client else _offline
        return await self.cache_for(angler.user_id).get(
            f"leaderboard:{kind}",
            fetcher,
            LEADERBOARD_TTL_MS,
            force=force,
            fallback=lambda: local_leaderboard(angler, kind),
        )

    # ==================== FRIENDS ====================

    async def friends(self, angler: "Angler", force: bool = False) -> CacheResult:
        client = self._client(angler)
        return await self.cache_for(angler.user_id).get(
            "friends:list",
            client.fetch_friends if client else _offline,
            FRIENDS_TTL_MS,
            force=force,
            fallback=list,
        )

    async def pending_requests(self, angler: "Angler", force: bool = False) -> CacheResult:
        client = self._client(angler)
        return await self.cache_for(angler.user_id).get(
            "friends:pending",
            client.fetch_pending_requests if client else _offline,
            FRIENDS_TTL_MS,
            force=force,
            fallback=lambda: {"sent": [], "received": []},
        )

    async def friend_activity(self, angler: "Angler", force: bool = False) -> CacheResult:
        client = self._client(angler)
        fetcher = (lambda: client.fetch_friend_activity(FRIEND_ACTIVITY_LIMIT)) if client else _offline
        return await self.cache_for(angler.user_id).get(
            "friends:activity",
            fetcher,
            FRIENDS_TTL_MS,
            force=force,
            fallback=list,
        )

    async def friend_collection(self, angler: "Angler", friend_id: str, force: bool = False) -> CacheResult:
        client = self._client(angler)
        fetcher = (lambda: client.fetch_friend_collection(friend_id)) if client else _offline
        return await self.cache_for(angler.user_id).get(
            f"friend:{friend_id}:collection",
            fetcher,
            FRIEND_COLLECTION_TTL_MS,
            force=force,
            fallback=dict,
        )

    async def refresh_friends(self, angler: "Angler", force: bool = True) -> FriendsRefresh:
        """Fetch friends, requests and activity, and work out what is new.

        The snapshot only moves forward when all three reads are live (fetched or
        still fresh in the cache), so an outage never hides an item from the
        next refresh.
        """
        friends, pending, activity = await asyncio.gather(
            self.friends(angler, force=force),
            self.pending_requests(angler, force=force),
            self.friend_activity(angler, force=force),
        )
        pending_payload = pending.payload or {}
        refresh = FriendsRefresh(
            friends=friends.payload or [],
            sent=pending_payload.get("sent", []),
            received=pending_payload.get("received", []),
            activities=activity.payload or [],
        )

        if not any(result.is_degraded for result in (friends, pending, activity)):
            snapshot = self.snapshot_for(angler.user_id)
            refresh.new_activities = snapshot.new_activities(refresh.activities)
            refresh.new_requests = snapshot.new_requests(refresh.received)
            snapshot.commit(refresh.friends, refresh.activities, refresh.received)
        else:
            refresh.degraded = True
            logger.info("friends_refresh_degraded", user_id=angler.user_id)

        return refresh

    # ==================== FRIEND MUTATIONS ====================

    async def _mutate(self, angler: "Angler", action: str, call: Callable[[Any], Awaitable[Any]]) -> Any:
        client = self._client(angler)
        if client is None:
            raise RemoteUnavailable(action, reason="angler not registered")
        result = await call(client)
        self.cache_for(angler.user_id).invalidate_prefix("friends:")
        logger.info("friend_mutation", user_id=angler.user_id, action=action)
        return result

    async def send_friend_request(self, angler: "Angler", friend_code: str) -> Any:
        return await self._mutate(angler, "send_friend_request", lambda c: c.send_friend_request(friend_code))

    async def accept_friend_request(self, angler: "Angler", request_id: str) -> Any:
        return await self._mutate(angler, "accept_friend_request", lambda c: c.accept_friend_request(request_id))

    async def decline_friend_request(self, angler: "Angler", request_id: str) -> Any:
        return await self._mutate(angler, "decline_friend_request", lambda c: c.decline_friend_request(request_id))

    async def remove_friend(self, angler: "Angler", friend_id: str) -> Any:
        return await self._mutate(angler, "remove_friend", lambda c: c.remove_friend(friend_id))

    # ==================== POLLING ====================

    def start_polling(
        self,
        key: Any,
        angler: "Angler",
        on_update: Callable[[FriendsRefresh], Awaitable[None]],
        interval: float = FRIENDS_POLL_SECONDS,
    ) -> asyncio.Task:
        """Refresh friends every ``interval`` seconds while the view under ``key`` is open.

        The caller renders the first refresh itself; polling starts one interval later.
        """
        self.stop_polling(key)

        async def poll():
            while True:
                await asyncio.sleep(interval)
                refresh = await self.refresh_friends(angler)
                try:
                    await on_update(refresh)
                except Exception as e:
                    logger.warning("friends_poll_update_failed", user_id=angler.user_id, error=str(e))

        task = asyncio.get_running_loop().create_task(poll())
        self._pollers[key] = task
        self._poll_owners[key] = angler.user_id
        return task

    def stop_polling(self, key: Any) -> bool:
        task = self._pollers.pop(key, None)
        self._poll_owners.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def stop_all(self) -> None:
        for key in list(self._pollers):
            self.stop_polling(key)
