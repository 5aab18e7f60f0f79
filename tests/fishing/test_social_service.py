"""
Tests for leaderboards, friends and the activity feed.

Tests cover:
- Leaderboard reads through the cache, with the local fallback offline
- Leaderboard invalidation after catches
- Friend refresh diffing, including degraded refreshes
- Friend mutations expiring cached friend data
- Polling lifecycle and pruning of idle players
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from configs.settings import LEADERBOARD_LIMIT
from cogs.fishing.core.models import Angler
from cogs.fishing.services.social_service import SocialService, local_leaderboard
from core.errors import RemoteUnavailable
from core.sync_cache import SOURCE_CACHE, SOURCE_LOCAL, SOURCE_REMOTE, SOURCE_STALE
from tests.conftest import settle


@pytest.fixture
def social(mock_repository, clock):
    return SocialService(mock_repository, clock=clock)


def timeout(endpoint):
    return RemoteUnavailable(endpoint, reason="timeout")


# =============================================================================
# Leaderboards
# =============================================================================

class TestLeaderboard:
    """Cached leaderboard reads."""

    @pytest.mark.asyncio
    async def test_remote_then_cached(self, social, mock_client, angler):
        mock_client.fetch_leaderboard.return_value = [{"username": "Mochi", "fish_weight": 9.1}]

        first = await social.leaderboard(angler, "global")
        second = await social.leaderboard(angler, "global")

        assert first.source == SOURCE_REMOTE
        assert second.source == SOURCE_CACHE
        assert second.payload[0]["username"] == "Mochi"
        mock_client.fetch_leaderboard.assert_awaited_once_with("global", LEADERBOARD_LIMIT)

    @pytest.mark.asyncio
    async def test_invalidate_after_catch(self, social, mock_client, angler):
        await social.leaderboard(angler, "global")
        social.invalidate_leaderboards()

        result = await social.leaderboard(angler, "global")

        assert result.source == SOURCE_REMOTE
        assert mock_client.fetch_leaderboard.await_count == 2

    @pytest.mark.asyncio
    async def test_offline_uses_local_history(self, angler, make_event):
        angler.add_catch(make_event(weight=4.0))
        social = SocialService()

        result = await social.leaderboard(angler, "global")

        assert result.source == SOURCE_LOCAL
        assert result.payload[0]["fish_weight"] == 4.0
        assert result.payload[0]["local"] is True

    @pytest.mark.asyncio
    async def test_outage_serves_stale(self, social, mock_client, angler):
        await social.leaderboard(angler, "speed")
        social.invalidate_leaderboards()
        mock_client.fetch_leaderboard.side_effect = timeout("/leaderboard/speed")

        result = await social.leaderboard(angler, "speed")

        assert result.source == SOURCE_STALE

    @pytest.mark.asyncio
    async def test_local_kind_never_hits_remote(self, social, mock_client, angler):
        result = await social.leaderboard(angler, "local")
        assert result.source == SOURCE_LOCAL
        mock_client.fetch_leaderboard.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_kind(self, social, angler):
        with pytest.raises(ValueError):
            await social.leaderboard(angler, "weekly")

    def test_local_speed_sorted(self, angler, make_event):
        for reaction in (500, 210, 330):
            angler.add_catch(make_event(reaction_time_ms=reaction, experience=0, value=0))

        rows = local_leaderboard(angler, "speed")

        assert [r["reaction_time_ms"] for r in rows] == [210, 330, 500]


# =============================================================================
# Friends
# =============================================================================

class TestRefreshFriends:
    """New activity and request detection."""

    @pytest.mark.asyncio
    async def test_first_refresh_reports_nothing_new(self, social, mock_client, angler):
        mock_client.fetch_friend_activity.return_value = [{"id": 1}, {"id": 2}]
        mock_client.fetch_pending_requests.return_value = {"sent": [], "received": [{"id": "r1"}]}

        refresh = await social.refresh_friends(angler)

        assert refresh.activities == [{"id": 1}, {"id": 2}]
        assert refresh.new_activities == []
        assert refresh.new_requests == []
        assert refresh.badge_count == 1
        assert not refresh.degraded

    @pytest.mark.asyncio
    async def test_second_refresh_reports_new_items(self, social, mock_client, angler):
        mock_client.fetch_friend_activity.return_value = [{"id": 1}]
        await social.refresh_friends(angler)

        mock_client.fetch_friend_activity.return_value = [{"id": 2}, {"id": 1}]
        mock_client.fetch_pending_requests.return_value = {"sent": [], "received": [{"id": "r9"}]}
        refresh = await social.refresh_friends(angler)

        assert refresh.new_activities == [{"id": 2}]
        assert refresh.new_requests == [{"id": "r9"}]

    @pytest.mark.asyncio
    async def test_degraded_refresh_keeps_snapshot(self, social, mock_client, angler):
        mock_client.fetch_friend_activity.return_value = [{"id": 1}]
        await social.refresh_friends(angler)

        mock_client.fetch_friend_activity.side_effect = timeout("/friends/activity")
        degraded = await social.refresh_friends(angler)

        assert degraded.degraded
        assert degraded.new_activities == []
        assert degraded.activities == [{"id": 1}]

        mock_client.fetch_friend_activity.side_effect = None
        mock_client.fetch_friend_activity.return_value = [{"id": 2}, {"id": 1}]
        recovered = await social.refresh_friends(angler)

        assert recovered.new_activities == [{"id": 2}]

    @pytest.mark.asyncio
    async def test_cached_refresh_is_healthy(self, social, mock_client, angler):
        mock_client.fetch_friend_activity.return_value = [{"id": 1}]

        first = await social.refresh_friends(angler, force=False)
        second = await social.refresh_friends(angler, force=False)

        assert not first.degraded
        assert not second.degraded
        assert second.activities == [{"id": 1}]
        assert second.new_activities == []
        mock_client.fetch_friend_activity.assert_awaited_once()

        mock_client.fetch_friend_activity.return_value = [{"id": 2}, {"id": 1}]
        polled = await social.refresh_friends(angler)

        assert polled.new_activities == [{"id": 2}]

    @pytest.mark.asyncio
    async def test_offline_refresh_is_degraded(self, angler):
        refresh = await SocialService().refresh_friends(angler)

        assert refresh.degraded
        assert refresh.friends == []
        assert refresh.received == []

    @pytest.mark.asyncio
    async def test_friend_collection_cached(self, social, mock_client, angler):
        mock_client.fetch_friend_collection.return_value = {"2": {"count": 4}}

        await social.friend_collection(angler, "f1")
        result = await social.friend_collection(angler, "f1")

        assert result.source == SOURCE_CACHE
        mock_client.fetch_friend_collection.assert_awaited_once_with("f1")


class TestFriendMutations:
    """Mutations go to the server and expire friend data."""

    @pytest.mark.asyncio
    async def test_accept_expires_friend_cache(self, social, mock_client, angler):
        await social.friends(angler)
        await social.accept_friend_request(angler, "r1")

        result = await social.friends(angler)

        mock_client.accept_friend_request.assert_awaited_once_with("r1")
        assert result.source == SOURCE_REMOTE
        assert mock_client.fetch_friends.await_count == 2

    @pytest.mark.asyncio
    async def test_mutation_leaves_leaderboards_alone(self, social, mock_client, angler):
        await social.leaderboard(angler, "global")
        await social.send_friend_request(angler, "KC-0001")

        result = await social.leaderboard(angler, "global")

        assert result.source == SOURCE_CACHE

    @pytest.mark.asyncio
    async def test_failed_mutation_propagates(self, social, mock_client, angler):
        mock_client.remove_friend.side_effect = timeout("/friends/f1")

        with pytest.raises(RemoteUnavailable):
            await social.remove_friend(angler, "f1")

    @pytest.mark.asyncio
    async def test_unregistered_angler(self, angler):
        with pytest.raises(RemoteUnavailable):
            await SocialService().decline_friend_request(angler, "r1")


# =============================================================================
# Polling
# =============================================================================

class TestPolling:
    """Background friend refresh while a view is open."""

    @pytest.mark.asyncio
    async def test_poll_and_stop(self, social, angler):
        on_update = AsyncMock()

        social.start_polling("msg-1", angler, on_update, interval=0)
        await settle(100)
        assert social.stop_polling("msg-1") is True
        await settle()

        assert on_update.await_count >= 1
        calls = on_update.await_count
        await settle(10)
        assert on_update.await_count == calls

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_polling(self, social, angler):
        on_update = AsyncMock(side_effect=RuntimeError("message deleted"))

        task = social.start_polling("msg-1", angler, on_update, interval=0)
        await settle(100)

        assert on_update.await_count >= 2
        assert not task.done()
        social.stop_all()
        await settle()
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_restart_replaces_poller(self, social, angler):
        first = social.start_polling("msg-1", angler, AsyncMock(), interval=60)
        second = social.start_polling("msg-1", angler, AsyncMock(), interval=60)
        await asyncio.sleep(0)

        assert first.cancelled()
        assert not second.done()
        social.stop_all()

    def test_stop_unknown_key(self, social):
        assert social.stop_polling("nothing") is False

    @pytest.mark.asyncio
    async def test_prune_keeps_polled_and_active_players(self, social, angler):
        idle = Angler(user_id=2, name="Idle")
        busy = Angler(user_id=3, name="Busy")
        for player in (angler, idle, busy):
            await social.refresh_friends(player)
        social.start_polling("msg-1", angler, AsyncMock(), interval=60)

        assert social.prune(keep=[busy.user_id]) == 1

        assert set(social._caches) == {angler.user_id, busy.user_id}
        assert set(social._snapshots) == {angler.user_id, busy.user_id}
        social.stop_all()

        assert social.prune() == 2
        assert social._caches == {}
        assert social._snapshots == {}
