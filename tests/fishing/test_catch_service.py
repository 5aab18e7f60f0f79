"""
Tests for the catch pipeline.

Tests cover:
- Folding a catch into the angler (collection, tallies, achievements)
- Leaderboard invalidation on every catch
- Fire-and-forget remote reports and their payloads
- Remote failures never blocking a catch
- Tackle purchases triggering achievement evaluation
"""
from unittest.mock import MagicMock

import pytest

from cogs.fishing.achievements import build_ledger
from cogs.fishing.services.catch_service import CatchService, activity_payload, leaderboard_payload
from core.errors import RemoteUnavailable
from tests.conftest import settle


@pytest.fixture
def social():
    return MagicMock()


@pytest.fixture
def service(social, mock_repository):
    return CatchService(build_ledger(), social=social, repository=mock_repository)


# =============================================================================
# Angler updates
# =============================================================================

class TestHandleCatch:
    """Catch -> angler -> ledger."""

    def test_first_catch_of_species(self, service, angler, make_event):
        outcome = service.handle_catch(angler, make_event())

        assert outcome.first_catch is True
        assert angler.total_caught == 1
        assert angler.collection[2]["count"] == 1
        assert angler.get_tier("first_catch") == 1

    def test_repeat_species(self, service, angler, make_event):
        service.handle_catch(angler, make_event())
        outcome = service.handle_catch(angler, make_event())

        assert outcome.first_catch is False
        assert angler.collection[2]["count"] == 2

    def test_achievements_reported_in_outcome(self, service, angler, make_event):
        outcome = service.handle_catch(angler, make_event())

        unlocked = {u.achievement_id for u in outcome.achievements.unlocked}
        assert "first_catch" in unlocked

    def test_first_catch_reward_granted_once(self, service, angler, make_event):
        service.handle_catch(angler, make_event(value=0, experience=0))
        money_after_first = angler.money

        outcome = service.handle_catch(angler, make_event(value=0, experience=0))

        assert outcome.achievements.unlocked == []
        assert angler.money == money_after_first

    def test_levels_gained_combines_catch_and_rewards(self, service, angler, make_event):
        outcome = service.handle_catch(angler, make_event(experience=500))

        assert outcome.level_up is not None
        assert outcome.levels_gained == angler.level - 1

    def test_invalidates_leaderboards(self, service, social, angler, make_event):
        service.handle_catch(angler, make_event())
        social.invalidate_leaderboards.assert_called_once()

    def test_works_without_collaborators(self, angler, make_event):
        service = CatchService(build_ledger())
        outcome = service.handle_catch(angler, make_event())
        assert outcome.first_catch


# =============================================================================
# Remote reporting
# =============================================================================

class TestRemoteReports:
    """Fire-and-forget reports to the server."""

    @pytest.mark.asyncio
    async def test_reports_catch_and_activity(self, service, mock_client, angler, make_event):
        event = make_event()

        service.handle_catch(angler, event)
        await service.drain()

        mock_client.append_catch.assert_awaited_once_with(leaderboard_payload(event, "Willow Pond"))
        mock_client.log_catch_activity.assert_awaited_once_with(activity_payload(event, "Willow Pond"))
        mock_client.log_level_up.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reports_level_up(self, service, mock_client, angler, make_event):
        service.handle_catch(angler, make_event(experience=500))
        await service.drain()

        mock_client.log_level_up.assert_awaited_once()
        level, levels_gained = mock_client.log_level_up.await_args.args
        assert level == angler.level
        assert levels_gained == angler.level - 1

    @pytest.mark.asyncio
    async def test_remote_failure_does_not_block_catch(self, service, mock_client, angler, make_event):
        mock_client.append_catch.side_effect = RemoteUnavailable("/leaderboard/catch", reason="timeout")

        outcome = service.handle_catch(angler, make_event())
        await service.drain()

        assert outcome.event.fish_name == "Bass"
        assert angler.total_caught == 1
        mock_client.log_catch_activity.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unregistered_angler_skips_remote(self, mock_repository, mock_client, angler, make_event):
        mock_repository.client_for.return_value = None
        service = CatchService(build_ledger(), repository=mock_repository)

        service.handle_catch(angler, make_event())
        await settle()

        mock_client.append_catch.assert_not_called()

    @pytest.mark.asyncio
    async def test_broadcast_sink(self, mock_repository, angler, make_event):
        broadcast = MagicMock(side_effect=ConnectionError("socket closed"))
        service = CatchService(build_ledger(), repository=mock_repository, broadcast=broadcast)

        outcome = service.handle_catch(angler, make_event())
        await service.drain()

        broadcast.assert_called_once()
        message = broadcast.call_args.args[0]
        assert message["type"] == "catch"
        assert message["fishName"] == "Bass"
        assert outcome.first_catch

    def test_no_running_loop_skips_reports(self, service, mock_client, angler, make_event):
        outcome = service.handle_catch(angler, make_event())
        assert outcome.first_catch
        mock_client.append_catch.assert_called_once()
        mock_client.append_catch.assert_not_awaited()

    def test_payload_shapes(self, make_event):
        event = make_event(weight=3.3, reaction_time_ms=250)
        assert leaderboard_payload(event, "Deep Lake") == {
            "fishName": "Bass", "fishWeight": 3.3, "locationName": "Deep Lake", "reactionTimeMs": 250,
        }
        assert activity_payload(event, "Deep Lake") == {
            "fishName": "Bass", "fishWeight": 3.3, "fishRarity": "Common",
            "locationName": "Deep Lake", "experienceGained": 5,
        }


# =============================================================================
# Purchases
# =============================================================================

class TestHandlePurchase:
    """Shop purchases run the ledger."""

    def test_failed_purchase(self, service, angler):
        assert service.handle_purchase(angler, "rods", 1) is None

    def test_purchase_unlocks_gear_collector(self, service, angler):
        angler.level = 3
        result = service.handle_purchase(angler, "hooks", 1)

        assert result is not None
        assert angler.owns_tackle("hooks", 1)
        assert angler.get_tier("gear_collector") == 1
