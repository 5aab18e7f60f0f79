"""Catch pipeline for fishing.

Takes a resolved catch from the timing gate and folds it into the angler:
collection, tallies, achievements, leaderboard cache invalidation, then
fire-and-forget reporting to the remote server. Nothing remote can block
or undo a catch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from core.errors import RemoteUnavailable
from core.logging import get_logger
from ..constants import get_location

if TYPE_CHECKING:
    from core.achievement_system import ApplyResult, ProgressionLedger
    from core.database import AnglerRepository
    from .social_service import SocialService
    from ..core.models import Angler, CatchEvent, LevelUp

logger = get_logger("fishing.catch_service")


@dataclass
class CatchOutcome:
    event: "CatchEvent"
    first_catch: bool
    level_up: Optional["LevelUp"]
    achievements: "ApplyResult"

    @property
    def levels_gained(self) -> int:
        gained = self.level_up.levels_gained if self.level_up else 0
        return gained + self.achievements.levels_gained


def leaderboard_payload(event: "CatchEvent", location_name: str) -> dict[str, Any]:
    return {
        "fishName": event.fish_name,
        "fishWeight": event.weight,
        "locationName": location_name,
        "reactionTimeMs": event.reaction_time_ms,
    }


def activity_payload(event: "CatchEvent", location_name: str) -> dict[str, Any]:
    return {
        "fishName": event.fish_name,
        "fishWeight": event.weight,
        "fishRarity": event.rarity,
        "locationName": location_name,
        "experienceGained": event.experience,
    }


class CatchService:
    """Applies catches and purchases to anglers."""

    def __init__(
        self,
        ledger: "ProgressionLedger",
        social: Optional["SocialService"] = None,
        repository: Optional["AnglerRepository"] = None,
        broadcast: Optional[Callable[[dict[str, Any]], None]] = None,
    ):
        self.ledger = ledger
        self.social = social
        self.repository = repository
        self.broadcast = broadcast
        self._tasks: set[asyncio.Future] = set()

    def handle_catch(self, angler: "Angler", event: "CatchEvent") -> CatchOutcome:
        first_catch = angler.unlock_fish(event.fish_id)
        level_up = angler.add_catch(event)
        achievements = self.ledger.process(angler, "catch")

        if self.social is not None:
            self.social.invalidate_leaderboards()

        outcome = CatchOutcome(event, first_catch, level_up, achievements)
        logger.info(
            "catch_recorded",
            user_id=angler.user_id,
            fish=event.fish_name,
            weight=event.weight,
            first_catch=first_catch,
            levels_gained=outcome.levels_gained,
            tiers_unlocked=len(achievements.unlocked),
        )

        self._report(angler, outcome)
        return outcome

    def handle_purchase(self, angler: "Angler", category: str, item_id: int) -> Optional["ApplyResult"]:
        """Buy tackle; returns the achievement result, or None if the purchase failed."""
        if not angler.purchase_tackle(category, item_id):
            return None
        logger.info("tackle_purchased", user_id=angler.user_id, category=category, item_id=item_id)
        return self.ledger.process(angler, "purchase")

    # ==================== REMOTE REPORTING ====================

    def _report(self, angler: "Angler", outcome: CatchOutcome) -> None:
        location_name = get_location(angler.current_location)["name"]

        if self.broadcast is not None:
            try:
                self.broadcast({"type": "catch", "user_id": angler.user_id, **activity_payload(outcome.event, location_name)})
            except Exception as e:
                logger.warning("catch_broadcast_failed", user_id=angler.user_id, error=str(e))

        client = self.repository.client_for(angler) if self.repository else None
        if client is None:
            return

        self._spawn("append_catch", client.append_catch(leaderboard_payload(outcome.event, location_name)))
        self._spawn("log_catch_activity", client.log_catch_activity(activity_payload(outcome.event, location_name)))
        if outcome.levels_gained > 0:
            self._spawn("log_level_up", client.log_level_up(angler.level, outcome.levels_gained))

    def _spawn(self, name: str, coro: Awaitable[Any]) -> None:
        async def runner():
            try:
                await coro
            except RemoteUnavailable as e:
                logger.warning("remote_report_failed", call=name, reason=e.reason)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("remote_report_skipped", call=name)
            return
        task = loop.create_task(runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for outstanding remote reports."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
