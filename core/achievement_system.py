"""
Centralized Achievement System
Tiered achievements evaluated against an angler after every progression event.

Each definition owns an ordered list of tiers. The angler keeps a tier map
(achievement id -> highest tier reached) that only ever moves forward; a tier
reward is paid exactly once, when the recorded tier is raised past it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from configs.settings import MAX_LEDGER_PASSES
from core.logging import get_logger

if TYPE_CHECKING:
    from cogs.fishing.core.models import Angler, LevelUp

logger = get_logger("achievements")


@dataclass(frozen=True)
class Reward:
    experience: int = 0
    money: int = 0

    @classmethod
    def from_raw(cls, raw: Any) -> "Reward":
        """Build a reward from loosely typed data; missing fields are zero."""
        if isinstance(raw, Reward):
            return raw
        if not isinstance(raw, dict):
            return cls()
        return cls(experience=_as_int(raw.get("experience")), money=_as_int(raw.get("money")))


@dataclass(frozen=True)
class AchievementTier:
    target: float
    reward: Reward = field(default_factory=Reward)


@dataclass(frozen=True)
class AchievementContext:
    total_locations: int = 0
    total_fish: int = 0


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    unit: str
    tiers: tuple[AchievementTier, ...]
    value: Callable[["Angler", AchievementContext], float]
    prefix: str = ""

    @property
    def max_tier(self) -> int:
        return len(self.tiers)


@dataclass(frozen=True)
class TierUnlock:
    """One newly reached tier, as returned by :meth:`ProgressionLedger.evaluate`."""
    achievement_id: str
    tier: int
    reward: Reward
    name: str = ""
    target: float = 0
    max_tier: int = 0


@dataclass
class ApplyResult:
    unlocked: list[TierUnlock] = field(default_factory=list)
    experience: int = 0
    money: int = 0
    level_ups: list["LevelUp"] = field(default_factory=list)
    passes: int = 0

    @property
    def levels_gained(self) -> int:
        return sum(level_up.levels_gained for level_up in self.level_ups)


@dataclass
class AchievementStatus:
    id: str
    name: str
    description: str
    unit: str
    prefix: str
    current_tier: int
    max_tier: int
    current_value: float
    next_target: float
    progress_percent: float
    next_reward: Optional[Reward]
    is_complete: bool
    tiers: list[dict[str, Any]]


def tiers(*rows: tuple[float, int, int]) -> tuple[AchievementTier, ...]:
    """Shorthand for ``(target, experience, money)`` tier rows."""
    return tuple(AchievementTier(target, Reward(experience, money)) for target, experience, money in rows)


def migrate_tier_map(raw: Any, user_id: Optional[int] = None) -> dict[str, int]:
    """Normalise a stored tier map.

    Old profiles stored a flat list of unlocked ids; each becomes tier 1.
    A dict passes through with malformed tiers dropped, so converting an
    already converted map changes nothing.
    """
    if raw is None:
        return {}
    if isinstance(raw, list):
        migrated = {str(achievement_id): 1 for achievement_id in raw if isinstance(achievement_id, str)}
        logger.info("achievement_map_migrated", user_id=user_id, count=len(migrated))
        return migrated
    if isinstance(raw, dict):
        cleaned = {}
        for achievement_id, tier in raw.items():
            if isinstance(tier, bool) or not isinstance(tier, (int, float)) or not math.isfinite(tier):
                logger.warning("achievement_tier_skipped", user_id=user_id, achievement_id=achievement_id)
                continue
            cleaned[str(achievement_id)] = max(0, int(tier))
        return cleaned
    logger.warning("achievement_map_reset", user_id=user_id, kind=type(raw).__name__)
    return {}


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return int(value)


class ProgressionLedger:
    """
    Evaluates achievement tiers and pays out their rewards.

    Nothing here raises: a definition whose value accessor fails is skipped
    for that pass, and malformed unlock records are ignored.
    """

    def __init__(
        self,
        definitions: Iterable[AchievementDefinition],
        context: Optional[AchievementContext] = None,
        max_passes: int = MAX_LEDGER_PASSES,
    ):
        self.definitions = list(definitions)
        self._by_id = {definition.id: definition for definition in self.definitions}
        self.context = context or AchievementContext()
        self.max_passes = max(1, max_passes)

    def get(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._by_id.get(achievement_id)

    def _ensure_tier_map(self, angler: "Angler") -> None:
        # Profiles are migrated when loaded; this only catches maps assigned afterwards.
        if not isinstance(angler.achievements, dict):
            angler.achievements = migrate_tier_map(angler.achievements, user_id=angler.user_id)

    def _current_value(self, definition: AchievementDefinition, angler: "Angler", context: AchievementContext):
        try:
            value = definition.value(angler, context)
        except Exception as e:
            logger.warning("achievement_value_failed", achievement_id=definition.id, error=str(e))
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    def evaluate(self, angler: "Angler", context: Optional[AchievementContext] = None) -> list[TierUnlock]:
        """Every tier above the recorded one whose target the angler has reached."""
        context = context or self.context
        self._ensure_tier_map(angler)
        unlocks: list[TierUnlock] = []

        for definition in self.definitions:
            value = self._current_value(definition, angler, context)
            if value is None:
                continue
            recorded = angler.get_tier(definition.id)
            for number, tier in enumerate(definition.tiers, start=1):
                if number <= recorded:
                    continue
                if value < tier.target:
                    break
                unlocks.append(TierUnlock(
                    achievement_id=definition.id,
                    tier=number,
                    reward=tier.reward,
                    name=definition.name,
                    target=tier.target,
                    max_tier=definition.max_tier,
                ))

        return unlocks

    def apply(
        self,
        angler: "Angler",
        unlocks: Iterable[TierUnlock],
        context: Optional[AchievementContext] = None,
    ) -> ApplyResult:
        """Ratchet the tier map and pay rewards through the angler's own methods.

        Rewards can level the angler up, which can satisfy further tiers, so
        evaluation is repeated until a pass yields nothing new (bounded by
        ``max_passes``).
        """
        context = context or self.context
        self._ensure_tier_map(angler)
        result = ApplyResult()
        pending = list(unlocks)

        while pending and result.passes < self.max_passes:
            result.passes += 1
            experience = 0
            money = 0

            for unlock in pending:
                if not isinstance(unlock, TierUnlock) or not isinstance(unlock.tier, int):
                    continue
                if unlock.achievement_id not in self._by_id:
                    logger.warning("achievement_unknown_id", achievement_id=unlock.achievement_id)
                    continue
                if not angler.record_tier(unlock.achievement_id, unlock.tier):
                    continue
                reward = Reward.from_raw(unlock.reward)
                experience += reward.experience
                money += reward.money
                result.unlocked.append(unlock)
                logger.info(
                    "achievement_tier_unlocked",
                    user_id=angler.user_id,
                    achievement_id=unlock.achievement_id,
                    tier=unlock.tier,
                )

            if experience:
                level_up = angler.add_experience(experience)
                if level_up is not None:
                    result.level_ups.append(level_up)
            if money:
                angler.add_money(money)
            result.experience += experience
            result.money += money

            pending = self.evaluate(angler, context) if (experience or money) else []

        if pending:
            logger.warning("achievement_pass_limit", user_id=angler.user_id, remaining=len(pending))
        return result

    def process(self, angler: "Angler", trigger: str, context: Optional[AchievementContext] = None) -> ApplyResult:
        """Evaluate then apply, for a catch/level/purchase trigger."""
        result = self.apply(angler, self.evaluate(angler, context), context)
        if result.unlocked:
            logger.info("achievements_processed", user_id=angler.user_id, trigger=trigger, count=len(result.unlocked))
        return result

    def statuses(self, angler: "Angler", context: Optional[AchievementContext] = None) -> list[AchievementStatus]:
        """Progress summary for every achievement, used by the achievements view."""
        context = context or self.context
        self._ensure_tier_map(angler)
        statuses = []

        for definition in self.definitions:
            current_tier = min(angler.get_tier(definition.id), definition.max_tier)
            value = self._current_value(definition, angler, context) or 0
            if current_tier < definition.max_tier:
                next_tier = definition.tiers[current_tier]
            else:
                next_tier = definition.tiers[-1]
            next_target = next_tier.target
            progress = min(100.0, value / next_target * 100) if next_target > 0 else 100.0
            is_complete = current_tier >= definition.max_tier

            statuses.append(AchievementStatus(
                id=definition.id,
                name=definition.name,
                description=definition.description,
                unit=definition.unit,
                prefix=definition.prefix,
                current_tier=current_tier,
                max_tier=definition.max_tier,
                current_value=value,
                next_target=next_target,
                progress_percent=progress,
                next_reward=None if is_complete else next_tier.reward,
                is_complete=is_complete,
                tiers=[
                    {"tier": number, "target": tier.target, "reward": tier.reward, "unlocked": number <= current_tier}
                    for number, tier in enumerate(definition.tiers, start=1)
                ],
            ))

        return statuses
