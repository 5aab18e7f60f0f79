"""Catch resolution and timing math for the fishing minigame.

Pure functions only. Anything random takes an ``rng`` so tests can pass a
seeded ``random.Random``.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from configs.settings import (
    BASE_CATCH_CHANCE, CATCH_CHANCE_CEILING, CATCH_CHANCE_FLOOR, DIFFICULTY_MODIFIERS,
    LEVEL_CATCH_PENALTIES, TACKLE_BONUS_DIVISOR,
)
from ..constants import (
    BITE_TIMING_BANDS, DEFAULT_HOOK_TIMING_WINDOW, FISH_BY_ID, MIN_VALID_REACTION_MS,
    REACTION_WINDOW_MAX_MS, REACTION_WINDOW_MIN_MS, get_location, get_tackle_by_name,
)
from .models import CatchEvent

if TYPE_CHECKING:
    from .models import Angler


class MissReason(Enum):
    """Why a hook-set did not land a fish."""
    TOO_EAGER = "too_eager"
    TOO_SLOW = "too_slow"
    UNLUCKY = "unlucky"


def classify_miss(reaction_time_ms: float, timing_window_ms: float) -> MissReason:
    """Reason code for a failed hook-set.

    Reactions slower than the window are ``too_slow``, those below the
    minimum human reaction are ``too_eager``; anything else lost the roll.
    """
    if reaction_time_ms > timing_window_ms:
        return MissReason.TOO_SLOW
    if reaction_time_ms < MIN_VALID_REACTION_MS:
        return MissReason.TOO_EAGER
    return MissReason.UNLUCKY


def determine_catch(
    probability: float,
    reaction_time_ms: float,
    timing_window_ms: float,
    rng: Any = random,
) -> bool:
    """Decide whether a hook-set lands the fish.

    Args:
        probability: Skill probability in [0, 1], higher is better
        reaction_time_ms: Time between strike and hook-set
        timing_window_ms: Width of the equipped hook's window
        rng: Source of the single random draw

    Returns:
        bool: True on catch
    """
    if reaction_time_ms < MIN_VALID_REACTION_MS:
        return False
    if reaction_time_ms > timing_window_ms:
        return False
    probability = min(1.0, max(0.0, probability))
    return rng.random() < probability


def calculate_bite_timing(level: int) -> tuple[int, int]:
    """Min/max bite delay in ms for an angler level."""
    for min_level, low, high in BITE_TIMING_BANDS:
        if level >= min_level:
            return low, high
    _, low, high = BITE_TIMING_BANDS[-1]
    return low, high


def roll_bite_delay(level: int, rng: Any = random) -> int:
    low, high = calculate_bite_timing(level)
    return int(rng.uniform(low, high))


def roll_reaction_window(rng: Any = random) -> int:
    """How long a strike stays live before it counts as a timeout."""
    return int(rng.uniform(REACTION_WINDOW_MIN_MS, REACTION_WINDOW_MAX_MS))


def get_hook_timing_window(angler: "Angler") -> int:
    hook = get_tackle_by_name("hooks", angler.gear.get("hook", ""))
    if hook is None:
        return DEFAULT_HOOK_TIMING_WINDOW
    return hook["timing_window"]


def get_tackle_bonus(angler: "Angler") -> int:
    """Sum of catch bonuses from the equipped rod, hook and bait."""
    total = 0
    for category, slot in (("rods", "rod"), ("hooks", "hook"), ("baits", "bait")):
        item = get_tackle_by_name(category, angler.gear.get(slot, ""))
        if item is not None:
            total += item.get("catch_bonus", 0)
    return total


def calculate_catch_chance(angler: "Angler", location: Optional[dict] = None) -> float:
    """Skill probability fed to :func:`determine_catch`.

    Starts from the base chance, then applies level penalties, location
    difficulty, tackle bonus and stat offsets, clamped to the floor/ceiling.
    """
    if location is None:
        location = get_location(angler.current_location)

    chance = BASE_CATCH_CHANCE

    for min_level, penalty in LEVEL_CATCH_PENALTIES:
        if angler.level >= min_level:
            chance -= penalty
            break

    chance += DIFFICULTY_MODIFIERS.get(location.get("difficulty"), 0.0)
    chance += get_tackle_bonus(angler) / TACKLE_BONUS_DIVISOR

    stats = angler.stats
    chance += (stats.get("accuracy", 50) - 50) * 0.0015
    chance += (stats.get("luck", 50) - 50) * 0.002
    chance += (stats.get("patience", 50) - 50) * 0.0008
    chance += (stats.get("strength", 50) - 50) * 0.001

    return max(CATCH_CHANCE_FLOOR, min(CATCH_CHANCE_CEILING, chance))


def roll_species(location: dict, rng: Any = random) -> dict:
    """Pick a fish uniformly from the location's pool."""
    pool = [FISH_BY_ID[fish_id] for fish_id in location.get("fish", []) if fish_id in FISH_BY_ID]
    if not pool:
        pool = [FISH_BY_ID[0]]
    return rng.choice(pool)


def roll_catch(
    location: dict,
    reaction_time_ms: Optional[int] = None,
    rng: Any = random,
) -> CatchEvent:
    """Build the catch event for a landed fish."""
    fish = roll_species(location, rng)
    weight = round(rng.uniform(fish["min_weight"], fish["max_weight"]), 2)
    return CatchEvent(
        fish_id=fish["id"],
        fish_name=fish["name"],
        rarity=fish["rarity"],
        weight=weight,
        value=fish["value"],
        experience=fish["experience"],
        reaction_time_ms=reaction_time_ms,
    )
