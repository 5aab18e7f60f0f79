"""Angler aggregate and catch records.

The angler is the only piece of mutable game state. Every mutation goes
through one of its methods, and every method that changes something calls
the attached persistence hook so the repository can schedule a save.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Optional

from core.achievement_system import migrate_tier_map
from core.logging import get_logger
from ..constants import (
    DEFAULT_GEAR, DEFAULT_LOCATION_UNLOCKS, DEFAULT_STATS, FISH_BY_ID, GEAR_SLOTS,
    LOCATIONS, RECENT_CATCH_LIMIT, STARTING_MONEY, TACKLE, TACKLE_CATEGORIES,
    TOP_CATCH_LIMIT, get_tackle,
)

logger = get_logger("fishing.models")


def exp_for_level(level: int) -> int:
    """Cumulative experience curve: floor(100 * level^1.5)."""
    return math.floor(100 * level ** 1.5)


def exp_to_next_level(level: int) -> int:
    """Experience that must be banked to go from ``level`` to ``level + 1``."""
    return exp_for_level(level + 1) - exp_for_level(level)


def _default_tackle_unlocks() -> dict[str, list[int]]:
    return {category: [0] for category in TACKLE_CATEGORIES}


@dataclass
class CatchEvent:
    """A single successful catch. Produced by the timing gate, consumed once."""
    fish_id: int
    fish_name: str
    rarity: str
    weight: float
    value: int
    experience: int
    reaction_time_ms: Optional[int] = None
    timestamp: float = field(default_factory=lambda: time.time() * 1000)

    def to_record(self) -> dict[str, Any]:
        """Archived form kept in the recent/top lists and sent to the server."""
        return {
            "fish_id": self.fish_id,
            "fish_name": self.fish_name,
            "rarity": self.rarity,
            "weight": self.weight,
            "value": self.value,
            "experience": self.experience,
            "reaction_time_ms": self.reaction_time_ms,
            "timestamp": self.timestamp,
        }


@dataclass
class Unlock:
    """One location or tackle item unlocked by reaching a level."""
    kind: str  # "location" | "tackle"
    name: str
    unlock_level: int
    index: int
    category: Optional[str] = None


@dataclass
class LevelUp:
    level: int
    levels_gained: int
    unlock: Optional[Unlock] = None
    unlocks: list[Unlock] = field(default_factory=list)


@dataclass
class Angler:
    """Persistent player profile."""
    user_id: int
    name: str = "Angler"
    level: int = 1
    experience: int = 0
    money: int = STARTING_MONEY
    total_caught: int = 0
    total_weight: float = 0.0
    biggest_catch: float = 0.0
    stats: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_STATS))
    location_unlocks: list[int] = field(default_factory=lambda: list(DEFAULT_LOCATION_UNLOCKS))
    tackle_unlocks: dict[str, list[int]] = field(default_factory=_default_tackle_unlocks)
    gear: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_GEAR))
    current_location: int = 0
    achievements: dict[str, int] = field(default_factory=dict)
    recent_catches: list[dict[str, Any]] = field(default_factory=list)
    top_catches: list[dict[str, Any]] = field(default_factory=list)
    caught_species: list[str] = field(default_factory=list)
    collection: dict[int, dict[str, Any]] = field(default_factory=dict)
    friend_code: Optional[str] = None
    remote_id: Optional[str] = None

    _on_change: Optional[Callable[["Angler"], None]] = field(default=None, repr=False, compare=False)

    # ==================== PERSISTENCE HOOK ====================

    def attach(self, on_change: Optional[Callable[["Angler"], None]]) -> None:
        """Attach the callback invoked after every mutation."""
        self._on_change = on_change

    def _touch(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    # ==================== MONEY ====================

    def add_money(self, amount: int) -> None:
        if amount <= 0:
            return
        self.money += int(amount)
        self._touch()

    def spend_money(self, amount: int) -> bool:
        """Deduct money if affordable. Returns False without change otherwise."""
        if amount < 0 or self.money < amount:
            return False
        self.money -= int(amount)
        self._touch()
        return True

    # ==================== EXPERIENCE ====================

    def add_experience(self, amount: int) -> Optional[LevelUp]:
        """Bank experience and level up as many times as it allows.

        Each level gained grants at most one unlock (locations first, then
        tackle by category order). Returns None if no level was gained.
        """
        if amount <= 0:
            return None

        previous_level = self.level
        self.experience += int(amount)
        unlocks: list[Unlock] = []

        while self.experience >= exp_to_next_level(self.level):
            self.experience -= exp_to_next_level(self.level)
            self.level += 1
            unlock = self._check_unlocks()
            if unlock is not None:
                unlocks.append(unlock)

        self._touch()

        if self.level == previous_level:
            return None

        levels_gained = self.level - previous_level
        logger.info("angler_level_up", user_id=self.user_id, level=self.level, levels_gained=levels_gained)
        return LevelUp(
            level=self.level,
            levels_gained=levels_gained,
            unlock=unlocks[-1] if unlocks else None,
            unlocks=unlocks,
        )

    def _check_unlocks(self) -> Optional[Unlock]:
        for index, location in enumerate(LOCATIONS):
            if index not in self.location_unlocks and self.level >= location["unlock_level"]:
                self.location_unlocks.append(index)
                return Unlock("location", location["name"], location["unlock_level"], index)

        for category in TACKLE_CATEGORIES:
            owned = self.tackle_unlocks.setdefault(category, [0])
            available = sorted(
                (item for item in TACKLE[category]
                 if item["id"] not in owned and self.level >= item["unlock_level"]),
                key=lambda item: item["unlock_level"],
            )
            if available:
                item = available[0]
                owned.append(item["id"])
                return Unlock("tackle", item["name"], item["unlock_level"], item["id"], category)

        return None

    # ==================== CATCHES ====================

    def unlock_fish(self, fish_id: int) -> bool:
        """Record a species in the collection. Returns True on first catch."""
        entry = self.collection.get(fish_id)
        if entry is None:
            self.collection[fish_id] = {
                "caught": True,
                "first_catch_date": time.time() * 1000,
                "count": 1,
            }
            self._touch()
            return True
        entry["count"] = entry.get("count", 0) + 1
        entry["caught"] = True
        self._touch()
        return False

    def add_catch(self, event: CatchEvent) -> Optional[LevelUp]:
        """Fold a catch into the running tallies, then award experience and money."""
        self.total_caught += 1
        self.total_weight = round(self.total_weight + event.weight, 2)
        if event.weight > self.biggest_catch:
            self.biggest_catch = event.weight

        record = event.to_record()
        self.recent_catches.insert(0, record)
        del self.recent_catches[RECENT_CATCH_LIMIT:]

        self.top_catches.append(dict(record))
        self.top_catches.sort(key=lambda c: c.get("weight", 0), reverse=True)
        del self.top_catches[TOP_CATCH_LIMIT:]

        if event.fish_name not in self.caught_species:
            self.caught_species.append(event.fish_name)

        level_up = self.add_experience(event.experience)
        self.add_money(event.value)
        self._touch()
        return level_up

    # ==================== ACHIEVEMENTS ====================

    def get_tier(self, achievement_id: str) -> int:
        return int(self.achievements.get(achievement_id, 0) or 0)

    def record_tier(self, achievement_id: str, tier: int) -> bool:
        """Raise the recorded tier. Lower or equal tiers are ignored."""
        if tier <= self.get_tier(achievement_id):
            return False
        self.achievements[achievement_id] = int(tier)
        self._touch()
        return True

    # ==================== SHOP ====================

    def owns_tackle(self, category: str, item_id: int) -> bool:
        return item_id in self.tackle_unlocks.get(category, [])

    def purchase_tackle(self, category: str, item_id: int) -> bool:
        """Buy a tackle item the angler has reached the level for."""
        item = get_tackle(category, item_id)
        if item is None or self.owns_tackle(category, item_id):
            return False
        if self.level < item["unlock_level"]:
            return False
        if not self.spend_money(item["cost"]):
            return False
        self.tackle_unlocks.setdefault(category, [0]).append(item_id)
        self._touch()
        return True

    def equip(self, category: str, item_id: int) -> bool:
        item = get_tackle(category, item_id)
        if item is None or not self.owns_tackle(category, item_id):
            return False
        self.gear[GEAR_SLOTS[category]] = item["name"]
        self._touch()
        return True

    def travel(self, location_index: int) -> bool:
        if location_index not in self.location_unlocks:
            return False
        self.current_location = location_index
        self._touch()
        return True

    def reset(self) -> None:
        """Restore every field to its starting value, keeping identity."""
        fresh = Angler(
            user_id=self.user_id, name=self.name,
            friend_code=self.friend_code, remote_id=self.remote_id,
        )
        for f in fields(self):
            if f.name != "_on_change":
                setattr(self, f.name, getattr(fresh, f.name))
        logger.info("angler_reset", user_id=self.user_id)
        self._touch()

    # ==================== DERIVED VALUES ====================

    @property
    def tackle_count(self) -> int:
        return sum(len(ids) for ids in self.tackle_unlocks.values())

    @property
    def unlocked_species_count(self) -> int:
        return sum(1 for entry in self.collection.values() if entry.get("caught"))

    def catches_by_rarity(self, rarities) -> int:
        total = 0
        for fish_id, entry in self.collection.items():
            if not entry.get("caught"):
                continue
            fish = FISH_BY_ID.get(fish_id)
            if fish and fish["rarity"] in rarities:
                total += entry.get("count") or 1
        return total

    @property
    def top_bag_weight(self) -> float:
        return round(sum(c.get("weight", 0) for c in self.top_catches), 2)

    # ==================== SERIALIZATION ====================

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "level": self.level,
            "experience": self.experience,
            "money": self.money,
            "total_caught": self.total_caught,
            "total_weight": self.total_weight,
            "biggest_catch": self.biggest_catch,
            "stats": dict(self.stats),
            "location_unlocks": list(self.location_unlocks),
            "tackle_unlocks": {k: list(v) for k, v in self.tackle_unlocks.items()},
            "gear": dict(self.gear),
            "current_location": self.current_location,
            "achievements": dict(self.achievements),
            "recent_catches": [dict(c) for c in self.recent_catches],
            "top_catches": [dict(c) for c in self.top_catches],
            "caught_species": list(self.caught_species),
            "collection": {str(k): dict(v) for k, v in self.collection.items()},
            "friend_code": self.friend_code,
            "remote_id": self.remote_id,
        }

    @classmethod
    def from_dict(cls, data: Any, user_id: Optional[int] = None) -> "Angler":
        """Build an angler from stored data, resetting any field that is malformed."""
        if not isinstance(data, dict):
            logger.warning("angler_data_corrupt", user_id=user_id, detail="not a mapping")
            return cls(user_id=user_id or 0)

        stored_id = data.get("user_id")
        if user_id is None:
            user_id = stored_id if isinstance(stored_id, int) else 0
        angler = cls(user_id=user_id)

        def take(key, expected, convert=None):
            if key not in data:
                return
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, expected):
                logger.warning("angler_field_reset", user_id=angler.user_id, field=key)
                return
            try:
                value = convert(value) if convert else value
            except (TypeError, ValueError, OverflowError):
                logger.warning("angler_field_reset", user_id=angler.user_id, field=key)
                return
            setattr(angler, key, value)

        take("name", str)
        take("level", int, lambda v: max(1, v))
        take("experience", (int, float), lambda v: max(0, int(v)))
        take("money", (int, float), lambda v: max(0, int(v)))
        take("total_caught", int, lambda v: max(0, v))
        take("total_weight", (int, float), _finite_float)
        take("biggest_catch", (int, float), _finite_float)
        take("current_location", int)
        take("friend_code", str)
        take("remote_id", str)
        take("stats", dict, lambda v: {**DEFAULT_STATS, **{k: s for k, s in v.items() if isinstance(s, (int, float))}})
        take("gear", dict, lambda v: {**DEFAULT_GEAR, **{k: g for k, g in v.items() if isinstance(g, str)}})
        take("location_unlocks", list, lambda v: [i for i in v if isinstance(i, int)] or list(DEFAULT_LOCATION_UNLOCKS))
        take("tackle_unlocks", dict, _clean_tackle_unlocks)
        take("recent_catches", list, lambda v: [c for c in v if isinstance(c, dict)][:RECENT_CATCH_LIMIT])
        take("top_catches", list, lambda v: [c for c in v if isinstance(c, dict)][:TOP_CATCH_LIMIT])
        take("caught_species", list, lambda v: [s for s in v if isinstance(s, str)])
        take("collection", dict, _clean_collection)

        angler.achievements = migrate_tier_map(data.get("achievements"), user_id=angler.user_id)
        return angler


def _clean_tackle_unlocks(raw: dict) -> dict[str, list[int]]:
    unlocks = _default_tackle_unlocks()
    for category in TACKLE_CATEGORIES:
        ids = raw.get(category)
        if isinstance(ids, list):
            unlocks[category] = sorted({i for i in ids if isinstance(i, int)} | {0})
    return unlocks


def _clean_collection(raw: dict) -> dict[int, dict[str, Any]]:
    collection = {}
    for fish_id, entry in raw.items():
        try:
            key = int(fish_id)
        except (TypeError, ValueError):
            continue
        if isinstance(entry, dict):
            collection[key] = {
                "caught": bool(entry.get("caught", True)),
                "first_catch_date": entry.get("first_catch_date"),
                "count": _positive_count(entry.get("count")),
            }
    return collection


def _positive_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 1
    return max(1, int(value))


def _finite_float(value: Any) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError("not a finite number")
    return value
