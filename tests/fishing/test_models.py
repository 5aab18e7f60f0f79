"""
Tests for the Angler aggregate.

Tests cover:
- Experience curve and multi-level gains with unlocks
- Money, catches and collection bookkeeping
- Tier ratchet
- Shop purchases, equipping and travel
- Persistence hook
- Tolerant loading of stored data
"""
import json
from unittest.mock import MagicMock

import pytest

from cogs.fishing.constants import DEFAULT_GEAR, RECENT_CATCH_LIMIT, TOP_CATCH_LIMIT
from cogs.fishing.core.models import Angler, exp_for_level, exp_to_next_level


# =============================================================================
# Experience
# =============================================================================

class TestExperience:
    """Level curve and unlocks."""

    @pytest.mark.parametrize("level,expected", [(1, 100), (2, 282), (3, 519), (4, 800)])
    def test_exp_for_level(self, level, expected):
        assert exp_for_level(level) == expected

    def test_exp_to_next_level(self):
        assert exp_to_next_level(1) == 182
        assert exp_to_next_level(2) == 237

    def test_not_enough_for_a_level(self, angler):
        assert angler.add_experience(100) is None
        assert angler.level == 1
        assert angler.experience == 100

    def test_single_level_unlocks_tackle(self, angler):
        level_up = angler.add_experience(182)

        assert level_up.level == 2
        assert level_up.levels_gained == 1
        assert angler.experience == 0
        assert level_up.unlock.kind == "tackle"
        assert level_up.unlock.name == "Live Bait"
        assert 1 in angler.tackle_unlocks["baits"]

    def test_multiple_levels_in_one_award(self, angler):
        level_up = angler.add_experience(182 + 237 + 10)

        assert level_up.level == 3
        assert level_up.levels_gained == 2
        assert angler.experience == 10
        assert [u.name for u in level_up.unlocks] == ["Live Bait", "Deep Lake"]
        assert level_up.unlock.kind == "location"
        assert 2 in angler.location_unlocks

    def test_non_positive_amount_ignored(self, angler):
        assert angler.add_experience(0) is None
        assert angler.add_experience(-50) is None
        assert angler.experience == 0


# =============================================================================
# Money
# =============================================================================

class TestMoney:
    """Earn and spend."""

    def test_starting_money(self, angler):
        assert angler.money == 100

    def test_spend_money(self, angler):
        assert angler.spend_money(60) is True
        assert angler.money == 40

    def test_spend_more_than_balance(self, angler):
        assert angler.spend_money(101) is False
        assert angler.money == 100

    def test_add_money_ignores_non_positive(self, angler):
        angler.add_money(-5)
        angler.add_money(0)
        assert angler.money == 100


# =============================================================================
# Catches
# =============================================================================

class TestCatches:
    """add_catch and the collection."""

    def test_tallies(self, angler, make_event):
        angler.add_catch(make_event(weight=2.5, value=15, experience=5))
        angler.add_catch(make_event(weight=4.25, value=15, experience=5))

        assert angler.total_caught == 2
        assert angler.total_weight == pytest.approx(6.75)
        assert angler.biggest_catch == 4.25
        assert angler.money == 130
        assert angler.experience == 10
        assert angler.caught_species == ["Bass"]

    def test_recent_list_newest_first_and_bounded(self, angler, make_event):
        for i in range(RECENT_CATCH_LIMIT + 3):
            angler.add_catch(make_event(weight=float(i + 1), experience=0, value=0))

        assert len(angler.recent_catches) == RECENT_CATCH_LIMIT
        assert angler.recent_catches[0]["weight"] == RECENT_CATCH_LIMIT + 3

    def test_top_list_sorted_by_weight(self, angler, make_event):
        weights = [3.0, 9.5, 1.0, 7.25] + [0.5] * TOP_CATCH_LIMIT
        for weight in weights:
            angler.add_catch(make_event(weight=weight, experience=0, value=0))

        top = [c["weight"] for c in angler.top_catches]
        assert len(top) == TOP_CATCH_LIMIT
        assert top[:4] == [9.5, 7.25, 3.0, 1.0]

    def test_unlock_fish_first_catch(self, angler):
        assert angler.unlock_fish(2) is True
        assert angler.unlock_fish(2) is False
        assert angler.collection[2]["count"] == 2
        assert angler.unlocked_species_count == 1

    def test_catches_by_rarity(self, angler):
        angler.unlock_fish(10)  # Salmon, Rare
        angler.unlock_fish(10)
        angler.unlock_fish(21)  # Leviathan, Legendary
        angler.unlock_fish(0)   # Minnow, Common

        assert angler.catches_by_rarity({"Rare", "Legendary"}) == 3
        assert angler.catches_by_rarity({"Legendary"}) == 1

    def test_add_catch_returns_level_up(self, angler, make_event):
        level_up = angler.add_catch(make_event(experience=200))
        assert level_up is not None
        assert level_up.level == 2


# =============================================================================
# Achievements tier map
# =============================================================================

class TestTierRatchet:
    """record_tier only moves forward."""

    def test_raise(self, angler):
        assert angler.record_tier("fish_catcher", 2) is True
        assert angler.get_tier("fish_catcher") == 2

    def test_lower_or_equal_ignored(self, angler):
        angler.record_tier("fish_catcher", 3)
        assert angler.record_tier("fish_catcher", 3) is False
        assert angler.record_tier("fish_catcher", 1) is False
        assert angler.get_tier("fish_catcher") == 3

    def test_unknown_id_reads_zero(self, angler):
        assert angler.get_tier("nope") == 0


# =============================================================================
# Shop
# =============================================================================

class TestShop:
    """Purchases, equipping and travel."""

    def test_purchase(self, angler):
        angler.level = 3
        assert angler.purchase_tackle("hooks", 1) is True
        assert angler.money == 0
        assert angler.owns_tackle("hooks", 1)
        assert angler.tackle_count == 6

    def test_purchase_requires_level(self, angler):
        angler.money = 100_000
        assert angler.purchase_tackle("rods", 6) is False
        assert not angler.owns_tackle("rods", 6)

    def test_purchase_requires_money(self, angler):
        angler.level = 3
        assert angler.purchase_tackle("rods", 1) is False
        assert angler.money == 100

    def test_purchase_owned_or_unknown(self, angler):
        assert angler.purchase_tackle("rods", 0) is False
        assert angler.purchase_tackle("rods", 99) is False
        assert angler.purchase_tackle("boats", 0) is False

    def test_equip_owned_only(self, angler):
        assert angler.equip("hooks", 2) is False
        angler.tackle_unlocks["hooks"].append(2)
        assert angler.equip("hooks", 2) is True
        assert angler.gear["hook"] == "Circle Hook"

    def test_travel(self, angler):
        assert angler.travel(1) is True
        assert angler.current_location == 1
        assert angler.travel(7) is False
        assert angler.current_location == 1


# =============================================================================
# Persistence hook and reset
# =============================================================================

class TestPersistenceHook:
    """Every mutation notifies the repository."""

    def test_mutations_call_hook(self, angler, make_event):
        hook = MagicMock()
        angler.attach(hook)

        angler.add_money(5)
        angler.spend_money(5)
        angler.record_tier("first_catch", 1)
        angler.add_catch(make_event())

        assert hook.call_count >= 4
        hook.assert_called_with(angler)

    def test_rejected_mutation_does_not_call_hook(self, angler):
        hook = MagicMock()
        angler.attach(hook)

        angler.spend_money(1000)
        angler.record_tier("x", 0)
        angler.travel(9)

        hook.assert_not_called()

    def test_reset_restores_defaults_and_keeps_identity(self, angler, make_event):
        hook = MagicMock()
        angler.friend_code = "KC-1234"
        angler.remote_id = "uuid-1"
        angler.attach(hook)
        angler.add_catch(make_event(experience=500))
        angler.record_tier("first_catch", 1)

        angler.reset()

        assert angler.level == 1
        assert angler.total_caught == 0
        assert angler.achievements == {}
        assert angler.gear == DEFAULT_GEAR
        assert angler.friend_code == "KC-1234"
        assert angler.remote_id == "uuid-1"
        assert angler.user_id == 222222222
        hook.reset_mock()
        angler.add_money(1)
        hook.assert_called_once_with(angler)


# =============================================================================
# Serialization
# =============================================================================

class TestSerialization:
    """to_dict / from_dict."""

    def test_round_trip_preserves_progress(self, angler, make_event):
        angler.unlock_fish(2)
        angler.add_catch(make_event())
        angler.record_tier("first_catch", 1)

        restored = Angler.from_dict(angler.to_dict())

        assert restored.to_dict() == angler.to_dict()
        assert restored.collection[2]["count"] == 1

    def test_collection_keys_stored_as_strings(self, angler):
        angler.unlock_fish(5)
        assert "5" in angler.to_dict()["collection"]

    def test_malformed_fields_reset(self):
        restored = Angler.from_dict({
            "user_id": 7,
            "level": "eleven",
            "money": True,
            "experience": 35.7,
            "gear": ["not", "a", "dict"],
            "location_unlocks": "everywhere",
            "collection": {"x": {"caught": True}, "4": "bad", "3": {"count": 2}},
            "tackle_unlocks": {"rods": [1, "2", None], "reels": "none"},
        })

        assert restored.user_id == 7
        assert restored.level == 1
        assert restored.money == 100
        assert restored.experience == 35
        assert restored.gear == DEFAULT_GEAR
        assert restored.location_unlocks == [0, 1]
        assert restored.collection == {3: {"caught": True, "first_catch_date": None, "count": 2}}
        assert restored.tackle_unlocks["rods"] == [0, 1]
        assert restored.tackle_unlocks["reels"] == [0]

    def test_not_a_mapping(self):
        restored = Angler.from_dict(["garbage"], user_id=9)
        assert restored.user_id == 9
        assert restored.level == 1

    def test_explicit_user_id_wins(self):
        restored = Angler.from_dict({"user_id": 1}, user_id=2)
        assert restored.user_id == 2

    def test_legacy_achievement_list_migrated(self):
        restored = Angler.from_dict({"achievements": ["first_catch", "big_fish"]})
        assert restored.achievements == {"first_catch": 1, "big_fish": 1}

    def test_malformed_tier_values_skipped(self):
        restored = Angler.from_dict({"achievements": {"first_catch": 2, "big_fish": "three", "x": None, "fish_catcher": float("nan"), "money_earner": float("inf")}})
        assert restored.achievements == {"first_catch": 2}

    def test_bad_collection_counts_heal(self):
        restored = Angler.from_dict({"collection": {
            "3": {"caught": True, "count": "lots"},
            "4": {"caught": True, "count": float("nan")},
            "5": {"caught": True, "count": 0},
            "6": ["garbage"],
        }}, user_id=1)

        assert restored.collection[3]["count"] == 1
        assert restored.collection[4]["count"] == 1
        assert restored.collection[5]["count"] == 1
        assert 6 not in restored.collection

    def test_non_finite_numbers_reset(self):
        data = json.loads('{"experience": Infinity, "money": NaN, "biggest_catch": NaN, "total_weight": 12.5}')

        restored = Angler.from_dict(data, user_id=1)

        assert restored.experience == 0
        assert restored.money == 100
        assert restored.biggest_catch == 0.0
        assert restored.total_weight == 12.5
