"""Game constants and data tables for the fishing system."""

from configs.settings import (
    BITE_TIMING_BANDS, MIN_VALID_REACTION_MS, REACTION_WINDOW_MIN_MS,
    REACTION_WINDOW_MAX_MS, RECENT_CATCH_LIMIT, TOP_CATCH_LIMIT, STARTING_MONEY,
)

# ==================== FISH TYPES ====================
# id, name, rarity, min/max weight (lbs), value ($), experience
FISH_TYPES = [
    {"id": 0, "name": "Minnow", "rarity": "Common", "min_weight": 0.1, "max_weight": 0.5, "value": 5, "experience": 1},
    {"id": 1, "name": "Sunfish", "rarity": "Common", "min_weight": 0.3, "max_weight": 1.2, "value": 8, "experience": 2},
    {"id": 2, "name": "Bass", "rarity": "Common", "min_weight": 1.0, "max_weight": 5.0, "value": 15, "experience": 5},
    {"id": 3, "name": "Perch", "rarity": "Common", "min_weight": 0.5, "max_weight": 2.0, "value": 12, "experience": 3},
    {"id": 4, "name": "Crappie", "rarity": "Common", "min_weight": 0.8, "max_weight": 3.0, "value": 18, "experience": 4},
    {"id": 5, "name": "Trout", "rarity": "Uncommon", "min_weight": 0.5, "max_weight": 3.0, "value": 25, "experience": 10},
    {"id": 6, "name": "Pike", "rarity": "Uncommon", "min_weight": 2.0, "max_weight": 8.0, "value": 40, "experience": 15},
    {"id": 7, "name": "Walleye", "rarity": "Uncommon", "min_weight": 1.5, "max_weight": 6.0, "value": 35, "experience": 12},
    {"id": 8, "name": "Muskie", "rarity": "Uncommon", "min_weight": 5.0, "max_weight": 15.0, "value": 60, "experience": 20},
    {"id": 9, "name": "Carp", "rarity": "Uncommon", "min_weight": 3.0, "max_weight": 20.0, "value": 30, "experience": 8},
    {"id": 10, "name": "Salmon", "rarity": "Rare", "min_weight": 8.0, "max_weight": 25.0, "value": 80, "experience": 25},
    {"id": 11, "name": "Catfish", "rarity": "Rare", "min_weight": 5.0, "max_weight": 30.0, "value": 70, "experience": 22},
    {"id": 12, "name": "Sturgeon", "rarity": "Rare", "min_weight": 20.0, "max_weight": 50.0, "value": 120, "experience": 35},
    {"id": 13, "name": "Marlin", "rarity": "Rare", "min_weight": 50.0, "max_weight": 200.0, "value": 200, "experience": 50},
    {"id": 14, "name": "Tuna", "rarity": "Rare", "min_weight": 30.0, "max_weight": 150.0, "value": 150, "experience": 40},
    {"id": 15, "name": "Crystal Bass", "rarity": "Epic", "min_weight": 10.0, "max_weight": 35.0, "value": 300, "experience": 60},
    {"id": 16, "name": "Golden Trout", "rarity": "Epic", "min_weight": 5.0, "max_weight": 20.0, "value": 250, "experience": 55},
    {"id": 17, "name": "Ice Pike", "rarity": "Epic", "min_weight": 15.0, "max_weight": 40.0, "value": 350, "experience": 65},
    {"id": 18, "name": "Shadow Catfish", "rarity": "Epic", "min_weight": 25.0, "max_weight": 60.0, "value": 400, "experience": 70},
    {"id": 19, "name": "Abyssal Eel", "rarity": "Epic", "min_weight": 30.0, "max_weight": 80.0, "value": 500, "experience": 80},
    {"id": 20, "name": "Ancient Sturgeon", "rarity": "Legendary", "min_weight": 100.0, "max_weight": 300.0, "value": 1000, "experience": 150},
    {"id": 21, "name": "Leviathan", "rarity": "Legendary", "min_weight": 200.0, "max_weight": 500.0, "value": 2000, "experience": 200},
    {"id": 22, "name": "Phoenix Fish", "rarity": "Legendary", "min_weight": 50.0, "max_weight": 150.0, "value": 1500, "experience": 180},
    {"id": 23, "name": "Dragon Carp", "rarity": "Legendary", "min_weight": 80.0, "max_weight": 200.0, "value": 1800, "experience": 190},
    {"id": 24, "name": "Tournament King", "rarity": "Legendary", "min_weight": 60.0, "max_weight": 120.0, "value": 1200, "experience": 160},
    {"id": 25, "name": "Trophy Bass", "rarity": "Trophy", "min_weight": 20.0, "max_weight": 50.0, "value": 500, "experience": 100},
    {"id": 26, "name": "Trophy Pike", "rarity": "Trophy", "min_weight": 30.0, "max_weight": 70.0, "value": 600, "experience": 110},
    {"id": 27, "name": "Trophy Salmon", "rarity": "Trophy", "min_weight": 40.0, "max_weight": 80.0, "value": 700, "experience": 120},
    {"id": 28, "name": "Trophy Marlin", "rarity": "Trophy", "min_weight": 100.0, "max_weight": 300.0, "value": 1000, "experience": 150},
    {"id": 29, "name": "Trophy Tuna", "rarity": "Trophy", "min_weight": 80.0, "max_weight": 200.0, "value": 800, "experience": 130},
    {"id": 30, "name": "Trophy Sturgeon", "rarity": "Trophy", "min_weight": 150.0, "max_weight": 400.0, "value": 1200, "experience": 170},
    {"id": 31, "name": "Trophy Catfish", "rarity": "Trophy", "min_weight": 60.0, "max_weight": 150.0, "value": 900, "experience": 140},
    {"id": 32, "name": "Trophy King", "rarity": "Trophy", "min_weight": 200.0, "max_weight": 500.0, "value": 1500, "experience": 200},
]

FISH_BY_ID = {fish["id"]: fish for fish in FISH_TYPES}
TOTAL_FISH_TYPES = len(FISH_TYPES)
DEFAULT_FISH_IDS = [0, 1, 2]

RARE_RARITIES = frozenset({"Rare", "Epic", "Legendary", "Trophy"})
LEGENDARY_RARITIES = frozenset({"Legendary", "Trophy"})

# ==================== LOCATIONS ====================
LOCATIONS = [
    {"name": "Willow Pond", "difficulty": "Easy", "fish": [0, 1, 2], "cost": 0, "unlock_level": 1},
    {"name": "River Bend", "difficulty": "Easy", "fish": [0, 1, 2, 3], "cost": 0, "unlock_level": 2},
    {"name": "Deep Lake", "difficulty": "Medium", "fish": [2, 3, 4, 5], "cost": 50, "unlock_level": 3},
    {"name": "Crystal Lake", "difficulty": "Hard", "fish": [15, 16, 17, 18], "cost": 200, "unlock_level": 9},
    {"name": "Legendary Waters", "difficulty": "Expert", "fish": [6, 7, 8, 9], "cost": 300, "unlock_level": 12},
    {"name": "Ocean Pier", "difficulty": "Medium", "fish": [10, 11, 12], "cost": 100, "unlock_level": 6},
    {"name": "Deep Sea", "difficulty": "Hard", "fish": [12, 13, 14], "cost": 250, "unlock_level": 10},
    {"name": "Trophy Waters", "difficulty": "Expert", "fish": [25, 26, 27, 28, 29, 30, 31, 32], "cost": 500, "unlock_level": 15},
    {"name": "Abyss", "difficulty": "Expert", "fish": [19, 20, 21, 22, 23], "cost": 400, "unlock_level": 14},
    {"name": "Secret Pond", "difficulty": "Hard", "fish": [4, 5, 6, 7], "cost": 150, "unlock_level": 8},
]

# ==================== TACKLE ====================
TACKLE_CATEGORIES = ["rods", "reels", "lines", "hooks", "baits"]

# category -> gear slot on the angler
GEAR_SLOTS = {"rods": "rod", "reels": "reel", "lines": "line", "hooks": "hook", "baits": "bait"}

TACKLE = {
    "rods": [
        {"id": 0, "name": "Basic Rod", "cost": 0, "catch_bonus": 0, "unlock_level": 1},
        {"id": 1, "name": "Fiberglass Rod", "cost": 250, "catch_bonus": 5, "unlock_level": 3},
        {"id": 2, "name": "Carbon Fiber Rod", "cost": 1000, "catch_bonus": 10, "unlock_level": 6},
        {"id": 3, "name": "Pro Rod", "cost": 3500, "catch_bonus": 15, "unlock_level": 9},
        {"id": 4, "name": "Master Rod", "cost": 10000, "catch_bonus": 20, "unlock_level": 12},
        {"id": 5, "name": "Legendary Rod", "cost": 30000, "catch_bonus": 25, "unlock_level": 15},
        {"id": 6, "name": "Trophy Rod", "cost": 100000, "catch_bonus": 30, "unlock_level": 18},
    ],
    "reels": [
        {"id": 0, "name": "Basic Reel", "cost": 0, "unlock_level": 1},
        {"id": 1, "name": "Spinning Reel", "cost": 200, "unlock_level": 4},
        {"id": 2, "name": "Baitcasting Reel", "cost": 750, "unlock_level": 7},
        {"id": 3, "name": "Fly Reel", "cost": 2500, "unlock_level": 10},
        {"id": 4, "name": "Big Game Reel", "cost": 8000, "unlock_level": 13},
        {"id": 5, "name": "Trophy Reel", "cost": 25000, "unlock_level": 16},
    ],
    "lines": [
        {"id": 0, "name": "Monofilament", "cost": 0, "unlock_level": 1},
        {"id": 1, "name": "Braided Line", "cost": 150, "unlock_level": 5},
        {"id": 2, "name": "Fluorocarbon", "cost": 500, "unlock_level": 8},
        {"id": 3, "name": "Wire Line", "cost": 2000, "unlock_level": 12},
        {"id": 4, "name": "Titanium Line", "cost": 8000, "unlock_level": 16},
    ],
    "hooks": [
        {"id": 0, "name": "Basic Hook", "cost": 0, "catch_bonus": 0, "timing_window": 600, "unlock_level": 1},
        {"id": 1, "name": "Barbed Hook", "cost": 100, "catch_bonus": 5, "timing_window": 700, "unlock_level": 3},
        {"id": 2, "name": "Circle Hook", "cost": 300, "catch_bonus": 3, "timing_window": 800, "unlock_level": 5},
        {"id": 3, "name": "Treble Hook", "cost": 800, "catch_bonus": 8, "timing_window": 900, "unlock_level": 7},
        {"id": 4, "name": "Jig Hook", "cost": 2500, "catch_bonus": 10, "timing_window": 1000, "unlock_level": 10},
        {"id": 5, "name": "Trophy Hook", "cost": 10000, "catch_bonus": 15, "timing_window": 1100, "unlock_level": 15},
    ],
    "baits": [
        {"id": 0, "name": "Basic Bait", "cost": 0, "catch_bonus": 0, "unlock_level": 1},
        {"id": 1, "name": "Live Bait", "cost": 75, "catch_bonus": 8, "unlock_level": 2},
        {"id": 2, "name": "Artificial Lure", "cost": 250, "catch_bonus": 5, "unlock_level": 4},
        {"id": 3, "name": "Premium Bait", "cost": 1000, "catch_bonus": 12, "unlock_level": 6},
        {"id": 4, "name": "Specialty Bait", "cost": 4000, "catch_bonus": 18, "unlock_level": 10},
        {"id": 5, "name": "Trophy Bait", "cost": 15000, "catch_bonus": 25, "unlock_level": 15},
    ],
}

DEFAULT_HOOK_TIMING_WINDOW = 600

DEFAULT_GEAR = {
    "rod": "Basic Rod",
    "reel": "Basic Reel",
    "line": "Monofilament",
    "hook": "Basic Hook",
    "bait": "Basic Bait",
}

DEFAULT_STATS = {"accuracy": 50, "luck": 50, "patience": 50, "strength": 50}
DEFAULT_LOCATION_UNLOCKS = [0, 1]


def get_tackle(category: str, item_id: int):
    """Look up a tackle item by category and id. Returns None if unknown."""
    for item in TACKLE.get(category, []):
        if item["id"] == item_id:
            return item
    return None


def get_tackle_by_name(category: str, name: str):
    """Look up a tackle item by its display name. Returns None if unknown."""
    for item in TACKLE.get(category, []):
        if item["name"] == name:
            return item
    return None


def get_location(index: int):
    """Return a location by index, falling back to the first one."""
    if 0 <= index < len(LOCATIONS):
        return LOCATIONS[index]
    return LOCATIONS[0]


__all__ = [
    "FISH_TYPES", "FISH_BY_ID", "TOTAL_FISH_TYPES", "DEFAULT_FISH_IDS",
    "RARE_RARITIES", "LEGENDARY_RARITIES", "LOCATIONS", "TACKLE",
    "TACKLE_CATEGORIES", "GEAR_SLOTS", "DEFAULT_GEAR", "DEFAULT_STATS",
    "DEFAULT_LOCATION_UNLOCKS", "DEFAULT_HOOK_TIMING_WINDOW",
    "BITE_TIMING_BANDS", "MIN_VALID_REACTION_MS", "REACTION_WINDOW_MIN_MS",
    "REACTION_WINDOW_MAX_MS", "RECENT_CATCH_LIMIT", "TOP_CATCH_LIMIT",
    "STARTING_MONEY", "get_tackle", "get_tackle_by_name", "get_location",
]
