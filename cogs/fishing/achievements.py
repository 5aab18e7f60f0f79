"""Fishing achievement catalog."""

from core.achievement_system import AchievementContext, AchievementDefinition, ProgressionLedger, tiers
from .constants import LEGENDARY_RARITIES, LOCATIONS, RARE_RARITIES, TOTAL_FISH_TYPES

ACHIEVEMENTS = [
    AchievementDefinition(
        id="first_catch",
        name="🐱 Purr-novice Angler",
        description="Catch your first fish",
        unit="fish",
        value=lambda angler, ctx: angler.total_caught,
        tiers=tiers((1, 25, 50)),
    ),
    AchievementDefinition(
        id="fish_catcher",
        name="🐠 Fish Catcher",
        description="Catch fish",
        unit="fish",
        value=lambda angler, ctx: angler.total_caught,
        tiers=tiers(
            (10, 40, 75), (50, 90, 125), (100, 140, 200), (250, 220, 350),
            (500, 320, 500), (1000, 450, 750), (2500, 650, 1200), (5000, 900, 2000),
        ),
    ),
    AchievementDefinition(
        id="big_fish",
        name="🐟 Big Fish Hunter",
        description="Catch a big fish",
        unit="lbs",
        value=lambda angler, ctx: angler.biggest_catch,
        tiers=tiers(
            (5, 60, 80), (10, 90, 140), (15, 130, 220), (20, 170, 320),
            (30, 230, 450), (50, 320, 650), (75, 420, 900), (100, 550, 1300),
        ),
    ),
    AchievementDefinition(
        id="level_reacher",
        name="⭐ Level Master",
        description="Reach levels",
        unit="level",
        value=lambda angler, ctx: angler.level,
        tiers=tiers(
            (5, 120, 150), (10, 170, 200), (15, 230, 275), (20, 290, 350),
            (25, 360, 450), (30, 440, 575), (40, 550, 750), (50, 700, 1000),
        ),
    ),
    # Current balance, not lifetime earnings; the tier map keeps tiers once reached.
    AchievementDefinition(
        id="money_earner",
        name="💰 Money Earner",
        description="Earn money",
        unit="$",
        prefix="$",
        value=lambda angler, ctx: angler.money,
        tiers=tiers(
            (500, 40, 80), (1000, 70, 150), (2500, 120, 250), (5000, 180, 400),
            (10000, 250, 600), (25000, 340, 900), (50000, 460, 1400), (100000, 600, 2200),
        ),
    ),
    AchievementDefinition(
        id="rare_collector",
        name="💎 Rare Fish Collector",
        description="Catch rare or better fish",
        unit="fish",
        value=lambda angler, ctx: angler.catches_by_rarity(RARE_RARITIES),
        tiers=tiers(
            (5, 110, 160), (10, 160, 240), (20, 210, 320), (50, 280, 450),
            (100, 360, 650), (250, 460, 900), (500, 580, 1300), (1000, 720, 1800),
        ),
    ),
    AchievementDefinition(
        id="legendary_hunter",
        name="✨ Legendary Hunter",
        description="Catch legendary or trophy fish",
        unit="fish",
        value=lambda angler, ctx: angler.catches_by_rarity(LEGENDARY_RARITIES),
        tiers=tiers(
            (1, 180, 400), (3, 240, 600), (5, 320, 850), (10, 420, 1200),
            (25, 520, 1700), (50, 640, 2400), (100, 780, 3200),
        ),
    ),
    AchievementDefinition(
        id="gear_collector",
        name="🎒 Gear Collector",
        description="Own tackle pieces",
        unit="pieces",
        value=lambda angler, ctx: angler.tackle_count,
        tiers=tiers(
            (5, 70, 120), (10, 110, 180), (15, 160, 260), (20, 210, 340),
            (30, 280, 450), (40, 360, 600), (50, 450, 800),
        ),
    ),
    AchievementDefinition(
        id="location_explorer",
        name="🗺️ Location Explorer",
        description="Unlock fishing locations",
        unit="locations",
        value=lambda angler, ctx: len(angler.location_unlocks),
        tiers=tiers(
            (3, 120, 150), (5, 160, 220), (8, 210, 310), (10, 260, 400),
            (12, 320, 520), (15, 390, 680),
        ),
    ),
    AchievementDefinition(
        id="collection_complete",
        name="📚 Fish Archivist",
        description="Unlock fish in collection",
        unit="fish",
        value=lambda angler, ctx: angler.unlocked_species_count,
        tiers=tiers(
            (5, 70, 100), (10, 110, 170), (17, 160, 240), (25, 210, 340),
            (30, 270, 450), (33, 330, 600),
        ),
    ),
    AchievementDefinition(
        id="biggest_bag",
        name="🎣 Biggest Bag",
        description="Reach top 10 bag weight",
        unit="lbs",
        value=lambda angler, ctx: angler.top_bag_weight,
        tiers=tiers(
            (25, 110, 160), (50, 150, 240), (100, 200, 350), (200, 260, 520),
            (300, 330, 700), (500, 420, 950), (750, 520, 1300), (1000, 640, 1800),
        ),
    ),
]

DEFAULT_CONTEXT = AchievementContext(total_locations=len(LOCATIONS), total_fish=TOTAL_FISH_TYPES)


def build_ledger() -> ProgressionLedger:
    return ProgressionLedger(ACHIEVEMENTS, DEFAULT_CONTEXT)
