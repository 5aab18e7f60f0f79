"""Configuration settings for the bot."""

import os
from dotenv import load_dotenv
load_dotenv()

# Base directory paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.path.join(BASE_DIR, "data")

# Database configuration
DB_PATH = os.getenv("KITTY_CREEK_DB_PATH", os.path.join(DATA_DIR, "kittycreek.db"))
DB_TIMEOUT = 30.0  # 30 seconds timeout for high concurrency
DB_MAX_RETRIES = 5  # Maximum retry attempts for locked database
DB_RETRY_DELAY = 0.1  # Initial delay between retries (seconds)

# Remote service (leaderboards, friends, activity feed)
API_BASE_URL = os.getenv("KITTY_CREEK_API_BASE", "http://localhost:3000/api")
API_TIMEOUT = float(os.getenv("KITTY_CREEK_API_TIMEOUT", "8.0"))
SYNC_DEBOUNCE_SECONDS = 0.5  # Coalesce angler saves like a debounced sync

# Timing gate (milliseconds)
MIN_VALID_REACTION_MS = 200  # Anything faster is a "too eager" guess
CAST_DURATION_MS = 3000  # Cast animation until the bobber lands
REACTION_WINDOW_MIN_MS = 3000  # Auto-fail timer lower bound
REACTION_WINDOW_MAX_MS = 5000  # Auto-fail timer upper bound

# Bite delay bands: (minimum level, min delay ms, max delay ms), highest band first.
# Every band is centred on the same mean; higher levels only narrow the spread.
BITE_DELAY_MEAN_MS = 2500
BITE_TIMING_BANDS = [
    (16, 2200, 2800),
    (11, 1900, 3100),
    (6, 1500, 3500),
    (1, 1000, 4000),
]

# Catch probability tuning
BASE_CATCH_CHANCE = 0.9
CATCH_CHANCE_FLOOR = 0.20
CATCH_CHANCE_CEILING = 0.85
LEVEL_CATCH_PENALTIES = [(16, 0.20), (11, 0.15), (6, 0.10)]
DIFFICULTY_MODIFIERS = {"Easy": 0.05, "Medium": -0.02, "Hard": -0.08, "Expert": -0.12}
TACKLE_BONUS_DIVISOR = 80

# Angler bookkeeping
RECENT_CATCH_LIMIT = 10
TOP_CATCH_LIMIT = 10
STARTING_MONEY = 100
MAX_LEDGER_PASSES = 8  # Reward -> level-up -> re-evaluate chains

# Social / leaderboard cache TTLs (milliseconds)
LEADERBOARD_TTL_MS = 15_000
FRIENDS_TTL_MS = 15_000
FRIEND_COLLECTION_TTL_MS = 60_000
FRIENDS_POLL_SECONDS = 15
LEADERBOARD_LIMIT = 50
FRIEND_ACTIVITY_LIMIT = 20
NOTIFICATION_TOAST_LIMIT = 3

# Channel that announces every catch; 0 disables the feed
CATCH_FEED_CHANNEL_ID = int(os.getenv("KITTY_CREEK_CATCH_FEED_CHANNEL", "0") or 0)
