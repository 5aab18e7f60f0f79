# Fishing Test Suite
"""
Tests for the Kitty Creek fishing cog.

Test categories:
- Catch resolution and timing math
- Timing gate state machine
- Angler aggregate
- Catch pipeline
- Social / leaderboard service
- Discord scene and views

Run:
    pytest tests/fishing/ -v
"""
