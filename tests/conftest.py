"""
Pytest configuration and fixtures for the Kitty Creek test suite.

This module provides:
- A fake millisecond clock and timer scheduler for the timing gate
- Angler and catch event factories
- Remote API client mocks
- Discord.py object mocks

Timing strategy:
The gate never sleeps; it asks a scheduler for callbacks. Tests drive time
with ``scheduler.advance(ms)``, which fires due callbacks in order and moves
the shared clock, so every scenario is deterministic.
"""
import asyncio
import os
import random
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cogs.fishing.core.models import Angler, CatchEvent
from cogs.fishing.core.state_manager import FishingSession, SceneHooks, TimingGate


# =============================================================================
# Fake Time
# =============================================================================

class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTimer:
    def __init__(self, due: float, callback, seq: int):
        self.due = due
        self.callback = callback
        self.seq = seq
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records ``call_later`` requests and fires them as the clock advances."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers: list[FakeTimer] = []
        self._seq = 0

    def call_later(self, delay_ms, callback) -> FakeTimer:
        timer = FakeTimer(self.clock() + delay_ms, callback, self._seq)
        self._seq += 1
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, ms: float) -> None:
        target = self.clock() + ms
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.clock.now = max(self.clock.now, timer.due)
            timer.fired = True
            timer.callback()
        self.clock.now = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def rng():
    """Seeded random source; every test sees the same sequence."""
    return random.Random(1234)


# =============================================================================
# Game Fixtures
# =============================================================================

@pytest.fixture
def angler():
    """A brand new level 1 angler."""
    return Angler(user_id=222222222, name="Test User")


@pytest.fixture
def make_event():
    """Factory for catch events with sensible defaults."""
    def _make(**overrides) -> CatchEvent:
        data = {
            "fish_id": 2,
            "fish_name": "Bass",
            "rarity": "Common",
            "weight": 2.5,
            "value": 15,
            "experience": 5,
            "reaction_time_ms": 420,
            "timestamp": 1_700_000_000_000.0,
        }
        data.update(overrides)
        return CatchEvent(**data)
    return _make


@pytest.fixture
def scene():
    return MagicMock(spec=SceneHooks)


@pytest.fixture
def make_gate(angler, scheduler, clock, rng, scene):
    """Factory for a timing gate wired to the fake scheduler and clock."""
    def _make(**overrides) -> TimingGate:
        kwargs = {
            "scheduler": scheduler,
            "clock": clock,
            "rng": rng,
            "scene": scene,
        }
        kwargs.update(overrides)
        session = FishingSession(user_id=angler.user_id, angler=angler)
        return TimingGate(session, **kwargs)
    return _make


# =============================================================================
# Remote API Mocks
# =============================================================================

@pytest.fixture
def mock_client():
    """Per-player API client with every remote call mocked."""
    client = MagicMock()
    client.append_catch = AsyncMock(return_value={"success": True})
    client.log_catch_activity = AsyncMock(return_value={"success": True})
    client.log_level_up = AsyncMock(return_value={"success": True})
    client.save_angler = AsyncMock(return_value={"success": True})
    client.fetch_leaderboard = AsyncMock(return_value=[])
    client.fetch_friends = AsyncMock(return_value=[])
    client.fetch_pending_requests = AsyncMock(return_value={"sent": [], "received": []})
    client.fetch_friend_activity = AsyncMock(return_value=[])
    client.fetch_friend_collection = AsyncMock(return_value={})
    client.send_friend_request = AsyncMock(return_value={"success": True})
    client.accept_friend_request = AsyncMock(return_value={"success": True})
    client.decline_friend_request = AsyncMock(return_value={"success": True})
    client.remove_friend = AsyncMock(return_value={"success": True})
    return client


@pytest.fixture
def mock_repository(mock_client):
    """Repository stand-in whose ``client_for`` always returns ``mock_client``."""
    repository = MagicMock()
    repository.client_for = MagicMock(return_value=mock_client)
    return repository


# =============================================================================
# Discord.py Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_user():
    """Create a mock Discord user."""
    user = MagicMock()
    user.id = 222222222
    user.name = "TestUser"
    user.display_name = "Test User"
    user.mention = "<@222222222>"
    return user


@pytest.fixture
def mock_message():
    message = MagicMock()
    message.id = 444444444
    message.edit = AsyncMock()
    return message


@pytest.fixture
def mock_interaction(mock_user):
    """Create a mock Discord interaction."""
    interaction = MagicMock()
    interaction.user = mock_user
    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    return interaction


# =============================================================================
# Async Test Helpers
# =============================================================================

async def settle(rounds: int = 5) -> None:
    """Let fire-and-forget tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
