"""Cast/bite/hook-set state machine for the fishing minigame.

One :class:`TimingGate` drives one :class:`FishingSession`. All delays go
through a scheduler (the asyncio loop in production, a fake in tests), and
every timer callback carries the attempt id it was scheduled for: when it
fires for an attempt that is no longer current it does nothing.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from configs.settings import CAST_DURATION_MS
from core.errors import InputRejected
from core.logging import get_logger
from ..constants import get_location
from .logic import (
    MissReason, calculate_catch_chance, classify_miss, determine_catch,
    get_hook_timing_window, roll_bite_delay, roll_catch, roll_reaction_window,
)

if TYPE_CHECKING:
    from .models import Angler, CatchEvent

logger = get_logger("fishing.gate")


class GateState(Enum):
    IDLE = "idle"
    CASTING = "casting"
    WAITING_FOR_BITE = "waiting_for_bite"
    BITE_ACTIVE = "bite_active"
    RESOLVING = "resolving"


class Outcome(Enum):
    CAUGHT = "caught"
    MISSED = "missed"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay_ms / 1000, callback)


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class SceneHooks:
    """Rendering side effects. Called synchronously and never awaited by the gate."""

    def on_cast(self, session: "FishingSession") -> None:
        pass

    def on_bobber(self, session: "FishingSession", visible: bool) -> None:
        pass

    def on_strike(self, session: "FishingSession") -> None:
        pass

    def on_splash(self, session: "FishingSession") -> None:
        pass

    def on_result(self, session: "FishingSession", result: "GateResult") -> None:
        pass


@dataclass
class GateResult:
    outcome: Outcome
    attempt_id: int
    reaction_time_ms: Optional[float] = None
    event: Optional["CatchEvent"] = None
    reason: Optional[MissReason] = None
    probability: Optional[float] = None
    timing_window_ms: Optional[int] = None

    @property
    def caught(self) -> bool:
        return self.outcome is Outcome.CAUGHT


@dataclass
class FishingSession:
    """Everything one player's minigame needs, passed explicitly to the gate."""
    user_id: int
    angler: "Angler"
    state: GateState = GateState.IDLE
    attempt_id: int = 0
    strike_at: Optional[float] = None
    bite_delay_ms: Optional[int] = None
    reaction_window_ms: Optional[int] = None
    last_result: Optional[GateResult] = None
    timers: dict[str, Any] = field(default_factory=dict)
    scene_data: dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> dict:
        return get_location(self.angler.current_location)

    @property
    def is_active(self) -> bool:
        return self.state is not GateState.IDLE


class TimingGate:
    """
    Idle -> Casting -> WaitingForBite -> BiteActive -> (Caught | Missed) -> Idle.

    ``cast`` and ``set_hook`` called in the wrong state are rejected: logged,
    no state change, no timer touched.
    """

    def __init__(
        self,
        session: FishingSession,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = monotonic_ms,
        rng: Any = random,
        scene: Optional[SceneHooks] = None,
        on_catch: Optional[Callable[[FishingSession, GateResult], None]] = None,
        on_miss: Optional[Callable[[FishingSession, GateResult], None]] = None,
        probability_fn: Callable[["Angler", dict], float] = calculate_catch_chance,
        timing_window_fn: Callable[["Angler"], int] = get_hook_timing_window,
        cast_duration_ms: int = CAST_DURATION_MS,
    ):
        self.session = session
        self.scheduler = scheduler or LoopScheduler()
        self.clock = clock
        self.rng = rng
        self.scene = scene or SceneHooks()
        self.on_catch = on_catch
        self.on_miss = on_miss
        self.probability_fn = probability_fn
        self.timing_window_fn = timing_window_fn
        self.cast_duration_ms = cast_duration_ms

    @property
    def state(self) -> GateState:
        return self.session.state

    # ==================== TIMERS ====================

    def _schedule(self, name: str, delay_ms: float, callback: Callable[[int], None]) -> None:
        attempt_id = self.session.attempt_id
        self.session.timers[name] = self.scheduler.call_later(delay_ms, lambda: callback(attempt_id))

    def _cancel_timer(self, name: str) -> None:
        handle = self.session.timers.pop(name, None)
        if handle is not None:
            handle.cancel()

    def _clear_timers(self) -> None:
        for name in list(self.session.timers):
            self._cancel_timer(name)

    def _is_current(self, attempt_id: int, expected: GateState) -> bool:
        if attempt_id != self.session.attempt_id or self.session.state is not expected:
            logger.debug("stale_timer_ignored", user_id=self.session.user_id, attempt_id=attempt_id)
            return False
        return True

    def _reject(self, action: str) -> None:
        error = InputRejected(action, self.session.state.value)
        logger.info("input_rejected", user_id=self.session.user_id, action=error.action, state=error.state)

    # ==================== ACTIONS ====================

    def cast(self) -> bool:
        """Start an attempt. Only valid from Idle."""
        session = self.session
        if session.state is not GateState.IDLE:
            self._reject("cast")
            return False

        session.attempt_id += 1
        session.state = GateState.CASTING
        session.strike_at = None
        session.reaction_window_ms = None
        session.bite_delay_ms = roll_bite_delay(session.angler.level, self.rng)
        logger.info(
            "cast_started", user_id=session.user_id, attempt_id=session.attempt_id,
            bite_delay_ms=session.bite_delay_ms,
        )
        self.scene.on_cast(session)
        self._schedule("cast", self.cast_duration_ms, self._on_cast_complete)
        return True

    def _on_cast_complete(self, attempt_id: int) -> None:
        if not self._is_current(attempt_id, GateState.CASTING):
            return
        self.session.timers.pop("cast", None)
        self.session.state = GateState.WAITING_FOR_BITE
        self.scene.on_bobber(self.session, True)
        self._schedule("strike", self.session.bite_delay_ms, self._on_strike)

    def _on_strike(self, attempt_id: int) -> None:
        if not self._is_current(attempt_id, GateState.WAITING_FOR_BITE):
            return
        session = self.session
        session.timers.pop("strike", None)
        session.state = GateState.BITE_ACTIVE
        session.strike_at = self.clock()
        session.reaction_window_ms = roll_reaction_window(self.rng)
        logger.debug("fish_strike", user_id=session.user_id, attempt_id=attempt_id)
        self.scene.on_strike(session)
        self._schedule("reaction", session.reaction_window_ms, self._on_reaction_timeout)

    def _on_reaction_timeout(self, attempt_id: int) -> None:
        if not self._is_current(attempt_id, GateState.BITE_ACTIVE):
            return
        self.session.timers.pop("reaction", None)
        self.session.state = GateState.RESOLVING
        self._finish(GateResult(
            outcome=Outcome.MISSED,
            attempt_id=attempt_id,
            reason=MissReason.TOO_SLOW,
        ))

    def set_hook(self) -> Optional[GateResult]:
        """Resolve the live bite. Only valid from BiteActive."""
        session = self.session
        if session.state is not GateState.BITE_ACTIVE:
            self._reject("set_hook")
            return None

        reaction_time_ms = max(0.0, self.clock() - session.strike_at)
        self._cancel_timer("reaction")
        session.state = GateState.RESOLVING

        location = session.location
        probability = self.probability_fn(session.angler, location)
        timing_window_ms = self.timing_window_fn(session.angler)

        if determine_catch(probability, reaction_time_ms, timing_window_ms, self.rng):
            event = roll_catch(location, reaction_time_ms=int(reaction_time_ms), rng=self.rng)
            self.scene.on_splash(session)
            result = GateResult(
                outcome=Outcome.CAUGHT,
                attempt_id=session.attempt_id,
                reaction_time_ms=reaction_time_ms,
                event=event,
                probability=probability,
                timing_window_ms=timing_window_ms,
            )
        else:
            result = GateResult(
                outcome=Outcome.MISSED,
                attempt_id=session.attempt_id,
                reaction_time_ms=reaction_time_ms,
                reason=classify_miss(reaction_time_ms, timing_window_ms),
                probability=probability,
                timing_window_ms=timing_window_ms,
            )

        return self._finish(result)

    def cancel(self) -> bool:
        """Abort the current attempt from any non-Idle state."""
        session = self.session
        if session.state is GateState.IDLE:
            self._reject("cancel")
            return False
        self._clear_timers()
        session.state = GateState.IDLE
        session.strike_at = None
        self.scene.on_bobber(session, False)
        logger.info("cast_cancelled", user_id=session.user_id, attempt_id=session.attempt_id)
        return True

    def _finish(self, result: GateResult) -> GateResult:
        session = self.session
        self._clear_timers()
        session.last_result = result
        session.state = GateState.IDLE
        session.strike_at = None

        logger.info(
            "cast_resolved",
            user_id=session.user_id,
            attempt_id=result.attempt_id,
            outcome=result.outcome.value,
            reason=result.reason.value if result.reason else None,
            reaction_time_ms=result.reaction_time_ms,
        )

        self.scene.on_bobber(session, False)
        self.scene.on_result(session, result)
        callback = self.on_catch if result.caught else self.on_miss
        if callback is not None:
            callback(session, result)
        return result


class SessionRegistry:
    """One gate per Discord user."""

    def __init__(self, gate_factory: Callable[[FishingSession], TimingGate]):
        self._gate_factory = gate_factory
        self._gates: dict[int, TimingGate] = {}

    def get(self, user_id: int) -> Optional[TimingGate]:
        return self._gates.get(user_id)

    def get_or_create(self, angler: "Angler") -> TimingGate:
        gate = self._gates.get(angler.user_id)
        if gate is None or gate.session.angler is not angler:
            gate = self._gate_factory(FishingSession(user_id=angler.user_id, angler=angler))
            self._gates[angler.user_id] = gate
        return gate

    def user_ids(self) -> list[int]:
        return list(self._gates)

    def active_count(self) -> int:
        return sum(1 for gate in self._gates.values() if gate.session.is_active)

    def cancel_all(self) -> int:
        cancelled = 0
        for gate in self._gates.values():
            if gate.session.is_active:
                gate.cancel()
                cancelled += 1
        return cancelled

    def cleanup_idle(self) -> int:
        """Drop gates whose session is idle. Returns count removed."""
        idle = [user_id for user_id, gate in self._gates.items() if not gate.session.is_active]
        for user_id in idle:
            del self._gates[user_id]
        return len(idle)
