import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

# Fields attached to every log line emitted while handling one command.
CONTEXT_KEYS = ("user_id", "guild_id", "command", "attempt_id", "request_id")

_context: Dict[str, ContextVar] = {key: ContextVar(key, default=None) for key in CONTEXT_KEYS}


def bind_context(
    *,
    user_id: Optional[int] = None,
    guild_id: Optional[int] = None,
    command: Optional[str] = None,
    attempt_id: Optional[int] = None,
    request_id: Optional[str] = None,
) -> None:
    """Set the given fields for the current task; a short request id is generated once per task."""
    values = {
        "user_id": user_id,
        "guild_id": guild_id,
        "command": command,
        "attempt_id": attempt_id,
        "request_id": request_id,
    }
    for key, value in values.items():
        if value is not None:
            _context[key].set(value)
    if _context["request_id"].get() is None:
        _context["request_id"].set(uuid.uuid4().hex[:8])
    structlog.contextvars.bind_contextvars(**get_current_context())


def clear_context() -> None:
    for var in _context.values():
        var.set(None)
    structlog.contextvars.clear_contextvars()


def get_current_context() -> Dict[str, Any]:
    return {key: var.get() for key, var in _context.items() if var.get() is not None}
