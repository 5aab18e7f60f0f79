import re
from typing import Any, Dict

import structlog

# Discord bot tokens and the player bearer tokens sent to the API.
TOKEN_PATTERN = re.compile(r'[MN][A-Za-z0-9_-]{23,}\.[A-Za-z0-9_-]{6}\.[A-Za-z0-9_-]{27,}')
BEARER_PATTERN = re.compile(r'Bearer\s+\S+')
SENSITIVE_KEYS = frozenset({'token', 'discord_token', 'authorization', 'bearer', 'remote_id', 'password'})

TIMING_SUFFIX = "_ms"


def redact_sensitive_data(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = '[REDACTED]'
        elif isinstance(value, str):
            value = TOKEN_PATTERN.sub('[REDACTED]', value)
            event_dict[key] = BEARER_PATTERN.sub('Bearer [REDACTED]', value)
    return event_dict


def round_timings(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    """Millisecond fields come from float clocks; one decimal is plenty."""
    for key, value in event_dict.items():
        if key.endswith(TIMING_SUFFIX) and isinstance(value, float):
            event_dict[key] = round(value, 1)
    return event_dict


def add_service_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    event_dict.setdefault("service", "kittycreek")
    return event_dict
