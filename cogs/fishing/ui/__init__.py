"""UI layer for the fishing cog."""

from .views import CastView, CatchFeed, DiscordScene

__all__ = [
    "CastView",
    "CatchFeed",
    "DiscordScene",
]
