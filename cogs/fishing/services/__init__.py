"""Fishing services module - catch pipeline and social reads."""

from .catch_service import CatchOutcome, CatchService
from .social_service import FriendsRefresh, SocialService, local_leaderboard

__all__ = [
    "CatchOutcome",
    "CatchService",
    "FriendsRefresh",
    "SocialService",
    "local_leaderboard",
]
