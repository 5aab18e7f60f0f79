"""Client for the Kitty Creek social/persistence server.

Plain JSON over HTTP. Any transport error, timeout or non-2xx answer is
raised as :class:`core.errors.RemoteUnavailable`; callers decide how to
degrade.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from configs.settings import API_BASE_URL, API_TIMEOUT
from core.errors import RemoteUnavailable
from core.logging import get_logger

logger = get_logger("api_client")


class KittyCreekAPI:
    """
    One shared aiohttp session; per-player clients come from :meth:`with_token`.

    The server authenticates with ``Authorization: Bearer <player id>``.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = API_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        parent: Optional["KittyCreekAPI"] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session
        self._parent = parent
        self._owns_session = session is None and parent is None

    def with_token(self, token: Optional[str]) -> "KittyCreekAPI":
        """Client for one player, sharing this client's session."""
        return KittyCreekAPI(self.base_url, token=token, timeout=self.timeout, parent=self)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._parent is not None:
            return self._parent._get_session()
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(
                method, url, json=payload, params=params, headers=headers,
            ) as resp:
                if resp.status >= 400:
                    try:
                        body = await resp.json(content_type=None)
                        reason = body.get("error", "") if isinstance(body, dict) else ""
                    except (aiohttp.ContentTypeError, ValueError):
                        reason = ""
                    logger.warning("api_error_status", method=method, path=path, status=resp.status)
                    raise RemoteUnavailable(path, reason=reason or f"HTTP {resp.status}", status=resp.status)
                if resp.status == 204:
                    return None
                return await resp.json(content_type=None)
        except RemoteUnavailable:
            raise
        except asyncio.TimeoutError as e:
            logger.warning("api_timeout", method=method, path=path)
            raise RemoteUnavailable(path, reason="timeout") from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise RemoteUnavailable(path, reason=str(e)) from e

    # ==================== PLAYERS ====================

    async def create_angler(self, username: str) -> Dict[str, Any]:
        """Register a player. Returns at least ``userId`` and ``friendCode``."""
        return await self._request("POST", "/players/register", {"username": username})

    async def load_angler(self) -> Dict[str, Any]:
        return await self._request("GET", "/players/me")

    async def save_angler(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", "/players/me", data)

    async def fetch_player_by_code(self, friend_code: str) -> Dict[str, Any]:
        return await self._request("GET", f"/players/{friend_code}")

    async def append_catch(self, catch: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/leaderboard/catch", catch)

    # ==================== LEADERBOARD ====================

    async def fetch_leaderboard(self, kind: str = "global", limit: int = 50) -> List[Dict[str, Any]]:
        if kind not in ("global", "speed"):
            raise ValueError(f"unknown leaderboard kind: {kind}")
        data = await self._request("GET", f"/leaderboard/{kind}", params={"limit": limit})
        if isinstance(data, dict):
            return data.get("leaderboard", [])
        return data or []

    # ==================== FRIENDS ====================

    async def fetch_friends(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/friends")
        if isinstance(data, dict):
            return data.get("friends", [])
        return data or []

    async def fetch_pending_requests(self) -> Dict[str, List[Dict[str, Any]]]:
        data = await self._request("GET", "/friends/pending") or {}
        return {"sent": data.get("sent", []), "received": data.get("received", [])}

    async def fetch_friend_collection(self, friend_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/friends/{friend_id}/collection")

    async def send_friend_request(self, friend_code: str) -> Dict[str, Any]:
        return await self._request("POST", "/friends/request", {"friendCode": friend_code})

    async def accept_friend_request(self, request_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/friends/accept/{request_id}")

    async def decline_friend_request(self, request_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/friends/decline/{request_id}")

    async def remove_friend(self, friend_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/friends/{friend_id}")

    # ==================== ACTIVITY ====================

    async def fetch_friend_activity(self, limit: int = 20) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/activities/friends", params={"limit": limit})
        if isinstance(data, dict):
            return data.get("activities", [])
        return data or []

    async def log_catch_activity(self, catch: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/activities/catch", catch)

    async def log_level_up(self, level: int, levels_gained: int = 1) -> Dict[str, Any]:
        return await self._request("POST", "/activities/level", {"level": level, "levelsGained": levels_gained})

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/health")
            return True
        except RemoteUnavailable:
            return False
