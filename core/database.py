"""
Angler persistence: one JSON document per player in SQLite, plus a
repository that debounces saves and mirrors them to the remote server.
"""
import aiosqlite
import asyncio
import functools
import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from configs.settings import DB_PATH, DB_TIMEOUT, DB_MAX_RETRIES, DB_RETRY_DELAY, SYNC_DEBOUNCE_SECONDS
from core.errors import DataCorrupt, RemoteUnavailable
from core.logging import get_logger

logger = get_logger("database")


def retry_on_db_lock(max_retries: int = DB_MAX_RETRIES, initial_delay: float = DB_RETRY_DELAY):
    """Decorator to retry database operations on 'database is locked' errors.

    Uses exponential backoff to handle concurrent write conflicts gracefully.

    Args:
        max_retries (int): Maximum number of retry attempts.
        initial_delay (float): Initial delay in seconds, doubles after each retry.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if "database is locked" not in str(e).lower():
                        raise
                    last_exception = e
                    if attempt < max_retries - 1:
                        logger.warning("db_locked_retry", attempt=attempt + 1, max_retries=max_retries, delay=delay)
                        await asyncio.sleep(delay)
                        delay *= 2
                    else:
                        logger.error("db_locked_giving_up", max_retries=max_retries)

            raise last_exception

        return wrapper
    return decorator


class AnglerStore:
    """Key/value table of serialized anglers, keyed by Discord user id."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self.db: Optional[aiosqlite.Connection] = None
        self.lock = asyncio.Lock()

    async def connect(self):
        """Open the connection in WAL mode and make sure the table exists."""
        if self.db:
            return
        self.db = await aiosqlite.connect(self.db_path, timeout=DB_TIMEOUT)
        await self.db.execute("PRAGMA journal_mode=WAL")
        await self.db.execute("PRAGMA synchronous=NORMAL")
        await self.db.execute("PRAGMA busy_timeout=5000")
        await self.db.execute(
            """CREATE TABLE IF NOT EXISTS anglers (
                   user_id INTEGER PRIMARY KEY,
                   data TEXT NOT NULL,
                   updated_at TEXT NOT NULL
               )"""
        )
        await self.db.commit()
        logger.info("db_connected", path=self.db_path)

    async def close(self):
        if self.db:
            await self.db.close()
            self.db = None

    async def _get_db(self) -> aiosqlite.Connection:
        if not self.db:
            await self.connect()
        return self.db

    async def load(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Stored document for ``user_id``, or None if absent or unreadable."""
        db = await self._get_db()
        async with db.execute("SELECT data FROM anglers WHERE user_id = ?", (user_id,)) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        try:
            data = json.loads(row[0])
            if not isinstance(data, dict):
                raise DataCorrupt("anglers.data", "document is not an object")
            return data
        except (ValueError, DataCorrupt) as e:
            logger.warning("angler_document_corrupt", user_id=user_id, error=str(e))
            return None

    @retry_on_db_lock()
    async def save(self, user_id: int, data: Dict[str, Any]) -> None:
        payload = json.dumps(data, ensure_ascii=False)
        async with self.lock:
            db = await self._get_db()
            await db.execute(
                """INSERT INTO anglers (user_id, data, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at""",
                (user_id, payload, datetime.now().isoformat()),
            )
            await db.commit()

    @retry_on_db_lock()
    async def delete(self, user_id: int) -> None:
        async with self.lock:
            db = await self._get_db()
            await db.execute("DELETE FROM anglers WHERE user_id = ?", (user_id,))
            await db.commit()


class AnglerRepository:
    """
    In-memory anglers backed by :class:`AnglerStore`.

    Every angler mutation calls :meth:`schedule_save`; bursts of mutations
    collapse into one write after ``debounce`` seconds. When an API client is
    given, the same document is pushed to the server (failures only logged).
    """

    def __init__(self, store: AnglerStore, model, api=None, debounce: float = SYNC_DEBOUNCE_SECONDS):
        self.store = store
        self.model = model
        self.api = api
        self.debounce = debounce
        self._anglers: Dict[int, Any] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        self._pending: Dict[int, asyncio.TimerHandle] = {}
        self._tasks: set = set()

    def _get_lock(self, user_id: int) -> asyncio.Lock:
        if user_id not in self._locks:
            self._locks[user_id] = asyncio.Lock()
        return self._locks[user_id]

    def cached(self, user_id: int):
        return self._anglers.get(user_id)

    def client_for(self, angler):
        """Per-player API client, or None when the angler is not registered remotely."""
        if self.api is None or angler.remote_id is None:
            return None
        return self.api.with_token(angler.remote_id)

    async def get(self, user_id: int, name: str = "Angler"):
        """Load the angler, creating (and registering remotely) on first join."""
        async with self._get_lock(user_id):
            angler = self._anglers.get(user_id)
            if angler is not None:
                return angler

            data = await self.store.load(user_id)
            if data is not None:
                angler = self.model.from_dict(data, user_id=user_id)
            else:
                angler = self.model(user_id=user_id, name=name)
                await self._register_remote(angler)
                await self.store.save(user_id, angler.to_dict())
                logger.info("angler_created", user_id=user_id)

            angler.attach(self.schedule_save)
            self._anglers[user_id] = angler
            return angler

    async def _register_remote(self, angler) -> None:
        if self.api is None:
            return
        try:
            info = await self.api.create_angler(angler.name)
        except RemoteUnavailable as e:
            logger.warning("angler_register_offline", user_id=angler.user_id, reason=e.reason)
            return
        if isinstance(info, dict):
            remote_id = info.get("userId")
            angler.remote_id = str(remote_id) if remote_id else angler.remote_id
            angler.friend_code = info.get("friendCode") or angler.friend_code

    def schedule_save(self, angler) -> None:
        """Debounced save; safe to call from synchronous mutators."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        handle = self._pending.pop(angler.user_id, None)
        if handle is not None:
            handle.cancel()
        self._pending[angler.user_id] = loop.call_later(self.debounce, self._spawn_save, angler)

    def _spawn_save(self, angler) -> None:
        self._pending.pop(angler.user_id, None)
        task = asyncio.ensure_future(self.save_now(angler))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def save_now(self, angler) -> None:
        data = angler.to_dict()
        try:
            await self.store.save(angler.user_id, data)
        except sqlite3.Error as e:
            logger.error("angler_save_failed", user_id=angler.user_id, error=str(e))
            return

        client = self.client_for(angler)
        if client is None:
            return
        try:
            await client.save_angler(data)
        except RemoteUnavailable as e:
            logger.warning("angler_sync_failed", user_id=angler.user_id, reason=e.reason)

    async def flush(self) -> None:
        """Write every pending save immediately (used at shutdown)."""
        for user_id, handle in list(self._pending.items()):
            handle.cancel()
            angler = self._anglers.get(user_id)
            if angler is not None:
                await self.save_now(angler)
        self._pending.clear()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
