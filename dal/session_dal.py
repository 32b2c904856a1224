"""Async Data Access Layer for the SESSION table.

Provides `SqliteSessionStore`, a drop-in replacement for
`services.session_store.InMemorySessionStore` that keeps drafts in the
SQLite database managed by `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

import aiosqlite

from models.product_draft import ProductDraft
from services.errors import StoreUnavailable
from services.session_store import DEFAULT_TTL_SECONDS
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class SqliteSessionStore:
    """Session store backed by one SESSION row per conversation id.

    Rows older than `ttl_seconds` are treated as absent on read; they are
    physically removed by `utils.database_cleaner.SessionCleaner`. Any
    database error is raised as `StoreUnavailable`.
    """

    def __init__(
        self,
        db_initializer: AsyncDatabaseInitializer,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db_initializer
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def _fetch_payload(self, session_id: str) -> Optional[str]:
        cutoff = self._clock() - self.ttl_seconds
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    "SELECT payload FROM SESSION WHERE session_id = ? AND last_touched_at >= ?",
                    (session_id, cutoff),
                )
                row = await cur.fetchone()
        except (aiosqlite.Error, OSError) as exc:
            LOGGER.error("Session read failed for %s: %s", session_id, exc)
            raise StoreUnavailable(str(exc)) from exc
        return row[0] if row else None

    async def has_session(self, session_id: str) -> bool:
        return await self._fetch_payload(session_id) is not None

    async def load(self, session_id: str) -> ProductDraft:
        """Return the stored draft, or an empty draft when absent or expired."""
        payload = await self._fetch_payload(session_id)
        if payload is None:
            return ProductDraft()
        return ProductDraft.from_dict(json.loads(payload))

    async def save(self, session_id: str, draft: ProductDraft) -> None:
        """Insert or overwrite the session row and refresh its timestamp."""
        payload = json.dumps(draft.to_dict())
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    "INSERT INTO SESSION (session_id, payload, last_touched_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(session_id) DO UPDATE SET payload = excluded.payload, "
                    "last_touched_at = excluded.last_touched_at",
                    (session_id, payload, self._clock()),
                )
                await conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            LOGGER.error("Session write failed for %s: %s", session_id, exc)
            raise StoreUnavailable(str(exc)) from exc

    async def delete(self, session_id: str) -> None:
        try:
            async with self._db.connection() as conn:
                await conn.execute("DELETE FROM SESSION WHERE session_id = ?", (session_id,))
                await conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            LOGGER.error("Session delete failed for %s: %s", session_id, exc)
            raise StoreUnavailable(str(exc)) from exc
