"""Periodic cleanup of expired sessions and cached image bytes."""

import asyncio
import logging
import time
from typing import Callable, Sequence

from utils.database_init import AsyncDatabaseInitializer


class SessionCleaner:
    """Delete SESSION rows idle for longer than the session TTL."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer, ttl_seconds: int = 600) -> None:
        """
        Args:
            db_initializer: Shared database initializer/connection provider.
            ttl_seconds: Idle threshold in seconds; rows untouched for longer are removed.
        """
        self._db = db_initializer
        self.ttl_seconds = ttl_seconds

    async def prune_expired_sessions(self) -> int:
        """Delete expired SESSION rows and return the number removed."""
        cutoff = time.time() - self.ttl_seconds
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM SESSION WHERE last_touched_at < ?", (cutoff,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            deleted = await cur.fetchone()
            return int(deleted[0]) if deleted and deleted[0] is not None else 0

    async def run_periodic_cleanup(self, interval_seconds: int = 300) -> None:
        """
        Repeatedly prune expired rows at the given interval until cancelled.

        Args:
            interval_seconds: Seconds to sleep between cleanup runs.
        """
        while True:
            try:
                removed = await self.prune_expired_sessions()
                if removed:
                    logging.info("Pruned %d expired sessions", removed)
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logging.error("Session cleanup failed: %s", exc)
                await asyncio.sleep(interval_seconds)


class MemoryCleaner:
    """Run in-process purge callables (in-memory store, image cache) on an interval.

    Each purger drops its expired entries and returns how many it removed.
    """

    def __init__(self, purgers: Sequence[Callable[[], int]]) -> None:
        self._purgers = list(purgers)

    def purge_once(self) -> int:
        """Run every purger once and return the total number of entries removed."""
        return sum(purge() for purge in self._purgers)

    async def run_periodic_cleanup(self, interval_seconds: int = 300) -> None:
        while True:
            try:
                removed = self.purge_once()
                if removed:
                    logging.info("Purged %d expired in-memory entries", removed)
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logging.error("In-memory cleanup failed: %s", exc)
                await asyncio.sleep(interval_seconds)
