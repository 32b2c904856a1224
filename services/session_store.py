"""TTL-evicted in-memory store for authoring sessions."""

from __future__ import annotations

import json
import os
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from models.product_draft import ProductDraft

DEFAULT_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "600"))


class SessionStore(Protocol):
	"""Keyed draft storage; absent or expired keys load as an empty draft."""

	ttl_seconds: int

	async def has_session(self, session_id: str) -> bool: ...

	async def load(self, session_id: str) -> ProductDraft: ...

	async def save(self, session_id: str, draft: ProductDraft) -> None: ...

	async def delete(self, session_id: str) -> None: ...


class InMemorySessionStore:
	"""Keep serialized drafts in process memory, evicting idle sessions.

	Drafts are stored as JSON blobs so a load always returns a fresh copy and
	callers cannot mutate persisted state without an explicit save.
	"""

	def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
		self.ttl_seconds = ttl_seconds
		self._clock = clock
		self._sessions: Dict[str, Tuple[str, float]] = {}

	def _live_entry(self, session_id: str) -> Optional[Tuple[str, float]]:
		entry = self._sessions.get(session_id)
		if entry is None:
			return None
		if self._clock() - entry[1] > self.ttl_seconds:
			self._sessions.pop(session_id, None)
			return None
		return entry

	async def has_session(self, session_id: str) -> bool:
		"""Return True if a non-expired session exists."""
		return self._live_entry(session_id) is not None

	async def load(self, session_id: str) -> ProductDraft:
		"""Return the stored draft or a fresh empty one."""
		entry = self._live_entry(session_id)
		if entry is None:
			return ProductDraft()
		return ProductDraft.from_dict(json.loads(entry[0]))

	async def save(self, session_id: str, draft: ProductDraft) -> None:
		"""Overwrite the session wholesale and refresh its idle timer."""
		self._sessions[session_id] = (json.dumps(draft.to_dict()), self._clock())

	async def delete(self, session_id: str) -> None:
		self._sessions.pop(session_id, None)

	def purge_expired(self) -> int:
		"""Drop expired sessions and return how many were removed."""
		now = self._clock()
		expired = [key for key, (_, touched) in self._sessions.items() if now - touched > self.ttl_seconds]
		for key in expired:
			del self._sessions[key]
		return len(expired)
