"""Download image bytes, caching them per session and image."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from models.product_draft import ImageRef
from services.errors import ExternalServiceFailure, RateLimited, parse_retry_after
from services.session_store import DEFAULT_TTL_SECONDS
from utils.concurrency import gather_or_cancel

LOGGER = logging.getLogger(__name__)


class ImageFetcher:
    """Fetch remote image bytes with an idle-expiring per-session cache.

    Args:
        client: Optional shared `httpx.AsyncClient`; one is created per call otherwise.
        ttl_seconds: How long cached bytes stay valid, matching the session TTL.
        timeout_seconds: Per-request timeout when no client is supplied.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._cache: Dict[Tuple[str, str], Tuple[bytes, float]] = {}

    async def fetch(self, url: str) -> bytes:
        """Download `url` and return the body bytes."""
        try:
            if self._client is not None:
                response = await self._client.get(url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
                    response = await client.get(url)
        except httpx.RequestError as exc:
            LOGGER.error("Image download failed for %s: %s", url, exc)
            raise ExternalServiceFailure("images", f"Could not download {url}: {exc}") from exc

        if response.status_code == 429:
            raise RateLimited(
                "images", "Image host is rate limiting requests.", parse_retry_after(response.headers.get("Retry-After"))
            )
        if response.status_code >= 400:
            raise ExternalServiceFailure("images", f"Failed to fetch image from {url}: HTTP {response.status_code}")
        return response.content

    async def bytes_for(self, session_id: str, image: ImageRef) -> bytes:
        """Return pixel bytes for `image`, downloading at most once per session."""
        if image.raw_bytes:
            return image.raw_bytes
        if not image.url:
            raise ExternalServiceFailure("images", "Image has neither bytes nor a URL.")

        key = (session_id, image.cache_key)
        now = self._clock()
        cached = self._cache.get(key)
        if cached is not None:
            if now - cached[1] <= self.ttl_seconds:
                return cached[0]
            self._cache.pop(key, None)

        data = await self.fetch(image.url)
        self._cache[key] = (data, now)
        return data

    async def bytes_for_all(self, session_id: str, images: List[ImageRef]) -> List[bytes]:
        """Fetch every image concurrently; the first failure cancels the rest and propagates."""
        return await gather_or_cancel(self.bytes_for(session_id, image) for image in images)

    def forget(self, session_id: str) -> None:
        """Drop cached bytes for a closed session."""
        for key in [key for key in self._cache if key[0] == session_id]:
            del self._cache[key]

    def purge_expired(self) -> int:
        """Drop cached bytes older than the TTL and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, fetched_at) in self._cache.items() if now - fetched_at > self.ttl_seconds]
        for key in expired:
            del self._cache[key]
        return len(expired)
