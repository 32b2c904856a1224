"""Telegram Bot API client used as the messaging transport."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from services.errors import ExternalServiceFailure, RateLimited

LOGGER = logging.getLogger(__name__)
SERVICE = "messaging"
ALBUM_LIMIT = 10
API_BASE = "https://api.telegram.org"


class TelegramBotClient:
    """Send messages, photos and albums, and download inbound photos.

    Args:
        token: Bot token; defaults to `TELEGRAM_BOT_TOKEN`.
        channel_id: Channel used for product announcements; defaults to `TELEGRAM_CHANNEL_ID`.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        channel_id: Optional[str] = None,
        *,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token or os.getenv("TELEGRAM_BOT_TOKEN")
        if not self.token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not configured.")
        self.channel_id = channel_id or os.getenv("TELEGRAM_CHANNEL_ID")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def _api_url(self) -> str:
        return f"{API_BASE}/bot{self.token}"

    async def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(f"{self._api_url}/{method}", json=payload)
        except httpx.RequestError as exc:
            LOGGER.error("Telegram %s failed: %s", method, exc)
            raise ExternalServiceFailure(SERVICE, f"Could not reach Telegram: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code == 429:
            retry_after = (body.get("parameters") or {}).get("retry_after")
            raise RateLimited(SERVICE, body.get("description") or "Telegram rate limit hit.", retry_after)
        if response.status_code >= 400 or not body.get("ok", False):
            description = body.get("description") or f"HTTP {response.status_code}"
            LOGGER.error("Telegram API error on %s: %s", method, description)
            raise ExternalServiceFailure(SERVICE, description)
        return body.get("result")

    async def send_text(self, chat_id: str | int, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def send_photo(self, chat_id: str | int, url: str, caption: str) -> None:
        await self._call("sendPhoto", {"chat_id": chat_id, "photo": url, "caption": caption})

    async def send_album(self, chat_id: str | int, urls: List[str], caption: str) -> None:
        """Send up to ten photos as one media group, captioning only the first item."""
        if not urls:
            raise ValueError("An album needs at least one photo.")
        media = []
        for index, url in enumerate(urls[:ALBUM_LIMIT]):
            item: Dict[str, Any] = {"type": "photo", "media": url}
            if index == 0:
                item["caption"] = caption
            media.append(item)
        await self._call("sendMediaGroup", {"chat_id": chat_id, "media": json.dumps(media)})

    async def get_file_bytes(self, file_id: str) -> bytes:
        """Resolve a Telegram `file_id` and download its contents."""
        info = await self._call("getFile", {"file_id": file_id})
        file_path = (info or {}).get("file_path")
        if not file_path:
            raise ExternalServiceFailure(SERVICE, "Could not get file info from Telegram.")
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(f"{API_BASE}/file/bot{self.token}/{file_path}")
        except httpx.RequestError as exc:
            raise ExternalServiceFailure(SERVICE, f"Failed to download file from Telegram: {exc}") from exc
        if response.status_code >= 400:
            raise ExternalServiceFailure(SERVICE, "Failed to download file from Telegram.")
        return response.content
