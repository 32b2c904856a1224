"""Read merchant settings from a JSON file.

The file mirrors what the settings screen writes: contact links, the
keyword guide, and watermark options. A missing or unreadable file yields
defaults so authoring keeps working without configuration.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from models.store_settings import StoreSettings, WatermarkSpec
from services.errors import ExternalServiceFailure
from services.image_fetcher import ImageFetcher

LOGGER = logging.getLogger(__name__)
DEFAULT_SETTINGS_PATH = os.getenv("SETTINGS_PATH", "settings.json")


class JsonSettingsStore:
    """Load `StoreSettings` from disk on every call (settings may change between turns)."""

    def __init__(self, path: Optional[str | Path] = None, fetcher: Optional[ImageFetcher] = None) -> None:
        self.path = Path(path or DEFAULT_SETTINGS_PATH)
        self.fetcher = fetcher

    async def _read_json(self) -> Dict[str, Any]:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as handle:
                return json.loads(await handle.read())
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.error("Failed to read settings file %s: %s", self.path, exc)
            return {}

    async def _watermark_bytes(self, raw: Dict[str, Any]) -> Optional[bytes]:
        image_path = raw.get("watermarkImagePath")
        if image_path:
            try:
                async with aiofiles.open(image_path, "rb") as handle:
                    return await handle.read()
            except OSError as exc:
                LOGGER.error("Watermark image %s could not be read: %s", image_path, exc)
                return None
        image_url = raw.get("watermarkImageUrl")
        if image_url and self.fetcher is not None:
            try:
                return await self.fetcher.fetch(image_url)
            except ExternalServiceFailure as exc:
                LOGGER.error("Watermark image download failed: %s", exc)
        return None

    async def load(self) -> StoreSettings:
        raw = await self._read_json()
        watermark = None
        image_bytes = await self._watermark_bytes(raw)
        if image_bytes:
            try:
                watermark = WatermarkSpec(
                    image_bytes=image_bytes,
                    placement=raw.get("watermarkPlacement", "bottom-right"),
                    scale_pct=float(raw.get("watermarkScale", 40)),
                    opacity_fraction=float(raw.get("watermarkOpacity", 0.7)),
                    padding_pct=float(raw.get("watermarkPadding", 5)),
                )
            except ValueError as exc:
                LOGGER.error("Ignoring invalid watermark settings: %s", exc)

        return StoreSettings(
            phone_number=raw.get("phoneNumber", ""),
            facebook_url=raw.get("facebookUrl", ""),
            instagram_url=raw.get("instagramUrl", ""),
            telegram_url=raw.get("telegramUrl", ""),
            tiktok_url=raw.get("tiktokUrl", ""),
            keyword_guide=raw.get("commonKeywords", ""),
            watermark=watermark,
        )
