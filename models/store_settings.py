from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.catalog_entry import Category

PLACEMENTS = ("bottom-right", "bottom-left", "top-right", "top-left", "center")


@dataclass
class WatermarkSpec:
    """Watermark image and layout options.

    Attributes:
        image_bytes: Encoded watermark image (PNG with alpha recommended).
        placement: One of `PLACEMENTS`.
        scale_pct: Watermark width as a percentage of the base image width.
        opacity_fraction: Alpha applied to the watermark, 0.0 to 1.0.
        padding_pct: Edge padding as a percentage of base width/height.
    """

    image_bytes: bytes
    placement: str = "bottom-right"
    scale_pct: float = 40.0
    opacity_fraction: float = 0.7
    padding_pct: float = 5.0

    def __post_init__(self) -> None:
        if self.placement not in PLACEMENTS:
            raise ValueError(f"Unsupported watermark placement '{self.placement}'.")


@dataclass
class StoreSettings:
    """Read-only merchant settings consumed by the tools."""

    phone_number: str = ""
    facebook_url: str = ""
    instagram_url: str = ""
    telegram_url: str = ""
    tiktok_url: str = ""
    keyword_guide: str = ""
    watermark: Optional[WatermarkSpec] = None

    def contact_links(self) -> Dict[str, str]:
        """Return the non-empty contact links keyed by channel."""
        links = {
            "phone": self.phone_number,
            "facebook": self.facebook_url,
            "instagram": self.instagram_url,
            "telegram": self.telegram_url,
            "tiktok": self.tiktok_url,
        }
        return {key: value for key, value in links.items() if value}


@dataclass
class StoreContext:
    """Store information handed to the content generator alongside a draft."""

    contact_links: Dict[str, str] = field(default_factory=dict)
    keyword_guide: str = ""
    categories: List[Category] = field(default_factory=list)
    trend_signals: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def primary_category(self) -> Optional[Category]:
        return self.categories[0] if self.categories else None
