"""Draft domain models for conversational catalog authoring."""

from __future__ import annotations

import base64
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ImageRef:
    """A product image staged in a draft.

    Attributes:
        external_id: Media id in the commerce store (None until uploaded).
        url: Remote location of the image, when known.
        raw_bytes: Pixel bytes supplied directly by the merchant.
        file_name: Name used when the image is uploaded.
        alt_text: Existing alt text (copied from a loaded catalog entry).
        is_new_upload: True for images staged in this session, False for
            images already attached to the entry being edited.
    """

    external_id: Optional[int] = None
    url: Optional[str] = None
    raw_bytes: Optional[bytes] = None
    file_name: Optional[str] = None
    alt_text: Optional[str] = None
    is_new_upload: bool = True

    @property
    def cache_key(self) -> str:
        """Stable key used to cache fetched bytes within a session."""
        if self.external_id is not None:
            return f"id:{self.external_id}"
        if self.url:
            return f"url:{self.url}"
        return f"name:{self.file_name or 'upload'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "external_id": self.external_id,
            "url": self.url,
            "raw_bytes": base64.b64encode(self.raw_bytes).decode("ascii") if self.raw_bytes else None,
            "file_name": self.file_name,
            "alt_text": self.alt_text,
            "is_new_upload": self.is_new_upload,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRef":
        raw = data.get("raw_bytes")
        return cls(
            external_id=data.get("external_id"),
            url=data.get("url"),
            raw_bytes=base64.b64decode(raw) if raw else None,
            file_name=data.get("file_name"),
            alt_text=data.get("alt_text"),
            is_new_upload=bool(data.get("is_new_upload", True)),
        )


@dataclass
class GeneratedContent:
    """Catalog content produced by a single optimize call."""

    name: str
    description: str = ""
    short_description: str = ""
    sku: Optional[str] = None
    slug: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    attributes: List[Dict[str, str]] = field(default_factory=list)
    image_alts: List[str] = field(default_factory=list)
    meta_fields: List[Dict[str, str]] = field(default_factory=list)
    price_minor: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "short_description": self.short_description,
            "sku": self.sku,
            "slug": self.slug,
            "tags": list(self.tags),
            "categories": list(self.categories),
            "attributes": [dict(attr) for attr in self.attributes],
            "image_alts": list(self.image_alts),
            "meta_fields": [dict(meta) for meta in self.meta_fields],
            "price_minor": self.price_minor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedContent":
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            short_description=data.get("short_description") or "",
            sku=data.get("sku"),
            slug=data.get("slug"),
            tags=list(data.get("tags") or []),
            categories=list(data.get("categories") or []),
            attributes=[dict(attr) for attr in data.get("attributes") or []],
            image_alts=list(data.get("image_alts") or []),
            meta_fields=[dict(meta) for meta in data.get("meta_fields") or []],
            price_minor=data.get("price_minor"),
        )


@dataclass
class ProductDraft:
    """In-progress record of one authoring conversation.

    Attributes:
        raw_name: Product name as typed by the merchant.
        price_minor: Price in minor currency units (cents).
        material: Optional material description.
        localized_name: Optional name in the local language.
        focus_keywords: Optional comma-separated SEO keywords.
        images: Staged and existing images.
        generated: Content returned by the generator, if any.
        edit_target_id: Catalog entry id when editing an existing product.
    """

    raw_name: Optional[str] = None
    price_minor: Optional[int] = None
    material: Optional[str] = None
    localized_name: Optional[str] = None
    focus_keywords: Optional[str] = None
    images: List[ImageRef] = field(default_factory=list)
    generated: Optional[GeneratedContent] = None
    edit_target_id: Optional[int] = None

    def missing_fields(self) -> List[str]:
        """Return the human-readable names of required fields still absent."""
        missing = []
        if not self.raw_name:
            missing.append("name")
        if not self.price_minor:
            missing.append("price")
        if not self.images:
            missing.append("at least one photo")
        return missing

    def is_ready(self) -> bool:
        return not self.missing_fields()

    def is_empty(self) -> bool:
        """True when nothing but (possibly) an edit target has been recorded."""
        return (
            not self.raw_name
            and self.price_minor is None
            and not self.material
            and not self.localized_name
            and not self.focus_keywords
            and not self.images
            and self.generated is None
        )

    def clone(self) -> "ProductDraft":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_name": self.raw_name,
            "price_minor": self.price_minor,
            "material": self.material,
            "localized_name": self.localized_name,
            "focus_keywords": self.focus_keywords,
            "images": [image.to_dict() for image in self.images],
            "generated": self.generated.to_dict() if self.generated else None,
            "edit_target_id": self.edit_target_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductDraft":
        generated = data.get("generated")
        return cls(
            raw_name=data.get("raw_name"),
            price_minor=data.get("price_minor"),
            material=data.get("material"),
            localized_name=data.get("localized_name"),
            focus_keywords=data.get("focus_keywords"),
            images=[ImageRef.from_dict(item) for item in data.get("images") or []],
            generated=GeneratedContent.from_dict(generated) if generated else None,
            edit_target_id=data.get("edit_target_id"),
        )


def format_price(price_minor: Optional[int]) -> str:
    """Render minor units as a major-unit decimal string (e.g. 420000 -> '4200.00')."""
    if price_minor is None:
        return ""
    sign = "-" if price_minor < 0 else ""
    major, minor = divmod(abs(price_minor), 100)
    return f"{sign}{major}.{minor:02d}"


def parse_price(value: Any) -> Optional[int]:
    """Parse a major-unit price (number or string) into minor units."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return int(round(float(value) * 100))
    text = str(value).strip().replace(",", "")
    try:
        return int(round(float(text) * 100))
    except ValueError:
        return None
