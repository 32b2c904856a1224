from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Category:
    id: int
    name: str
    slug: str = ""


@dataclass
class EntryImage:
    id: Optional[int]
    url: Optional[str]
    alt: str = ""


@dataclass
class CatalogEntry:
    """A product as stored in the commerce catalog.

    Attributes:
        id: Catalog id.
        name: Product title.
        price: Major-unit price as returned by the store (string).
        attributes: `{"name": str, "values": [str]}` items.
        meta_fields: `{"key": str, "value": Any}` items.
        tags: Tag names.
    """

    id: int
    name: str
    price: str = ""
    sku: str = ""
    slug: str = ""
    permalink: str = ""
    status: str = "draft"
    description: str = ""
    short_description: str = ""
    images: List[EntryImage] = field(default_factory=list)
    attributes: List[Dict[str, Any]] = field(default_factory=list)
    meta_fields: List[Dict[str, Any]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)

    def attribute(self, name: str) -> Optional[str]:
        """Return the first value of the attribute called `name` (case-insensitive)."""
        for attr in self.attributes:
            if str(attr.get("name", "")).lower() == name.lower():
                values = attr.get("values") or []
                return str(values[0]) if values else None
        return None

    def meta(self, key: str) -> Optional[Any]:
        for item in self.meta_fields:
            if item.get("key") == key:
                return item.get("value")
        return None
