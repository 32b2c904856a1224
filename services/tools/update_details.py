"""Merge merchant-supplied fields into the draft."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.product_draft import ImageRef, ProductDraft, format_price
from services.tools.base import ToolContext, ToolResult

SCALAR_FIELDS = ("raw_name", "price_minor", "material", "localized_name", "focus_keywords")

_LABELS = {
    "raw_name": "name",
    "price_minor": "price",
    "material": "material",
    "localized_name": "localized name",
    "focus_keywords": "keywords",
}


def merge_details(draft: ProductDraft, fields: Dict[str, Any]) -> ProductDraft:
    """Return a copy of `draft` with every non-null field applied; images are appended."""
    updated = draft.clone()
    for name in SCALAR_FIELDS:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        setattr(updated, name, value.strip() if isinstance(value, str) else value)
    images: Optional[List[ImageRef]] = fields.get("images")
    if images:
        updated.images.extend(images)
    return updated


def _describe(fields: Dict[str, Any], draft: ProductDraft) -> List[str]:
    noted = []
    for name in SCALAR_FIELDS:
        if fields.get(name) is None:
            continue
        value = format_price(draft.price_minor) if name == "price_minor" else getattr(draft, name)
        noted.append(f"{_LABELS[name]}: {value}")
    images = fields.get("images") or []
    if images:
        noted.append(f"{len(images)} photo(s)")
    return noted


async def update_details(draft: ProductDraft, context: Optional[ToolContext] = None, **fields: Any) -> ToolResult:
    """Merge the supplied fields and acknowledge them. Always succeeds."""
    updated = merge_details(draft, fields)
    noted = _describe(fields, updated)
    lines = [f"Got it! I've noted the {', '.join(noted)}." if noted else "Okay, nothing new to note yet."]

    missing = updated.missing_fields()
    if missing:
        lines.append(f"I still need the {' and '.join(missing)}.")
    elif updated.generated is not None:
        lines.append("These details will be included when you save.")
    else:
        lines.append(
            f"Everything is ready for '{updated.raw_name}' at {format_price(updated.price_minor)} "
            f"with {len(updated.images)} photo(s). Reply 'optimize' to generate the listing."
        )
    return ToolResult(text="\n".join(lines), draft=updated)
