"""Push the draft to the commerce store as a new or updated entry."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from models.catalog_entry import Category
from models.product_draft import ProductDraft, format_price
from services.errors import ExternalServiceFailure
from services.image_uploads import upload_pending_images
from services.tools.base import ToolContext, ToolResult, failure_result
from services.watermark import WatermarkCompositor

LOGGER = logging.getLogger(__name__)
STATUSES = ("published", "draft")
MATERIAL_ATTRIBUTE = "Material"


def resolve_categories(names: List[str], known: List[Category]) -> List[Dict[str, Any]]:
    """Map category names to `{"id"}` references, or `{"name"}` for unknown names."""
    by_name = {category.name.lower(): category for category in known}
    resolved = []
    for name in names:
        match = by_name.get(name.strip().lower())
        resolved.append({"id": match.id} if match else {"name": name.strip()})
    return resolved


def _alt_for(draft: ProductDraft, index: int) -> str:
    image = draft.images[index]
    generated = draft.generated
    if generated and index < len(generated.image_alts) and generated.image_alts[index]:
        return generated.image_alts[index]
    return image.alt_text or (generated.name if generated else None) or draft.raw_name or ""


def build_payload(
    draft: ProductDraft,
    uploaded: List[Dict[str, Any]],
    categories: List[Category],
    status: str,
) -> Dict[str, Any]:
    """Assemble the neutral entry payload, preferring generated over raw fields."""
    generated = draft.generated
    payload: Dict[str, Any] = {
        "name": (generated.name if generated else None) or draft.raw_name,
        "price": format_price((generated.price_minor if generated else None) or draft.price_minor) or None,
        "images": [
            {"id": item["id"], "url": item.get("url") if draft.images[index].is_new_upload else None, "alt": _alt_for(draft, index)}
            for index, item in enumerate(uploaded)
        ],
        "status": status,
    }

    attributes = [
        {"name": attr["name"], "values": [attr["value"]]} for attr in (generated.attributes if generated else [])
    ]
    if draft.material and not any(attr["name"].lower() == MATERIAL_ATTRIBUTE.lower() for attr in attributes):
        attributes.append({"name": MATERIAL_ATTRIBUTE, "values": [draft.material]})
    if attributes:
        payload["attributes"] = attributes

    if generated:
        payload.update(
            {
                "sku": generated.sku,
                "slug": generated.slug,
                "description": generated.description,
                "short_description": generated.short_description,
                "categories": resolve_categories(generated.categories, categories),
                "tags": [{"name": tag} for tag in generated.tags],
                "meta_fields": [dict(meta) for meta in generated.meta_fields],
            }
        )
    return {key: value for key, value in payload.items() if value is not None}


async def save_or_update(
    draft: ProductDraft,
    context: ToolContext,
    status: str = "draft",
    apply_watermark: bool = False,
) -> ToolResult:
    """Upload pending images, then create or update the catalog entry.

    On success the session is closed so a repeated confirmation cannot create
    a duplicate entry. On failure the draft is left exactly as it was.
    """
    if draft.generated is None and draft.edit_target_id is None:
        return ToolResult(
            text="There is nothing to save yet. Reply 'optimize' to generate the listing first.",
            status="needs_input",
        )
    if status not in STATUSES:
        status = "draft"

    try:
        settings, categories = await asyncio.gather(context.settings.load(), context.commerce.list_categories())
        compositor: Optional[WatermarkCompositor] = None
        if apply_watermark and settings.watermark is not None:
            try:
                compositor = WatermarkCompositor(settings.watermark)
            except ValueError as exc:
                LOGGER.error("Watermark image unusable, uploading originals: %s", exc)

        uploaded = await upload_pending_images(
            draft.images,
            session_id=context.session_id,
            fetcher=context.fetcher,
            commerce=context.commerce,
            compositor=compositor,
        )
        payload = build_payload(draft, uploaded, categories, status)
        if draft.edit_target_id is not None:
            entry = await context.commerce.update_entry(draft.edit_target_id, payload)
        else:
            entry = await context.commerce.create_entry(payload)
    except ExternalServiceFailure as exc:
        LOGGER.error("Saving session %s failed: %s", context.session_id, exc)
        return failure_result(exc, "save the product")

    if draft.edit_target_id is not None:
        text = f"Success! I've updated the product '{entry.name}'."
    else:
        text = f"Success! I've created the product '{entry.name}' as a {status} entry."
    return ToolResult(text=text, close_session=True)
