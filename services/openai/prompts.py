"""Prompt builders for catalog content, product ideas, channel posts and intent resolution."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from models.product_draft import ProductDraft, format_price
from models.catalog_entry import CatalogEntry
from models.store_settings import StoreContext


def content_system_prompt() -> str:
    """Return the system prompt for catalog content generation."""
    return (
        "You are a specialized e-commerce content optimizer for a furniture store in Addis Ababa, Ethiopia. "
        "Produce complete, SEO-optimized catalog content. Weave relevant Amharic keywords naturally into the "
        "description for local search, keep claims grounded in the photos and merchant details, and never "
        "invent contact details that were not supplied."
    )


def content_user_prompt(image_count: int, is_edit: bool) -> str:
    """Return the generation instructions tailored to the number of photos."""
    action = "refresh the existing catalog entry" if is_edit else "create a new catalog entry"
    return (
        f"Use the merchant details and {image_count} photo(s) to {action}. "
        "Pick one focus keyphrase from the keywords and search trends; put it in the title, the first paragraph "
        "of the description, the _yoast_wpseo_focuskw meta field and the _yoast_wpseo_metadesc meta description. "
        "Link the primary category page inside the description and link the supplied contact channels. "
        f"Return exactly {image_count} image alt text(s), in photo order. "
        "Choose categories from the provided list when one fits."
    )


def content_context(draft: ProductDraft, context: StoreContext) -> str:
    """Render the draft and store context as a text block for the model."""
    primary = context.primary_category
    lines = [
        "## Merchant Details",
        f"Raw Name: {draft.raw_name or ''}",
        f"Price: {format_price(draft.price_minor)}",
        f"Material: {draft.material or 'Not provided'}",
        f"Localized Name: {draft.localized_name or 'Not provided'}",
        f"Focus Keywords: {draft.focus_keywords or 'Not provided'}",
        "",
        "## Contact Links",
        json.dumps(context.contact_links, ensure_ascii=False) if context.contact_links else "None provided.",
        "",
        "## Keyword Guide",
        context.keyword_guide or "None provided.",
        "",
        "## Primary Category",
        f"{primary.name} (/product-category/{primary.slug}/)" if primary else "None.",
        "",
        "## Available Categories",
        ", ".join(category.name for category in context.categories) or "None.",
    ]
    if context.trend_signals:
        lines.extend(["", "## Recent Search Trends", json.dumps(context.trend_signals, ensure_ascii=False)])
    return "\n".join(lines)


def suggest_system_prompt() -> str:
    return (
        "You are a product strategist for a furniture e-commerce company in Addis Ababa, Ethiopia. "
        "Analyze real search queries, clicks and impressions to find gaps and trending interests."
    )


def suggest_user_prompt(trend_signals: List[Dict[str, Any]]) -> str:
    return (
        "Suggest exactly three new products the company should create, best first. "
        "Give each a compelling name and a short, data-driven reason.\n\n"
        "Top user queries:\n" + json.dumps(trend_signals, ensure_ascii=False)
    )


def post_system_prompt() -> str:
    return (
        "You are a social media marketing expert for a furniture company in Addis Ababa, Ethiopia. "
        "Write Telegram channel posts that mix English and Amharic naturally."
    )


def post_user_prompt(entry: CatalogEntry, topic: str, tone: str, contact_links: Optional[Dict[str, str]] = None) -> str:
    """Return channel-post instructions for the chosen tone."""
    if tone == "playful":
        style = "Use an engaging, emoji-rich format that focuses on lifestyle and appeal."
    else:
        style = (
            "Use a clear, structured format: one line per detail, each starting with an arrow, "
            "labels in English and Amharic, followed by contact lines and hashtags."
        )
    attributes = "; ".join(f"{attr.get('name')}: {', '.join(attr.get('values') or [])}" for attr in entry.attributes)
    return "\n".join(
        [
            f"Topic/Angle: {topic}",
            f"Desired Tone: {tone}. {style}",
            "",
            "Product Information:",
            f"- Name: {entry.name}",
            f"- SKU: {entry.sku or 'n/a'}",
            f"- Price: {entry.price} ETB",
            f"- Link: {entry.permalink or 'n/a'}",
            f"- Description: {entry.short_description}",
            f"- Attributes: {attributes or 'n/a'}",
            f"- Contact: {json.dumps(contact_links or {}, ensure_ascii=False)}",
            "",
            "Caption limits apply, keep it under 1000 characters.",
        ]
    )


def resolver_system_prompt() -> str:
    """Return the system prompt for classifying a merchant message into a tool."""
    return (
        "You route messages from a merchant who is creating a product listing in a chat. "
        "Call exactly one of the provided functions when the message asks for it; otherwise reply with one "
        "short, friendly sentence that moves the listing forward. Never invent product details."
    )


def resolver_user_prompt(draft: ProductDraft, message: str) -> str:
    missing = draft.missing_fields()
    state = (
        f"Name: {draft.raw_name or '-'}; Price: {format_price(draft.price_minor) or '-'}; "
        f"Photos: {len(draft.images)}; Missing: {', '.join(missing) or 'nothing'}"
    )
    return f"Current listing: {state}\n\nMerchant message: {message}"
