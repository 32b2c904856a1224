"""Generate SEO content for a complete draft."""

from __future__ import annotations

import asyncio
import logging

from models.product_draft import GeneratedContent, ProductDraft, format_price
from models.store_settings import StoreContext
from services.errors import ExternalServiceFailure
from services.tools.base import ToolContext, ToolResult, failure_result

LOGGER = logging.getLogger(__name__)


def _preview(draft: ProductDraft, content: GeneratedContent) -> str:
    price = format_price(content.price_minor or draft.price_minor)
    if draft.edit_target_id is not None:
        header = f"I've refreshed the content for '{content.name}'. Review it below and use Update to save the changes."
    else:
        header = f"Here's the optimized listing for '{content.name}'. Review it below, then Save as draft or Publish."
    lines = [
        header,
        "",
        f"Name: {content.name}",
        f"Price: {price}",
        f"Categories: {', '.join(content.categories) or '-'}",
        f"Tags: {', '.join(content.tags) or '-'}",
    ]
    if content.short_description:
        lines.extend(["", content.short_description])
    return "\n".join(lines)


async def optimize(draft: ProductDraft, context: ToolContext) -> ToolResult:
    """Call the content generator and replace `generated` wholesale.

    Fails closed: when the name, price or photos are missing, no external
    call is made and a clarifying question is returned instead.
    """
    missing = draft.missing_fields()
    if missing:
        return ToolResult(
            text=f"Before I can optimize, I need the {' and '.join(missing)}.",
            status="needs_input",
        )

    try:
        images, categories, settings, trends = await asyncio.gather(
            context.fetcher.bytes_for_all(context.session_id, draft.images),
            context.commerce.list_categories(),
            context.settings.load(),
            context.trends.top_queries(),
        )
        store_context = StoreContext(
            contact_links=settings.contact_links(),
            keyword_guide=settings.keyword_guide,
            categories=categories,
            trend_signals=trends or [],
        )
        content = await context.generator.generate(draft, store_context, images)
    except ExternalServiceFailure as exc:
        LOGGER.error("Optimization failed for session %s: %s", context.session_id, exc)
        return failure_result(exc, "optimize the product")

    updated = draft.clone()
    updated.generated = content
    return ToolResult(text=_preview(draft, content), draft=updated)
