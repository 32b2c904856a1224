"""Suggest new products from search-trend signals."""

from __future__ import annotations

import logging
from typing import Optional

from models.product_draft import ProductDraft
from services.errors import ExternalServiceFailure
from services.tools.base import ToolContext, ToolResult, failure_result

LOGGER = logging.getLogger(__name__)


async def suggest_products(draft: Optional[ProductDraft], context: ToolContext) -> ToolResult:
    """Return three ranked product ideas; the draft is never touched."""
    try:
        signals = await context.trends.top_queries()
        if signals is None:
            return ToolResult(
                text="I can't provide product suggestions because search trend data is not configured on the server.",
                status="needs_input",
            )
        if not signals:
            return ToolResult(text="I couldn't find any relevant search data to generate product suggestions right now.")
        suggestions = await context.generator.suggest(signals)
    except ExternalServiceFailure as exc:
        LOGGER.error("Product suggestions failed: %s", exc)
        return failure_result(exc, "get product suggestions")

    if not suggestions:
        return ToolResult(text="Based on the latest search data, I couldn't come up with any new product ideas at the moment.")

    lines = ["Based on recent search data, here are a few product ideas:", ""]
    for rank, idea in enumerate(suggestions, start=1):
        lines.append(f"{rank}. {idea['name']}: {idea['reason']}")
    return ToolResult(text="\n".join(lines))
