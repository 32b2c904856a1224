"""Announce an existing catalog entry on the messaging channel."""

from __future__ import annotations

import logging
from typing import Optional

from models.product_draft import ProductDraft
from services.errors import ExternalServiceFailure
from services.tools.base import ToolContext, ToolResult, failure_result

LOGGER = logging.getLogger(__name__)
ALBUM_LIMIT = 10
TONES = ("descriptive", "playful")


async def post_to_channel(
    draft: ProductDraft,
    context: ToolContext,
    topic: Optional[str] = None,
    tone: str = "descriptive",
) -> ToolResult:
    """Generate a post for the entry being edited and send it with its photos.

    One photo is sent as a captioned photo. Two or more are sent as a single
    album (first ten only) with the caption on the first item, since the
    transport cannot caption a whole album.
    """
    if draft.edit_target_id is None:
        return ToolResult(text="Load a saved product first, then I can post it to the channel.", status="needs_input")
    if not topic or not topic.strip():
        return ToolResult(text="What should the post be about? For example 'New Arrival' or 'Special Offer'.", status="needs_input")
    if context.messaging is None or not context.channel_id:
        return ToolResult(text="Channel posting is not configured on the server.", status="needs_input")
    if tone not in TONES:
        tone = "descriptive"

    try:
        entry = await context.commerce.get_entry(draft.edit_target_id)
        if entry is None:
            return ToolResult(text=f"I couldn't find product {draft.edit_target_id} in the store.", status="needs_input")
        urls = [image.url for image in entry.images if image.url]
        if not urls:
            return ToolResult(text=f"'{entry.name}' has no photos to post.", status="needs_input")

        settings = await context.settings.load()
        caption = await context.generator.generate_post(entry, topic.strip(), tone, settings.contact_links())

        if len(urls) == 1:
            await context.messaging.send_photo(context.channel_id, urls[0], caption)
        else:
            await context.messaging.send_album(context.channel_id, urls[:ALBUM_LIMIT], caption)
    except ExternalServiceFailure as exc:
        LOGGER.error("Channel post failed for entry %s: %s", draft.edit_target_id, exc)
        return failure_result(exc, "post to the channel")

    sent = min(len(urls), ALBUM_LIMIT)
    return ToolResult(text=f"Posted '{entry.name}' to the channel with {sent} photo(s).")
