"""Dispatch a `ToolCall` to the tool it names."""

import logging
from typing import Awaitable, Callable, Dict

from models.product_draft import ProductDraft
from services.tools.base import ToolCall, ToolContext, ToolName, ToolResult
from services.tools.optimize import optimize
from services.tools.post_to_channel import post_to_channel
from services.tools.save_or_update import save_or_update
from services.tools.suggest_products import suggest_products
from services.tools.update_details import update_details

LOGGER = logging.getLogger(__name__)

ToolFunction = Callable[..., Awaitable[ToolResult]]

TOOLS: Dict[ToolName, ToolFunction] = {
    ToolName.UPDATE_DETAILS: update_details,
    ToolName.OPTIMIZE: optimize,
    ToolName.POST_TO_CHANNEL: post_to_channel,
    ToolName.SAVE_OR_UPDATE: save_or_update,
    ToolName.SUGGEST_PRODUCTS: suggest_products,
}


async def run_tool(call: ToolCall, draft: ProductDraft, context: ToolContext) -> ToolResult:
    LOGGER.info("Running tool %s for session %s", call.name.value, context.session_id)
    return await TOOLS[call.name](draft, context, **call.arguments)
