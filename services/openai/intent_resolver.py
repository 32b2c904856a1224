"""Classify a free-text merchant message into one authoring tool."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from openai import AsyncOpenAI

from models.product_draft import ProductDraft, parse_price
from services.openai import prompts
from services.openai.content_generator import DEFAULT_MODEL
from services.openai.content_schema import (
    OPTIMIZE_FUNCTION,
    SUGGEST_PRODUCTS_FUNCTION,
    UPDATE_DETAILS_FUNCTION,
)
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_text, first_function_call
from services.openai.response_utils import create_response
from services.tools.base import ToolCall, ToolName

LOGGER = logging.getLogger(__name__)

_FUNCTIONS: Dict[ToolName, Dict[str, Any]] = {
    ToolName.UPDATE_DETAILS: UPDATE_DETAILS_FUNCTION,
    ToolName.OPTIMIZE: OPTIMIZE_FUNCTION,
    ToolName.SUGGEST_PRODUCTS: SUGGEST_PRODUCTS_FUNCTION,
}

FALLBACK_REPLY = "Sorry, I didn't catch that. Could you rephrase?"


@dataclass
class IntentDecision:
    """Either a tool call or a plain reply, never both."""

    call: Optional[ToolCall] = None
    reply: str = ""


def _update_arguments(arguments: Dict[str, Any]) -> Dict[str, Any]:
    fields = {
        "raw_name": arguments.get("raw_name"),
        "price_minor": parse_price(arguments.get("price")),
        "material": arguments.get("material"),
        "localized_name": arguments.get("localized_name"),
        "focus_keywords": arguments.get("focus_keywords"),
    }
    return {key: value for key, value in fields.items() if value not in (None, "")}


class IntentResolver:
    """Ask the model which of the allowed tools, if any, the message calls for."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model

    async def resolve(self, draft: ProductDraft, message: str, allowed: Sequence[ToolName]) -> IntentDecision:
        tools = [_FUNCTIONS[name] for name in allowed if name in _FUNCTIONS]
        inputs = build_inputs(prompts.resolver_system_prompt(), prompts.resolver_user_prompt(draft, message))
        response = await create_response(
            self.client,
            purpose="intent resolution",
            model=self.model,
            input=inputs,
            tools=tools,
            tool_choice="auto",
        )

        call = first_function_call(response)
        if call is not None:
            try:
                name = ToolName(call["name"])
            except ValueError:
                name = None
            if name is not None and name in allowed:
                arguments = _update_arguments(call["arguments"]) if name == ToolName.UPDATE_DETAILS else {}
                return IntentDecision(call=ToolCall(name=name, arguments=arguments))
            LOGGER.warning("Resolver chose a tool outside the allowed set: %s", call["name"])

        return IntentDecision(reply=extract_text(response).strip() or FALLBACK_REPLY)
