"""Catalog content generation using OpenAI's Responses API.

Three operations back the authoring tools:
- `generate` turns a draft, its photos and the store context into a complete
  `GeneratedContent` through a strict function-tool call;
- `suggest` ranks three new product ideas from search-trend signals;
- `generate_post` writes a channel announcement for an existing entry.
"""

import logging
import os
from typing import Any, Dict, List, Sequence

from openai import AsyncOpenAI

from models.catalog_entry import CatalogEntry
from models.product_draft import GeneratedContent, ProductDraft, parse_price
from models.store_settings import StoreContext
from services.errors import ExternalServiceFailure
from services.openai import prompts
from services.openai.content_schema import CONTENT_FUNCTION, POST_FUNCTION, SUGGEST_FUNCTION
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_usage, parse_function_call
from services.openai.response_utils import SERVICE, create_response

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-5")


class ContentGenerator:
    """Generate catalog content, product ideas and channel posts."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model

    async def _call_function(self, inputs: List[Dict[str, Any]], function: Dict[str, Any], purpose: str) -> Dict[str, Any]:
        response = await create_response(
            self.client,
            purpose=purpose,
            model=self.model,
            input=inputs,
            tools=[function],
            tool_choice={"type": "function", "name": function["name"]},
        )
        try:
            arguments = parse_function_call(response, tool_name=function["name"])
        except Exception as exc:
            LOGGER.error("Error parsing OpenAI response for %s: %s", purpose, exc)
            LOGGER.error("Full response object: %r", response)
            raise ExternalServiceFailure(SERVICE, "The content generator returned an unreadable answer.") from exc
        LOGGER.info("%s usage: %s", purpose.capitalize(), extract_usage(response))
        return arguments

    async def generate(
        self,
        draft: ProductDraft,
        context: StoreContext,
        images: Sequence[bytes],
    ) -> GeneratedContent:
        """Return fresh content for `draft`; never a partial result."""
        inputs = build_inputs(
            prompts.content_system_prompt(),
            prompts.content_user_prompt(len(images), draft.edit_target_id is not None),
            context_text=prompts.content_context(draft, context),
            images=images,
        )
        arguments = await self._call_function(inputs, CONTENT_FUNCTION, "catalog content")
        if not arguments.get("name"):
            raise ExternalServiceFailure(SERVICE, "The content generator did not return a product name.")
        return GeneratedContent(
            name=arguments["name"],
            description=arguments.get("description") or "",
            short_description=arguments.get("short_description") or "",
            sku=arguments.get("sku") or None,
            slug=arguments.get("slug") or None,
            tags=list(arguments.get("tags") or []),
            categories=list(arguments.get("categories") or []),
            attributes=[
                {"name": attr["name"], "value": attr["value"]} for attr in arguments.get("attributes") or []
            ],
            image_alts=list(arguments.get("image_alts") or []),
            meta_fields=[{"key": meta["key"], "value": meta["value"]} for meta in arguments.get("meta_fields") or []],
            price_minor=parse_price(arguments.get("regular_price")),
        )

    async def suggest(self, trend_signals: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """Return up to three `{"name", "reason"}` ideas, best first."""
        inputs = build_inputs(prompts.suggest_system_prompt(), prompts.suggest_user_prompt(trend_signals))
        arguments = await self._call_function(inputs, SUGGEST_FUNCTION, "product ideas")
        suggestions = [
            {"name": item.get("name", ""), "reason": item.get("reason", "")}
            for item in arguments.get("suggestions") or []
            if item.get("name")
        ]
        return suggestions[:3]

    async def generate_post(
        self,
        entry: CatalogEntry,
        topic: str,
        tone: str,
        contact_links: Dict[str, str] | None = None,
    ) -> str:
        inputs = build_inputs(
            prompts.post_system_prompt(), prompts.post_user_prompt(entry, topic, tone, contact_links)
        )
        arguments = await self._call_function(inputs, POST_FUNCTION, "channel post")
        content = (arguments.get("content") or "").strip()
        if not content:
            raise ExternalServiceFailure(SERVICE, "The content generator returned an empty post.")
        return content
