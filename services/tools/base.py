"""Shared types for the authoring tools.

Every tool is an async function `tool(draft, context, **arguments) -> ToolResult`.
Tools never mutate the draft they receive and never touch the session store;
a changed draft is returned in `ToolResult.draft` for the orchestrator to
persist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from models.catalog_entry import CatalogEntry, Category
from models.product_draft import GeneratedContent, ProductDraft
from models.store_settings import StoreContext, StoreSettings
from services.errors import ExternalServiceFailure, RateLimited
from services.image_fetcher import ImageFetcher

LOGGER = logging.getLogger(__name__)


class ToolName(str, Enum):
    """The closed set of operations the orchestrator can run."""

    UPDATE_DETAILS = "update_details"
    OPTIMIZE = "optimize"
    POST_TO_CHANNEL = "post_to_channel"
    SAVE_OR_UPDATE = "save_or_update"
    SUGGEST_PRODUCTS = "suggest_products"


@dataclass
class ToolCall:
    name: ToolName
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of a tool run.

    Attributes:
        text: Reply for the merchant.
        draft: Replacement draft, or None when the draft is unchanged.
        status: "ok", "needs_input" (precondition unmet), "error" or "rate_limited".
        close_session: True when the session should be deleted.
        retry_after: Seconds to wait before retrying a rate-limited call.
    """

    text: str
    draft: Optional[ProductDraft] = None
    status: str = "ok"
    close_session: bool = False
    retry_after: Optional[float] = None


class CommerceCollaborator(Protocol):
    async def get_entry(self, entry_id: int) -> Optional[CatalogEntry]: ...

    async def create_entry(self, payload: Dict[str, Any]) -> CatalogEntry: ...

    async def update_entry(self, entry_id: int, payload: Dict[str, Any]) -> CatalogEntry: ...

    async def list_categories(self) -> List[Category]: ...

    async def upload_image(self, image_bytes: bytes, name: str, mime_type: str = "image/jpeg") -> Dict[str, Any]: ...


class ContentCollaborator(Protocol):
    async def generate(self, draft: ProductDraft, context: StoreContext, images: Sequence[bytes]) -> GeneratedContent: ...

    async def suggest(self, trend_signals: List[Dict[str, Any]]) -> List[Dict[str, str]]: ...

    async def generate_post(
        self, entry: CatalogEntry, topic: str, tone: str, contact_links: Optional[Dict[str, str]] = None
    ) -> str: ...


class MessagingTransport(Protocol):
    async def send_text(self, chat_id: str | int, text: str) -> None: ...

    async def send_photo(self, chat_id: str | int, url: str, caption: str) -> None: ...

    async def send_album(self, chat_id: str | int, urls: List[str], caption: str) -> None: ...


class SettingsProvider(Protocol):
    async def load(self) -> StoreSettings: ...


class TrendProvider(Protocol):
    async def top_queries(self) -> Optional[List[Dict[str, Any]]]: ...


@dataclass
class ToolContext:
    """Collaborators and per-turn identifiers handed to every tool."""

    session_id: str
    commerce: CommerceCollaborator
    generator: ContentCollaborator
    settings: SettingsProvider
    trends: TrendProvider
    fetcher: ImageFetcher
    messaging: Optional[MessagingTransport] = None
    channel_id: Optional[str] = None


def failure_result(exc: ExternalServiceFailure, action: str) -> ToolResult:
    """Turn a collaborator failure into an apology, keeping the draft unchanged."""
    if isinstance(exc, RateLimited):
        wait = int(exc.retry_after) if exc.retry_after is not None else None
        hint = f" Please try again in {wait} seconds." if wait is not None else " Please try again shortly."
        return ToolResult(
            text=f"I'm being rate limited while trying to {action}.{hint}",
            status="rate_limited",
            retry_after=exc.retry_after,
        )
    return ToolResult(
        text=f"I'm sorry, I failed to {action}. The system reported an error: {exc.message}",
        status="error",
    )
