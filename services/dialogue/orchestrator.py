"""Conversation state machine for authoring catalog entries.

Each turn is evaluated fresh: the draft is loaded from the injected session
store, a scenario is selected from the draft and the incoming request, zero or
more tools run against an in-memory copy, and the result is written back (or
the session is deleted after a successful save) before the reply is returned.
Deterministic shortcuts are always tried before the intent resolver.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from models.product_draft import ProductDraft, format_price
from models.session_models import Scenario, TurnAction, TurnOutcome, TurnRequest
from services.dialogue.entry_mapper import draft_from_entry
from services.dialogue.scenarios import needs_reload, select_scenario
from services.dialogue.shortcuts import extract_fields, is_confirmation
from services.errors import ExternalServiceFailure, StoreUnavailable
from services.image_fetcher import ImageFetcher
from services.session_store import SessionStore
from services.tools.base import (
    CommerceCollaborator,
    ContentCollaborator,
    MessagingTransport,
    SettingsProvider,
    ToolCall,
    ToolContext,
    ToolName,
    ToolResult,
    TrendProvider,
    failure_result,
)
from services.tools.registry import run_tool
from services.tools.update_details import merge_details

LOGGER = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Hello! I can help you create a new product listing. "
    "Send me the product name, the price and at least one photo."
)
AWAITING_SAVE_TEXT = "Use the Save as draft or Publish action to push this listing to the store."
STORE_APOLOGY = "Sorry, something went wrong on our side and your message could not be processed. Please try again."

GATHERING_TOOLS = (ToolName.UPDATE_DETAILS, ToolName.SUGGEST_PRODUCTS)
READY_TOOLS = (ToolName.UPDATE_DETAILS, ToolName.OPTIMIZE, ToolName.SUGGEST_PRODUCTS)


class IntentClassifier(Protocol):
    async def resolve(self, draft: ProductDraft, message: str, allowed: Sequence[ToolName]): ...


def _summary(draft: ProductDraft) -> str:
    lines = [
        "Here's what I have so far:",
        f"Name: {draft.raw_name}",
        f"Price: {format_price(draft.price_minor)}",
        f"Photos: {len(draft.images)}",
    ]
    if draft.material:
        lines.append(f"Material: {draft.material}")
    if draft.focus_keywords:
        lines.append(f"Keywords: {draft.focus_keywords}")
    lines.append("Shall I run the AI optimization now? Reply 'yes' to proceed.")
    return "\n".join(lines)


def _combine(first: ToolResult, second: ToolResult) -> ToolResult:
    return ToolResult(
        text=f"{first.text}\n\n{second.text}",
        draft=second.draft or first.draft,
        status=second.status,
        close_session=second.close_session,
        retry_after=second.retry_after,
    )


class DialogueOrchestrator:
    """Run one conversation turn against a session store and a fixed tool set."""

    def __init__(
        self,
        store: SessionStore,
        resolver: IntentClassifier,
        *,
        commerce: CommerceCollaborator,
        generator: ContentCollaborator,
        settings: SettingsProvider,
        trends: TrendProvider,
        fetcher: ImageFetcher,
        messaging: Optional[MessagingTransport] = None,
        channel_id: Optional[str] = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.commerce = commerce
        self.generator = generator
        self.settings = settings
        self.trends = trends
        self.fetcher = fetcher
        self.messaging = messaging
        self.channel_id = channel_id

    def _context(self, session_id: str) -> ToolContext:
        return ToolContext(
            session_id=session_id,
            commerce=self.commerce,
            generator=self.generator,
            settings=self.settings,
            trends=self.trends,
            fetcher=self.fetcher,
            messaging=self.messaging,
            channel_id=self.channel_id,
        )

    async def handle_turn(self, request: TurnRequest) -> TurnOutcome:
        """Process one turn. Never raises; every failure becomes a reply."""
        try:
            return await self._handle(request)
        except StoreUnavailable as exc:
            LOGGER.error("Session store unavailable for %s: %s", request.session_id, exc)
            return TurnOutcome(text=STORE_APOLOGY, status="error")
        except Exception:
            # Nothing is persisted before _finish, so the stored draft is unchanged
            LOGGER.exception("Unexpected failure handling turn for %s", request.session_id)
            return TurnOutcome(text=STORE_APOLOGY, status="error")

    async def reset(self, session_id: str) -> bool:
        """Discard the session and its cached image bytes; False if the store is unavailable."""
        self.fetcher.forget(session_id)
        try:
            await self.store.delete(session_id)
        except StoreUnavailable as exc:
            LOGGER.error("Could not reset session %s: %s", session_id, exc)
            return False
        return True

    async def _handle(self, request: TurnRequest) -> TurnOutcome:
        session_id = request.session_id
        has_prior = await self.store.has_session(session_id)
        draft = await self.store.load(session_id)
        context = self._context(session_id)

        if request.action not in (TurnAction.SUGGEST_PRODUCTS, TurnAction.POST_TO_CHANNEL) and needs_reload(draft, request):
            if not draft.is_empty() or draft.edit_target_id is not None:
                LOGGER.info("Session %s switches to entry %s; discarding draft", session_id, request.edit_target_id)
                self.fetcher.forget(session_id)
            draft = ProductDraft()

        scenario = select_scenario(draft, request, has_prior)
        LOGGER.info("Session %s turn handled as %s", session_id, scenario.value)

        if scenario == Scenario.WELCOME:
            result = ToolResult(text=WELCOME_TEXT)
        elif scenario == Scenario.PRODUCT_IDEAS:
            result = await run_tool(ToolCall(ToolName.SUGGEST_PRODUCTS), draft, context)
        elif scenario == Scenario.CHANNEL_POST:
            result = await self._post_to_channel(draft, request, context)
        elif scenario == Scenario.LOAD_FOR_EDIT:
            result = await self._load_for_edit(draft, request, context)
        else:
            result = await self._respond(scenario, draft, request, context)

        return await self._finish(session_id, scenario, draft, result)

    async def _finish(self, session_id: str, scenario: Scenario, draft: ProductDraft, result: ToolResult) -> TurnOutcome:
        if result.close_session:
            await self.store.delete(session_id)
            self.fetcher.forget(session_id)
        else:
            await self.store.save(session_id, result.draft or draft)

        status = result.status if result.status in ("rate_limited", "error") else "ok"
        return TurnOutcome(
            text=result.text,
            status=status,
            scenario=scenario,
            retry_after_seconds=result.retry_after if status == "rate_limited" else None,
            session_closed=result.close_session,
        )

    async def _respond(self, scenario: Scenario, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        if request.action in (TurnAction.SAVE, TurnAction.PUBLISH):
            status = "published" if request.action == TurnAction.PUBLISH else "draft"
            arguments = {"status": status, "apply_watermark": request.apply_watermark}
            return await run_tool(ToolCall(ToolName.SAVE_OR_UPDATE, arguments), draft, context)
        if scenario == Scenario.AWAITING_SAVE:
            return await self._awaiting_save(draft, request, context)
        if scenario == Scenario.READY_TO_OPTIMIZE:
            return await self._ready_to_optimize(draft, request, context)
        return await self._gathering(draft, request, context)

    async def _load_for_edit(self, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        entry_id = request.edit_target_id
        try:
            entry = await self.commerce.get_entry(entry_id)
        except ExternalServiceFailure as exc:
            LOGGER.error("Loading entry %s failed: %s", entry_id, exc)
            return failure_result(exc, f"load product {entry_id}")
        if entry is None:
            return ToolResult(text=f"I couldn't find product {entry_id} in the store.", status="needs_input")

        loaded = draft_from_entry(entry)
        result = ToolResult(
            text=(
                f"I've loaded '{entry.name}' ({format_price(loaded.price_minor)}, {len(loaded.images)} photo(s)) "
                "for editing. Tell me what to change, or reply 'optimize' to refresh its content."
            ),
            draft=loaded,
        )
        if not request.has_input() and request.action == TurnAction.MESSAGE:
            return result

        follow_up = TurnRequest(
            session_id=request.session_id,
            text=request.text,
            images=list(request.images),
            action=request.action,
            edit_target_id=loaded.edit_target_id,
            apply_watermark=request.apply_watermark,
        )
        scenario = select_scenario(loaded, follow_up, True)
        return _combine(result, await self._respond(scenario, loaded, follow_up, context))

    async def _post_to_channel(self, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        target = request.edit_target_id or draft.edit_target_id
        working = draft.clone()
        working.edit_target_id = target
        arguments = {"topic": request.topic, "tone": request.tone}
        result = await run_tool(ToolCall(ToolName.POST_TO_CHANNEL, arguments), working, context)
        # Posting never changes the conversation draft
        result.draft = None
        return result

    async def _gathering(self, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        fields = extract_fields(request.cleaned_text, draft, gathering=True)
        if request.images:
            fields["images"] = list(request.images)
        if fields:
            return await run_tool(ToolCall(ToolName.UPDATE_DETAILS, fields), draft, context)
        if request.cleaned_text:
            missing = " and ".join(draft.missing_fields())
            return await self._resolve(draft, request.cleaned_text, GATHERING_TOOLS, context, f"I still need the {missing}.")
        return ToolResult(text=f"To create the listing I still need the {' and '.join(draft.missing_fields())}.")

    async def _ready_to_optimize(self, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        text = request.cleaned_text
        if is_confirmation(text):
            working = merge_details(draft, {"images": list(request.images)}) if request.images else draft
            return await run_tool(ToolCall(ToolName.OPTIMIZE), working, context)

        fields = extract_fields(text, draft)
        if request.images:
            fields["images"] = list(request.images)
        if fields:
            return await run_tool(ToolCall(ToolName.UPDATE_DETAILS, fields), draft, context)
        if not text:
            return ToolResult(text=_summary(draft))

        return await self._resolve(draft, text, READY_TOOLS, context, _summary(draft))

    async def _awaiting_save(self, draft: ProductDraft, request: TurnRequest, context: ToolContext) -> ToolResult:
        if request.images:
            result = await run_tool(ToolCall(ToolName.UPDATE_DETAILS, {"images": list(request.images)}), draft, context)
            return ToolResult(text=f"{result.text}\n{AWAITING_SAVE_TEXT}", draft=result.draft)
        return ToolResult(text=AWAITING_SAVE_TEXT)

    async def _resolve(
        self,
        draft: ProductDraft,
        text: str,
        allowed: Sequence[ToolName],
        context: ToolContext,
        reply_suffix: str = "",
    ) -> ToolResult:
        try:
            decision = await self.resolver.resolve(draft, text, allowed)
        except ExternalServiceFailure as exc:
            LOGGER.error("Intent resolution failed for session %s: %s", context.session_id, exc)
            return failure_result(exc, "understand your message")
        if decision.call is None:
            reply = f"{decision.reply}\n\n{reply_suffix}" if reply_suffix else decision.reply
            return ToolResult(text=reply)
        return await run_tool(decision.call, draft, context)
