import httpx
import pytest

from conftest import FakeResolver, entry_with_images
from models.product_draft import GeneratedContent, ImageRef, ProductDraft
from models.session_models import Scenario, TurnAction, TurnRequest
from services.dialogue.orchestrator import AWAITING_SAVE_TEXT, STORE_APOLOGY, WELCOME_TEXT, DialogueOrchestrator
from services.commerce.woocommerce_client import UNREADABLE_RESPONSE, WooCommerceClient
from services.dialogue.shortcuts import CONFIRMATION_KEYWORDS, extract_fields, is_confirmation
from services.errors import ExternalServiceFailure, RateLimited, StoreUnavailable
from services.openai.intent_resolver import IntentDecision
from services.tools.base import ToolCall, ToolName


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def orchestrator(store, resolver, commerce, generator, settings, trends, fetcher, messaging):
    return DialogueOrchestrator(
        store,
        resolver,
        commerce=commerce,
        generator=generator,
        settings=settings,
        trends=trends,
        fetcher=fetcher,
        messaging=messaging,
        channel_id="@channel",
    )


def turn(text=None, **kwargs):
    return TurnRequest(session_id="chat-1", text=text, **kwargs)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_first_empty_turn_is_welcome_and_persists(self, orchestrator, store):
        outcome = await orchestrator.handle_turn(turn())
        assert outcome.text == WELCOME_TEXT
        assert outcome.scenario == Scenario.WELCOME
        assert await store.has_session("chat-1")

    @pytest.mark.asyncio
    async def test_gathering_asks_for_missing_fields(self, orchestrator, store):
        await store.save("chat-1", ProductDraft(raw_name="Sofa"))
        outcome = await orchestrator.handle_turn(turn())
        assert outcome.scenario == Scenario.GATHERING
        assert "price" in outcome.text and "photo" in outcome.text

    @pytest.mark.asyncio
    async def test_gathering_extracts_fields_without_resolver(self, orchestrator, store, resolver, photo_bytes):
        outcome = await orchestrator.handle_turn(turn("name: Kids Bed\nprice: 4,200", images=[ImageRef(raw_bytes=photo_bytes)]))
        draft = await store.load("chat-1")
        assert draft.raw_name == "Kids Bed"
        assert draft.price_minor == 420000
        assert len(draft.images) == 1
        assert resolver.calls == []
        assert "optimize" in outcome.text

    @pytest.mark.asyncio
    async def test_gathering_falls_back_to_resolver(self, orchestrator, store, resolver):
        await store.save("chat-1", ProductDraft(raw_name="Sofa"))
        outcome = await orchestrator.handle_turn(turn("what can you do for me?"))
        assert resolver.calls == [("what can you do for me?", (ToolName.UPDATE_DETAILS, ToolName.SUGGEST_PRODUCTS))]
        assert outcome.text.startswith("Could you tell me more?")

    @pytest.mark.asyncio
    async def test_kids_bed_optimize(self, orchestrator, store, generator, ready_draft):
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn("optimize"))
        assert len(generator.generate_calls) == 1
        assert "Solid Wood Kids Bed" in outcome.text
        assert outcome.scenario == Scenario.READY_TO_OPTIMIZE
        assert (await store.load("chat-1")).generated.name == "Solid Wood Kids Bed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("keyword", sorted(CONFIRMATION_KEYWORDS))
    async def test_confirmation_bypasses_resolver(self, orchestrator, store, resolver, generator, ready_draft, keyword):
        await store.save("chat-1", ready_draft)
        await orchestrator.handle_turn(turn(f"  {keyword.upper()} "))
        assert resolver.calls == []
        assert len(generator.generate_calls) == 1

    @pytest.mark.asyncio
    async def test_ready_without_confirmation_consults_resolver(self, orchestrator, store, resolver, generator, ready_draft):
        resolver.decision = IntentDecision(call=ToolCall(ToolName.OPTIMIZE))
        await store.save("chat-1", ready_draft)
        await orchestrator.handle_turn(turn("sounds good, go ahead"))
        assert resolver.calls[0][1] == (ToolName.UPDATE_DETAILS, ToolName.OPTIMIZE, ToolName.SUGGEST_PRODUCTS)
        assert len(generator.generate_calls) == 1

    @pytest.mark.asyncio
    async def test_ready_without_input_shows_summary(self, orchestrator, store, ready_draft):
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn())
        assert "Kids Bed" in outcome.text
        assert "4200.00" in outcome.text

    @pytest.mark.asyncio
    async def test_awaiting_save_free_text_is_fixed_reply(self, orchestrator, store, resolver, ready_draft):
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn("please make it blue"))
        assert outcome.text == AWAITING_SAVE_TEXT
        assert outcome.scenario == Scenario.AWAITING_SAVE
        assert resolver.calls == []


class TestSaving:
    @pytest.mark.asyncio
    async def test_save_creates_draft_entry_and_deletes_session(self, orchestrator, store, commerce, ready_draft):
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn(action=TurnAction.SAVE))
        assert len(commerce.created) == 1
        assert commerce.created[0]["status"] == "draft"
        assert outcome.session_closed
        assert not await store.has_session("chat-1")

    @pytest.mark.asyncio
    async def test_publish_action(self, orchestrator, store, commerce, ready_draft):
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        await orchestrator.handle_turn(turn(action=TurnAction.PUBLISH))
        assert commerce.created[0]["status"] == "published"

    @pytest.mark.asyncio
    async def test_failed_save_keeps_session_for_retry(self, orchestrator, store, commerce, ready_draft):
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        before = (await store.load("chat-1")).to_dict()
        commerce.fail_with = ExternalServiceFailure("commerce", "Invalid SKU")
        outcome = await orchestrator.handle_turn(turn(action=TurnAction.SAVE))
        assert outcome.status == "error"
        assert "Invalid SKU" in outcome.text
        assert (await store.load("chat-1")).to_dict() == before

    @pytest.mark.asyncio
    async def test_rate_limited_save_is_typed_outcome(self, orchestrator, store, commerce, ready_draft):
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        commerce.fail_with = RateLimited("commerce", "Too many requests", 30)
        outcome = await orchestrator.handle_turn(turn(action=TurnAction.SAVE))
        assert outcome.status == "rate_limited"
        assert outcome.retry_after_seconds == 30
        assert await store.has_session("chat-1")


class TestEditing:
    @pytest.mark.asyncio
    async def test_load_for_edit_maps_entry(self, orchestrator, store, commerce):
        commerce.entries[42] = entry_with_images(2)
        outcome = await orchestrator.handle_turn(turn(edit_target_id=42))
        draft = await store.load("chat-1")
        assert outcome.scenario == Scenario.LOAD_FOR_EDIT
        assert "Oak Wardrobe" in outcome.text
        assert draft.edit_target_id == 42
        assert draft.price_minor == 1250000
        assert draft.material == "Oak"
        assert draft.focus_keywords == "oak wardrobe"
        assert [image.external_id for image in draft.images] == [1, 2]
        assert not any(image.is_new_upload for image in draft.images)

    @pytest.mark.asyncio
    async def test_switching_entries_resets_draft(self, orchestrator, store, commerce, ready_draft):
        commerce.entries[43] = entry_with_images(1, entry_id=43)
        ready_draft.edit_target_id = 42
        await store.save("chat-1", ready_draft)
        await orchestrator.handle_turn(turn(edit_target_id=43))
        draft = await store.load("chat-1")
        assert draft.edit_target_id == 43
        assert draft.raw_name == "Oak Wardrobe"

    @pytest.mark.asyncio
    async def test_missing_entry(self, orchestrator, store):
        outcome = await orchestrator.handle_turn(turn(edit_target_id=999))
        assert "999" in outcome.text
        assert (await store.load("chat-1")).edit_target_id is None

    @pytest.mark.asyncio
    async def test_channel_post_side_channel(self, orchestrator, store, commerce, messaging, ready_draft):
        commerce.entries[42] = entry_with_images(3)
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(
            turn(action=TurnAction.POST_TO_CHANNEL, edit_target_id=42, topic="New Arrival")
        )
        assert outcome.scenario == Scenario.CHANNEL_POST
        assert len(messaging.albums) == 1
        assert (await store.load("chat-1")).to_dict() == ready_draft.to_dict()


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_unavailable_is_generic_apology(self, orchestrator, store, generator):
        async def broken(session_id):
            raise StoreUnavailable("disk full")

        store.has_session = broken
        outcome = await orchestrator.handle_turn(turn("optimize"))
        assert outcome.text == STORE_APOLOGY
        assert outcome.status == "error"
        assert generator.generate_calls == []

    @pytest.mark.asyncio
    async def test_store_maintenance_page_is_apology(self, store, resolver, generator, settings, trends, fetcher, ready_draft):
        def handler(request):
            if request.url.path.endswith("/wp/v2/media"):
                return httpx.Response(201, json={"id": 77, "source_url": "https://shop.example/a.png"})
            if request.method == "GET":
                return httpx.Response(200, json=[])
            return httpx.Response(200, text="<html>maintenance</html>")

        woo = WooCommerceClient(
            "https://shop.example/wp-json/wc/v3", "ck", "cs", transport=httpx.MockTransport(handler)
        )
        orchestrator = DialogueOrchestrator(
            store, resolver, commerce=woo, generator=generator, settings=settings, trends=trends, fetcher=fetcher
        )
        ready_draft.generated = GeneratedContent(name="Solid Wood Kids Bed")
        await store.save("chat-1", ready_draft)
        before = (await store.load("chat-1")).to_dict()

        outcome = await orchestrator.handle_turn(turn(action=TurnAction.SAVE))
        assert outcome.status == "error"
        assert UNREADABLE_RESPONSE in outcome.text
        assert (await store.load("chat-1")).to_dict() == before

    @pytest.mark.asyncio
    async def test_unexpected_error_is_apology_and_keeps_draft(self, orchestrator, store, generator, ready_draft):
        generator.fail_with = KeyError("name")
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn("optimize"))
        assert outcome.text == STORE_APOLOGY
        assert outcome.status == "error"
        assert (await store.load("chat-1")).generated is None

    @pytest.mark.asyncio
    async def test_reset_discards_session_and_cached_bytes(self, orchestrator, store, fetcher, ready_draft):
        await store.save("chat-1", ready_draft)
        fetcher._cache[("chat-1", "img")] = (b"img", 0.0)
        assert await orchestrator.reset("chat-1")
        assert not await store.has_session("chat-1")
        assert fetcher._cache == {}

    @pytest.mark.asyncio
    async def test_reset_reports_unavailable_store(self, orchestrator, store):
        async def broken(session_id):
            raise StoreUnavailable("disk full")

        store.delete = broken
        assert not await orchestrator.reset("chat-1")

    @pytest.mark.asyncio
    async def test_product_ideas_side_channel(self, orchestrator, store, ready_draft):
        await store.save("chat-1", ready_draft)
        outcome = await orchestrator.handle_turn(turn(action=TurnAction.SUGGEST_PRODUCTS))
        assert outcome.scenario == Scenario.PRODUCT_IDEAS
        assert "Bunk Bed" in outcome.text
        assert (await store.load("chat-1")).raw_name == "Kids Bed"


class TestShortcuts:
    def test_confirmation_is_trimmed_and_case_insensitive(self):
        assert is_confirmation("  AI Optimize Now ")
        assert not is_confirmation("optimise please")

    def test_labelled_fields(self):
        fields = extract_fields("Name: Kids Bed; price: 4200 ETB; material: Pine; keywords: bed, kids", ProductDraft())
        assert fields == {
            "raw_name": "Kids Bed",
            "price_minor": 420000,
            "material": "Pine",
            "focus_keywords": "bed, kids",
        }

    def test_bare_number_is_price_while_gathering(self):
        assert extract_fields("4200", ProductDraft(raw_name="Sofa"), gathering=True) == {"price_minor": 420000}
        assert extract_fields("4200", ProductDraft(raw_name="Sofa")) == {}

    def test_plain_text_is_name_only_when_missing(self):
        assert extract_fields("Corner Sofa", ProductDraft(), gathering=True) == {"raw_name": "Corner Sofa"}
        assert extract_fields("Corner Sofa", ProductDraft(raw_name="Bed"), gathering=True) == {}
        assert extract_fields("yes", ProductDraft(), gathering=True) == {}
