import io

import pytest
from PIL import Image

from conftest import FakeTrends, entry_with_images, make_image
from models.catalog_entry import Category
from models.product_draft import GeneratedContent, ImageRef, ProductDraft
from models.store_settings import StoreSettings, WatermarkSpec
from services.errors import ExternalServiceFailure, RateLimited
from services.tools.optimize import optimize
from services.tools.post_to_channel import post_to_channel
from services.tools.save_or_update import resolve_categories, save_or_update
from services.tools.suggest_products import suggest_products
from services.tools.update_details import update_details


def optimized(draft: ProductDraft) -> ProductDraft:
    draft = draft.clone()
    draft.generated = GeneratedContent(
        name="Solid Wood Kids Bed",
        categories=["beds", "Bedroom Sets"],
        tags=["kids bed"],
        image_alts=["Front view"],
        attributes=[{"name": "Color", "value": "Natural"}],
    )
    return draft


class TestUpdateDetails:
    @pytest.mark.asyncio
    async def test_only_supplied_fields_change(self, ready_draft):
        ready_draft.material = "Pine"
        result = await update_details(ready_draft, price_minor=150000)
        assert result.draft.price_minor == 150000
        assert result.draft.raw_name == "Kids Bed"
        assert result.draft.material == "Pine"
        assert len(result.draft.images) == 1
        assert ready_draft.price_minor == 420000

    @pytest.mark.asyncio
    async def test_null_fields_are_ignored(self, ready_draft):
        result = await update_details(ready_draft, raw_name=None, material="  ")
        assert result.draft.raw_name == "Kids Bed"
        assert result.draft.material is None

    @pytest.mark.asyncio
    async def test_lists_missing_fields(self):
        result = await update_details(ProductDraft(), raw_name="Sofa")
        assert "price" in result.text
        assert "photo" in result.text
        assert result.status == "ok"


class TestOptimize:
    @pytest.mark.asyncio
    async def test_precondition_makes_no_external_call(self, tool_context, generator):
        result = await optimize(ProductDraft(raw_name="Kids Bed"), tool_context)
        assert result.status == "needs_input"
        assert result.draft is None
        assert generator.generate_calls == []

    @pytest.mark.asyncio
    async def test_generated_replaced_and_preview_names_it(self, tool_context, ready_draft):
        result = await optimize(ready_draft, tool_context)
        assert result.draft.generated.name == "Solid Wood Kids Bed"
        assert "Solid Wood Kids Bed" in result.text
        assert ready_draft.generated is None

    @pytest.mark.asyncio
    async def test_edit_wording(self, tool_context, ready_draft):
        ready_draft.edit_target_id = 42
        result = await optimize(ready_draft, tool_context)
        assert "refreshed" in result.text

    @pytest.mark.asyncio
    async def test_generator_failure_is_an_apology(self, tool_context, generator, ready_draft):
        generator.fail_with = ExternalServiceFailure("generation", "model overloaded")
        result = await optimize(ready_draft, tool_context)
        assert result.status == "error"
        assert "model overloaded" in result.text
        assert result.draft is None

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self, tool_context, generator, ready_draft):
        generator.fail_with = RateLimited("generation", "slow down", 17)
        result = await optimize(ready_draft, tool_context)
        assert result.status == "rate_limited"
        assert result.retry_after == 17
        assert "17 seconds" in result.text


class TestPostToChannel:
    def _draft(self):
        return ProductDraft(edit_target_id=42)

    @pytest.mark.asyncio
    async def test_single_image_sends_one_photo(self, tool_context, commerce, messaging):
        commerce.entries[42] = entry_with_images(1)
        result = await post_to_channel(self._draft(), tool_context, topic="New Arrival")
        assert result.status == "ok"
        assert len(messaging.photos) == 1
        assert messaging.albums == []
        assert messaging.photos[0][2] == "New Arrival: Oak Wardrobe"

    @pytest.mark.asyncio
    async def test_several_images_send_one_album(self, tool_context, commerce, messaging):
        commerce.entries[42] = entry_with_images(5)
        await post_to_channel(self._draft(), tool_context, topic="Special Offer", tone="playful")
        assert messaging.photos == []
        assert len(messaging.albums) == 1
        assert len(messaging.albums[0][1]) == 5

    @pytest.mark.asyncio
    async def test_album_capped_at_ten(self, tool_context, commerce, messaging):
        commerce.entries[42] = entry_with_images(12)
        result = await post_to_channel(self._draft(), tool_context, topic="Sale")
        urls = messaging.albums[0][1]
        assert urls == [f"https://shop.example/img/{i}.jpg" for i in range(10)]
        assert "10 photo(s)" in result.text

    @pytest.mark.asyncio
    async def test_requires_edit_target_and_topic(self, tool_context, messaging):
        assert (await post_to_channel(ProductDraft(), tool_context, topic="x")).status == "needs_input"
        assert (await post_to_channel(self._draft(), tool_context, topic=" ")).status == "needs_input"
        assert messaging.photos == [] and messaging.albums == []

    @pytest.mark.asyncio
    async def test_entry_without_images(self, tool_context, commerce, generator):
        commerce.entries[42] = entry_with_images(0)
        result = await post_to_channel(self._draft(), tool_context, topic="Sale")
        assert result.status == "needs_input"
        assert generator.post_calls == []


class TestSaveOrUpdate:
    @pytest.mark.asyncio
    async def test_create_as_draft_closes_session(self, tool_context, commerce, ready_draft):
        result = await save_or_update(optimized(ready_draft), tool_context, status="draft")
        assert len(commerce.created) == 1
        payload = commerce.created[0]
        assert payload["status"] == "draft"
        assert payload["name"] == "Solid Wood Kids Bed"
        assert payload["price"] == "4200.00"
        assert payload["categories"] == [{"id": 7}, {"name": "Bedroom Sets"}]
        assert payload["images"][0]["alt"] == "Front view"
        assert result.close_session
        assert "Solid Wood Kids Bed" in result.text

    @pytest.mark.asyncio
    async def test_uploads_only_images_without_ids(self, tool_context, commerce, ready_draft):
        draft = optimized(ready_draft)
        draft.images.append(ImageRef(external_id=5, url="https://shop.example/5.jpg", is_new_upload=False))
        await save_or_update(draft, tool_context)
        assert len(commerce.uploads) == 1
        assert [image["id"] for image in commerce.created[0]["images"]] == [101, 5]

    @pytest.mark.asyncio
    async def test_update_existing_entry(self, tool_context, commerce, ready_draft):
        ready_draft.edit_target_id = 42
        ready_draft.material = "Pine"
        result = await save_or_update(ready_draft, tool_context, status="published")
        entry_id, payload = commerce.updated[0]
        assert entry_id == 42
        assert payload["status"] == "published"
        assert {"name": "Material", "values": ["Pine"]} in payload["attributes"]
        assert commerce.created == []
        assert "updated" in result.text

    @pytest.mark.asyncio
    async def test_failure_leaves_draft_unchanged(self, tool_context, commerce, ready_draft):
        draft = optimized(ready_draft)
        before = draft.to_dict()
        commerce.fail_with = ExternalServiceFailure("commerce", "Invalid SKU")
        result = await save_or_update(draft, tool_context)
        assert not result.close_session
        assert result.draft is None
        assert result.status == "error"
        assert "Invalid SKU" in result.text
        assert draft.to_dict() == before

    @pytest.mark.asyncio
    async def test_nothing_to_save(self, tool_context, commerce):
        result = await save_or_update(ProductDraft(raw_name="x"), tool_context)
        assert result.status == "needs_input"
        assert commerce.created == []

    @pytest.mark.asyncio
    async def test_watermark_applied_before_upload(self, tool_context, commerce, ready_draft):
        mark = make_image((20, 20), (255, 0, 0, 255), mode="RGBA")
        tool_context.settings.settings = StoreSettings(watermark=WatermarkSpec(image_bytes=mark))
        await save_or_update(optimized(ready_draft), tool_context, apply_watermark=True)
        upload = commerce.uploads[0]
        assert upload["mime_type"] == "image/jpeg"
        assert upload["name"].endswith(".jpg")
        with Image.open(io.BytesIO(upload["bytes"])) as img:
            assert img.format == "JPEG"

    @pytest.mark.asyncio
    async def test_without_watermark_original_bytes_uploaded(self, tool_context, commerce, ready_draft, photo_bytes):
        await save_or_update(optimized(ready_draft), tool_context, apply_watermark=False)
        assert commerce.uploads[0]["bytes"] == photo_bytes
        assert commerce.uploads[0]["mime_type"] == "image/png"

    def test_resolve_categories(self):
        known = [Category(id=1, name="Sofas"), Category(id=2, name="Beds")]
        assert resolve_categories(["beds ", "Lamps"], known) == [{"id": 2}, {"name": "Lamps"}]


class TestSuggestProducts:
    @pytest.mark.asyncio
    async def test_three_ranked_ideas(self, tool_context):
        result = await suggest_products(None, tool_context)
        assert "1. Bunk Bed" in result.text
        assert "3. Study Desk" in result.text
        assert result.draft is None

    @pytest.mark.asyncio
    async def test_not_configured(self, tool_context):
        tool_context.trends = FakeTrends()
        tool_context.trends.rows = None
        result = await suggest_products(None, tool_context)
        assert "not configured" in result.text

    @pytest.mark.asyncio
    async def test_no_data(self, tool_context):
        tool_context.trends = FakeTrends(rows=[])
        result = await suggest_products(None, tool_context)
        assert "couldn't find" in result.text
