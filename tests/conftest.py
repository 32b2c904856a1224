import io
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from models.catalog_entry import CatalogEntry, Category, EntryImage
from models.product_draft import GeneratedContent, ImageRef, ProductDraft
from models.store_settings import StoreSettings
from services.image_fetcher import ImageFetcher
from services.openai.intent_resolver import IntentDecision
from services.session_store import InMemorySessionStore
from services.tools.base import ToolContext


def make_image(size=(64, 48), color=(0, 0, 255), mode="RGB", fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeCommerce:
    def __init__(self, entries: Optional[Dict[int, CatalogEntry]] = None) -> None:
        self.entries = entries or {}
        self.categories = [Category(id=7, name="Beds", slug="beds"), Category(id=9, name="Kids", slug="kids")]
        self.created: List[Dict[str, Any]] = []
        self.updated: List[Any] = []
        self.uploads: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None
        self._next_media_id = 100

    async def get_entry(self, entry_id):
        return self.entries.get(entry_id)

    async def create_entry(self, payload):
        if self.fail_with:
            raise self.fail_with
        self.created.append(payload)
        return CatalogEntry(id=501, name=payload["name"], status=payload.get("status", "draft"))

    async def update_entry(self, entry_id, payload):
        if self.fail_with:
            raise self.fail_with
        self.updated.append((entry_id, payload))
        return CatalogEntry(id=entry_id, name=payload["name"])

    async def list_categories(self):
        return list(self.categories)

    async def upload_image(self, image_bytes, name, mime_type="image/jpeg"):
        self._next_media_id += 1
        self.uploads.append({"bytes": image_bytes, "name": name, "mime_type": mime_type})
        return {"id": self._next_media_id, "url": f"https://shop.example/media/{self._next_media_id}.jpg"}


class FakeGenerator:
    def __init__(self) -> None:
        self.generate_calls: List[ProductDraft] = []
        self.post_calls: List[Any] = []
        self.suggestions = [
            {"name": "Bunk Bed", "reason": "Rising searches for space saving beds."},
            {"name": "Toy Chest", "reason": "High impressions, few listings."},
            {"name": "Study Desk", "reason": "Back to school demand."},
        ]
        self.fail_with: Optional[Exception] = None

    async def generate(self, draft, context, images):
        if self.fail_with:
            raise self.fail_with
        self.generate_calls.append(draft)
        return GeneratedContent(
            name=f"Solid Wood {draft.raw_name}",
            description="<p>Sturdy and safe.</p>",
            short_description="<ul><li>Solid wood</li></ul>",
            slug="solid-wood-kids-bed",
            tags=["kids bed"],
            categories=["Beds", "Bedroom Sets"],
            attributes=[{"name": "Color", "value": "Natural"}],
            image_alts=["Kids bed front view"],
            meta_fields=[{"key": "_yoast_wpseo_focuskw", "value": "kids bed"}],
        )

    async def suggest(self, trend_signals):
        return list(self.suggestions)

    async def generate_post(self, entry, topic, tone, contact_links=None):
        self.post_calls.append((entry.id, topic, tone))
        return f"{topic}: {entry.name}"


class FakeSettings:
    def __init__(self, settings: Optional[StoreSettings] = None) -> None:
        self.settings = settings or StoreSettings(phone_number="+251900000000", keyword_guide="furniture addis")

    async def load(self):
        return self.settings


class FakeTrends:
    def __init__(self, rows=None) -> None:
        self.rows = [{"query": "kids bed", "clicks": 30, "impressions": 900}] if rows is None else rows

    async def top_queries(self):
        return self.rows


class FakeMessaging:
    def __init__(self) -> None:
        self.photos: List[Any] = []
        self.albums: List[Any] = []
        self.texts: List[Any] = []

    async def send_text(self, chat_id, text):
        self.texts.append((chat_id, text))

    async def send_photo(self, chat_id, url, caption):
        self.photos.append((chat_id, url, caption))

    async def send_album(self, chat_id, urls, caption):
        self.albums.append((chat_id, list(urls), caption))


class FakeResolver:
    def __init__(self, decision: Optional[IntentDecision] = None) -> None:
        self.decision = decision or IntentDecision(reply="Could you tell me more?")
        self.calls: List[Any] = []

    async def resolve(self, draft, message, allowed):
        self.calls.append((message, tuple(allowed)))
        return self.decision


def entry_with_images(count: int, entry_id: int = 42) -> CatalogEntry:
    return CatalogEntry(
        id=entry_id,
        name="Oak Wardrobe",
        price="12500",
        images=[EntryImage(id=i + 1, url=f"https://shop.example/img/{i}.jpg", alt=f"alt {i}") for i in range(count)],
        attributes=[{"name": "Material", "values": ["Oak"]}],
        meta_fields=[{"key": "_yoast_wpseo_focuskw", "value": "oak wardrobe"}],
        tags=["wardrobe"],
    )


@pytest.fixture
def photo_bytes():
    return make_image()


@pytest.fixture
def ready_draft(photo_bytes):
    return ProductDraft(raw_name="Kids Bed", price_minor=420000, images=[ImageRef(raw_bytes=photo_bytes)])


@pytest.fixture
def commerce():
    return FakeCommerce()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def messaging():
    return FakeMessaging()


@pytest.fixture
def trends():
    return FakeTrends()


@pytest.fixture
def settings():
    return FakeSettings()


@pytest.fixture
def fetcher():
    return ImageFetcher()


@pytest.fixture
def tool_context(commerce, generator, settings, trends, fetcher, messaging):
    return ToolContext(
        session_id="s1",
        commerce=commerce,
        generator=generator,
        settings=settings,
        trends=trends,
        fetcher=fetcher,
        messaging=messaging,
        channel_id="@channel",
    )


@pytest.fixture
def store():
    return InMemorySessionStore(ttl_seconds=600)
