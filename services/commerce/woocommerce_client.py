"""WooCommerce REST client used as the commerce collaborator.

Product and category calls go to the WooCommerce v3 API
(`WOOCOMMERCE_API_URL`, e.g. https://shop.example/wp-json/wc/v3); media
uploads go to the WordPress v2 media endpoint on the same site. All calls use
HTTP basic auth with the consumer key and secret.

Neutral payloads produced by the tools are translated here into WooCommerce
field names, and WooCommerce responses are translated back into
`models.catalog_entry` dataclasses.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

from models.catalog_entry import CatalogEntry, Category, EntryImage
from services.errors import ExternalServiceFailure, RateLimited, parse_retry_after

LOGGER = logging.getLogger(__name__)
SERVICE = "commerce"

STATUS_MAP = {"published": "publish", "draft": "draft"}
UNREADABLE_RESPONSE = "The store returned an unreadable response."

T = TypeVar("T")


class WooCommerceClient:
    """Async client for the subset of the WooCommerce API the tools need."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        *,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = (api_url or os.getenv("WOOCOMMERCE_API_URL") or "").rstrip("/")
        key = consumer_key or os.getenv("WOOCOMMERCE_CONSUMER_KEY")
        secret = consumer_secret or os.getenv("WOOCOMMERCE_CONSUMER_SECRET")
        if not self.api_url or not key or not secret:
            raise RuntimeError("WooCommerce API credentials or URL are not configured.")
        self._auth = httpx.BasicAuth(key, secret)
        self.media_url = self.api_url.replace("/wp-json/wc/v3", "") + "/wp-json/wp/v2/media"
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                auth=self._auth, timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            LOGGER.error("WooCommerce %s %s failed: %s", method, url, exc)
            raise ExternalServiceFailure(SERVICE, f"Could not reach the store: {exc}") from exc

        if response.status_code == 429:
            raise RateLimited(
                SERVICE,
                "The store is rate limiting requests.",
                parse_retry_after(response.headers.get("Retry-After")),
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response, fallback: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"{fallback}. Status: {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"{fallback}. Status: {response.status_code}"

    def _raise_for_status(self, response: httpx.Response, fallback: str) -> None:
        if response.status_code >= 400:
            message = self._error_message(response, fallback)
            LOGGER.error("%s: %s %s", fallback, response.status_code, message)
            raise ExternalServiceFailure(SERVICE, message)

    @staticmethod
    def _parse(response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Decode a success body; a non-JSON or malformed body is an external failure."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            LOGGER.error("Unreadable store response (HTTP %s): %s", response.status_code, exc)
            raise ExternalServiceFailure(SERVICE, UNREADABLE_RESPONSE) from exc

    async def get_entry(self, entry_id: int) -> Optional[CatalogEntry]:
        """Return the product or None when it does not exist."""
        response = await self._request("GET", f"{self.api_url}/products/{entry_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Failed to fetch product {entry_id}")
        return self._parse(response, entry_from_woo)

    async def create_entry(self, payload: Dict[str, Any]) -> CatalogEntry:
        response = await self._request("POST", f"{self.api_url}/products", json=payload_to_woo(payload))
        self._raise_for_status(response, "Failed to create product")
        return self._parse(response, entry_from_woo)

    async def update_entry(self, entry_id: int, payload: Dict[str, Any]) -> CatalogEntry:
        response = await self._request("PUT", f"{self.api_url}/products/{entry_id}", json=payload_to_woo(payload))
        self._raise_for_status(response, f"Failed to update product {entry_id}")
        return self._parse(response, entry_from_woo)

    async def list_categories(self) -> List[Category]:
        """Return every category except the built-in "uncategorized" one."""
        response = await self._request(
            "GET",
            f"{self.api_url}/products/categories",
            params={"orderby": "name", "order": "asc", "per_page": 100},
        )
        self._raise_for_status(response, "Failed to fetch all product categories")
        return self._parse(
            response,
            lambda rows: [
                Category(id=item["id"], name=item.get("name", ""), slug=item.get("slug", ""))
                for item in rows
                if item.get("slug") != "uncategorized"
            ],
        )

    async def upload_image(self, image_bytes: bytes, name: str, mime_type: str = "image/jpeg") -> Dict[str, Any]:
        """Upload raw bytes to the media library and return `{"id", "url"}`."""
        safe_name = re.sub(r"[^a-zA-Z0-9._-]", "_", name) or "upload.jpg"
        response = await self._request(
            "POST",
            self.media_url,
            content=image_bytes,
            headers={
                "Content-Type": mime_type,
                "Content-Disposition": f'attachment; filename="{safe_name}"',
            },
        )
        self._raise_for_status(response, "Failed to upload image to WordPress")
        return self._parse(response, lambda data: {"id": data["id"], "url": data.get("source_url")})


def payload_to_woo(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a neutral entry payload into WooCommerce product fields."""
    woo: Dict[str, Any] = {
        "name": payload.get("name"),
        "sku": payload.get("sku"),
        "slug": payload.get("slug"),
        "regular_price": payload.get("price"),
        "description": payload.get("description"),
        "short_description": payload.get("short_description"),
        "categories": payload.get("categories"),
        "tags": payload.get("tags"),
        "images": [
            {key: value for key, value in (("id", img.get("id")), ("src", img.get("url")), ("alt", img.get("alt"))) if value is not None}
            for img in payload.get("images") or []
        ],
        "attributes": [
            {"name": attr["name"], "options": list(attr.get("values") or []), "visible": True}
            for attr in payload.get("attributes") or []
        ],
        "meta_data": payload.get("meta_fields"),
        "status": STATUS_MAP.get(payload.get("status") or "draft", "draft"),
    }
    return {key: value for key, value in woo.items() if value is not None}


def entry_from_woo(data: Dict[str, Any]) -> CatalogEntry:
    """Translate a WooCommerce product response into a `CatalogEntry`."""
    return CatalogEntry(
        id=int(data["id"]),
        name=data.get("name", ""),
        price=str(data.get("regular_price") or data.get("price") or ""),
        sku=data.get("sku") or "",
        slug=data.get("slug") or "",
        permalink=data.get("permalink") or "",
        status=data.get("status") or "draft",
        description=data.get("description") or "",
        short_description=data.get("short_description") or "",
        images=[
            EntryImage(id=img.get("id"), url=img.get("src"), alt=img.get("alt") or "")
            for img in data.get("images") or []
        ],
        attributes=[
            {"name": attr.get("name", ""), "values": list(attr.get("options") or [])}
            for attr in data.get("attributes") or []
        ],
        meta_fields=[
            {"key": meta.get("key"), "value": meta.get("value")} for meta in data.get("meta_data") or []
        ],
        tags=[tag.get("name", "") for tag in data.get("tags") or []],
        categories=[
            Category(id=cat.get("id", 0), name=cat.get("name", ""), slug=cat.get("slug", ""))
            for cat in data.get("categories") or []
        ],
    )
