"""Helpers for watermarking and uploading staged draft images.

This service coordinates, for every image that has no store id yet: fetching
its bytes, optionally compositing the watermark (in a worker thread, since
Pillow is blocking), and uploading the result to the commerce media library.
All uploads run concurrently and are joined before returning; the first
failure cancels the uploads still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from models.product_draft import ImageRef
from services.watermark import WatermarkCompositor
from utils.concurrency import gather_or_cancel
from utils.media_validation import sniff_mime_type

LOGGER = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}


def _file_name(image: ImageRef, session_id: str, index: int, mime_type: str) -> str:
    ext = _EXTENSIONS.get(mime_type, "jpg")
    if image.file_name:
        stem = image.file_name.rsplit(".", 1)[0]
        return f"{stem}.{ext}"
    return f"product_{session_id}_{index}.{ext}"


async def _prepare_bytes(data: bytes, compositor: Optional[WatermarkCompositor]) -> bytes:
    if compositor is None:
        return data
    try:
        return await asyncio.to_thread(compositor.apply, data)
    except ValueError as exc:
        # Continue with the original image
        LOGGER.error("Watermark application failed: %s", exc)
        return data


async def upload_pending_images(
    images: List[ImageRef],
    *,
    session_id: str,
    fetcher,
    commerce,
    compositor: Optional[WatermarkCompositor] = None,
) -> List[Dict[str, Any]]:
    """Upload every image lacking a store id and return `{"id", "url"}` per image.

    Images that already have an `external_id` are returned as-is. The result
    list is aligned with `images`. The first failing fetch or upload raises.
    """

    async def _one(index: int, image: ImageRef) -> Dict[str, Any]:
        if image.external_id is not None:
            return {"id": image.external_id, "url": image.url}
        data = await fetcher.bytes_for(session_id, image)
        data = await _prepare_bytes(data, compositor)
        mime_type = sniff_mime_type(data)
        uploaded = await commerce.upload_image(data, _file_name(image, session_id, index, mime_type), mime_type)
        LOGGER.info("Uploaded image %d for session %s as media %s", index, session_id, uploaded.get("id"))
        return {"id": uploaded["id"], "url": uploaded.get("url")}

    return await gather_or_cancel(_one(index, image) for index, image in enumerate(images))
