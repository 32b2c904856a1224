"""Validation helpers for uploaded product photos."""

import base64
import binascii
import io

from fastapi import HTTPException, UploadFile
from PIL import Image

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}

_FORMAT_MIME = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp", "GIF": "image/gif"}


def sniff_mime_type(image_bytes: bytes, default: str = "image/jpeg") -> str:
    """Return the MIME type Pillow detects for `image_bytes`, or `default`."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return _FORMAT_MIME.get(img.format or "", default)
    except Exception:
        return default


def decode_image_payload(data: str) -> bytes:
    """Decode a base64 string or `data:<mime>;base64,` URI into raw bytes.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        if ";base64" not in header:
            raise ValueError("Only base64 data URIs are supported.")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 image data provided") from exc
    if not raw:
        raise ValueError("Image payload is empty.")
    return raw


async def read_image_upload(image_file: UploadFile) -> bytes:
    """Read a multipart photo upload, rejecting unsupported or empty files."""
    if image_file.content_type:
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    image_bytes = await image_file.read()
    if not image_bytes:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    return image_bytes
