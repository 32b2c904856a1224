"""Utilities to build multimodal input payloads for the Responses API."""

import base64
from typing import Any, Dict, List, Sequence

from utils.media_validation import sniff_mime_type


def to_image_data_url(image_bytes: bytes) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{sniff_mime_type(image_bytes)};base64,{encoded}"


def text_message(role: str, text: str) -> Dict[str, Any]:
    return {"type": "message", "role": role, "content": [{"type": "input_text", "text": text}]}


def build_inputs(
    system_prompt: str,
    user_prompt: str,
    *,
    context_text: str = "",
    images: Sequence[bytes] = (),
) -> List[Dict[str, Any]]:
    """Build the Responses API input array with each modality separated."""
    inputs: List[Dict[str, Any]] = [
        text_message("system", system_prompt),
        text_message("user", user_prompt),
    ]
    if context_text:
        inputs.append(text_message("user", context_text))
    if images:
        inputs.append(
            {
                "type": "message",
                "role": "user",
                "content": [{"type": "input_image", "image_url": to_image_data_url(data)} for data in images],
            }
        )
    return inputs
