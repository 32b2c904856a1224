"""Utilities for calling the Responses API and translating its failures."""

import logging
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from services.errors import ExternalServiceFailure, RateLimited, parse_retry_after

LOGGER = logging.getLogger(__name__)
SERVICE = "generation"


def _retry_after(exc: openai.RateLimitError) -> float:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    return parse_retry_after(headers.get("retry-after"))


async def create_response(client: AsyncOpenAI, *, purpose: str, **kwargs: Any) -> Any:
    """Call `client.responses.create`, mapping SDK errors to service failures.

    Args:
        client: Shared async OpenAI client.
        purpose: Short label used in log lines (e.g. "catalog content").
        **kwargs: Forwarded to `responses.create`.

    Raises:
        RateLimited: On HTTP 429, carrying the server's retry-after hint.
        ExternalServiceFailure: On any other API error.
    """
    start = time.time()
    try:
        response = await client.responses.create(**kwargs)
    except openai.RateLimitError as exc:
        LOGGER.error("OpenAI rate limit during %s: %s", purpose, exc)
        raise RateLimited(SERVICE, "The content generator is busy right now.", _retry_after(exc)) from exc
    except openai.APIError as exc:
        LOGGER.error("OpenAI Responses API error during %s: %s", purpose, exc)
        raise ExternalServiceFailure(SERVICE, getattr(exc, "message", None) or str(exc)) from exc
    LOGGER.info("%s latency: %.3fs", purpose.capitalize(), time.time() - start)
    return response
