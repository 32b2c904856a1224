"""Deterministic parsing of merchant messages.

These shortcuts run before the intent resolver is consulted. When one of them
applies, the resolver is never called.
"""

import re
from typing import Any, Dict

from models.product_draft import ProductDraft, parse_price

CONFIRMATION_KEYWORDS = frozenset({"yes", "proceed", "run optimization", "ai optimize now", "optimize"})

_LABELS = {
    "name": "raw_name",
    "product name": "raw_name",
    "price": "price_minor",
    "material": "material",
    "keywords": "focus_keywords",
    "focus keywords": "focus_keywords",
    "localized name": "localized_name",
    "amharic name": "localized_name",
}

_LABELLED = re.compile(r"^\s*(" + "|".join(sorted(_LABELS, key=len, reverse=True)) + r")\s*[:=]\s*(.+?)\s*$", re.I)
_AMOUNT = re.compile(r"\d[\d,]*(?:\.\d+)?")
_BARE_PRICE = re.compile(r"^\s*(?:etb|birr)?\s*(\d[\d,]*(?:\.\d+)?)\s*(?:etb|birr|br)?\s*$", re.I)
_HAS_DIGIT = re.compile(r"\d")
_MAX_NAME_LENGTH = 80


def is_confirmation(text: str) -> bool:
    """True when `text`, trimmed and case-folded, is one of the confirmation keywords."""
    return (text or "").strip().lower() in CONFIRMATION_KEYWORDS


def _price(value: str):
    match = _AMOUNT.search(value)
    return parse_price(match.group(0)) if match else None


def extract_fields(text: str, draft: ProductDraft, gathering: bool = False) -> Dict[str, Any]:
    """Pull draft fields out of `text`.

    `label: value` pairs are recognised on separate lines or separated by `;`.
    While gathering, a message that is only an amount is the price, and a short
    message without digits is the name if the draft has none yet.
    """
    text = (text or "").strip()
    if not text:
        return {}

    fields: Dict[str, Any] = {}
    for part in re.split(r"[\n;]", text):
        match = _LABELLED.match(part)
        if not match:
            continue
        key = _LABELS[match.group(1).lower()]
        value = match.group(2)
        if key == "price_minor":
            price = _price(value)
            if price is not None:
                fields[key] = price
        else:
            fields[key] = value
    if fields or not gathering:
        return fields

    bare = _BARE_PRICE.match(text)
    if bare:
        price = parse_price(bare.group(1))
        return {"price_minor": price} if price else {}
    if (
        not draft.raw_name
        and not _HAS_DIGIT.search(text)
        and "?" not in text
        and len(text) <= _MAX_NAME_LENGTH
        and not is_confirmation(text)
    ):
        return {"raw_name": text}
    return {}
