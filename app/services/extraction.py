"""
Turn the free-form text returned by the model into ReceiptItem records.

The model is asked for a bare JSON array but often wraps it in prose or
markdown. A malformed response is expected, so nothing here raises: every
failure is logged and yields an empty list.
"""

import json
import logging
import re
from typing import Any

from app.schemas.receipt import ReceiptItem
from app.services.price import normalize_price

log = logging.getLogger(__name__)

# First "[" through the last "]". Two separate arrays in one response are
# read as one span and fail to parse.
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)

# Quantities above this fall back to 1
MAX_QUANTITY = 10_000


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_candidate(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    name = entry.get("item")
    if not isinstance(name, str) or not name.strip():
        return False
    price = entry.get("price")
    return _is_number(price) or isinstance(price, str)


def _quantity(value: Any) -> int:
    if not _is_number(value) or not 0 < value <= MAX_QUANTITY:
        return 1
    if isinstance(value, int) or value.is_integer():
        return int(value)
    return 1


def extract_receipt_items(model_text: str) -> list[ReceiptItem]:
    match = _JSON_ARRAY.search(model_text or "")
    if not match:
        log.warning("No JSON array found in model response: %.200s", model_text)
        return []

    try:
        parsed = json.loads(match.group(0))
    except (ValueError, RecursionError) as e:
        log.warning("Failed to parse receipt items: %s", e)
        return []

    if not isinstance(parsed, list):
        log.warning("Parsed content is not an array: %.200r", parsed)
        return []

    items: list[ReceiptItem] = []
    for entry in parsed:
        if not _is_candidate(entry):
            continue
        price = normalize_price(entry["price"])
        if price <= 0:
            continue
        items.append(
            ReceiptItem(
                item=entry["item"].strip(),
                price=price,
                quantity=_quantity(entry.get("quantity")),
            )
        )

    log.debug("Extracted %d of %d model entries", len(items), len(parsed))
    return items
