from dataclasses import dataclass
from typing import Any

from app.core.config import settings
from app.core.errors import ReceiptValidationError


@dataclass(frozen=True)
class ReceiptRequest:
    receipt_text: str
    max_retries: int


def _max_retries(value: Any, default: int, limit: int) -> int:
    """Honour an integral maxRetries from the body, clamped to [0, limit]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not value.is_integer():
        return default
    return min(max(int(value), 0), limit)


def validate_request_body(
    body: Any,
    max_length: int | None = None,
    default_retries: int | None = None,
    retries_limit: int | None = None,
) -> ReceiptRequest:
    """
    Validate the inbound JSON body and return the trimmed receipt text.

    Accepts the text under "prompt" or, for older clients, "receiptText".
    "prompt" wins when both are present.
    """
    if max_length is None:
        max_length = settings.MAX_RECEIPT_TEXT_LENGTH
    if default_retries is None:
        default_retries = settings.GROQ_MAX_RETRIES
    if retries_limit is None:
        retries_limit = settings.MAX_RETRIES_LIMIT

    if not isinstance(body, dict):
        raise ReceiptValidationError("Request body must be a JSON object")

    prompt = body.get("prompt")
    receipt_text = prompt if isinstance(prompt, str) and prompt else body.get("receiptText")
    if not isinstance(receipt_text, str) or not receipt_text:
        raise ReceiptValidationError("Missing required field 'prompt' or 'receiptText'")

    if not receipt_text.strip():
        raise ReceiptValidationError("Receipt text cannot be empty")

    if len(receipt_text) > max_length:
        raise ReceiptValidationError(
            f"Receipt text too long (max {max_length:,} characters)"
        )

    return ReceiptRequest(
        receipt_text=receipt_text.strip(),
        max_retries=_max_retries(body.get("maxRetries"), default_retries, retries_limit),
    )
