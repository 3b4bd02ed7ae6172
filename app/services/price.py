"""
Price normalization for model output.

Receipts mix "." and "," as decimal and thousands separators, and OCR often
misreads digits as letters. normalize_price() turns any of that into a
Decimal with exactly two fraction digits. It never raises: anything that
cannot be read as a number becomes 0.00, which callers filter out.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# A run of digits, separators and digit-like letters that holds at least one
# real digit and is not glued to other letters ("I.99", "1O,5O", not "TOTAL").
_NUMERIC_RUN = re.compile(
    r"(?<![^\W\d_])[\dIiLlOo.,\-]*\d[\dIiLlOo.,\-]*(?![^\W\d_])"
)
_OCR_DIGITS = str.maketrans({"I": "1", "i": "1", "L": "1", "l": "1", "O": "0", "o": "0"})
_NON_NUMERIC = re.compile(r"[^\d,.\-]")
_NUMBER_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _repair_ocr_letters(token: str) -> str:
    return _NUMERIC_RUN.sub(lambda m: m.group(0).translate(_OCR_DIGITS), token)


def _split_decimal(cleaned: str) -> tuple[str, str | None]:
    """Split at the rightmost separator; earlier separators are grouping."""
    point = max(cleaned.rfind(","), cleaned.rfind("."))
    if point < 0:
        return cleaned, None
    integer = cleaned[:point].replace(",", "").replace(".", "")
    return integer, cleaned[point + 1 :]


def _normalize_text(raw: str) -> Decimal:
    cleaned = _NON_NUMERIC.sub("", _repair_ocr_letters(raw))

    negative = cleaned.startswith("-")
    # any later minus ends the number: "2.50-" reads as 2.50
    cleaned = cleaned.lstrip("-").split("-", 1)[0]

    integer, fraction = _split_decimal(cleaned)
    if fraction is not None and len(fraction) > 2:
        # "1.999" -> "19.99": OCR merged a digit into the decimals
        integer, fraction = integer + fraction[:-2], fraction[-2:]
    number = integer if fraction is None else f"{integer}.{fraction}"

    match = _NUMBER_PREFIX.match(number)
    if not match:
        return ZERO
    try:
        value = _round(Decimal(match.group(0)))
    except InvalidOperation:
        return ZERO
    return -value if negative else value


def _normalize_number(raw: int | float | Decimal) -> Decimal:
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return ZERO
        # str() keeps the shortest repr, so 0.125 rounds up like it reads
        raw = Decimal(str(raw))
    value = Decimal(raw)
    if not value.is_finite():
        return ZERO
    try:
        return _round(value)
    except InvalidOperation:
        return ZERO


def normalize_price(raw_price: str | int | float | Decimal) -> Decimal:
    if isinstance(raw_price, bool):
        return ZERO
    if isinstance(raw_price, (int, float, Decimal)):
        return _normalize_number(raw_price)
    if isinstance(raw_price, str):
        return _normalize_text(raw_price)
    return ZERO
