from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext

from fastapi import Response, status
from fastapi.responses import JSONResponse

from app.schemas.receipt import ErrorResponse, ReceiptItem, ReceiptParseResponse

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _timestamp() -> str:
    """ISO-8601 UTC with milliseconds, e.g. 2024-05-01T12:00:00.000Z."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def total_amount(items: list[ReceiptItem]) -> Decimal:
    # 28-digit prices times quantities overflow the default precision
    with localcontext() as ctx:
        ctx.prec = 80
        total = sum((item.price * item.quantity for item in items), Decimal("0"))
        return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def success_response(items: list[ReceiptItem]) -> JSONResponse:
    body = ReceiptParseResponse(
        timestamp=_timestamp(),
        item_count=len(items),
        total_amount=total_amount(items),
        items=items,
    )
    return JSONResponse(
        content=body.model_dump(mode="json", by_alias=True),
        headers=CORS_HEADERS,
    )


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    body = ErrorResponse(error=message, timestamp=_timestamp())
    return JSONResponse(
        content=body.model_dump(mode="json"),
        status_code=status_code,
        headers=CORS_HEADERS,
    )


def preflight_response() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)
