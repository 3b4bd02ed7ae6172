from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class ReceiptItem(BaseModel):
    """Single line item extracted from a receipt (name, price, quantity)."""

    model_config = ConfigDict(frozen=True)

    item: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    quantity: int = Field(1, ge=1)

    @field_serializer("price")
    def _serialize_price(self, price: Decimal) -> float:
        return float(price)


class ReceiptParseRequest(BaseModel):
    """Documented request body. Parsed by hand in validate_request_body()."""

    prompt: str | None = None
    receiptText: str | None = None
    maxRetries: int | None = None


class ReceiptParseResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: Literal[True] = True
    timestamp: str
    item_count: int
    total_amount: Decimal
    items: list[ReceiptItem]

    @field_serializer("total_amount")
    def _serialize_total(self, total_amount: Decimal) -> float:
        return float(total_amount)


class ErrorResponse(BaseModel):
    error: str
    timestamp: str
