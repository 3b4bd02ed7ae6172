"""
Receipt parsing API.

POST / with {"prompt": "<OCR text>"} (or "receiptText") asks the model for
the receipt's line items and returns them with a count and a total.
"""

import logging

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from app.core.deps import GroqApiKey, ReceiptClient
from app.core.errors import InternalServerError, MethodNotAllowedError, ReceiptParserError
from app.core.responses import preflight_response, success_response
from app.schemas.receipt import ErrorResponse, ReceiptParseRequest, ReceiptParseResponse
from app.services.validation import validate_request_body

log = logging.getLogger(__name__)

router = APIRouter(tags=["receipts"])

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
}


@router.post(
    "/",
    response_model=ReceiptParseResponse,
    responses=_ERROR_RESPONSES,
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": ReceiptParseRequest.model_json_schema()}
            },
        }
    },
)
async def parse_receipt(
    request: Request,
    api_key: GroqApiKey,
    client: ReceiptClient,
) -> JSONResponse:
    """
    Extract line items (item, price, quantity) from receipt OCR text.
    A model answer without usable items is still a success with zero items.
    """
    try:
        try:
            body = await request.json()
        except ValueError as e:
            raise InternalServerError("Invalid JSON in request body") from e

        receipt = validate_request_body(body)
        items = await client.request(api_key, receipt.receipt_text, receipt.max_retries)
        log.info("Parsed receipt: %d items", len(items))
        return success_response(items)
    except ReceiptParserError:
        raise
    except Exception as e:
        raise InternalServerError(f"Unexpected error: {e!r}") from e


@router.options("/", status_code=status.HTTP_204_NO_CONTENT)
async def preflight() -> Response:
    return preflight_response()


@router.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def method_not_allowed(request: Request) -> None:
    raise MethodNotAllowedError(f"{request.method} is not supported")
