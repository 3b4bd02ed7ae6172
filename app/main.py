import logging

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import router as api_router
from app.core.config import settings
from app.core.errors import MethodNotAllowedError, ReceiptParserError
from app.core.responses import error_response

logging.basicConfig(
    format="%(asctime)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL.upper(),
)
log = logging.getLogger(__name__)

app = FastAPI(title="Receipt Parser")


@app.exception_handler(ReceiptParserError)
async def receipt_parser_error_handler(
    request: Request, exc: ReceiptParserError
) -> JSONResponse:
    if exc.status_code >= 500:
        log.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
    else:
        log.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return error_response(exc.client_message, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(
    request: Request, exc: StarletteHTTPException
):
    # methods without a route of their own (HEAD, TRACE, ...) end up here
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return await receipt_parser_error_handler(
            request, MethodNotAllowedError(f"{request.method} is not supported")
        )
    return await http_exception_handler(request, exc)


app.include_router(api_router)
