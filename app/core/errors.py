"""
Error taxonomy of the receipt parser.

Each error carries the HTTP status it maps to and the message shown to the
client. The full detail (``str(error)``) is only logged server-side.
"""

from fastapi import status


class ReceiptParserError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.public_message)

    @property
    def client_message(self) -> str:
        return self.public_message


class ReceiptValidationError(ReceiptParserError):
    """Malformed, missing or oversized input. The detail is shown as-is."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request"

    @property
    def client_message(self) -> str:
        return str(self)


class ProviderAuthenticationError(ReceiptParserError):
    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Invalid or missing GROQ_API_KEY"


class MethodNotAllowedError(ReceiptParserError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    public_message = "Method not allowed. Use POST."


class ConfigurationError(ReceiptParserError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_message = "Server configuration error"


class ProviderError(ReceiptParserError):
    """The model provider failed, or retries were exhausted."""


class InternalServerError(ReceiptParserError):
    """Anything else, including a request body that is not valid JSON."""
