import logging
from typing import Annotated

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError
from app.services.groq_client import GroqReceiptClient, ModelClientConfig

log = logging.getLogger(__name__)


def get_groq_api_key(settings: Annotated[Settings, Depends(get_settings)]) -> str:
    if not settings.GROQ_API_KEY:
        log.error("Missing GROQ_API_KEY environment variable")
        raise ConfigurationError("GROQ_API_KEY is not set")
    return settings.GROQ_API_KEY


def get_receipt_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> GroqReceiptClient:
    return GroqReceiptClient(ModelClientConfig.from_settings(settings))


GroqApiKey = Annotated[str, Depends(get_groq_api_key)]
ReceiptClient = Annotated[GroqReceiptClient, Depends(get_receipt_client)]
