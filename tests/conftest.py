import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings, get_settings
from app.core.deps import get_receipt_client
from app.main import app
from app.services.groq_client import GroqReceiptClient, ModelClientConfig

TEST_SETTINGS = Settings(GROQ_API_KEY="test-key")


def _override_get_settings() -> Settings:
    return TEST_SETTINGS


app.dependency_overrides[get_settings] = _override_get_settings


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeGroq:
    """MockTransport handler replaying queued responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []
        self.sleeps: list[float] = []

    def queue(self, *outcomes) -> None:
        self.outcomes.extend(outcomes)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)

    def client(self, **config) -> GroqReceiptClient:
        return GroqReceiptClient(
            ModelClientConfig(**config),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
            sleep=self.sleep,
        )


@pytest.fixture
def groq():
    fake = FakeGroq()

    async def _override_get_receipt_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as http_client:
            yield GroqReceiptClient(
                ModelClientConfig.from_settings(TEST_SETTINGS),
                http_client=http_client,
                sleep=fake.sleep,
            )

    app.dependency_overrides[get_receipt_client] = _override_get_receipt_client
    yield fake
    app.dependency_overrides.pop(get_receipt_client, None)


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c
