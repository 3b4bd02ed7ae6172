"""
Groq chat-completions client with timeout and retry handling.

One attempt is a single POST bounded by a wall-clock timeout. Its outcome is
classified into an AttemptResult (Success, RetryableFailure, TerminalFailure)
and run_with_retries() drives the attempts:

    Attempt(n) --success--------------------------------> Done(content)
    Attempt(n) --retryable, n < max_attempts--sleep-----> Attempt(n + 1)
    Attempt(n) --retryable, n == max_attempts-----------> Failed(error)
    Attempt(n) --terminal-------------------------------> Failed(error)

The backoff before attempt k is backoff_seconds * k (linear).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import Settings
from app.core.errors import ProviderAuthenticationError, ProviderError, ReceiptParserError
from app.schemas.receipt import ReceiptItem
from app.services.extraction import extract_receipt_items

log = logging.getLogger(__name__)

USER_AGENT = "Receipt-Parser-Worker/1.0"

SYSTEM_PROMPT = """You are an expert at parsing messy receipts from any store format. Your job is to intelligently extract items and their final prices from chaotic OCR text.

CORE MISSION: Find product names and their corresponding prices, regardless of receipt format.

INTELLIGENCE GUIDELINES:
- Every receipt format is different - be adaptive
- Look for patterns: items usually have names and prices nearby
- Prices are typically numbers with decimals (1.99, 1,99, 2.5, etc.)
- Items can be on same line as price or on separate lines
- Quantities might be present (x2, 2x, 1,000 kg, etc.)
- Promotional text, categories, totals, and store info should be ignored
- OCR creates errors: I→1, O→0, garbled text, spacing issues

EXTRACTION STRATEGY:
1. Scan the entire text for price patterns (numbers with 1-2 decimals)
2. For each price, look nearby (above/below/same line) for the item name
3. Clean item names: remove codes, asterisks, extra spaces, promotional text
4. Use context clues to determine what's an item vs. what's metadata
5. Calculate final price if discounts are shown
6. If unsure about an item-price pair, skip it

OUTPUT FORMAT:
Return ONLY a valid JSON array: [{"item": "Item Name", "price": 2.50, "quantity": 1}]

EXAMPLES OF ADAPTIVE PARSING:
Format 1: "Banana 1.50"
Format 2: "Banana\\n1.50"
Format 3: "1x Banana €1,50"
Format 4: "BANANA    1.50\\n(discount -0.20)\\nFinal: 1.30"
All should extract: [{"item": "Banana", "price": 1.50, "quantity": 1}]

BE SMART: Use your understanding of receipt logic, not rigid rules. Every receipt is a puzzle to solve."""


@dataclass(frozen=True)
class SamplingParams:
    temperature: float = 0.1
    top_p: float = 0.9
    max_tokens: int = 1000


@dataclass(frozen=True)
class ModelClientConfig:
    api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    model: str = "llama3-8b-8192"
    timeout_seconds: float = 30.0
    max_attempts: int = 2
    backoff_seconds: float = 1.0
    sampling: SamplingParams = field(default_factory=SamplingParams)
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelClientConfig":
        return cls(
            api_url=settings.GROQ_API_URL,
            model=settings.GROQ_MODEL,
            timeout_seconds=settings.GROQ_TIMEOUT_SECONDS,
            max_attempts=settings.GROQ_MAX_RETRIES,
            backoff_seconds=settings.GROQ_RETRY_BACKOFF_SECONDS,
            sampling=SamplingParams(
                temperature=settings.GROQ_TEMPERATURE,
                top_p=settings.GROQ_TOP_P,
                max_tokens=settings.GROQ_MAX_TOKENS,
            ),
        )


@dataclass(frozen=True)
class Success:
    content: str


@dataclass(frozen=True)
class RetryableFailure:
    error: ReceiptParserError


@dataclass(frozen=True)
class TerminalFailure:
    error: ReceiptParserError


AttemptResult = Success | RetryableFailure | TerminalFailure


@dataclass
class RetryState:
    max_attempts: int
    attempt: int = 0
    last_error: ReceiptParserError | None = None


def _response_content(data: Any) -> str | None:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) and content else None


def classify_response(response: httpx.Response) -> AttemptResult:
    """Map one provider HTTP response onto an AttemptResult."""
    status_code = response.status_code
    if status_code == 401:
        return TerminalFailure(
            ProviderAuthenticationError("Authentication failed: Invalid Groq API key")
        )
    if 500 <= status_code < 600:
        return RetryableFailure(
            ProviderError(f"GroqServerError {status_code}: {response.text}")
        )
    if not response.is_success:
        return TerminalFailure(
            ProviderError(f"Groq API HTTP {status_code}: {response.text}")
        )

    try:
        data = response.json()
    except ValueError:
        return TerminalFailure(ProviderError("Groq API returned a non-JSON body"))

    if isinstance(data, dict) and data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else error
        return TerminalFailure(ProviderError(f"Groq API Error: {message}"))

    content = _response_content(data)
    if content is None:
        return TerminalFailure(ProviderError("No content received from Groq API"))
    return Success(content)


async def run_with_retries(
    attempt: Callable[[int], Awaitable[AttemptResult]],
    max_attempts: int,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> str:
    """
    Run attempt(0), attempt(1), ... until one succeeds.

    max_attempts is the number of additional attempts after the first one.
    Raises the terminal error, or the last retryable error once the attempts
    are used up.
    """
    state = RetryState(max_attempts=max(0, max_attempts))
    while True:
        result = await attempt(state.attempt)
        if isinstance(result, Success):
            return result.content
        if isinstance(result, TerminalFailure):
            raise result.error

        state.last_error = result.error
        if state.attempt >= state.max_attempts:
            log.error(
                "Giving up after %d attempts: %s", state.attempt + 1, state.last_error
            )
            raise state.last_error

        state.attempt += 1
        delay = backoff_seconds * state.attempt
        log.warning(
            "Retry %d/%d in %.1fs after error: %s",
            state.attempt,
            state.max_attempts,
            delay,
            state.last_error,
        )
        await sleep(delay)


class GroqReceiptClient:
    def __init__(
        self,
        config: ModelClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or ModelClientConfig()
        self._http_client = http_client
        self._sleep = sleep

    def build_payload(self, receipt_text: str) -> dict:
        sampling = self.config.sampling
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": self.config.system_prompt},
                {"role": "user", "content": f"Receipt Text:\n{receipt_text}"},
            ],
            "temperature": sampling.temperature,
            "max_tokens": sampling.max_tokens,
            "top_p": sampling.top_p,
        }

    async def _attempt(
        self, client: httpx.AsyncClient, api_key: str, payload: dict
    ) -> AttemptResult:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        timeout = self.config.timeout_seconds
        try:
            # wait_for cancels the in-flight call; the retry loop carries on
            response = await asyncio.wait_for(
                client.post(self.config.api_url, headers=headers, json=payload),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return RetryableFailure(
                ProviderError(f"Groq request timeout after {timeout:g}s")
            )
        except httpx.TransportError as e:
            return RetryableFailure(ProviderError(f"Groq connection failed: {e!r}"))
        return classify_response(response)

    async def _complete(
        self, client: httpx.AsyncClient, api_key: str, receipt_text: str, max_attempts: int
    ) -> str:
        payload = self.build_payload(receipt_text)

        async def attempt(n: int) -> AttemptResult:
            log.debug("Groq attempt %d for %d characters", n, len(receipt_text))
            return await self._attempt(client, api_key, payload)

        return await run_with_retries(
            attempt,
            max_attempts,
            backoff_seconds=self.config.backoff_seconds,
            sleep=self._sleep,
        )

    async def request(
        self, api_key: str, receipt_text: str, max_attempts: int | None = None
    ) -> list[ReceiptItem]:
        """Ask the model for the receipt's line items."""
        if max_attempts is None:
            max_attempts = self.config.max_attempts

        if self._http_client is not None:
            content = await self._complete(
                self._http_client, api_key, receipt_text, max_attempts
            )
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                content = await self._complete(client, api_key, receipt_text, max_attempts)

        return extract_receipt_items(content)
