"""
Anthropic API client utilities for GEO Analyzer.

This module contains the primary LLM provider, backed by the Anthropic
Claude API with automatic retry logic for transient failures.
"""

import logging
from typing import Optional

import anthropic
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import get_anthropic_api_key, settings
from utils.clients.base import LLMProvider

logger = logging.getLogger(__name__)

# Lazy initialization of Anthropic client
_anthropic_client: Optional[anthropic.AsyncAnthropic] = None


def get_anthropic_client() -> anthropic.AsyncAnthropic:
    """Get or create the Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        # tenacity owns retries, so the SDK's own retry loop is disabled
        _anthropic_client = anthropic.AsyncAnthropic(
            api_key=get_anthropic_api_key(), max_retries=0
        )
    return _anthropic_client


async def close_anthropic_client():
    """Close the Anthropic client; it is bound to the event loop that used it"""
    global _anthropic_client
    if _anthropic_client is not None:
        await _anthropic_client.close()
        _anthropic_client = None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=(
        retry_if_exception_type((anthropic.APIConnectionError, anthropic.RateLimitError))
        & retry_if_not_exception_type(anthropic.APITimeoutError)
    ),
    reraise=True,
)
async def call_anthropic_api_with_retry(
    prompt: str,
    model: str,
    max_tokens: int,
    timeout: float,
) -> str:
    """
    Calls Anthropic API with automatic retry logic for transient failures.

    Retries up to 3 times for:
    - APIConnectionError (network issues)
    - RateLimitError (rate limit exceeded)

    Does NOT retry for:
    - APITimeoutError (request exceeded the timeout)
    - AuthenticationError (bad API key)
    - Other permanent errors

    Returns:
        Concatenated text blocks of the reply
    """
    client = get_anthropic_client()
    message = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
        timeout=timeout,
    )
    return "".join(
        block.text for block in message.content if getattr(block, "type", "") == "text"
    )


class AnthropicProvider(LLMProvider):
    """Primary provider (Claude)"""

    platform = "Anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else get_anthropic_api_key(),
            model=model or settings.ANTHROPIC_MODEL,
            timeout=timeout or settings.LLM_REQUEST_TIMEOUT,
            max_tokens=max_tokens or settings.MAX_TOKENS,
        )

    async def _complete(self, prompt: str) -> str:
        return await call_anthropic_api_with_retry(
            prompt, self.model, self.max_tokens, self.timeout
        )
