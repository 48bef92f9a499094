"""
OpenAI chat-completions client, used as the secondary LLM provider.
"""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import get_openai_api_key, settings
from utils.clients.base import LLMProvider

logger = logging.getLogger(__name__)

# ─── OpenAI Client (Lazy Initialization) ───
_openai_client: Optional[AsyncOpenAI] = None


def get_openai_client() -> AsyncOpenAI:
    """Get or create the OpenAI client instance."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(api_key=get_openai_api_key(), max_retries=0)
    return _openai_client


async def close_openai_client():
    """Close the OpenAI client; it is bound to the event loop that used it"""
    global _openai_client
    if _openai_client is not None:
        await _openai_client.close()
        _openai_client = None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=(
        retry_if_exception_type((openai.APIConnectionError, openai.RateLimitError))
        & retry_if_not_exception_type(openai.APITimeoutError)
    ),
    reraise=True,
)
async def call_openai_api_with_retry(
    prompt: str,
    model: str,
    max_tokens: int,
    timeout: float,
) -> str:
    """
    Call the OpenAI API in JSON mode with exponential backoff on
    connection errors and rate limits. Timeouts are not retried.
    """
    client = get_openai_client()
    response = await client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        response_format={"type": "json_object"},
        max_tokens=max_tokens,
        timeout=timeout,
    )
    if not response.choices:
        raise ValueError("OpenAI returned a response with no choices.")
    return response.choices[0].message.content or ""


class OpenAIProvider(LLMProvider):
    """Secondary provider (GPT)"""

    platform = "OpenAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else get_openai_api_key(),
            model=model or settings.OPENAI_MODEL,
            timeout=timeout or settings.LLM_REQUEST_TIMEOUT,
            max_tokens=max_tokens or settings.MAX_TOKENS,
        )

    async def _complete(self, prompt: str) -> str:
        return await call_openai_api_with_retry(
            prompt, self.model, self.max_tokens, self.timeout
        )
