"""
Samples real AI assistant answers through the Perplexity API.

Perplexity speaks the OpenAI chat-completions protocol, so the OpenAI SDK
is pointed at its base URL.
"""

import logging
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from config import settings
from utils.concurrency import gather_settled

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful AI assistant."


class AssistantResponder:
    """Collects assistant answers for search queries"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.PERPLEXITY_API_KEY
        self.model = model or settings.PERPLEXITY_MODEL
        self.base_url = base_url or settings.PERPLEXITY_BASE_URL
        self.timeout = timeout or settings.LLM_REQUEST_TIMEOUT
        self._client: Optional[AsyncOpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def answer(self, query: str) -> Optional[str]:
        """Return the assistant's answer to one query, or None if unavailable"""
        if not self.configured:
            logger.warning(f"⚠️ Perplexity API key not found for query: {query}")
            return None

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": query},
                ],
                temperature=0.2,
                timeout=self.timeout,
            )
        except OpenAIError as e:
            logger.error(f"❌ Perplexity API error for query '{query}': {str(e)}")
            return None

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.warning(f"⚠️ Empty response from Perplexity for query: {query}")
            return None
        return content

    async def answers(self, queries: List[str]) -> List[str]:
        """Answer all queries concurrently, dropping the ones that failed"""
        logger.info(f"🔎 Getting AI responses for {len(queries)} queries")
        outcomes = await gather_settled(*(self.answer(q) for q in queries))
        for query, outcome in zip(queries, outcomes):
            if not outcome.ok:
                logger.error(f"❌ Unexpected error answering '{query}': {str(outcome.error)}")
        return [o.value for o in outcomes if o.ok and o.value is not None]

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None
