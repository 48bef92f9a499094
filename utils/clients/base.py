"""
Common shape for the LLM providers behind the AI aggregator.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from analyzer.errors import ProviderNotConfiguredError
from analyzer.prompts import build_prompt
from utils.parsing.json import repair_and_parse_json

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """
    One chat-completion backend that answers a prompt with a JSON object.

    Subclasses implement _complete(); prompt building, parsing and the
    configuration check live here so every provider fails the same way.
    """

    platform: str = "LLM"

    def __init__(self, api_key: str, model: str, timeout: float = 30.0, max_tokens: int = 4000):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send the prompt and return the raw text reply"""

    async def complete_json(self, prompt: str) -> Any:
        """
        Send a prompt and parse the reply as JSON.

        Raises:
            ProviderNotConfiguredError: No API key for this provider
            JSONParseError: Reply could not be repaired into JSON
        """
        if not self.configured:
            raise ProviderNotConfiguredError(f"{self.platform} API key is not configured")

        text = await self._complete(prompt)
        logger.debug(f"{self.platform} replied with {len(text)} chars")
        return repair_and_parse_json(text)

    async def invoke(self, operation: str, **kwargs) -> Any:
        """Build the prompt for a named operation and return the parsed reply"""
        return await self.complete_json(build_prompt(operation, **kwargs))
