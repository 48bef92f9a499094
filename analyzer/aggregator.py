"""
Dual-provider AI aggregator.

Every named operation is sent to the primary and the secondary provider in
parallel with the same arguments. The primary's answer wins when present; the
answers are never blended.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from analyzer.errors import AggregationError, ProviderNotConfiguredError
from analyzer.prompts import PROMPT_BUILDERS
from utils.clients.anthropic import AnthropicProvider
from utils.clients.base import LLMProvider
from utils.clients.openai import OpenAIProvider

logger = logging.getLogger(__name__)


@dataclass
class ProviderResult:
    platform: str
    model: str
    duration_ms: int
    data: Any


@dataclass
class AggregatedResult:
    combined: Any
    primary: Optional[ProviderResult] = None
    secondary: Optional[ProviderResult] = None
    errors: List[str] = field(default_factory=list)


class AIAggregator:
    """Runs one semantic operation against both configured providers"""

    def __init__(self, primary: Optional[LLMProvider], secondary: Optional[LLMProvider]):
        self.primary = primary
        self.secondary = secondary

    @property
    def configured_providers(self) -> List[LLMProvider]:
        return [p for p in (self.primary, self.secondary) if p is not None and p.configured]

    async def _try_call(
        self, provider: LLMProvider, operation: str, kwargs: dict
    ) -> Tuple[Optional[ProviderResult], Optional[str]]:
        start = time.perf_counter()
        try:
            data = await provider.invoke(operation, **kwargs)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            message = f"{provider.platform} error after {duration_ms}ms: {str(e)}"
            logger.warning(f"⚠️ {message}")
            return None, message

        duration_ms = int((time.perf_counter() - start) * 1000)
        return ProviderResult(provider.platform, provider.model, duration_ms, data), None

    async def aggregate(self, operation: str, **kwargs) -> AggregatedResult:
        """
        Run an operation on every configured provider.

        Args:
            operation: Operation name (see analyzer.prompts.PROMPT_BUILDERS)
            **kwargs: Arguments for the operation's prompt builder

        Returns:
            AggregatedResult with per-provider results, the combined result
            and one error string per failed provider

        Raises:
            ProviderNotConfiguredError: No provider has credentials
            AggregationError: Every attempted provider failed
        """
        configured = self.configured_providers
        if not configured:
            raise ProviderNotConfiguredError("All AI platforms failed - no API keys configured")
        primary_ok = self.primary in configured
        secondary_ok = self.secondary in configured

        if operation not in PROMPT_BUILDERS:
            raise ValueError(f"Unknown AI operation: {operation}")

        async def skipped():
            return None, None

        (primary_res, primary_err), (secondary_res, secondary_err) = await asyncio.gather(
            self._try_call(self.primary, operation, kwargs) if primary_ok else skipped(),
            self._try_call(self.secondary, operation, kwargs) if secondary_ok else skipped(),
        )

        errors = [e for e in (primary_err, secondary_err) if e]

        if primary_res is not None and primary_res.data is not None:
            combined = primary_res.data
        elif secondary_res is not None and secondary_res.data is not None:
            combined = secondary_res.data
        else:
            raise AggregationError("All AI platforms failed: " + "; ".join(errors), errors)

        logger.info(
            f"🤖 {operation}: primary={'ok' if primary_res else 'none'} "
            f"secondary={'ok' if secondary_res else 'none'} errors={len(errors)}"
        )
        return AggregatedResult(
            combined=combined,
            primary=primary_res,
            secondary=secondary_res,
            errors=errors,
        )


def get_default_aggregator() -> AIAggregator:
    """Aggregator over the Anthropic (primary) and OpenAI (secondary) providers"""
    return AIAggregator(primary=AnthropicProvider(), secondary=OpenAIProvider())
