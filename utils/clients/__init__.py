# Clients subpackage - External API clients
from .anthropic import (
    AnthropicProvider,
    call_anthropic_api_with_retry,
    close_anthropic_client,
    get_anthropic_client,
)
from .base import LLMProvider
from .openai import (
    OpenAIProvider,
    call_openai_api_with_retry,
    close_openai_client,
    get_openai_client,
)
from .pagespeed import PageSpeedClient
from .perplexity import AssistantResponder

__all__ = [
    "AnthropicProvider",
    "AssistantResponder",
    "LLMProvider",
    "OpenAIProvider",
    "PageSpeedClient",
    "call_anthropic_api_with_retry",
    "call_openai_api_with_retry",
    "close_anthropic_client",
    "close_openai_client",
    "get_anthropic_client",
    "get_openai_client",
]
