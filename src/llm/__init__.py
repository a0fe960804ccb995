"""
LLM integration for the content refiner.

Provides the provider abstraction behind the LLM-backed text rewriter:
- Anthropic Claude provider with tenacity retries and rate limiting
- Token usage and cost tracking

Usage:
    from src.llm import create_llm_provider, ProviderType

    provider = create_llm_provider(ProviderType.ANTHROPIC)
    async with provider:
        response = await provider.complete("Hello, world!")
        print(response.content)
"""

from .providers import (
    AnthropicProvider,
    CostTracker,
    LLMProvider,
    LLMResponse,
    ProviderType,
    TokenUsage,
    create_llm_provider,
    get_default_model,
)

__all__ = [
    "LLMProvider",
    "ProviderType",
    "AnthropicProvider",
    "create_llm_provider",
    "get_default_model",
    "LLMResponse",
    "TokenUsage",
    "CostTracker",
]
