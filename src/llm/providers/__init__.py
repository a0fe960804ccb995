"""
LLM provider implementations.

A single abstraction (LLMProvider) with one concrete backend for
Anthropic Claude.
"""

from .base import (
    CostTracker,
    LLMProvider,
    LLMResponse,
    ProviderType,
    TokenUsage,
)
from .anthropic import AnthropicProvider
from .factory import create_llm_provider, get_default_model

__all__ = [
    # Base
    "LLMProvider",
    "ProviderType",
    "LLMResponse",
    "TokenUsage",
    "CostTracker",
    # Providers
    "AnthropicProvider",
    # Factory
    "create_llm_provider",
    "get_default_model",
]
