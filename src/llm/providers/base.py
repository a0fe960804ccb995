"""Provider contract used by the LLM rewriter, plus token and spend accounting."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ProviderType(str, Enum):
    """Backends that can serve rewrite requests."""

    ANTHROPIC = "anthropic"


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Text of one rewrite request with its usage, latency and price."""

    content: str
    model: str
    usage: TokenUsage
    stop_reason: Optional[str] = None
    latency_ms: float = 0.0
    provider: Optional[ProviderType] = None
    cost_usd: float = 0.0


@dataclass
class ModelSpend:
    """Requests, tokens and dollars charged against one model."""

    requests: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost_usd: float = 0.0


@dataclass
class CostTracker:
    """
    Spend of every rewrite request made through a provider, keyed by model.

    A refinement run issues one request per applied rewrite strategy, so
    the totals here are what a run cost end to end.
    """

    by_model: dict[str, ModelSpend] = field(default_factory=dict)

    def add(self, response: LLMResponse, cost_usd: float) -> None:
        spend = self.by_model.setdefault(response.model, ModelSpend())
        spend.requests += 1
        spend.usage.input_tokens += response.usage.input_tokens
        spend.usage.output_tokens += response.usage.output_tokens
        spend.cost_usd += cost_usd

    @property
    def request_count(self) -> int:
        return sum(s.requests for s in self.by_model.values())

    @property
    def total_input_tokens(self) -> int:
        return sum(s.usage.input_tokens for s in self.by_model.values())

    @property
    def total_output_tokens(self) -> int:
        return sum(s.usage.output_tokens for s in self.by_model.values())

    @property
    def total_cost_usd(self) -> float:
        return sum(s.cost_usd for s in self.by_model.values())

    def get_summary(self) -> dict[str, Any]:
        return {
            "total_requests": self.request_count,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": round(self.total_cost_usd, 4),
            "costs_by_model": {
                model: round(spend.cost_usd, 4) for model, spend in self.by_model.items()
            },
        }


class LLMProvider(ABC):
    """
    A completion backend for LLMRewriter.

    Rewrites are single-turn: one prompt holding the text and the editing
    instructions, one reply holding the rewritten text. Implementations
    own their client connection between start() and stop().

    Usage:
        async with create_llm_provider(ProviderType.ANTHROPIC) as provider:
            response = await provider.complete(prompt, system=REWRITE_SYSTEM_PROMPT)
    """

    def __init__(self):
        self.cost_tracker = CostTracker()
        self._started = False

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        ...

    @property
    def is_started(self) -> bool:
        return self._started

    async def __aenter__(self) -> "LLMProvider":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        model: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Run one rewrite request.

        Args:
            prompt: Rewrite prompt carrying the text and its instructions
            system: System prompt for the rewrite
            max_tokens: Upper bound on the rewritten text's length in tokens
            temperature: Sampling temperature; low values keep edits conservative
            model: Model to use instead of the provider default
            **kwargs: Passed through to the backend client

        Returns:
            LLMResponse whose content holds the rewritten text
        """
        ...

    @abstractmethod
    def calculate_cost(self, usage: TokenUsage, model: str) -> float:
        """Dollar price of a request's token usage on the given model."""
        ...

    def get_cost_summary(self) -> dict[str, Any]:
        """Totals across every request since the provider was created."""
        return self.cost_tracker.get_summary()
