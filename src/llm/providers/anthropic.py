"""Anthropic (Claude) provider used by the LLM rewriter."""

import asyncio
import logging
import os
import time
from typing import Any, Optional

import anthropic
from anthropic import APIError, RateLimitError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import LLMProvider, LLMResponse, ProviderType, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"

# Pricing per million tokens
ANTHROPIC_PRICING = {
    "claude-opus-4-20250514": {"input": 15.00, "output": 75.00},
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
}
DEFAULT_ANTHROPIC_PRICING = {"input": 3.00, "output": 15.00}


class AnthropicProvider(LLMProvider):
    """
    Claude completions through the async Anthropic SDK.

    Requests are spaced by an optional requests-per-minute limit and retried
    on rate-limit and API errors with exponential back-off.

    Usage:
        async with AnthropicProvider(default_model="claude-sonnet-4-20250514") as provider:
            response = await provider.complete("Hello!")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_ANTHROPIC_MODEL,
        api_base_url: Optional[str] = None,
        timeout_seconds: float = 120.0,
        max_retries: int = 3,
        requests_per_minute: Optional[int] = None,
        track_costs: bool = True,
        log_requests: bool = False,
        log_responses: bool = False,
    ):
        super().__init__()
        self._api_key = api_key
        self.default_model = default_model
        self.api_base_url = api_base_url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.requests_per_minute = requests_per_minute
        self.track_costs = track_costs
        self.log_requests = log_requests
        self.log_responses = log_responses

        self._client: Optional[anthropic.AsyncAnthropic] = None
        self._rate_limit_lock = asyncio.Lock()
        self._last_request_time: float = 0.0

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.ANTHROPIC

    def _get_api_key(self) -> str:
        if self._api_key:
            return self._api_key

        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY or pass api_key."
            )
        return api_key

    async def start(self) -> None:
        self._client = anthropic.AsyncAnthropic(
            api_key=self._get_api_key(),
            base_url=self.api_base_url,
            timeout=self.timeout_seconds,
        )
        self._started = True
        logger.info(f"Anthropic provider started (model={self.default_model})")

    async def stop(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
        self._started = False
        logger.info("Anthropic provider closed")

    def _ensure_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            raise RuntimeError(
                "Provider not initialized. Use 'async with provider' or call start()."
            )
        return self._client

    async def _apply_rate_limit(self) -> None:
        """Sleep until the minimum spacing between requests has passed."""
        if not self.requests_per_minute:
            return

        min_interval = 60.0 / self.requests_per_minute
        async with self._rate_limit_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            self._last_request_time = time.monotonic()

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
        client = self._ensure_client()
        model = model or self.default_model

        request_params: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            request_params["system"] = system
        request_params.update(kwargs)

        await self._apply_rate_limit()

        start_time = time.monotonic()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1.0, max=60.0, exp_base=2.0),
            retry=retry_if_exception_type((RateLimitError, APIError)),
            reraise=True,
        ):
            with attempt:
                if self.log_requests:
                    logger.debug(f"Anthropic request: {request_params}")
                response = await client.messages.create(**request_params)

        latency_ms = (time.monotonic() - start_time) * 1000

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        cost_usd = self.calculate_cost(usage, model)

        llm_response = LLMResponse(
            content=content,
            model=response.model,
            usage=usage,
            stop_reason=response.stop_reason,
            latency_ms=latency_ms,
            provider=ProviderType.ANTHROPIC,
            cost_usd=cost_usd,
        )

        if self.track_costs:
            self.cost_tracker.add(llm_response, cost_usd)

        if self.log_responses:
            logger.debug(f"Anthropic response: {content[:200]}...")

        return llm_response

    def calculate_cost(self, usage: TokenUsage, model: str) -> float:
        pricing = ANTHROPIC_PRICING.get(model, DEFAULT_ANTHROPIC_PRICING)
        return (
            usage.input_tokens / 1_000_000 * pricing["input"]
            + usage.output_tokens / 1_000_000 * pricing["output"]
        )
