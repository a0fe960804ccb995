"""Tests for the LLM provider layer."""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.llm import (
    AnthropicProvider,
    CostTracker,
    LLMResponse,
    ProviderType,
    TokenUsage,
    create_llm_provider,
    get_default_model,
)


class TestTokenUsage:
    """Tests for TokenUsage."""

    def test_total_tokens(self):
        """Test total token calculation."""
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        assert usage.total_tokens == 150


class TestCostTracker:
    """Tests for CostTracker."""

    def _response(self, model="claude-sonnet-4-20250514"):
        return LLMResponse(
            content="Test",
            model=model,
            usage=TokenUsage(input_tokens=1000, output_tokens=500),
        )

    def test_add_response(self):
        """Test adding a response to the tracker."""
        tracker = CostTracker()
        tracker.add(self._response(), 0.01)

        assert tracker.request_count == 1
        assert tracker.total_input_tokens == 1000
        assert tracker.total_output_tokens == 500
        assert tracker.total_cost_usd == pytest.approx(0.01)

    def test_summary_groups_by_model(self):
        """Costs are broken down by model."""
        tracker = CostTracker()
        tracker.add(self._response(), 0.01)
        tracker.add(self._response(), 0.02)
        tracker.add(self._response("claude-3-5-haiku-20241022"), 0.005)

        summary = tracker.get_summary()
        assert summary["total_requests"] == 3
        assert summary["costs_by_model"]["claude-sonnet-4-20250514"] == pytest.approx(0.03)
        assert summary["costs_by_model"]["claude-3-5-haiku-20241022"] == pytest.approx(0.005)


class TestAnthropicProvider:
    """Tests for AnthropicProvider."""

    def test_provider_type(self):
        """Provider reports its type."""
        assert AnthropicProvider(api_key="test").provider_type == ProviderType.ANTHROPIC

    def test_calculate_cost(self):
        """Cost uses per-million pricing."""
        provider = AnthropicProvider(api_key="test")
        usage = TokenUsage(input_tokens=1_000_000, output_tokens=100_000)
        # $3/M input + $15/M * 0.1M output
        assert provider.calculate_cost(usage, "claude-sonnet-4-20250514") == pytest.approx(4.5)

    def test_unknown_model_uses_default_pricing(self):
        """Unknown models fall back to default pricing."""
        provider = AnthropicProvider(api_key="test")
        usage = TokenUsage(input_tokens=1_000_000)
        assert provider.calculate_cost(usage, "claude-future") == pytest.approx(3.0)

    def test_api_key_from_environment(self, monkeypatch):
        """The key falls back to ANTHROPIC_API_KEY."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
        assert AnthropicProvider()._get_api_key() == "env-key"

    def test_missing_api_key(self, monkeypatch):
        """A missing key raises ValueError."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError):
            AnthropicProvider()._get_api_key()

    @pytest.mark.asyncio
    async def test_complete_before_start(self):
        """Using the provider before start() raises RuntimeError."""
        with pytest.raises(RuntimeError):
            await AnthropicProvider(api_key="test").complete("Hello")

    @pytest.mark.asyncio
    async def test_complete(self):
        """A completion returns text, usage and tracked cost."""
        provider = AnthropicProvider(api_key="test", default_model="claude-sonnet-4-20250514")
        api_response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Rewritten.")],
            usage=SimpleNamespace(
                input_tokens=100,
                output_tokens=20,
            ),
            model="claude-sonnet-4-20250514",
            stop_reason="end_turn",
        )
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=api_response)
        provider._client = client

        response = await provider.complete("Hello", system="Be brief", temperature=0.2)

        assert response.content == "Rewritten."
        assert response.usage.total_tokens == 120
        assert response.provider == ProviderType.ANTHROPIC
        assert response.cost_usd > 0
        assert provider.cost_tracker.request_count == 1

        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["system"] == "Be brief"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]

    @pytest.mark.asyncio
    async def test_stop_closes_client(self):
        """stop() closes and clears the client."""
        provider = AnthropicProvider(api_key="test")
        client = MagicMock()
        client.close = AsyncMock()
        provider._client = client
        provider._started = True

        await provider.stop()

        client.close.assert_awaited_once()
        assert provider.is_started is False


class TestFactory:
    """Tests for the provider factory."""

    def test_create_anthropic(self):
        """Strings and enums both create an Anthropic provider."""
        provider = create_llm_provider("anthropic", api_key="test")
        assert isinstance(provider, AnthropicProvider)
        assert provider.default_model == get_default_model(ProviderType.ANTHROPIC)

        provider = create_llm_provider(ProviderType.ANTHROPIC, default_model="claude-3-5-haiku-20241022")
        assert provider.default_model == "claude-3-5-haiku-20241022"

    def test_provider_kwargs_are_forwarded(self):
        """Extra keyword arguments reach the provider."""
        provider = create_llm_provider("anthropic", requests_per_minute=30, max_retries=1)
        assert provider.requests_per_minute == 30
        assert provider.max_retries == 1

    def test_unknown_provider(self):
        """Unknown providers raise ValueError."""
        with pytest.raises(ValueError):
            create_llm_provider("openai")


class TestModelSpend:
    """Tests for per-model spend accounting."""

    def test_tokens_accumulate_per_model(self):
        """Each model keeps its own request and token counts."""
        tracker = CostTracker()
        for model in ("claude-sonnet-4-20250514", "claude-sonnet-4-20250514", "claude-3-5-haiku-20241022"):
            tracker.add(
                LLMResponse(content="x", model=model, usage=TokenUsage(input_tokens=10, output_tokens=4)),
                0.001,
            )

        sonnet = tracker.by_model["claude-sonnet-4-20250514"]
        assert sonnet.requests == 2
        assert sonnet.usage.total_tokens == 28
        assert tracker.by_model["claude-3-5-haiku-20241022"].requests == 1
        assert tracker.total_input_tokens == 30
