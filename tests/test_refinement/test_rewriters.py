"""Tests for the heuristic and LLM-backed rewriters."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.llm import LLMResponse, TokenUsage
from src.refinement.prompts import (
    CLARITY_INSTRUCTIONS,
    CODE_QUALITY_INSTRUCTIONS,
    REWRITE_SYSTEM_PROMPT,
    STRUCTURE_INSTRUCTIONS,
)
from src.refinement.rewriters import (
    HeuristicRewriter,
    LLMRewriter,
    annotate_code_blocks,
    extract_rewritten,
    split_long_sentences,
    standardize_bullets,
)


class TestSplitLongSentences:
    """Tests for split_long_sentences."""

    def test_splits_at_midpoint(self):
        """A 40-word sentence becomes two 20-word sentences."""
        words = [f"w{chr(97 + i % 26)}" for i in range(40)]
        result = split_long_sentences(" ".join(words) + ".")

        first, second = result.split(". ", 1)
        assert len(first.split()) == 20
        assert len(second.split()) == 20
        assert second[0].isupper()
        assert result.endswith(".")

    def test_short_sentences_unchanged(self):
        """Sentences of 25 words or fewer are left alone."""
        text = "A short one. Another short one!"
        assert split_long_sentences(text) == text

    def test_trailing_punctuation_dropped_before_split(self):
        """A comma at the split point does not precede the new period."""
        words = ["word"] * 30
        words[14] = "word,"
        result = split_long_sentences(" ".join(words) + ".")
        assert ",." not in result
        assert result.count(".") == 2

    def test_preserves_unterminated_tail(self):
        """Text after the last terminal mark is kept."""
        text = " ".join(["lorem"] * 30) + ". trailing fragment"
        assert split_long_sentences(text).endswith(". trailing fragment")


class TestStandardizeBullets:
    """Tests for standardize_bullets."""

    def test_converts_markers(self):
        """Line-leading '*' and '-' become bullets."""
        text = "* one\n- two\n  - nested\n1. three"
        assert standardize_bullets(text) == "• one\n• two\n  • nested\n1. three"

    def test_ignores_inline_dashes(self):
        """Dashes inside a line are untouched."""
        text = "A well-known result - stated inline."
        assert standardize_bullets(text) == text


class TestAnnotateCodeBlocks:
    """Tests for annotate_code_blocks."""

    @pytest.mark.parametrize("language,comment", [
        ("python", "# This is a python code block"),
        ("javascript", "// This is a javascript code block"),
        ("html", "<!-- This is a html code block -->"),
        ("css", "/* This is a css code block */"),
    ])
    def test_adds_language_comment(self, language, comment):
        """Each block gets a comment in its language's syntax."""
        text = f"```{language}\ncode\n```"
        assert annotate_code_blocks(text) == f"```{language}\n{comment}\ncode\n```"

    def test_idempotent(self):
        """Already-annotated blocks are not annotated again."""
        once = annotate_code_blocks("```python\nx = 1\n```")
        assert annotate_code_blocks(once) == once


class TestHeuristicRewriter:
    """Tests for HeuristicRewriter."""

    @pytest.mark.asyncio
    async def test_clarity_instructions(self):
        """Clarity instructions split long sentences."""
        text = " ".join(["lorem"] * 40) + "."
        result = await HeuristicRewriter().rewrite(text, CLARITY_INSTRUCTIONS)
        assert result.count(".") == 2

    @pytest.mark.asyncio
    async def test_structure_instructions(self):
        """Structure instructions standardize bullets."""
        result = await HeuristicRewriter().rewrite("* a\n- b", STRUCTURE_INSTRUCTIONS)
        assert result == "• a\n• b"

    @pytest.mark.asyncio
    async def test_code_instructions(self):
        """Code quality instructions annotate code blocks."""
        result = await HeuristicRewriter().rewrite("```python\nx = 1\n```", CODE_QUALITY_INSTRUCTIONS)
        assert "# This is a python code block" in result

    @pytest.mark.asyncio
    async def test_unknown_instructions_unchanged(self):
        """Unrecognized instructions leave the text as is."""
        text = "* a\n" + " ".join(["lorem"] * 40) + "."
        assert await HeuristicRewriter().rewrite(text, "Add citations.") == text


class TestExtractRewritten:
    """Tests for extract_rewritten."""

    def test_tagged(self):
        """Content inside the tags is returned."""
        assert extract_rewritten("Sure!\n<rewritten>\nNew text\n</rewritten>") == "New text"

    def test_untagged(self):
        """Without tags the whole response is used."""
        assert extract_rewritten("  New text  ") == "New text"


class TestLLMRewriter:
    """Tests for LLMRewriter."""

    def _provider(self, content):
        provider = MagicMock()
        provider.start = AsyncMock()
        provider.stop = AsyncMock()
        provider.complete = AsyncMock(return_value=LLMResponse(
            content=content,
            model="claude-sonnet-4-20250514",
            usage=TokenUsage(input_tokens=10, output_tokens=5),
        ))
        return provider

    @pytest.mark.asyncio
    async def test_rewrite(self):
        """The provider is prompted and the tagged text returned."""
        provider = self._provider("<rewritten>Better text.</rewritten>")
        rewriter = LLMRewriter(provider, model="claude-3-5-haiku-20241022", max_tokens=512)

        result = await rewriter.rewrite("Old text.", CLARITY_INSTRUCTIONS)

        assert result == "Better text."
        args, kwargs = provider.complete.await_args
        assert "Old text." in args[0]
        assert CLARITY_INSTRUCTIONS in args[0]
        assert kwargs["system"] == REWRITE_SYSTEM_PROMPT
        assert kwargs["model"] == "claude-3-5-haiku-20241022"
        assert kwargs["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_empty_rewrite_raises(self):
        """An empty response is an error."""
        rewriter = LLMRewriter(self._provider("<rewritten>  </rewritten>"))
        with pytest.raises(ValueError):
            await rewriter.rewrite("Old text.", CLARITY_INSTRUCTIONS)

    @pytest.mark.asyncio
    async def test_context_manager_manages_provider(self):
        """Entering and leaving starts and stops the provider."""
        provider = self._provider("x")
        async with LLMRewriter(provider):
            provider.start.assert_awaited_once()
        provider.stop.assert_awaited_once()

    def test_cost_summary_comes_from_provider(self):
        """Spend is read from the provider's tracker."""
        provider = self._provider("x")
        provider.get_cost_summary.return_value = {"total_requests": 2, "total_cost_usd": 0.01}

        assert LLMRewriter(provider).get_cost_summary()["total_requests"] == 2
