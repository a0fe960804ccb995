"""Text rewriters: the collaborators strategies delegate edits to."""

import logging
import re
from typing import Any, Optional, Protocol

from src.llm import LLMProvider

from .prompts import REWRITE_SYSTEM_PROMPT, format_rewrite_prompt
from .text import SENTENCE_PATTERN

logger = logging.getLogger(__name__)

# Sentences longer than this are split by the heuristic rewriter
LONG_SENTENCE_WORDS = 25

_BULLET_MARKER = re.compile(r"^([ \t]*)[*-][ \t]+(?=\S)", re.MULTILINE)
_CODE_BLOCK = re.compile(r"```([a-z#+]+)\n(.*?)```", re.DOTALL)
_REWRITTEN_TAG = re.compile(r"<rewritten>(.*?)</rewritten>", re.DOTALL)

# Comment delimiters per fenced-code language
_COMMENT_SYNTAX = {
    "python": ("# ", ""),
    "html": ("<!-- ", " -->"),
    "css": ("/* ", " */"),
}
_DEFAULT_COMMENT = ("// ", "")


class TextRewriter(Protocol):
    """Applies natural-language editing instructions to text."""

    async def rewrite(self, text: str, instructions: str) -> str:
        ...


def _split_sentence(match: re.Match) -> str:
    sentence = match.group(0)
    words = sentence.split()
    if len(words) <= LONG_SENTENCE_WORDS:
        return sentence

    leading = sentence[: len(sentence) - len(sentence.lstrip())]
    midpoint = len(words) // 2
    first = " ".join(words[:midpoint]).rstrip(",;:")
    second = " ".join(words[midpoint:])
    return f"{leading}{first}. {second[:1].upper()}{second[1:]}"


def split_long_sentences(text: str) -> str:
    """Break every sentence over 25 words in two at its midpoint."""
    return SENTENCE_PATTERN.sub(_split_sentence, text)


def standardize_bullets(text: str) -> str:
    """Rewrite line-leading '*' and '-' markers as '•'."""
    return _BULLET_MARKER.sub(r"\1• ", text)


def _annotate_block(match: re.Match) -> str:
    language, code = match.group(1), match.group(2)
    start, end = _COMMENT_SYNTAX.get(language, _DEFAULT_COMMENT)
    comment = f"{start}This is a {language} code block{end}"
    if code.startswith(comment):
        return match.group(0)
    return f"```{language}\n{comment}\n{code}```"


def annotate_code_blocks(text: str) -> str:
    """Prefix each fenced code block with a one-line language comment."""
    return _CODE_BLOCK.sub(_annotate_block, text)


class HeuristicRewriter:
    """
    Offline rewriter that simulates the edits an instruction asks for.

    Recognizes three kinds of instruction by phrase: breaking long
    sentences, consistent formatting and code quality. Anything else
    returns the text unchanged. Deterministic, so runs are reproducible.
    """

    async def rewrite(self, text: str, instructions: str) -> str:
        lowered = instructions.lower()
        result = text

        if "long sentences" in lowered:
            result = split_long_sentences(result)
        if "consistent formatting" in lowered:
            result = standardize_bullets(result)
        if "code quality" in lowered:
            result = annotate_code_blocks(result)

        if result != text:
            logger.debug(f"Heuristic rewrite changed {len(text)} -> {len(result)} chars")
        return result


def extract_rewritten(content: str) -> str:
    """Pull the text out of <rewritten> tags, or use the whole response."""
    match = _REWRITTEN_TAG.search(content)
    if match:
        return match.group(1).strip("\n")
    return content.strip()


class LLMRewriter:
    """
    Rewriter backed by an LLMProvider.

    Usage:
        provider = create_llm_provider(ProviderType.ANTHROPIC)
        async with LLMRewriter(provider) as rewriter:
            text = await rewriter.rewrite(text, CLARITY_INSTRUCTIONS)
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: Optional[str] = None,
        max_tokens: int = 8192,
        temperature: float = 0.3,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def start(self) -> None:
        await self.provider.start()

    async def stop(self) -> None:
        await self.provider.stop()

    async def __aenter__(self) -> "LLMRewriter":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    def get_cost_summary(self) -> dict[str, Any]:
        return self.provider.get_cost_summary()

    async def rewrite(self, text: str, instructions: str) -> str:
        response = await self.provider.complete(
            format_rewrite_prompt(text, instructions),
            system=REWRITE_SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            model=self.model,
        )

        rewritten = extract_rewritten(response.content)
        if not rewritten.strip():
            raise ValueError("LLM returned an empty rewrite")

        logger.debug(
            f"LLM rewrite: {response.usage.total_tokens} tokens, "
            f"{response.latency_ms:.0f}ms"
        )
        return rewritten
