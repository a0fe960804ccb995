"""Refinement strategies and the registry that ranks them."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, Union

from . import prompts
from .modes import get_strategy_weight
from .rewriters import TextRewriter
from .text import HEADING_PATTERN, LIST_MARKER_PATTERNS, split_sentences, word_count
from .tone import analyze_tone

logger = logging.getLogger(__name__)

ApplicabilityCheck = Callable[[str, Mapping[str, Any]], bool]
TransformResult = tuple[str, dict[str, Any]]
TransformFn = Callable[[str, Mapping[str, Any], TextRewriter], Awaitable[TransformResult]]


class StrategyCategory(str, Enum):
    """Groups strategies by the kind of improvement they make."""

    READABILITY = "readability"
    ACCURACY = "accuracy"
    STRUCTURE = "structure"
    CODE = "code"
    SPECIALIZED = "specialized"


@dataclass(frozen=True)
class Strategy:
    """
    A named, stateless improvement.

    `applicable` decides whether the strategy should run on a text;
    `transform` returns the new text plus a metadata patch, delegating the
    actual edit to the rewriter it is handed.
    """

    id: str
    name: str
    priority: float
    applicable: ApplicabilityCheck
    transform: TransformFn
    description: str = ""
    category: StrategyCategory = StrategyCategory.SPECIALIZED

    def is_applicable(self, text: str, metadata: Mapping[str, Any]) -> bool:
        return bool(self.applicable(text, metadata))

    async def apply(
        self,
        text: str,
        metadata: Mapping[str, Any],
        rewriter: TextRewriter,
    ) -> TransformResult:
        return await self.transform(text, metadata, rewriter)


@dataclass(frozen=True)
class RankedStrategy:
    """A strategy with its priority adjusted for the active mode."""

    strategy: Strategy
    adjusted_priority: float
    weight: float = 1.0

    @property
    def id(self) -> str:
        return self.strategy.id

    @property
    def name(self) -> str:
        return self.strategy.name


def rewrite_transform(
    instructions: Union[str, Callable[[Mapping[str, Any]], str]],
    patch: Mapping[str, Any],
) -> TransformFn:
    """Build a transform that rewrites with fixed or metadata-derived instructions."""

    async def transform(
        text: str,
        metadata: Mapping[str, Any],
        rewriter: TextRewriter,
    ) -> TransformResult:
        text_instructions = instructions(metadata) if callable(instructions) else instructions
        refined = await rewriter.rewrite(text, text_instructions)
        return refined, dict(patch)

    return transform


@dataclass
class _Entry:
    strategy: Strategy
    enabled: bool = True


class StrategyRegistry:
    """
    Ordered collection of strategies keyed by id.

    Registration order is kept and breaks ties when ranking; re-registering
    an id replaces the strategy in its original slot.
    """

    def __init__(self):
        self._entries: dict[str, _Entry] = {}

    def register(self, strategy: Strategy) -> bool:
        """Add or replace a strategy. Returns True when an entry was replaced."""
        existing = self._entries.get(strategy.id)
        if existing is not None:
            logger.warning(f"Strategy '{strategy.id}' already registered, overwriting")
            existing.strategy = strategy
            return True

        self._entries[strategy.id] = _Entry(strategy)
        logger.debug(f"Registered strategy '{strategy.id}' (priority {strategy.priority})")
        return False

    def unregister(self, strategy_id: str) -> bool:
        return self._entries.pop(strategy_id, None) is not None

    def get(self, strategy_id: str) -> Optional[Strategy]:
        entry = self._entries.get(strategy_id)
        return entry.strategy if entry else None

    def ids(self) -> list[str]:
        return list(self._entries)

    def enable(self, strategy_id: str) -> bool:
        return self._set_enabled(strategy_id, True)

    def disable(self, strategy_id: str) -> bool:
        return self._set_enabled(strategy_id, False)

    def _set_enabled(self, strategy_id: str, enabled: bool) -> bool:
        entry = self._entries.get(strategy_id)
        if entry is None:
            logger.warning(f"Unknown strategy '{strategy_id}'")
            return False
        entry.enabled = enabled
        return True

    def is_enabled(self, strategy_id: str) -> bool:
        entry = self._entries.get(strategy_id)
        return entry is not None and entry.enabled

    def by_category(self, category: StrategyCategory) -> list[Strategy]:
        return [e.strategy for e in self._entries.values() if e.strategy.category == category]

    def applicable_strategies(
        self,
        text: str,
        metadata: Mapping[str, Any],
        mode: Any = None,
    ) -> list[RankedStrategy]:
        """
        Enabled strategies whose predicate accepts the text, best first.

        Priority is scaled by the mode weight; equal adjusted priorities keep
        registration order. A predicate that raises counts as not applicable.
        """
        ranked = []
        for entry in self._entries.values():
            if not entry.enabled:
                continue

            strategy = entry.strategy
            try:
                applicable = strategy.is_applicable(text, metadata)
            except Exception as e:
                logger.warning(f"Applicability check for '{strategy.id}' failed: {e}")
                continue

            if applicable:
                weight = get_strategy_weight(mode, strategy.id)
                ranked.append(RankedStrategy(strategy, strategy.priority * weight, weight))

        ranked.sort(key=lambda r: r.adjusted_priority, reverse=True)
        return ranked

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id in self._entries

    def __iter__(self) -> Iterator[Strategy]:
        return (e.strategy for e in self._entries.values())


# Built-in applicability checks

_REQUIREMENT_VERBS = re.compile(r"\b(list|explain|describe|compare|analyze|provide)\b", re.IGNORECASE)
_FACTUAL_INDICATORS = re.compile(
    r"\b(in \d{4}|percent|statistics|according to|study|research|found that)\b",
    re.IGNORECASE,
)
_CODE_FENCE = re.compile(r"```(?:javascript|python|java|c#|html|css)(?![\w#+])")
_CITATION = re.compile(r"\([^)]+\d{4}[^)]*\)|\[[0-9,\s]+\]")
_NUMERIC_TOKEN = re.compile(r"\d+(?:\.\d+)?%?")
_TABLE_SEPARATOR = re.compile(r"\|\s*:?-{3,}")
_TABLE_CELL = re.compile(r"\|\s*\w+\s*\|")

MIN_TONE_TEXT_LENGTH = 500
MIN_NUMERIC_TOKENS = 5
MIN_TABLE_CELLS = 2


def has_long_sentence(text: str, metadata: Mapping[str, Any]) -> bool:
    return any(word_count(s) > 25 for s in split_sentences(text))


def query_has_multiple_parts(text: str, metadata: Mapping[str, Any]) -> bool:
    query = metadata.get("original_query")
    if not query:
        return False
    return query.count("?") > 1 or len(_REQUIREMENT_VERBS.findall(query)) > 1


def has_factual_claims(text: str, metadata: Mapping[str, Any]) -> bool:
    return _FACTUAL_INDICATORS.search(text) is not None


def has_structure(text: str, metadata: Mapping[str, Any]) -> bool:
    if HEADING_PATTERN.search(text):
        return True
    return any(p.search(text) for p in LIST_MARKER_PATTERNS.values())


def has_code_blocks(text: str, metadata: Mapping[str, Any]) -> bool:
    return _CODE_FENCE.search(text) is not None


def is_long_form(text: str, metadata: Mapping[str, Any]) -> bool:
    return len(text) > MIN_TONE_TEXT_LENGTH


def has_citations(text: str, metadata: Mapping[str, Any]) -> bool:
    return _CITATION.search(text) is not None


def has_numeric_data(text: str, metadata: Mapping[str, Any]) -> bool:
    if len(_NUMERIC_TOKEN.findall(text)) >= MIN_NUMERIC_TOKENS:
        return True
    return bool(_TABLE_SEPARATOR.search(text)) or len(_TABLE_CELL.findall(text)) > MIN_TABLE_CELLS


def seo_requested(text: str, metadata: Mapping[str, Any]) -> bool:
    return metadata.get("optimize_for_seo") is True


async def _standardize_tone(
    text: str,
    metadata: Mapping[str, Any],
    rewriter: TextRewriter,
) -> TransformResult:
    tone = analyze_tone(text).predominant_tone
    if tone is None:
        return text, {}

    refined = await rewriter.rewrite(text, prompts.tone_instructions(tone))
    return refined, {"tone_standardized": True, "tone": tone}


def _seo_instructions(metadata: Mapping[str, Any]) -> str:
    return prompts.seo_instructions(metadata.get("keywords") or [])


def _completeness_instructions(metadata: Mapping[str, Any]) -> str:
    return prompts.completeness_instructions(metadata.get("original_query"))


def builtin_strategies() -> list[Strategy]:
    """The default strategy set, in registration order."""
    return [
        Strategy(
            id="clarity",
            name="Clarity Enhancement",
            priority=90,
            applicable=has_long_sentence,
            transform=rewrite_transform(prompts.CLARITY_INSTRUCTIONS, {"clarity_enhanced": True}),
            description="Improves clarity by simplifying complex sentences",
            category=StrategyCategory.READABILITY,
        ),
        Strategy(
            id="completeness",
            name="Completeness Verification",
            priority=85,
            applicable=query_has_multiple_parts,
            transform=rewrite_transform(_completeness_instructions, {"completeness_checked": True}),
            description="Ensures all parts of the original query are addressed",
            category=StrategyCategory.ACCURACY,
        ),
        Strategy(
            id="factual_accuracy",
            name="Factual Accuracy Check",
            priority=95,
            applicable=has_factual_claims,
            transform=rewrite_transform(prompts.FACTUAL_ACCURACY_INSTRUCTIONS, {"fact_checked": True}),
            description="Verifies factual claims and qualifies uncertain ones",
            category=StrategyCategory.ACCURACY,
        ),
        Strategy(
            id="structure",
            name="Structural Consistency",
            priority=75,
            applicable=has_structure,
            transform=rewrite_transform(prompts.STRUCTURE_INSTRUCTIONS, {"structure_standardized": True}),
            description="Ensures consistent formatting and structure",
            category=StrategyCategory.STRUCTURE,
        ),
        Strategy(
            id="code_quality",
            name="Code Quality Enhancement",
            priority=85,
            applicable=has_code_blocks,
            transform=rewrite_transform(prompts.CODE_QUALITY_INSTRUCTIONS, {"code_optimized": True}),
            description="Improves code formatting and adds comments",
            category=StrategyCategory.CODE,
        ),
        Strategy(
            id="tone_consistency",
            name="Tone Consistency",
            priority=65,
            applicable=is_long_form,
            transform=_standardize_tone,
            description="Keeps a single predominant tone throughout",
            category=StrategyCategory.READABILITY,
        ),
        Strategy(
            id="citation_enhancement",
            name="Citation Enhancement",
            priority=70,
            applicable=has_citations,
            transform=rewrite_transform(prompts.CITATION_INSTRUCTIONS, {"citations_standardized": True}),
            description="Standardizes in-text citations",
            category=StrategyCategory.SPECIALIZED,
        ),
        Strategy(
            id="data_visualization",
            name="Data Visualization Suggestions",
            priority=40,
            applicable=has_numeric_data,
            transform=rewrite_transform(
                prompts.DATA_VISUALIZATION_INSTRUCTIONS, {"visualization_suggested": True}
            ),
            description="Suggests visualizations for numerical content",
            category=StrategyCategory.SPECIALIZED,
        ),
        Strategy(
            id="seo_optimization",
            name="SEO Enhancement",
            priority=50,
            applicable=seo_requested,
            transform=rewrite_transform(_seo_instructions, {"seo_optimized": True}),
            description="Optimizes content for search engines",
            category=StrategyCategory.SPECIALIZED,
        ),
    ]


def create_default_registry() -> StrategyRegistry:
    """A fresh registry holding every built-in strategy."""
    registry = StrategyRegistry()
    for strategy in builtin_strategies():
        registry.register(strategy)
    return registry
