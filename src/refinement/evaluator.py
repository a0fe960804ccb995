"""Heuristic quality scoring for refinement candidates."""

import re
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from .text import (
    list_marker_styles,
    lowercase_words,
    split_paragraphs,
    split_sentences,
    word_count,
)

# Composite weights, summing to 1.0
COHERENCE_WEIGHT = 0.35
SENTENCE_LENGTH_WEIGHT = 0.25
VOCABULARY_WEIGHT = 0.20
STRUCTURE_WEIGHT = 0.20

# Sentence length at which the length component bottoms out
MAX_SENTENCE_WORDS = 30.0

# Unique-word ratio mapped linearly from POOR (0.0) to RICH (1.0)
POOR_VOCABULARY_RATIO = 0.3
RICH_VOCABULARY_RATIO = 0.7
MIN_VOCABULARY_WORDS = 10

# Transitions per paragraph that earn full coherence
IDEAL_TRANSITION_DENSITY = 1.5
MIN_COHERENCE = 0.3

NEUTRAL_VOCABULARY = 0.5
NEUTRAL_COHERENCE = 0.6
NO_LIST_STRUCTURE = 0.7
CONSISTENT_LIST_STRUCTURE = 0.9
MIXED_LIST_STRUCTURE = 0.6

TRANSITION_PHRASES = (
    "therefore", "thus", "consequently", "furthermore", "moreover",
    "however", "nonetheless", "although", "despite", "instead",
    "additionally", "similarly", "likewise", "in contrast", "for example",
    "specifically", "particularly", "notably", "in conclusion", "finally",
)

_TRANSITION_PATTERNS = [
    re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)
    for phrase in TRANSITION_PHRASES
]


class QualityEvaluator(Protocol):
    """Anything that can score text on [0, 1]."""

    def evaluate(self, text: str) -> float:
        ...


@dataclass(frozen=True)
class QualityMetrics:
    """Component metrics behind a composite quality score."""

    average_sentence_length: float
    vocabulary_richness: float
    structure_consistency: float
    coherence: float
    score: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def average_sentence_length(text: str) -> float:
    """Mean words per sentence; 0 when no sentence is terminated."""
    sentences = split_sentences(text)
    if not sentences:
        return 0.0
    return sum(word_count(s) for s in sentences) / len(sentences)


def vocabulary_richness(text: str) -> float:
    """Unique-word ratio rescaled to [0, 1]."""
    words = lowercase_words(text)
    if len(words) < MIN_VOCABULARY_WORDS:
        return NEUTRAL_VOCABULARY

    ratio = len(set(words)) / len(words)
    scaled = (ratio - POOR_VOCABULARY_RATIO) / (RICH_VOCABULARY_RATIO - POOR_VOCABULARY_RATIO)
    return max(0.0, min(1.0, scaled))


def structure_consistency(text: str) -> float:
    """Reward a single list-marker style, penalize mixed styles."""
    styles = list_marker_styles(text)
    if not styles:
        return NO_LIST_STRUCTURE
    if len(styles) == 1:
        return CONSISTENT_LIST_STRUCTURE
    return MIXED_LIST_STRUCTURE


def estimate_coherence(text: str) -> float:
    """
    Transition-phrase density per paragraph.

    Each phrase counts once however often it appears. Single-paragraph
    texts score neutrally.
    """
    paragraphs = split_paragraphs(text)
    if len(paragraphs) <= 1:
        return NEUTRAL_COHERENCE

    transitions = sum(1 for pattern in _TRANSITION_PATTERNS if pattern.search(text))
    density = transitions / len(paragraphs)
    return max(MIN_COHERENCE, min(1.0, density / IDEAL_TRANSITION_DENSITY))


class HeuristicQualityEvaluator:
    """
    Fixed weighted sum of readability, vocabulary, structure and coherence.

    The metrics are approximations; swap in any QualityEvaluator for a
    stronger analyzer without touching the refinement loop.
    """

    def analyze(self, text: str) -> QualityMetrics:
        """Compute every component and the clamped composite score."""
        avg_length = average_sentence_length(text)
        richness = vocabulary_richness(text)
        structure = structure_consistency(text)
        coherence = estimate_coherence(text)

        score = (
            COHERENCE_WEIGHT * coherence
            + SENTENCE_LENGTH_WEIGHT * (1 - min(1.0, avg_length / MAX_SENTENCE_WORDS))
            + VOCABULARY_WEIGHT * richness
            + STRUCTURE_WEIGHT * structure
        )

        return QualityMetrics(
            average_sentence_length=avg_length,
            vocabulary_richness=richness,
            structure_consistency=structure,
            coherence=coherence,
            score=max(0.0, min(1.0, score)),
        )

    def evaluate(self, text: str) -> float:
        return self.analyze(text).score
