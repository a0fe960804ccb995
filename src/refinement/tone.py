"""Pattern-based tone profiling."""

import re
import statistics
from dataclasses import dataclass, field
from typing import Optional

# Matches per tone are normalized to this many words
WORDS_PER_UNIT = 100

# A tone is predominant only if it beats the mean score by this factor
PREDOMINANCE_FACTOR = 1.5

TONE_PATTERNS: dict[str, list[re.Pattern]] = {
    "formal": [
        re.compile(r"\b(therefore|thus|consequently|furthermore|moreover|nevertheless|however)\b", re.IGNORECASE),
        re.compile(r"\b(it is|there are|one might|it may be|it could be)\b", re.IGNORECASE),
        re.compile(r"\b(according to|as demonstrated by|as shown in|it is evident that)\b", re.IGNORECASE),
    ],
    "casual": [
        re.compile(r"\b(so|anyway|actually|basically|I think|you know|like)\b", re.IGNORECASE),
        re.compile(r"\b(cool|awesome|great|amazing|wow|nice|pretty)\b", re.IGNORECASE),
        re.compile(r"!+"),
        re.compile(r"\?{2,}"),
    ],
    "technical": [
        re.compile(r"\b(algorithm|function|parameter|interface|implementation|component|module)\b", re.IGNORECASE),
        re.compile(r"\b(data|analysis|process|methodology|framework|architecture|infrastructure)\b", re.IGNORECASE),
        re.compile(r"\b(technical|specification|documentation|requirement|configuration|deployment)\b", re.IGNORECASE),
    ],
    "enthusiastic": [
        re.compile(r"\b(exciting|amazing|incredible|fantastic|wonderful|excellent|remarkable)\b", re.IGNORECASE),
        re.compile(r"\b(breakthrough|revolutionary|game-changing|cutting-edge|innovative)\b", re.IGNORECASE),
        re.compile(r"!+"),
    ],
    "cautious": [
        re.compile(r"\b(may|might|could|possibly|potentially|perhaps|reportedly)\b", re.IGNORECASE),
        re.compile(r"\b(appears to|seems to|suggests that|indicates that|may indicate)\b", re.IGNORECASE),
        re.compile(r"\b(with caution|careful|limitation|drawback|caveat|constraint)\b", re.IGNORECASE),
    ],
    "persuasive": [
        re.compile(r"\b(should|must|need to|have to|important to|crucial to|essential to)\b", re.IGNORECASE),
        re.compile(r"\b(clearly|obviously|undoubtedly|certainly|definitely|absolutely)\b", re.IGNORECASE),
        re.compile(r"\b(consider|imagine|think about|what if|why not)\b", re.IGNORECASE),
    ],
}


@dataclass
class ToneAnalysis:
    """Per-tone scores and the tone that dominates, if any."""

    scores: dict[str, float] = field(default_factory=dict)
    predominant_tone: Optional[str] = None
    diversity: float = 0.0


def calculate_diversity(scores: dict[str, float]) -> float:
    """Coefficient of variation of the scores, capped at 1."""
    values = list(scores.values())
    if not values:
        return 0.0

    mean = statistics.fmean(values)
    if mean == 0:
        return 0.0
    return min(1.0, statistics.pstdev(values) / mean)


def analyze_tone(text: str) -> ToneAnalysis:
    """Score each tone per 100 words and pick a clearly predominant one."""
    normalizer = max(1.0, len(text.split()) / WORDS_PER_UNIT)

    scores = {
        tone: sum(len(pattern.findall(text)) for pattern in patterns) / normalizer
        for tone, patterns in TONE_PATTERNS.items()
    }

    predominant = None
    best = 0.0
    for tone, score in scores.items():
        if score > best:
            best = score
            predominant = tone

    average = sum(scores.values()) / len(scores)
    if best < average * PREDOMINANCE_FACTOR:
        predominant = None

    return ToneAnalysis(
        scores=scores,
        predominant_tone=predominant,
        diversity=calculate_diversity(scores),
    )
