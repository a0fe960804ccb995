"""Shared text-scanning helpers for strategies, scoring and the offline rewriter."""

import re

# A sentence is a run of non-terminal characters closed by one or more of .!?
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
WORD_PATTERN = re.compile(r"\b[a-z]+\b")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# One pattern per list-marker style; a marker only counts at the start of a line
LIST_MARKER_PATTERNS: dict[str, re.Pattern] = {
    "bullet": re.compile(r"^[ \t]*•[ \t]+", re.MULTILINE),
    "asterisk": re.compile(r"^[ \t]*\*[ \t]+", re.MULTILINE),
    "dash": re.compile(r"^[ \t]*-[ \t]+", re.MULTILINE),
    "numbered": re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE),
    "parenthesized": re.compile(r"^[ \t]*\(\d+\)[ \t]+", re.MULTILINE),
}

HEADING_PATTERN = re.compile(r"^#{1,6}[ \t]+\S", re.MULTILINE)


def split_sentences(text: str) -> list[str]:
    """Return the terminated sentences found in text."""
    return SENTENCE_PATTERN.findall(text)


def word_count(sentence: str) -> int:
    """Count whitespace-separated tokens."""
    return len(sentence.split())


def lowercase_words(text: str) -> list[str]:
    """Return the alphabetic words of text, lower-cased."""
    return WORD_PATTERN.findall(text.lower())


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, dropping empty paragraphs."""
    return [p for p in PARAGRAPH_BREAK.split(text) if p.strip()]


def list_marker_styles(text: str) -> dict[str, int]:
    """Count list markers per style, omitting styles that never occur."""
    counts = {}
    for style, pattern in LIST_MARKER_PATTERNS.items():
        found = len(pattern.findall(text))
        if found:
            counts[style] = found
    return counts


def has_headings(text: str) -> bool:
    """Check for markdown headings."""
    return HEADING_PATTERN.search(text) is not None
