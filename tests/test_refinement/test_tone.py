"""Tests for tone analysis."""

import pytest

from src.refinement.tone import TONE_PATTERNS, analyze_tone, calculate_diversity


class TestCalculateDiversity:
    """Tests for calculate_diversity."""

    def test_empty_and_zero(self):
        """No scores, or all-zero scores, have no diversity."""
        assert calculate_diversity({}) == 0.0
        assert calculate_diversity({"a": 0.0, "b": 0.0}) == 0.0

    def test_coefficient_of_variation(self):
        """Population stdev over mean."""
        assert calculate_diversity({"a": 3.0, "b": 1.0}) == pytest.approx(0.5)

    def test_capped_at_one(self):
        """Diversity never exceeds 1."""
        assert calculate_diversity({"a": 10.0, "b": 0.0, "c": 0.0}) == 1.0


class TestAnalyzeTone:
    """Tests for analyze_tone."""

    def test_empty_text(self):
        """Empty text scores zero for every tone."""
        analysis = analyze_tone("")
        assert set(analysis.scores) == set(TONE_PATTERNS)
        assert all(score == 0 for score in analysis.scores.values())
        assert analysis.predominant_tone is None
        assert analysis.diversity == 0.0

    def test_technical_text(self):
        """Technical vocabulary makes the technical tone predominant."""
        text = (
            "The algorithm reads each parameter. The module exposes an interface. "
            "The implementation follows the framework architecture."
        )
        analysis = analyze_tone(text)
        assert analysis.predominant_tone == "technical"
        assert analysis.scores["technical"] == 7

    def test_balanced_text_has_no_predominant_tone(self):
        """Evenly spread indicators yield no predominant tone."""
        analysis = analyze_tone("Therefore anyway algorithm exciting perhaps should.")
        assert analysis.predominant_tone is None
        assert analysis.diversity == 0.0

    def test_scores_normalized_per_hundred_words(self):
        """Long texts divide raw counts by words/100."""
        text = "algorithm " + " ".join(["filler"] * 199)
        analysis = analyze_tone(text)
        assert analysis.scores["technical"] == pytest.approx(0.5)
