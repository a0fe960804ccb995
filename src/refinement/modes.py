"""Mode profile table: strategy weights and loop parameters per mode."""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .models import LoopParameters, OptimizationMode

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


@dataclass(frozen=True)
class ModeProfile:
    """Weights and loop parameters selected by one mode."""

    mode: OptimizationMode
    parameters: LoopParameters
    weights: Mapping[str, float] = field(default_factory=dict)
    description: str = ""

    def weight_for(self, strategy_id: str) -> float:
        """Priority multiplier for a strategy (1.0 when unlisted)."""
        return self.weights.get(strategy_id, DEFAULT_WEIGHT)


def _profile(
    mode: OptimizationMode,
    description: str,
    weights: dict[str, float],
    **parameters: Any,
) -> ModeProfile:
    return ModeProfile(
        mode=mode,
        parameters=LoopParameters(**parameters),
        weights=MappingProxyType(dict(weights)),
        description=description,
    )


MODE_PROFILES: Mapping[OptimizationMode, ModeProfile] = MappingProxyType({
    OptimizationMode.STANDARD: _profile(
        OptimizationMode.STANDARD,
        "Balance quality and performance",
        {
            "clarity": 1.0,
            "completeness": 1.0,
            "factual_accuracy": 1.0,
            "structure": 1.0,
            "code_quality": 1.0,
        },
        max_iterations=5,
        time_limit_ms=8000,
        convergence_limit=0.01,
    ),
    OptimizationMode.THOROUGH: _profile(
        OptimizationMode.THOROUGH,
        "Prioritize quality over performance",
        {
            "clarity": 1.2,
            "completeness": 1.5,
            "factual_accuracy": 1.8,
            "structure": 1.3,
            "code_quality": 1.4,
        },
        max_iterations=8,
        time_limit_ms=12000,
        convergence_limit=0.005,
    ),
    OptimizationMode.QUICK: _profile(
        OptimizationMode.QUICK,
        "Prioritize speed over perfect quality",
        {
            "clarity": 1.0,
            "completeness": 0.7,
            "factual_accuracy": 0.5,
            "structure": 0.5,
            "code_quality": 0.6,
        },
        max_iterations=3,
        time_limit_ms=5000,
        convergence_limit=0.02,
    ),
    OptimizationMode.CREATIVE: _profile(
        OptimizationMode.CREATIVE,
        "Allow more creative refinements",
        {
            "tone_consistency": 1.3,
            "clarity": 0.9,
            "structure": 0.7,
            "factual_accuracy": 0.8,
            "seo_optimization": 0.8,
        },
        max_iterations=5,
        time_limit_ms=8000,
        convergence_limit=0.01,
    ),
    OptimizationMode.ACADEMIC: _profile(
        OptimizationMode.ACADEMIC,
        "Focus on formal academic style",
        {
            "citation_enhancement": 1.5,
            "factual_accuracy": 1.4,
            "structure": 1.2,
            "tone_consistency": 1.2,
            "data_visualization": 0.8,
        },
        max_iterations=7,
        time_limit_ms=10000,
        convergence_limit=0.01,
    ),
    OptimizationMode.TECHNICAL: _profile(
        OptimizationMode.TECHNICAL,
        "Optimize for technical content",
        {
            "code_quality": 1.5,
            "structure": 1.3,
            "clarity": 1.2,
            "data_visualization": 1.2,
            "tone_consistency": 0.8,
        },
        max_iterations=5,
        time_limit_ms=8000,
        convergence_limit=0.01,
    ),
    OptimizationMode.BUSINESS: _profile(
        OptimizationMode.BUSINESS,
        "Optimize for business communications",
        {
            "clarity": 1.3,
            "tone_consistency": 1.3,
            "completeness": 1.2,
            "data_visualization": 1.2,
            "citation_enhancement": 0.7,
        },
        max_iterations=5,
        time_limit_ms=8000,
        convergence_limit=0.01,
    ),
})


def parse_mode(value: Any) -> Optional[OptimizationMode]:
    """
    Resolve a mode from an enum member, its value or its name.

    Returns None for anything unrecognized instead of raising.
    """
    if isinstance(value, OptimizationMode):
        return value
    if not isinstance(value, str):
        return None

    key = value.strip().lower()
    for mode in OptimizationMode:
        if key in (mode.value, mode.name.lower()):
            return mode
    return None


def get_mode_profile(mode: Any = None) -> ModeProfile:
    """Look up a profile; unknown or missing modes get the standard one."""
    resolved = parse_mode(mode)
    if resolved is None:
        if mode is not None:
            logger.debug(f"Unknown mode {mode!r}, using standard profile")
        resolved = OptimizationMode.STANDARD
    return MODE_PROFILES[resolved]


def get_strategy_weight(mode: Any, strategy_id: str) -> float:
    """Priority multiplier for a strategy under a mode."""
    return get_mode_profile(mode).weight_for(strategy_id)
