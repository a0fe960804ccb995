"""
Content refinement engine.

Iteratively improves a piece of text by applying ranked, pluggable
strategies and re-scoring the result, with support for:
- Mode profiles that weight strategies and set loop budgets
- Convergence, quality-threshold and wall-clock stopping
- Offline heuristic or LLM-backed rewriting
- Cross-run performance statistics with JSON persistence

Usage:
    from src.refinement import OptimizeOptions, RefinerConfig, create_refiner

    async with create_refiner(RefinerConfig(mode="thorough")) as refiner:
        result = await refiner.optimize(
            text,
            OptimizeOptions(query="Explain the design and list its limits"),
        )
        print(result.final_text)
"""

from .models import (
    IterationCompleteEvent,
    LoopParameters,
    OptimizationMode,
    OptimizationStatus,
    OptimizeOptions,
    PerformanceRecord,
    PerformanceSnapshot,
    RefinementEvents,
    RefinerConfig,
    RewriterBackend,
    RunMetadata,
    RunResult,
    StopReason,
    StrategyAppliedEvent,
    StrategyError,
)
from .evaluator import HeuristicQualityEvaluator, QualityEvaluator, QualityMetrics
from .modes import MODE_PROFILES, ModeProfile, get_mode_profile, get_strategy_weight, parse_mode
from .rewriters import HeuristicRewriter, LLMRewriter, TextRewriter
from .strategies import (
    RankedStrategy,
    Strategy,
    StrategyCategory,
    StrategyRegistry,
    create_default_registry,
    rewrite_transform,
)
from .tone import ToneAnalysis, analyze_tone
from .tracker import PerformanceTracker, StrategyUsage
from .engine import ContentRefiner, create_refiner

__all__ = [
    # Core
    "ContentRefiner",
    "create_refiner",
    "RefinerConfig",
    "RewriterBackend",
    # Run options/results
    "OptimizeOptions",
    "LoopParameters",
    "RunResult",
    "RunMetadata",
    "StopReason",
    "StrategyError",
    # Events
    "RefinementEvents",
    "OptimizationStatus",
    "StrategyAppliedEvent",
    "IterationCompleteEvent",
    # Strategies
    "Strategy",
    "StrategyCategory",
    "StrategyRegistry",
    "RankedStrategy",
    "create_default_registry",
    "rewrite_transform",
    # Scoring
    "QualityEvaluator",
    "HeuristicQualityEvaluator",
    "QualityMetrics",
    "ToneAnalysis",
    "analyze_tone",
    # Modes
    "OptimizationMode",
    "ModeProfile",
    "MODE_PROFILES",
    "get_mode_profile",
    "get_strategy_weight",
    "parse_mode",
    # Rewriters
    "TextRewriter",
    "HeuristicRewriter",
    "LLMRewriter",
    # Performance
    "PerformanceTracker",
    "PerformanceRecord",
    "PerformanceSnapshot",
    "StrategyUsage",
]
