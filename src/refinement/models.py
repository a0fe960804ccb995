"""Data models for the content refinement engine."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.llm import ProviderType


class OptimizationMode(str, Enum):
    """Refinement profiles selecting strategy weights and loop parameters."""

    STANDARD = "standard"  # Balance quality and speed
    THOROUGH = "thorough"  # Prioritize quality over speed
    QUICK = "quick"  # Prioritize speed over quality
    CREATIVE = "creative"  # Allow freer stylistic refinements
    ACADEMIC = "academic"  # Formal academic style
    TECHNICAL = "technical"  # Technical documentation
    BUSINESS = "business"  # Business communication


class StopReason(str, Enum):
    """Why a refinement run left its loop."""

    REACHED_QUALITY_THRESHOLD = "reachedQualityThreshold"
    CONVERGENCE_REACHED = "convergenceReached"
    TIME_LIMIT = "timeLimit"
    NO_APPLICABLE_STRATEGIES = "noApplicableStrategies"
    MAX_ITERATIONS_REACHED = "maxIterationsReached"


class RewriterBackend(str, Enum):
    """Which text rewriter the engine delegates edits to."""

    HEURISTIC = "heuristic"  # Offline, deterministic
    LLM = "llm"  # Language model through an LLMProvider


class LoopParameters(BaseModel):
    """Immutable loop controls for a single run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_iterations: int = Field(
        default=5,
        ge=1,
        description="Upper bound on refinement iterations",
    )
    quality_threshold: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Stop once the quality score reaches this value",
    )
    convergence_limit: float = Field(
        default=0.01,
        ge=0.0,
        description="Stop when an iteration improves the score by less than this",
    )
    time_limit_ms: int = Field(
        default=8000,
        ge=0,
        description="Wall-clock budget checked at iteration boundaries",
    )
    parallel_strategies_allowed: bool = Field(
        default=False,
        description="Select the top two strategies per iteration (still applied in order)",
    )

    def with_overrides(self, overrides: Optional[dict[str, Any]]) -> "LoopParameters":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self
        return LoopParameters.model_validate({**self.model_dump(), **overrides})


class StrategyError(BaseModel):
    """A strategy failure recorded during a run."""

    strategy_id: str
    message: str
    iteration: int = Field(description="1-based iteration the failure happened in")


class OptimizeOptions(BaseModel):
    """Per-call options for ContentRefiner.optimize."""

    query: Optional[str] = Field(
        default=None,
        description="The request the text answers, used by the completeness check",
    )
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Partial LoopParameters overriding the mode profile",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Caller metadata visible to strategies (e.g. optimize_for_seo, keywords)",
    )
    mode: Optional[OptimizationMode] = Field(
        default=None,
        description="Mode for this call; defaults to the engine's current mode",
    )


class RunMetadata(BaseModel):
    """Everything a run learned about the text it refined."""

    model_config = ConfigDict(frozen=True)

    original_query: Optional[str] = None
    mode: OptimizationMode = OptimizationMode.STANDARD
    strategies_applied: list[str] = Field(default_factory=list)
    improvements: list[float] = Field(default_factory=list)
    quality_scores: list[float] = Field(default_factory=list)
    iteration_count: int = 0
    stop_reason: StopReason
    errors: list[StrategyError] = Field(default_factory=list)
    initial_quality: float = 0.0
    final_quality: float = 0.0
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Caller metadata merged with strategy metadata patches",
    )


class RunResult(BaseModel):
    """Immutable outcome of one optimize call."""

    model_config = ConfigDict(frozen=True)

    final_text: str
    initial_text: str
    improved: bool = False
    absolute_improvement: float = 0.0
    percent_improvement: float = 0.0
    metadata: RunMetadata
    processing_time_ms: float = 0.0

    @property
    def stop_reason(self) -> StopReason:
        return self.metadata.stop_reason

    @property
    def iteration_count(self) -> int:
        return self.metadata.iteration_count

    @property
    def quality_scores(self) -> list[float]:
        return self.metadata.quality_scores

    def has_errors(self) -> bool:
        """Check if any strategy failed during the run."""
        return len(self.metadata.errors) > 0


class PerformanceRecord(BaseModel):
    """One history entry per completed run."""

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    processing_time_ms: float
    iterations: int
    initial_quality: float
    final_quality: float
    percent_improvement: float
    strategies_applied: list[str] = Field(default_factory=list)
    stop_reason: StopReason
    mode: OptimizationMode


class PerformanceSnapshot(BaseModel):
    """Read-only aggregate view over the retained run history."""

    average_processing_time: float = 0.0
    average_improvement: float = 0.0
    success_rate: float = 0.0  # Percent of runs improving by more than 1%
    total_optimizations: int = 0
    average_iterations: float = 0.0


class RefinerConfig(BaseModel):
    """Configuration for the refinement engine."""

    # Engine defaults
    mode: OptimizationMode = Field(
        default=OptimizationMode.STANDARD,
        description="Mode used when a call does not choose one",
    )
    backend: RewriterBackend = Field(
        default=RewriterBackend.HEURISTIC,
        description="Text rewriter the strategies delegate to",
    )
    disabled_strategies: list[str] = Field(
        default_factory=list,
        description="Strategy ids that are never applied",
    )

    # Provider settings (LLM backend)
    provider: ProviderType = Field(
        default=ProviderType.ANTHROPIC,
        description="LLM provider to use",
    )
    model: Optional[str] = Field(
        default=None,
        description="Model to use for rewrites (provider default if unset)",
    )
    max_tokens: int = Field(
        default=8192,
        ge=1,
        description="Maximum tokens for LLM responses",
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Sampling temperature",
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Timeout for LLM requests",
    )
    requests_per_minute: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rate limit for LLM requests",
    )

    # Loop behaviour
    transform_timeout_seconds: Optional[float] = Field(
        default=60.0,
        gt=0.0,
        description="Hard limit on a single strategy transform (None disables)",
    )
    status_update_interval_ms: int = Field(
        default=200,
        ge=0,
        description="Minimum spacing between status update events",
    )
    max_history: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Performance records kept by the tracker",
    )

    # Logging
    verbose: bool = False
    log_requests: bool = False
    log_responses: bool = False


@dataclass
class OptimizationStatus:
    """Transient progress of the run in flight, for UI feedback."""

    in_progress: bool = False
    current_iteration: int = 0
    current_strategy: Optional[str] = None
    progress: float = 0.0  # Fraction of max_iterations completed
    estimated_time_remaining_ms: float = 0.0
    latest_improvement: float = 0.0

    def snapshot(self, **changes: Any) -> "OptimizationStatus":
        """Copy handed to observers so they never see later mutation."""
        return replace(self, **changes)


@dataclass(frozen=True)
class StrategyAppliedEvent:
    """Emitted after a strategy transform succeeds."""

    strategy_id: str
    strategy_name: str
    before: str
    after: str


@dataclass(frozen=True)
class IterationCompleteEvent:
    """Emitted after each scored iteration."""

    iteration: int
    text: str
    improvement: float
    quality: float


@dataclass
class RefinementEvents:
    """Optional observers notified during a run."""

    on_status_update: Optional[Callable[[OptimizationStatus], None]] = None
    on_strategy_applied: Optional[Callable[[StrategyAppliedEvent], None]] = None
    on_iteration_complete: Optional[Callable[[IterationCompleteEvent], None]] = None
    on_optimization_complete: Optional[Callable[[RunResult], None]] = None
