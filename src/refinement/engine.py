"""Iteration controller: the refinement loop around strategies and scoring."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from src.llm import create_llm_provider

from .evaluator import HeuristicQualityEvaluator, QualityEvaluator
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
from .modes import get_mode_profile, parse_mode
from .rewriters import HeuristicRewriter, LLMRewriter, TextRewriter
from .strategies import RankedStrategy, Strategy, StrategyRegistry, create_default_registry
from .tracker import PerformanceTracker, StrategyUsage

logger = logging.getLogger(__name__)

# Score used when the evaluator itself fails
FALLBACK_QUALITY = 0.5


@dataclass
class RunState:
    """Mutable state owned by a single optimize call."""

    current_text: str
    metadata: dict[str, Any]
    strategies_applied: list[str] = field(default_factory=list)
    improvements: list[float] = field(default_factory=list)
    quality_scores: list[float] = field(default_factory=list)
    iteration_count: int = 0
    stop_reason: Optional[StopReason] = None
    errors: list[StrategyError] = field(default_factory=list)
    status: OptimizationStatus = field(
        default_factory=lambda: OptimizationStatus(in_progress=True)
    )
    last_status_time: Optional[float] = None

    def stop(self, reason: StopReason) -> None:
        """Set the stop reason; the first reason wins."""
        if self.stop_reason is None:
            self.stop_reason = reason


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class ContentRefiner:
    """
    Runs the iterative refinement loop over a piece of text.

    Each iteration ranks the applicable strategies for the active mode,
    applies the best one (two when parallel_strategies_allowed is set, still
    one after the other), re-scores the text and checks the stop
    conditions: quality threshold, convergence, time budget, strategy
    exhaustion and the iteration cap.

    Usage:
        async with ContentRefiner(HeuristicRewriter()) as refiner:
            result = await refiner.optimize(
                text,
                OptimizeOptions(query="Explain X and compare it to Y"),
            )
            print(result.final_text, result.stop_reason)
    """

    def __init__(
        self,
        rewriter: TextRewriter,
        registry: Optional[StrategyRegistry] = None,
        evaluator: Optional[QualityEvaluator] = None,
        config: Optional[RefinerConfig] = None,
        tracker: Optional[PerformanceTracker] = None,
        events: Optional[RefinementEvents] = None,
    ):
        self.config = config or RefinerConfig()
        self.rewriter = rewriter
        self.registry = registry if registry is not None else create_default_registry()
        self.evaluator = evaluator or HeuristicQualityEvaluator()
        self.tracker = tracker or PerformanceTracker(self.config.max_history)
        self.events = events or RefinementEvents()

        self._mode = self.config.mode
        # Status of the last finished run; runs in flight carry their own
        self._status = OptimizationStatus()
        self._active_runs: list[RunState] = []

        for strategy_id in self.config.disabled_strategies:
            self.registry.disable(strategy_id)

    async def __aenter__(self) -> "ContentRefiner":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Start the rewriter if it holds resources."""
        start = getattr(self.rewriter, "start", None)
        if start is not None:
            await start()
        logger.info(
            f"ContentRefiner started ({type(self.rewriter).__name__}, "
            f"{len(self.registry)} strategies, mode={self._mode.value})"
        )

    async def stop(self) -> None:
        stop = getattr(self.rewriter, "stop", None)
        if stop is not None:
            await stop()
        logger.info("ContentRefiner stopped")

    @property
    def mode(self) -> OptimizationMode:
        return self._mode

    @property
    def status(self) -> OptimizationStatus:
        """Status of the most recently started run still in flight, else the last one."""
        if self._active_runs:
            return self._active_runs[-1].status.snapshot()
        return self._status.snapshot()

    def set_mode(self, mode: Any) -> bool:
        """Switch the default mode; unknown modes are rejected without change."""
        resolved = parse_mode(mode)
        if resolved is None:
            logger.warning(f"Unknown optimization mode: {mode!r}")
            return False
        self._mode = resolved
        logger.info(f"Optimization mode set to {resolved.value}")
        return True

    def get_performance_stats(self) -> PerformanceSnapshot:
        return self.tracker.snapshot()

    def get_strategy_stats(self) -> dict[str, StrategyUsage]:
        """Per-strategy use, success and failure counts."""
        return {k: v.model_copy() for k, v in self.tracker.strategy_usage.items()}

    async def optimize(
        self,
        text: str,
        options: Optional[OptimizeOptions] = None,
    ) -> RunResult:
        """
        Refine text until a stop condition is met.

        Args:
            text: The text to refine
            options: Query, caller metadata, mode and loop parameter overrides

        Returns:
            RunResult with the final text, scores and stop reason

        Raises:
            pydantic.ValidationError: If the parameter overrides are invalid
        """
        options = options or OptimizeOptions()
        mode = options.mode or self._mode
        params = get_mode_profile(mode).parameters.with_overrides(options.parameters)

        metadata = dict(options.metadata)
        if options.query is not None:
            metadata["original_query"] = options.query

        started = time.perf_counter()
        state = RunState(current_text=text, metadata=metadata)
        self._active_runs.append(state)

        logger.debug(
            f"Optimizing {len(text)} chars in {mode.value} mode "
            f"(max {params.max_iterations} iterations, {params.time_limit_ms}ms)"
        )

        try:
            initial_quality = self._score(text)
            state.quality_scores.append(initial_quality)

            await self._run_loop(state, params, mode, started)

            final_quality = state.quality_scores[-1]
            absolute = final_quality - initial_quality
            percent = absolute / initial_quality * 100 if initial_quality > 0 else 0.0
            processing_time_ms = _elapsed_ms(started)

            result = RunResult(
                final_text=state.current_text,
                initial_text=text,
                improved=absolute > 0,
                absolute_improvement=absolute,
                percent_improvement=percent,
                metadata=RunMetadata(
                    original_query=state.metadata.get("original_query"),
                    mode=mode,
                    strategies_applied=state.strategies_applied,
                    improvements=state.improvements,
                    quality_scores=state.quality_scores,
                    iteration_count=state.iteration_count,
                    stop_reason=state.stop_reason,
                    errors=state.errors,
                    initial_quality=initial_quality,
                    final_quality=final_quality,
                    extra=state.metadata,
                ),
                processing_time_ms=processing_time_ms,
            )

            self.tracker.record(
                PerformanceRecord(
                    processing_time_ms=processing_time_ms,
                    iterations=state.iteration_count,
                    initial_quality=initial_quality,
                    final_quality=final_quality,
                    percent_improvement=percent,
                    strategies_applied=state.strategies_applied,
                    stop_reason=state.stop_reason,
                    mode=mode,
                )
            )
            self._emit(self.events.on_optimization_complete, result)

            logger.info(
                f"Optimization complete: {state.iteration_count} iterations, "
                f"{initial_quality:.3f} -> {final_quality:.3f} ({percent:+.1f}%), "
                f"stopped on {state.stop_reason.value}"
            )
            return result

        finally:
            self._active_runs.remove(state)
            state.status = state.status.snapshot(
                in_progress=False,
                current_strategy=None,
                progress=1.0,
                estimated_time_remaining_ms=0.0,
            )
            self._status = state.status
            self._emit(self.events.on_status_update, state.status.snapshot())

    async def _run_loop(
        self,
        state: RunState,
        params: LoopParameters,
        mode: OptimizationMode,
        started: float,
    ) -> None:
        while state.iteration_count < params.max_iterations:
            elapsed_ms = _elapsed_ms(started)
            if elapsed_ms >= params.time_limit_ms:
                state.stop(StopReason.TIME_LIMIT)
                return

            ranked = self.registry.applicable_strategies(state.current_text, state.metadata, mode)
            self._update_status(state, params, elapsed_ms, ranked)

            if not ranked:
                state.stop(StopReason.NO_APPLICABLE_STRATEGIES)
                return

            selected = ranked[:2] if params.parallel_strategies_allowed else ranked[:1]
            for candidate in selected:
                await self._apply_strategy(candidate.strategy, state)

            quality = self._score(state.current_text)
            improvement = quality - state.quality_scores[-1]
            state.quality_scores.append(quality)
            state.improvements.append(improvement)
            state.iteration_count += 1
            state.status.current_iteration = state.iteration_count
            state.status.latest_improvement = improvement

            logger.debug(
                f"Iteration {state.iteration_count}: quality {quality:.3f} "
                f"({improvement:+.4f})"
            )
            self._emit(
                self.events.on_iteration_complete,
                IterationCompleteEvent(
                    iteration=state.iteration_count,
                    text=state.current_text,
                    improvement=improvement,
                    quality=quality,
                ),
            )

            if quality >= params.quality_threshold:
                state.stop(StopReason.REACHED_QUALITY_THRESHOLD)
                return
            if improvement < params.convergence_limit:
                state.stop(StopReason.CONVERGENCE_REACHED)
                return

        state.stop(StopReason.MAX_ITERATIONS_REACHED)

    async def _apply_strategy(self, strategy: Strategy, state: RunState) -> bool:
        """Apply one strategy; failures are recorded on the run, never raised."""
        state.status.current_strategy = strategy.name
        before = state.current_text
        timeout = self.config.transform_timeout_seconds
        started = time.perf_counter()

        try:
            text, patch = await asyncio.wait_for(
                strategy.apply(before, dict(state.metadata), self.rewriter),
                timeout=timeout,
            )
            if not isinstance(text, str):
                raise TypeError(f"transform returned {type(text).__name__}, expected str")
            if patch is not None and not isinstance(patch, Mapping):
                raise TypeError(f"transform returned {type(patch).__name__} metadata, expected a mapping")
        except asyncio.TimeoutError:
            message = f"Transform timed out after {timeout}s"
            self._record_failure(strategy, state, message, _elapsed_ms(started))
            return False
        except Exception as e:
            self._record_failure(strategy, state, str(e) or type(e).__name__, _elapsed_ms(started))
            return False

        self.tracker.record_strategy(strategy.id, True, _elapsed_ms(started))
        state.current_text = text
        state.metadata.update(patch or {})
        state.strategies_applied.append(strategy.id)

        self._emit(
            self.events.on_strategy_applied,
            StrategyAppliedEvent(
                strategy_id=strategy.id,
                strategy_name=strategy.name,
                before=before,
                after=text,
            ),
        )
        return True

    def _record_failure(
        self,
        strategy: Strategy,
        state: RunState,
        message: str,
        elapsed_ms: float,
    ) -> None:
        logger.error(f"Strategy '{strategy.id}' failed: {message}")
        state.errors.append(
            StrategyError(
                strategy_id=strategy.id,
                message=message,
                iteration=state.iteration_count + 1,
            )
        )
        self.tracker.record_strategy(strategy.id, False, elapsed_ms)

    def _score(self, text: str) -> float:
        try:
            score = float(self.evaluator.evaluate(text))
        except Exception as e:
            logger.warning(f"Quality evaluation failed, using {FALLBACK_QUALITY}: {e}")
            return FALLBACK_QUALITY
        return max(0.0, min(1.0, score))

    def _update_status(
        self,
        state: RunState,
        params: LoopParameters,
        elapsed_ms: float,
        ranked: list[RankedStrategy],
    ) -> None:
        """Refresh the status and notify, at most once per update interval."""
        status = state.status
        status.current_iteration = state.iteration_count
        status.progress = state.iteration_count / params.max_iterations
        status.current_strategy = ranked[0].name if ranked else None

        remaining_budget = max(0.0, params.time_limit_ms - elapsed_ms)
        if state.iteration_count:
            per_iteration = elapsed_ms / state.iteration_count
            remaining_iterations = params.max_iterations - state.iteration_count
            status.estimated_time_remaining_ms = min(remaining_budget, per_iteration * remaining_iterations)
        else:
            status.estimated_time_remaining_ms = remaining_budget

        now = time.perf_counter()
        interval_s = self.config.status_update_interval_ms / 1000
        if state.last_status_time is not None and now - state.last_status_time < interval_s:
            return

        state.last_status_time = now
        self._emit(self.events.on_status_update, status.snapshot())

    def _emit(self, callback: Optional[Callable[[Any], None]], payload: Any) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            logger.warning(f"Event callback {getattr(callback, '__name__', callback)!r} failed: {e}")


def create_refiner(
    config: Optional[RefinerConfig] = None,
    *,
    registry: Optional[StrategyRegistry] = None,
    evaluator: Optional[QualityEvaluator] = None,
    tracker: Optional[PerformanceTracker] = None,
    events: Optional[RefinementEvents] = None,
) -> ContentRefiner:
    """
    Build a ContentRefiner with the rewriter selected by config.backend.

    The LLM backend creates (but does not start) a provider; use the
    refiner as an async context manager to open and close it.
    """
    config = config or RefinerConfig()

    if config.backend == RewriterBackend.LLM:
        provider = create_llm_provider(
            config.provider,
            default_model=config.model,
            timeout_seconds=config.timeout_seconds,
            max_retries=3,
            requests_per_minute=config.requests_per_minute,
            log_requests=config.log_requests,
            log_responses=config.log_responses,
        )
        rewriter: TextRewriter = LLMRewriter(
            provider,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    else:
        rewriter = HeuristicRewriter()

    return ContentRefiner(
        rewriter,
        registry=registry,
        evaluator=evaluator,
        config=config,
        tracker=tracker,
        events=events,
    )
