"""CLI interface for the Content Refiner."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
import typer

# Load environment variables from .env file
load_dotenv()
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from src.refinement import (
    MODE_PROFILES,
    HeuristicQualityEvaluator,
    IterationCompleteEvent,
    LLMRewriter,
    OptimizationStatus,
    OptimizeOptions,
    PerformanceTracker,
    RefinementEvents,
    RefinerConfig,
    RewriterBackend,
    RunResult,
    analyze_tone,
    create_default_registry,
    create_refiner,
    parse_mode,
)

# Initialize CLI app
app = typer.Typer(
    name="refiner",
    help="Iteratively refine text with ranked improvement strategies",
    add_completion=False,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Set up logging with rich formatting."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def read_input(source: str) -> str:
    """Read text from a file path, or stdin when source is '-'."""
    if source == "-":
        return sys.stdin.read()

    path = Path(source)
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def resolve_mode_or_exit(mode: str):
    resolved = parse_mode(mode)
    if resolved is None:
        valid = ", ".join(m.value for m in MODE_PROFILES)
        console.print(f"[red]Unknown mode '{mode}'. Valid modes: {valid}[/red]")
        raise typer.Exit(1)
    return resolved


@app.command()
def refine(
    source: str = typer.Argument(..., help="Text file to refine ('-' reads stdin)"),
    mode: str = typer.Option(
        "standard", "--mode", "-m", help="Optimization mode (standard, thorough, quick, ...)"
    ),
    query: Optional[str] = typer.Option(
        None, "--query", "-q", help="Original request the text answers"
    ),
    backend: RewriterBackend = typer.Option(
        RewriterBackend.HEURISTIC, "--backend", "-b", help="Rewriter backend"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", help="LLM model (llm backend only)"
    ),
    max_iterations: Optional[int] = typer.Option(
        None, "--max-iterations", "-n", help="Override the mode's iteration cap"
    ),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Override the quality threshold (0-1)"
    ),
    time_limit_ms: Optional[int] = typer.Option(
        None, "--time-limit", help="Override the time budget in milliseconds"
    ),
    parallel: bool = typer.Option(
        False, "--parallel", help="Apply the top two strategies per iteration"
    ),
    seo: bool = typer.Option(
        False, "--seo", help="Enable SEO enhancement"
    ),
    keywords: Optional[List[str]] = typer.Option(
        None, "--keyword", "-k", help="SEO keyword (repeatable)"
    ),
    disable: Optional[List[str]] = typer.Option(
        None, "--disable", "-d", help="Strategy id to skip (repeatable)"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the refined text to this file"
    ),
    history: Optional[str] = typer.Option(
        None, "--history", help="Performance history file to update"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    Refine a text file.

    Applies the highest-ranked applicable strategy each iteration until the
    quality threshold, convergence, the time budget or the iteration cap
    stops the run.

    Example:
        refiner refine draft.md --mode thorough --query "Explain and compare X and Y"
    """
    setup_logging(verbose)

    text = read_input(source)
    resolved_mode = resolve_mode_or_exit(mode)

    parameters = {}
    if max_iterations is not None:
        parameters["max_iterations"] = max_iterations
    if threshold is not None:
        parameters["quality_threshold"] = threshold
    if time_limit_ms is not None:
        parameters["time_limit_ms"] = time_limit_ms
    if parallel:
        parameters["parallel_strategies_allowed"] = True

    metadata = {}
    if seo:
        metadata["optimize_for_seo"] = True
        metadata["keywords"] = list(keywords or [])

    config = RefinerConfig(
        mode=resolved_mode,
        backend=backend,
        model=model,
        disabled_strategies=list(disable or []),
        verbose=verbose,
    )

    history_path = Path(history) if history else None
    tracker = None
    if history_path:
        tracker = PerformanceTracker.load(history_path, max_history=config.max_history)

    console.print(Panel.fit(
        f"[bold blue]Content Refiner[/bold blue]\n"
        f"Source: {source} ({len(text)} chars)\n"
        f"Mode: {resolved_mode.value} | Backend: {backend.value}",
        title="Refine",
    ))

    async def run_refinement() -> tuple[RunResult, Optional[dict]]:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Refining...", total=1.0)

            def on_status(status: OptimizationStatus) -> None:
                description = status.current_strategy or "Refining..."
                progress.update(task, description=description, completed=status.progress)

            def on_iteration(event: IterationCompleteEvent) -> None:
                progress.console.print(
                    f"  Iteration {event.iteration}: quality {event.quality:.3f} "
                    f"({event.improvement:+.4f})"
                )

            events = RefinementEvents(
                on_status_update=on_status,
                on_iteration_complete=on_iteration,
            )
            async with create_refiner(config, tracker=tracker, events=events) as refiner:
                result = await refiner.optimize(
                    text,
                    OptimizeOptions(query=query, parameters=parameters, metadata=metadata),
                )
                if history_path:
                    refiner.tracker.save(history_path)
                cost = None
                if isinstance(refiner.rewriter, LLMRewriter):
                    cost = refiner.rewriter.get_cost_summary()
                return result, cost

    try:
        result, cost = asyncio.run(run_refinement())

        display_run_result(result)
        if cost:
            console.print(
                f"[dim]LLM usage: {cost['total_requests']} requests, "
                f"{cost['total_input_tokens'] + cost['total_output_tokens']} tokens, "
                f"${cost['total_cost_usd']:.4f}[/dim]"
            )

        if output:
            output_path = Path(output)
            output_path.write_text(result.final_text, encoding="utf-8")
            console.print(f"\n[green]Refined text saved to: {output_path}[/green]")
        else:
            console.print(Panel(result.final_text, title="Refined Text", border_style="blue"))

    except KeyboardInterrupt:
        console.print("\n[yellow]Refinement cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Refinement failed: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


def display_run_result(result: RunResult) -> None:
    """Display a run summary."""
    meta = result.metadata
    summary = f"""
[bold]Stop Reason:[/bold] {meta.stop_reason.value}
[bold]Iterations:[/bold] {meta.iteration_count}
[bold]Quality:[/bold] {meta.initial_quality:.3f} -> {meta.final_quality:.3f} ({result.percent_improvement:+.1f}%)
[bold]Strategies Applied:[/bold] {', '.join(meta.strategies_applied) or 'none'}
[bold]Processing Time:[/bold] {result.processing_time_ms:.0f}ms
"""
    border = "green" if result.improved else "yellow"
    console.print(Panel(summary, title="Refinement Summary", border_style=border))

    if meta.errors:
        table = Table(title="Strategy Errors")
        table.add_column("Iteration", style="cyan", justify="right")
        table.add_column("Strategy", style="magenta")
        table.add_column("Message", style="red")
        for error in meta.errors:
            table.add_row(str(error.iteration), error.strategy_id, error.message)
        console.print(table)


@app.command()
def score(
    source: str = typer.Argument(..., help="Text file to score ('-' reads stdin)"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    Show the quality score and its components for a text.

    Example:
        refiner score draft.md
    """
    setup_logging(verbose)
    text = read_input(source)

    metrics = HeuristicQualityEvaluator().analyze(text)
    tone = analyze_tone(text)

    table = Table(title="Quality Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white", justify="right")
    table.add_row("Average sentence length", f"{metrics.average_sentence_length:.1f} words")
    table.add_row("Vocabulary richness", f"{metrics.vocabulary_richness:.3f}")
    table.add_row("Structure consistency", f"{metrics.structure_consistency:.3f}")
    table.add_row("Coherence", f"{metrics.coherence:.3f}")
    table.add_row("[bold]Quality score[/bold]", f"[bold]{metrics.score:.3f}[/bold]")
    table.add_row("Predominant tone", tone.predominant_tone or "none")
    table.add_row("Tone diversity", f"{tone.diversity:.3f}")
    console.print(table)


@app.command()
def strategies(
    mode: str = typer.Option(
        "standard", "--mode", "-m", help="Mode whose weights to show"
    ),
    source: Optional[str] = typer.Option(
        None, "--input", "-i", help="Show which strategies apply to this file"
    ),
    query: Optional[str] = typer.Option(
        None, "--query", "-q", help="Original request, for the completeness check"
    ),
) -> None:
    """
    List the built-in strategies and their ranking under a mode.

    Example:
        refiner strategies --mode technical --input draft.md
    """
    resolved_mode = resolve_mode_or_exit(mode)
    registry = create_default_registry()

    applicable_ids = None
    if source:
        text = read_input(source)
        metadata = {"original_query": query} if query else {}
        ranked = registry.applicable_strategies(text, metadata, resolved_mode)
        applicable_ids = [r.id for r in ranked]

    table = Table(title=f"Strategies ({resolved_mode.value} mode)")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Category", style="magenta")
    table.add_column("Priority", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Adjusted", justify="right", style="bold")
    if applicable_ids is not None:
        table.add_column("Applies", justify="center")

    profile = MODE_PROFILES[resolved_mode]
    for strategy in registry:
        weight = profile.weight_for(strategy.id)
        row = [
            strategy.id,
            strategy.name,
            strategy.category.value,
            f"{strategy.priority:g}",
            f"{weight:.1f}",
            f"{strategy.priority * weight:.1f}",
        ]
        if applicable_ids is not None:
            row.append("[green]yes[/green]" if strategy.id in applicable_ids else "-")
        table.add_row(*row)

    console.print(table)


@app.command()
def modes() -> None:
    """
    List optimization modes and their loop parameters.

    Example:
        refiner modes
    """
    table = Table(title="Optimization Modes")
    table.add_column("Mode", style="cyan")
    table.add_column("Max Iterations", justify="right")
    table.add_column("Time Limit (ms)", justify="right")
    table.add_column("Convergence", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Description", style="white")

    for mode, profile in MODE_PROFILES.items():
        params = profile.parameters
        table.add_row(
            mode.value,
            str(params.max_iterations),
            str(params.time_limit_ms),
            f"{params.convergence_limit:g}",
            f"{params.quality_threshold:g}",
            profile.description,
        )

    console.print(table)


@app.command()
def stats(
    history: str = typer.Argument(..., help="Performance history file written by 'refine --history'"),
) -> None:
    """
    Show aggregate performance statistics from a history file.

    Example:
        refiner stats refiner-history.json
    """
    tracker = PerformanceTracker.load(Path(history))
    if tracker is None:
        console.print(f"[yellow]No performance history found at {history}[/yellow]")
        raise typer.Exit(1)

    snapshot = tracker.snapshot()
    summary = f"""
[bold]Total Optimizations:[/bold] {snapshot.total_optimizations}
[bold]Success Rate:[/bold] {snapshot.success_rate:.1f}%
[bold]Average Improvement:[/bold] {snapshot.average_improvement:+.2f}%
[bold]Average Iterations:[/bold] {snapshot.average_iterations:.2f}
[bold]Average Processing Time:[/bold] {snapshot.average_processing_time:.0f}ms
"""
    console.print(Panel(summary, title="Performance Summary", border_style="green"))

    if tracker.strategy_usage:
        table = Table(title="Strategy Usage")
        table.add_column("Strategy", style="cyan")
        table.add_column("Uses", justify="right")
        table.add_column("Successes", justify="right", style="green")
        table.add_column("Failures", justify="right", style="red")
        table.add_column("Avg Time (ms)", justify="right")
        for strategy_id, usage in sorted(tracker.strategy_usage.items()):
            table.add_row(
                strategy_id,
                str(usage.uses),
                str(usage.successes),
                str(usage.failures),
                f"{usage.average_processing_time_ms:.1f}",
            )
        console.print(table)


@app.callback()
def main():
    """
    Content Refiner

    Improve drafts iteratively with ranked, pluggable refinement strategies,
    scored by a heuristic quality evaluator.
    """
    pass


if __name__ == "__main__":
    app()
