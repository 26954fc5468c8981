"""
Examiner Swarm CLI Application.

Provides a command-line interface for grading essays with the concurrent
examiner panel.
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.errors import GradingError
from examiner_swarm.grading import GradingOrchestrator, LLMClient
from examiner_swarm.logging import configure_logging
from examiner_swarm.markscheme import grade_description
from examiner_swarm.models import (
    GradeRequest,
    GradingResult,
    ProgressEvent,
    QuestionType,
    Subject,
    UnitCode,
)

# Create Typer app
app = typer.Typer(
    name="examiner-swarm",
    help="Concurrent multi-examiner essay grading",
    add_completion=False,
)

console = Console()


class ProgressBarSink:
    """Progress sink that drives a rich progress bar."""

    def __init__(self, progress: Progress, task: TaskID):
        self._progress = progress
        self._task = task

    def publish(self, event: ProgressEvent) -> None:
        if event.kind == "started":
            self._progress.update(
                self._task, total=event.total, description=f"Running {event.total} examiners..."
            )
        elif event.kind == "progress":
            self._progress.update(
                self._task,
                completed=event.completed,
                description=f"{event.examiner_id} finished ({event.percent}%)",
            )
        elif event.kind == "completed":
            self._progress.update(self._task, description="Grading complete")


def _build_orchestrator(settings: Settings, sink: ProgressBarSink | None = None) -> GradingOrchestrator:
    backend = LLMClient(settings) if settings.llm_configured else None
    return GradingOrchestrator(backend, broadcaster=sink, settings=settings)


@app.command()
def grade(
    question: Annotated[str, typer.Argument(help="The question text")],
    essay_file: Annotated[Path, typer.Argument(help="Path to a text file with the essay")],
    subject: Annotated[
        Subject,
        typer.Option("--subject", "-s", help="Subject of the essay"),
    ] = Subject.ECONOMICS,
    unit: Annotated[
        Optional[UnitCode],
        typer.Option("--unit", "-u", help="Unit code"),
    ] = None,
    question_type: Annotated[
        Optional[QuestionType],
        typer.Option("--question-type", "-q", help="Question type"),
    ] = None,
    diagram: Annotated[
        bool,
        typer.Option("--diagram", help="The essay includes a diagram"),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON"),
    ] = False,
) -> None:
    """
    Grade an essay with every examiner in the subject's panel.

    Examiners run concurrently; progress is shown as each one finishes.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format.value)

    if not essay_file.exists():
        console.print(f"[red]Error:[/red] Essay file not found: {essay_file}")
        raise typer.Exit(1)

    try:
        request = GradeRequest(
            question=question,
            essay=essay_file.read_text(encoding="utf-8"),
            subject=subject,
            unit=unit,
            question_type=question_type,
            has_diagram=diagram,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid request:[/red] {e}")
        raise typer.Exit(1)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
            transient=as_json,
        ) as progress:
            task = progress.add_task("Starting examiners...", total=None)
            orchestrator = _build_orchestrator(settings, ProgressBarSink(progress, task))
            result = asyncio.run(orchestrator.grade(request, identity="cli"))
    except GradingError as e:
        console.print(f"[red]{e.code}:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.model_dump(mode="json", by_alias=True)))
    else:
        _display_results(result)


@app.command()
def health() -> None:
    """
    Check if the grading system is operational.

    Verifies configuration and API connectivity.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format.value)
    console.print("[bold]Examiner Swarm Health Check[/bold]\n")

    console.print("[dim]Checking configuration...[/dim]")
    console.print(f"  API Base URL: {settings.llm_base_url}")
    console.print(f"  Model: {settings.llm_model}")
    console.print(f"  Examiner Timeout: {settings.examiner_timeout_seconds:g}s")
    console.print(f"  Default Question Type: {settings.default_question_type.value}")

    if not settings.llm_configured:
        console.print("[red]✗ LLM_API_KEY is not set[/red]")
        raise typer.Exit(1)

    console.print("\n[dim]Checking API connectivity...[/dim]")
    orchestrator = _build_orchestrator(settings)

    if asyncio.run(orchestrator.health_check()):
        console.print("[green]✓ API is reachable[/green]")
    else:
        console.print("[red]✗ API is not reachable[/red]")
        raise typer.Exit(1)

    console.print("\n[green]All systems operational[/green]")


def _display_results(result: GradingResult) -> None:
    """Display grading results in a formatted table."""

    score_color = "green" if result.percentage >= 70 else "yellow" if result.percentage >= 50 else "red"
    console.print(
        Panel(
            f"[{score_color}][bold]{result.overall_score:.1f} / 10[/bold] "
            f"({result.percentage:.1f}%) - Grade {result.grade}[/{score_color}]\n"
            f"[dim]{grade_description(result.grade)}[/dim]",
            title="Final Score",
        )
    )

    if result.failed_examiners:
        console.print(
            f"[yellow]⚠ {result.failed_examiners} examiner(s) could not complete; "
            "placeholder scores were used[/yellow]"
        )

    table = Table(title="Examiner Breakdown")
    table.add_column("Examiner", style="cyan")
    table.add_column("AO")
    table.add_column("Score", justify="right")
    table.add_column("Band")
    table.add_column("Status")

    for r in result.examiner_results:
        table.add_row(
            r.examiner_name or r.examiner_id,
            r.assessment_objective.value if r.assessment_objective else "-",
            f"{r.score}/{r.max_score}",
            r.band,
            "✅" if r.succeeded else "⚠️",
        )

    console.print(table)
    console.print(
        f"[dim]Confidence {result.confidence:.0%} · {result.word_count} words"
        + (f" · {result.time_estimate}" if result.time_estimate else "")
        + "[/dim]"
    )

    if result.diagram_feedback:
        console.print(f"[yellow]Diagram:[/yellow] {result.diagram_feedback}")

    if result.summary:
        console.print(Panel(result.summary, title="Summary"))

    if result.key_strengths:
        console.print("[bold]Key strengths:[/bold]")
        for item in result.key_strengths:
            console.print(f"  • {item}")

    if result.improvements:
        console.print("[bold]Improvements:[/bold]")
        for item in result.improvements:
            console.print(f"  • {item}")


if __name__ == "__main__":
    app()
