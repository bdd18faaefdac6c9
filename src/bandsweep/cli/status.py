# Copyright (c) Syntropy Systems
"""bandsweep status command."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.table import Table

from bandsweep.cli.common import console
from bandsweep.config import load_config
from bandsweep.errors import ProgressLoadError
from bandsweep.failures import FailureState, Outcome, classify
from bandsweep.progress import ProgressStore


def format_time_ago(timestamp: str | None) -> str:
    """Format a timestamp as time ago."""
    if not timestamp:
        return "-"

    try:
        ts = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return "-"

    total_seconds = int((datetime.now(timezone.utc) - ts).total_seconds())
    if total_seconds < 60:  # noqa: PLR2004
        return "just now"
    if total_seconds < 3600:  # noqa: PLR2004
        return f"{total_seconds // 60}m ago"
    if total_seconds < 86400:  # noqa: PLR2004
        return f"{total_seconds // 3600}h ago"
    return f"{total_seconds // 86400}d ago"


def status(
    progress_file: Path | None = typer.Option(
        None, "--progress-file", help="Path to progress file",
    ),
    show_all: bool = typer.Option(
        False, "--all", "-a", help="List every recorded result",
    ),
) -> None:
    """Show the saved progress of an interrupted campaign."""
    path = progress_file or load_config().progress_file
    store = ProgressStore(path)

    try:
        progress = store.load()
    except ProgressLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if progress is None:
        console.print(f"[dim]No progress file at {path}[/dim]")
        return

    failures = FailureState.from_results(progress.results)
    outcomes = [classify(r) for r in progress.results]

    console.print(f"[bold]Progress:[/bold] {path}")
    console.print(
        f"  [dim]last updated:[/dim] {progress.last_updated} "
        f"({format_time_ago(progress.last_updated)})"
    )
    console.print(f"  [dim]attempted:[/dim] {len(progress.completed_combinations)}")
    console.print(f"  [dim]results:[/dim] {len(progress.results)}")
    console.print(
        f"  [dim]measured ok:[/dim] {outcomes.count(Outcome.OK)}"
        f"  [dim]no service:[/dim] {outcomes.count(Outcome.NO_SERVICE)}"
        f"  [dim]speed test failed:[/dim] {outcomes.count(Outcome.SPEEDTEST_FAILED)}"
    )
    if failures.no_service:
        console.print(
            f"  [red]no-service bands:[/red] {', '.join(sorted(failures.no_service))}"
        )
    if failures.speedtest_failed:
        console.print(
            "  [yellow]speedtest-failed bands:[/yellow] "
            f"{', '.join(sorted(failures.speedtest_failed))}"
        )

    results = progress.results if show_all else progress.results[-10:]
    if not results:
        return

    title = "Results" if show_all else "Latest results"
    table = Table(title=title)
    table.add_column("Time", style="dim")
    table.add_column("Combination")
    table.add_column("Down", justify="right")
    table.add_column("Up", justify="right")
    table.add_column("Ping", justify="right")
    table.add_column("SINR", justify="right")
    table.add_column("Outcome")

    for result in results:
        outcome = classify(result)
        style = {"ok": "green", "no_service": "red"}.get(outcome.value, "yellow")
        table.add_row(
            format_time_ago(result.timestamp),
            result.band_combination,
            f"{result.download_speed:.2f}",
            f"{result.upload_speed:.2f}",
            f"{result.ping:.0f}",
            result.sinr or "-",
            f"[{style}]{outcome.value}[/{style}]",
        )

    console.print(table)
