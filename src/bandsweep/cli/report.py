# Copyright (c) Syntropy Systems
"""bandsweep report command."""
from __future__ import annotations

from pathlib import Path

import typer

from bandsweep.cli.common import console, print_ranked_report
from bandsweep.errors import ProgressLoadError
from bandsweep.report import json_path_for, load_results, rank_results, write_csv, write_json


def report(
    source: Path = typer.Argument(
        ...,
        help="Progress file or JSON results file",
        exists=True,
    ),
    top: int = typer.Option(5, "--top", "-n", help="Entries per top list"),
    export: Path | None = typer.Option(
        None,
        "--export", "-e",
        help="Also write results as CSV (with a JSON twin) to this path",
    ),
) -> None:
    """Rank the results of a campaign.

    Examples:
        bandsweep report results/test-progress.json
        bandsweep report results/band-permutation-results.json --top 10

    """
    try:
        results = load_results(source)
    except ProgressLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if export is not None:
        write_csv(results, export)
        write_json(results, json_path_for(export))
        console.print(
            f"[green]Exported {len(results)} result(s) to {export}[/green]"
        )

    print_ranked_report(rank_results(results, top))
