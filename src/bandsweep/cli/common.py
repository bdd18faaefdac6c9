# Copyright (c) Syntropy Systems
"""Console, logging and rendering helpers shared by commands."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bandsweep.models.results import AttemptResult
    from bandsweep.report import RankedReport

console = Console()


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Route bandsweep logs through rich."""
    logger = logging.getLogger("bandsweep")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _speed_table(title: str, results: Sequence[AttemptResult]) -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim")
    table.add_column("Combination")
    table.add_column("Down (Mbps)", justify="right")
    table.add_column("Up (Mbps)", justify="right")
    table.add_column("Combined", justify="right")
    table.add_column("SINR", justify="right")

    for idx, result in enumerate(results, 1):
        table.add_row(
            str(idx),
            result.band_combination,
            f"{result.download_speed:.2f}",
            f"{result.upload_speed:.2f}",
            f"{result.combined_speed:.2f}",
            result.sinr or "-",
        )
    return table


def _print_best(label: str, result: AttemptResult | None) -> None:
    if result is None:
        return
    console.print(f"\n[green]{label}:[/green] {result.band_combination}")
    console.print(
        f"  [dim]download:[/dim] {result.download_speed:.2f} Mbps"
        f"  [dim]upload:[/dim] {result.upload_speed:.2f} Mbps"
    )
    console.print(
        f"  [dim]SINR:[/dim] {result.sinr or '-'}"
        f"  [dim]RSRP:[/dim] {result.rsrp or '-'}"
        f"  [dim]RSRQ:[/dim] {result.rsrq or '-'}"
    )
    console.print(f"  [dim]eNB ID:[/dim] {result.enb_id or '-'}")


def print_ranked_report(report: RankedReport) -> None:
    """Print best-of entries and top-N tables."""
    console.print("\n[bold]Test Summary[/bold]")
    console.print(f"  [dim]combinations tested:[/dim] {report.total}")
    console.print(f"  [dim]with throughput:[/dim] {report.measured}")

    if report.total == 0:
        console.print("[yellow]No results to rank[/yellow]")
        return

    _print_best("Best download", report.best_download)
    _print_best("Best upload", report.best_upload)
    _print_best("Best combined", report.best_combined)
    _print_best("Best signal (SINR)", report.best_signal)

    console.print()
    console.print(_speed_table("Top download", report.top_download))
    console.print(_speed_table("Top upload", report.top_upload))
    console.print(_speed_table("Top combined", report.top_combined))


def format_estimate(hours: int, minutes: int) -> str:
    """Render an estimate such as ``3h 20m``."""
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
