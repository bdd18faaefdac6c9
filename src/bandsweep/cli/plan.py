# Copyright (c) Syntropy Systems
"""bandsweep plan command."""
from __future__ import annotations

from pathlib import Path

import typer

from bandsweep.cli.common import console
from bandsweep.cli.options import (
    AUTO_OPTION,
    EXCLUDE_OPTION,
    INCLUDE_OPTION,
    LIMIT_OPTION,
    MAX_BANDS_OPTION,
    PROGRESS_FILE_OPTION,
    RESUME_OPTION,
    SHUFFLE_OPTION,
    SHUFFLE_SEED_OPTION,
    WAIT_TIME_OPTION,
    resolve_config,
)
from bandsweep.cli.run import print_plan_preview
from bandsweep.combos import plan_combinations
from bandsweep.errors import ConfigError, ProgressLoadError
from bandsweep.progress import ProgressStore


def plan(  # noqa: PLR0913
    wait_time: float | None = WAIT_TIME_OPTION,
    max_bands: int | None = MAX_BANDS_OPTION,
    limit: int | None = LIMIT_OPTION,
    include_bands: str | None = INCLUDE_OPTION,
    exclude_bands: str | None = EXCLUDE_OPTION,
    auto: bool | None = AUTO_OPTION,
    shuffle: bool | None = SHUFFLE_OPTION,
    shuffle_seed: int | None = SHUFFLE_SEED_OPTION,
    resume: bool | None = RESUME_OPTION,
    progress_file: Path | None = PROGRESS_FILE_OPTION,
) -> None:
    """Preview the combinations a run would test, without touching the router."""
    try:
        config = resolve_config(
            wait_time=wait_time,
            max_bands=max_bands,
            limit=limit,
            include_bands=include_bands,
            exclude_bands=exclude_bands,
            include_auto=auto,
            shuffle=shuffle,
            shuffle_seed=shuffle_seed,
            resume=resume,
            progress_file=progress_file,
        )
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    attempted: list[str] = []
    if config.resume:
        try:
            progress = ProgressStore(config.progress_file).load()
        except ProgressLoadError as e:
            console.print(f"[yellow]Warning:[/yellow] {e}; ignoring it")
            progress = None
        if progress is not None:
            attempted = progress.completed_combinations

    work = plan_combinations(
        config.bands,
        config.max_bands,
        include_auto=config.include_auto,
        include=config.include_bands,
        exclude=config.exclude_bands,
        limit=config.limit,
        shuffle=config.shuffle,
        seed=config.shuffle_seed,
        attempted=attempted,
    )

    console.print(f"[dim]generated:[/dim] {work.total_generated}")
    for note in work.notes:
        console.print(f"[dim]{note}[/dim]")
    print_plan_preview(config, work.combinations)
