# Copyright (c) Syntropy Systems
"""bandsweep run command."""
from __future__ import annotations

import signal
from contextlib import ExitStack
from pathlib import Path
from threading import Event
from typing import TYPE_CHECKING

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from bandsweep.adapters import CompositeMetrics, RouterClient, SpeedtestCli
from bandsweep.cli.common import (
    console,
    format_estimate,
    print_ranked_report,
    setup_logging,
)
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
from bandsweep.combos import estimate_duration
from bandsweep.errors import BandsweepError, ConfigError
from bandsweep.orchestrator import AttemptState, Orchestrator
from bandsweep.report import ReportWriter, rank_results

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import FrameType

    from bandsweep.adapters.base import DeviceAdapter, MetricsAdapter
    from bandsweep.config import CampaignConfig
    from bandsweep.orchestrator import AttemptRecord

PREVIEW_COUNT = 10

# Shutdown event for graceful termination
_shutdown_event = Event()


def _signal_handler(signum: int, frame: FrameType | None) -> None:
    """First SIGINT/SIGTERM finishes the current combination; a second aborts."""
    _ = frame
    if _shutdown_event.is_set():
        raise KeyboardInterrupt
    console.print(
        f"\n[yellow]Shutdown requested ({signal.Signals(signum).name}), "
        "finishing current combination...[/yellow]"
    )
    _shutdown_event.set()


def build_adapters(
    config: CampaignConfig, stack: ExitStack
) -> tuple[DeviceAdapter, MetricsAdapter]:
    """Create the router and speed test adapters for a campaign."""
    if not config.password:
        msg = (
            "Router password is required. Use --password or set the "
            "PASSWORD environment variable."
        )
        raise ConfigError(msg)

    router = stack.enter_context(
        RouterClient(
            config.router_url,
            config.password,
            username=config.username,
            timeout=config.request_timeout,
        )
    )
    router.login()
    speedtest = SpeedtestCli(timeout=config.speedtest_timeout)
    return router, CompositeMetrics(router, speedtest)


def print_plan_preview(config: CampaignConfig, combinations: list[str]) -> None:
    """Print the work list head and the time estimate."""
    console.print(f"[bold]Testing {len(combinations)} band combinations[/bold]")
    console.print(f"  [dim]wait after band switch:[/dim] {config.wait_time:.0f}s")
    hours, minutes = estimate_duration(len(combinations), config.wait_time)
    console.print(f"  [dim]estimated time:[/dim] {format_estimate(hours, minutes)}")

    if combinations:
        console.print(f"\nFirst {min(PREVIEW_COUNT, len(combinations))} combinations:")
        for i, identity in enumerate(combinations[:PREVIEW_COUNT], 1):
            console.print(f"  {i}. {identity}")
        if len(combinations) > PREVIEW_COUNT:
            console.print(f"  [dim]... and {len(combinations) - PREVIEW_COUNT} more[/dim]")


def _status_line(record: AttemptRecord) -> str:
    if record.state is AttemptState.SKIPPED:
        return f"[dim]skipped {record.identity} ({record.reason})[/dim]"
    if record.state is AttemptState.ABANDONED:
        return f"[red]abandoned {record.identity}[/red]"
    result = record.result
    if result is None:
        return record.identity
    return (
        f"[green]{record.identity}[/green] "
        f"{result.download_speed:.2f}/{result.upload_speed:.2f} Mbps"
    )


def run(  # noqa: PLR0913
    password: str | None = typer.Option(
        None,
        "--password", "-p",
        envvar=["BANDSWEEP_PASSWORD", "PASSWORD"],
        help="Router password",
    ),
    router_url: str | None = typer.Option(
        None, "--router-url", help="Router base URL",
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="CSV results path (JSON written alongside)",
    ),
    wait_time: float | None = WAIT_TIME_OPTION,
    settle_time: float | None = typer.Option(
        None,
        "--settle-time",
        help="Seconds to wait before retrying a failed band switch",
    ),
    stabilize_time: float | None = typer.Option(
        None,
        "--stabilize-time", "-s",
        help="Seconds to wait after login before starting tests",
    ),
    retries: int | None = typer.Option(
        None, "--retries", "-r", help="Retries for failed band switches",
    ),
    max_bands: int | None = MAX_BANDS_OPTION,
    limit: int | None = LIMIT_OPTION,
    include_bands: str | None = INCLUDE_OPTION,
    exclude_bands: str | None = EXCLUDE_OPTION,
    visual: bool | None = typer.Option(
        None,
        "--visual/--headless",
        help="Show a live progress display instead of log lines only",
    ),
    auto: bool | None = AUTO_OPTION,
    shuffle: bool | None = SHUFFLE_OPTION,
    shuffle_seed: int | None = SHUFFLE_SEED_OPTION,
    resume: bool | None = RESUME_OPTION,
    progress_file: Path | None = PROGRESS_FILE_OPTION,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging",
    ),
) -> None:
    """Test every band combination and rank them by throughput.

    Progress is saved after each combination; rerun with --resume to
    continue an interrupted campaign.
    """
    setup_logging(verbose)

    try:
        config = resolve_config(
            password=password,
            router_url=router_url,
            output=output,
            wait_time=wait_time,
            settle_time=settle_time,
            stabilize_time=stabilize_time,
            retries=retries,
            max_bands=max_bands,
            limit=limit,
            include_bands=include_bands,
            exclude_bands=exclude_bands,
            visual=visual,
            include_auto=auto,
            shuffle=shuffle,
            shuffle_seed=shuffle_seed,
            resume=resume,
            progress_file=progress_file,
        )
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    _shutdown_event.clear()
    previous_handlers = {
        sig: signal.signal(sig, _signal_handler)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        with ExitStack() as stack:
            device, metrics = build_adapters(config, stack)
            _run_campaign(config, device, metrics)
    except BandsweepError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except KeyboardInterrupt as e:
        console.print("[yellow]Aborted. Progress saved; rerun with --resume.[/yellow]")
        raise typer.Exit(130) from e
    finally:
        for sig, handler in previous_handlers.items():
            _ = signal.signal(sig, handler)


def _run_campaign(
    config: CampaignConfig, device: DeviceAdapter, metrics: MetricsAdapter
) -> None:
    writer = ReportWriter(config.output)
    orchestrator = Orchestrator(
        config,
        device,
        metrics,
        reporter=writer,
        stop_event=_shutdown_event,
    )
    plan = orchestrator.prepare()
    for note in plan.notes:
        console.print(f"[dim]{note}[/dim]")
    print_plan_preview(config, plan.combinations)

    if not plan.combinations:
        console.print("[yellow]Nothing left to test[/yellow]")

    if config.stabilize_time > 0 and plan.combinations:
        console.print(
            f"[dim]Waiting {config.stabilize_time:.0f}s for the router to stabilize...[/dim]"
        )
        _ = _shutdown_event.wait(timeout=config.stabilize_time)

    with ExitStack() as stack:
        if config.visual and plan.combinations:
            progress = stack.enter_context(
                Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    MofNCompleteColumn(),
                    TimeElapsedColumn(),
                    console=console,
                )
            )
            task = progress.add_task("Testing", total=len(plan.combinations))

            def _advance(record: AttemptRecord) -> None:
                progress.update(task, advance=1, description=_status_line(record))

            listener: Callable[[AttemptRecord], None] = _advance
        else:

            def _print_status(record: AttemptRecord) -> None:
                console.print(_status_line(record))

            listener = _print_status

        orchestrator.listener = listener
        summary = orchestrator.run()

    console.print(
        f"\n[green]Campaign finished[/green]: {len(summary.recorded)} recorded, "
        f"{len(summary.skipped)} skipped, {len(summary.abandoned)} abandoned"
    )
    console.print(f"  [dim]failures:[/dim] {summary.failures.describe()}")
    console.print(f"  [dim]results:[/dim] {writer.output}, {writer.json_output}")
    if summary.interrupted:
        console.print("[yellow]Stopped early. Rerun with --resume to continue.[/yellow]")
    elif summary.progress_removed:
        console.print("[dim]All combinations tested; progress file removed[/dim]")
    else:
        console.print(f"  [dim]progress:[/dim] {config.progress_file}")

    print_ranked_report(rank_results(summary.results, config.top_n))
