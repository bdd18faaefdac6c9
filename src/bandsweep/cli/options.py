# Copyright (c) Syntropy Systems
"""Options shared by the plan and run commands."""
from __future__ import annotations

from pathlib import Path

import typer

from bandsweep.combos import parse_band_list
from bandsweep.config import CampaignConfig, load_config

WAIT_TIME_OPTION = typer.Option(
    None,
    "--wait-time", "-w",
    help="Seconds between band switch and test",
)
MAX_BANDS_OPTION = typer.Option(
    None, "--max-bands", "-m", help="Maximum number of bands to combine",
)
LIMIT_OPTION = typer.Option(
    None, "--limit", "-l", help="Limit number of combinations to test (0 for all)",
)
INCLUDE_OPTION = typer.Option(
    None,
    "--include-bands",
    help="Only test combinations including these bands (comma-separated)",
)
EXCLUDE_OPTION = typer.Option(
    None,
    "--exclude-bands",
    help="Exclude combinations with these bands (comma-separated)",
)
AUTO_OPTION = typer.Option(
    None, "--auto/--no-auto", help="Include the AUTO configuration",
)
SHUFFLE_OPTION = typer.Option(
    None, "--shuffle/--no-shuffle", help="Randomize the order of combinations",
)
SHUFFLE_SEED_OPTION = typer.Option(
    None, "--shuffle-seed", help="Seed for --shuffle (keeps resumed runs stable)",
)
RESUME_OPTION = typer.Option(
    None, "--resume/--no-resume", help="Resume from a previous session",
)
PROGRESS_FILE_OPTION = typer.Option(
    None, "--progress-file", help="Path to progress file for resuming",
)


def resolve_config(
    *,
    include_bands: str | None = None,
    exclude_bands: str | None = None,
    config_dir: Path | None = None,
    **overrides: object,
) -> CampaignConfig:
    """Load the config file and apply command line overrides.

    Raises:
        ConfigError: the merged configuration is invalid

    """
    config = load_config(config_dir).with_overrides(
        include_bands=parse_band_list(include_bands) if include_bands else None,
        exclude_bands=parse_band_list(exclude_bands) if exclude_bands else None,
        **overrides,
    )
    config.validate()
    return config
