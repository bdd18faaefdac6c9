# Copyright (c) Syntropy Systems
"""bandsweep init command."""

from pathlib import Path

import typer
import yaml

from bandsweep.cli.common import console
from bandsweep.config import CONFIG_DIR_NAME, CONFIG_FILE_NAME, default_config_data


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Create a .bandsweep directory with a default config.yaml.

    The router password is not stored; pass --password or set PASSWORD.
    """
    target = path.resolve()
    config_dir = target / CONFIG_DIR_NAME
    config_path = config_dir / CONFIG_FILE_NAME

    if config_path.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {config_dir}")
        return

    config_dir.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as f:
        yaml.dump(default_config_data(), f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Initialized bandsweep project:[/green] {config_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
