# Copyright (c) Syntropy Systems
"""Main CLI entry point for bandsweep."""

import typer

from bandsweep.cli.init_cmd import init
from bandsweep.cli.plan import plan
from bandsweep.cli.report import report
from bandsweep.cli.run import run
from bandsweep.cli.status import status

app = typer.Typer(
    name="bandsweep",
    help=(
        "Test every LTE band combination on a router, "
        "rank them by throughput and signal."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(plan)
_ = app.command()(run)
_ = app.command()(status)
_ = app.command()(report)


if __name__ == "__main__":
    app()
