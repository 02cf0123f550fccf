# Copyright (c) Syntropy Systems
"""Main CLI entry point for odesweep."""

import logging

import typer
from rich.logging import RichHandler

from odesweep.cli.plan import plan
from odesweep.cli.run_cmd import run
from odesweep.config import load_config

app = typer.Typer(
    name="odesweep",
    help=(
        "Sensitivity sweeps for differential equation models. Vary "
        "parameters, run the model for each combination, compare results."
    ),
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log every run",
    ),
) -> None:
    """Configure logging for the command."""
    level = "DEBUG" if verbose else load_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


# Register commands
_ = app.command()(plan)
_ = app.command()(run)


if __name__ == "__main__":
    app()
