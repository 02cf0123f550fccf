# Copyright (c) Syntropy Systems
"""odesweep run command."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, cast

import typer
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from odesweep.batch import Batch
from odesweep.config import load_config
from odesweep.errors import OdesweepError
from odesweep.export import trace_label, write_series_set
from odesweep.model import model_runner
from odesweep.models.series import EXTREME_KINDS
from odesweep.sweep import SweepConfig, load_model

if TYPE_CHECKING:
    from odesweep.model import Model
    from odesweep.models.series import ExtremeKind, SeriesSet

console = Console()
logger = logging.getLogger(__name__)


def _series_table(series: SeriesSet) -> Table:
    table = Table(show_header=True, header_style="bold")
    par_names: list[str] = []
    for x in series.x:
        if isinstance(x, dict):
            par_names.extend(k for k in x if k not in par_names)
    for name in par_names:
        table.add_column(name, style="cyan")
    for value in series.values:
        table.add_column(trace_label(value), justify="right")

    for i, x in enumerate(series.x):
        combination = x if isinstance(x, dict) else {}
        table.add_row(
            *[f"{combination.get(name, float('nan')):g}" for name in par_names],
            *[f"{value.y[i]:.6g}" for value in series.values],
        )
    return table


def run(
    sweep_file: Path = typer.Argument(
        ...,
        help="Path to sweep configuration YAML file",
        exists=True,
    ),
    time: Optional[float] = typer.Option(
        None,
        "--time", "-t",
        help="Report values at this time (default: end of the runs)",
    ),
    extreme: Optional[str] = typer.Option(
        None,
        "--extreme", "-e",
        help="Report an extreme instead: tMin, tMax, yMin or yMax",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Also write the results to a .csv or .json file",
    ),
) -> None:
    """Run a model over every combination in a sweep file."""
    if extreme is not None and extreme not in EXTREME_KINDS:
        console.print(
            f"[red]Error:[/red] --extreme must be one of {', '.join(EXTREME_KINDS)}"
        )
        raise typer.Exit(1)
    if output is not None and output.suffix.lower() not in (".csv", ".json"):
        console.print("[red]Output must be .csv or .json[/red]")
        raise typer.Exit(1)

    config = load_config()
    try:
        sweep_config = SweepConfig.from_yaml(sweep_file)
        pars = sweep_config.batch_pars()
        control = config.solver_control(sweep_config.control)
        model = cast("Model", load_model(sweep_config.model))
        batch = Batch(
            model_runner(model, control),
            pars,
            sweep_config.t_start,
            sweep_config.t_end,
            n_points_for_extremes=config.n_points_for_extremes,
        )
    except (OSError, ImportError, ValueError, OdesweepError) as e:
        console.print(f"[red]Error loading sweep:[/red] {e}")
        raise typer.Exit(1) from e

    _, total = batch.progress
    logger.info("Running %d combinations from %s", total, sweep_file)
    try:
        with Progress(console=console, transient=True) as progress:
            task = progress.add_task("Running", total=total)
            while not batch.compute():
                progress.advance(task)
    except OdesweepError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    try:
        if extreme is not None:
            series = batch.extreme(cast("ExtremeKind", extreme))
            title = extreme
        else:
            at = sweep_config.t_end if time is None else time
            series = batch.value_at_time(at)
            title = f"Value at t={at:g}"
    except OdesweepError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"[bold]{title}[/bold]")
    console.print(_series_table(series))

    errors = batch.errors
    if errors:
        console.print(f"\n[yellow]{len(errors)} of {total} runs failed:[/yellow]")
        for status in errors:
            pars_str = ", ".join(f"{k}={v:g}" for k, v in status.pars.items())
            console.print(f"  [dim]{pars_str}[/dim] {status.error}")

    if output is not None:
        write_series_set(series, output, batch.run_statuses)
        console.print(f"[green]Wrote results to {output}[/green]")
