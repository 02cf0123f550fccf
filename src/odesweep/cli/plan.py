# Copyright (c) Syntropy Systems
"""odesweep plan command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from odesweep.errors import OdesweepError
from odesweep.sweep import SweepConfig, expand_varying_params

console = Console()


def plan(
    sweep_file: Path = typer.Argument(
        ...,
        help="Path to sweep configuration YAML file",
        exists=True,
    ),
    limit: int = typer.Option(
        50,
        "--limit", "-l",
        help="Maximum number of combinations to list",
    ),
) -> None:
    r"""Show the combinations a sweep file would run, without running them.

    Example sweep.yaml:

    \b
        model: mymodels:logistic
        t_end: 10
        base:
          r: 0.5
          K: 100
        varying:
          - name: r
            count: 5
            displace: 20
    """
    try:
        sweep_config = SweepConfig.from_yaml(sweep_file)
        pars = sweep_config.batch_pars()
        combinations = expand_varying_params(pars.varying)
    except (OSError, ValueError, OdesweepError) as e:
        console.print(f"[red]Error loading sweep:[/red] {e}")
        raise typer.Exit(1) from e

    names = [v.name for v in pars.varying]
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim")
    for name in names:
        table.add_column(name)

    for i, combination in enumerate(combinations[:limit]):
        table.add_row(str(i), *[f"{combination[name]:g}" for name in names])

    console.print(f"[bold]Sweep: {sweep_config.name or sweep_file.stem}[/bold]")
    console.print(table)
    if len(combinations) > limit:
        console.print(f"[dim]... {len(combinations) - limit} more not shown[/dim]")
    console.print(
        f"\n[bold]{len(combinations)} runs[/bold] of {sweep_config.model} "
        f"from t={sweep_config.t_start:g} to t={sweep_config.t_end:g}"
    )
