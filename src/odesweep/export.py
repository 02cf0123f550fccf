# Copyright (c) Syntropy Systems
"""Write cross-run series sets to CSV or JSON."""
from __future__ import annotations

import csv
from typing import TYPE_CHECKING

from pydantic import Field

from odesweep.models.base import OdesweepBaseModel
from odesweep.models.batch import RunStatus
from odesweep.models.series import SeriesSet

if TYPE_CHECKING:
    from pathlib import Path

    from odesweep.models.series import SeriesSetValues


class BatchExport(OdesweepBaseModel):
    """JSON export of a batch summary."""

    series: SeriesSet
    statuses: list[RunStatus] = Field(default_factory=list)


def trace_label(value: SeriesSetValues) -> str:
    """Column label for a trace: its name, plus description if any."""
    if value.description is None:
        return value.name
    return f"{value.name} ({value.description})"


def series_set_rows(series: SeriesSet) -> tuple[list[str], list[dict[str, object]]]:
    """Flatten a cross-run series set into one row per combination."""
    par_names: list[str] = []
    for x in series.x:
        if isinstance(x, dict):
            par_names.extend(k for k in x if k not in par_names)
    labels = [trace_label(v) for v in series.values]

    rows: list[dict[str, object]] = []
    for i, x in enumerate(series.x):
        row: dict[str, object] = dict(x) if isinstance(x, dict) else {"x": x}
        for label, value in zip(labels, series.values):
            row[label] = value.y[i]
        rows.append(row)

    fieldnames = par_names or ["x"]
    return [*fieldnames, *labels], rows


def write_series_set(
    series: SeriesSet,
    output: Path,
    statuses: list[RunStatus] | None = None,
) -> None:
    """Write ``series`` to ``output``; the format follows the suffix.

    JSON output also records the run statuses, when given.
    """
    suffix = output.suffix.lower()
    if suffix == ".json":
        export = BatchExport(series=series, statuses=statuses or [])
        _ = output.write_text(export.model_dump_json(indent=2))
    elif suffix == ".csv":
        fieldnames, rows = series_set_rows(series)
        with output.open("w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)
    else:
        msg = f"Output must be .csv or .json, got '{output.name}'"
        raise ValueError(msg)
