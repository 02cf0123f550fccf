# Copyright (c) Syntropy Systems
"""Merge per-run series sets into cross-run series sets.

Runs of the same model do not always report the same traces for a
variable: a deterministic run gives one trace (often described as
"Deterministic") where a stochastic run gives several summaries
("Mean", "Min", ...). Before the runs can be lined up, every run must
carry the same descriptions in the same order; single traces are copied
once per description to get there.
"""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from odesweep.errors import AlignmentError
from odesweep.models.series import (
    EXTREME_FIELDS,
    EXTREME_KINDS,
    Extremes,
    ExtremeValues,
    SeriesSet,
    SeriesSetValues,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from odesweep.models.base import Combination

logger = logging.getLogger(__name__)

# groups[i] holds the traces of one variable from the i-th run
TraceGroups = list[list[SeriesSetValues]]


def _format_description(description: str | None) -> str:
    return "undefined" if description is None else description


def _format_levels(levels: Sequence[str | None]) -> str:
    return "[" + ", ".join(_format_description(d) for d in levels) + "]"


def align_descriptions_get_levels(groups: TraceGroups) -> list[str | None]:
    """Return the descriptions every run should end up with.

    Runs with several traces must all use the same defined descriptions
    in the same order. Runs with a single trace must agree with each
    other on its description (which may be ``None``).

    Raises:
        AlignmentError: if the descriptions cannot be reconciled

    """
    single: str | None = None
    have_single = False
    levels: list[str] | None = None

    for group in groups:
        if len(group) == 1:
            description = group[0].description
            if not have_single:
                single = description
                have_single = True
            elif description != single:
                msg = (
                    "Unexpected inconsistent descriptions: have "
                    f"{_format_description(single)}, but given "
                    f"{_format_description(description)}"
                )
                raise AlignmentError(msg)
            continue

        descriptions = [v.description for v in group]
        if any(d is None for d in descriptions):
            msg = "Expected all descriptions to be defined"
            raise AlignmentError(msg)
        labels = [d for d in descriptions if d is not None]
        if levels is None:
            levels = labels
        elif labels != levels:
            msg = (
                "Unexpected inconsistent descriptions: have "
                f"{_format_levels(levels)}, but given {_format_levels(labels)}"
            )
            raise AlignmentError(msg)

    if levels is not None:
        return list(levels)
    return [single]


def align_descriptions(groups: TraceGroups) -> TraceGroups:
    """Give every run the same traces, in the same order, for one variable.

    When every run has a single trace the groups are returned as they
    are. Otherwise single traces are replicated once per description.
    """
    if all(len(group) == 1 for group in groups):
        return groups

    levels = align_descriptions_get_levels(groups)
    aligned: TraceGroups = []
    for group in groups:
        if len(group) == 1:
            trace = group[0]
            aligned.append(
                [
                    SeriesSetValues(name=trace.name, description=label, y=list(trace.y))
                    for label in levels
                ]
            )
        else:
            aligned.append(group)
    return aligned


def _group_by_name(result: Sequence[SeriesSet]) -> list[tuple[str, TraceGroups]]:
    """Collect the traces of each variable, keeping the first run's order."""
    names = result[0].names()
    grouped: list[tuple[str, TraceGroups]] = []
    for name in names:
        groups: TraceGroups = []
        for idx, s in enumerate(result):
            traces = [v for v in s.values if v.name == name]
            if not traces:
                msg = f"Expected series '{name}' in every solution, missing from {idx}"
                raise AlignmentError(msg)
            groups.append(traces)
        grouped.append((name, align_descriptions(groups)))

    for idx, s in enumerate(result[1:], start=1):
        extra = set(s.names()) - set(names)
        if extra:
            msg = (
                f"Unexpected series {', '.join(sorted(extra))} in solution {idx}, "
                f"expected only {', '.join(names)}"
            )
            raise AlignmentError(msg)
    return grouped


def value_at_time_result(
    x: Sequence[Combination],
    result: Sequence[SeriesSet],
) -> SeriesSet:
    """Combine single-time series sets, one per run, into one series set.

    Args:
        x: The combination for each run
        result: For each run, its series set at a single time

    """
    if not result:
        return SeriesSet(x=list(x), values=[])

    values: list[SeriesSetValues] = []
    for name, groups in _group_by_name(result):
        for j, trace in enumerate(groups[0]):
            values.append(
                SeriesSetValues(
                    name=name,
                    description=trace.description,
                    y=[group[j].y[0] for group in groups],
                )
            )
    return SeriesSet(x=list(x), values=values)


def find_extremes(t: Sequence[float], y: Sequence[float]) -> ExtremeValues:
    """Find the minimum and maximum of ``y`` and the times they occur.

    Ties go to the earliest time. NaN values are skipped unless the whole
    series is NaN, in which case the first point is reported.
    """
    if len(y) == 0:
        msg = "Cannot find extremes of an empty series"
        raise ValueError(msg)
    start = next((i for i, v in enumerate(y) if not math.isnan(v)), 0)
    idx_min = start
    idx_max = start
    for i in range(start + 1, len(y)):
        if y[i] < y[idx_min]:
            idx_min = i
        if y[i] > y[idx_max]:
            idx_max = i
    return ExtremeValues(
        t_min=t[idx_min],
        t_max=t[idx_max],
        y_min=y[idx_min],
        y_max=y[idx_max],
    )


def compute_extremes_result(
    x: Sequence[Combination],
    result: Sequence[SeriesSet],
) -> Extremes:
    """Find per-run extremes of every trace and line them up across runs.

    Args:
        x: The combination for each run
        result: For each run, its series set sampled over the whole run

    """
    collected: dict[str, list[SeriesSetValues]] = {kind: [] for kind in EXTREME_KINDS}

    if result:
        for name, groups in _group_by_name(result):
            for j, trace in enumerate(groups[0]):
                per_run = [
                    find_extremes(s.x, group[j].y)  # type: ignore[arg-type]
                    for s, group in zip(result, groups)
                ]
                for kind in EXTREME_KINDS:
                    collected[kind].append(
                        SeriesSetValues(
                            name=name,
                            description=trace.description,
                            y=[getattr(e, EXTREME_FIELDS[kind]) for e in per_run],
                        )
                    )

    logger.debug("Computed extremes over %d runs", len(result))
    return Extremes(
        t_min=SeriesSet(x=list(x), values=collected["tMin"]),
        t_max=SeriesSet(x=list(x), values=collected["tMax"]),
        y_min=SeriesSet(x=list(x), values=collected["yMin"]),
        y_max=SeriesSet(x=list(x), values=collected["yMax"]),
    )
