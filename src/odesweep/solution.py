# Copyright (c) Syntropy Systems
"""Time queries and interpolated solutions."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol, Union, cast

import numpy as np
from typing_extensions import TypeAlias

from odesweep.grid import grid
from odesweep.models.series import SeriesSet, SeriesSetValues

if TYPE_CHECKING:
    from collections.abc import Sequence


class TimeMode(str, Enum):
    """How an interpolated solution should pick its times."""

    GRID = "grid"
    GIVEN = "given"


@dataclass(frozen=True)
class TimeGrid:
    """``n_points`` evenly spaced times between ``t_start`` and ``t_end``.

    The range is clamped into the span the solution covers, so
    ``-inf``/``inf`` stand for the beginning and end of the run.
    """

    t_start: float
    t_end: float
    n_points: int
    mode: TimeMode = field(default=TimeMode.GRID, init=False)


@dataclass(frozen=True)
class TimeGiven:
    """An explicit list of times."""

    times: Sequence[float]
    mode: TimeMode = field(default=TimeMode.GIVEN, init=False)


TimeQuery: TypeAlias = Union[TimeGrid, TimeGiven]


class InterpolatedSolution(Protocol):
    """One run's trajectory, queryable at any time in its span."""

    def __call__(self, times: TimeQuery) -> SeriesSet:
        ...


def resolve_times(times: TimeQuery, t_start: float, t_end: float) -> list[float]:
    """Turn a time query into concrete times for a run on ``[t_start, t_end]``."""
    if times.mode is TimeMode.GIVEN:
        return [float(t) for t in cast("TimeGiven", times).times]
    query = cast("TimeGrid", times)
    # Clamp both ends into the run
    lo = min(max(query.t_start, t_start), t_end)
    hi = max(min(query.t_end, t_end), t_start)
    return grid(lo, hi, query.n_points)


def interpolated_solution(
    evaluate: Callable[[np.ndarray], np.ndarray],
    names: Sequence[str],
    t_start: float,
    t_end: float,
    descriptions: Sequence[str | None] | None = None,
) -> InterpolatedSolution:
    """Wrap a dense solution as an :class:`InterpolatedSolution`.

    Args:
        evaluate: Maps an array of times to an array of shape
            ``(len(names), len(times))``
        names: Name of each row returned by ``evaluate``
        t_start: Start of the solution
        t_end: End of the solution
        descriptions: Optional description of each row

    """
    labels: Sequence[str | None] = (
        descriptions if descriptions is not None else [None] * len(names)
    )

    def solution(times: TimeQuery) -> SeriesSet:
        t = resolve_times(times, t_start, t_end)
        y = np.atleast_2d(evaluate(np.asarray(t, dtype=float)))
        return SeriesSet(
            x=t,
            values=[
                SeriesSetValues(name=name, description=desc, y=row.tolist())
                for name, desc, row in zip(names, labels, y)
            ],
        )

    return solution
