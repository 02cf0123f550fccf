# Copyright (c) Syntropy Systems
"""Fit a model to data by least squares."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np
from pydantic import Field, model_validator
from scipy.optimize import minimize
from typing_extensions import Self

from odesweep.models.base import OdesweepBaseModel, Parameters
from odesweep.solution import TimeGiven

if TYPE_CHECKING:
    from collections.abc import Sequence

    from odesweep.model import Model, SolverControl
    from odesweep.solution import InterpolatedSolution

logger = logging.getLogger(__name__)


class FitData(OdesweepBaseModel):
    """Observations to fit to; ``NaN`` values are skipped."""

    time: list[float]
    value: list[float]

    @model_validator(mode="after")
    def _check_lengths(self) -> Self:
        if len(self.time) != len(self.value):
            msg = "Expected 'time' and 'value' to have the same length"
            raise ValueError(msg)
        if not self.time:
            msg = "Expected at least one observation"
            raise ValueError(msg)
        return self


class FitPars(OdesweepBaseModel):
    """Starting parameters, and the names of those to optimise."""

    base: Parameters = Field(default_factory=dict)
    vary: list[str]

    @model_validator(mode="after")
    def _check_vary(self) -> Self:
        missing = [name for name in self.vary if name not in self.base]
        if missing:
            msg = f"Parameters to vary missing from base: {', '.join(missing)}"
            raise ValueError(msg)
        return self


@dataclass
class FitResult:
    """Goodness of fit for one set of parameters."""

    value: float
    pars: Parameters
    solution: InterpolatedSolution
    t_start: float
    t_end: float


def sum_of_squares(x: Sequence[float], y: Sequence[float]) -> float:
    """Sum of squared differences, ignoring positions where ``x`` is NaN."""
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    keep = ~np.isnan(xa)
    return float(np.sum((xa[keep] - ya[keep]) ** 2))


def update_fit_pars(pars: FitPars, theta: Sequence[float]) -> Parameters:
    """Return the base parameters with ``theta`` put in the varied slots."""
    ret = dict(pars.base)
    for name, value in zip(pars.vary, theta):
        ret[name] = float(value)
    return ret


def fit_target(
    model: Model,
    data: FitData,
    pars: FitPars,
    modelled_series: str,
    control: SolverControl | None = None,
) -> Callable[[Sequence[float]], FitResult]:
    """Build the objective used by :func:`fit`.

    The returned function runs the model for the varied parameters
    ``theta`` and compares ``modelled_series`` with the data.
    """
    t_start = 0.0
    if data.time[0] < t_start:
        msg = f"Expected the first time to be at least {t_start:g}"
        raise ValueError(msg)
    t_end = data.time[-1]
    if t_end <= t_start:
        msg = f"Expected the last time to be greater than {t_start:g}"
        raise ValueError(msg)
    times = TimeGiven(data.time)

    def target(theta: Sequence[float]) -> FitResult:
        p = update_fit_pars(pars, theta)
        solution = model.run(p, t_start, t_end, control)
        modelled = solution(times).lookup(modelled_series)
        if modelled is None:
            msg = f"Model does not produce a series called '{modelled_series}'"
            raise ValueError(msg)
        return FitResult(
            value=sum_of_squares(data.value, modelled.y),
            pars=p,
            solution=solution,
            t_start=t_start,
            t_end=t_end,
        )

    return target


def fit(  # noqa: PLR0913
    model: Model,
    data: FitData,
    pars: FitPars,
    modelled_series: str,
    control: SolverControl | None = None,
    max_iterations: int = 1000,
) -> FitResult:
    """Minimise the sum of squares with scipy's Nelder-Mead simplex.

    Parameter sets for which the model fails score as infinitely bad.
    """
    target = fit_target(model, data, pars, modelled_series, control)

    def objective(theta: np.ndarray) -> float:
        try:
            return target(theta.tolist()).value
        except (ArithmeticError, RuntimeError) as e:
            logger.debug("Fit objective failed at %s: %s", theta, e)
            return math.inf

    theta0 = np.array([float(pars.base[name]) for name in pars.vary])  # type: ignore[arg-type]
    result = minimize(
        objective,
        theta0,
        method="Nelder-Mead",
        options={"maxiter": max_iterations},
    )
    logger.info(
        "Fit finished after %d iterations: %s", result.nit, result.message
    )
    return target(result.x.tolist())
