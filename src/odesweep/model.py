# Copyright (c) Syntropy Systems
"""Model adapters: turn a model plus parameters into an interpolated solution.

The batch machinery only ever calls :meth:`Model.run`; whether a model
is integrated as an ODE or stepped as a stochastic process is decided
here.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Literal, Optional, Protocol

import numpy as np
from pydantic import Field
from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, OdeSolution, Radau

from odesweep.errors import IntegrationError
from odesweep.models.base import OdesweepBaseModel
from odesweep.solution import interpolated_solution

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scipy.integrate import OdeSolver

    from odesweep.models.base import Parameters
    from odesweep.solution import InterpolatedSolution

logger = logging.getLogger(__name__)

_METHODS: dict[str, type[OdeSolver]] = {
    "RK23": RK23,
    "RK45": RK45,
    "DOP853": DOP853,
    "Radau": Radau,
    "BDF": BDF,
    "LSODA": LSODA,
}


class SolverControl(OdesweepBaseModel):
    """Tuning for the integrator."""

    method: Literal["RK23", "RK45", "DOP853", "Radau", "BDF", "LSODA"] = "DOP853"
    rtol: float = Field(default=1e-6, gt=0)
    atol: float = Field(default=1e-6, gt=0)
    max_steps: int = Field(default=10000, ge=1)
    max_step: float = Field(default=np.inf, gt=0)


class Model(Protocol):
    """Anything that can produce a solution for a set of parameters."""

    def run(
        self,
        pars: Parameters,
        t_start: float,
        t_end: float,
        control: SolverControl | None = None,
    ) -> InterpolatedSolution:
        ...


RunFunction = Callable[["Parameters", float, float], "InterpolatedSolution"]


def run_model(
    model: Model,
    pars: Parameters,
    t_start: float,
    t_end: float,
    control: SolverControl | None = None,
) -> InterpolatedSolution:
    """Run ``model`` once."""
    return model.run(pars, t_start, t_end, control)


def model_runner(model: Model, control: SolverControl | None = None) -> RunFunction:
    """Bind a model and solver control into a single-run function."""

    def run(pars: Parameters, t_start: float, t_end: float) -> InterpolatedSolution:
        return model.run(pars, t_start, t_end, control)

    return run


class ContinuousModel:
    """An ODE model, integrated with scipy.

    Args:
        rhs: ``rhs(t, y, pars)`` returning the derivatives of ``y``
        initial: ``initial(t, pars)`` returning the state at the start
        names: Name of each state variable
        output: Optional ``output(t, y, pars)`` returning extra series
        output_names: Names of the series returned by ``output``

    """

    def __init__(  # noqa: PLR0913
        self,
        rhs: Callable[[float, np.ndarray, Parameters], Sequence[float] | np.ndarray],
        initial: Callable[[float, Parameters], Sequence[float] | np.ndarray],
        names: Sequence[str],
        output: Optional[
            Callable[[float, np.ndarray, Parameters], Sequence[float] | np.ndarray]
        ] = None,
        output_names: Sequence[str] = (),
    ) -> None:
        if output is not None and not output_names:
            msg = "output_names are required when an output function is given"
            raise ValueError(msg)
        self.rhs = rhs
        self.initial = initial
        self.names = list(names)
        self.output = output
        self.output_names = list(output_names)

    def run(
        self,
        pars: Parameters,
        t_start: float,
        t_end: float,
        control: SolverControl | None = None,
    ) -> InterpolatedSolution:
        """Integrate from ``t_start`` to ``t_end``.

        Raises:
            IntegrationError: if the solver fails or takes more than
                ``control.max_steps`` steps

        """
        control = control or SolverControl()
        if t_end <= t_start:
            msg = f"Expected t_end ({t_end}) to be greater than t_start ({t_start})"
            raise ValueError(msg)

        y0 = np.asarray(self.initial(t_start, pars), dtype=float)
        if y0.shape != (len(self.names),):
            msg = f"Expected {len(self.names)} initial values, but given {y0.size}"
            raise ValueError(msg)

        def fun(t: float, y: np.ndarray) -> np.ndarray:
            return np.asarray(self.rhs(t, y, pars), dtype=float)

        solver = _METHODS[control.method](
            fun,
            t_start,
            y0,
            t_end,
            rtol=control.rtol,
            atol=control.atol,
            max_step=control.max_step,
        )

        ts = [t_start]
        interpolants = []
        steps = 0
        while solver.status == "running":
            if steps >= control.max_steps:
                msg = "Integration failure: too many steps"
                raise IntegrationError(msg)
            message = solver.step()
            steps += 1
            if solver.status == "failed":
                msg = f"Integration failure: {message}"
                raise IntegrationError(msg)
            ts.append(solver.t)
            interpolants.append(solver.dense_output())

        logger.debug("Integrated to %s in %d steps", t_end, steps)
        dense = OdeSolution(ts, interpolants)
        names = self.names + self.output_names

        def evaluate(t: np.ndarray) -> np.ndarray:
            y = np.asarray(dense(t)).reshape(len(self.names), t.size)
            if self.output is None:
                return y
            extra = np.column_stack(
                [
                    np.asarray(self.output(ti, y[:, i], pars), dtype=float)
                    for i, ti in enumerate(t)
                ]
            )
            return np.vstack([y, extra])

        return interpolated_solution(evaluate, names, t_start, t_end)


class DiscreteModel:
    """A discrete-time (usually stochastic) model run for several particles.

    Each particle is an independent realisation. The solution reports the
    mean, minimum and maximum over particles for every variable, or a
    single "Deterministic" trace when there is only one particle. Times
    map to the nearest step; there is no interpolation between steps.

    Args:
        update: ``update(step, state, pars, rng)`` taking and returning an
            array of shape ``(n_variables, n_particles)``
        initial: ``initial(pars)`` returning the starting state of one
            particle
        names: Name of each variable
        n_particles: Number of realisations
        dt: Time covered by one step
        seed: Seed for the random number generator

    """

    summaries: tuple[str, ...] = ("Mean", "Min", "Max")

    def __init__(  # noqa: PLR0913
        self,
        update: Callable[[int, np.ndarray, Parameters, np.random.Generator], np.ndarray],
        initial: Callable[[Parameters], Sequence[float] | np.ndarray],
        names: Sequence[str],
        n_particles: int = 10,
        dt: float = 1.0,
        seed: int | None = None,
    ) -> None:
        if n_particles < 1:
            msg = "Expected at least one particle"
            raise ValueError(msg)
        if dt <= 0:
            msg = "Expected a positive step size"
            raise ValueError(msg)
        self.update = update
        self.initial = initial
        self.names = list(names)
        self.n_particles = n_particles
        self.dt = dt
        self.seed = seed

    def run(
        self,
        pars: Parameters,
        t_start: float,
        t_end: float,
        control: SolverControl | None = None,
    ) -> InterpolatedSolution:
        """Step the model from ``t_start`` to ``t_end``."""
        step_start = round(t_start / self.dt)
        step_end = round(t_end / self.dt)
        n_steps = step_end - step_start
        if n_steps < 1:
            msg = f"Expected t_end ({t_end}) to be at least one step after t_start ({t_start})"
            raise ValueError(msg)
        if control is not None and n_steps > control.max_steps:
            msg = "Integration failure: too many steps"
            raise IntegrationError(msg)

        rng = np.random.default_rng(self.seed)
        y0 = np.asarray(self.initial(pars), dtype=float)
        state = np.repeat(y0[:, None], self.n_particles, axis=1)
        history = np.empty((n_steps + 1, *state.shape))
        history[0] = state
        for i in range(n_steps):
            state = np.asarray(self.update(step_start + i, state, pars, rng), dtype=float)
            history[i + 1] = state

        if self.n_particles == 1:
            names = self.names
            descriptions: list[str | None] = ["Deterministic"] * len(self.names)
        else:
            names = [name for name in self.names for _ in self.summaries]
            descriptions = [s for _ in self.names for s in self.summaries]

        def evaluate(t: np.ndarray) -> np.ndarray:
            idx = np.clip(np.rint(t / self.dt).astype(int) - step_start, 0, n_steps)
            y = history[idx]  # (n_times, n_variables, n_particles)
            if self.n_particles == 1:
                return y[:, :, 0].T
            summary = np.stack([y.mean(axis=2), y.min(axis=2), y.max(axis=2)], axis=2)
            return summary.reshape(t.size, -1).T

        return interpolated_solution(
            evaluate,
            names,
            step_start * self.dt,
            step_end * self.dt,
            descriptions=descriptions,
        )
