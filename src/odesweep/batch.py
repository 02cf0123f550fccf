# Copyright (c) Syntropy Systems
"""Run a model over every combination of a set of varying parameters."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from odesweep.align import compute_extremes_result, value_at_time_result
from odesweep.errors import AllRunsFailedError
from odesweep.model import SolverControl, model_runner
from odesweep.models.batch import RunStatus
from odesweep.solution import TimeGrid
from odesweep.sweep import expand_varying_params, update_pars

if TYPE_CHECKING:
    from collections.abc import Mapping

    from odesweep.model import Model, RunFunction
    from odesweep.models.base import Combination
    from odesweep.models.batch import BatchPars
    from odesweep.models.series import Extremes, ExtremeKind, SeriesSet
    from odesweep.solution import InterpolatedSolution

logger = logging.getLogger(__name__)

DEFAULT_POINTS_FOR_EXTREMES = 501


@dataclass
class _Running:
    pending: deque[Combination]


@dataclass
class _Complete:
    # Only a finished batch keeps its extremes; a running one may
    # still gain solutions.
    extremes: Extremes | None = field(default=None)


class Batch:
    """A sweep of model runs, one per parameter combination.

    Runs are attempted in combination order. A run that raises is
    recorded as a failed :class:`RunStatus` and the batch carries on;
    only when every run has failed does the batch itself raise.

    Use :meth:`run` to do everything at once, or call :meth:`compute`
    repeatedly to do one run at a time (e.g. from an event loop).
    """

    pars: BatchPars
    t_start: float
    t_end: float
    n_points_for_extremes: int
    solutions: list[InterpolatedSolution]
    run_statuses: list[RunStatus]
    _run: RunFunction
    _total: int
    _state: _Running | _Complete

    def __init__(  # noqa: PLR0913
        self,
        run: RunFunction,
        pars: BatchPars,
        t_start: float,
        t_end: float,
        n_points_for_extremes: int = DEFAULT_POINTS_FOR_EXTREMES,
    ) -> None:
        """Initialize a batch; no runs happen until compute() or run().

        Args:
            run: Single-run function ``(pars, t_start, t_end)`` returning
                an interpolated solution
            pars: Base parameters and the parameters to vary
            t_start: Start of each run
            t_end: End of each run
            n_points_for_extremes: Number of times each solution is
                sampled at when looking for extremes

        """
        combinations = expand_varying_params(pars.varying)
        self._run = run
        self.pars = pars
        self.t_start = t_start
        self.t_end = t_end
        self.n_points_for_extremes = n_points_for_extremes
        self.solutions = []
        self.run_statuses = []
        self._total = len(combinations)
        self._state = _Running(pending=deque(combinations))

    def compute(self) -> bool:
        """Attempt the next pending combination.

        Returns:
            True once every combination has been attempted

        Raises:
            AllRunsFailedError: when the last combination has been
                attempted and none succeeded

        """
        state = self._state
        if isinstance(state, _Complete):
            return True

        combination = state.pending.popleft()
        self._attempt(combination)

        if state.pending:
            return False

        self._state = _Complete()
        logger.info(
            "Batch complete: %d succeeded, %d failed",
            len(self.solutions),
            len(self.run_statuses) - len(self.solutions),
        )
        if not self.solutions:
            raise AllRunsFailedError(self.run_statuses[0].error)
        return True

    def _attempt(self, combination: Combination) -> None:
        pars = update_pars(self.pars.base, combination)
        try:
            solution = self._run(pars, self.t_start, self.t_end)
        except Exception as e:  # noqa: BLE001
            logger.warning("Run failed for %s: %s", combination, e)
            self.run_statuses.append(
                RunStatus(pars=combination, success=False, error=str(e))
            )
            return
        logger.debug("Run succeeded for %s", combination)
        self.solutions.append(solution)
        self.run_statuses.append(RunStatus(pars=combination, success=True))

    def run(self) -> None:
        """Attempt every remaining combination."""
        while not self.compute():
            pass

    @property
    def complete(self) -> bool:
        """Return whether every combination has been attempted."""
        return isinstance(self._state, _Complete)

    @property
    def pending(self) -> list[Combination]:
        """Combinations not yet attempted, in the order they will run."""
        if isinstance(self._state, _Running):
            return list(self._state.pending)
        return []

    @property
    def progress(self) -> tuple[int, int]:
        """Number of attempted combinations, and the total."""
        return len(self.run_statuses), self._total

    @property
    def errors(self) -> list[RunStatus]:
        """Statuses of the runs that failed."""
        return [s for s in self.run_statuses if not s.success]

    @property
    def successful_varying_params(self) -> list[Combination]:
        """Combinations of the successful runs, lining up with ``solutions``."""
        return [s.pars for s in self.run_statuses if s.success]

    def value_at_time(self, time: float) -> SeriesSet:
        """Value of every series at ``time``, across successful runs.

        Args:
            time: The time; ``-inf`` and ``inf`` stand for the start and
                end of the runs

        """
        query = TimeGrid(time, time, 1)
        result = [s(query) for s in self.solutions]
        return value_at_time_result(self.successful_varying_params, result)

    def extreme(self, kind: ExtremeKind) -> SeriesSet:
        """Return one kind of extreme across successful runs.

        Args:
            kind: One of

                * ``"yMin"``: the minimum value of each series
                * ``"yMax"``: the maximum value of each series
                * ``"tMin"``: the time each series reached its minimum
                * ``"tMax"``: the time each series reached its maximum

        """
        return self.find_extremes().get(kind)

    def find_extremes(self) -> Extremes:
        """Compute (or fetch the stored) extremes of every series."""
        state = self._state
        if isinstance(state, _Complete) and state.extremes is not None:
            return state.extremes

        query = TimeGrid(self.t_start, self.t_end, self.n_points_for_extremes)
        result = [s(query) for s in self.solutions]
        extremes = compute_extremes_result(self.successful_varying_params, result)
        if isinstance(state, _Complete):
            state.extremes = extremes
        return extremes


def batch_run(  # noqa: PLR0913
    model: Model,
    pars: BatchPars,
    t_start: float,
    t_end: float,
    control: Union[SolverControl, Mapping[str, object], None] = None,
    immediate: bool = True,  # noqa: FBT001, FBT002
    n_points_for_extremes: int = DEFAULT_POINTS_FOR_EXTREMES,
) -> Batch:
    """Run a model over a batch of parameters.

    Args:
        model: The model to run
        pars: Base parameters and the parameters to vary, most easily
            built with batch_pars() and batch_pars_range() or
            batch_pars_displace()
        t_start: Start of each run (often 0)
        t_end: End of each run (must be greater than ``t_start``)
        control: Optional solver control, as a SolverControl or a mapping
        immediate: Run everything before returning; otherwise drive the
            batch with Batch.compute()
        n_points_for_extremes: Resolution used when looking for extremes

    Returns:
        The batch

    Example:
        >>> varying = batch_pars_range(base, "r", 5, False, 0.1, 1.0)
        >>> batch = batch_run(model, batch_pars(base, [varying]), 0, 10)
        >>> batch.value_at_time(10)

    """
    solver_control = (
        control
        if control is None or isinstance(control, SolverControl)
        else SolverControl.model_validate(dict(control))
    )
    batch = Batch(
        model_runner(model, solver_control),
        pars,
        t_start,
        t_end,
        n_points_for_extremes=n_points_for_extremes,
    )
    if immediate:
        batch.run()
    return batch
