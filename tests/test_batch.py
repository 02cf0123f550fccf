# Copyright (c) Syntropy Systems
"""Tests for running batches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from odesweep.batch import Batch, batch_run
from odesweep.errors import AllRunsFailedError, BatchParsError
from odesweep.grid import grid
from odesweep.model import SolverControl, run_model
from odesweep.models.batch import BatchPars, RunStatus, VaryingPar
from odesweep.solution import TimeGrid
from odesweep.sweep import batch_pars, batch_pars_range

if TYPE_CHECKING:
    from odesweep.model import ContinuousModel, RunFunction


def _scale_pars(values: list[float]) -> BatchPars:
    return batch_pars(
        {"scale": 1, "shift": 0},
        [VaryingPar(name="scale", values=values)],
    )


class TestBatchRun:
    """Tests for running a model over a batch."""

    def test_runs_match_single_runs(self, linear_model: ContinuousModel) -> None:
        """Test that each solution matches running the model directly."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 5, False, 0, 4)])
        res = batch_run(linear_model, pars, 0, 10)

        times = TimeGrid(0, 10, 11)
        assert len(res.solutions) == 5
        for i, a in enumerate([0, 2, 4]):
            single = run_model(linear_model, {"a": a}, 0, 10)
            assert res.solutions[i * 2](times) == single(times)

    def test_requires_varying_parameter(self, linear_model: ContinuousModel) -> None:
        """Test that a batch with nothing to vary is rejected."""
        pars = batch_pars({"a": 1}, [])
        with pytest.raises(
            BatchParsError, match="A batch must have at least one varying parameter"
        ):
            _ = batch_run(linear_model, pars, 0, 10)

    def test_control_as_mapping(self, linear_model: ContinuousModel) -> None:
        """Test that solver control can be given as a plain mapping."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 3, False, 0, 4)])
        res = batch_run(linear_model, pars, 0, 10, {"rtol": 1e-8, "method": "RK45"})
        assert len(res.solutions) == 3
        assert res.value_at_time(10).values[0].y == pytest.approx([1, 21, 41])

        # A step of at most 0.01 cannot reach t = 10 in ten steps
        with pytest.raises(AllRunsFailedError, match="too many steps"):
            _ = batch_run(linear_model, pars, 0, 10, {"max_steps": 10, "max_step": 0.01})

    def test_all_runs_fail_with_solver(self, linear_model: ContinuousModel) -> None:
        """Test the all-fail error with a real solver failure."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 3, False, 0, 4)])
        control = SolverControl(max_steps=1, max_step=0.01)
        with pytest.raises(
            AllRunsFailedError,
            match="All solutions failed; first error: Integration failure: too many steps",
        ):
            _ = batch_run(linear_model, pars, 0, 10, control)


class TestFailureIsolation:
    """Tests for recording failed runs without stopping the batch."""

    def test_catches_errors_in_fraction_of_runs(self, scaled_run: RunFunction) -> None:
        """Test that failing combinations are recorded and skipped."""
        pars = _scale_pars([0.01, 0.1, 1, 10, 100])
        res = Batch(scaled_run, pars, 0, 10)
        res.run()

        assert len(res.errors) == 2
        assert res.errors[0].pars["scale"] == 10
        assert res.errors[1].pars["scale"] == 100
        assert "too many steps" in (res.errors[0].error or "")
        assert len(res.solutions) == 3
        assert res.pars.varying[0].name == "scale"
        assert res.pars.varying[0].values == [0.01, 0.1, 1, 10, 100]

        assert res.run_statuses == [
            RunStatus(pars={"scale": 0.01}, success=True),
            RunStatus(pars={"scale": 0.1}, success=True),
            RunStatus(pars={"scale": 1}, success=True),
            RunStatus(
                pars={"scale": 10},
                success=False,
                error="Integration failure: too many steps",
            ),
            RunStatus(
                pars={"scale": 100},
                success=False,
                error="Integration failure: too many steps",
            ),
        ]

        # Summaries only cover the successful runs
        assert res.value_at_time(10).x == [{"scale": 0.01}, {"scale": 0.1}, {"scale": 1}]

    def test_failures_logged(
        self, scaled_run: RunFunction, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that each failed run is logged as a warning."""
        with caplog.at_level(logging.WARNING, logger="odesweep.batch"):
            Batch(scaled_run, _scale_pars([1, 10]), 0, 10).run()
        assert any("too many steps" in r.getMessage() for r in caplog.records)

    def test_all_runs_fail(self, scaled_run: RunFunction) -> None:
        """Test that the batch raises when nothing succeeds."""
        batch = Batch(scaled_run, _scale_pars([10, 100]), 0, 10)
        with pytest.raises(
            AllRunsFailedError,
            match="All solutions failed; first error: Integration failure: too many steps",
        ):
            batch.run()
        assert len(batch.run_statuses) == 2
        assert batch.complete

    def test_all_fail_error_carries_first_message(self) -> None:
        """Test that the first failure's message is kept on the error."""
        messages = iter(["first", "second"])

        def run(pars: object, t_start: float, t_end: float) -> object:
            raise RuntimeError(next(messages))

        pars = batch_pars({"a": 1}, [VaryingPar(name="a", values=[1, 2])])
        batch = Batch(run, pars, 0, 1)  # type: ignore[arg-type]
        with pytest.raises(AllRunsFailedError) as exc_info:
            batch.run()
        assert exc_info.value.first_error == "first"

    def test_statuses_are_immutable(self, scaled_run: RunFunction) -> None:
        """Test that run statuses cannot be changed once recorded."""
        batch = Batch(scaled_run, _scale_pars([1]), 0, 10)
        batch.run()
        with pytest.raises(ValueError):
            batch.run_statuses[0].success = False  # type: ignore[misc]


class TestMultipleVaryingParameters:
    """Tests for batches varying more than one parameter."""

    def test_combinations_in_order(self, scaled_run: RunFunction) -> None:
        """Test that runs happen in odometer order."""
        pars = batch_pars(
            {"scale": 1, "shift": 0},
            [
                VaryingPar(name="scale", values=[1, -1]),
                VaryingPar(name="shift", values=[0, 3, 5]),
            ],
        )
        res = Batch(scaled_run, pars, 0, 10)
        res.run()
        assert res.successful_varying_params == [
            {"scale": 1, "shift": 0},
            {"scale": 1, "shift": 3},
            {"scale": 1, "shift": 5},
            {"scale": -1, "shift": 0},
            {"scale": -1, "shift": 3},
            {"scale": -1, "shift": 5},
        ]

        at_ten = res.value_at_time(10).values[0].y
        assert at_ten == pytest.approx([10, 13, 15, -10, -7, -5])

    def test_some_combinations_fail(self, scaled_run: RunFunction) -> None:
        """Test that failures drop out of every result view."""
        pars = batch_pars(
            {"scale": 1, "shift": 0},
            [
                VaryingPar(name="scale", values=[1, 1000]),
                VaryingPar(name="shift", values=[0, 3, 5]),
            ],
        )
        res = Batch(scaled_run, pars, 0, 10)
        res.run()
        assert res.successful_varying_params == [
            {"scale": 1, "shift": 0},
            {"scale": 1, "shift": 3},
            {"scale": 1, "shift": 5},
        ]
        assert len(res.solutions) == 3
        assert [e.pars for e in res.errors] == [
            {"scale": 1000, "shift": 0},
            {"scale": 1000, "shift": 3},
            {"scale": 1000, "shift": 5},
        ]
        assert res.extreme("yMax").x == res.successful_varying_params


class TestStepwise:
    """Tests for running a batch one combination at a time."""

    def test_compute_one_at_a_time(self, linear_model: ContinuousModel) -> None:
        """Test stepping through a batch."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 3, False, 0, 4)])
        obj = batch_run(linear_model, pars, 0, 10, immediate=False)
        assert len(obj.solutions) == 0
        assert len(obj.errors) == 0
        assert obj.progress == (0, 3)
        assert not obj.complete

        assert obj.compute() is False
        assert len(obj.solutions) == 1
        assert obj.successful_varying_params == [{"a": 0}]
        assert obj.pending == [{"a": 2}, {"a": 4}]
        assert obj.compute() is False
        assert obj.successful_varying_params == [{"a": 0}, {"a": 2}]
        assert obj.compute() is True
        assert len(obj.solutions) == 3
        assert obj.complete
        assert obj.pending == []

        # Further calls are no-ops
        assert obj.compute() is True
        assert len(obj.solutions) == 3
        assert obj.successful_varying_params == [{"a": 0}, {"a": 2}, {"a": 4}]
        assert obj.progress == (3, 3)

    def test_stepwise_matches_run(self, scaled_run: RunFunction) -> None:
        """Test that stepping gives the same results as run()."""
        pars = _scale_pars([0.5, 10, 2, 3])
        eager = Batch(scaled_run, pars, 0, 10)
        eager.run()

        stepped = Batch(scaled_run, pars, 0, 10)
        while not stepped.compute():
            pass

        query = TimeGrid(0, 10, 5)
        assert stepped.run_statuses == eager.run_statuses
        assert [s(query) for s in stepped.solutions] == [s(query) for s in eager.solutions]
        assert stepped.value_at_time(5) == eager.value_at_time(5)
        assert stepped.find_extremes() == eager.find_extremes()


class TestExtract:
    """Tests for extracting summaries from a batch."""

    def test_value_at_time(self, linear_model: ContinuousModel) -> None:
        """Test the state at the end of each run."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 5, False, 0, 4)])
        obj = batch_run(linear_model, pars, 0, 10)
        res = obj.value_at_time(10)
        assert [x["a"] for x in res.x] == grid(0, 4, 5)  # type: ignore[index]
        assert len(res.values) == 1
        assert res.values[0].name == "x"
        assert res.values[0].y == pytest.approx([1, 11, 21, 31, 41])

    def test_value_at_infinite_time(self, linear_model: ContinuousModel) -> None:
        """Test that infinite times clamp to the ends of the runs."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 3, False, 0, 4)])
        obj = batch_run(linear_model, pars, 0, 10)
        assert obj.value_at_time(float("inf")).values[0].y == pytest.approx([1, 21, 41])
        assert obj.value_at_time(float("-inf")).values[0].y == pytest.approx([1, 1, 1])

    def test_multivariable(self, output_model: ContinuousModel) -> None:
        """Test value at time and extremes with output series."""
        user = {"a": 2}
        pars = batch_pars(user, [batch_pars_range(user, "a", 5, False, 0, 4)])
        obj = batch_run(output_model, pars, 0, 10)
        res = obj.value_at_time(10)
        assert [x["a"] for x in res.x] == grid(0, 4, 5)  # type: ignore[index]
        assert [v.name for v in res.values] == ["x", "y"]
        assert res.values[0].y == pytest.approx([1, 11, 21, 31, 41])
        assert res.values[1].y == pytest.approx([2, 22, 42, 62, 82])

        e = obj.extreme("yMax")
        assert e.x == res.x
        assert [v.name for v in e.values] == ["x", "y"]
        assert e.values[0].y == pytest.approx([1, 11, 21, 31, 41])
        assert e.values[1].y == pytest.approx([2, 22, 42, 62, 82])

        t_max = obj.extreme("tMax")
        # Constant trace for a = 0 peaks first at the start
        assert t_max.values[0].y == pytest.approx([0, 10, 10, 10, 10])
        assert obj.extreme("tMin").values[0].y == pytest.approx([0, 0, 0, 0, 0])

    def test_unknown_extreme(self, scaled_run: RunFunction) -> None:
        """Test that unknown extremes are rejected."""
        batch = Batch(scaled_run, _scale_pars([1, 2]), 0, 10)
        batch.run()
        with pytest.raises(ValueError, match="Unknown extreme"):
            _ = batch.extreme("zMax")  # type: ignore[arg-type]


class TestExtremesCaching:
    """Tests for when extremes are stored."""

    def test_recomputes_while_running(self, linear_model: ContinuousModel) -> None:
        """Test that extremes follow a batch that is still running."""
        user = {"a": 2}
        varying = batch_pars_range(user, "a", 3, False, 0, 4)
        obj = batch_run(linear_model, batch_pars(user, [varying]), 0, 10, immediate=False)

        e0 = obj.extreme("yMax")
        assert e0.x == []
        assert e0.values == []

        _ = obj.compute()
        e1 = obj.extreme("yMax")
        assert e1.x == [{"a": varying.values[0]}]
        assert len(e1.values[0].y) == 1

        obj.run()
        e3 = obj.extreme("yMax")
        assert e3.x == [{"a": v} for v in varying.values]
        assert len(e3.values[0].y) == 3
        assert e3.values[0].y[0] == e1.values[0].y[0]

    def test_cached_once_complete(self, scaled_run: RunFunction) -> None:
        """Test that a complete batch computes its extremes once."""
        calls: list[int] = []

        def counting_run(pars, t_start, t_end):  # noqa: ANN001, ANN202
            solution = scaled_run(pars, t_start, t_end)

            def wrapped(times):  # noqa: ANN001, ANN202
                calls.append(1)
                return solution(times)

            return wrapped

        batch = Batch(counting_run, _scale_pars([1, 2]), 0, 10, n_points_for_extremes=11)
        batch.run()
        first = batch.find_extremes()
        n_calls = len(calls)
        assert batch.find_extremes() is first
        assert len(calls) == n_calls
        assert len(batch.extreme("tMax").values[0].y) == 2

    def test_resolution(self, scaled_run: RunFunction) -> None:
        """Test that extremes are found on the sampling grid."""
        batch = Batch(scaled_run, _scale_pars([-1, 1]), 0, 10, n_points_for_extremes=3)
        batch.run()
        assert batch.extreme("tMin").values[0].y == [10, 0]
        assert batch.extreme("yMax").values[0].y == [0, 10]
