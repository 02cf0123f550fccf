# Copyright (c) Syntropy Systems
"""Pytest fixtures for odesweep tests."""

from __future__ import annotations

import sys
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from odesweep.errors import IntegrationError
from odesweep.model import ContinuousModel
from odesweep.models.base import Parameters
from odesweep.solution import InterpolatedSolution, interpolated_solution

RunFunction = Callable[[Parameters, float, float], InterpolatedSolution]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def linear_model() -> ContinuousModel:
    """x' = a with x(0) = 1, so x(t) = 1 + a t."""
    return ContinuousModel(
        rhs=lambda t, y, p: [p["a"]],
        initial=lambda t, p: [1.0],
        names=["x"],
    )


@pytest.fixture
def output_model() -> ContinuousModel:
    """The linear model plus an output series y = 2 x."""
    return ContinuousModel(
        rhs=lambda t, y, p: [p["a"]],
        initial=lambda t, p: [1.0],
        names=["x"],
        output=lambda t, y, p: [2 * y[0]],
        output_names=["y"],
    )


@pytest.fixture
def scaled_run() -> RunFunction:
    """Single-run function giving x(t) = scale * t + shift.

    Fails with a solver-style message whenever scale >= 10.
    """

    def run(pars: Parameters, t_start: float, t_end: float) -> InterpolatedSolution:
        scale = float(pars["scale"])  # type: ignore[arg-type]
        shift = float(pars.get("shift", 0.0))  # type: ignore[arg-type]
        if scale >= 10:  # noqa: PLR2004
            msg = "Integration failure: too many steps"
            raise IntegrationError(msg)
        return interpolated_solution(
            lambda t: np.atleast_2d(scale * t + shift),
            ["x"],
            t_start,
            t_end,
        )

    return run


SWEEP_MODEL_SOURCE = '''
from odesweep import ContinuousModel

linear = ContinuousModel(
    rhs=lambda t, y, p: [p["a"]],
    initial=lambda t, p: [1.0],
    names=["x"],
)


def stiff():
    """Fails for large a by refusing to take big steps."""

    def rhs(t, y, p):
        if p["a"] > 3:
            raise ArithmeticError("Integration failure: step size too small")
        return [p["a"]]

    return ContinuousModel(rhs=rhs, initial=lambda t, p: [1.0], names=["x"])
'''

SWEEP_FILE = """\
name: linear-test
model: sweep_models:linear
t_start: 0
t_end: 10
base:
  a: 2
varying:
  - name: a
    count: 5
    min: 0
    max: 4
"""


@pytest.fixture
def sweep_project(
    temp_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Create a project with a model module, a sweep file and a config."""
    config_dir = temp_dir / ".odesweep"
    config_dir.mkdir()
    _ = (config_dir / "config.yaml").write_text("n_points_for_extremes: 101\n")
    _ = (temp_dir / "sweep_models.py").write_text(SWEEP_MODEL_SOURCE)
    _ = (temp_dir / "sweep.yaml").write_text(SWEEP_FILE)

    monkeypatch.syspath_prepend(str(temp_dir))
    monkeypatch.chdir(temp_dir)

    yield temp_dir

    sys.modules.pop("sweep_models", None)
