# Copyright (c) Syntropy Systems
"""Batch parameter construction and combination generation."""
from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, TypedDict, cast

import yaml

from odesweep.errors import BatchParsError
from odesweep.grid import grid, grid_log
from odesweep.models.batch import BatchPars, VaryingPar

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from pathlib import Path

    from odesweep.models.base import Combination, Parameters, ParameterValue


class VaryingParamSpec(TypedDict, total=False):
    """Varying parameter entry in a sweep file."""

    name: str
    values: list[float]
    count: int
    min: float
    max: float
    displace: float
    logarithmic: bool


def batch_pars(base: Parameters, varying: Sequence[VaryingPar]) -> BatchPars:
    """Bundle base parameters with the parameters to vary."""
    return BatchPars(base=base, varying=list(varying))


def batch_pars_range(  # noqa: PLR0913
    base: Parameters,
    name: str,
    count: int,
    logarithmic: bool,  # noqa: FBT001
    min_value: float,
    max_value: float,
) -> VaryingPar:
    """Vary ``name`` over ``count`` values spanning ``[min_value, max_value]``.

    The current value of ``name`` in ``base`` must lie within the range.

    Args:
        base: The base set of parameters
        name: Name of the parameter to change
        count: Number of runs in the batch (at least 2)
        logarithmic: Space the values on a log scale rather than linearly
        min_value: Lower bound of the range
        max_value: Upper bound of the range

    """
    value = _parameter_value_as_number(base, name)
    if min_value > value:
        msg = f"Expected lower bound to be no greater than {_fmt(value)}"
        raise BatchParsError(msg)
    if max_value < value:
        msg = f"Expected upper bound to be no less than {_fmt(value)}"
        raise BatchParsError(msg)
    if min_value >= max_value:
        msg = "Expected upper bound to be greater than lower bound"
        raise BatchParsError(msg)
    if count < 2:  # noqa: PLR2004
        msg = "Must include at least 2 traces in the batch"
        raise BatchParsError(msg)
    if logarithmic and min_value <= 0:
        msg = "Lower bound must be greater than 0 for logarithmic scale"
        raise BatchParsError(msg)

    values = (
        grid_log(min_value, max_value, count)
        if logarithmic
        else grid(min_value, max_value, count)
    )
    return VaryingPar(name=name, values=values)


def batch_pars_displace(
    base: Parameters,
    name: str,
    count: int,
    logarithmic: bool,  # noqa: FBT001
    displace: float,
) -> VaryingPar:
    """Vary ``name`` by ``displace`` percent either side of its current value."""
    value = _parameter_value_as_number(base, name)
    delta = displace / 100
    return batch_pars_range(
        base,
        name,
        count,
        logarithmic,
        value * (1 - delta),
        value * (1 + delta),
    )


def update_pars(base: Parameters, combination: Mapping[str, float]) -> Parameters:
    """Return a copy of ``base`` with the values in ``combination`` applied."""
    ret = dict(base)
    ret.update(combination)
    return ret


def iter_combinations(varying: Sequence[VaryingPar]) -> Iterator[Combination]:
    """Iterate over every combination of the varying parameters.

    The first parameter changes slowest and the last fastest, so
    ``[{a: [1, 2]}, {b: [3, 4]}]`` gives ``(1, 3), (1, 4), (2, 3), (2, 4)``.
    """
    if not varying:
        msg = "A batch must have at least one varying parameter"
        raise BatchParsError(msg)
    for v in varying:
        if not v.values:
            msg = f"Varying parameter '{v.name}' must have at least one value"
            raise BatchParsError(msg)
    return _odometer([v.name for v in varying], [v.values for v in varying])


def _odometer(
    names: list[str],
    values: list[list[float]],
) -> Iterator[Combination]:
    idx = [0] * len(names)
    while True:
        yield {name: values[i][idx[i]] for i, name in enumerate(names)}
        # Increment the last index, carrying into earlier ones
        pos = len(idx) - 1
        while pos >= 0:
            idx[pos] += 1
            if idx[pos] < len(values[pos]):
                break
            idx[pos] = 0
            pos -= 1
        if pos < 0:
            return


def expand_varying_params(varying: Sequence[VaryingPar]) -> list[Combination]:
    """Return the full Cartesian product of the varying parameters."""
    return list(iter_combinations(varying))


def count_combinations(varying: Sequence[VaryingPar]) -> int:
    """Number of combinations without materialising them."""
    total = 1
    for v in varying:
        total *= len(v.values)
    return total


def _parameter_value_as_number(pars: Parameters, name: str) -> float:
    value: ParameterValue | None = pars.get(name)
    if value is None:
        msg = f"Expected a value for '{name}'"
        raise BatchParsError(msg)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Expected a number for '{name}'"
        raise BatchParsError(msg)
    return float(value)


def _fmt(value: float) -> str:
    # Render 1.0 as "1", matching how users write parameters
    return str(int(value)) if value.is_integer() else str(value)


@dataclass
class SweepConfig:
    """A batch described in a YAML sweep file.

    Example::

        name: growth
        model: mymodels:logistic
        t_start: 0
        t_end: 10
        base:
          r: 0.5
          K: 100
        varying:
          - name: r
            count: 5
            displace: 20
          - name: K
            values: [50, 100, 200]
        control:
          max_steps: 5000
    """

    model: str
    base: Parameters
    varying: list[VaryingParamSpec]
    t_start: float = 0.0
    t_end: float = 1.0
    name: str | None = None
    control: dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Path) -> SweepConfig:
        """Load sweep configuration from YAML file."""
        with path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        for key in ("model", "base", "varying"):
            if key not in data:
                msg = f"Sweep config must have '{key}' field"
                raise ValueError(msg)
        if not isinstance(data["varying"], list):
            msg = "Sweep config 'varying' must be a list"
            raise ValueError(msg)

        t_start = float(cast("float", data.get("t_start", 0.0)))
        t_end = float(cast("float", data.get("t_end", 1.0)))
        if t_end <= t_start:
            msg = f"Expected t_end ({t_end}) to be greater than t_start ({t_start})"
            raise ValueError(msg)

        return cls(
            model=cast("str", data["model"]),
            base=cast("Parameters", data["base"] or {}),
            varying=cast("list[VaryingParamSpec]", data["varying"]),
            t_start=t_start,
            t_end=t_end,
            name=cast("Optional[str]", data.get("name")),
            control=cast("dict[str, object]", data.get("control") or {}),
        )

    def batch_pars(self) -> BatchPars:
        """Build batch parameters, generating ranges where requested."""
        return batch_pars(self.base, [self._varying_par(s) for s in self.varying])

    def _varying_par(self, spec: VaryingParamSpec) -> VaryingPar:
        if "name" not in spec:
            msg = "Each varying parameter must have a 'name'"
            raise ValueError(msg)
        name = spec["name"]
        logarithmic = bool(spec.get("logarithmic", False))
        if "values" in spec:
            return VaryingPar(name=name, values=spec["values"])
        if "count" not in spec:
            msg = f"Varying parameter '{name}' must have 'values' or 'count'"
            raise ValueError(msg)
        count = int(spec["count"])
        if "displace" in spec:
            return batch_pars_displace(
                self.base, name, count, logarithmic, float(spec["displace"])
            )
        if "min" in spec and "max" in spec:
            return batch_pars_range(
                self.base,
                name,
                count,
                logarithmic,
                float(spec["min"]),
                float(spec["max"]),
            )
        msg = f"Varying parameter '{name}' needs 'displace' or both 'min' and 'max'"
        raise ValueError(msg)


def load_model(reference: str) -> object:
    """Import a model given as ``"package.module:attribute"``."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        msg = f"Model reference must look like 'module:attribute', got '{reference}'"
        raise ValueError(msg)
    module = importlib.import_module(module_name)
    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        msg = f"Module '{module_name}' has no attribute '{attr}'"
        raise ValueError(msg) from e
    # Classes and factory functions are called to get the model itself
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "run")):
        return obj()
    return obj
