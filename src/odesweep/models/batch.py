# Copyright (c) Syntropy Systems
"""Pydantic models for batch parameters and run outcomes."""

from __future__ import annotations

from pydantic import Field

from .base import Combination, FrozenModel, OdesweepBaseModel, Parameters


class VaryingPar(OdesweepBaseModel):
    """A parameter and the values it takes across a batch."""

    name: str
    values: list[float]


class BatchPars(OdesweepBaseModel):
    """Base parameters plus the parameters to vary over them."""

    base: Parameters = Field(default_factory=dict)
    varying: list[VaryingPar] = Field(default_factory=list)


class RunStatus(FrozenModel):
    """Outcome of one attempted combination."""

    pars: Combination
    success: bool
    error: str | None = None
