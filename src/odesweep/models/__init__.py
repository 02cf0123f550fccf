# Copyright (c) Syntropy Systems
"""Pydantic schemas shared across odesweep."""

from .base import (
    Combination,
    FrozenModel,
    OdesweepBaseModel,
    Parameters,
    ParameterTensor,
    ParameterValue,
)
from .batch import BatchPars, RunStatus, VaryingPar
from .series import (
    EXTREME_KINDS,
    ExtremeKind,
    Extremes,
    ExtremeValues,
    SeriesSet,
    SeriesSetValues,
)

__all__ = [
    "EXTREME_KINDS",
    "BatchPars",
    "Combination",
    "ExtremeKind",
    "ExtremeValues",
    "Extremes",
    "FrozenModel",
    "OdesweepBaseModel",
    "ParameterTensor",
    "ParameterValue",
    "Parameters",
    "RunStatus",
    "SeriesSet",
    "SeriesSetValues",
    "VaryingPar",
]
