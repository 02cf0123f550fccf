# Copyright (c) Syntropy Systems
"""Pydantic models for series sets and extremes."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import Field
from typing_extensions import TypeAlias

from .base import Combination, OdesweepBaseModel

ExtremeKind: TypeAlias = Literal["tMin", "tMax", "yMin", "yMax"]

EXTREME_KINDS: tuple[ExtremeKind, ...] = ("tMin", "tMax", "yMin", "yMax")

# Attribute holding each kind of extreme
EXTREME_FIELDS: dict[str, str] = {
    "tMin": "t_min",
    "tMax": "t_max",
    "yMin": "y_min",
    "yMax": "y_max",
}


class SeriesSetValues(OdesweepBaseModel):
    """A single named trace.

    Several traces may share a ``name`` (e.g. the summary statistics of a
    stochastic model); ``description`` tells them apart.
    """

    name: str
    description: str | None = None
    y: list[float] = Field(default_factory=list)


class SeriesSet(OdesweepBaseModel):
    """A bundle of traces sharing one domain.

    For a single run ``x`` holds times; for a batch it holds the
    parameter combination of each successful run.
    """

    x: list[Union[float, Combination]] = Field(default_factory=list)
    values: list[SeriesSetValues] = Field(default_factory=list)

    def names(self) -> list[str]:
        """Return the distinct trace names, in order of appearance."""
        return list(dict.fromkeys(v.name for v in self.values))

    def lookup(self, name: str, description: str | None = None) -> SeriesSetValues | None:
        """Find the trace with the given name (and description, if any)."""
        for v in self.values:
            if v.name == name and (description is None or v.description == description):
                return v
        return None


class ExtremeValues(OdesweepBaseModel):
    """Extremes of one trace of one run."""

    t_min: float = Field(alias="tMin")
    t_max: float = Field(alias="tMax")
    y_min: float = Field(alias="yMin")
    y_max: float = Field(alias="yMax")


class Extremes(OdesweepBaseModel):
    """Cross-run extremes, one series set per kind of extreme."""

    t_min: SeriesSet = Field(alias="tMin")
    t_max: SeriesSet = Field(alias="tMax")
    y_min: SeriesSet = Field(alias="yMin")
    y_max: SeriesSet = Field(alias="yMax")

    def get(self, kind: ExtremeKind) -> SeriesSet:
        """Return the series set for ``kind`` (``"tMin"``, ``"yMax"``, ...)."""
        if kind not in EXTREME_KINDS:
            msg = f"Unknown extreme '{kind}'; expected one of {', '.join(EXTREME_KINDS)}"
            raise ValueError(msg)
        return getattr(self, EXTREME_FIELDS[kind])
