# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for odesweep."""

from __future__ import annotations

from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict
from typing_extensions import TypeAlias


class ParameterTensor(BaseModel):
    """A multidimensional parameter stored flat, with its dimensions."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    data: list[float]
    dim: list[int]


ParameterValue: TypeAlias = Union[float, list[float], ParameterTensor]
Parameters: TypeAlias = dict[str, ParameterValue]
Combination: TypeAlias = dict[str, float]


class OdesweepBaseModel(BaseModel):
    """Base model with shared config for odesweep schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Base model for records that never change once created."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )
