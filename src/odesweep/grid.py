# Copyright (c) Syntropy Systems
"""Evenly spaced sequences for parameter ranges and time grids."""
from __future__ import annotations

import math

import numpy as np


def grid(a: float, b: float, n: int) -> list[float]:
    """Return ``n`` evenly spaced values from ``a`` to ``b`` inclusive.

    The last value is always exactly ``b``; with ``n == 1`` that is the
    only value.
    """
    if n < 1:
        msg = f"Expected at least one point in grid, but given {n}"
        raise ValueError(msg)
    if n == 1:
        return [float(b)]
    dx = (b - a) / (n - 1)
    x = a + np.arange(n, dtype=float) * dx
    x[-1] = b
    return x.tolist()


def grid_log(a: float, b: float, n: int) -> list[float]:
    """Return ``n`` values from ``a`` to ``b`` evenly spaced on a log scale."""
    if a <= 0 or b <= 0:
        msg = "Logarithmic grid requires strictly positive bounds"
        raise ValueError(msg)
    x = np.exp(grid(math.log(a), math.log(b), n))
    if n > 1:
        x[0] = a
    x[-1] = b
    return x.tolist()


def seq(a: int, b: int) -> list[int]:
    """Integers from ``a`` to ``b``, both included."""
    return list(range(a, b + 1))
