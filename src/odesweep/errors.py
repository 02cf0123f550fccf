# Copyright (c) Syntropy Systems
"""Exception types raised by odesweep."""
from __future__ import annotations


class OdesweepError(Exception):
    """Base class for odesweep errors."""


class BatchParsError(OdesweepError, ValueError):
    """Invalid batch parameters (bounds, counts, missing base values)."""


class AlignmentError(OdesweepError, ValueError):
    """Per-run traces whose descriptions cannot be reconciled."""


class AllRunsFailedError(OdesweepError, RuntimeError):
    """Every combination in a batch failed."""

    first_error: str | None

    def __init__(self, first_error: str | None) -> None:
        self.first_error = first_error
        super().__init__(f"All solutions failed; first error: {first_error}")


class IntegrationError(OdesweepError, RuntimeError):
    """The solver gave up on a single run."""
