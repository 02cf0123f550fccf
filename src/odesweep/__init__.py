"""
odesweep - Sensitivity sweeps over differential equation models.

Vary parameters, run the model once per combination, line up the results.
"""

from odesweep.batch import Batch, batch_run
from odesweep.errors import (
    AlignmentError,
    AllRunsFailedError,
    BatchParsError,
    IntegrationError,
    OdesweepError,
)
from odesweep.fit import FitData, FitPars, fit, sum_of_squares
from odesweep.grid import grid, grid_log, seq
from odesweep.model import ContinuousModel, DiscreteModel, SolverControl, run_model
from odesweep.models import BatchPars, RunStatus, SeriesSet, SeriesSetValues, VaryingPar
from odesweep.sweep import (
    batch_pars,
    batch_pars_displace,
    batch_pars_range,
    expand_varying_params,
    update_pars,
)

__version__ = "0.1.0"
__all__ = [
    "AlignmentError",
    "AllRunsFailedError",
    "Batch",
    "BatchPars",
    "BatchParsError",
    "ContinuousModel",
    "DiscreteModel",
    "FitData",
    "FitPars",
    "IntegrationError",
    "OdesweepError",
    "RunStatus",
    "SeriesSet",
    "SeriesSetValues",
    "SolverControl",
    "VaryingPar",
    "__version__",
    "batch_pars",
    "batch_pars_displace",
    "batch_pars_range",
    "batch_run",
    "expand_varying_params",
    "fit",
    "grid",
    "grid_log",
    "run_model",
    "seq",
    "sum_of_squares",
    "update_pars",
]
