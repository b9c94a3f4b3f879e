# ---------------------------------------------------------------------------
# bsts_logit - Bayesian structural time series for binomial counts
# ---------------------------------------------------------------------------
"""Binomial logit state-space models with spike-and-slab regression, fitted
by data-augmentation Gibbs sampling."""

from .config import (
    DEFAULT_CLT_THRESHOLD,
    DEFAULT_MCMC_KWARGS,
    LIGHT_MCMC_KWARGS,
    OUTPUT_DIR,
    ModelOptions,
)
from .data import data_from_frame
from .errors import ConfigurationError, SizeMismatchError
from .forecast import cumulative_absolute_errors, holdout_errors, predict
from .imputer import BinomialLogitCltDataImputer
from .manager import ConstructionMode, StateSpaceLogitModelManager
from .model import BinomialLogitModel, StateSpaceLogitModel
from .priors import MvnPrior, SdPrior, SpikeSlabPrior, VariableSelectionPrior
from .reporting import ParameterRegistry
from .sampling import sample_model
from .state import LocalLevel, LocalLinearTrend

__all__ = [
    "DEFAULT_CLT_THRESHOLD",
    "DEFAULT_MCMC_KWARGS",
    "LIGHT_MCMC_KWARGS",
    "OUTPUT_DIR",
    "ModelOptions",
    "data_from_frame",
    "ConfigurationError",
    "SizeMismatchError",
    "cumulative_absolute_errors",
    "holdout_errors",
    "predict",
    "BinomialLogitCltDataImputer",
    "ConstructionMode",
    "StateSpaceLogitModelManager",
    "BinomialLogitModel",
    "StateSpaceLogitModel",
    "MvnPrior",
    "SdPrior",
    "SpikeSlabPrior",
    "VariableSelectionPrior",
    "ParameterRegistry",
    "sample_model",
    "LocalLevel",
    "LocalLinearTrend",
]
