# ---------------------------------------------------------------------------
# bsts_logit.forecast - Posterior predictive forecasts and holdout errors
# ---------------------------------------------------------------------------
"""Evaluate a fitted model at each stored posterior draw.

Each function restores draw ``i`` into the registered parameter handles
(coefficients, state standard deviations, final state), then asks the
manager for one simulated path or one set of holdout errors.  The result
is a ``(ndraws - burn, horizon)`` matrix.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy as np

from .manager import StateSpaceLogitModelManager
from .reporting import ParameterRegistry

logger = logging.getLogger(__name__)


def _kept_draws(registry: ParameterRegistry, burn: int) -> range:
    ndraws = registry.ndraws
    if ndraws == 0:
        raise ValueError("Registry holds no posterior draws")
    if not 0 <= burn < ndraws:
        raise ValueError(f"burn must be in [0, {ndraws}), got {burn}")
    return range(burn, ndraws)


def predict(
    manager: StateSpaceLogitModelManager,
    registry: ParameterRegistry,
    data: Mapping[str, Any],
    rng: np.random.Generator,
    burn: int = 0,
) -> np.ndarray:
    """Posterior predictive draws of future success counts.

    Parameters
    ----------
    manager : StateSpaceLogitModelManager
        Manager holding the fitted model.
    registry : ParameterRegistry
        Registry the model's parameters were recorded into.
    data : mapping
        ``trials`` and optional ``predictors`` for the forecast horizon.
    rng : np.random.Generator
        Source of randomness for every simulated path.
    burn : int
        Number of leading draws to discard.

    Returns
    -------
    np.ndarray
        Shape ``(ndraws - burn, horizon)``.
    """
    horizon = manager.unpack_forecast_data(data)
    model = manager.model
    draws = _kept_draws(registry, burn)
    ans = np.zeros((len(draws), horizon))
    for row, i in enumerate(draws):
        registry.restore(i)
        ans[row] = manager.simulate_forecast(rng, model.final_state)
    logger.debug(f"Simulated {len(draws)} forecast paths over {horizon} periods")
    return ans


def holdout_errors(
    manager: StateSpaceLogitModelManager,
    registry: ParameterRegistry,
    data: Mapping[str, Any],
    rng: np.random.Generator,
    burn: int = 0,
) -> np.ndarray:
    """One-step-ahead holdout prediction errors at each posterior draw.

    ``data`` holds ``response``, ``trials`` and optional ``predictors`` for
    the holdout window.  Returns shape ``(ndraws - burn, n_holdout)``.
    """
    n = manager.unpack_holdout_data(data)
    model = manager.model
    draws = _kept_draws(registry, burn)
    ans = np.zeros((len(draws), n))
    for row, i in enumerate(draws):
        registry.restore(i)
        ans[row] = manager.holdout_data_one_step_holdout_prediction_errors(
            rng, model.final_state
        )
    return ans


def cumulative_absolute_errors(errors: np.ndarray) -> np.ndarray:
    """Running sum of the absolute posterior-mean prediction error."""
    errors = np.atleast_2d(np.asarray(errors, dtype=float))
    return np.cumsum(np.abs(errors.mean(axis=0)))
