# ---------------------------------------------------------------------------
# bsts_logit.sampling - MCMC driver
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging

import arviz as az
import numpy as np

from .config import DEFAULT_MCMC_KWARGS
from .model import StateSpaceLogitModel
from .reporting import ParameterRegistry

logger = logging.getLogger(__name__)


def sample_model(
    model: StateSpaceLogitModel,
    registry: ParameterRegistry,
    niter: int | None = None,
    burn: int | None = None,
    seed: int | np.random.Generator | None = None,
    progress_every: int = 0,
) -> az.InferenceData:
    """Run the Gibbs sampler and return the post-burn-in draws.

    Parameters
    ----------
    model : StateSpaceLogitModel
        Model built by the manager, with both samplers attached.
    registry : ParameterRegistry
        Parameters recorded after every iteration.  Draws are kept in the
        registry (burn-in included) so they can later be restored.
    niter, burn, seed :
        Override the values in ``DEFAULT_MCMC_KWARGS``.  Use
        ``LIGHT_MCMC_KWARGS`` for holdout loops.
    progress_every : int
        Print a progress line every this many iterations (0 = never).
    """
    niter = DEFAULT_MCMC_KWARGS["niter"] if niter is None else int(niter)
    burn = DEFAULT_MCMC_KWARGS["burn"] if burn is None else int(burn)
    if seed is None:
        seed = DEFAULT_MCMC_KWARGS["seed"]
    if not 0 <= burn < niter:
        raise ValueError(f"burn must be in [0, niter), got burn={burn}, niter={niter}")
    rng = np.random.default_rng(seed)

    logger.info(f"Sampling {niter} iterations ({burn} burn-in), {model!r}")
    for i in range(niter):
        model.sample_posterior(rng)
        registry.record()
        if progress_every and (i + 1) % progress_every == 0:
            print(f"  iteration {i + 1}/{niter}")

    print(f"\nSampling complete ({niter} iterations, {niter - burn} kept)")
    return registry.to_inference_data(burn=burn)
