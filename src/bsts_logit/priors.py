# ---------------------------------------------------------------------------
# bsts_logit.priors - Spike-and-slab and standard-deviation priors
# ---------------------------------------------------------------------------
"""Prior specifications consumed by the samplers.

A spike-and-slab prior is split into a *slab* (:class:`MvnPrior`, the
Gaussian prior on included coefficients) and a *spike*
(:class:`VariableSelectionPrior`, independent Bernoulli inclusion
probabilities).  State innovation standard deviations use
:class:`SdPrior`, an inverse-gamma prior on the variance expressed as a
prior guess and a prior sample size.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import stats as sp_stats
from scipy.special import logit


@dataclass
class MvnPrior:
    """Gaussian slab: ``beta ~ N(mean, precision^{-1})``."""

    mean: np.ndarray
    precision: np.ndarray

    def __post_init__(self) -> None:
        self.mean = np.atleast_1d(np.asarray(self.mean, dtype=float))
        self.precision = np.atleast_2d(np.asarray(self.precision, dtype=float))
        p = self.mean.shape[0]
        if self.precision.shape != (p, p):
            raise ValueError(
                f"Slab precision has shape {self.precision.shape}, expected {(p, p)}"
            )

    @property
    def dim(self) -> int:
        return self.mean.shape[0]

    @classmethod
    def identity(cls, dim: int) -> "MvnPrior":
        """Zero-mean slab with identity precision."""
        return cls(mean=np.zeros(dim), precision=np.eye(dim))


@dataclass
class VariableSelectionPrior:
    """Spike: independent inclusion probabilities, one per coefficient."""

    prior_inclusion_probabilities: np.ndarray

    def __post_init__(self) -> None:
        probs = np.atleast_1d(np.asarray(self.prior_inclusion_probabilities, dtype=float))
        if np.any(~np.isfinite(probs)) or np.any(probs < 0.0) or np.any(probs > 1.0):
            raise ValueError("Prior inclusion probabilities must lie in [0, 1]")
        self.prior_inclusion_probabilities = probs

    @property
    def dim(self) -> int:
        return self.prior_inclusion_probabilities.shape[0]

    def logp(self, inclusion: np.ndarray) -> float:
        """Log prior probability of an inclusion vector."""
        probs = self.prior_inclusion_probabilities
        inc = np.asarray(inclusion, dtype=bool)
        with np.errstate(divide="ignore"):
            terms = np.where(inc, np.log(probs), np.log1p(-probs))
        return float(terms.sum())


@dataclass
class SpikeSlabPrior:
    """Spike-and-slab prior on logistic regression coefficients.

    Parameters
    ----------
    slab : MvnPrior
        Prior on the included coefficients.
    spike : VariableSelectionPrior
        Prior inclusion probabilities.  A probability of exactly 0 removes
        the coefficient from the model; exactly 1 forces it in.
    max_flips : int
        Maximum number of inclusion indicators visited per sweep.
        Non-positive means every indicator is visited.
    """

    slab: MvnPrior
    spike: VariableSelectionPrior
    max_flips: int = -1

    def __post_init__(self) -> None:
        if self.slab.dim != self.spike.dim:
            raise ValueError(
                f"Slab dimension {self.slab.dim} does not match spike "
                f"dimension {self.spike.dim}"
            )
        self.max_flips = int(self.max_flips)

    @property
    def dim(self) -> int:
        return self.slab.dim

    @classmethod
    def logit_zellner(
        cls,
        predictors: np.ndarray,
        successes: np.ndarray,
        trials: np.ndarray,
        expected_model_size: float = 1.0,
        prior_success_probability: float | None = None,
        prior_information_weight: float = 0.01,
        diagonal_shrinkage: float = 0.5,
        max_flips: int = -1,
    ) -> "SpikeSlabPrior":
        """Default prior scaled by the Fisher information of the data.

        The slab precision is ``w * [(1 - d) X'VX + d diag(X'VX)]`` with
        ``V = diag(n_i p (1 - p))``, where ``p`` is the prior success
        probability (by default the pooled success rate), ``w`` the
        information weight and ``d`` the diagonal shrinkage.  If the first
        column is constant the slab mean puts ``logit(p)`` on it.
        """
        x = np.atleast_2d(np.asarray(predictors, dtype=float))
        y = np.asarray(successes, dtype=float)
        n = np.asarray(trials, dtype=float)
        observed = np.isfinite(y) & np.isfinite(n)
        x_obs, y_obs, n_obs = x[observed], y[observed], n[observed]

        if prior_success_probability is None:
            total = n_obs.sum()
            p_hat = y_obs.sum() / total if total > 0 else 0.5
        else:
            p_hat = prior_success_probability
        p_hat = float(np.clip(p_hat, 1e-4, 1.0 - 1e-4))

        weights = n_obs * p_hat * (1.0 - p_hat)
        xtvx = x_obs.T @ (x_obs * weights[:, None])
        shrunk = (1.0 - diagonal_shrinkage) * xtvx + diagonal_shrinkage * np.diag(
            np.diag(xtvx)
        )
        precision = prior_information_weight * shrunk
        # Guard against all-zero columns producing a singular slab
        precision = precision + 1e-8 * np.eye(x.shape[1])

        mean = np.zeros(x.shape[1])
        if x.shape[0] > 0 and np.allclose(x[:, 0], x[0, 0]) and x[0, 0] != 0:
            mean[0] = logit(p_hat) / x[0, 0]

        xdim = x.shape[1]
        prob = min(1.0, max(0.0, expected_model_size / xdim))
        return cls(
            slab=MvnPrior(mean=mean, precision=precision),
            spike=VariableSelectionPrior(np.full(xdim, prob)),
            max_flips=max_flips,
        )


@dataclass
class SdPrior:
    """Inverse-gamma prior on a variance, parameterised on the sd scale.

    ``1 / sigma^2 ~ Gamma(sample_size / 2, sample_size * prior_guess^2 / 2)``,
    optionally truncated to ``sigma <= upper_limit``.
    """

    prior_guess: float
    sample_size: float = 1.0
    upper_limit: float = np.inf

    def __post_init__(self) -> None:
        if self.prior_guess <= 0 or self.sample_size <= 0:
            raise ValueError("SdPrior needs a positive prior_guess and sample_size")

    @property
    def shape(self) -> float:
        return self.sample_size / 2.0

    @property
    def scale(self) -> float:
        return self.sample_size * self.prior_guess**2 / 2.0

    def draw_sigma(self, rng: np.random.Generator, n: int, sum_of_squares: float) -> float:
        """Draw sigma from its conditional posterior given *n* innovations."""
        shape = self.shape + n / 2.0
        scale = self.scale + sum_of_squares / 2.0
        posterior = sp_stats.invgamma(shape, scale=scale)
        upper = posterior.cdf(self.upper_limit**2) if np.isfinite(self.upper_limit) else 1.0
        u = rng.uniform(0.0, upper)
        return float(np.sqrt(posterior.ppf(u)))
