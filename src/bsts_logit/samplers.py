# ---------------------------------------------------------------------------
# bsts_logit.samplers - Data-augmentation Gibbs samplers
# ---------------------------------------------------------------------------
"""Posterior samplers for the binomial logit state-space model.

:class:`BinomialLogitSpikeSlabSampler` draws the regression coefficients
(with stochastic search variable selection) from the Gaussian complete-data
sufficient statistics produced by the data imputer.
:class:`StateSpaceLogitPosteriorSampler` runs one full Gibbs iteration:
impute the latent utilities, draw the state path with the simulation
smoother, draw the state parameters, then hand the same augmented data to
the coefficient sampler.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.linalg import cho_factor, cho_solve, solve_triangular

from .config import DEFAULT_CLT_THRESHOLD
from .data import BinomialObservation
from .imputer import BinomialLogitCltDataImputer
from .kalman import simulation_smoother
from .model import BinomialLogitModel, StateSpaceLogitModel
from .priors import MvnPrior, VariableSelectionPrior

logger = logging.getLogger(__name__)


class BinomialLogitSpikeSlabSampler:
    """Spike-and-slab Gibbs sampler for logistic regression coefficients.

    Parameters
    ----------
    model : BinomialLogitModel
        Observation model whose coefficients are drawn in place.
    slab : MvnPrior
        Gaussian prior on included coefficients.
    spike : VariableSelectionPrior
        Prior inclusion probabilities.
    clt_threshold : int
        Passed to the :class:`BinomialLogitCltDataImputer` used to augment
        the data.
    """

    def __init__(
        self,
        model: BinomialLogitModel,
        slab: MvnPrior,
        spike: VariableSelectionPrior,
        clt_threshold: int = DEFAULT_CLT_THRESHOLD,
    ):
        if slab.dim != model.xdim or spike.dim != model.xdim:
            raise ValueError(
                f"Prior dimensions (slab {slab.dim}, spike {spike.dim}) do not "
                f"match the model's {model.xdim} predictors"
            )
        self.model = model
        self.slab = slab
        self.spike = spike
        self.imputer = BinomialLogitCltDataImputer(clt_threshold)
        self.max_flips = -1
        self.frozen = False
        self._xtwx = np.zeros((model.xdim, model.xdim))
        self._xtwz = np.zeros(model.xdim)

    def __repr__(self) -> str:
        return (
            f"BinomialLogitSpikeSlabSampler(xdim={self.model.xdim}, "
            f"clt_threshold={self.clt_threshold}, max_flips={self.max_flips})"
        )

    @property
    def clt_threshold(self) -> int:
        return self.imputer.clt_threshold

    def limit_model_selection(self, max_flips: int) -> None:
        """Visit at most *max_flips* inclusion indicators per sweep."""
        self.max_flips = int(max_flips)

    @classmethod
    def degenerate(
        cls, model: BinomialLogitModel, clt_threshold: int = DEFAULT_CLT_THRESHOLD
    ) -> "BinomialLogitSpikeSlabSampler":
        """A sampler whose prior never includes anything.

        Every inclusion probability is zero and the sampler is frozen:
        :meth:`draw` leaves the coefficients exactly as they are.
        """
        sampler = cls(
            model,
            MvnPrior.identity(model.xdim),
            VariableSelectionPrior(np.zeros(model.xdim)),
            clt_threshold,
        )
        sampler.frozen = True
        return sampler

    # ------------------------------------------------------------------
    # Complete-data sufficient statistics
    # ------------------------------------------------------------------

    def impute_latent_data(
        self,
        rng: np.random.Generator,
        data: list[BinomialObservation],
        offsets: np.ndarray,
    ) -> None:
        """Augment every observed record given the current linear predictor.

        ``offsets`` is the non-regression part of the linear predictor (the
        state contribution).  Results are stored on the records.
        """
        beta = self.model.coef.beta
        for record, offset in zip(data, offsets):
            if record.missing:
                record.latent_sum = 0.0
                record.latent_information = 0.0
                continue
            eta = offset + record.predictors @ beta
            record.latent_sum, record.latent_information = self.imputer.impute(
                rng, record.trials, record.successes, eta
            )

    def refresh_sufficient_statistics(
        self, data: list[BinomialObservation], offsets: np.ndarray
    ) -> None:
        """Weighted ``X'WX`` and ``X'W(z - offset)`` from the stored augmentation."""
        xdim = self.model.xdim
        xtwx = np.zeros((xdim, xdim))
        xtwz = np.zeros(xdim)
        for record, offset in zip(data, offsets):
            w = record.latent_information
            if record.missing or w <= 0:
                continue
            x = record.predictors
            xtwx += w * np.outer(x, x)
            xtwz += x * (record.latent_sum - w * offset)
        self.set_sufficient_statistics(xtwx, xtwz)

    def set_sufficient_statistics(self, xtwx: np.ndarray, xtwz: np.ndarray) -> None:
        self._xtwx = np.asarray(xtwx, dtype=float)
        self._xtwz = np.asarray(xtwz, dtype=float)

    # ------------------------------------------------------------------
    # Draws
    # ------------------------------------------------------------------

    def draw(self, rng: np.random.Generator) -> None:
        """Sweep the inclusion indicators, then draw the included coefficients."""
        if self.frozen:
            return
        self.draw_inclusion_indicators(rng)
        self.draw_coefficients(rng)

    def log_model_prob(self, inclusion: np.ndarray) -> float:
        """Log posterior of an inclusion vector, up to a constant."""
        ans = self.spike.logp(inclusion)
        if not np.isfinite(ans) or not inclusion.any():
            return ans
        omega = self.slab.precision[np.ix_(inclusion, inclusion)]
        b = self.slab.mean[inclusion]
        precision = omega + self._xtwx[np.ix_(inclusion, inclusion)]
        rhs = omega @ b + self._xtwz[inclusion]
        try:
            chol_post = cho_factor(precision, lower=True)
            chol_prior = cho_factor(omega, lower=True)
        except np.linalg.LinAlgError:
            return -np.inf
        mean = cho_solve(chol_post, rhs)
        logdet_post = 2.0 * np.sum(np.log(np.diag(chol_post[0])))
        logdet_prior = 2.0 * np.sum(np.log(np.diag(chol_prior[0])))
        ans += 0.5 * (logdet_prior - logdet_post)
        ans += 0.5 * (rhs @ mean - b @ omega @ b)
        return float(ans)

    def draw_inclusion_indicators(self, rng: np.random.Generator) -> None:
        """One Gibbs sweep over the inclusion indicators in random order.

        Indicators with prior probability exactly 0 or 1 are never flipped.
        """
        coef = self.model.coef
        probs = self.spike.prior_inclusion_probabilities
        candidates = np.flatnonzero((probs > 0.0) & (probs < 1.0))
        if candidates.size == 0:
            return
        order = rng.permutation(candidates)
        if self.max_flips > 0:
            order = order[: self.max_flips]

        inclusion = coef.inclusion.copy()
        current = self.log_model_prob(inclusion)
        for j in order:
            inclusion[j] = not inclusion[j]
            candidate = self.log_model_prob(inclusion)
            if np.isfinite(candidate) and (
                not np.isfinite(current)
                or np.log(rng.uniform()) < candidate - np.logaddexp(current, candidate)
            ):
                current = candidate
            else:
                inclusion[j] = not inclusion[j]
        for j in np.flatnonzero(inclusion != coef.inclusion):
            if inclusion[j]:
                coef.add(j)
            else:
                coef.drop(j)

    def draw_coefficients(self, rng: np.random.Generator) -> None:
        """Draw included coefficients from their Gaussian full conditional."""
        coef = self.model.coef
        inc = coef.inclusion
        if not inc.any():
            coef.set_included_coefficients(np.zeros(0))
            return
        omega = self.slab.precision[np.ix_(inc, inc)]
        precision = omega + self._xtwx[np.ix_(inc, inc)]
        rhs = omega @ self.slab.mean[inc] + self._xtwz[inc]
        lower, _ = cho_factor(precision, lower=True)
        mean = cho_solve((lower, True), rhs)
        noise = solve_triangular(lower.T, rng.standard_normal(mean.shape[0]), lower=False)
        coef.set_included_coefficients(mean + noise)


class StateSpaceLogitPosteriorSampler:
    """Gibbs sampler for the full state-space logit model.

    The observation-model sampler is shared, not copied: the object passed
    in is the same one attached to ``model.observation_model``, so its
    imputer and model-selection settings apply to both updates.
    """

    def __init__(
        self,
        model: StateSpaceLogitModel,
        observation_model_sampler: BinomialLogitSpikeSlabSampler,
    ):
        self.model = model
        self.observation_model_sampler = observation_model_sampler

    def __repr__(self) -> str:
        return f"StateSpaceLogitPosteriorSampler({self.observation_model_sampler!r})"

    def draw(self, rng: np.random.Generator) -> None:
        model = self.model
        sampler = self.observation_model_sampler
        if model.time_dimension == 0:
            raise ValueError("Cannot sample a model with no data")

        # 1. Augment the data given the current state and coefficients
        sampler.impute_latent_data(rng, model.data, model.state_contribution())

        # 2. Draw the state path given the Gaussian pseudo-observations
        self.impute_state(rng)

        # 3. State parameters
        model.state_specification.sample_posterior(rng, model.state)

        # 4. Coefficients, reusing this iteration's augmentation
        sampler.refresh_sufficient_statistics(model.data, model.state_contribution())
        model.observation_model.sample_posterior(rng)

    def impute_state(self, rng: np.random.Generator) -> None:
        model = self.model
        information = np.array([d.latent_information for d in model.data])
        pseudo = np.array([d.pseudo_observation for d in model.data])
        y = pseudo - model.regression_contribution()
        with np.errstate(divide="ignore"):
            h = np.where(information > 0, 1.0 / information, np.inf)
        if not np.any(np.isfinite(y)):
            logger.warning("No observed data; state drawn from its prior")
        ssm = model.state_specification.matrices()
        model.set_state(simulation_smoother(rng, y, h, ssm))
