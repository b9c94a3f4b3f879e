# ---------------------------------------------------------------------------
# bsts_logit.imputer - Data augmentation for binomial logit observations
# ---------------------------------------------------------------------------
"""Latent-variable augmentation that makes the binomial logit likelihood
conditionally Gaussian.

Each of the ``n`` trials behind an observation carries a latent utility
``z ~ Logistic(eta, 1)`` and is a success iff ``z > 0``.  Writing the
logistic as a scale mixture of normals, ``z | v ~ N(eta, v)``, the
augmented data contribute ``sum(z / v)`` and ``sum(1 / v)`` to a Gaussian
likelihood for ``eta``.

Successes and failures are imputed as two groups.  The path is chosen once
per observation from its trial count: small observations draw every
utility exactly; observations with more trials than the CLT threshold
replace each group sum with a normal draw matching its mean and variance.
"""

from __future__ import annotations

import functools

import numpy as np
from scipy import stats as sp_stats
from scipy.optimize import nnls
from scipy.special import expit, log_expit, logit, spence

from .config import DEFAULT_CLT_THRESHOLD, N_MIXTURE_COMPONENTS


# Precision of a single standard logistic utility (variance pi^2 / 3)
LOGISTIC_PRECISION = 3.0 / np.pi**2


@functools.lru_cache(maxsize=None)
def logit_mixture(n_components: int = N_MIXTURE_COMPONENTS) -> tuple[np.ndarray, np.ndarray]:
    """Scale mixture of zero-mean normals approximating the standard logistic.

    Component standard deviations sit on a geometric grid covering the
    bulk of the logistic's Kolmogorov-Smirnov mixing distribution; the
    weights are the non-negative least-squares fit to the logistic
    density, renormalised to sum to one.

    Returns
    -------
    weights, variances : np.ndarray
        Mixture weights and component variances (zero-weight components
        dropped).
    """
    sds = np.geomspace(0.8, 6.0, n_components)
    x = np.linspace(0.0, 20.0, 801)
    target = sp_stats.logistic.pdf(x)
    basis = sp_stats.norm.pdf(x[:, None], scale=sds[None, :])
    weights, _ = nnls(basis, target)
    keep = weights > 0
    weights = weights[keep] / weights[keep].sum()
    return weights, sds[keep] ** 2


class BinomialLogitCltDataImputer:
    """Impute the Gaussian sufficient statistics of one binomial observation.

    Parameters
    ----------
    clt_threshold : int
        An observation with more trials than this is imputed with the CLT
        approximation; smaller or equal trial counts use the exact
        mixture-of-normals draw.
    """

    def __init__(self, clt_threshold: int = DEFAULT_CLT_THRESHOLD):
        if int(clt_threshold) < 1:
            raise ValueError(f"clt_threshold must be >= 1, got {clt_threshold}")
        self.clt_threshold = int(clt_threshold)
        self._weights, self._variances = logit_mixture()

    def __repr__(self) -> str:
        return f"BinomialLogitCltDataImputer(clt_threshold={self.clt_threshold})"

    def uses_clt(self, trials: float) -> bool:
        """True iff an observation with *trials* trials takes the CLT path."""
        return trials > self.clt_threshold

    def impute(
        self,
        rng: np.random.Generator,
        trials: float,
        successes: float,
        linear_predictor: float,
    ) -> tuple[float, float]:
        """Draw the augmentation for ``successes`` out of ``trials``.

        Returns
        -------
        tuple[float, float]
            ``(information_weighted_sum, information)``.
        """
        n_success = int(round(successes))
        n_failure = int(round(trials)) - n_success
        if n_failure < 0:
            raise ValueError(f"successes ({successes}) exceed trials ({trials})")

        draw = self._impute_clt if self.uses_clt(trials) else self._impute_mixture
        total_sum = 0.0
        total_information = 0.0
        for count, positive in ((n_success, True), (n_failure, False)):
            if count == 0:
                continue
            s, info = draw(rng, count, positive, linear_predictor)
            total_sum += s
            total_information += info
        return total_sum, total_information

    # ------------------------------------------------------------------
    # Exact path
    # ------------------------------------------------------------------

    def _impute_mixture(
        self, rng: np.random.Generator, count: int, positive: bool, eta: float
    ) -> tuple[float, float]:
        z = draw_truncated_logistic(rng, eta, positive, size=count)

        # Mixture component given each utility
        resid2 = (z - eta) ** 2
        log_p = (
            np.log(self._weights)[None, :]
            - 0.5 * np.log(self._variances)[None, :]
            - 0.5 * resid2[:, None] / self._variances[None, :]
        )
        log_p -= log_p.max(axis=1, keepdims=True)
        probs = np.exp(log_p)
        cum = np.cumsum(probs, axis=1)
        u = rng.uniform(size=count) * cum[:, -1]
        component = (cum < u[:, None]).sum(axis=1)
        v = self._variances[component]
        return float(np.sum(z / v)), float(np.sum(1.0 / v))

    # ------------------------------------------------------------------
    # CLT path
    # ------------------------------------------------------------------

    def _impute_clt(
        self, rng: np.random.Generator, count: int, positive: bool, eta: float
    ) -> tuple[float, float]:
        mean, variance = truncated_logistic_moments(eta, positive)
        total = rng.normal(count * mean, np.sqrt(count * variance))
        return float(total * LOGISTIC_PRECISION), float(count * LOGISTIC_PRECISION)


def draw_truncated_logistic(
    rng: np.random.Generator, eta: float, positive: bool, size: int | None = None
) -> np.ndarray:
    """Draw ``Logistic(eta, 1)`` truncated to ``(0, inf)`` or ``(-inf, 0]``."""
    # Invert the CDF from whichever end holds the truncated mass
    if positive:
        v = rng.uniform(0.0, expit(eta), size=size)  # 1 - F(z)
        v = np.clip(v, np.finfo(float).tiny, 1.0 - np.finfo(float).eps)
        return eta - logit(v)
    u = rng.uniform(0.0, expit(-eta), size=size)  # F(z)
    u = np.clip(u, np.finfo(float).tiny, 1.0 - np.finfo(float).eps)
    return eta + logit(u)


def truncated_logistic_moments(eta: float, positive: bool) -> tuple[float, float]:
    """Mean and variance of ``Logistic(eta, 1)`` truncated at zero.

    For the positive side ``E[z | z > 0] = softplus(eta) / expit(eta)`` and
    ``E[z^2 | z > 0] = 2 * I(eta) / expit(eta)`` where
    ``I(eta) = int_0^inf x expit(eta - x) dx = -Li2(-exp(eta))``.  The
    negative side follows by symmetry.
    """
    if not positive:
        mean, variance = truncated_logistic_moments(-eta, True)
        return -mean, variance

    mass = np.exp(log_expit(eta))
    mean = np.logaddexp(0.0, eta) / mass
    # Li2(-x) = spence(1 + x); reflect through Li2(-1/x) when x > 1
    if eta <= 0.0:
        x = np.exp(eta)
        # Series for small x; 1 + x rounds to 1 in spence's argument
        integral = x * (1.0 - 0.25 * x) if x < 1e-6 else -spence(1.0 + x)
    else:
        integral = np.pi**2 / 6.0 + 0.5 * eta**2 + spence(1.0 + np.exp(-eta))
    second = 2.0 * integral / mass
    return float(mean), float(max(second - mean * mean, 0.0))
