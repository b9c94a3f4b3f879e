# ---------------------------------------------------------------------------
# bsts_logit.model - Binomial logit observation model and state-space model
# ---------------------------------------------------------------------------
"""Structural time-series model for binomial counts::

    y_t ~ Binomial(n_t, expit(Z' alpha_t + x_t' beta))

``StateSpaceLogitModel`` pairs a :class:`StateSpecification` (the latent
state) with a :class:`BinomialLogitModel` (the regression on predictors).
Posterior sampling is delegated to whatever sampler is attached with
:meth:`StateSpaceLogitModel.set_method`.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.special import expit

from .data import BinomialObservation, binomial_observations
from .errors import ConfigurationError, SizeMismatchError
from .imputer import BinomialLogitCltDataImputer
from .state import StateComponent, StateSpecification

logger = logging.getLogger(__name__)


# =========================================================================
# Regression coefficients
# =========================================================================


class GlmCoefs:
    """Coefficient vector with an inclusion indicator per element.

    Excluded coefficients are held at exactly zero.  The ``value`` property
    is the handle used for posterior reporting: reading copies the vector,
    assigning restores it and infers inclusion from the non-zero entries.
    """

    def __init__(self, xdim: int):
        self.beta = np.zeros(xdim)
        self.inclusion = np.ones(xdim, dtype=bool)

    def __repr__(self) -> str:
        return f"GlmCoefs(beta={np.round(self.beta, 4)}, included={self.nvars})"

    @property
    def xdim(self) -> int:
        return self.beta.shape[0]

    @property
    def nvars(self) -> int:
        return int(self.inclusion.sum())

    @property
    def value(self) -> np.ndarray:
        return self.beta.copy()

    @value.setter
    def value(self, beta) -> None:
        beta = np.asarray(beta, dtype=float).ravel()
        if beta.shape[0] != self.xdim:
            raise SizeMismatchError(
                f"Coefficient vector of length {beta.shape[0]}, expected {self.xdim}"
            )
        self.beta = beta.copy()
        self.inclusion = beta != 0.0

    def add(self, j: int) -> None:
        self.inclusion[j] = True

    def drop(self, j: int) -> None:
        self.inclusion[j] = False
        self.beta[j] = 0.0

    def drop_all(self) -> None:
        self.inclusion[:] = False
        self.beta[:] = 0.0

    def set_included_coefficients(self, values: np.ndarray) -> None:
        """Write *values* into the included positions; zero the rest."""
        self.beta = np.zeros(self.xdim)
        self.beta[self.inclusion] = values


class BinomialLogitModel:
    """Logistic regression part of the observation equation."""

    def __init__(self, xdim: int):
        if xdim < 1:
            raise ConfigurationError(f"Predictor dimension must be positive, got {xdim}")
        self.coef = GlmCoefs(xdim)
        self.method = None

    def __repr__(self) -> str:
        return f"BinomialLogitModel(xdim={self.xdim})"

    @property
    def xdim(self) -> int:
        return self.coef.xdim

    def coef_prm(self) -> GlmCoefs:
        return self.coef

    def set_method(self, sampler) -> None:
        self.method = sampler

    def predict(self, x: np.ndarray) -> np.ndarray:
        """Linear predictor contribution ``x' beta`` (row-wise for a matrix)."""
        return np.asarray(x, dtype=float) @ self.coef.beta

    def sample_posterior(self, rng: np.random.Generator) -> None:
        if self.method is None:
            raise ConfigurationError("Observation model has no posterior sampler")
        self.method.draw(rng)


class FinalState:
    """Reporting handle for the model's terminal state vector."""

    def __init__(self, model: "StateSpaceLogitModel"):
        self._model = model

    @property
    def value(self) -> np.ndarray:
        return self._model.final_state.copy()

    @value.setter
    def value(self, state) -> None:
        self._model.final_state = state


# =========================================================================
# State-space logit model
# =========================================================================


class StateSpaceLogitModel:
    """Binomial logit structural time-series model.

    ``StateSpaceLogitModel(xdim)`` builds a dimension-only model without
    data (used when restoring a fitted model from stored draws);
    :meth:`from_data` builds one from observed series.
    """

    def __init__(self, xdim: int):
        self._observation_model = BinomialLogitModel(xdim)
        self.state_specification = StateSpecification()
        self.data: list[BinomialObservation] = []
        self.method = None
        self.state: np.ndarray | None = None
        self._final_state: np.ndarray | None = None
        self._regression = True

    def __repr__(self) -> str:
        return (
            f"StateSpaceLogitModel(xdim={self.xdim}, n={self.time_dimension}, "
            f"state_dim={self.state_dimension}, regression={self._regression})"
        )

    @classmethod
    def from_data(
        cls,
        successes: np.ndarray,
        trials: np.ndarray,
        predictors: np.ndarray,
        response_is_observed,
    ) -> "StateSpaceLogitModel":
        """Build a model holding one record per row of the inputs."""
        predictors = np.atleast_2d(np.asarray(predictors, dtype=float))
        model = cls(predictors.shape[1])
        for record in binomial_observations(successes, trials, predictors, response_is_observed):
            model.add_data(record)
        logger.debug(
            f"Built logit model: {model.time_dimension} time points, "
            f"{int(model.observed.sum())} observed, xdim={model.xdim}"
        )
        return model

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def observation_model(self) -> BinomialLogitModel:
        return self._observation_model

    @property
    def xdim(self) -> int:
        return self._observation_model.xdim

    @property
    def regression(self) -> bool:
        return self._regression

    def set_regression_flag(self, regression: bool) -> None:
        self._regression = bool(regression)

    @property
    def time_dimension(self) -> int:
        return len(self.data)

    @property
    def state_dimension(self) -> int:
        return self.state_specification.state_dimension

    def add_state(self, component: StateComponent) -> None:
        self.state_specification.add(component)
        self.state = None
        self._final_state = None

    def add_data(self, record: BinomialObservation) -> None:
        if record.predictors.shape[0] != self.xdim:
            raise SizeMismatchError(
                f"Observation has {record.predictors.shape[0]} predictors, "
                f"model expects {self.xdim}"
            )
        self.data.append(record)
        self.state = None

    def clear_data(self) -> None:
        self.data = []
        self.state = None

    def set_method(self, sampler) -> None:
        self.method = sampler

    # ------------------------------------------------------------------
    # Data views
    # ------------------------------------------------------------------

    @property
    def predictor_matrix(self) -> np.ndarray:
        if not self.data:
            return np.zeros((0, self.xdim))
        return np.vstack([d.predictors for d in self.data])

    @property
    def successes(self) -> np.ndarray:
        return np.array([d.successes for d in self.data])

    @property
    def trials(self) -> np.ndarray:
        return np.array([d.trials for d in self.data])

    @property
    def observed(self) -> np.ndarray:
        return np.array([not d.missing for d in self.data], dtype=bool)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def set_state(self, state: np.ndarray) -> None:
        """Install a sampled state path of shape ``(n, state_dimension)``."""
        state = np.asarray(state, dtype=float)
        if state.shape != (self.time_dimension, self.state_dimension):
            raise SizeMismatchError(
                f"State path has shape {state.shape}, expected "
                f"{(self.time_dimension, self.state_dimension)}"
            )
        self.state = state
        self._final_state = state[-1].copy() if len(state) else None

    @property
    def final_state(self) -> np.ndarray:
        if self._final_state is None:
            raise ConfigurationError("Model has no sampled or restored final state")
        return self._final_state

    @final_state.setter
    def final_state(self, state) -> None:
        state = np.asarray(state, dtype=float).ravel()
        if state.shape[0] != self.state_dimension:
            raise SizeMismatchError(
                f"Final state of length {state.shape[0]}, expected {self.state_dimension}"
            )
        self._final_state = state.copy()

    def final_state_prm(self) -> FinalState:
        return FinalState(self)

    def state_contribution(self) -> np.ndarray:
        """``Z' alpha_t`` for every time point (zeros before any draw)."""
        if self.state is None:
            return np.zeros(self.time_dimension)
        return self.state @ self.state_specification.matrices().observation_vector

    def regression_contribution(self) -> np.ndarray:
        return self._observation_model.predict(self.predictor_matrix)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample_posterior(self, rng: np.random.Generator) -> None:
        """One MCMC iteration.  Both samplers must be attached."""
        if self.method is None or self._observation_model.method is None:
            raise ConfigurationError(
                "Model needs both an observation-model sampler and a "
                "state-space posterior sampler before it can be sampled"
            )
        if len(self.state_specification) == 0:
            raise ConfigurationError("Model has no state components")
        self.method.draw(rng)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def _check_horizon(self, predictors: np.ndarray, trials: np.ndarray, final_state) -> np.ndarray:
        if len(self.state_specification) == 0:
            raise ConfigurationError("Model has no state components")
        if predictors.shape[0] != trials.shape[0]:
            raise SizeMismatchError(
                f"{predictors.shape[0]} predictor rows for {trials.shape[0]} trial counts"
            )
        if predictors.shape[1] != self.xdim:
            raise SizeMismatchError(
                f"Predictors have {predictors.shape[1]} columns, model expects {self.xdim}"
            )
        final_state = np.asarray(final_state, dtype=float).ravel()
        if final_state.shape[0] != self.state_dimension:
            raise SizeMismatchError(
                f"Final state of length {final_state.shape[0]}, expected "
                f"{self.state_dimension}"
            )
        return final_state

    def simulate_forecast(
        self,
        rng: np.random.Generator,
        predictors: np.ndarray,
        trials: np.ndarray,
        final_state: np.ndarray,
    ) -> np.ndarray:
        """Simulate success counts over the horizon following *final_state*."""
        predictors = np.atleast_2d(np.asarray(predictors, dtype=float))
        trials = np.asarray(trials, dtype=float)
        alpha = self._check_horizon(predictors, trials, final_state)

        ssm = self.state_specification.matrices()
        r = ssm.innovation_variance.shape[0]
        regression = self._observation_model.predict(predictors)
        ans = np.zeros(len(trials))
        for t in range(len(trials)):
            eta = rng.multivariate_normal(np.zeros(r), ssm.innovation_variance)
            alpha = ssm.transition @ alpha + ssm.expander @ eta
            prob = expit(ssm.observation_vector @ alpha + regression[t])
            ans[t] = rng.binomial(int(round(trials[t])), prob)
        return ans

    def one_step_holdout_prediction_errors(
        self,
        rng: np.random.Generator,
        imputer: BinomialLogitCltDataImputer,
        response: np.ndarray,
        trials: np.ndarray,
        predictors: np.ndarray,
        final_state: np.ndarray,
    ) -> np.ndarray:
        """One-step-ahead errors ``y_t - n_t * p_t`` over a holdout.

        ``p_t`` is the predictive success probability: the logistic of the
        predicted linear predictor ``eta_t``, averaged over its one-step
        variance ``V_t`` with the approximation
        ``expit(eta_t / sqrt(1 + pi * V_t / 8))``.

        The state is predicted forward from *final_state*.  After scoring
        each point its augmented Gaussian pseudo-observation is filtered
        into the state, so each prediction conditions on the holdout data
        before it.
        """
        predictors = np.atleast_2d(np.asarray(predictors, dtype=float))
        trials = np.asarray(trials, dtype=float)
        response = np.asarray(response, dtype=float)
        alpha = self._check_horizon(predictors, trials, final_state)

        ssm = self.state_specification.matrices()
        Z, T, RQR = ssm.observation_vector, ssm.transition, ssm.state_variance
        regression = self._observation_model.predict(predictors)

        a = T @ alpha
        P = RQR.copy()
        errors = np.zeros(len(response))
        for t in range(len(response)):
            eta = Z @ a + regression[t]
            # Probit approximation to E[expit(eta)] under the predictive variance
            variance = Z @ P @ Z
            prob = expit(eta / np.sqrt(1.0 + np.pi * variance / 8.0))
            errors[t] = response[t] - trials[t] * prob
            if np.isfinite(response[t]):
                latent_sum, information = imputer.impute(rng, trials[t], response[t], eta)
                if information > 0:
                    y = latent_sum / information - regression[t]
                    F = Z @ P @ Z + 1.0 / information
                    K = P @ Z / F
                    a = a + K * (y - Z @ a)
                    P = P - np.outer(K, K) * F
            a = T @ a
            P = T @ P @ T.T + RQR
        return errors
