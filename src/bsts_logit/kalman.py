# ---------------------------------------------------------------------------
# bsts_logit.kalman - Gaussian state-space filtering and simulation smoothing
# ---------------------------------------------------------------------------
"""Kalman filter, state smoother and Durbin-Koopman simulation smoother for
a scalar observation with time-varying variance::

    y_t     = Z' alpha_t + eps_t,          eps_t ~ N(0, h_t)
    alpha_t+1 = T alpha_t + R eta_t,       eta_t ~ N(0, Q)
    alpha_1 ~ N(a0, P0)

Missing observations are NaN in ``y`` (or a non-finite / non-positive
variance) and only propagate the state.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class StateSpaceMatrices:
    """System matrices of a time-invariant state model."""

    observation_vector: np.ndarray  # Z, shape (m,)
    transition: np.ndarray  # T, shape (m, m)
    expander: np.ndarray  # R, shape (m, r)
    innovation_variance: np.ndarray  # Q, shape (r, r)
    initial_mean: np.ndarray  # a0, shape (m,)
    initial_variance: np.ndarray  # P0, shape (m, m)

    @property
    def state_dimension(self) -> int:
        return self.transition.shape[0]

    @property
    def state_variance(self) -> np.ndarray:
        """``R Q R'``, the variance of the state innovation."""
        return self.expander @ self.innovation_variance @ self.expander.T


@dataclass
class FilterResult:
    predicted_state: np.ndarray  # a_t, shape (n, m)
    predicted_variance: np.ndarray  # P_t, shape (n, m, m)
    prediction_error: np.ndarray  # v_t
    prediction_variance: np.ndarray  # F_t (inf where missing)
    gain: np.ndarray  # K_t, shape (n, m)
    loglik: float


def _is_observed(y: np.ndarray, h: np.ndarray) -> np.ndarray:
    return np.isfinite(y) & np.isfinite(h) & (h > 0)


def kalman_filter(y: np.ndarray, h: np.ndarray, ssm: StateSpaceMatrices) -> FilterResult:
    """Run the filter; ``a_t`` and ``P_t`` are one-step-ahead predictions."""
    y = np.asarray(y, dtype=float)
    h = np.asarray(h, dtype=float)
    n = len(y)
    m = ssm.state_dimension
    Z, T, RQR = ssm.observation_vector, ssm.transition, ssm.state_variance
    observed = _is_observed(y, h)

    a = np.zeros((n, m))
    P = np.zeros((n, m, m))
    v = np.zeros(n)
    F = np.full(n, np.inf)
    K = np.zeros((n, m))
    loglik = 0.0

    a_t = ssm.initial_mean.astype(float).copy()
    P_t = ssm.initial_variance.astype(float).copy()
    for t in range(n):
        a[t] = a_t
        P[t] = P_t
        if observed[t]:
            v[t] = y[t] - Z @ a_t
            F[t] = Z @ P_t @ Z + h[t]
            K[t] = T @ P_t @ Z / F[t]
            loglik += -0.5 * (np.log(2.0 * np.pi * F[t]) + v[t] ** 2 / F[t])
            L_t = T - np.outer(K[t], Z)
            a_t = T @ a_t + K[t] * v[t]
            P_t = T @ P_t @ L_t.T + RQR
        else:
            a_t = T @ a_t
            P_t = T @ P_t @ T.T + RQR
        P_t = 0.5 * (P_t + P_t.T)

    return FilterResult(
        predicted_state=a,
        predicted_variance=P,
        prediction_error=v,
        prediction_variance=F,
        gain=K,
        loglik=float(loglik),
    )


def smoothed_state_mean(y: np.ndarray, h: np.ndarray, ssm: StateSpaceMatrices) -> np.ndarray:
    """``E[alpha_t | y_1..n]`` by the backward (de Jong) recursion."""
    fr = kalman_filter(y, h, ssm)
    n, m = fr.predicted_state.shape
    Z, T = ssm.observation_vector, ssm.transition

    alpha_hat = np.zeros((n, m))
    r = np.zeros(m)
    for t in range(n - 1, -1, -1):
        if np.isfinite(fr.prediction_variance[t]):
            L_t = T - np.outer(fr.gain[t], Z)
            r = Z * fr.prediction_error[t] / fr.prediction_variance[t] + L_t.T @ r
        else:
            r = T.T @ r
        alpha_hat[t] = fr.predicted_state[t] + fr.predicted_variance[t] @ r
    return alpha_hat


def simulate_state(
    rng: np.random.Generator, n: int, ssm: StateSpaceMatrices, initial_mean: np.ndarray
) -> np.ndarray:
    """Draw a state path of length *n* starting from ``N(initial_mean, P0)``."""
    m = ssm.state_dimension
    r = ssm.innovation_variance.shape[0]
    alpha = np.zeros((n, m))
    if n == 0:
        return alpha
    alpha[0] = rng.multivariate_normal(initial_mean, ssm.initial_variance)
    for t in range(1, n):
        eta = rng.multivariate_normal(np.zeros(r), ssm.innovation_variance)
        alpha[t] = ssm.transition @ alpha[t - 1] + ssm.expander @ eta
    return alpha


def simulation_smoother(
    rng: np.random.Generator, y: np.ndarray, h: np.ndarray, ssm: StateSpaceMatrices
) -> np.ndarray:
    """Draw ``alpha | y`` (Durbin and Koopman 2002, mean-corrected form).

    Simulate ``(alpha+, y+)`` with a zero initial mean, smooth the
    difference ``y - y+`` under the true initial mean, and add ``alpha+``
    back.

    Returns
    -------
    np.ndarray
        State draw, shape ``(n, m)``.
    """
    y = np.asarray(y, dtype=float)
    h = np.asarray(h, dtype=float)
    n = len(y)
    observed = _is_observed(y, h)

    alpha_plus = simulate_state(rng, n, ssm, np.zeros(ssm.state_dimension))
    y_plus = alpha_plus @ ssm.observation_vector
    noise_sd = np.sqrt(np.where(observed, h, 0.0))
    y_plus = y_plus + noise_sd * rng.standard_normal(n)

    y_star = np.where(observed, y - y_plus, np.nan)
    return smoothed_state_mean(y_star, h, ssm) + alpha_plus
