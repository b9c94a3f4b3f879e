"""Tests for bsts_logit.kalman - filtering and simulation smoothing."""

import numpy as np
import pytest

from bsts_logit.kalman import (
    StateSpaceMatrices,
    kalman_filter,
    simulate_state,
    simulation_smoother,
    smoothed_state_mean,
)


def _local_level(sigma: float = 0.3, a0: float = 0.0, p0: float = 4.0) -> StateSpaceMatrices:
    return StateSpaceMatrices(
        observation_vector=np.ones(1),
        transition=np.eye(1),
        expander=np.eye(1),
        innovation_variance=np.array([[sigma**2]]),
        initial_mean=np.array([a0]),
        initial_variance=np.array([[p0]]),
    )


class TestKalmanFilter:

    def test_single_observation_update(self):
        ssm = _local_level(a0=1.0, p0=4.0)
        alpha = smoothed_state_mean(np.array([3.0]), np.array([1.0]), ssm)
        assert alpha[0, 0] == pytest.approx(1.0 + 4.0 / 5.0 * 2.0)

    def test_missing_propagates_only(self):
        ssm = _local_level(sigma=0.5, a0=0.7, p0=1.0)
        y = np.array([np.nan, 2.0, np.nan])
        h = np.array([1.0, np.inf, 0.0])
        fr = kalman_filter(y, h, ssm)
        assert np.all(np.isinf(fr.prediction_variance))
        assert fr.loglik == 0.0
        np.testing.assert_allclose(fr.predicted_state[:, 0], 0.7)
        np.testing.assert_allclose(fr.predicted_variance[:, 0, 0], [1.0, 1.25, 1.5])
        np.testing.assert_allclose(smoothed_state_mean(y, h, ssm)[:, 0], 0.7)

    def test_precise_observations_pin_state(self):
        ssm = _local_level()
        y = np.array([0.2, -0.4, 1.1, 0.5])
        alpha = smoothed_state_mean(y, np.full(4, 1e-8), ssm)
        np.testing.assert_allclose(alpha[:, 0], y, atol=1e-5)


class TestSimulationSmoother:

    def test_shape(self):
        rng = np.random.default_rng(0)
        alpha = simulation_smoother(rng, np.zeros(7), np.ones(7), _local_level())
        assert alpha.shape == (7, 1)

    def test_mean_matches_smoother(self):
        rng = np.random.default_rng(1)
        ssm = _local_level(sigma=0.5, a0=0.3, p0=2.0)
        y = np.array([1.0, np.nan, 0.5, 0.8])
        h = np.array([0.5, np.inf, 0.25, 1.0])
        draws = np.stack([simulation_smoother(rng, y, h, ssm) for _ in range(4000)])
        np.testing.assert_allclose(draws.mean(axis=0), smoothed_state_mean(y, h, ssm), atol=0.05)

    def test_all_missing_draws_from_prior(self):
        rng = np.random.default_rng(2)
        ssm = _local_level(sigma=0.1, a0=-1.0, p0=0.01)
        y = np.full(5, np.nan)
        draws = np.stack([simulation_smoother(rng, y, np.ones(5), ssm) for _ in range(2000)])
        assert draws[:, 0, 0].mean() == pytest.approx(-1.0, abs=0.02)
        assert draws[:, 4, 0].var() == pytest.approx(0.01 + 4 * 0.01, rel=0.15)

    def test_simulate_state_empty(self):
        rng = np.random.default_rng(3)
        assert simulate_state(rng, 0, _local_level(), np.zeros(1)).shape == (0, 1)
