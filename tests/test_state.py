"""Tests for bsts_logit.state - state components and specification."""

import numpy as np
import pytest

from bsts_logit.priors import SdPrior
from bsts_logit.state import (
    LocalLevel,
    LocalLinearTrend,
    StateSpecification,
    UnivariateParameter,
)


class TestStateSpecification:

    def test_block_diagonal(self):
        state_spec = StateSpecification([LocalLevel(), LocalLinearTrend()])
        ssm = state_spec.matrices()
        assert state_spec.state_dimension == 3
        np.testing.assert_array_equal(ssm.observation_vector, [1.0, 1.0, 0.0])
        np.testing.assert_array_equal(
            ssm.transition,
            [[1.0, 0.0, 0.0], [0.0, 1.0, 1.0], [0.0, 0.0, 1.0]],
        )
        assert ssm.innovation_variance.shape == (3, 3)
        assert ssm.initial_variance[0, 0] == pytest.approx(4.0)

    def test_empty(self):
        with pytest.raises(ValueError, match='no components'):
            StateSpecification().matrices()

    def test_split_and_parameters(self):
        state_spec = StateSpecification([LocalLevel(), LocalLinearTrend()])
        blocks = state_spec.split(np.zeros((5, 3)))
        assert [b.shape for b in blocks] == [(5, 1), (5, 2)]
        assert list(state_spec.parameters()) == ['sigma_level', 'trend_level_sd', 'trend_slope_sd']


class TestComponents:

    def test_parameter_handle(self):
        param = UnivariateParameter('sigma', 0.5)
        param.value = np.array(0.25)
        assert param.value == 0.25
        assert isinstance(param.value, float)

    def test_local_level_draw(self):
        rng = np.random.default_rng(0)
        level = np.cumsum(rng.normal(0.0, 0.3, size=3000))[:, None]
        component = LocalLevel(SdPrior(0.1, 1.0))
        component.sample_posterior(rng, level)
        assert component.sigma.value == pytest.approx(0.3, rel=0.05)
        assert component.innovation_variance()[0, 0] == pytest.approx(component.sigma.value**2)

    def test_local_linear_trend_draw(self):
        rng = np.random.default_rng(1)
        n = 3000
        slope = np.cumsum(rng.normal(0.0, 0.05, size=n))
        level = np.zeros(n)
        for t in range(1, n):
            level[t] = level[t - 1] + slope[t - 1] + rng.normal(0.0, 0.4)
        component = LocalLinearTrend()
        component.sample_posterior(rng, np.column_stack([level, slope]))
        assert component.level_sigma.value == pytest.approx(0.4, rel=0.05)
        assert component.slope_sigma.value == pytest.approx(0.05, rel=0.05)
