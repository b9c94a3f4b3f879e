"""Tests for bsts_logit.reporting - parameter registry."""

import numpy as np
import pytest

from bsts_logit.model import GlmCoefs
from bsts_logit.reporting import ParameterRegistry
from bsts_logit.state import UnivariateParameter


class TestParameterRegistry:

    def test_record_and_restore(self):
        coefs = GlmCoefs(2)
        sigma = UnivariateParameter('sigma_level', 0.1)
        registry = ParameterRegistry()
        registry.register('coefficients', coefs)
        registry.register('sigma_level', sigma)

        coefs.value = [1.0, 0.0]
        sigma.value = 0.5
        registry.record()
        coefs.value = [2.0, -1.0]
        sigma.value = 0.7
        registry.record()

        assert registry.ndraws == 2
        assert registry.draws('coefficients').shape == (2, 2)
        registry.restore(0)
        np.testing.assert_array_equal(coefs.beta, [1.0, 0.0])
        np.testing.assert_array_equal(coefs.inclusion, [True, False])
        assert sigma.value == 0.5

    def test_recorded_values_are_copies(self):
        coefs = GlmCoefs(1)
        registry = ParameterRegistry()
        registry.register('coefficients', coefs)
        registry.record()
        coefs.beta[0] = 3.0
        assert registry.draws('coefficients')[0, 0] == 0.0

    def test_register_replaces(self):
        registry = ParameterRegistry()
        registry.register('coefficients', GlmCoefs(2))
        registry.record()
        replacement = GlmCoefs(3)
        registry.register('coefficients', replacement)
        assert registry.names == ['coefficients']
        assert registry.handle('coefficients') is replacement
        assert registry.ndraws == 0

    def test_remove_and_clear(self):
        registry = ParameterRegistry()
        registry.register('a', UnivariateParameter('a', 1.0))
        registry.register('b', UnivariateParameter('b', 2.0))
        registry.remove('a')
        assert 'a' not in registry and 'b' in registry
        registry.clear()
        assert registry.names == []

    def test_to_inference_data(self):
        sigma = UnivariateParameter('sigma_level', 0.0)
        coefs = GlmCoefs(3)
        registry = ParameterRegistry()
        registry.register('sigma_level', sigma)
        registry.register('coefficients', coefs)
        for i in range(10):
            sigma.value = float(i)
            registry.record()

        idata = registry.to_inference_data(burn=4)
        assert idata.posterior['sigma_level'].shape == (1, 6)
        assert idata.posterior['coefficients'].shape == (1, 6, 3)
        assert float(idata.posterior['sigma_level'].mean()) == pytest.approx(6.5)
