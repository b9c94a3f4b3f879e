"""Tests for bsts_logit.config and bsts_logit.errors."""

import pytest

from bsts_logit.config import (
    DEFAULT_CLT_THRESHOLD,
    DEFAULT_MCMC_KWARGS,
    LIGHT_MCMC_KWARGS,
    ModelOptions,
    validate_clt_threshold,
)
from bsts_logit.errors import ConfigurationError, SizeMismatchError


class TestModelOptions:
    """Options bag consumed by the manager."""

    def test_default_threshold(self):
        assert DEFAULT_CLT_THRESHOLD == 5
        assert ModelOptions().clt_threshold is None

    def test_from_mapping_keys(self):
        assert ModelOptions.from_mapping({'clt_threshold': 12}).clt_threshold == 12
        assert ModelOptions.from_mapping({'clt.threshold': 3}).clt_threshold == 3
        assert ModelOptions.from_mapping({'other': 1}).clt_threshold is None
        assert ModelOptions.from_mapping(None).clt_threshold is None

    def test_from_mapping_passthrough(self):
        opts = ModelOptions(clt_threshold=7)
        assert ModelOptions.from_mapping(opts) is opts

    @pytest.mark.parametrize('bad', [0, -3, 2.5, 'five', None])
    def test_invalid_threshold(self, bad):
        with pytest.raises(ConfigurationError):
            validate_clt_threshold(bad)

    def test_invalid_threshold_in_options(self):
        with pytest.raises(ConfigurationError, match='clt_threshold'):
            ModelOptions(clt_threshold=0)

    def test_float_integer_accepted(self):
        assert validate_clt_threshold(4.0) == 4


class TestPresets:
    """MCMC preset dictionaries."""

    def test_presets_consistent(self):
        for preset in (DEFAULT_MCMC_KWARGS, LIGHT_MCMC_KWARGS):
            assert set(preset) == {'niter', 'burn', 'seed'}
            assert 0 <= preset['burn'] < preset['niter']
        assert LIGHT_MCMC_KWARGS['niter'] < DEFAULT_MCMC_KWARGS['niter']


class TestErrors:
    """Error hierarchy."""

    def test_errors_are_value_errors(self):
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(SizeMismatchError, ValueError)
        assert not issubclass(SizeMismatchError, ConfigurationError)
