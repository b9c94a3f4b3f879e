"""Tests for bsts_logit.samplers - spike-and-slab and state-space Gibbs samplers."""

import numpy as np
import pytest

from bsts_logit.model import BinomialLogitModel, StateSpaceLogitModel
from bsts_logit.priors import MvnPrior, VariableSelectionPrior
from bsts_logit.samplers import (
    BinomialLogitSpikeSlabSampler,
    StateSpaceLogitPosteriorSampler,
)
from bsts_logit.state import LocalLevel


def _make_regression(n: int = 200, seed: int = 0) -> tuple:
    """Binomial logit data with beta = (-0.5, 1.5, 0)."""
    rng = np.random.default_rng(seed)
    x = np.column_stack([np.ones(n), rng.normal(size=n), rng.normal(size=n)])
    trials = np.full(n, 30.0)
    p = 1.0 / (1.0 + np.exp(-(x @ np.array([-0.5, 1.5, 0.0]))))
    successes = rng.binomial(30, p).astype(float)
    return x, successes, trials


def _wired_model(x, successes, trials, probs) -> StateSpaceLogitModel:
    model = StateSpaceLogitModel.from_data(successes, trials, x, np.ones(len(trials), dtype=bool))
    model.add_state(LocalLevel())
    sampler = BinomialLogitSpikeSlabSampler(
        model.observation_model,
        MvnPrior(np.zeros(x.shape[1]), 0.1 * np.eye(x.shape[1])),
        VariableSelectionPrior(probs),
    )
    model.observation_model.set_method(sampler)
    model.set_method(StateSpaceLogitPosteriorSampler(model, sampler))
    return model


class TestSpikeSlabSampler:

    def test_dimension_mismatch(self):
        model = BinomialLogitModel(3)
        with pytest.raises(ValueError, match='do not match'):
            BinomialLogitSpikeSlabSampler(
                model, MvnPrior.identity(2), VariableSelectionPrior([0.5] * 3)
            )

    def test_recovers_coefficients(self):
        x, y, n = _make_regression()
        model = StateSpaceLogitModel.from_data(y, n, x, np.ones(len(y), dtype=bool))
        obs_model = model.observation_model
        sampler = BinomialLogitSpikeSlabSampler(
            obs_model,
            MvnPrior(np.zeros(3), 0.01 * np.eye(3)),
            VariableSelectionPrior([1.0, 0.5, 0.5]),
        )
        obs_model.set_method(sampler)
        rng = np.random.default_rng(1)
        offsets = np.zeros(len(y))
        draws = []
        for i in range(300):
            sampler.impute_latent_data(rng, model.data, offsets)
            sampler.refresh_sufficient_statistics(model.data, offsets)
            obs_model.sample_posterior(rng)
            if i >= 100:
                draws.append(obs_model.coef.value)
        draws = np.array(draws)
        np.testing.assert_allclose(draws[:, :2].mean(axis=0), [-0.5, 1.5], atol=0.2)
        assert (draws[:, 1] != 0).mean() > 0.95
        assert (draws[:, 2] != 0).mean() < 0.5

    def test_forced_in_and_out(self):
        """Probability 1 never drops, probability 0 never enters."""
        x, y, n = _make_regression(n=60)
        model = StateSpaceLogitModel.from_data(y, n, x, np.ones(len(y), dtype=bool))
        obs_model = model.observation_model
        obs_model.coef.drop(2)
        sampler = BinomialLogitSpikeSlabSampler(
            obs_model, MvnPrior.identity(3), VariableSelectionPrior([1.0, 0.5, 0.0])
        )
        rng = np.random.default_rng(2)
        offsets = np.zeros(len(y))
        for _ in range(50):
            sampler.impute_latent_data(rng, model.data, offsets)
            sampler.refresh_sufficient_statistics(model.data, offsets)
            sampler.draw(rng)
            assert obs_model.coef.inclusion[0]
            assert not obs_model.coef.inclusion[2]
            assert obs_model.coef.beta[2] == 0.0

    def test_max_flips(self):
        model = BinomialLogitModel(6)
        sampler = BinomialLogitSpikeSlabSampler(
            model, MvnPrior.identity(6), VariableSelectionPrior(np.full(6, 0.5))
        )
        sampler.limit_model_selection(1)
        rng = np.random.default_rng(3)
        a = rng.normal(size=(6, 6))
        sampler.set_sufficient_statistics(a @ a.T + 6 * np.eye(6), rng.normal(size=6) * 5)
        for _ in range(30):
            before = model.coef.inclusion.copy()
            sampler.draw_inclusion_indicators(rng)
            assert (before != model.coef.inclusion).sum() <= 1

    def test_degenerate_is_frozen(self):
        model = BinomialLogitModel(2)
        model.coef.value = [0.3, -0.2]
        sampler = BinomialLogitSpikeSlabSampler.degenerate(model, clt_threshold=9)
        assert sampler.frozen
        assert sampler.clt_threshold == 9
        np.testing.assert_array_equal(sampler.spike.prior_inclusion_probabilities, [0.0, 0.0])
        sampler.draw(np.random.default_rng(4))
        np.testing.assert_array_equal(model.coef.beta, [0.3, -0.2])

    def test_missing_records_carry_no_information(self):
        x, y, n = _make_regression(n=5)
        observed = np.array([True, False, True, True, False])
        model = StateSpaceLogitModel.from_data(y, n, x, observed)
        sampler = BinomialLogitSpikeSlabSampler.degenerate(model.observation_model)
        sampler.impute_latent_data(np.random.default_rng(5), model.data, np.zeros(5))
        info = np.array([d.latent_information for d in model.data])
        assert np.all(info[~observed] == 0.0)
        assert np.all(info[observed] > 0.0)


class TestStateSpacePosteriorSampler:

    def test_shared_sampler(self):
        x, y, n = _make_regression(n=20)
        model = _wired_model(x, y, n, [1.0, 0.5, 0.5])
        assert model.method.observation_model_sampler is model.observation_model.method

    def test_iteration_updates_everything(self):
        x, y, n = _make_regression(n=40)
        model = _wired_model(x, y, n, [1.0, 0.5, 0.5])
        rng = np.random.default_rng(6)
        sigma = model.state_specification.parameters()['sigma_level']
        start = sigma.value
        for _ in range(5):
            model.sample_posterior(rng)
        assert model.state.shape == (40, 1)
        assert model.final_state.shape == (1,)
        assert sigma.value != start
        assert model.observation_model.coef.beta[0] != 0.0

    def test_all_missing_warns(self, caplog):
        x, y, n = _make_regression(n=10)
        model = StateSpaceLogitModel.from_data(y, n, x, np.zeros(10, dtype=bool))
        model.add_state(LocalLevel())
        sampler = BinomialLogitSpikeSlabSampler.degenerate(model.observation_model)
        model.observation_model.set_method(sampler)
        model.set_method(StateSpaceLogitPosteriorSampler(model, sampler))
        with caplog.at_level('WARNING', logger='bsts_logit.samplers'):
            model.sample_posterior(np.random.default_rng(7))
        assert 'No observed data' in caplog.text
        assert model.state.shape == (10, 1)
