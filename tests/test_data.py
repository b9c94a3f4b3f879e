"""Tests for bsts_logit.data - observation records and ingestion helpers."""

import numpy as np
import polars as pl
import pytest

from bsts_logit.data import (
    BinomialObservation,
    binomial_observations,
    data_from_frame,
    extract_predictors,
    is_observed,
    observed_flags,
    to_vector,
)
from bsts_logit.errors import SizeMismatchError


class TestBinomialObservation:

    def test_invariants(self):
        with pytest.raises(ValueError, match='exceed'):
            BinomialObservation(successes=6, trials=5, predictors=[1.0])
        with pytest.raises(ValueError, match='non-negative'):
            BinomialObservation(successes=-1, trials=5, predictors=[1.0])

    def test_missing_skips_validation(self):
        record = BinomialObservation(successes=np.nan, trials=10, predictors=[1.0], missing=True)
        assert record.missing
        assert np.isnan(record.pseudo_observation)

    def test_set_missing_resets_augmentation(self):
        record = BinomialObservation(successes=3, trials=10, predictors=[1.0])
        record.latent_sum, record.latent_information = 2.0, 4.0
        assert record.pseudo_observation == pytest.approx(0.5)
        record.set_missing()
        assert record.missing
        assert record.latent_information == 0.0
        assert np.isnan(record.pseudo_observation)

    def test_failures(self):
        record = BinomialObservation(successes=3, trials=10, predictors=[1.0, 2.0])
        assert record.failures == 7
        assert record.predictors.shape == (2,)


class TestExtraction:

    def test_absent_predictors_are_intercept(self):
        x = extract_predictors({'response': [1, 2, 3]}, 'predictors', 3)
        np.testing.assert_array_equal(x, np.ones((3, 1)))

    def test_vector_predictor_becomes_column(self):
        x = extract_predictors({'predictors': [0.5, 1.5]}, 'predictors', 2)
        assert x.shape == (2, 1)

    def test_polars_inputs(self):
        frame = pl.DataFrame({'a': [1.0, None], 'b': [2.0, 3.0]})
        x = extract_predictors({'predictors': frame}, 'predictors', 2)
        assert x.shape == (2, 2)
        assert np.isnan(x[1, 0])
        v = to_vector(pl.Series([1, None, 3]))
        assert np.isnan(v[1]) and v[2] == 3.0

    def test_observed_flags(self):
        y = np.array([1.0, np.nan, 2.0])
        np.testing.assert_array_equal(is_observed(y), [True, False, True])
        np.testing.assert_array_equal(observed_flags({}, y), [True, False, True])
        explicit = observed_flags({'response_is_observed': [1, 1, 0]}, y)
        np.testing.assert_array_equal(explicit, [True, True, False])


class TestBinomialObservations:

    def test_order_and_missing(self):
        records = binomial_observations(
            np.array([1.0, 2.0, 3.0]),
            np.array([10.0, 10.0, 10.0]),
            np.ones((3, 1)),
            [True, False, True],
        )
        assert [r.successes for r in records] == [1.0, 2.0, 3.0]
        assert [r.missing for r in records] == [False, True, False]

    def test_length_mismatch(self):
        with pytest.raises(SizeMismatchError):
            binomial_observations(np.ones(3), np.ones(2) * 5, np.ones((3, 1)), [True] * 3)


class TestDataFromFrame:

    def test_columns(self):
        frame = pl.DataFrame({
            'successes': [3, None, 5],
            'trials': [10, 10, 12],
            'x1': [0.1, 0.2, 0.3],
        })
        data = data_from_frame(frame, predictors=['x1'])
        np.testing.assert_array_equal(data['response_is_observed'], [True, False, True])
        assert data['predictors'].shape == (3, 1)
        assert np.isnan(data['response'][1])

    def test_no_predictors(self):
        frame = pl.DataFrame({'successes': [1, 2], 'trials': [4, 4]})
        assert 'predictors' not in data_from_frame(frame)

    def test_missing_column(self):
        frame = pl.DataFrame({'successes': [1, 2]})
        with pytest.raises(ValueError, match='Missing required columns'):
            data_from_frame(frame)
