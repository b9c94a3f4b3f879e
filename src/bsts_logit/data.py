# ---------------------------------------------------------------------------
# bsts_logit.data - Binomial observation records and ingestion helpers
# ---------------------------------------------------------------------------
"""Normalise raw inputs into successes, trials, predictors and observed
flags, and hold one augmented binomial record per time point."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import polars as pl

from .errors import SizeMismatchError


@dataclass
class BinomialObservation:
    """One time point of a binomial logit series.

    ``latent_sum`` and ``latent_information`` hold the current data
    augmentation: the information-weighted sum of the latent logistic
    utilities and their total information (precision).  They are rewritten
    by the posterior sampler on every iteration.
    """

    successes: float
    trials: float
    predictors: np.ndarray
    missing: bool = False
    latent_sum: float = field(default=0.0, repr=False)
    latent_information: float = field(default=0.0, repr=False)

    def __post_init__(self) -> None:
        self.predictors = np.asarray(self.predictors, dtype=float).ravel()
        self.successes = float(self.successes)
        self.trials = float(self.trials)
        if not self.missing:
            _check_counts(self.successes, self.trials)

    def set_missing(self, missing: bool = True) -> None:
        """Mark the record completely missing (or observed again)."""
        if not missing:
            _check_counts(self.successes, self.trials)
        self.missing = missing
        if missing:
            self.latent_sum = 0.0
            self.latent_information = 0.0

    @property
    def failures(self) -> float:
        return self.trials - self.successes

    @property
    def pseudo_observation(self) -> float:
        """Gaussian location implied by the augmentation (NaN if none)."""
        if self.missing or self.latent_information <= 0:
            return np.nan
        return self.latent_sum / self.latent_information


def _check_counts(successes: float, trials: float) -> None:
    if not (np.isfinite(successes) and np.isfinite(trials)):
        raise ValueError(
            f"Observed binomial record needs finite counts, got "
            f"successes={successes}, trials={trials}"
        )
    if successes < 0 or trials < 0:
        raise ValueError(f"Counts must be non-negative, got {successes}/{trials}")
    if successes > trials:
        raise ValueError(f"successes ({successes}) exceed trials ({trials})")


# =========================================================================
# Extraction helpers
# =========================================================================


def to_vector(value: Any) -> np.ndarray:
    """Convert a sequence (list, numpy array, polars Series) to a float vector.

    Nulls in a polars Series become NaN.
    """
    if isinstance(value, pl.Series):
        return value.cast(pl.Float64).fill_null(np.nan).to_numpy().astype(float)
    return np.atleast_1d(np.asarray(value, dtype=float))


def extract_predictors(source: Mapping[str, Any], key: str, nrow: int) -> np.ndarray:
    """Return ``source[key]`` as a 2-D matrix, or an ``nrow x 1`` column of
    ones when the predictors are absent."""
    value = source.get(key)
    if value is None:
        return np.ones((nrow, 1))
    if isinstance(value, pl.DataFrame):
        return value.cast(pl.Float64).fill_null(np.nan).to_numpy().astype(float)
    x = np.asarray(value, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    return x


def is_observed(series: Any) -> np.ndarray:
    """Observed flags for a response series: False where the value is NaN."""
    return np.isfinite(to_vector(series))


def observed_flags(source: Mapping[str, Any], response: np.ndarray) -> np.ndarray:
    """Explicit ``response_is_observed`` flags, or ``isfinite(response)``."""
    flags = source.get("response_is_observed")
    if flags is None:
        return np.isfinite(response)
    return np.asarray(flags, dtype=bool)


def data_from_frame(
    frame: pl.DataFrame,
    response: str = "successes",
    trials: str = "trials",
    predictors: Sequence[str] | None = None,
) -> dict:
    """Turn a polars DataFrame into the data mapping the manager consumes.

    Parameters
    ----------
    frame : pl.DataFrame
        One row per time point, in time order.
    response, trials : str
        Column names of the success and trial counts.  Null successes mark
        unobserved time points.
    predictors : sequence of str, optional
        Predictor columns.  ``None`` leaves predictors out of the mapping,
        which builds a model without regression.

    Returns
    -------
    dict
        Keys ``response``, ``trials``, ``response_is_observed`` and, when
        requested, ``predictors``.
    """
    missing = {response, trials, *(predictors or [])} - set(frame.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    y = to_vector(frame[response])
    data: dict = {
        "response": y,
        "trials": to_vector(frame[trials]),
        "response_is_observed": np.isfinite(y),
    }
    if predictors is not None:
        data["predictors"] = extract_predictors(
            {"predictors": frame.select(list(predictors))}, "predictors", len(y)
        )
    return data


def binomial_observations(
    successes: np.ndarray,
    trials: np.ndarray,
    predictors: np.ndarray,
    response_is_observed: Sequence[bool],
) -> list[BinomialObservation]:
    """One record per row, in order; rows flagged unobserved are missing.

    All four inputs must share the same number of rows.
    """
    n = len(successes)
    if len(trials) != n or len(predictors) != n or len(response_is_observed) != n:
        raise SizeMismatchError(
            f"{n} responses, {len(trials)} trial counts, {len(predictors)} "
            f"predictor rows, {len(response_is_observed)} observed flags"
        )
    records = []
    for i in range(n):
        observed = bool(response_is_observed[i])
        record = BinomialObservation(
            successes=successes[i],
            trials=trials[i],
            predictors=predictors[i],
            missing=not observed,
        )
        records.append(record)
    return records
