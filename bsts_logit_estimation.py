#!/usr/bin/env python
# ---------------------------------------------------------------------------
# bsts_logit_estimation.py - Thin runner for the bsts_logit package
# ---------------------------------------------------------------------------
"""Fit a binomial logit structural time-series model to a simulated series,
compare it against a no-regression baseline on a holdout window, and
forecast beyond the data.

Usage:
    python bsts_logit_estimation.py
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np
import polars as pl

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from bsts_logit.config import LIGHT_MCMC_KWARGS, OUTPUT_DIR
from bsts_logit.data import data_from_frame
from bsts_logit.diagnostics import plot_cumulative_errors, plot_forecast, print_diagnostics
from bsts_logit.forecast import cumulative_absolute_errors, holdout_errors, predict
from bsts_logit.manager import ConstructionMode, StateSpaceLogitModelManager
from bsts_logit.priors import SpikeSlabPrior
from bsts_logit.reporting import ParameterRegistry
from bsts_logit.sampling import sample_model

N_TRAIN = 120
N_HOLDOUT = 24
PREDICTORS = ["x1", "x2", "x3"]


def simulate_series(n: int, seed: int = 42) -> pl.DataFrame:
    """Binomial counts driven by a random-walk level and one real predictor."""
    rng = np.random.default_rng(seed)
    level = -0.4 + np.cumsum(rng.normal(0.0, 0.08, size=n))
    x = rng.normal(size=(n, len(PREDICTORS)))
    trials = rng.integers(50, 150, size=n)
    p = 1.0 / (1.0 + np.exp(-(level + 0.9 * x[:, 0])))
    successes = rng.binomial(trials, p).astype(float)
    successes[rng.choice(n, size=5, replace=False)] = np.nan
    return pl.DataFrame({
        "successes": successes,
        "trials": trials,
        **{name: x[:, j] for j, name in enumerate(PREDICTORS)},
    }).with_columns(pl.col("successes").fill_nan(None), pl.lit(1.0).alias("intercept"))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(2024)

    # 1. Data ------------------------------------------------------------------
    frame = simulate_series(N_TRAIN + N_HOLDOUT)
    columns = ["intercept", *PREDICTORS]
    train = data_from_frame(frame.head(N_TRAIN), predictors=columns)
    holdout = data_from_frame(frame.tail(N_HOLDOUT), predictors=columns)

    # 2. Regression model ------------------------------------------------------
    prior = SpikeSlabPrior.logit_zellner(
        train["predictors"], train["response"], train["trials"], expected_model_size=1.0
    )
    manager = StateSpaceLogitModelManager()
    registry = ParameterRegistry()
    model = manager.create_model(train, prior=prior, registry=registry)
    idata = sample_model(model, registry, **{**LIGHT_MCMC_KWARGS, "seed": 1})
    print_diagnostics(idata)

    # 3. Baseline without predictors -------------------------------------------
    baseline = StateSpaceLogitModelManager()
    baseline_registry = ParameterRegistry()
    base_train = {k: v for k, v in train.items() if k != "predictors"}
    base_model = baseline.create_model(
        base_train, registry=baseline_registry, mode=ConstructionMode.NO_REGRESSION
    )
    sample_model(base_model, baseline_registry, **{**LIGHT_MCMC_KWARGS, "seed": 2})

    # 4. Holdout comparison ----------------------------------------------------
    burn = LIGHT_MCMC_KWARGS["burn"]
    base_holdout = {k: v for k, v in holdout.items() if k != "predictors"}
    curves = {
        "regression": cumulative_absolute_errors(
            holdout_errors(manager, registry, holdout, rng, burn=burn)
        ),
        "level only": cumulative_absolute_errors(
            holdout_errors(baseline, baseline_registry, base_holdout, rng, burn=burn)
        ),
    }
    for label, curve in curves.items():
        print(f"  {label:<12} cumulative |error| = {curve[-1]:,.1f}")
    plot_cumulative_errors(curves)

    # 5. Forecast --------------------------------------------------------------
    paths = predict(manager, registry, holdout, rng, burn=burn)
    plot_forecast(paths, holdout["trials"], train["response"], train["trials"])

    # 6. Save InferenceData ----------------------------------------------------
    idata.to_netcdf(str(OUTPUT_DIR / "bsts_logit_idata.nc"))
    print(f"\nInferenceData saved to {OUTPUT_DIR / 'bsts_logit_idata.nc'}")

    print("\n" + "=" * 72)
    print("bsts_logit pipeline complete.")
    print("=" * 72)


if __name__ == "__main__":
    main()
