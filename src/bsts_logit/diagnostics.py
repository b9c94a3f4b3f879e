# ---------------------------------------------------------------------------
# bsts_logit.diagnostics - Posterior summaries and evaluation plots
# ---------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Mapping, Sequence

import arviz as az
import matplotlib.pyplot as plt
import numpy as np

from .config import COEFFICIENTS_NAME, OUTPUT_DIR


# =========================================================================
# Parameter summary
# =========================================================================


def print_diagnostics(idata: az.InferenceData, min_ess: float = 100.0) -> None:
    """Print a posterior summary of every recorded parameter."""
    var_names = [v for v in idata.posterior.data_vars if v != COEFFICIENTS_NAME]

    print("=" * 72)
    print("PARAMETER SUMMARY")
    print("=" * 72)
    n_draws = idata.posterior.sizes["draw"]
    print(f"Draws kept: {n_draws}")
    if var_names:
        summary = az.summary(idata, var_names=var_names, kind="stats", hdi_prob=0.80)
        print(summary.to_string())

        ess = az.ess(idata, var_names=var_names)
        low = {v: float(ess[v].min()) for v in var_names if float(ess[v].min()) < min_ess}
        if low:
            print(f"\n** WARNING: Parameters with ESS < {min_ess:.0f}:")
            for name, value in low.items():
                print(f"    {name}: ESS = {value:.0f}")

    if COEFFICIENTS_NAME in idata.posterior:
        print_inclusion_summary(idata)


def print_inclusion_summary(
    idata: az.InferenceData,
    predictor_names: Sequence[str] | None = None,
) -> None:
    """Marginal inclusion probabilities and conditional coefficient means."""
    beta = idata.posterior[COEFFICIENTS_NAME].values
    beta = beta.reshape(-1, beta.shape[-1])
    if predictor_names is None:
        predictor_names = [f"x{j}" for j in range(beta.shape[1])]

    included = beta != 0.0
    inclusion_prob = included.mean(axis=0)
    with np.errstate(invalid="ignore"):
        conditional_mean = np.where(
            included.any(axis=0),
            (beta * included).sum(axis=0) / included.sum(axis=0),
            0.0,
        )

    print("\n" + "=" * 72)
    print("COEFFICIENT INCLUSION")
    print("=" * 72)
    print(f"{'Predictor':<20} {'P(incl)':>9} {'E[beta | incl]':>16}")
    print("-" * 47)
    for j in np.argsort(-inclusion_prob):
        print(f"{predictor_names[j]:<20} {inclusion_prob[j]:>9.3f} {conditional_mean[j]:>16.4f}")


# =========================================================================
# Plots
# =========================================================================


def plot_cumulative_errors(
    cumulative: Mapping[str, np.ndarray],
    filename: str = "cumulative_absolute_errors.png",
) -> None:
    """Cumulative absolute one-step holdout errors, one line per model."""
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(10, 5))
    for label, curve in cumulative.items():
        ax.plot(np.arange(1, len(curve) + 1), curve, lw=1.5, label=label)
    ax.set_xlabel("Holdout period")
    ax.set_ylabel("Cumulative |error|")
    ax.set_title("One-step holdout prediction errors", fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    fig.savefig(OUTPUT_DIR / filename, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {OUTPUT_DIR / filename}")


def plot_forecast(
    forecast: np.ndarray,
    trials: np.ndarray,
    history: np.ndarray | None = None,
    history_trials: np.ndarray | None = None,
    filename: str = "forecast.png",
) -> None:
    """Posterior predictive success rate: median and 80% / 95% bands."""
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    rate = np.asarray(forecast, dtype=float) / np.asarray(trials, dtype=float)
    horizon = rate.shape[1]

    fig, ax = plt.subplots(figsize=(12, 5))
    offset = 0
    if history is not None and history_trials is not None:
        offset = len(history)
        with np.errstate(invalid="ignore", divide="ignore"):
            observed = np.asarray(history, dtype=float) / np.asarray(history_trials, dtype=float)
        ax.plot(np.arange(offset), observed, "k.", ms=4, label="Observed")

    t = np.arange(offset, offset + horizon)
    lo95, lo80, med, hi80, hi95 = np.percentile(rate, [2.5, 10, 50, 90, 97.5], axis=0)
    ax.fill_between(t, lo95, hi95, alpha=0.15, color="steelblue", label="95%")
    ax.fill_between(t, lo80, hi80, alpha=0.3, color="steelblue", label="80%")
    ax.plot(t, med, color="steelblue", lw=1.5, label="Median")
    ax.set_xlabel("Time")
    ax.set_ylabel("Success rate")
    ax.set_ylim(0, 1)
    ax.set_title("Posterior predictive forecast", fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    fig.savefig(OUTPUT_DIR / filename, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {OUTPUT_DIR / filename}")
