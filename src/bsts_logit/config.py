# ---------------------------------------------------------------------------
# bsts_logit.config - Sampling options and project constants
# ---------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
OUTPUT_DIR = BASE_DIR / "output"

# ---------------------------------------------------------------------------
# Model constants
# ---------------------------------------------------------------------------

# Group sizes above this use the CLT approximation during data augmentation
DEFAULT_CLT_THRESHOLD = 5

# Names under which parameters are registered for posterior reporting
COEFFICIENTS_NAME = "coefficients"
FINAL_STATE_NAME = "final_state"

# Scale-mixture approximation of the standard logistic distribution
N_MIXTURE_COMPONENTS = 10

# ---------------------------------------------------------------------------
# MCMC presets
# ---------------------------------------------------------------------------

# Full run
DEFAULT_MCMC_KWARGS: dict = dict(
    niter=5000,
    burn=1000,
    seed=None,
)

# Lighter configuration for holdout loops and smoke runs
LIGHT_MCMC_KWARGS: dict = dict(
    niter=500,
    burn=100,
    seed=None,
)


# ---------------------------------------------------------------------------
# Options bag
# ---------------------------------------------------------------------------


@dataclass
class ModelOptions:
    """Options consumed when the manager builds an observation model.

    Parameters
    ----------
    clt_threshold : int, optional
        Group size above which the data imputer switches from the exact
        mixture-of-normals draw to the CLT approximation.  ``None`` keeps
        the manager's current value (5 unless previously changed).
    """

    clt_threshold: int | None = None

    def __post_init__(self) -> None:
        if self.clt_threshold is not None:
            self.clt_threshold = validate_clt_threshold(self.clt_threshold)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> "ModelOptions":
        """Build options from a plain dict.

        Both ``clt_threshold`` and the dotted ``clt.threshold`` spelling
        are recognised.  Unknown keys are ignored.
        """
        if options is None:
            return cls()
        if isinstance(options, ModelOptions):
            return options
        threshold = options.get("clt_threshold", options.get("clt.threshold"))
        return cls(clt_threshold=threshold)


def validate_clt_threshold(value: Any) -> int:
    """Return *value* as an int, raising if it is not a positive integer."""
    try:
        threshold = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"clt_threshold must be an integer, got {value!r}")
    if threshold != value or threshold < 1:
        raise ConfigurationError(f"clt_threshold must be an integer >= 1, got {value!r}")
    return threshold
