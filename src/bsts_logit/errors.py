# ---------------------------------------------------------------------------
# bsts_logit.errors - Exception types raised by the model manager
# ---------------------------------------------------------------------------
"""Both errors subclass :class:`ValueError`."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """The manager or model was asked to do something it is not set up for.

    Raised when a dimension-only model is requested before the predictor
    dimension is known, when a CLT threshold or prior is invalid, and when
    an unwired model or an empty prediction context is used.
    """


class SizeMismatchError(ValueError):
    """Inputs disagree in length or width.

    Raised for holdout or forecast windows whose trials, predictors and
    response differ in length, for predictors with the wrong number of
    columns, and for parameter values of the wrong size.
    """
