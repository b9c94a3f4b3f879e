# ---------------------------------------------------------------------------
# bsts_logit.manager - Model manager for the binomial logit state-space model
# ---------------------------------------------------------------------------
"""Build the observation model, wire the posterior samplers and priors, and
expose data ingestion, forecasting and holdout evaluation.

Typical use::

    manager = StateSpaceLogitModelManager()
    model = manager.create_model(data, prior=prior, registry=registry)
    for _ in range(niter):
        model.sample_posterior(rng)
        registry.record()

    manager.unpack_forecast_data(future)
    draw = manager.simulate_forecast(rng, model.final_state)
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from .config import (
    COEFFICIENTS_NAME,
    DEFAULT_CLT_THRESHOLD,
    FINAL_STATE_NAME,
    ModelOptions,
)
from .data import (
    binomial_observations,
    extract_predictors,
    is_observed,
    observed_flags,
    to_vector,
)
from .errors import ConfigurationError, SizeMismatchError
from .imputer import BinomialLogitCltDataImputer
from .model import BinomialLogitModel, StateSpaceLogitModel
from .priors import SpikeSlabPrior
from .reporting import ParameterRegistry
from .samplers import BinomialLogitSpikeSlabSampler, StateSpaceLogitPosteriorSampler
from .state import LocalLevel, StateComponent

logger = logging.getLogger(__name__)


class ConstructionMode(enum.Enum):
    """How the coefficient sampler is configured.

    SPIKE_SLAB
        Sample the coefficients under a supplied spike-and-slab prior.
    NO_REGRESSION
        No predictors: every coefficient is dropped and held at zero.
    REINSTANTIATE
        Rebuilding a fitted model whose coefficients will be restored from
        stored draws: the coefficients are left untouched and not sampled.
    """

    SPIKE_SLAB = "spike_slab"
    NO_REGRESSION = "no_regression"
    REINSTANTIATE = "reinstantiate"


@dataclass
class PredictionContext:
    """Inputs for the forecast or holdout horizon, replaced on every unpack."""

    predictors: np.ndarray
    trials: np.ndarray
    response: np.ndarray | None = None

    @property
    def horizon(self) -> int:
        return self.trials.shape[0]


def drop_unforced_coefficients(
    model: BinomialLogitModel, prior_inclusion_probabilities: np.ndarray
) -> None:
    """Start from the coefficients the prior allows.

    Coefficients with prior inclusion probability exactly zero are dropped
    (and so never sampled); all others start included.
    """
    coef = model.coef_prm()
    coef.drop_all()
    for j, prob in enumerate(prior_inclusion_probabilities):
        if prob > 0.0:
            coef.add(j)


class StateSpaceLogitModelManager:
    """Owns one :class:`StateSpaceLogitModel` and its prediction context."""

    def __init__(self) -> None:
        self._model: StateSpaceLogitModel | None = None
        self._predictor_dimension = -1
        self._clt_threshold = DEFAULT_CLT_THRESHOLD
        self._context: PredictionContext | None = None

    def __repr__(self) -> str:
        return (
            f"StateSpaceLogitModelManager(model={self._model!r}, "
            f"clt_threshold={self._clt_threshold})"
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def model(self) -> StateSpaceLogitModel:
        if self._model is None:
            raise ConfigurationError("No model has been created yet")
        return self._model

    @property
    def has_model(self) -> bool:
        return self._model is not None

    @property
    def clt_threshold(self) -> int:
        return self._clt_threshold

    @property
    def predictor_dimension(self) -> int:
        return self._predictor_dimension

    @property
    def context(self) -> PredictionContext | None:
        return self._context

    def set_predictor_dimension(self, xdim: int) -> None:
        self._predictor_dimension = int(xdim)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create_observation_model(
        self,
        data: Mapping[str, Any] | None = None,
        prior: SpikeSlabPrior | None = None,
        options: ModelOptions | Mapping[str, Any] | None = None,
        registry: ParameterRegistry | None = None,
        mode: ConstructionMode = ConstructionMode.SPIKE_SLAB,
    ) -> StateSpaceLogitModel:
        """Build a model, attach its samplers and install it.

        Parameters
        ----------
        data : mapping, optional
            ``response``, ``trials``, optional ``predictors`` and optional
            ``response_is_observed``.  ``None`` builds a dimension-only model,
            which requires :meth:`set_predictor_dimension` first.
        prior : SpikeSlabPrior, optional
            Required in ``SPIKE_SLAB`` mode, ignored otherwise.
        options : ModelOptions or mapping, optional
            ``clt_threshold`` for the data imputer.
        registry : ParameterRegistry, optional
            Receives the coefficient handle in ``SPIKE_SLAB`` mode.  Entries
            left by the replaced model, and the coefficient entry in the other
            modes, are removed.
        mode : ConstructionMode
            How the coefficient sampler is configured.

        Returns
        -------
        StateSpaceLogitModel
            The newly installed model.  On any error the previous model is
            kept.
        """
        mode = ConstructionMode(mode)
        opts = ModelOptions.from_mapping(options)

        if data is not None:
            regression = data.get("predictors") is not None
            successes = to_vector(data["response"])
            trials = to_vector(data["trials"])
            # Without predictors the model gets an intercept column
            predictors = extract_predictors(data, "predictors", len(successes))
            observed = observed_flags(data, successes)
            model = StateSpaceLogitModel.from_data(successes, trials, predictors, observed)
            model.set_regression_flag(regression)
        else:
            if self._predictor_dimension < 0:
                raise ConfigurationError(
                    "predictor dimension must be set before building a dimension-only model"
                )
            model = StateSpaceLogitModel(self._predictor_dimension)

        clt_threshold = (
            opts.clt_threshold if opts.clt_threshold is not None else self._clt_threshold
        )

        coefficient_handle = None
        if mode is ConstructionMode.SPIKE_SLAB:
            if not isinstance(prior, SpikeSlabPrior):
                raise ConfigurationError(
                    f"SPIKE_SLAB mode needs a SpikeSlabPrior, got {type(prior).__name__}"
                )
            if prior.dim != model.xdim:
                raise ConfigurationError(
                    f"Prior has dimension {prior.dim}, model has {model.xdim} predictors"
                )
            sampler = BinomialLogitSpikeSlabSampler(
                model.observation_model, prior.slab, prior.spike, clt_threshold
            )
            drop_unforced_coefficients(
                model.observation_model, prior.spike.prior_inclusion_probabilities
            )
            if prior.max_flips > 0:
                sampler.limit_model_selection(prior.max_flips)
            coefficient_handle = model.observation_model.coef_prm()
        else:
            sampler = BinomialLogitSpikeSlabSampler.degenerate(
                model.observation_model, clt_threshold
            )
            if mode is ConstructionMode.NO_REGRESSION:
                model.observation_model.coef_prm().drop_all()

        # Both the observation model and the full model get a sampler; they
        # share the coefficient sampler instance.
        model.observation_model.set_method(sampler)
        model.set_method(StateSpaceLogitPosteriorSampler(model, sampler))

        previous = self._model
        self._model = model
        self._clt_threshold = clt_threshold
        self._predictor_dimension = model.xdim
        if registry is not None:
            # Handles of the replaced model must not be recorded or restored
            if previous is not None:
                for name in previous.state_specification.parameters():
                    registry.remove(name)
                registry.remove(FINAL_STATE_NAME)
            if coefficient_handle is not None:
                registry.register(COEFFICIENTS_NAME, coefficient_handle)
            else:
                registry.remove(COEFFICIENTS_NAME)

        logger.info(
            f"Created logit model ({mode.value}): n={model.time_dimension}, "
            f"xdim={model.xdim}, regression={model.regression}, "
            f"clt_threshold={clt_threshold}"
        )
        return model

    def create_model(
        self,
        data: Mapping[str, Any] | None = None,
        state_specification: Sequence[StateComponent] | None = None,
        prior: SpikeSlabPrior | None = None,
        options: ModelOptions | Mapping[str, Any] | None = None,
        registry: ParameterRegistry | None = None,
        mode: ConstructionMode = ConstructionMode.SPIKE_SLAB,
    ) -> StateSpaceLogitModel:
        """:meth:`create_observation_model` plus state components.

        Without a state specification a single :class:`LocalLevel` is used.
        State parameters and the final state are registered with *registry*.
        """
        components = list(state_specification) if state_specification else [LocalLevel()]
        model = self.create_observation_model(data, prior, options, registry, mode)
        for component in components:
            model.add_state(component)
        if registry is not None:
            for name, handle in model.state_specification.parameters().items():
                registry.register(name, handle)
            registry.register(FINAL_STATE_NAME, model.final_state_prm())
        return model

    # ------------------------------------------------------------------
    # Data ingestion
    # ------------------------------------------------------------------

    def add_data_from_primary_source(self, source: Mapping[str, Any]) -> None:
        """Add data from a fitted-model record.

        ``source`` holds ``original_series`` (NaN where unobserved),
        ``trials`` and optionally ``predictors``.
        """
        successes = to_vector(source["original_series"])
        self.add_data(
            successes,
            to_vector(source["trials"]),
            extract_predictors(source, "predictors", len(successes)),
            is_observed(source["original_series"]),
        )

    def add_data_from_list(self, data: Mapping[str, Any]) -> None:
        """Add data from a ``response`` / ``trials`` / ``predictors`` mapping."""
        successes = to_vector(data["response"])
        self.add_data(
            successes,
            to_vector(data["trials"]),
            extract_predictors(data, "predictors", len(successes)),
            observed_flags(data, successes),
        )

    def add_data(
        self,
        successes: np.ndarray,
        trials: np.ndarray,
        predictors: np.ndarray,
        response_is_observed: Sequence[bool],
    ) -> None:
        """Append one record per row to the model, in order.

        Rows whose observed flag is false are marked missing.  All inputs
        must have the same number of rows.
        """
        model = self.model
        for record in binomial_observations(successes, trials, predictors, response_is_observed):
            model.add_data(record)

    # ------------------------------------------------------------------
    # Forecasting
    # ------------------------------------------------------------------

    def unpack_forecast_data(self, data: Mapping[str, Any]) -> int:
        """Store the trials and predictors of a forecast horizon.

        Returns
        -------
        int
            The forecast horizon (number of trial counts).
        """
        trials = to_vector(data["trials"])
        horizon = len(trials)
        predictors = extract_predictors(data, "predictors", horizon)
        self._context = PredictionContext(predictors=predictors, trials=trials)
        return horizon

    def simulate_forecast(self, rng: np.random.Generator, final_state: np.ndarray) -> np.ndarray:
        """One simulated path of success counts over the stored horizon."""
        context = self._require_context(holdout=False)
        return self.model.simulate_forecast(
            rng, context.predictors, context.trials, final_state
        )

    # ------------------------------------------------------------------
    # Holdout evaluation
    # ------------------------------------------------------------------

    def unpack_holdout_data(self, data: Mapping[str, Any]) -> int:
        """Store trials, predictors and observed response of a holdout window.

        Raises
        ------
        SizeMismatchError
            If the predictor rows or trial counts differ from the response
            length.  Any previously stored context is cleared.
        """
        self._context = None
        trials = to_vector(data["trials"])
        predictors = extract_predictors(data, "predictors", len(trials))
        response = to_vector(data["response"])
        n = len(response)
        if predictors.shape[0] != n or len(trials) != n:
            raise SizeMismatchError(
                f"holdout data of the wrong size: {n} responses, "
                f"{len(trials)} trial counts, {predictors.shape[0]} predictor rows"
            )
        self._context = PredictionContext(predictors=predictors, trials=trials, response=response)
        return n

    def holdout_data_one_step_holdout_prediction_errors(
        self, rng: np.random.Generator, final_state: np.ndarray
    ) -> np.ndarray:
        """One-step-ahead prediction errors over the stored holdout window."""
        context = self._require_context(holdout=True)
        imputer = BinomialLogitCltDataImputer(self._clt_threshold)
        return self.model.one_step_holdout_prediction_errors(
            rng,
            imputer,
            context.response,
            context.trials,
            context.predictors,
            final_state,
        )

    def _require_context(self, holdout: bool) -> PredictionContext:
        if self._context is None:
            what = "unpack_holdout_data" if holdout else "unpack_forecast_data"
            raise ConfigurationError(f"Call {what} first")
        if holdout and self._context.response is None:
            raise ConfigurationError("Stored context is a forecast, not a holdout window")
        return self._context
