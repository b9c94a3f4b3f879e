# ---------------------------------------------------------------------------
# bsts_logit.reporting - Parameter registration and posterior draw storage
# ---------------------------------------------------------------------------
"""Named parameter handles recorded once per MCMC iteration.

A handle is any object with a readable and assignable ``value`` attribute
(:class:`~bsts_logit.model.GlmCoefs`,
:class:`~bsts_logit.state.UnivariateParameter`,
:class:`~bsts_logit.model.FinalState`).  Recording is decoupled from
sampling: the registry only reads handles when :meth:`record` is called,
and :meth:`restore` writes a stored draw back so a model can be evaluated
at that draw.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import arviz as az
import numpy as np

logger = logging.getLogger(__name__)


class ParameterHandle(Protocol):
    value: Any


class ParameterRegistry:
    """Ordered mapping of parameter name to handle and recorded draws."""

    def __init__(self) -> None:
        self._handles: dict[str, ParameterHandle] = {}
        self._draws: dict[str, list[np.ndarray]] = {}

    def __repr__(self) -> str:
        return f"ParameterRegistry(names={self.names}, ndraws={self.ndraws})"

    def __contains__(self, name: str) -> bool:
        return name in self._handles

    @property
    def names(self) -> list[str]:
        return list(self._handles)

    @property
    def ndraws(self) -> int:
        if not self._draws:
            return 0
        return min(len(d) for d in self._draws.values())

    def register(self, name: str, handle: ParameterHandle) -> None:
        """Register *handle* under *name*, replacing any previous entry.

        Replacing a name discards the draws recorded for it.
        """
        if name in self._handles:
            logger.debug(f"Replacing registered parameter {name!r}")
        self._handles[name] = handle
        self._draws[name] = []

    def handle(self, name: str) -> ParameterHandle:
        return self._handles[name]

    def remove(self, name: str) -> None:
        self._handles.pop(name, None)
        self._draws.pop(name, None)

    def clear(self) -> None:
        self._handles.clear()
        self._draws.clear()

    def record(self) -> None:
        """Append the current value of every handle."""
        for name, handle in self._handles.items():
            self._draws[name].append(np.array(handle.value, dtype=float, copy=True))

    def draws(self, name: str) -> np.ndarray:
        """Recorded draws for *name*, shape ``(ndraws, *param_shape)``."""
        return np.asarray(self._draws[name])

    def restore(self, iteration: int) -> None:
        """Write draw number *iteration* back into every handle."""
        for name, handle in self._handles.items():
            handle.value = self._draws[name][iteration]

    def to_inference_data(self, burn: int = 0) -> az.InferenceData:
        """Recorded draws (after *burn*) as a single-chain ``InferenceData``."""
        posterior = {
            name: self.draws(name)[burn:][None, ...]
            for name in self._handles
            if self._draws[name]
        }
        return az.from_dict(posterior=posterior)
