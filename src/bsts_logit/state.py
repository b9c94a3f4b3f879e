# ---------------------------------------------------------------------------
# bsts_logit.state - Latent state components
# ---------------------------------------------------------------------------
"""Structural state components and the block-diagonal state specification
they combine into.  Each component owns its innovation standard deviations
and draws them from their inverse-gamma full conditionals given its block
of the sampled state path."""

from __future__ import annotations

import numpy as np
from scipy.linalg import block_diag

from .kalman import StateSpaceMatrices
from .priors import SdPrior


class UnivariateParameter:
    """A named scalar parameter handle that can be recorded and restored."""

    def __init__(self, name: str, value: float):
        self.name = name
        self._value = float(value)

    def __repr__(self) -> str:
        return f"UnivariateParameter({self.name!r}, {self._value:.4g})"

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, new_value: float) -> None:
        self._value = float(np.asarray(new_value))


class StateComponent:
    """Base class: a linear-Gaussian block of the state vector."""

    state_dimension: int = 0

    def __init__(self, initial_state_mean, initial_state_sd):
        self.initial_state_mean = np.atleast_1d(np.asarray(initial_state_mean, dtype=float))
        sd = np.atleast_1d(np.asarray(initial_state_sd, dtype=float))
        self.initial_state_variance = np.diag(sd**2)

    def transition_matrix(self) -> np.ndarray:
        raise NotImplementedError

    def expander(self) -> np.ndarray:
        return np.eye(self.state_dimension)

    def innovation_variance(self) -> np.ndarray:
        raise NotImplementedError

    def observation_vector(self) -> np.ndarray:
        raise NotImplementedError

    def parameters(self) -> dict[str, UnivariateParameter]:
        raise NotImplementedError

    def innovations(self, block: np.ndarray) -> np.ndarray:
        """State innovations ``alpha_t+1 - T alpha_t``, shape (n - 1, r)."""
        T = self.transition_matrix()
        return block[1:] - block[:-1] @ T.T

    def sample_posterior(self, rng: np.random.Generator, block: np.ndarray) -> None:
        raise NotImplementedError


class LocalLevel(StateComponent):
    """Random-walk level: ``mu_t+1 = mu_t + eta_t``, ``eta_t ~ N(0, sigma^2)``."""

    state_dimension = 1

    def __init__(
        self,
        sigma_prior: SdPrior | None = None,
        initial_state_mean: float = 0.0,
        initial_state_sd: float = 2.0,
        name: str = "sigma_level",
    ):
        super().__init__(initial_state_mean, initial_state_sd)
        self.sigma_prior = sigma_prior if sigma_prior is not None else SdPrior(0.1, 1.0)
        self.sigma = UnivariateParameter(name, self.sigma_prior.prior_guess)

    def __repr__(self) -> str:
        return f"LocalLevel(sigma={self.sigma.value:.4g})"

    def transition_matrix(self) -> np.ndarray:
        return np.eye(1)

    def innovation_variance(self) -> np.ndarray:
        return np.array([[self.sigma.value**2]])

    def observation_vector(self) -> np.ndarray:
        return np.ones(1)

    def parameters(self) -> dict[str, UnivariateParameter]:
        return {self.sigma.name: self.sigma}

    def sample_posterior(self, rng: np.random.Generator, block: np.ndarray) -> None:
        eta = self.innovations(block)[:, 0]
        self.sigma.value = self.sigma_prior.draw_sigma(rng, len(eta), float(eta @ eta))


class LocalLinearTrend(StateComponent):
    """Level plus slope, each a random walk with its own innovation sd::

        mu_t+1    = mu_t + delta_t + eta_0t
        delta_t+1 = delta_t + eta_1t
    """

    state_dimension = 2

    def __init__(
        self,
        level_sigma_prior: SdPrior | None = None,
        slope_sigma_prior: SdPrior | None = None,
        initial_level_mean: float = 0.0,
        initial_level_sd: float = 2.0,
        initial_slope_mean: float = 0.0,
        initial_slope_sd: float = 0.5,
    ):
        super().__init__(
            [initial_level_mean, initial_slope_mean],
            [initial_level_sd, initial_slope_sd],
        )
        self.level_sigma_prior = level_sigma_prior or SdPrior(0.1, 1.0)
        self.slope_sigma_prior = slope_sigma_prior or SdPrior(0.01, 1.0)
        self.level_sigma = UnivariateParameter(
            "trend_level_sd", self.level_sigma_prior.prior_guess
        )
        self.slope_sigma = UnivariateParameter(
            "trend_slope_sd", self.slope_sigma_prior.prior_guess
        )

    def __repr__(self) -> str:
        return (
            f"LocalLinearTrend(level_sd={self.level_sigma.value:.4g}, "
            f"slope_sd={self.slope_sigma.value:.4g})"
        )

    def transition_matrix(self) -> np.ndarray:
        return np.array([[1.0, 1.0], [0.0, 1.0]])

    def innovation_variance(self) -> np.ndarray:
        return np.diag([self.level_sigma.value**2, self.slope_sigma.value**2])

    def observation_vector(self) -> np.ndarray:
        return np.array([1.0, 0.0])

    def parameters(self) -> dict[str, UnivariateParameter]:
        return {
            self.level_sigma.name: self.level_sigma,
            self.slope_sigma.name: self.slope_sigma,
        }

    def sample_posterior(self, rng: np.random.Generator, block: np.ndarray) -> None:
        eta = self.innovations(block)
        n = eta.shape[0]
        self.level_sigma.value = self.level_sigma_prior.draw_sigma(
            rng, n, float(eta[:, 0] @ eta[:, 0])
        )
        self.slope_sigma.value = self.slope_sigma_prior.draw_sigma(
            rng, n, float(eta[:, 1] @ eta[:, 1])
        )


class StateSpecification:
    """Ordered collection of state components forming one state vector."""

    def __init__(self, components: list[StateComponent] | None = None):
        self.components: list[StateComponent] = list(components or [])

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def add(self, component: StateComponent) -> None:
        self.components.append(component)

    @property
    def state_dimension(self) -> int:
        return sum(c.state_dimension for c in self.components)

    def matrices(self) -> StateSpaceMatrices:
        """Assemble the block-diagonal system for the current parameters."""
        if not self.components:
            raise ValueError("State specification has no components")
        return StateSpaceMatrices(
            observation_vector=np.concatenate([c.observation_vector() for c in self.components]),
            transition=block_diag(*[c.transition_matrix() for c in self.components]),
            expander=block_diag(*[c.expander() for c in self.components]),
            innovation_variance=block_diag(*[c.innovation_variance() for c in self.components]),
            initial_mean=np.concatenate([c.initial_state_mean for c in self.components]),
            initial_variance=block_diag(*[c.initial_state_variance for c in self.components]),
        )

    def split(self, state: np.ndarray) -> list[np.ndarray]:
        """Split a state path ``(n, m)`` into per-component blocks."""
        blocks = []
        start = 0
        for c in self.components:
            blocks.append(state[:, start:start + c.state_dimension])
            start += c.state_dimension
        return blocks

    def parameters(self) -> dict[str, UnivariateParameter]:
        params: dict[str, UnivariateParameter] = {}
        for c in self.components:
            params.update(c.parameters())
        return params

    def sample_posterior(self, rng: np.random.Generator, state: np.ndarray) -> None:
        """Draw every component's parameters given the state path."""
        for component, block in zip(self.components, self.split(state)):
            component.sample_posterior(rng, block)
