"""Policies consumed by the controllers: greedy/exploratory ones over a shared
Q-function and parameterised ones trained by policy-gradient methods."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from .algorithms import Algorithm
from .approx import LinearFunction, Parameterised
from .parameter import Parameter
from .shared import Shared, make_shared
from .utils import argmax_choose, argmaxima


class Policy(Algorithm, ABC):
    @abstractmethod
    def sample(self, state: Any) -> Any:
        """Draw an action for `state`."""

    def mpa(self, state: Any) -> Any:
        """Most probable action."""
        return self.sample(state)

    @abstractmethod
    def probability(self, state: Any, action: Any) -> float:
        """Probability (or density) of `action` in `state`."""


class FinitePolicy(Policy):
    """Policy over the actions 0..n_actions-1."""

    n_actions: int
    rng: np.random.Generator

    @abstractmethod
    def probabilities(self, state: Any) -> np.ndarray:
        """pi(. | s) as a vector of length n_actions."""

    def probability(self, state: Any, action: int) -> float:
        return float(self.probabilities(state)[int(action)])

    def sample(self, state: Any) -> int:
        return int(self.rng.choice(self.n_actions, p=self.probabilities(state)))

    def mpa(self, state: Any) -> int:
        return int(np.argmax(self.probabilities(state)))


class DifferentiablePolicy(Policy):
    @abstractmethod
    def grad_log(self, state: Any, action: Any) -> np.ndarray:
        """d log pi(a | s) / d theta, shaped like the policy weights."""


class ParameterisedPolicy(DifferentiablePolicy, Parameterised):
    @abstractmethod
    def update(self, state: Any, action: Any, error: float) -> None:
        """Move the weights along grad log pi(a | s), scaled by `error`."""

    @abstractmethod
    def update_raw(self, errors: np.ndarray) -> None:
        """Add a weight delta directly."""


class Greedy(FinitePolicy):
    """Always picks a maximiser of Q(s, .); ties are broken uniformly."""

    def __init__(self, q_func: Any, seed: int | None = None):
        self.q_func = make_shared(q_func)
        self.rng = np.random.default_rng(seed)

    @property
    def n_actions(self) -> int:  # type: ignore[override]
        return self.q_func.n_outputs

    def _qs(self, state: Any) -> np.ndarray:
        return np.asarray(self.q_func.evaluate(self.q_func.embed(state)), dtype=np.float64).reshape(-1)

    def sample(self, state: Any) -> int:
        _, action = argmax_choose(self.rng, self._qs(state))
        return action

    def mpa(self, state: Any) -> int:
        return self.sample(state)

    def probabilities(self, state: Any) -> np.ndarray:
        qs = self._qs(state)
        _, maxima = argmaxima(qs)
        probs = np.zeros_like(qs)
        probs[maxima] = 1.0 / len(maxima)
        return probs


class EpsilonGreedy(FinitePolicy):
    """Uniformly random action with probability epsilon, greedy otherwise."""

    def __init__(self, q_func: Any, epsilon: Parameter | float, seed: int | None = None):
        self.greedy = Greedy(q_func, seed=seed)
        self.epsilon = Parameter.coerce(epsilon)
        if not 0.0 <= self.epsilon.value <= 1.0:
            raise ValueError(f"epsilon must be in [0, 1], got {self.epsilon.value}")
        self.rng = np.random.default_rng(None if seed is None else seed + 1)

    @property
    def q_func(self) -> Shared:
        return self.greedy.q_func

    @property
    def n_actions(self) -> int:  # type: ignore[override]
        return self.greedy.n_actions

    def handle_terminal(self) -> None:
        self.epsilon = self.epsilon.step()

    def sample(self, state: Any) -> int:
        if self.rng.random() < self.epsilon.value:
            return int(self.rng.integers(0, self.n_actions))
        return self.greedy.sample(state)

    def mpa(self, state: Any) -> int:
        return self.greedy.mpa(state)

    def probabilities(self, state: Any) -> np.ndarray:
        eps = self.epsilon.value
        return eps / self.n_actions + (1.0 - eps) * self.greedy.probabilities(state)


class Random(FinitePolicy):
    def __init__(self, n_actions: int, seed: int | None = None):
        if n_actions < 1:
            raise ValueError(f"n_actions must be >= 1, got {n_actions}")
        self.n_actions = int(n_actions)
        self.rng = np.random.default_rng(seed)

    def sample(self, state: Any) -> int:
        return int(self.rng.integers(0, self.n_actions))

    def probabilities(self, state: Any) -> np.ndarray:
        return np.full((self.n_actions,), 1.0 / self.n_actions, dtype=np.float64)


class Gibbs(FinitePolicy, ParameterisedPolicy):
    """Linear softmax policy: pi(a | s) = softmax(phi(s) @ W / tau)[a]."""

    def __init__(self, fa: LinearFunction, tau: float = 1.0, seed: int | None = None):
        if tau <= 0.0:
            raise ValueError(f"tau must be > 0, got {tau}")
        self.fa = fa
        self.tau = float(tau)
        self.rng = np.random.default_rng(seed)

    @property
    def n_actions(self) -> int:  # type: ignore[override]
        return self.fa.n_outputs

    @staticmethod
    def softmax(logits: np.ndarray) -> np.ndarray:
        z = logits - np.max(logits)
        exp = np.exp(z)
        return exp / np.sum(exp)

    def _probs(self, phi: np.ndarray) -> np.ndarray:
        logits = np.asarray(self.fa.evaluate(phi), dtype=np.float64).reshape(-1)
        return self.softmax(logits / self.tau)

    def probabilities(self, state: Any) -> np.ndarray:
        return self._probs(self.fa.embed(state))

    def grad_log(self, state: Any, action: int) -> np.ndarray:
        action = int(action)
        if action < 0 or action >= self.n_actions:
            raise ValueError(f"action must be in range 0..{self.n_actions - 1}")
        phi = self.fa.embed(state)
        delta = -self._probs(phi)
        delta[action] += 1.0  # d log pi(a|s) / d logits
        return np.outer(phi, delta) / self.tau

    def update(self, state: Any, action: int, error: float) -> None:
        self.fa.update_raw(float(error) * self.grad_log(state, action))

    def update_raw(self, errors: np.ndarray) -> None:
        self.fa.update_raw(errors)

    def weights_view(self) -> np.ndarray:
        return self.fa.weights_view()


class Gaussian(ParameterisedPolicy):
    """Scalar Gaussian policy with a linear mean and fixed standard deviation."""

    def __init__(self, mean: LinearFunction, stddev: float = 1.0, seed: int | None = None):
        if stddev <= 0.0:
            raise ValueError(f"stddev must be > 0, got {stddev}")
        if mean.n_outputs != 1:
            raise ValueError(f"mean approximator must have a single output, got {mean.n_outputs}")
        self.fa = mean
        self.stddev = float(stddev)
        self.rng = np.random.default_rng(seed)

    def mean(self, state: Any) -> float:
        return float(self.fa.evaluate(self.fa.embed(state)))

    def sample(self, state: Any) -> float:
        return float(self.rng.normal(self.mean(state), self.stddev))

    def mpa(self, state: Any) -> float:
        return self.mean(state)

    def probability(self, state: Any, action: float) -> float:
        z = (float(action) - self.mean(state)) / self.stddev
        return float(np.exp(-0.5 * z * z) / (self.stddev * np.sqrt(2.0 * np.pi)))

    def grad_log(self, state: Any, action: float) -> np.ndarray:
        phi = self.fa.embed(state)
        mu = float(self.fa.evaluate(phi))
        return self.fa.jacobian(phi) * ((float(action) - mu) / self.stddev**2)

    def update(self, state: Any, action: float, error: float) -> None:
        phi = self.fa.embed(state)
        mu = float(self.fa.evaluate(phi))
        self.fa.update(phi, float(error) * (float(action) - mu) / self.stddev**2)

    def update_raw(self, errors: np.ndarray) -> None:
        self.fa.update_raw(errors)

    def weights_view(self) -> np.ndarray:
        return self.fa.weights_view()


class Dirac(ParameterisedPolicy):
    """Deterministic policy: the action is the approximator's output."""

    def __init__(self, fa: LinearFunction):
        self.fa = fa

    def _value(self, phi: np.ndarray) -> np.ndarray:
        return np.atleast_1d(np.asarray(self.fa.evaluate(phi), dtype=np.float64))

    def sample(self, state: Any) -> Any:
        return self.fa.evaluate(self.fa.embed(state))

    def mpa(self, state: Any) -> Any:
        return self.sample(state)

    def probability(self, state: Any, action: Any) -> float:
        return 1.0 if np.array_equal(np.atleast_1d(action), self._value(self.fa.embed(state))) else 0.0

    def grad_log(self, state: Any, action: Any) -> np.ndarray:
        phi = self.fa.embed(state)
        return np.outer(phi, np.atleast_1d(action) - self._value(phi))

    def update(self, state: Any, action: Any, error: float) -> None:
        phi = self.fa.embed(state)
        self.fa.update(phi, float(error) * (np.atleast_1d(action) - self._value(phi)))

    def update_raw(self, errors: np.ndarray) -> None:
        self.fa.update_raw(errors)

    def weights_view(self) -> np.ndarray:
        return self.fa.weights_view()
