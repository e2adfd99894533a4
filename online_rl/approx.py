"""Linear function approximation: basis expansions and linear value functions.

This is the approximator boundary the learning core consumes. Algorithms only
rely on the interface (`embed`, `evaluate`, `evaluate_index`, `update`,
`update_index`, `update_raw`, `jacobian`, `weights*`); any object providing it
can be plugged in instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from itertools import combinations_with_replacement
from typing import Any

import numpy as np


class ApproximationError(ValueError):
    """Raised on malformed evaluate/update calls (shape mismatch, bad index)."""


class Parameterised(ABC):
    """Object whose learned state is a single float64 weight array."""

    @abstractmethod
    def weights_view(self) -> np.ndarray:
        """Read access to the weight array itself (no copy)."""

    def weights(self) -> np.ndarray:
        return self.weights_view().copy()

    def weights_view_mut(self) -> np.ndarray:
        return self.weights_view()

    def weights_dim(self) -> tuple[int, ...]:
        return self.weights_view().shape


class Basis(ABC):
    n_features: int

    @abstractmethod
    def project(self, state: Any) -> np.ndarray:
        """Feature vector of shape (n_features,)."""

    def with_constant(self) -> "Stack":
        return Stack(self, ConstantBasis(1))


class IdentityBasis(Basis):
    """Use the raw state vector as features."""

    def __init__(self, n_features: int):
        self.n_features = int(n_features)

    def project(self, state: Any) -> np.ndarray:
        return np.asarray(state, dtype=np.float64).reshape(-1)


class TabularBasis(Basis):
    """One-hot encoding of an integer state in 0..n_states-1."""

    def __init__(self, n_states: int):
        self.n_features = int(n_states)

    def project(self, state: Any) -> np.ndarray:
        idx = int(state)
        if idx < 0 or idx >= self.n_features:
            raise ApproximationError(f"state must be in range 0..{self.n_features - 1}, got {idx}")
        phi = np.zeros((self.n_features,), dtype=np.float64)
        phi[idx] = 1.0
        return phi


class ConstantBasis(Basis):
    def __init__(self, n_features: int = 1, value: float = 1.0):
        self.n_features = int(n_features)
        self.value = float(value)

    def project(self, state: Any) -> np.ndarray:
        return np.full((self.n_features,), self.value, dtype=np.float64)


class PolynomialBasis(Basis):
    """All monomials of the state variables up to `order` (constant excluded)."""

    def __init__(self, n_inputs: int, order: int):
        if order < 1:
            raise ValueError(f"order must be >= 1, got {order}")
        self.n_inputs = int(n_inputs)
        self.order = int(order)
        self.exponents = [
            combo
            for degree in range(1, self.order + 1)
            for combo in combinations_with_replacement(range(self.n_inputs), degree)
        ]
        self.n_features = len(self.exponents)

    def project(self, state: Any) -> np.ndarray:
        x = np.asarray(state, dtype=np.float64).reshape(-1)
        if x.shape != (self.n_inputs,):
            raise ApproximationError(f"state must have shape ({self.n_inputs},), got {x.shape}")
        return np.array([np.prod(x[list(combo)]) for combo in self.exponents], dtype=np.float64)


class Stack(Basis):
    """Concatenate the features of several bases."""

    def __init__(self, *bases: Basis):
        self.bases = bases
        self.n_features = sum(b.n_features for b in bases)

    def project(self, state: Any) -> np.ndarray:
        return np.concatenate([b.project(state) for b in self.bases], axis=0)


class LinearFunction(Parameterised):
    """f(s) = phi(s) @ W with W of shape (n_features, n_outputs).

    With n_outputs == 1, `evaluate` returns a float (a V-function); otherwise
    it returns one value per output (a Q-function over discrete actions).
    """

    def __init__(self, basis: Basis, n_outputs: int = 1, weights: np.ndarray | None = None):
        if n_outputs < 1:
            raise ValueError(f"n_outputs must be >= 1, got {n_outputs}")
        self.basis = basis
        if weights is None:
            weights = np.zeros((basis.n_features, n_outputs), dtype=np.float64)
        self.W = np.asarray(weights, dtype=np.float64).reshape(basis.n_features, n_outputs)

    @classmethod
    def scalar(cls, basis: Basis) -> "LinearFunction":
        return cls(basis, 1)

    @classmethod
    def vector(cls, basis: Basis, n_outputs: int) -> "LinearFunction":
        return cls(basis, n_outputs)

    @property
    def n_features(self) -> int:
        return self.W.shape[0]

    @property
    def n_outputs(self) -> int:
        return self.W.shape[1]

    def embed(self, state: Any) -> np.ndarray:
        return self._check_features(self.basis.project(state))

    def evaluate(self, phi: np.ndarray) -> float | np.ndarray:
        out = self._check_features(phi) @ self.W
        if self.n_outputs == 1:
            return float(out[0])
        return out

    def evaluate_index(self, phi: np.ndarray, index: int) -> float:
        idx = self._check_index(index)
        return float(self._check_features(phi) @ self.W[:, idx])

    def jacobian(self, phi: np.ndarray) -> np.ndarray:
        """d f / d W for a scalar output: the features as a column (n_features, 1)."""
        return self._check_features(phi).reshape(-1, 1).copy()

    def update(self, phi: np.ndarray, error: float | np.ndarray) -> None:
        phi = self._check_features(phi)
        err = np.asarray(error, dtype=np.float64).reshape(-1)
        if err.size == 1:
            err = np.full((self.n_outputs,), float(err[0]), dtype=np.float64)
        if err.shape != (self.n_outputs,):
            raise ApproximationError(f"error must have shape ({self.n_outputs},), got {err.shape}")
        self.W += np.outer(phi, err)

    def update_index(self, phi: np.ndarray, index: int, error: float) -> None:
        idx = self._check_index(index)
        self.W[:, idx] += float(error) * self._check_features(phi)

    def update_raw(self, delta: np.ndarray) -> None:
        arr = np.asarray(delta, dtype=np.float64)
        if arr.size != self.W.size:
            raise ApproximationError(f"raw update must have {self.W.size} entries, got {arr.size}")
        self.W += arr.reshape(self.W.shape)

    def weights_view(self) -> np.ndarray:
        return self.W

    def _check_features(self, phi: np.ndarray) -> np.ndarray:
        arr = np.asarray(phi, dtype=np.float64).reshape(-1)
        if arr.shape != (self.n_features,):
            raise ApproximationError(f"features must have shape ({self.n_features},), got {arr.shape}")
        return arr

    def _check_index(self, index: int) -> int:
        idx = int(index)
        if idx < 0 or idx >= self.n_outputs:
            raise ApproximationError(f"output index must be in range 0..{self.n_outputs - 1}, got {idx}")
        return idx
