"""Eligibility traces over an approximator's parameter space."""

from __future__ import annotations

import numpy as np

from .parameter import Parameter


class Trace:
    """Decaying memory of recently visited features.

    `weights` has the same shape as the parameters it assigns credit to
    (a feature vector for V-functions, a feature x action matrix for
    Q-functions or policies). `decay_rate` is the lambda of TD(lambda); the
    owning algorithm multiplies it by gamma before decaying.
    """

    def __init__(self, shape: int | tuple[int, ...], decay_rate: Parameter | float):
        self.weights = np.zeros(shape, dtype=np.float64)
        self.decay_rate = Parameter.coerce(decay_rate)

    @property
    def lambda_(self) -> float:
        return self.decay_rate.value

    def get(self) -> np.ndarray:
        return self.weights.copy()

    def decay(self, rate: float) -> None:
        self.weights *= float(rate)

    def update(self, x: np.ndarray) -> None:
        self.weights += self._check(x)

    def accumulate(self, phi: np.ndarray, rate: float) -> None:
        """z <- rate * z + phi"""
        phi = self._check(phi)
        self.decay(rate)
        self.weights += phi

    def replace(self, phi: np.ndarray, rate: float) -> None:
        """Replacing trace: active entries are reset to phi instead of summed."""
        phi = self._check(phi)
        self.decay(rate)
        active = phi != 0.0
        self.weights[active] = phi[active]

    def true_online(self, phi: np.ndarray, rate: float, alpha: float) -> None:
        """Dutch trace: z <- rate * z + (1 - alpha * rate * (z . phi)) * phi"""
        phi = self._check(phi)
        scale = 1.0 - float(alpha) * float(rate) * float(np.vdot(self.weights, phi))
        self.decay(rate)
        self.weights += scale * phi

    def reset(self) -> None:
        self.weights.fill(0.0)

    def handle_terminal(self) -> None:
        self.decay_rate = self.decay_rate.step()
        self.reset()

    def _check(self, x: np.ndarray) -> np.ndarray:
        arr = np.asarray(x, dtype=np.float64)
        if arr.shape != self.weights.shape:
            raise ValueError(f"trace update must have shape {self.weights.shape}, got {arr.shape}")
        return arr
