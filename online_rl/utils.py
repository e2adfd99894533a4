from __future__ import annotations

from typing import Sequence

import numpy as np

TIE_TOLERANCE = 1e-7


def argmaxima(values: Sequence[float] | np.ndarray) -> tuple[float, list[int]]:
    """Maximum value and every index within TIE_TOLERANCE of it."""
    vals = np.asarray(values, dtype=np.float64).reshape(-1)
    if vals.size == 0:
        raise ValueError("argmaxima requires at least one value")
    best = float(np.max(vals))
    return best, [int(i) for i in np.flatnonzero(np.abs(vals - best) < TIE_TOLERANCE)]


def argmax_choose(rng: np.random.Generator, values: Sequence[float] | np.ndarray) -> tuple[float, int]:
    """Like argmax, but ties are broken uniformly at random."""
    best, maxima = argmaxima(values)
    if len(maxima) == 1:
        return best, maxima[0]
    return best, int(rng.choice(maxima))


def discounted_returns(rewards: Sequence[float] | np.ndarray, gamma: float) -> np.ndarray:
    """G_t = r_t + gamma * G_{t+1}, accumulated in a single backward pass."""
    rewards = np.asarray(rewards, dtype=np.float64).reshape(-1)
    returns = np.zeros_like(rewards)
    running = 0.0
    for i in range(len(rewards) - 1, -1, -1):
        running = float(rewards[i]) + gamma * running
        returns[i] = running
    return returns
