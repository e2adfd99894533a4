"""Monte-Carlo policy gradient."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from .algorithms import BatchLearner, Controller, best_effort, require_capabilities
from .approx import Parameterised
from .parameter import Parameter
from .policies import ParameterisedPolicy
from .types import Transition
from .utils import discounted_returns


class BaselineREINFORCE(BatchLearner, Controller, Parameterised):
    """REINFORCE with a learned baseline.

    `handle_batch` takes one complete episode, oldest transition first. The
    baseline learns from the episode before the policy does; returns come
    from a single backward pass, and the policy is stepped last transition
    first with alpha * (G_t - b(s_t, a_t)).

    References: Williams (1992). Simple statistical gradient-following
    algorithms for connectionist reinforcement learning. Machine Learning 8.
    """

    def __init__(
        self,
        policy: ParameterisedPolicy,
        baseline: Any,
        alpha: Parameter | float,
        gamma: Parameter | float,
    ):
        require_capabilities(policy, "sample", "update", "weights_view", "handle_terminal", role="policy")
        require_capabilities(baseline, "handle_batch", "handle_terminal", "predict_qsa", role="baseline")
        self.policy = policy
        self.baseline = baseline
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

        self.policy.handle_terminal()
        self.baseline.handle_terminal()

    def handle_batch(self, batch: Sequence[Transition]) -> None:
        self.baseline.handle_batch(batch)

        returns = discounted_returns([t.reward for t in batch], float(self.gamma))
        for i in range(len(batch) - 1, -1, -1):
            t = batch[i]
            s = t.from_.state
            baseline = self.baseline.predict_qsa(s, t.action)

            best_effort(self.policy.update, s, t.action, self.alpha * (returns[i] - baseline))

    def sample_target(self, state: Any) -> Any:
        return self.policy.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def weights_view(self) -> np.ndarray:
        return self.policy.weights_view()
