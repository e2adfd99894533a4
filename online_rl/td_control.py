"""Off-policy TD control over a discrete action Q-function.

Both algorithms train a Q-function shared with a greedy target policy, while
a separate behaviour policy (e.g. epsilon-greedy over the same Q-function)
chooses the actions executed in the environment.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .algorithms import ActionValuePredictor, Controller, OnlineLearner, best_effort, require_capabilities
from .approx import Parameterised
from .parameter import Parameter
from .policies import Greedy, Policy
from .shared import Shared, make_shared
from .types import Transition


class _GreedyQControl(OnlineLearner, Controller, ActionValuePredictor, Parameterised):
    def __init__(
        self,
        q_func: Any,
        policy: Policy,
        alpha: Parameter | float,
        gamma: Parameter | float,
        seed: int | None = None,
    ):
        q_func = make_shared(q_func)
        require_capabilities(q_func, "embed", "evaluate", "evaluate_index", "update_index", role="Q-function")
        require_capabilities(policy, "sample", "handle_terminal", role="behaviour policy")
        self.q_func: Shared = q_func
        self.policy = policy
        self.target = Greedy(q_func.clone(), seed=seed)
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

        self.policy.handle_terminal()
        self.target.handle_terminal()

    def sample_target(self, state: Any) -> int:
        return self.target.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def predict_v(self, state: Any) -> float:
        return float(np.max(self.predict_qs(state)))

    def predict_qsa(self, state: Any, action: int) -> float:
        return self.q_func.evaluate_index(self.q_func.embed(state), action)

    def predict_qs(self, state: Any) -> np.ndarray:
        return np.asarray(self.q_func.evaluate(self.q_func.embed(state)), dtype=np.float64).reshape(-1)

    def weights_view(self) -> np.ndarray:
        return self.q_func.weights_view()


class QLearning(_GreedyQControl):
    """Watkins' Q-learning.

    References: Watkins & Dayan (1992). Q-learning. Machine Learning 8:279-292.
    """

    def handle_transition(self, t: Transition) -> None:
        s = t.from_.state
        qsa = self.predict_qsa(s, t.action)
        if t.terminated():
            residual = t.reward - qsa
        else:
            ns = t.to.state
            na = self.sample_target(ns)
            residual = t.reward + self.gamma * self.predict_qsa(ns, na) - qsa

        best_effort(self.q_func.update_index, self.q_func.embed(s), t.action, self.alpha * residual)


class PAL(_GreedyQControl):
    """Persistent Advantage Learning.

    The target is the larger of the advantage-learning target and its
    "persistent" counterpart evaluated at the next state, which widens the
    action gap without becoming inadmissible.

    `kappa` is the action-gap coefficient; when omitted it follows `alpha`.

    References: Bellemare et al. (2016). Increasing the Action Gap: New
    Operators for Reinforcement Learning. AAAI.
    """

    def __init__(
        self,
        q_func: Any,
        policy: Policy,
        alpha: Parameter | float,
        gamma: Parameter | float,
        kappa: Parameter | float | None = None,
        seed: int | None = None,
    ):
        super().__init__(q_func, policy, alpha, gamma, seed=seed)
        self.kappa = None if kappa is None else Parameter.coerce(kappa)

    @property
    def gap_coefficient(self) -> float:
        return self.alpha.value if self.kappa is None else self.kappa.value

    def handle_terminal(self) -> None:
        super().handle_terminal()
        if self.kappa is not None:
            self.kappa = self.kappa.step()

    def handle_transition(self, t: Transition) -> None:
        s = t.from_.state
        a = int(t.action)
        phi_s = self.q_func.embed(s)
        qs = np.asarray(self.q_func.evaluate(phi_s), dtype=np.float64).reshape(-1)

        if t.terminated():
            residual = t.reward - qs[a]
        else:
            ns = t.to.state
            nqs = self.predict_qs(ns)

            a_star = self.sample_target(s)
            na_star = self.sample_target(ns)
            kappa = self.gap_coefficient

            td = t.reward + self.gamma * nqs[na_star] - qs[a]
            al = td - kappa * (qs[a_star] - qs[a])
            residual = max(al, td - kappa * (nqs[na_star] - nqs[a]))

        best_effort(self.q_func.update_index, phi_s, a, self.alpha * residual)
