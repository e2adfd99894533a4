"""Gradient-TD control."""

from __future__ import annotations

from typing import Any

import numpy as np

from .algorithms import ActionValuePredictor, Controller, OnlineLearner, best_effort, require_capabilities
from .approx import Parameterised
from .parameter import Parameter
from .policies import Greedy, Policy
from .shared import Shared, make_shared
from .types import Transition


class GreedyGQ(OnlineLearner, Controller, ActionValuePredictor, Parameterised):
    """Greedy-GQ: off-policy control with linear function approximation.

    A secondary linear estimate `w_func` tracks the expected TD error given
    the state features; it corrects the primary update so that learning follows
    the gradient of the projected Bellman error. The secondary step size is
    alpha * beta, annealed independently of alpha.

    References: Maei, Szepesvari, Bhatnagar & Sutton (2010). Toward off-policy
    learning control with function approximation. ICML.
    """

    def __init__(
        self,
        q_func: Any,
        w_func: Any,
        policy: Policy,
        alpha: Parameter | float,
        beta: Parameter | float,
        gamma: Parameter | float,
        seed: int | None = None,
    ):
        q_func = make_shared(q_func)
        require_capabilities(q_func, "embed", "evaluate", "evaluate_index", "update_index", role="Q-function")
        require_capabilities(w_func, "embed", "evaluate", "update", role="secondary weights")
        require_capabilities(policy, "sample", "handle_terminal", role="behaviour policy")
        self.q_func: Shared = q_func
        self.w_func = w_func
        self.policy = policy
        self.target = Greedy(q_func.clone(), seed=seed)
        self.alpha = Parameter.coerce(alpha)
        self.beta = Parameter.coerce(beta)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.beta = self.beta.step()
        self.gamma = self.gamma.step()

        self.policy.handle_terminal()

    def handle_transition(self, t: Transition) -> None:
        s = t.from_.state
        a = int(t.action)
        phi_s = self.q_func.embed(s)
        psi_s = self.w_func.embed(s)
        estimate = float(self.w_func.evaluate(psi_s))
        qsa = self.q_func.evaluate_index(phi_s, a)

        if t.terminated():
            residual = t.reward - qsa

            best_effort(self.w_func.update, psi_s, self.alpha * self.beta * (residual - estimate))
            best_effort(self.q_func.update_index, phi_s, a, self.alpha * residual)
            return

        ns = t.to.state
        na = self.sample_target(ns)
        phi_ns = self.q_func.embed(ns)
        residual = t.reward + self.gamma * self.q_func.evaluate_index(phi_ns, na) - qsa

        best_effort(self.w_func.update, psi_s, self.alpha * self.beta * (residual - estimate))
        best_effort(self.q_func.update_index, phi_s, a, self.alpha * residual)
        # Gradient correction lands on the greedy successor action.
        best_effort(self.q_func.update_index, phi_ns, na, -(self.alpha * self.gamma * estimate))

    def sample_target(self, state: Any) -> int:
        return self.target.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def predict_v(self, state: Any) -> float:
        return float(self.predict_qs(state) @ self.target.probabilities(state))

    def predict_qs(self, state: Any) -> np.ndarray:
        return np.asarray(self.q_func.evaluate(self.q_func.embed(state)), dtype=np.float64).reshape(-1)

    def predict_qsa(self, state: Any, action: int) -> float:
        return self.q_func.evaluate_index(self.q_func.embed(state), action)

    def weights_view(self) -> np.ndarray:
        return self.q_func.weights_view()
