"""True-online TD control."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .algorithms import ActionValuePredictor, Controller, OnlineLearner, best_effort, require_capabilities
from .approx import Parameterised
from .parameter import Parameter
from .policies import Policy
from .shared import Shared, make_shared
from .trace import Trace
from .types import Transition

logger = logging.getLogger(__name__)


class TOSARSALambda(OnlineLearner, Controller, ActionValuePredictor, Parameterised):
    """True online SARSA(lambda).

    The dutch trace lives in the Q-function's full weight space (features x
    actions), and every step applies the extra (Q_old - Q) correction along
    the current state-action features. Together they reproduce the offline
    lambda-return forward view exactly.

    References: van Seijen, Mahmood, Pilarski, Machado & Sutton (2016). True
    online temporal-difference learning. JMLR 17(145):1-40.
    """

    def __init__(
        self,
        q_func: Any,
        policy: Policy,
        trace: Trace | Parameter | float,
        alpha: Parameter | float,
        gamma: Parameter | float,
    ):
        q_func = make_shared(q_func)
        require_capabilities(q_func, "embed", "evaluate", "evaluate_index", "update_index", "update_raw", role="Q-function")
        require_capabilities(policy, "sample", "handle_terminal", role="policy")
        self.q_func: Shared = q_func
        self.policy = policy
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

        shape = tuple(q_func.weights_dim())
        if not isinstance(trace, Trace):
            trace = Trace(shape, trace)
        if trace.weights.shape != shape:
            raise ValueError(f"trace must have shape {shape}, got {trace.weights.shape}")
        self.trace = trace
        self.q_old = 0.0

    def state_action_features(self, phi: np.ndarray, action: int) -> np.ndarray:
        x = np.zeros(self.trace.weights.shape, dtype=np.float64)
        x[:, int(action)] = phi
        return x

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()
        self.trace.handle_terminal()
        self.q_old = 0.0

        self.policy.handle_terminal()
        logger.debug("episode_end alpha=%.6g gamma=%.6g lambda=%.6g", self.alpha.value, self.gamma.value, self.trace.lambda_)

    def handle_transition(self, t: Transition) -> None:
        s = t.from_.state
        a = int(t.action)
        phi_s = self.q_func.embed(s)
        x = self.state_action_features(phi_s, a)

        decay_rate = self.gamma * self.trace.lambda_
        self.trace.true_online(x, decay_rate, self.alpha.value)
        z = self.trace.get()

        qsa = self.q_func.evaluate_index(phi_s, a)
        q_old = self.q_old

        if t.terminated():
            self.q_old = 0.0
            self.trace.reset()

            residual = t.reward - q_old
        else:
            ns = t.to.state
            na = self.sample_behaviour(ns)
            nqsna = self.q_func.evaluate_index(self.q_func.embed(ns), na)

            self.q_old = nqsna

            residual = t.reward + self.gamma * nqsna - q_old

        best_effort(self.q_func.update_raw, z * (self.alpha * residual))
        best_effort(self.q_func.update_index, phi_s, a, self.alpha * (q_old - qsa))

    def sample_target(self, state: Any) -> Any:
        return self.policy.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def predict_v(self, state: Any) -> float:
        probabilities = getattr(self.policy, "probabilities", None)
        if probabilities is None:
            return self.predict_qsa(state, self.policy.mpa(state))
        return float(self.predict_qs(state) @ probabilities(state))

    def predict_qs(self, state: Any) -> np.ndarray:
        return np.asarray(self.q_func.evaluate(self.q_func.embed(state)), dtype=np.float64).reshape(-1)

    def predict_qsa(self, state: Any, action: int) -> float:
        return self.q_func.evaluate_index(self.q_func.embed(state), action)

    def weights_view(self) -> np.ndarray:
        return self.q_func.weights_view()
