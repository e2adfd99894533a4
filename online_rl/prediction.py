"""Temporal-difference prediction: plain TD(0)/TD(lambda) critics, a
risk-sensitive exponential-utility TD and a TD estimator of return variance."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from .algorithms import (
    ActionValuePredictor,
    BatchLearner,
    OnlineLearner,
    best_effort,
    require_capabilities,
    td_error,
)
from .approx import Parameterised
from .parameter import Parameter
from .trace import Trace
from .types import Transition

REFERENCE_EPS = 1e-5


class TD(OnlineLearner, BatchLearner, ActionValuePredictor, Parameterised):
    """TD(0) state-value estimation.

    Used on its own for policy evaluation and as the critic/baseline inside
    the actor-critic and REINFORCE algorithms. `handle_batch` is the plain
    ordered fold, so it can also serve a batch learner.
    """

    def __init__(self, v_func: Any, alpha: Parameter | float, gamma: Parameter | float):
        require_capabilities(v_func, "embed", "evaluate", "update", role="value function")
        self.v_func = v_func
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

    def handle_transition(self, t: Transition) -> None:
        phi_s = self.v_func.embed(t.from_.state)
        v = float(self.v_func.evaluate(phi_s))
        delta = td_error(t.reward, v, self.gamma, lambda: self.predict_v(t.to.state), t.terminated())

        best_effort(self.v_func.update, phi_s, self.alpha * delta)

    def handle_batch(self, batch: Sequence[Transition]) -> None:
        self.handle_sequence(batch)

    def predict_v(self, state: Any) -> float:
        return float(self.v_func.evaluate(self.v_func.embed(state)))

    def weights_view(self) -> np.ndarray:
        return self.v_func.weights_view()


class TDLambda(TD):
    """TD(lambda) over the value-function features.

    The trace accumulates by default; `replacing=True` resets the entries of
    a revisited state to its features instead of summing them.
    """

    def __init__(
        self,
        v_func: Any,
        trace: Trace,
        alpha: Parameter | float,
        gamma: Parameter | float,
        replacing: bool = False,
    ):
        super().__init__(v_func, alpha, gamma)
        if trace.weights.shape != (v_func.n_features,):
            raise ValueError(f"trace must have shape ({v_func.n_features},), got {trace.weights.shape}")
        self.trace = trace
        self.replacing = replacing

    def handle_terminal(self) -> None:
        super().handle_terminal()
        self.trace.handle_terminal()

    def handle_transition(self, t: Transition) -> None:
        phi_s = self.v_func.embed(t.from_.state)
        v = float(self.v_func.evaluate(phi_s))
        delta = td_error(t.reward, v, self.gamma, lambda: self.predict_v(t.to.state), t.terminated())

        if self.replacing:
            self.trace.replace(phi_s, self.gamma * self.trace.lambda_)
        else:
            self.trace.accumulate(phi_s, self.gamma * self.trace.lambda_)
        best_effort(self.v_func.update, self.trace.get(), self.alpha * delta)

        if t.terminated():
            self.trace.reset()


class ExponentialTD(OnlineLearner, ActionValuePredictor, Parameterised):
    """Exponential-utility TD.

    Learns the multiplicative value V(s) ~ E[exp(rho * G)], normalised by the
    value of a fixed reference state so the estimates stay bounded.
    """

    def __init__(self, v_func: Any, start_state: Any, alpha: Parameter | float, rho: Parameter | float):
        require_capabilities(v_func, "embed", "evaluate", "update", role="value function")
        self.v_func = v_func
        self.start_state = start_state
        self.alpha = Parameter.coerce(alpha)
        self.rho = Parameter.coerce(rho)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.rho = self.rho.step()

    def handle_transition(self, t: Transition) -> None:
        phi_s = self.v_func.embed(t.from_.state)
        v_s = float(self.v_func.evaluate(phi_s))
        # exp(0) = 1 is the utility of the empty continuation.
        v_ns = 1.0 if t.terminated() else self.predict_v(t.to.state)
        v_ref = self.predict_v(self.start_state)

        exp_rr = float(np.exp(self.rho * t.reward))
        if abs(v_ref) < REFERENCE_EPS:
            delta = exp_rr * v_ns - v_s
        else:
            delta = exp_rr / v_ref * v_ns - v_s

        best_effort(self.v_func.update, phi_s, self.alpha * delta)

    def predict_v(self, state: Any) -> float:
        return float(self.v_func.evaluate(self.v_func.embed(state)))

    def weights_view(self) -> np.ndarray:
        return self.v_func.weights_view()


class VarianceTD(OnlineLearner, ActionValuePredictor, Parameterised):
    """Estimates Var[G | s] by TD on the squared value TD error.

    The value estimator is supplied from outside and is only read here; it is
    trained by whoever owns it.
    """

    def __init__(
        self,
        value_estimator: Any,
        variance_estimator: Any,
        alpha: Parameter | float,
        gamma: Parameter | float,
    ):
        require_capabilities(value_estimator, "predict_v", role="value estimator")
        require_capabilities(variance_estimator, "embed", "evaluate", "update", role="variance function")
        self.value_estimator = value_estimator
        self.variance_estimator = variance_estimator
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

    def compute_value_error(self, t: Transition) -> float:
        v = self.value_estimator.predict_v(t.from_.state)
        return td_error(
            t.reward,
            v,
            self.gamma,
            lambda: self.value_estimator.predict_v(t.to.state),
            t.terminated(),
        )

    def handle_transition(self, t: Transition) -> None:
        value_error = self.compute_value_error(t)
        meta_reward = value_error * value_error

        phi_s = self.variance_estimator.embed(t.from_.state)
        var = float(self.variance_estimator.evaluate(phi_s))
        gamma_var = self.gamma * self.gamma
        delta = td_error(meta_reward, var, gamma_var, lambda: self.predict_v(t.to.state), t.terminated())

        best_effort(self.variance_estimator.update, phi_s, self.alpha * delta)

    def predict_v(self, state: Any) -> float:
        return float(self.variance_estimator.evaluate(self.variance_estimator.embed(state)))

    def weights_view(self) -> np.ndarray:
        return self.variance_estimator.weights_view()
