"""Actor-critic control: a policy (actor) improved along the TD error of a
separately trained value estimate (critic)."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .algorithms import (
    ActionValuePredictor,
    Controller,
    OnlineLearner,
    UnsupportedCapability,
    best_effort,
    require_capabilities,
    supports_qs,
    td_error,
)
from .approx import Parameterised
from .parameter import Parameter
from .policies import ParameterisedPolicy
from .trace import Trace
from .types import Transition

logger = logging.getLogger(__name__)

CRITIC_CAPABILITIES = ("handle_transition", "handle_terminal", "predict_v")


class TDAC(OnlineLearner, Controller, ActionValuePredictor, Parameterised):
    """One-step actor-critic.

    The critic learns from every transition it is handed; the actor moves
    along grad log pi(a | s) scaled by alpha times the critic's TD error,
    computed before the critic sees the transition.
    """

    def __init__(
        self,
        critic: Any,
        policy: ParameterisedPolicy,
        alpha: Parameter | float,
        gamma: Parameter | float,
    ):
        require_capabilities(critic, *CRITIC_CAPABILITIES, role="critic")
        require_capabilities(policy, "sample", "update", "weights_view", "handle_terminal", role="policy")
        self.critic = critic
        self.policy = policy
        self.alpha = Parameter.coerce(alpha)
        self.gamma = Parameter.coerce(gamma)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

        self.critic.handle_terminal()
        self.policy.handle_terminal()

    def compute_td_error(self, t: Transition) -> float:
        v = self.critic.predict_v(t.from_.state)
        return td_error(t.reward, v, self.gamma, lambda: self.critic.predict_v(t.to.state), t.terminated())

    def handle_transition(self, t: Transition) -> None:
        delta = self.compute_td_error(t)

        self.critic.handle_transition(t)
        best_effort(self.policy.update, t.from_.state, t.action, self.alpha * delta)

    def sample_target(self, state: Any) -> Any:
        return self.policy.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def predict_v(self, state: Any) -> float:
        return self.critic.predict_v(state)

    def predict_qsa(self, state: Any, action: Any) -> float:
        predict_qsa = getattr(self.critic, "predict_qsa", None)
        if predict_qsa is None:
            return self.predict_v(state)
        return predict_qsa(state, action)

    def qs_delegate(self) -> Any:
        return self.critic

    def predict_qs(self, state: Any) -> np.ndarray:
        if not supports_qs(self.critic):
            raise UnsupportedCapability(f"critic {type(self.critic).__name__} does not provide Q(s, .)")
        return self.critic.predict_qs(state)

    def weights_view(self) -> np.ndarray:
        return self.policy.weights_view()


class TDACLambda(TDAC):
    """Actor-critic with an eligibility trace over the actor's log-gradient.

    trace <- gamma * lambda * trace + grad log pi(a | s), then the actor takes
    the raw step alpha * delta * trace.
    """

    def __init__(
        self,
        critic: Any,
        policy: ParameterisedPolicy,
        alpha: Parameter | float,
        gamma: Parameter | float,
        lambda_: Parameter | float,
    ):
        super().__init__(critic, policy, alpha, gamma)
        require_capabilities(policy, "grad_log", "update_raw", role="policy")
        self.trace = Trace(policy.weights_dim(), lambda_)

    @property
    def lambda_(self) -> Parameter:
        return self.trace.decay_rate

    def handle_terminal(self) -> None:
        super().handle_terminal()
        self.trace.handle_terminal()
        logger.debug("episode_end alpha=%.6g gamma=%.6g lambda=%.6g", self.alpha.value, self.gamma.value, self.trace.lambda_)

    def handle_transition(self, t: Transition) -> None:
        s = t.from_.state
        delta = self.compute_td_error(t)

        self.trace.accumulate(self.policy.grad_log(s, t.action), self.gamma * self.trace.lambda_)

        self.critic.handle_transition(t)
        best_effort(self.policy.update_raw, self.trace.get() * (self.alpha * delta))


class DAC(TDAC):
    """Deterministic actor-critic.

    The actor is a deterministic policy (e.g. `Dirac`): the target action is
    its output, and the behaviour action adds zero-mean Gaussian noise whose
    scale is annealed between episodes. The actor is pulled toward the
    executed action in proportion to the TD error.
    """

    def __init__(
        self,
        critic: Any,
        policy: ParameterisedPolicy,
        alpha: Parameter | float,
        gamma: Parameter | float,
        noise: Parameter | float = 0.1,
        seed: int | None = None,
    ):
        super().__init__(critic, policy, alpha, gamma)
        require_capabilities(policy, "mpa", role="policy")
        self.noise = Parameter.coerce(noise)
        if self.noise < 0.0:
            raise ValueError(f"noise must be >= 0, got {self.noise.value}")
        self.rng = np.random.default_rng(seed)

    def handle_terminal(self) -> None:
        super().handle_terminal()
        self.noise = self.noise.step()

    def sample_target(self, state: Any) -> Any:
        return self.policy.mpa(state)

    def sample_behaviour(self, state: Any) -> Any:
        action = self.policy.mpa(state)
        perturbed = np.asarray(action, dtype=np.float64) + self.rng.normal(0.0, self.noise.value, np.shape(action))
        if np.ndim(action) == 0:
            return float(perturbed)
        return perturbed
