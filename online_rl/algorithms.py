"""Capability contracts every learning algorithm is composed from.

An algorithm subclasses exactly the contracts it supports: `Algorithm` for
episode housekeeping, `OnlineLearner`/`BatchLearner` for learning,
`Controller` for acting, `ValuePredictor`/`ActionValuePredictor` for queries.
Composite algorithms hold their parts and forward calls explicitly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import numpy as np

from .approx import ApproximationError
from .shared import Shared
from .types import Transition

logger = logging.getLogger(__name__)


class UnsupportedCapability(TypeError):
    """A prediction or update was requested from an object that cannot provide it."""


class Algorithm:
    def handle_terminal(self) -> None:
        """Housekeeping after the terminal transition of an episode."""


class OnlineLearner(Algorithm, ABC):
    @abstractmethod
    def handle_transition(self, transition: Transition) -> None:
        """Learn from a single transition, in the order transitions occur."""

    def handle_sequence(self, sequence: Iterable[Transition]) -> None:
        for t in sequence:
            self.handle_transition(t)


class BatchLearner(Algorithm, ABC):
    @abstractmethod
    def handle_batch(self, batch: Sequence[Transition]) -> None:
        """Learn from a whole episode, ordered oldest to newest."""


class Controller(ABC):
    @abstractmethod
    def sample_target(self, state: Any) -> Any:
        """Action of the policy being evaluated or improved."""

    @abstractmethod
    def sample_behaviour(self, state: Any) -> Any:
        """Action to execute in the environment."""


class ValuePredictor(ABC):
    @abstractmethod
    def predict_v(self, state: Any) -> float:
        """Estimated V(s)."""


class ActionValuePredictor(ValuePredictor):
    def predict_qsa(self, state: Any, action: Any) -> float:
        return self.predict_v(state)

    def predict_qs(self, state: Any) -> np.ndarray:
        raise UnsupportedCapability(f"{type(self).__name__} does not provide Q(s, .)")

    def try_predict_qs(self, state: Any) -> "Prediction":
        if not supports_qs(self):
            return Prediction.unsupported(f"{type(self).__name__} does not provide Q(s, .)")
        return Prediction.supported(self.predict_qs(state))


@dataclass(frozen=True)
class Prediction:
    """Either a value or the reason the capability is absent."""

    value: Any = None
    reason: str | None = None

    @classmethod
    def supported(cls, value: Any) -> "Prediction":
        return cls(value=value)

    @classmethod
    def unsupported(cls, reason: str) -> "Prediction":
        return cls(reason=reason)

    @property
    def ok(self) -> bool:
        return self.reason is None

    def unwrap(self) -> Any:
        if self.reason is not None:
            raise UnsupportedCapability(self.reason)
        return self.value


def supports_qs(obj: Any) -> bool:
    """Whether `obj` can produce Q(s, .) rather than raising `UnsupportedCapability`.

    Wrappers that answer `predict_qs` through another component name it with
    `qs_delegate()`.
    """
    if isinstance(obj, Shared):
        with obj.read() as inner:
            return supports_qs(inner)
    delegate = getattr(obj, "qs_delegate", None)
    if callable(delegate):
        return supports_qs(delegate())
    method = getattr(type(obj), "predict_qs", None)
    if method is None:
        return False
    return method is not ActionValuePredictor.predict_qs


def require_capabilities(obj: Any, *names: str, role: str = "component") -> None:
    """Fail at wiring time if `obj` lacks any of the named methods.

    A `Shared` handle forwards every method, so the object behind it is checked.
    """
    if isinstance(obj, Shared):
        with obj.read() as inner:
            require_capabilities(inner, *names, role=role)
        return
    missing = [name for name in names if not callable(getattr(obj, name, None))]
    if "predict_qs" in names and "predict_qs" not in missing and not supports_qs(obj):
        missing.append("predict_qs")
    if missing:
        raise UnsupportedCapability(
            f"{role} {type(obj).__name__} is missing required capabilities: {', '.join(missing)}"
        )


def best_effort(update: Callable[..., Any], *args: Any) -> bool:
    """Apply one weight update; a malformed update is skipped, not fatal."""
    try:
        update(*args)
    except ApproximationError as exc:
        logger.debug("update_skipped target=%s reason=%s", getattr(update, "__qualname__", update), exc)
        return False
    return True


def td_error(reward: float, value: float, gamma: float, next_value: Callable[[], float], terminated: bool) -> float:
    """r - V(s) on terminal transitions, else r + gamma * V(s') - V(s)."""
    if terminated:
        return reward - value
    return reward + gamma * next_value() - value
