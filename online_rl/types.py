"""Shared dataclasses for the learning core: observations, transitions, domains."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable


@dataclass(frozen=True)
class Observation:
    state: Any

    def is_full(self) -> bool:
        return False

    def is_partial(self) -> bool:
        return False

    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class Full(Observation):
    """Fully observed state of the environment."""

    def is_full(self) -> bool:
        return True


@dataclass(frozen=True)
class Partial(Observation):
    """Partially observed state of the environment."""

    def is_partial(self) -> bool:
        return True


@dataclass(frozen=True)
class Terminal(Observation):
    """Last observation of an episode."""

    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class Transition:
    from_: Observation
    action: Any
    reward: float
    to: Observation

    def terminated(self) -> bool:
        return self.to.is_terminal()

    def states(self) -> tuple[Any, Any]:
        return self.from_.state, self.to.state

    def map_states(self, f: Callable[[Any], Any]) -> tuple[Any, Any]:
        return f(self.from_.state), f(self.to.state)

    def replace_action(self, action: Any) -> "Transition":
        return replace(self, action=action)

    def drop_action(self) -> "Transition":
        return replace(self, action=None)

    def replace_reward(self, reward: float) -> "Transition":
        return replace(self, reward=float(reward))

    def negate_reward(self) -> "Transition":
        return replace(self, reward=-self.reward)


class Domain(ABC):
    """Problem domain producing observations and transitions."""

    @abstractmethod
    def emit(self) -> Observation:
        """Observation of the current state of the environment."""

    @abstractmethod
    def step(self, action: Any) -> Transition:
        """Advance the environment by one step under `action`."""

    def is_terminal(self) -> bool:
        return self.emit().is_terminal()
