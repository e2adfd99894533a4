"""Annealed scalar hyperparameters (learning rates, discount factors, exploration)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Union


@dataclass(frozen=True)
class Constant:
    """Schedule that never changes the value."""

    def advance(self, value: float) -> tuple[float, "Constant"]:
        return value, self

    def bounds(self) -> tuple[float, float]:
        return -math.inf, math.inf


@dataclass(frozen=True)
class ExponentialDecay:
    """v <- max(floor, v * rate)"""

    rate: float
    floor: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 < self.rate <= 1.0:
            raise ValueError(f"decay rate must be in (0, 1], got {self.rate}")

    def advance(self, value: float) -> tuple[float, "ExponentialDecay"]:
        return max(self.floor, value * self.rate), self

    def bounds(self) -> tuple[float, float]:
        return self.floor, math.inf


@dataclass(frozen=True)
class LinearDecay:
    """v <- max(floor, v - step)"""

    step: float
    floor: float = 0.0

    def __post_init__(self) -> None:
        if self.step < 0.0:
            raise ValueError(f"linear decay step must be >= 0, got {self.step}")

    def advance(self, value: float) -> tuple[float, "LinearDecay"]:
        return max(self.floor, value - self.step), self

    def bounds(self) -> tuple[float, float]:
        return self.floor, math.inf


@dataclass(frozen=True)
class PolynomialDecay:
    """v_t = max(floor, v_0 / (t + 1)^power), counted in episodes."""

    power: float
    floor: float = 0.0
    initial: float | None = None
    ticks: int = 0

    def __post_init__(self) -> None:
        if self.power < 0.0:
            raise ValueError(f"polynomial decay power must be >= 0, got {self.power}")

    def advance(self, value: float) -> tuple[float, "PolynomialDecay"]:
        initial = value if self.initial is None else self.initial
        ticks = self.ticks + 1
        new_value = max(self.floor, initial / float(ticks + 1) ** self.power)
        return new_value, replace(self, initial=initial, ticks=ticks)

    def bounds(self) -> tuple[float, float]:
        return self.floor, math.inf


Schedule = Union[Constant, ExponentialDecay, LinearDecay, PolynomialDecay]


def _value_of(other: object) -> float:
    if isinstance(other, Parameter):
        return other.value
    return other  # type: ignore[return-value]


@dataclass(frozen=True)
class Parameter:
    """A hyperparameter value plus the schedule that anneals it between episodes.

    Arithmetic and comparisons act on `value`, so a Parameter can be dropped
    straight into numeric expressions: ``alpha * td_error``.
    """

    value: float
    schedule: Schedule = field(default_factory=Constant)

    # ndarray operands defer to the reflected operators below.
    __array_ufunc__ = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))
        low, high = self.schedule.bounds()
        if not low <= self.value <= high:
            raise ValueError(f"parameter value {self.value} outside schedule bounds [{low}, {high}]")

    @classmethod
    def coerce(cls, value: "Parameter | float") -> "Parameter":
        if isinstance(value, Parameter):
            return value
        return cls(float(value))

    @classmethod
    def exponential(cls, value: float, rate: float, floor: float = 0.0) -> "Parameter":
        return cls(value, ExponentialDecay(rate=rate, floor=floor))

    @classmethod
    def linear(cls, value: float, step: float, floor: float = 0.0) -> "Parameter":
        return cls(value, LinearDecay(step=step, floor=floor))

    @classmethod
    def polynomial(cls, value: float, power: float, floor: float = 0.0) -> "Parameter":
        return cls(value, PolynomialDecay(power=power, floor=floor))

    def step(self) -> "Parameter":
        value, schedule = self.schedule.advance(self.value)
        return Parameter(value, schedule)

    def __float__(self) -> float:
        return self.value

    def __mul__(self, other: object) -> float:
        return self.value * _value_of(other)

    __rmul__ = __mul__

    def __add__(self, other: object) -> float:
        return self.value + _value_of(other)

    __radd__ = __add__

    def __sub__(self, other: object) -> float:
        return self.value - _value_of(other)

    def __rsub__(self, other: object) -> float:
        return _value_of(other) - self.value

    def __truediv__(self, other: object) -> float:
        return self.value / _value_of(other)

    def __rtruediv__(self, other: object) -> float:
        return _value_of(other) / self.value

    def __neg__(self) -> float:
        return -self.value

    def __lt__(self, other: object) -> bool:
        return self.value < _value_of(other)

    def __le__(self, other: object) -> bool:
        return self.value <= _value_of(other)

    def __gt__(self, other: object) -> bool:
        return self.value > _value_of(other)

    def __ge__(self, other: object) -> bool:
        return self.value >= _value_of(other)
