"""YAML hyperparameter configuration.

Each hyperparameter is either a plain number (held constant) or a mapping::

    alpha:
      value: 0.1
      schedule: exponential   # constant | exponential | linear | polynomial
      rate: 0.99              # exponential
      floor: 0.01

`linear` takes `step` and `polynomial` takes `power` instead of `rate`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from .parameter import Parameter

SCHEDULES = ("constant", "exponential", "linear", "polynomial")


def load_config(path: str | Path) -> dict:
    """Load a YAML config file; an empty file gives an empty dict."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config {path} must be a mapping at the top level, got {type(data).__name__}")
    return data


def _required(entry: Mapping[str, Any], key: str, schedule: str) -> float:
    if key not in entry:
        raise ValueError(f"{schedule} schedule requires '{key}'")
    return float(entry[key])


def parameter_from_config(entry: Any) -> Parameter:
    if isinstance(entry, bool):
        raise ValueError(f"parameter must be a number or a mapping, got {entry!r}")
    if isinstance(entry, (int, float)):
        return Parameter(float(entry))
    if not isinstance(entry, Mapping):
        raise ValueError(f"parameter must be a number or a mapping, got {entry!r}")
    if "value" not in entry:
        raise ValueError("parameter mapping requires 'value'")

    value = float(entry["value"])
    schedule = str(entry.get("schedule", "constant")).lower()
    floor = float(entry.get("floor", 0.0))
    if schedule == "constant":
        return Parameter(value)
    if schedule == "exponential":
        return Parameter.exponential(value, _required(entry, "rate", schedule), floor=floor)
    if schedule == "linear":
        return Parameter.linear(value, _required(entry, "step", schedule), floor=floor)
    if schedule == "polynomial":
        return Parameter.polynomial(value, _required(entry, "power", schedule), floor=floor)
    raise ValueError(f"schedule must be one of {', '.join(SCHEDULES)}, got {schedule!r}")


def parameters_from_config(section: Mapping[str, Any] | None) -> dict[str, Parameter]:
    """Convert every entry of a config section into a Parameter, keyed by name."""
    if not section:
        return {}
    return {str(name): parameter_from_config(entry) for name, entry in section.items()}
