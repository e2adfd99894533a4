"""Online reinforcement-learning algorithms over linear function approximation."""

from .types import Domain, Full, Observation, Partial, Terminal, Transition
from .parameter import Parameter
from .trace import Trace
from .shared import BorrowError, Shared, make_shared
from .algorithms import (
    ActionValuePredictor,
    Algorithm,
    BatchLearner,
    Controller,
    OnlineLearner,
    Prediction,
    UnsupportedCapability,
    ValuePredictor,
)
from .approx import ApproximationError, LinearFunction
from .prediction import TD, ExponentialTD, TDLambda, VarianceTD
from .td_control import PAL, QLearning
from .gtd import GreedyGQ
from .totd import TOSARSALambda
from .actor_critic import DAC, TDAC, TDACLambda
from .mc import BaselineREINFORCE
from .checkpoint import CheckpointManager
from .config import load_config, parameters_from_config

__all__ = [
    "Domain",
    "Full",
    "Observation",
    "Partial",
    "Terminal",
    "Transition",
    "Parameter",
    "Trace",
    "BorrowError",
    "Shared",
    "make_shared",
    "ActionValuePredictor",
    "Algorithm",
    "BatchLearner",
    "Controller",
    "OnlineLearner",
    "Prediction",
    "UnsupportedCapability",
    "ValuePredictor",
    "ApproximationError",
    "LinearFunction",
    "TD",
    "ExponentialTD",
    "TDLambda",
    "VarianceTD",
    "PAL",
    "QLearning",
    "GreedyGQ",
    "TOSARSALambda",
    "DAC",
    "TDAC",
    "TDACLambda",
    "BaselineREINFORCE",
    "CheckpointManager",
    "load_config",
    "parameters_from_config",
]
