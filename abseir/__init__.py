"""Approximate Bayesian calibration of stochastic spatial SEIR models."""

__version__ = "0.1.0"

from abseir.calibration import ABCResult
from abseir.components import (
    DataModel,
    DistanceModel,
    ExposureModel,
    InitialValueContainer,
    ReinfectionModel,
    TransitionPriors,
)
from abseir.config import Algorithm, ConfigurationError, SamplingControl, load_config
from abseir.model import SpatialSEIRModel

__all__ = [
    "ABCResult",
    "Algorithm",
    "ConfigurationError",
    "DataModel",
    "DistanceModel",
    "ExposureModel",
    "InitialValueContainer",
    "ReinfectionModel",
    "SamplingControl",
    "SpatialSEIRModel",
    "TransitionPriors",
    "load_config",
]
