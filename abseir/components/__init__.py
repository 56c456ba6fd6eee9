"""
Model Components
================
Read-only building blocks validated by the spatial SEIR orchestrator.

Each component carries a ``component_type`` discriminant so that the
orchestrator can detect components passed in the wrong order.
"""

from abseir.config import ComponentType, SamplingControl
from abseir.components.data import DataModel
from abseir.components.distance import DistanceModel
from abseir.components.exposure import ExposureModel
from abseir.components.initial_values import InitialValueContainer
from abseir.components.reinfection import ReinfectionModel
from abseir.components.transitions import (
    ExponentialTransitionDistribution,
    TransitionDistribution,
    TransitionPriors,
    WeibullTransitionDistribution,
)

__all__ = [
    "ComponentType",
    "DataModel",
    "DistanceModel",
    "ExposureModel",
    "InitialValueContainer",
    "ReinfectionModel",
    "SamplingControl",
    "TransitionPriors",
    "TransitionDistribution",
    "ExponentialTransitionDistribution",
    "WeibullTransitionDistribution",
]
