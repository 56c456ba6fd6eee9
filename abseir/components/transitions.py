"""
Transition Distributions
========================
Sojourn-time models for the E to I and I to R transitions.

Three modes are supported:

- ``exponential``: constant per-step transition probability, the two
  rates carry Gamma hyperpriors (rows 0 and 1 of each hyperparameter
  matrix hold shape and rate).
- ``weibull``: Weibull sojourn with Gamma hyperpriors on both the shape
  (rows 0, 1) and the scale (rows 2, 3).
- ``path_specific``: fixed sojourn with mean ``inf_mean``; contributes
  no calibrated parameters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional, Sequence

import numpy as np
from scipy import special, stats

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError

TRANSITION_MODES = ("exponential", "weibull", "path_specific")


class TransitionDistribution(ABC):
    """Sojourn-time distribution for a single compartment transition."""

    n_params: ClassVar[int]

    @abstractmethod
    def sample(self, rng: np.random.Generator, size: int = 1) -> np.ndarray:
        """Draw sojourn durations under the current parameters."""

    @abstractmethod
    def eval_param_prior(self, segment: Sequence[float]) -> float:
        """Hyperprior density of this transition's own parameters."""

    @abstractmethod
    def set_params(self, segment: Sequence[float]) -> None:
        ...

    @abstractmethod
    def mean(self) -> float:
        ...

    def _check_segment(self, segment: Sequence[float]) -> np.ndarray:
        segment = np.asarray(segment, dtype=np.float64)
        if segment.shape != (self.n_params,):
            raise ConfigurationError(
                f"{type(self).__name__} expects {self.n_params} parameters, got shape {segment.shape}."
            )
        return segment


class ExponentialTransitionDistribution(TransitionDistribution):
    n_params = 1

    def __init__(self, rate: float, hyperparams: Optional[Sequence[float]] = None):
        self.rate = float(rate)
        self.hyperparams = np.asarray((1.0, 1.0) if hyperparams is None else hyperparams, dtype=np.float64)

    def sample(self, rng: np.random.Generator, size: int = 1) -> np.ndarray:
        return rng.exponential(1.0 / self.rate, size=size)

    def eval_param_prior(self, segment: Sequence[float]) -> float:
        (rate,) = self._check_segment(segment)
        shape, hyper_rate = self.hyperparams[:2]
        return float(stats.gamma.pdf(rate, a=shape, scale=1.0 / hyper_rate))

    def set_params(self, segment: Sequence[float]) -> None:
        (self.rate,) = self._check_segment(segment)

    def mean(self) -> float:
        return 1.0 / self.rate


class WeibullTransitionDistribution(TransitionDistribution):
    """Weibull(shape, scale) sojourn with independent Gamma hyperpriors.

    ``hyperparams`` is ``(shape_a, shape_b, scale_a, scale_b)`` where the
    Weibull shape follows Gamma(shape_a, rate=shape_b) and the scale
    follows Gamma(scale_a, rate=scale_b). Current parameters start at the
    hyperprior means.
    """

    n_params = 2

    def __init__(self, hyperparams: Sequence[float]):
        hyperparams = np.asarray(hyperparams, dtype=np.float64)
        if hyperparams.shape != (4,) or np.any(hyperparams <= 0):
            raise ConfigurationError("Weibull transitions require four positive hyperparameters.")
        self.hyperparams = hyperparams
        self.shape = hyperparams[0] / hyperparams[1]
        self.scale = hyperparams[2] / hyperparams[3]

    def sample(self, rng: np.random.Generator, size: int = 1) -> np.ndarray:
        return self.scale * rng.weibull(self.shape, size=size)

    def eval_param_prior(self, segment: Sequence[float]) -> float:
        shape, scale = self._check_segment(segment)
        h = self.hyperparams
        return float(
            stats.gamma.pdf(shape, a=h[0], scale=1.0 / h[1])
            * stats.gamma.pdf(scale, a=h[2], scale=1.0 / h[3])
        )

    def set_params(self, segment: Sequence[float]) -> None:
        self.shape, self.scale = self._check_segment(segment)

    def mean(self) -> float:
        return float(self.scale * special.gamma(1.0 + 1.0 / self.shape))


def _hyperparameter_matrix(values: Optional[Sequence], name: str, mode: str) -> np.ndarray:
    if values is None:
        matrix = np.ones((4, 1))
    else:
        matrix = np.array(values, dtype=np.float64)
        if matrix.ndim == 1:
            matrix = matrix[:, None]
    if matrix.ndim != 2 or matrix.shape[0] not in (2, 4):
        raise ConfigurationError(f"{name} must have 2 or 4 rows, got shape {matrix.shape}.")
    if mode == "weibull" and matrix.shape[0] != 4:
        raise ConfigurationError(f"Weibull {name} must have 4 rows, got shape {matrix.shape}.")
    if matrix.shape[0] == 2:
        matrix = np.vstack([matrix, np.ones_like(matrix)])
    if np.any(matrix <= 0):
        raise ConfigurationError(f"{name} hyperparameters must be positive.")
    return readonly(matrix)


@dataclass(frozen=True)
class TransitionPriors:
    component_type: ClassVar[ComponentType] = ComponentType.TRANSITION_PRIORS

    mode: str = "exponential"
    E_to_I_params: Optional[np.ndarray] = None
    I_to_R_params: Optional[np.ndarray] = None
    inf_mean: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("E_to_I_params", "I_to_R_params"):
            object.__setattr__(self, name, _hyperparameter_matrix(getattr(self, name), name, self.mode))
        if self.mode == "path_specific" and (self.inf_mean is None or self.inf_mean <= 0):
            raise ConfigurationError("path_specific transitions require a positive inf_mean.")

    @classmethod
    def exponential(
        cls, ei_shape: float, ei_rate: float, ir_shape: float, ir_rate: float
    ) -> "TransitionPriors":
        return cls(mode="exponential", E_to_I_params=[[ei_shape], [ei_rate]], I_to_R_params=[[ir_shape], [ir_rate]])

    @classmethod
    def weibull(cls, ei_params: Sequence[float], ir_params: Sequence[float]) -> "TransitionPriors":
        return cls(mode="weibull", E_to_I_params=ei_params, I_to_R_params=ir_params)

    @classmethod
    def path_specific(cls, inf_mean: float) -> "TransitionPriors":
        return cls(mode="path_specific", inf_mean=inf_mean)
