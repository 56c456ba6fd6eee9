from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

import numpy as np

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError


@dataclass(frozen=True)
class ExposureModel:
    """Covariates driving the S to E transition.

    ``X`` has ``n_loc * n_tpt`` rows stacked location by location, so the
    row for location ``l`` at time ``t`` is ``l * n_tpt + t``. ``offset``
    scales the exposure intensity per time point.
    """

    component_type: ClassVar[ComponentType] = ComponentType.EXPOSURE_MODEL

    X: np.ndarray
    n_tpt: int
    n_loc: int
    offset: Optional[np.ndarray] = None
    beta_prior_mean: Optional[np.ndarray] = None
    beta_prior_precision: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        X = readonly(self.X, ndim=2)
        if X.shape[0] != self.n_tpt * self.n_loc:
            raise ConfigurationError(
                f"Exposure covariate matrix has {X.shape[0]} rows, expected "
                f"n_tpt * n_loc = {self.n_tpt * self.n_loc}."
            )
        n_beta = X.shape[1]
        offset = readonly(np.ones(self.n_tpt) if self.offset is None else self.offset, ndim=1)
        if offset.shape[0] != self.n_tpt:
            raise ConfigurationError("Exposure offset length must equal the number of time points.")
        mean = readonly(np.zeros(n_beta) if self.beta_prior_mean is None else self.beta_prior_mean, ndim=1)
        precision = readonly(
            np.full(n_beta, 0.1) if self.beta_prior_precision is None else self.beta_prior_precision, ndim=1
        )
        if mean.shape[0] != n_beta or precision.shape[0] != n_beta:
            raise ConfigurationError("Exposure prior mean and precision must have one entry per covariate.")
        if np.any(precision <= 0):
            raise ConfigurationError("Exposure prior precision must be positive.")
        object.__setattr__(self, "X", X)
        object.__setattr__(self, "offset", offset)
        object.__setattr__(self, "beta_prior_mean", mean)
        object.__setattr__(self, "beta_prior_precision", precision)
