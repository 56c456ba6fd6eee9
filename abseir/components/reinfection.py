from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

import numpy as np

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError

REINFECTION_MODES = ("SEIRS", "fixed", "SEIR")


@dataclass(frozen=True)
class ReinfectionModel:
    """R to S transition.

    ``SEIRS`` estimates the reinfection coefficients, ``fixed`` uses the
    prior mean as known coefficients and ``SEIR`` disables reinfection.
    """

    component_type: ClassVar[ComponentType] = ComponentType.REINFECTION_MODEL

    mode: Literal["SEIRS", "fixed", "SEIR"] = "SEIR"
    X_rs: Optional[np.ndarray] = None
    beta_prior_mean: Optional[np.ndarray] = None
    beta_prior_precision: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        if self.mode not in REINFECTION_MODES:
            raise ConfigurationError(f"Unknown reinfection mode: {self.mode}")
        if self.mode == "SEIR":
            X_rs = readonly(np.zeros((0, 1)) if self.X_rs is None else self.X_rs, ndim=2)
            mean = readonly(np.zeros(X_rs.shape[1]), ndim=1)
            precision = readonly(np.full(X_rs.shape[1], -1.0), ndim=1)
        else:
            if self.X_rs is None or self.beta_prior_mean is None:
                raise ConfigurationError(f"Reinfection mode {self.mode} requires X_rs and beta_prior_mean.")
            X_rs = readonly(self.X_rs, ndim=2)
            mean = readonly(self.beta_prior_mean, ndim=1)
            if self.mode == "fixed":
                precision = readonly(np.full(X_rs.shape[1], -1.0), ndim=1)
            else:
                if self.beta_prior_precision is None:
                    raise ConfigurationError("Reinfection mode SEIRS requires beta_prior_precision.")
                precision = readonly(self.beta_prior_precision, ndim=1)
                if np.any(precision <= 0):
                    raise ConfigurationError("Reinfection prior precision must be positive.")
            if mean.shape[0] != X_rs.shape[1] or precision.shape[0] != X_rs.shape[1]:
                raise ConfigurationError("Reinfection prior mean and precision must have one entry per covariate.")
        object.__setattr__(self, "X_rs", X_rs)
        object.__setattr__(self, "beta_prior_mean", mean)
        object.__setattr__(self, "beta_prior_precision", precision)

    @property
    def enabled(self) -> bool:
        return self.mode != "SEIR"

    @property
    def estimated(self) -> bool:
        precision = self.beta_prior_precision
        return bool(precision.size > 0 and precision[0] > 0)
