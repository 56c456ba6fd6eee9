from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Literal

import numpy as np

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError


@dataclass(frozen=True)
class DataModel:
    """Observed incidence, one row per time point and one column per location.

    Missing observations are given as NaN and excluded from the distance.
    ``phi > 0`` switches on an overdispersed observation layer.
    """

    component_type: ClassVar[ComponentType] = ComponentType.DATA_MODEL

    Y: np.ndarray
    compartment: Literal["I_star", "R_star"] = "I_star"
    cumulative: bool = False
    phi: float = 0.0
    na_mask: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        Y = readonly(self.Y, ndim=2)
        if self.compartment not in ("I_star", "R_star"):
            raise ConfigurationError(f"Unknown data model compartment: {self.compartment}")
        if self.phi < 0:
            raise ConfigurationError("Overdispersion parameter phi must be non-negative.")
        na_mask = readonly(np.isnan(Y), dtype=bool)
        if np.any(Y[~na_mask] < 0):
            raise ConfigurationError("Observed counts must be non-negative.")
        object.__setattr__(self, "Y", Y)
        object.__setattr__(self, "na_mask", na_mask)

    @property
    def n_tpt(self) -> int:
        return self.Y.shape[0]

    @property
    def n_loc(self) -> int:
        return self.Y.shape[1]
