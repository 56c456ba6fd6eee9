from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError


@dataclass(frozen=True)
class InitialValueContainer:
    component_type: ClassVar[ComponentType] = ComponentType.INITIAL_VALUES

    S0: np.ndarray
    E0: np.ndarray
    I0: np.ndarray
    R0: np.ndarray

    def __post_init__(self) -> None:
        arrays = {name: readonly(getattr(self, name), dtype=np.int64, ndim=1) for name in ("S0", "E0", "I0", "R0")}
        lengths = {a.shape[0] for a in arrays.values()}
        if len(lengths) != 1:
            raise ConfigurationError("Initial S, E, I and R vectors must have the same length.")
        if any(np.any(a < 0) for a in arrays.values()):
            raise ConfigurationError("Initial compartment sizes must be non-negative.")
        for name, array in arrays.items():
            object.__setattr__(self, name, array)

    @property
    def population(self) -> np.ndarray:
        return self.S0 + self.E0 + self.I0 + self.R0
