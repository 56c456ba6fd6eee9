from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Sequence

import numpy as np

from abseir.components._arrays import readonly
from abseir.config import ComponentType, ConfigurationError


@dataclass(frozen=True)
class DistanceModel:
    """Spatial coupling between locations.

    ``distance_matrices`` are applied at every time point. ``lagged_matrices``
    holds, for each time point, a list of matrices where entry ``j`` couples
    to the infectious pressure ``j + 1`` steps earlier. When no lagged
    matrices are given, ``n_tpt`` empty lists are created and ``tdm_empty``
    is set.
    """

    component_type: ClassVar[ComponentType] = ComponentType.DISTANCE_MODEL

    distance_matrices: Sequence = ()
    lagged_matrices: Optional[Sequence] = None
    n_tpt: Optional[int] = None
    spatial_prior: Sequence[float] = (1.0, 1.0)
    dm_list: List[np.ndarray] = field(init=False)
    tdm_list: List[List[np.ndarray]] = field(init=False)
    tdm_empty: bool = field(init=False)

    def __post_init__(self) -> None:
        dm_list = [readonly(m, ndim=2) for m in self.distance_matrices]
        if self.lagged_matrices is None:
            if self.n_tpt is None:
                raise ConfigurationError("Either lagged_matrices or n_tpt must be supplied.")
            tdm_list: List[List[np.ndarray]] = [[] for _ in range(self.n_tpt)]
        else:
            tdm_list = [[readonly(m, ndim=2) for m in lags] for lags in self.lagged_matrices]
        tdm_empty = all(len(lags) == 0 for lags in tdm_list)

        shapes = {m.shape for m in dm_list} | {m.shape for lags in tdm_list for m in lags}
        if len(shapes) > 1:
            raise ConfigurationError(f"Distance matrices have inconsistent shapes: {sorted(shapes)}")
        for shape in shapes:
            if shape[0] != shape[1]:
                raise ConfigurationError(f"Distance matrices must be square, got {shape}.")
        if not shapes:
            raise ConfigurationError("At least one distance matrix is required.")

        spatial_prior = readonly(self.spatial_prior, ndim=1)
        if spatial_prior.shape[0] != 2 or np.any(spatial_prior <= 0):
            raise ConfigurationError("spatial_prior must hold two positive values.")

        object.__setattr__(self, "dm_list", dm_list)
        object.__setattr__(self, "tdm_list", tdm_list)
        object.__setattr__(self, "tdm_empty", tdm_empty)
        object.__setattr__(self, "spatial_prior", spatial_prior)

    @property
    def n_loc(self) -> int:
        if self.dm_list:
            return self.dm_list[0].shape[0]
        return next(m for lags in self.tdm_list for m in lags).shape[0]

    @property
    def n_lags(self) -> int:
        return len(self.tdm_list[0]) if self.tdm_list else 0
