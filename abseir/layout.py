from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

import numpy as np

TRANSITION_PARAM_NAMES = {
    "exponential": ["gamma_ei", "gamma_ir"],
    "weibull": ["ei_shape", "ei_scale", "ir_shape", "ir_scale"],
    "path_specific": [],
}


@dataclass(frozen=True)
class ParameterLayout:
    """Column layout of a particle: ``[beta | beta_rs | rho | transition]``.

    Shared by the prior sampler, the prior density and the simulation
    workers, so every consumer slices parameter vectors the same way.
    """

    n_beta: int
    n_beta_rs: int
    n_rho: int
    transition_mode: str

    @property
    def n_trans(self) -> int:
        return len(TRANSITION_PARAM_NAMES[self.transition_mode])

    @property
    def n_params(self) -> int:
        return self.n_beta + self.n_beta_rs + self.n_rho + self.n_trans

    @property
    def beta(self) -> slice:
        return slice(0, self.n_beta)

    @property
    def beta_rs(self) -> slice:
        return slice(self.n_beta, self.n_beta + self.n_beta_rs)

    @property
    def rho(self) -> slice:
        start = self.n_beta + self.n_beta_rs
        return slice(start, start + self.n_rho)

    @property
    def transition(self) -> slice:
        start = self.n_beta + self.n_beta_rs + self.n_rho
        return slice(start, start + self.n_trans)

    @property
    def names(self) -> List[str]:
        return (
            [f"beta_{j}" for j in range(self.n_beta)]
            + [f"beta_rs_{j}" for j in range(self.n_beta_rs)]
            + [f"rho_{j}" for j in range(self.n_rho)]
            + TRANSITION_PARAM_NAMES[self.transition_mode]
        )

    def split(self, params: np.ndarray) -> Dict[str, np.ndarray]:
        params = np.asarray(params)
        return {
            "beta": params[..., self.beta],
            "beta_rs": params[..., self.beta_rs],
            "rho": params[..., self.rho],
            "transition": params[..., self.transition],
        }
