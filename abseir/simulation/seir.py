"""
Stochastic Spatial SEIR Simulation
==================================
Discrete-time chain-binomial SEIR(S) trajectories scored against observed
incidence.

Each step:
1. Exposure pressure from local and spatially coupled infectious fractions
2. New exposures drawn binomially from susceptibles
3. E to I and I to R transitions released from per-individual sojourn
   schedules drawn from the transition distributions
4. Optional R to S reinfection

The simulated incidence for the compared compartment is turned into a
distance against the observations, once per replicate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from abseir.components.transitions import (
    ExponentialTransitionDistribution,
    TransitionDistribution,
    WeibullTransitionDistribution,
)
from abseir.layout import ParameterLayout


class DegenerateTrajectory(Exception):
    pass


@dataclass(frozen=True)
class SimulationInputs:
    """Read-only arrays shared by every simulation worker."""

    layout: ParameterLayout
    S0: np.ndarray
    E0: np.ndarray
    I0: np.ndarray
    R0: np.ndarray
    offset: np.ndarray
    X: np.ndarray
    X_rs: np.ndarray
    Y: np.ndarray
    na_mask: np.ndarray
    dm_list: List[np.ndarray]
    tdm_list: List[List[np.ndarray]]
    tdm_empty: bool
    transition_mode: str
    E_to_I_params: np.ndarray
    I_to_R_params: np.ndarray
    inf_mean: Optional[float]
    spatial_prior: np.ndarray
    exposure_prior_precision: np.ndarray
    reinfection_prior_precision: np.ndarray
    exposure_prior_mean: np.ndarray
    reinfection_prior_mean: np.ndarray
    reinfection_mode: str
    phi: float
    compartment: str
    cumulative: bool
    m: int

    @property
    def n_tpt(self) -> int:
        return self.Y.shape[0]

    @property
    def n_loc(self) -> int:
        return self.Y.shape[1]


@dataclass
class SimulationResultSet:
    particle_index: int
    statistics: np.ndarray
    valid: bool
    trajectory: Optional[Dict[str, np.ndarray]] = field(default=None, repr=False)


def transition_distributions(
    inputs: SimulationInputs, params: np.ndarray
) -> Tuple[TransitionDistribution, TransitionDistribution]:
    trans = params[inputs.layout.transition]
    if not np.all(trans > 0):
        raise DegenerateTrajectory("transition parameters must be positive")
    if inputs.transition_mode == "exponential":
        return ExponentialTransitionDistribution(trans[0]), ExponentialTransitionDistribution(trans[1])
    if inputs.transition_mode == "weibull":
        ei = WeibullTransitionDistribution(inputs.E_to_I_params[:, 0])
        ir = WeibullTransitionDistribution(inputs.I_to_R_params[:, 0])
        ei.set_params(trans[0:2])
        ir.set_params(trans[2:4])
        return ei, ir
    rate = 1.0 / inputs.inf_mean
    return ExponentialTransitionDistribution(rate), ExponentialTransitionDistribution(rate)


def reinfection_probabilities(inputs: SimulationInputs, params: np.ndarray) -> Optional[np.ndarray]:
    if inputs.reinfection_mode == "SEIR":
        return None
    if inputs.layout.n_beta_rs > 0:
        beta_rs = params[inputs.layout.beta_rs]
    else:
        beta_rs = inputs.reinfection_prior_mean
    return 1.0 - np.exp(-np.exp(inputs.X_rs @ beta_rs))


def _schedule(
    pending: np.ndarray,
    start: int,
    counts: np.ndarray,
    dist: TransitionDistribution,
    rng: np.random.Generator,
) -> None:
    horizon = pending.shape[0]
    for loc in np.flatnonzero(counts):
        durations = dist.sample(rng, int(counts[loc]))
        if np.isnan(durations).any():
            raise DegenerateTrajectory("undefined sojourn duration")
        steps = np.clip(np.ceil(durations), 1, horizon + 1).astype(np.int64)
        when = start + steps
        when = when[when < horizon]
        pending[:, loc] += np.bincount(when, minlength=horizon)[:horizon]


def run_trajectory(
    inputs: SimulationInputs, params: np.ndarray, rng: np.random.Generator
) -> Dict[str, np.ndarray]:
    """Simulate one epidemic; raises DegenerateTrajectory on invalid states."""
    layout = inputs.layout
    n_tpt, n_loc = inputs.n_tpt, inputs.n_loc

    beta = params[layout.beta]
    rho = params[layout.rho]
    with np.errstate(over="ignore", invalid="ignore"):
        eta = np.exp(inputs.X @ beta).reshape(n_loc, n_tpt).T
    ei_dist, ir_dist = transition_distributions(inputs, params)
    p_rs = reinfection_probabilities(inputs, params)
    if p_rs is not None and not np.all((p_rs >= 0) & (p_rs <= 1)):
        raise DegenerateTrajectory("invalid reinfection probability")

    S = inputs.S0.astype(np.int64)
    E = inputs.E0.astype(np.int64)
    I = inputs.I0.astype(np.int64)
    R = inputs.R0.astype(np.int64)
    N = (S + E + I + R).astype(np.float64)

    pending_I = np.zeros((n_tpt, n_loc), dtype=np.int64)
    pending_R = np.zeros((n_tpt, n_loc), dtype=np.int64)
    _schedule(pending_I, -1, E, ei_dist, rng)
    _schedule(pending_R, -1, I, ir_dist, rng)

    names = ("S", "E", "I", "R", "S_star", "E_star", "I_star", "R_star")
    out = {name: np.zeros((n_tpt, n_loc), dtype=np.int64) for name in names}
    pressure_history = np.zeros((n_tpt, n_loc))
    n_dm = len(inputs.dm_list)

    for t in range(n_tpt):
        q = eta[t] * np.divide(I, N, out=np.zeros(n_loc), where=N > 0)
        pressure_history[t] = q
        pressure = q.copy()
        if layout.n_rho:
            for k, D in enumerate(inputs.dm_list):
                pressure += rho[k] * (D @ q)
            for j, T in enumerate(inputs.tdm_list[t]):
                if t - j - 1 >= 0:
                    pressure += rho[n_dm + j] * (T @ pressure_history[t - j - 1])
        p_se = 1.0 - np.exp(-inputs.offset[t] * pressure)
        if not np.all(np.isfinite(p_se)) or np.any(p_se < 0) or np.any(p_se > 1):
            raise DegenerateTrajectory(f"invalid exposure probability at t={t}")

        E_star = rng.binomial(S, p_se)
        I_star = pending_I[t]
        R_star = pending_R[t]
        S_star = rng.binomial(R, p_rs[t]) if p_rs is not None else np.zeros(n_loc, dtype=np.int64)

        S = S - E_star + S_star
        E = E + E_star - I_star
        I = I + I_star - R_star
        R = R + R_star - S_star
        if (S < 0).any() or (E < 0).any() or (I < 0).any() or (R < 0).any():
            raise DegenerateTrajectory(f"negative compartment at t={t}")

        _schedule(pending_I, t, E_star, ei_dist, rng)
        _schedule(pending_R, t, I_star, ir_dist, rng)

        for name, value in zip(names, (S, E, I, R, S_star, E_star, I_star, R_star)):
            out[name][t] = value

    return out


def compute_distance(inputs: SimulationInputs, trajectory: Dict[str, np.ndarray], rng: np.random.Generator) -> float:
    """Sum of absolute differences to the observed series over non-missing cells."""
    simulated = trajectory[inputs.compartment].astype(np.float64)
    if inputs.phi > 0:
        simulated = np.clip(rng.normal(simulated, np.sqrt(simulated / inputs.phi)), 0.0, None)
    if inputs.cumulative:
        simulated = np.cumsum(simulated, axis=0)
    observed = ~inputs.na_mask
    return float(np.abs(inputs.Y[observed] - simulated[observed]).sum())


def simulate_particle(
    inputs: SimulationInputs,
    particle_index: int,
    params: np.ndarray,
    rng: np.random.Generator,
    keep_trajectory: bool = False,
) -> SimulationResultSet:
    """Run ``inputs.m`` replicate trajectories for one particle."""
    statistics = np.full(inputs.m, np.inf)
    kept = None
    try:
        for replicate in range(inputs.m):
            trajectory = run_trajectory(inputs, params, rng)
            statistics[replicate] = compute_distance(inputs, trajectory, rng)
            if keep_trajectory and kept is None:
                kept = trajectory
    except DegenerateTrajectory:
        return SimulationResultSet(particle_index, np.full(inputs.m, np.inf), False)
    return SimulationResultSet(particle_index, statistics, True, kept)
