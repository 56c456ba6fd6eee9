"""
Approximate Bayesian Computation
=================================
Generation loops that turn simulated batches into an approximate posterior.

ABC works by:
1. Sampling particles from the prior
2. Simulating an epidemic for every particle
3. Scoring each simulation against the observed incidence
4. Keeping the particles whose scores are closest to the data

Algorithms are looked up by their sampling control code, so alternative
acceptance rules can be registered without touching the model.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Type

import numpy as np
import pandas as pd

from abseir.config import Algorithm

if TYPE_CHECKING:
    from abseir.model import SpatialSEIRModel


@dataclass
class ABCResult:
    """Accepted particles from an ABC run."""

    particles: np.ndarray
    distances: np.ndarray
    weights: np.ndarray
    parameter_names: List[str]
    n_simulated: int
    n_batches: int
    final_epsilon: float
    trajectories: Optional[List[Dict[str, np.ndarray]]] = field(default=None, repr=False)

    @property
    def acceptance_rate(self) -> float:
        return len(self.particles) / self.n_simulated if self.n_simulated > 0 else 0.0

    def _normalized_weights(self) -> np.ndarray:
        return self.weights / self.weights.sum()

    def posterior_mean(self) -> Dict[str, float]:
        """Compute weighted posterior mean."""
        if len(self.particles) == 0:
            return {}
        means = self._normalized_weights() @ self.particles
        return dict(zip(self.parameter_names, means.tolist()))

    def posterior_std(self) -> Dict[str, float]:
        """Compute weighted posterior standard deviation."""
        if len(self.particles) == 0:
            return {}
        weights = self._normalized_weights()
        means = weights @ self.particles
        variance = weights @ (self.particles - means) ** 2
        return dict(zip(self.parameter_names, np.sqrt(variance).tolist()))

    def credible_interval(self, param_name: str, level: float = 0.95) -> Tuple[float, float]:
        """Compute credible interval for a parameter."""
        values = self.particles[:, self.parameter_names.index(param_name)]
        weights = self._normalized_weights()

        sorted_indices = np.argsort(values)
        sorted_values = values[sorted_indices]
        cumsum = np.cumsum(weights[sorted_indices])

        alpha = (1 - level) / 2
        lower_idx = np.searchsorted(cumsum, alpha)
        upper_idx = np.searchsorted(cumsum, 1 - alpha)

        lower = sorted_values[max(0, lower_idx - 1)]
        upper = sorted_values[min(len(sorted_values) - 1, upper_idx)]

        return float(lower), float(upper)

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.particles, columns=self.parameter_names)
        frame["distance"] = self.distances
        frame["weight"] = self.weights
        return frame


class ABCAlgorithm(ABC):
    """Generation loop driving a model's batch simulations."""

    @abstractmethod
    def run(self, model: "SpatialSEIRModel", n_particles: int, keep_trajectories: bool = False) -> ABCResult:
        ...


class BasicABC(ABCAlgorithm):
    """Rejection ABC over successive prior batches.

    Every batch draws ``batch_size`` particles from the prior. The accepted
    set is the ``n_particles`` lowest-scoring particles simulated so far.
    Sampling stops after ``max_batches`` batches, or earlier once the worst
    accepted score is at most ``target_eps`` (when ``target_eps > 0``).
    """

    def run(self, model: "SpatialSEIRModel", n_particles: int, keep_trajectories: bool = False) -> ABCResult:
        control = model.sampling_control
        particles = np.empty((0, model.n_params))
        scores = np.empty(0)
        trajectories: List[Optional[Dict[str, np.ndarray]]] = []
        n_simulated = 0
        n_batches = 0
        epsilon = np.inf

        while n_batches < control.max_batches:
            batch_params = model.generate_params_prior(control.batch_size)
            batch = model.run_simulation(batch_params, keep_trajectories=keep_trajectories)
            n_batches += 1
            n_simulated += len(batch_params)

            valid = batch.valid
            particles = np.vstack([particles, batch_params[batch.index[valid]]])
            scores = np.concatenate([scores, batch.scores()[valid]])
            if keep_trajectories:
                trajectories.extend(rs.trajectory for rs, ok in zip(batch.result_sets, valid) if ok)

            order = np.argsort(scores, kind="stable")[:n_particles]
            particles = particles[order]
            scores = scores[order]
            if keep_trajectories:
                trajectories = [trajectories[i] for i in order]

            epsilon = float(scores[-1]) if len(scores) else np.inf
            logging.info(
                "Batch %d/%d: %d valid, %d accepted, epsilon=%.4g",
                n_batches,
                control.max_batches,
                batch.n_valid,
                len(scores),
                epsilon,
            )
            if control.target_eps > 0 and len(scores) == n_particles and epsilon <= control.target_eps:
                logging.info("Target epsilon %.4g reached after %d batches", control.target_eps, n_batches)
                break

        if len(scores) < n_particles:
            logging.warning("Only %d of %d requested particles were accepted", len(scores), n_particles)

        weights = np.full(len(scores), 1.0 / len(scores)) if len(scores) else np.empty(0)
        return ABCResult(
            particles=particles,
            distances=scores,
            weights=weights,
            parameter_names=model.parameter_names,
            n_simulated=n_simulated,
            n_batches=n_batches,
            final_epsilon=epsilon,
            trajectories=trajectories if keep_trajectories else None,
        )


_ALGORITHMS: Dict[Algorithm, Type[ABCAlgorithm]] = {
    Algorithm.BASIC_ABC: BasicABC,
}


def register_algorithm(code: Algorithm | int, algorithm: Type[ABCAlgorithm]) -> None:
    _ALGORITHMS[Algorithm(code)] = algorithm


def resolve_algorithm(code: Algorithm | int) -> ABCAlgorithm:
    code = Algorithm(code)
    if code not in _ALGORITHMS:
        raise NotImplementedError(
            f"No implementation registered for {code.name}; "
            f"register one with abseir.calibration.register_algorithm"
        )
    return _ALGORITHMS[code]()
