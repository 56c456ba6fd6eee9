from __future__ import annotations

import logging
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from abseir.config import parallel_supported
from abseir.rng import substream
from abseir.simulation.seir import SimulationInputs, SimulationResultSet, simulate_particle

_WORKER_INPUTS: Optional[SimulationInputs] = None


def _bind_worker(inputs: SimulationInputs) -> None:
    global _WORKER_INPUTS
    _WORKER_INPUTS = inputs


def _simulate_task(task: Tuple[int, np.ndarray, int, int, bool]) -> SimulationResultSet:
    particle_index, params, seed, call_counter, keep_trajectory = task
    rng = substream(seed, call_counter, particle_index)
    return simulate_particle(_WORKER_INPUTS, particle_index, params, rng, keep_trajectory)


@dataclass
class BatchResult:
    """Outputs of one batch dispatch, row ``i`` belongs to particle ``index[i]``."""

    results: np.ndarray
    index: np.ndarray
    valid: np.ndarray
    call_counter: int
    result_sets: List[SimulationResultSet] = field(default_factory=list, repr=False)

    @property
    def n_valid(self) -> int:
        return int(self.valid.sum())

    def scores(self) -> np.ndarray:
        """Mean replicate distance per particle, ``inf`` for invalid rows."""
        scores = np.full(self.results.shape[0], np.inf)
        scores[self.valid] = self.results[self.valid].mean(axis=1)
        return scores


class WorkerPool:
    """Runs one stochastic simulation per particle across worker processes.

    The shared inputs are sent to each worker process once, when the
    process starts, and reused for every later batch. Each particle draws
    from its own stream keyed by ``(base_seed, call_counter, particle)``
    so results do not depend on scheduling.
    """

    def __init__(self, inputs: SimulationInputs, n_workers: int, base_seed: int, parallel: bool = True):
        self.inputs = inputs
        self.n_workers = max(1, int(n_workers))
        self.base_seed = int(base_seed)
        self.parallel = parallel and self.n_workers > 1 and parallel_supported()
        if self.n_workers > 1 and not self.parallel:
            logging.warning(
                "%d workers requested but parallel execution is disabled; simulating serially", self.n_workers
            )
        self._executor: Optional[ProcessPoolExecutor] = None

    def _ensure_executor(self) -> ProcessPoolExecutor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(
                max_workers=self.n_workers,
                mp_context=mp.get_context("spawn"),
                initializer=_bind_worker,
                initargs=(self.inputs,),
            )
        return self._executor

    def run(self, params: np.ndarray, call_counter: int, keep_trajectories: bool = False) -> BatchResult:
        params = np.asarray(params, dtype=np.float64)
        n_particles = params.shape[0]
        slots: List[Optional[SimulationResultSet]] = [None] * n_particles

        if self.parallel:
            executor = self._ensure_executor()
            futures = [
                executor.submit(_simulate_task, (i, params[i], self.base_seed, call_counter, keep_trajectories))
                for i in range(n_particles)
            ]
            for future in as_completed(futures):
                result_set = future.result()
                slots[result_set.particle_index] = result_set
        else:
            for i in range(n_particles):
                rng = substream(self.base_seed, call_counter, i)
                slots[i] = simulate_particle(self.inputs, i, params[i], rng, keep_trajectories)

        results = np.vstack([s.statistics for s in slots]) if slots else np.empty((0, self.inputs.m))
        index = np.array([s.particle_index for s in slots], dtype=np.int64)
        valid = np.array([s.valid for s in slots], dtype=bool)
        n_invalid = n_particles - int(valid.sum())
        if n_invalid:
            logging.info("Batch %d: %d of %d trajectories were degenerate", call_counter, n_invalid, n_particles)
        return BatchResult(results, index, valid, call_counter, slots)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
