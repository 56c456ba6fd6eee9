from .pool import BatchResult, WorkerPool
from .seir import SimulationInputs, SimulationResultSet, run_trajectory, simulate_particle

__all__ = [
    "BatchResult",
    "WorkerPool",
    "SimulationInputs",
    "SimulationResultSet",
    "run_trajectory",
    "simulate_particle",
]
