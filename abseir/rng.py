from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def expand_seed(seed: int) -> np.random.SeedSequence:
    """Expand a small integer seed into a full-entropy seed sequence.

    The narrow seed first feeds an intermediate generator whose output
    pool becomes the entropy of the returned sequence.
    """
    intermediate = np.random.Generator(np.random.PCG64(int(seed) + 1))
    return np.random.SeedSequence(intermediate.integers(0, 2**32, size=8, dtype=np.uint64).tolist())


def substream(seed: int, call_counter: int, particle_index: int) -> np.random.Generator:
    """Generator for one particle of one batch dispatch."""
    sequence = np.random.SeedSequence(entropy=int(seed), spawn_key=(int(call_counter), int(particle_index)))
    return np.random.Generator(np.random.PCG64(sequence))


@dataclass
class RNGManager:
    seed: int

    def __post_init__(self) -> None:
        self.numpy = np.random.Generator(np.random.PCG64(expand_seed(self.seed)))
