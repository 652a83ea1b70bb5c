"""Central RNG helpers using PCG64DXSM."""
import numpy as np
from numpy.random import Generator, PCG64DXSM


def make_rng(seed: int) -> Generator:
    return Generator(PCG64DXSM(seed))


def random_unit_vector(rng: Generator) -> np.ndarray:
    """Uniformly distributed direction on the unit sphere."""
    while True:
        v = rng.normal(size=3)
        norm = float(np.linalg.norm(v))
        if norm > 1e-12:
            return v / norm
