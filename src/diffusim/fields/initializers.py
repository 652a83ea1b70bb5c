"""Initial concentration profiles."""
from __future__ import annotations
from dataclasses import dataclass
import numpy as np

AXES = {"x": 0, "y": 1, "z": 2}


@dataclass(frozen=True)
class GaussianBand:
    """Gaussian profile along one axis, constant across the other two.

    Attributes
    ----------
    mean:
        Position of the band's peak along ``axis``.
    sigma:
        Band width (standard deviation).
    axis:
        ``"x"``, ``"y"`` or ``"z"``.
    amplitude:
        Peak concentration.
    """

    mean: float
    sigma: float
    axis: str = "x"
    amplitude: float = 1.0

    def __post_init__(self):
        if self.axis not in AXES:
            raise ValueError(f"axis must be one of {tuple(AXES)}")
        if self.sigma <= 0:
            raise ValueError("sigma must be positive")
        if self.amplitude < 0:
            raise ValueError("amplitude must be non-negative")

    def __call__(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        coord = (x, y, z)[AXES[self.axis]]
        return self.amplitude * np.exp(-((coord - self.mean) ** 2) / (2.0 * self.sigma**2))


@dataclass(frozen=True)
class Uniform:
    value: float

    def __call__(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        return np.full(np.broadcast(x, y, z).shape, self.value, dtype=np.float64)
