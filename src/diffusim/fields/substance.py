"""Substance concentration grids advanced by an explicit diffusion-decay stencil."""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol, Sequence
import numpy as np

from diffusim.core.errors import ConfigurationError, NumericalInstabilityError
from diffusim.engine.parallel import parallel_map, split_range

logger = logging.getLogger(__name__)

# Explicit 7-point stencil in 3-D: D*dt/dx^2 must not exceed 1/(2*ndim).
STABILITY_BOUND = 1.0 / 6.0
BOUNDARIES = ("zero_flux", "absorbing")
INTERPOLATIONS = ("linear", "nearest")


class GradientSampler(Protocol):
    """Read contract behaviors use to query a field at a continuous position."""

    substance_id: int

    def get_concentration(self, position: Sequence[float]) -> float: ...

    def get_gradient(self, position: Sequence[float]) -> np.ndarray: ...


def _stencil(padded: np.ndarray, out: np.ndarray, start: int, stop: int, r: float, k: float) -> None:
    """Write rows ``start:stop`` of the next grid from the padded previous grid.

    Row ``i`` of the grid is row ``i + 1`` of ``padded``, so each slab reads a
    one-row halo on either side and never touches ``out`` outside its rows.
    """
    c = padded[start + 1 : stop + 1, 1:-1, 1:-1]
    lap = (
        padded[start + 2 : stop + 2, 1:-1, 1:-1]
        + padded[start:stop, 1:-1, 1:-1]
        + padded[start + 1 : stop + 1, 2:, 1:-1]
        + padded[start + 1 : stop + 1, :-2, 1:-1]
        + padded[start + 1 : stop + 1, 1:-1, 2:]
        + padded[start + 1 : stop + 1, 1:-1, :-2]
        - 6.0 * c
    )
    out[start:stop] = c + r * lap - k * c


class SubstanceField:
    """Cell-centred 3-D concentration grid for a single substance.

    Cell ``i`` along an axis spans ``[lower + i*dx, lower + (i+1)*dx]`` with
    ``dx = (upper - lower) / resolution``. ``diffuse`` advances the grid by
    one time step of ``dC/dt = D*lap(C) - decay*C``; ``get_concentration``
    and ``get_gradient`` are the only sanctioned way for agents to read it.

    ``boundary="zero_flux"`` (default) mirrors each face cell outward so no
    substance crosses the grid edge; ``"absorbing"`` treats the outside as
    zero concentration, so substance leaks out through the faces.
    """

    def __init__(
        self,
        substance_id: int,
        name: str,
        diffusion_coefficient: float,
        decay_constant: float,
        resolution: int,
        *,
        lower: float = 0.0,
        upper: float = 1000.0,
        time_step: float = 0.01,
        threshold: float | None = None,
        boundary: str = "zero_flux",
        interpolation: str = "linear",
    ):
        if diffusion_coefficient < 0 or decay_constant < 0:
            raise ConfigurationError(f"substance '{name}': diffusion and decay must be non-negative")
        if resolution < 1:
            raise ConfigurationError(f"substance '{name}': resolution must be positive")
        if upper <= lower:
            raise ConfigurationError(f"substance '{name}': upper bound must exceed lower bound")
        if time_step <= 0:
            raise ConfigurationError(f"substance '{name}': time_step must be positive")
        if boundary not in BOUNDARIES:
            raise ConfigurationError(f"substance '{name}': boundary must be one of {BOUNDARIES}")
        if interpolation not in INTERPOLATIONS:
            raise ConfigurationError(f"substance '{name}': interpolation must be one of {INTERPOLATIONS}")
        self.substance_id = substance_id
        self.name = name
        self.diffusion_coefficient = float(diffusion_coefficient)
        self.decay_constant = float(decay_constant)
        self.resolution = int(resolution)
        self.lower = float(lower)
        self.upper = float(upper)
        self.time_step = float(time_step)
        self.boundary = boundary
        self.interpolation = interpolation
        self.cell_size = (self.upper - self.lower) / self.resolution
        self.threshold: float | None = None
        if threshold is not None:
            self.set_concentration_threshold(threshold)
        self._grid = np.zeros((self.resolution,) * 3, dtype=np.float64)
        self._gradient = np.zeros(self._grid.shape + (3,), dtype=np.float64)
        self.check_stability()

    def __repr__(self) -> str:
        return (
            f"SubstanceField(id={self.substance_id}, name={self.name!r}, D={self.diffusion_coefficient}, "
            f"decay={self.decay_constant}, resolution={self.resolution})"
        )

    @property
    def shape(self) -> tuple[int, int, int]:
        return self._grid.shape

    @property
    def diffusion_number(self) -> float:
        return self.diffusion_coefficient * self.time_step / self.cell_size**2

    @property
    def concentrations(self) -> np.ndarray:
        """Read-only view of the current grid."""
        view = self._grid.view()
        view.flags.writeable = False
        return view

    def check_stability(self, step: int | None = None) -> None:
        r = self.diffusion_number
        if r > STABILITY_BOUND:
            raise NumericalInstabilityError(
                self.name, f"diffusion number {r:.4g} exceeds stability bound {STABILITY_BOUND:.4g}", step=step, value=r
            )
        k = self.decay_constant * self.time_step
        if 6.0 * r + k > 1.0:
            raise NumericalInstabilityError(
                self.name, f"diffusion number {r:.4g} with decay {k:.4g} per step loses positivity", step=step, value=r
            )

    def set_concentration_threshold(self, value: float | None) -> None:
        """Set or replace the ceiling applied after every ``diffuse`` call; ``None`` clears it."""
        if value is not None and not value >= 0:
            raise ConfigurationError(f"substance '{self.name}': threshold must be non-negative")
        self.threshold = None if value is None else float(value)

    def cell_centers(self) -> np.ndarray:
        return self.lower + (np.arange(self.resolution) + 0.5) * self.cell_size

    def initialize(self, fn: Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]) -> None:
        """Add ``fn(x, y, z)`` evaluated at every cell centre to the grid."""
        centers = self.cell_centers()
        x, y, z = np.meshgrid(centers, centers, centers, indexing="ij")
        values = np.broadcast_to(np.asarray(fn(x, y, z), dtype=np.float64), self._grid.shape)
        self.set_concentrations(self._grid + values)

    def set_concentrations(self, values: np.ndarray) -> None:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self._grid.shape:
            raise ConfigurationError(f"substance '{self.name}': expected grid of shape {self._grid.shape}, got {values.shape}")
        if not np.all(np.isfinite(values)) or np.any(values < 0):
            raise ConfigurationError(f"substance '{self.name}': concentrations must be finite and non-negative")
        self._grid = values.copy()
        self._refresh_gradient()

    def diffuse(self, step: int | None = None, *, executor: ThreadPoolExecutor | None = None, workers: int = 1) -> None:
        """Advance the grid by one time step.

        With ``workers > 1`` the grid is cut into slabs along x that are
        updated concurrently; all slabs complete before this returns.
        """
        self.check_stability(step)
        mode = "edge" if self.boundary == "zero_flux" else "constant"
        padded = np.pad(self._grid, 1, mode=mode)
        out = np.empty_like(self._grid)
        r = self.diffusion_number
        k = self.decay_constant * self.time_step
        slabs = split_range(self.resolution, workers)
        parallel_map(lambda b: _stencil(padded, out, b[0], b[1], r, k), slabs, workers, executor=executor)
        finite = np.isfinite(out)
        if not finite.all():
            bad = out[~finite].flat[0]
            raise NumericalInstabilityError(self.name, f"non-finite concentration {bad}", step=step, value=float(bad))
        if self.threshold is not None:
            np.clip(out, 0.0, self.threshold, out=out)
        self._grid = out
        self._refresh_gradient()
        logger.debug("diffused %s step=%s total=%.6g", self.name, step, self.total_concentration())

    def _refresh_gradient(self) -> None:
        # Edge padding: the outermost cells use a one-sided difference over 2*dx.
        p = np.pad(self._grid, 1, mode="edge")
        gx = p[2:, 1:-1, 1:-1] - p[:-2, 1:-1, 1:-1]
        gy = p[1:-1, 2:, 1:-1] - p[1:-1, :-2, 1:-1]
        gz = p[1:-1, 1:-1, 2:] - p[1:-1, 1:-1, :-2]
        self._gradient = np.stack((gx, gy, gz), axis=-1) / (2.0 * self.cell_size)

    def _axis_weights(self, coord: float) -> tuple[np.ndarray, np.ndarray]:
        n = self.resolution
        u = (float(coord) - self.lower) / self.cell_size - 0.5
        u = min(max(u, 0.0), n - 1.0)
        if self.interpolation == "nearest" or n == 1:
            return np.array([int(np.floor(u + 0.5))]), np.ones(1)
        i0 = min(int(np.floor(u)), n - 2)
        t = u - i0
        return np.array([i0, i0 + 1]), np.array([1.0 - t, t])

    def index_of(self, position: Sequence[float]) -> tuple[int, int, int]:
        """Nearest cell for a continuous position, clamped into the grid."""
        n = self.resolution
        idx = []
        for coord in position[:3]:
            u = (float(coord) - self.lower) / self.cell_size - 0.5
            idx.append(int(np.floor(min(max(u, 0.0), n - 1.0) + 0.5)))
        return tuple(idx)

    def cell_center(self, index: Sequence[int]) -> np.ndarray:
        return self.lower + (np.asarray(index, dtype=np.float64) + 0.5) * self.cell_size

    def get_concentration(self, position: Sequence[float]) -> float:
        """Interpolated concentration at ``position``; outside positions clamp to the edge cells."""
        (ix, wx), (iy, wy), (iz, wz) = (self._axis_weights(c) for c in position[:3])
        block = self._grid[np.ix_(ix, iy, iz)]
        return float(np.einsum("i,j,k,ijk->", wx, wy, wz, block))

    def get_gradient(self, position: Sequence[float]) -> np.ndarray:
        """Central-difference gradient ``(dC/dx, dC/dy, dC/dz)`` at ``position``."""
        (ix, wx), (iy, wy), (iz, wz) = (self._axis_weights(c) for c in position[:3])
        block = self._gradient[np.ix_(ix, iy, iz)]
        return np.einsum("i,j,k,ijkl->l", wx, wy, wz, block)

    def total_concentration(self) -> float:
        return float(self._grid.sum())

    def max_concentration(self) -> float:
        return float(self._grid.max())
