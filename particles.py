"""
Particle container for the two-chamber gas.

Particles are stored as parallel arrays (positions and velocities as 2×N
arrays, masses and radii as length-N arrays) so that the engine can work on
whole columns at once.  The index of a particle in these arrays is its
identity for the whole run.  ``Particle`` is a plain value snapshot of one
row, used when a list of particles has to be handed out.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from numpy import ndarray
from scipy import stats

from config import GasConfig


@dataclass(frozen=True)
class Particle:
    """Snapshot of one particle (or of a wall proxy when ``id`` is -1)."""
    id: int
    x: float
    y: float
    vx: float
    vy: float
    mass: float
    radius: float

    @property
    def position(self) -> tuple[float, float]:
        return self.x, self.y

    @property
    def velocity(self) -> tuple[float, float]:
        return self.vx, self.vy


class ParticleGrid:
    """Ordered, fixed-size collection of particles."""

    def __init__(self, r: ndarray, v: ndarray, m, radius):
        r = np.array(r, dtype=float)
        v = np.array(v, dtype=float)
        if r.ndim != 2 or r.shape[0] != 2:
            raise ValueError("positions must have shape (2, N)")
        if v.shape != r.shape:
            raise ValueError("Shapes of r and v are inconsistent")
        n = r.shape[1]

        masses = np.asarray(m, dtype=float)
        if masses.ndim == 0:
            masses = np.full((n,), float(masses))
        elif masses.shape != (n,):
            raise ValueError("Length of m must equal the number of particles")
        if np.any(masses <= 0):
            raise ValueError("masses must be > 0")

        radii = np.asarray(radius, dtype=float)
        if radii.ndim == 0:
            radii = np.full((n,), float(radii))
        elif radii.shape != (n,):
            raise ValueError("Length of radius must equal the number of particles")

        self._r = r
        self._v = v
        self._m = masses
        self._radius = radii

    # -------------------------------------------------------------------------
    @classmethod
    def random_in_first_chamber(
        cls,
        cfg: GasConfig,
        rng: Optional[np.random.Generator] = None,
        max_attempts: int = 200,
    ) -> 'ParticleGrid':
        """Scatter ``cfg.particle_count`` particles over the first chamber.

        Particles keep ``particle_radius`` away from the walls and the
        partition and ``Rm`` away from each other.  Every particle starts with
        speed ``initial_speed`` in a uniformly random direction.
        """
        rng = rng if rng is not None else np.random.default_rng(cfg.seed)
        n = int(cfg.particle_count)
        margin = cfg.particle_radius
        low = np.array([margin, margin])
        high = np.array([cfg.box_split - margin, cfg.box_height - margin])
        if np.any(high <= low):
            raise ValueError("The first chamber is too small for the particle radius")

        min_d2 = cfg.Rm ** 2
        placed = np.empty((2, n), dtype=float)
        for i in range(n):
            for _ in range(max_attempts):
                candidate = rng.uniform(low, high)
                if i == 0:
                    break
                d2 = np.sum((placed[:, :i] - candidate[:, None]) ** 2, axis=0)
                if np.min(d2) >= min_d2:
                    break
            else:
                raise RuntimeError(
                    f"Could not place particle {i} after {max_attempts} attempts; "
                    "the first chamber is too crowded"
                )
            placed[:, i] = candidate

        angles = stats.uniform.rvs(loc=0.0, scale=2.0 * math.pi, size=n, random_state=rng)
        v = cfg.initial_speed * np.vstack([np.cos(angles), np.sin(angles)])
        return cls(placed, v, cfg.particle_mass, cfg.particle_radius)

    # -------------------------------------------------------------------------
    @property
    def r(self) -> ndarray:
        """Positions as a 2×N array (writable view)."""
        return self._r

    @property
    def v(self) -> ndarray:
        """Velocities as a 2×N array (writable view)."""
        return self._v

    @property
    def m(self) -> ndarray:
        return self._m

    @property
    def radius(self) -> ndarray:
        return self._radius

    def __len__(self) -> int:
        return self._r.shape[1]

    def __iter__(self):
        return iter(self.get_particles())

    def set_state(self, index: int, position, velocity) -> None:
        """Overwrite position and velocity of one particle in place."""
        if not -len(self) <= index < len(self):
            raise ValueError(f"particle index {index} out of range")
        self._r[:, index] = position
        self._v[:, index] = velocity

    def get_particle(self, index: int) -> Particle:
        return Particle(
            id=int(index) % len(self),
            x=float(self._r[0, index]),
            y=float(self._r[1, index]),
            vx=float(self._v[0, index]),
            vy=float(self._v[1, index]),
            mass=float(self._m[index]),
            radius=float(self._radius[index]),
        )

    def get_particles(self) -> List[Particle]:
        """Return value snapshots of every particle, in container order."""
        return [self.get_particle(i) for i in range(len(self))]
