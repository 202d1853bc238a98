"""
Lennard-Jones gas in a box split by a partition with a single hole.

This module defines a Simulation class that models a two-dimensional gas of
interacting particles confined to a rectangular box.  A vertical partition
at ``box_split`` divides the box into two chambers; particles can only pass
from one chamber to the other through the hole in the partition.  Particles
interact through a Lennard-Jones potential cut off at ``range``, and the
walls, the partition and the edges of the hole push particles back through
virtual "wall proxy" particles placed at the closest solid point.

Positions are advanced with a central-difference (Verlet) scheme.  The
scheme needs the state one step in the past, so before the first step the
previous state is estimated with a backward Taylor expansion.  After each
step particles that left the box, or crossed the partition outside the
hole, are put back.

The run answers one question: starting with every particle in the first
chamber, how long until both chambers hold the same number of particles
(the *balance time*)?  ``Simulation.execute`` discovers that time on its
first call and, called again on the same instance in extend mode, keeps the
gas evolving up to twice the balance time.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple, Union

import numpy as np
from numpy import ndarray
from scipy.spatial import cKDTree

from config import DISCOVER, EXTEND, ConfigError, GasConfig
from particles import Particle, ParticleGrid

logger = logging.getLogger(__name__)

################################################################################
# Pair force
################################################################################

# Separations are floored to this value before evaluating the potential so
# that overlapping points do not produce infinite forces.
MIN_DISTANCE: float = 0.75

# Range of the random offset used to put a particle back inside the box.
BOUNCE_JITTER: Tuple[float, float] = (0.2, 0.7)

# Id given to wall proxies, which are not part of the container.
WALL_PROXY_ID: int = -1

# Relative slack on the tree query radius.  Candidates are re-checked against
# the exact cutoff.
CUTOFF_PADDING: float = 1e-9

FrameSink = Callable[[float, List[Particle]], None]


def particle_force(distance: Union[float, ndarray], cfg: GasConfig) -> Union[float, ndarray]:
    """Return the Lennard-Jones force magnitude at the given separation.

    Parameters
    ----------
    distance: float or ndarray
        Separation between the two points, already floored to
        ``MIN_DISTANCE``.
    cfg: GasConfig
        Supplies the exponents ``L`` and ``J``, the well depth ``epsilon``
        and the equilibrium distance ``Rm``.

    Returns
    -------
    float or ndarray
        Signed magnitude.  It is projected along the direction that points
        from the particle to the other point: a positive value pulls the
        particle toward it, a negative value pushes it away.  The force
        vanishes at ``Rm``, repels below it and attracts above it.
    """
    coefficient = cfg.L * cfg.epsilon / cfg.Rm
    ratio = cfg.Rm / np.asarray(distance, dtype=float)
    repulsion = ratio ** (cfg.L + 1)
    attraction = ratio ** (cfg.J + 1)
    force = -coefficient * (repulsion - attraction)
    if np.ndim(force) == 0:
        return float(force)
    return force


class ShadowMisalignmentError(RuntimeError):
    """The previous-step state no longer lines up with the live particles."""


################################################################################
# Simulation class
################################################################################

class Simulation:
    """Evolve the two-chamber gas and measure its balance time.

    The engine works on the arrays of a ``ParticleGrid`` in place.  It keeps
    three private arrays of the same shape as the grid's positions, all
    indexed like the grid:

    * ``_r_prev`` and ``_v_prev``, the state one step in the past (the
      shadow list used by the Verlet scheme);
    * ``_legal_r``, the last position of each particle that was accepted
      as legal, used to decide which way a particle bounces.

    ``balance_time`` starts at zero, is set the first time the chambers are
    found balanced and then survives every later call to ``execute``.
    """

    def __init__(
        self,
        grid: ParticleGrid,
        cfg: GasConfig,
        frame_sink: Optional[FrameSink] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.grid = grid
        self.cfg = cfg
        self.frame_sink = frame_sink
        self._rng = rng if rng is not None else np.random.default_rng(cfg.seed)

        self.balance_time: float = 0.0
        self.elapsed_time: float = 0.0
        self._frame_clock: float = 0.0
        self._step_count: int = 0

        self._r_prev: Optional[ndarray] = None
        self._v_prev: Optional[ndarray] = None
        self._legal_r: Optional[ndarray] = None

    # -------------------------------------------------------------------------
    # Chambers and termination
    def is_in_first_chamber(self, x: Union[float, ndarray]) -> Union[bool, ndarray]:
        return x < self.cfg.box_split

    def first_chamber_count(self) -> int:
        return int(np.count_nonzero(self.is_in_first_chamber(self.grid.r[0])))

    def is_balanced(self) -> bool:
        """True when both chambers hold the same number of particles."""
        total = len(self.grid)
        return math.floor(self.first_chamber_count() - total // 2) == 0

    def time_limit(self, mode: Optional[float] = None) -> float:
        """Resolve the termination mode into the loop's stopping time."""
        mode = self.cfg.time_limit if mode is None else mode
        if mode == DISCOVER:
            return self.balance_time if self.balance_time > 0 else math.inf
        if mode == EXTEND:
            return self.balance_time * 2 if self.balance_time > 0 else math.inf
        if mode <= 0:
            raise ConfigError(f"Unknown time limit mode: {mode!r}")
        return float(mode)

    @property
    def previous_positions(self) -> Optional[ndarray]:
        return None if self._r_prev is None else self._r_prev.copy()

    @property
    def previous_velocities(self) -> Optional[ndarray]:
        return None if self._v_prev is None else self._v_prev.copy()

    @property
    def legal_positions(self) -> Optional[ndarray]:
        return None if self._legal_r is None else self._legal_r.copy()

    # -------------------------------------------------------------------------
    # Wall proxies
    def _wall_proxy_candidates(self, r: ndarray) -> Tuple[ndarray, ndarray, ndarray]:
        """Return x, y and validity mask of the six candidate proxies per particle.

        Rows 0-3 are the feet on the bottom, top, left and right walls.
        Row 4 is the partition point at the particle's height, or the lower
        hole corner when the particle is level with the hole.  Row 5 is the
        upper hole corner and only exists in that last case.
        """
        cfg = self.cfg
        x, y = r[0], r[1]
        n = x.shape[0]
        within_hole = (y >= cfg.hole_position) & (y <= cfg.hole_top)

        px = np.empty((6, n), dtype=float)
        py = np.empty((6, n), dtype=float)
        px[0], py[0] = x, 0.0
        px[1], py[1] = x, cfg.box_height
        px[2], py[2] = 0.0, y
        px[3], py[3] = cfg.box_width, y
        px[4] = cfg.box_split
        py[4] = np.where(within_hole, cfg.hole_position, y)
        px[5] = cfg.box_split
        py[5] = cfg.hole_top

        mask = np.hypot(px - x, py - y) <= cfg.range
        mask[5] &= within_hole
        return px, py, mask

    def wall_proxies(self, position) -> List[Particle]:
        """Virtual particles standing for the walls near ``position``."""
        r = np.asarray(position, dtype=float).reshape(2, 1)
        px, py, mask = self._wall_proxy_candidates(r)
        return [
            Particle(
                id=WALL_PROXY_ID,
                x=float(px[k, 0]),
                y=float(py[k, 0]),
                vx=0.0,
                vy=0.0,
                mass=self.cfg.particle_mass,
                radius=self.cfg.particle_radius,
            )
            for k in np.nonzero(mask[:, 0])[0]
        ]

    # -------------------------------------------------------------------------
    # Neighbours
    def _require_shadow(self) -> ndarray:
        if self._r_prev is None:
            raise ShadowMisalignmentError("The previous state has not been built; call start() first")
        if self._r_prev.shape != self.grid.r.shape:
            raise ShadowMisalignmentError(
                f"Previous state holds {self._r_prev.shape[1]} particles "
                f"but the container holds {len(self.grid)}"
            )
        return self._r_prev

    def closest_particles(self, index: int, position=None) -> ndarray:
        """Indices of the shadow particles that interact with particle ``index``.

        A shadow particle qualifies when it is not the particle itself, lies
        within ``range`` and sits in the same chamber.  ``position`` defaults
        to the particle's live position.
        """
        reference = self._require_shadow()
        p = self.grid.r[:, index] if position is None else np.asarray(position, dtype=float)
        d = np.hypot(reference[0] - p[0], reference[1] - p[1])
        same_chamber = self.is_in_first_chamber(reference[0]) == self.is_in_first_chamber(p[0])
        mask = (d <= self.cfg.range) & same_chamber
        mask[index] = False
        return np.nonzero(mask)[0]

    def _neighbour_pairs(self, r: ndarray, reference: ndarray) -> Tuple[ndarray, ndarray]:
        """Return (i, j) index pairs where reference particle j acts on particle i.

        The tree only proposes candidates; the cutoff itself is applied with
        the same distance test as ``closest_particles``.
        """
        tree = cKDTree(reference.T)
        hits = tree.query_ball_point(r.T, r=self.cfg.range * (1 + CUTOFF_PADDING))
        counts = np.fromiter((len(h) for h in hits), dtype=int, count=len(hits))
        if counts.sum() == 0:
            empty = np.empty(0, dtype=int)
            return empty, empty
        i = np.repeat(np.arange(r.shape[1]), counts)
        j = np.concatenate([np.asarray(h, dtype=int) for h in hits])
        in_range = np.hypot(reference[0, j] - r[0, i], reference[1, j] - r[1, i]) <= self.cfg.range
        same_chamber = self.is_in_first_chamber(r[0, i]) == self.is_in_first_chamber(reference[0, j])
        keep = (i != j) & in_range & same_chamber
        return i[keep], j[keep]

    # -------------------------------------------------------------------------
    # Forces
    def _accumulate(self, forces: ndarray, idx: ndarray, dx: ndarray, dy: ndarray) -> None:
        distance = np.maximum(np.hypot(dx, dy), MIN_DISTANCE)
        modulus = particle_force(distance, self.cfg)
        angle = np.arctan2(dy, dx)
        np.add.at(forces[0], idx, np.cos(angle) * modulus)
        np.add.at(forces[1], idx, np.sin(angle) * modulus)

    def applied_forces(self, r: ndarray, reference: Optional[ndarray]) -> ndarray:
        """Total force on every particle at positions ``r``.

        Neighbours are taken from ``reference`` (same ordering as ``r``),
        walls from the proxies of each particle.  With ``reference=None``
        only the walls act.  Nothing is modified.
        """
        forces = np.zeros_like(r, dtype=float)

        i, j = self._neighbour_pairs(r, reference) if reference is not None else ((), ())
        if len(i):
            self._accumulate(forces, i, reference[0, j] - r[0, i], reference[1, j] - r[1, i])

        px, py, mask = self._wall_proxy_candidates(r)
        rows, idx = np.nonzero(mask)
        if idx.size:
            self._accumulate(forces, idx, px[rows, idx] - r[0, idx], py[rows, idx] - r[1, idx])
        return forces

    def applied_accelerations(self) -> ndarray:
        """Accelerations of all live particles against the previous state."""
        reference = self._require_shadow()
        return self.applied_forces(self.grid.r, reference) / self.grid.m

    def applied_acceleration(self, index: int) -> Tuple[float, float]:
        """Acceleration of a single particle, summed pair by pair."""
        reference = self._require_shadow()
        p = self.grid.r[:, index]
        neighbours = self.closest_particles(index)
        points = [(reference[0, j], reference[1, j]) for j in neighbours]
        points += [wall.position for wall in self.wall_proxies(p)]

        total_x = 0.0
        total_y = 0.0
        for ox, oy in points:
            dx = ox - p[0]
            dy = oy - p[1]
            modulus = particle_force(max(math.hypot(dx, dy), MIN_DISTANCE), self.cfg)
            angle = math.atan2(dy, dx)
            total_x += math.cos(angle) * modulus
            total_y += math.sin(angle) * modulus
        mass = self.grid.m[index]
        return total_x / mass, total_y / mass

    # -------------------------------------------------------------------------
    # Integration
    def bootstrap(self) -> None:
        """Estimate the state one step in the past (backward Euler).

        ``r_prev = r - dt v + dt^2 F / 2m`` and ``v_prev = v - dt F / m``.
        With ``bootstrap_vy_from_vx`` set, the previous y-velocity starts
        from the *x*-velocity, reproducing the reference results.

        The forces are taken against the previous state.  Before the first
        run there is none, so only the walls act; a later run starts from
        the previous state the last run left behind.
        """
        cfg = self.cfg
        dt = cfg.time_step
        r = self.grid.r
        v = self.grid.v
        m = self.grid.m

        reference = None if self._r_prev is None else self._require_shadow()
        forces = self.applied_forces(r, reference)
        r_prev = r - dt * v + dt ** 2 * forces / (2 * m)
        vy_base = v[0] if cfg.bootstrap_vy_from_vx else v[1]
        v_prev = np.vstack([
            v[0] - (dt / m) * forces[0],
            vy_base - (dt / m) * forces[1],
        ])

        self._r_prev = r_prev
        self._v_prev = v_prev
        self._legal_r = r_prev.copy()
        logger.debug("Previous state bootstrapped for %d particles", len(self.grid))

    def verlet_update(self) -> None:
        """Advance every particle by one time step."""
        reference = self._require_shadow()
        dt = self.cfg.time_step
        r = self.grid.r
        v = self.grid.v

        acceleration = self.applied_forces(r, reference) / self.grid.m
        new_r = 2 * r - reference + dt ** 2 * acceleration
        new_v = (new_r - reference) / (2 * dt)
        if self.cfg.stall_guard:
            stalled = (new_v[0] == 0.0) & (new_v[1] == 0.0)
            new_v[:, stalled] = v[:, stalled]

        self._r_prev[...] = r
        self._v_prev[...] = v
        r[...] = new_r
        v[...] = new_v

    # -------------------------------------------------------------------------
    # Walls and partition
    def _jitter(self, size: int) -> ndarray:
        return self._rng.uniform(*BOUNCE_JITTER, size=size)

    def update_position_by_bouncing(self) -> int:
        """Put back particles that left the box or jumped the partition.

        Returns the number of particles bounced off the partition.
        """
        self._require_shadow()
        cfg = self.cfg
        r = self.grid.r
        last = self._legal_r
        x = r[0].copy()
        y = r[1].copy()

        out_top = y > cfg.box_height
        out_bottom = y < 0
        out_right = x > cfg.box_width
        out_left = x < 0
        within_hole = (y > cfg.hole_position) & (y < cfg.hole_top)

        vertical = out_top | out_bottom
        horizontal = out_left | out_right
        x[vertical & ~horizontal] = last[0, vertical & ~horizontal]
        y[horizontal & ~vertical] = last[1, horizontal & ~vertical]
        y[out_top] = cfg.box_height - self._jitter(np.count_nonzero(out_top))
        y[out_bottom] = self._jitter(np.count_nonzero(out_bottom))
        x[out_left] = self._jitter(np.count_nonzero(out_left))
        x[out_right] = cfg.box_width - self._jitter(np.count_nonzero(out_right))

        # Outside the hole a particle may not change chamber.  Send it back
        # and keep its last legal position, or it would bounce forever.
        first_now = self.is_in_first_chamber(x)
        changed_chamber = (~first_now & (last[0] < cfg.box_split)) | (first_now & (last[0] > cfg.box_split))
        bounced = changed_chamber & ~within_hole
        if np.any(bounced):
            delta = self._jitter(np.count_nonzero(bounced))
            last_x = last[0, bounced]
            x[bounced] = np.where(last_x < cfg.box_split, last_x - delta, last_x + delta)

        r[0] = x
        r[1] = y
        accepted = ~bounced
        last[:, accepted] = r[:, accepted]
        return int(np.count_nonzero(bounced))

    # -------------------------------------------------------------------------
    # Driver
    def start(self) -> None:
        """Prepare a run: bootstrap the previous state and reset the clocks."""
        self.bootstrap()
        self.elapsed_time = 0.0
        self._frame_clock = 0.0
        self._step_count = 0

    def step(self) -> None:
        """One iteration: integrate, then enforce the walls."""
        dt = self.cfg.time_step
        self.elapsed_time += dt
        self._frame_clock += dt
        self.verlet_update()
        self.update_position_by_bouncing()
        self._step_count += 1

    def check_balance(self) -> bool:
        """Record the balance time the first time the chambers are balanced.

        Returns True only on that first discovery.
        """
        if self.balance_time == 0 and self.is_balanced():
            self.balance_time = self.elapsed_time
            logger.info("Hole size: %s; balance time: %s", self.cfg.hole_size, self.balance_time)
            return True
        return False

    def _emit_frame(self) -> None:
        if self.frame_sink is not None:
            self.frame_sink(self.elapsed_time, self.grid.get_particles())

    def execute(self, time_limit: Optional[float] = None, max_steps: Optional[int] = None) -> float:
        """Run the simulation loop.

        Parameters
        ----------
        time_limit: float, optional
            Termination mode for this call (a positive bound, ``DISCOVER`` or
            ``EXTEND``).  Defaults to the configured one.
        max_steps: int, optional
            Stop after this many steps even if the bound was not reached.
            Without it a run whose bound never resolves keeps going.

        Returns
        -------
        float
            The balance time when it was discovered during this call,
            otherwise the elapsed time at which the loop stopped.
        """
        mode = self.cfg.time_limit if time_limit is None else time_limit
        self.time_limit(mode)
        self.start()
        logger.debug("Starting run with time limit mode %s (balance time %s)", mode, self.balance_time)

        while self.elapsed_time <= self.time_limit(mode):
            if self.cfg.gas_mode and self._frame_clock >= self.cfg.frame_interval:
                self._emit_frame()
                self._frame_clock = 0.0

            if self.check_balance():
                return self.balance_time

            if max_steps is not None and self._step_count >= max_steps:
                logger.warning("Stopped after %d steps at t=%s without reaching the time limit",
                               self._step_count, self.elapsed_time)
                break

            self.step()

        logger.debug("Run finished at t=%s after %d steps", self.elapsed_time, self._step_count)
        return self.elapsed_time
