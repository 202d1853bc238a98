import os
import sys

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pytest

import config
from config import DISCOVER, GasConfig
from particles import ParticleGrid
from simulation import Simulation


@pytest.fixture(autouse=True)
def _fresh_config_loader():
    config.ConfigLoader.reset()
    yield
    config.ConfigLoader.reset()


@pytest.fixture
def small_cfg():
    """20×10 box, partition at x=10 with a hole between y=3 and y=7."""
    return GasConfig(
        box_width=20.0,
        box_height=10.0,
        box_split=10.0,
        hole_size=4.0,
        L=12,
        J=6,
        Rm=1.0,
        epsilon=2.0,
        range=5.0,
        particle_radius=0.5,
        particle_mass=0.1,
        particle_count=2,
        initial_speed=10.0,
        time_step=0.001,
        time_limit=DISCOVER,
        seed=7,
    )


@pytest.fixture
def big_cfg():
    """Box large enough to keep particles far from every wall."""
    return GasConfig(
        box_width=100.0,
        box_height=100.0,
        box_split=50.0,
        hole_size=10.0,
        particle_count=1,
        time_step=0.001,
        seed=3,
    )


@pytest.fixture
def make_sim():
    def _make(cfg, positions, velocities=None, **kwargs):
        r = np.array(positions, dtype=float).T
        v = np.zeros_like(r) if velocities is None else np.array(velocities, dtype=float).T
        grid = ParticleGrid(r, v, cfg.particle_mass, cfg.particle_radius)
        return Simulation(grid, cfg, rng=np.random.default_rng(cfg.seed), **kwargs)

    return _make
