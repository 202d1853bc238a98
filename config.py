"""
Configuration of the two-chamber gas experiment.

Parameters live in ``config.json`` next to this module (or in the current
working directory when the bundled file is missing).  ``ConfigLoader`` is a
process-wide, dict-like view of that file; ``GasConfig`` is the typed,
validated and read-only set of constants the engine works with.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Sentinel values of ``time_limit``.  Positive values are absolute bounds.
DISCOVER: int = -1
EXTEND: int = -2


class ConfigError(ValueError):
    """Raised when the experiment parameters are inconsistent."""


def _default_config_path() -> Path:
    cfg_path = Path(__file__).resolve().parent / 'config.json'
    if not cfg_path.exists():
        alt = Path.cwd() / 'config.json'
        if alt.exists():
            return alt
    return cfg_path


class ConfigLoader:
    """Shared dict-like access to ``config.json``.

    Every ``ConfigLoader()`` call returns the same instance, so values set at
    run time are seen everywhere.  ``set`` writes the change back to disk.
    """

    _instance: Optional['ConfigLoader'] = None

    def __new__(cls, path: Optional[Path] = None):
        if cls._instance is None or (path is not None and Path(path) != cls._instance.path):
            instance = super().__new__(cls)
            instance.path = Path(path) if path is not None else _default_config_path()
            instance._data = instance._read()
            cls._instance = instance
        return cls._instance

    def _read(self) -> Dict[str, Any]:
        with self.path.open('r', encoding='utf-8') as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ConfigError(f"{self.path} must contain a JSON object")
        return data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def set(self, key: str, value: Any) -> None:
        """Update a value and persist the whole file."""
        self._data[key] = value
        with self.path.open('w', encoding='utf-8') as fh:
            json.dump(self._data, fh, indent=2)
            fh.write('\n')

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance (the next call re-reads the file)."""
        cls._instance = None


@dataclass(frozen=True)
class GasConfig:
    """Read-only constants of one run.

    Attributes
    ----------
    box_width, box_height: float
        Size of the rectangular box, origin at the bottom-left corner.
    box_split: float
        x-coordinate of the partition between the two chambers.
    hole_position, hole_size: float
        Lower edge and height of the gap in the partition.
    L, J: int
        Exponents of the repulsive and attractive terms.
    Rm, epsilon: float
        Equilibrium distance and depth of the potential well.
    range: float
        Interaction cutoff.
    time_limit: float
        Positive absolute bound, ``DISCOVER`` or ``EXTEND``.
    gas_mode: bool
        Write animation frames while running.
    """
    box_width: float = 200.0
    box_height: float = 80.0
    box_split: float = 100.0
    hole_size: float = 10.0
    hole_position: Optional[float] = None
    L: int = 12
    J: int = 6
    Rm: float = 1.0
    epsilon: float = 2.0
    range: float = 5.0
    particle_radius: float = 0.5
    particle_mass: float = 0.1
    particle_count: int = 1000
    initial_speed: float = 10.0
    time_step: float = 0.001
    time_limit: float = DISCOVER
    gas_mode: bool = False
    frame_interval: float = 0.1
    output_file: str = 'gas_ovito.xyz'
    seed: Optional[int] = None
    bootstrap_vy_from_vx: bool = True
    stall_guard: bool = True

    def __post_init__(self):
        # The hole is centred on the partition unless placed explicitly.
        if self.hole_position is None:
            object.__setattr__(self, 'hole_position', (self.box_height - self.hole_size) / 2.0)

    @property
    def hole_top(self) -> float:
        return self.hole_position + self.hole_size

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GasConfig':
        """Build a validated config, ignoring keys that are not engine constants."""
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        cfg = cls(**kwargs)
        cfg.validate()
        return cfg

    @classmethod
    def from_loader(cls, loader: Optional[ConfigLoader] = None, **overrides) -> 'GasConfig':
        loader = loader or ConfigLoader()
        logger.debug("Reading gas parameters from %s", loader.path)
        data = loader.as_dict()
        data.update(overrides)
        return cls.from_dict(data)

    def replace(self, **changes) -> 'GasConfig':
        if 'hole_size' in changes and 'hole_position' not in changes:
            changes['hole_position'] = None
        cfg = dataclasses.replace(self, **changes)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        positive = ('box_width', 'box_height', 'hole_size', 'Rm', 'epsilon', 'range',
                    'particle_radius', 'particle_mass', 'time_step', 'frame_interval')
        for name in positive:
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"{name} must be positive, got {value!r}")
        if not 0 < self.box_split < self.box_width:
            raise ConfigError("box_split must lie strictly inside the box")
        if self.hole_position < 0 or self.hole_top > self.box_height:
            raise ConfigError("the hole must fit inside the partition")
        if self.J >= self.L:
            raise ConfigError("the repulsive exponent L must exceed the attractive exponent J")
        if self.particle_count < 1:
            raise ConfigError("particle_count must be >= 1")
        if self.initial_speed < 0:
            raise ConfigError("initial_speed must be >= 0")
        if self.time_limit <= 0 and self.time_limit not in (DISCOVER, EXTEND):
            raise ConfigError(
                f"time_limit must be positive, {DISCOVER} (discover) or {EXTEND} (extend); "
                f"got {self.time_limit!r}"
            )
