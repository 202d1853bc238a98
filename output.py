"""
Writers for simulation results.

``OvitoWriter`` is the frame sink handed to ``Simulation``: each call appends
one frame in the extended XYZ format understood by Ovito.  Balance times of a
hole-size sweep go to a small CSV report.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Sequence, Tuple, Union

from particles import Particle

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

OVITO_PROPERTIES = 'Properties=id:I:1:pos:R:2:velo:R:2:radius:R:1'


class OvitoWriter:
    """Append particle snapshots to an XYZ file, one frame per call."""

    def __init__(self, path: PathLike, truncate: bool = True):
        self.path = Path(path).expanduser()
        self.frames_written = 0
        if truncate:
            self.truncate()

    def truncate(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text('', encoding='utf-8')
        self.frames_written = 0

    def __call__(self, elapsed_time: float, particles: Sequence[Particle]) -> None:
        lines = [str(len(particles)), f'{OVITO_PROPERTIES} Time={elapsed_time:.6f}']
        for p in particles:
            lines.append(f'{p.id} {p.x:.6f} {p.y:.6f} {p.vx:.6f} {p.vy:.6f} {p.radius:.6f}')
        with self.path.open('a', encoding='utf-8') as fh:
            fh.write('\n'.join(lines))
            fh.write('\n')
        self.frames_written += 1


def write_balance_report(path: PathLike, rows: Iterable[Tuple[float, float]]) -> Path:
    """Write ``hole_size,balance_time`` rows to a CSV file."""
    file_path = Path(path).expanduser()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open('w', newline='', encoding='utf-8') as fh:
        writer = csv.writer(fh)
        writer.writerow(['hole_size', 'balance_time'])
        for hole_size, balance_time in rows:
            writer.writerow([f'{hole_size:.6g}', f'{balance_time:.6f}'])
    logger.info("Balance report written to %s", file_path)
    return file_path
