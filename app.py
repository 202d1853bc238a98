"""
Command-line entry point of the two-chamber gas experiment.

    python app.py run            discover the balance time, then extend to twice it
    python app.py sweep --holes 5 10 20
                                 balance time for several hole sizes (CSV report)
    python app.py view           watch the gas evolve in a pygame window
"""

import argparse
import logging
import sys
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

import config
from config import DISCOVER, EXTEND, GasConfig
from output import OvitoWriter, write_balance_report
from particles import ParticleGrid
from simulation import FrameSink, Simulation

logger = logging.getLogger(__name__)


def build_simulation(cfg: GasConfig, frame_sink: Optional[FrameSink] = None) -> Simulation:
    """Create an engine over a fresh gas packed into the first chamber."""
    rng = np.random.default_rng(cfg.seed)
    grid = ParticleGrid.random_in_first_chamber(cfg, rng)
    return Simulation(grid, cfg, frame_sink=frame_sink, rng=rng)


def run_two_phase(simulation: Simulation, max_steps: Optional[int] = None) -> Tuple[float, float]:
    """Discover the balance time, then keep the same gas running to twice it."""
    balance_time = simulation.execute(time_limit=DISCOVER, max_steps=max_steps)
    if simulation.balance_time == 0:
        logger.warning("Balance was not reached; skipping the extended run")
        return balance_time, balance_time
    extended = simulation.execute(time_limit=EXTEND, max_steps=max_steps)
    logger.info("Extended run stopped at t=%s (balance time %s)", extended, simulation.balance_time)
    return simulation.balance_time, extended


def sweep_hole_sizes(
    cfg: GasConfig, hole_sizes: Iterable[float], max_steps: Optional[int] = None
) -> List[Tuple[float, float]]:
    """Balance time for each hole size, every run starting from the same seed."""
    rows = []
    for hole_size in hole_sizes:
        hole_cfg = cfg.replace(hole_size=float(hole_size), gas_mode=False)
        simulation = build_simulation(hole_cfg)
        result = simulation.execute(time_limit=DISCOVER, max_steps=max_steps)
        if simulation.balance_time == 0:
            logger.warning("Hole size %s: no balance after t=%s", hole_size, result)
        rows.append((float(hole_size), simulation.balance_time))
    return rows


################################################################################
# Command line
################################################################################

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Two-chamber Lennard-Jones gas: balance time experiment")
    parser.add_argument('--config', type=str, default=None, help="path to a config.json file")
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--particles', type=int, default=None, help="number of particles")
    parser.add_argument('--hole-size', type=float, default=None, help="height of the hole in the partition")
    parser.add_argument('--seed', type=int, default=None, help="random seed")
    parser.add_argument('--max-steps', type=int, default=None,
                        help="stop any single run after this many steps")
    sub = parser.add_subparsers(dest='command')

    run = sub.add_parser('run', help="discover the balance time, then extend the run to twice it")
    run.add_argument('--animate', action='store_true', help="write Ovito frames while running")
    run.add_argument('--output', type=str, default=None, help="Ovito output file")

    sweep = sub.add_parser('sweep', help="balance time for several hole sizes")
    sweep.add_argument('--holes', type=float, nargs='+', required=True)
    sweep.add_argument('--report', type=str, default='balance_times.csv')

    sub.add_parser('view', help="watch the simulation in a pygame window")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = 'run'
        args.animate = False
        args.output = None
    return args


def load_config(args: argparse.Namespace) -> Tuple[config.ConfigLoader, GasConfig]:
    loader = config.ConfigLoader(args.config) if args.config else config.ConfigLoader()
    overrides = {}
    if args.particles is not None:
        overrides['particle_count'] = args.particles
    if args.hole_size is not None:
        overrides['hole_size'] = args.hole_size
        overrides['hole_position'] = None
    if args.seed is not None:
        overrides['seed'] = args.seed
    if getattr(args, 'animate', False):
        overrides['gas_mode'] = True
    if getattr(args, 'output', None):
        overrides['output_file'] = args.output
    return loader, GasConfig.from_loader(loader, **overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    loader, cfg = load_config(args)

    if args.command == 'sweep':
        rows = sweep_hole_sizes(cfg, args.holes, max_steps=args.max_steps)
        write_balance_report(args.report, rows)
        return 0

    if args.command == 'view':
        from viewer import App

        simulation = build_simulation(cfg)
        App(simulation, fps=loader.get('FPS', 60), steps_per_frame=loader.get('steps_per_frame', 20)).run()
        return 0

    writer = OvitoWriter(cfg.output_file) if cfg.gas_mode else None
    simulation = build_simulation(cfg, frame_sink=writer)
    balance_time, extended = run_two_phase(simulation, max_steps=args.max_steps)
    print(f"Hole size: {cfg.hole_size}; balance time: {balance_time}; extended run: {extended}")
    if writer is not None:
        logger.info("%d frames written to %s", writer.frames_written, writer.path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
