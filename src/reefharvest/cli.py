"""Command-line entry point: optimize one parameter set or run a sweep.

Usage:
    reefharvest --periods 24 --effort-cap 15 --output optimum.csv
    reefharvest --params reef.csv --trials 20 --sd growth_rate=0.01 --workers 4
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from reefharvest import __version__
from reefharvest.core.optimization import MINIMIZERS, optimize
from reefharvest.core.params import (
    MODEL_PARAMETERS,
    ConfigurationError,
    HarvestParams,
    OptimizerSettings,
    create_harvest_params,
    create_optimizer_settings,
    read_harvest_params,
    with_overrides,
)
from reefharvest.core.simulation import SimulationRecord
from reefharvest.core.sweep import DRAWABLE_PARAMETERS, draw_parameters, run_sweep
from reefharvest.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _parse_sd(text: str) -> Tuple[str, float]:
    name, sep, value = text.partition('=')
    if not sep:
        raise argparse.ArgumentTypeError(f"expected NAME=SD, got {text!r}")
    name = name.strip()
    if name not in DRAWABLE_PARAMETERS:
        raise argparse.ArgumentTypeError(
            f"cannot draw {name!r}; choose from {', '.join(DRAWABLE_PARAMETERS)}"
        )
    try:
        return name, float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"standard deviation of {name!r} is not a number"
        ) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='reefharvest',
        description='Optimize fishing effort on two linked reefs.',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--params', type=Path,
                        help='CSV parameter table with columns parameter,value')

    model = parser.add_argument_group('model parameters (override --params)')
    for name in MODEL_PARAMETERS:
        model.add_argument(f"--{name.replace('_', '-')}", dest=name,
                           type=int if name == 'periods' else float)

    solver = parser.add_argument_group('optimizer')
    solver.add_argument('--method', choices=sorted(MINIMIZERS))
    solver.add_argument('--relative-tolerance', dest='relative_tolerance', type=float)
    solver.add_argument('--max-evaluations', dest='max_evaluations', type=int)

    sweep = parser.add_argument_group('parameter sweep')
    sweep.add_argument('--trials', type=int, default=1,
                       help='Number of sweep trials (1 = single optimization)')
    sweep.add_argument('--sd', type=_parse_sd, action='append', default=[],
                       metavar='NAME=SD',
                       help='Draw NAME from a normal around its configured value')
    sweep.add_argument('--seed', type=int, default=42)
    sweep.add_argument('--workers', type=int, default=1)

    out = parser.add_argument_group('output')
    out.add_argument('--output', type=Path, help='Write the (mean) record to CSV')
    out.add_argument('--plot', type=Path, help='Save a stock/effort/harvest figure')
    out.add_argument('--log-level', default='INFO',
                     choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser


def load_configuration(args: argparse.Namespace) -> Tuple[HarvestParams, OptimizerSettings]:
    """Combine the parameter file (if any) with command-line overrides."""
    if args.params is not None:
        params, settings = read_harvest_params(args.params)
    else:
        params, settings = create_harvest_params(), create_optimizer_settings()

    model_overrides = {
        name: getattr(args, name) for name in MODEL_PARAMETERS
        if getattr(args, name) is not None
    }
    params = with_overrides(params, **model_overrides)

    solver_overrides = {
        name: getattr(args, name)
        for name in ('method', 'relative_tolerance', 'max_evaluations')
        if getattr(args, name) is not None
    }
    if solver_overrides:
        settings = replace(settings, **solver_overrides)
    return params, settings


def _report(record: SimulationRecord, params: HarvestParams, args: argparse.Namespace) -> None:
    frame = record.to_dataframe()
    if args.output is not None:
        frame.to_csv(args.output, index=False)
        logger.info("Wrote %d periods to %s", len(frame), args.output)
    else:
        print(frame.to_string(index=False, float_format=lambda v: f"{v:.4f}"))

    if args.plot is not None:
        import matplotlib
        matplotlib.use('Agg')
        from reefharvest.core.plotting import plot_harvest_summary

        fig = plot_harvest_summary(
            record,
            effort_cap=params.effort_cap,
            carrying_capacity=params.carrying_capacity,
        )
        fig.savefig(args.plot, dpi=150, bbox_inches='tight')
        logger.info("Saved figure to %s", args.plot)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        params, settings = load_configuration(args)
        if args.trials != 1 or args.sd:
            sds: Dict[str, float] = dict(args.sd)
            distributions = {name: (getattr(params, name), sd) for name, sd in sds.items()}
            draws = draw_parameters(params, distributions, args.trials, seed=args.seed)
            sweep = run_sweep(draws, settings, n_workers=args.workers)
            logger.info("%d of %d trials converged", sweep.n_converged, args.trials)
            record = sweep.mean_record
        else:
            result, record = optimize(params, settings)
            print(f"Total discounted utility: {result.total_utility:.6f} "
                  f"({'converged' if result.converged else 'not converged'}: {result.message})")
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 2

    _report(record, params, args)
    return 0


if __name__ == '__main__':
    sys.exit(main())
