"""
CLI entry point for the aggkin package.

Allows running as:
    python -m aggkin simulate run.json [--mode mass] [--output out.csv]
    python -m aggkin fit fit.json data.csv [--global] [--guesses prev.json] [--output fit.json]
    python -m aggkin sweep sweep.json OUTPUT_DIR
    aggkin ... (CLI command)
"""

import argparse
import json
import sys

from tqdm import tqdm

from .models import ConfigurationError, DataFormatError, ParameterSet
from .integrator import integrate
from .nelder_mead import fit_global, fit_single
from .sweep import parameter_grid, run_sweep
from .datafiles import (
    export_parameters,
    load_experimental_data,
    load_fit_config,
    load_guesses,
    load_multi_assay,
    load_run_config,
    parse_constants,
    write_fit_result,
    write_series_csv,
)


def _banner(title: str) -> None:
    print("=" * 70)
    print(title)
    print("=" * 70)


def cmd_simulate(args) -> int:
    config = load_run_config(args.config)
    meta = config.constants.metaparameters
    output = args.output or meta.output_file or 'output.csv'

    _banner("AGGREGATION KINETICS SIMULATION")
    print(f"\nParameters: {config.params}")
    print(f"  initial conditions = {list(config.constants.initial_conditions)}")
    print(f"  step size = {meta.step_size:g}, time length = {meta.time_length:g}, "
          f"points = {meta.points}")

    with tqdm(total=100, desc="Integrating", unit="%") as bar:
        def progress(fraction):
            bar.update(round(fraction * 100) - bar.n)

        series = integrate(config.constants.initial_conditions, config.params, meta,
                           mode=args.mode, nm=config.nm, progress=progress)

    write_series_csv(series, output)
    print(f"\n{len(series)} samples written to {output}")
    return 0


def cmd_fit(args) -> int:
    config = load_fit_config(args.config)
    guesses = load_guesses(args.guesses) if args.guesses else config.guesses

    _banner("NELDER-MEAD FIT")
    if args.guesses:
        print(f"Starting from {len(guesses)} guesses in {args.guesses}")
    if args.global_fit:
        datasets = load_multi_assay(args.data)
        print(f"Read {len(datasets)} assays from {args.data}")
        result = fit_global(datasets, guesses, config.constants,
                            iterations=config.iterations, nm=config.nm,
                            use_numba=args.numba, verbose=args.verbose,
                            show_progress=not args.verbose)
    else:
        data = load_experimental_data(args.data)
        print(f"Read {len(data)} points from {args.data}")
        result = fit_single(data, guesses, config.constants[0],
                            iterations=config.iterations, nm=config.nm,
                            use_numba=args.numba, verbose=args.verbose,
                            show_progress=not args.verbose)

    print(result)
    write_fit_result(result, args.output)
    print(f"Fit written to {args.output}")
    if args.export:
        export_parameters(result.best, args.export, constants=config.constants[0], nm=config.nm)
        print(f"Parameters exported to {args.export}")
    return 0


def cmd_sweep(args) -> int:
    with open(args.config) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{args.config}: invalid JSON ({e})") from None

    try:
        start = ParameterSet.from_dict(data['start'])
        change = ParameterSet.from_dict(data['change'])
        number = ParameterSet.from_dict(data['number']).to_vector().tolist()
    except KeyError as e:
        raise ConfigurationError(f"Sweep configuration is missing {e}") from None

    constants = parse_constants(data)
    grid = list(parameter_grid(start, change, number))

    _banner("PARAMETER SWEEP")
    print(f"{len(grid)} parameter sets -> {args.output_dir}")
    paths = run_sweep(grid, constants, args.output_dir, mode=args.mode, nm=data.get('nm'))
    print(f"Wrote {len(paths)} files")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='aggkin',
        description='Simulate protein aggregation kinetics and fit rate constants'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('simulate', help='Integrate one parameter set')
    p.add_argument('config', help='Run configuration (JSON)')
    p.add_argument('--mode', choices=['concentration', 'mass'], default='concentration')
    p.add_argument('--output', default=None, help='Output CSV (default: outputFile from config)')
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser('fit', help='Fit rate constants to experimental data')
    p.add_argument('config', help='Fit configuration (JSON)')
    p.add_argument('data', help='Experimental data file')
    p.add_argument('--global', dest='global_fit', action='store_true',
                   help="Global fit over '>'-separated assays")
    p.add_argument('--output', default='fit_result.json')
    p.add_argument('--guesses', default=None,
                   help='Start from the simplex of a previous fit result (JSON)')
    p.add_argument('--export', default=None, help='Also write best parameters as a run config')
    p.add_argument('--numba', action='store_true', help='Use the numba integration kernel')
    p.add_argument('--verbose', action='store_true', help='Print every simplex step')
    p.set_defaults(func=cmd_fit)

    p = sub.add_parser('sweep', help='Simulate a grid of parameter sets')
    p.add_argument('config', help='Sweep configuration (JSON with start/change/number)')
    p.add_argument('output_dir')
    p.add_argument('--mode', choices=['concentration', 'mass'], default='mass')
    p.set_defaults(func=cmd_sweep)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ConfigurationError, DataFormatError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
