#!/usr/bin/env python3
"""
Command-line interface for the point-mass simulator.

This script loads a YAML configuration, integrates the bodies with the
explicit two-step scheme through an ``InteractionSolver``, and writes:
- a CSV of the recorded states
- one flat-array file per body holding its buffered trajectory
- a JSON summary (barycenter drift, momentum, kinetic energy, ...)

Usage:
    python -m pointmass.run config.yaml
    python -m pointmass.run config.yaml --output-dir results --verbose
    python -m pointmass.run config.yaml --validate-only
    python -m pointmass.run --example two_body.yaml
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Any, Dict, List
import warnings

import numpy as np

from pointmass.diagnostics import barycenter_drift, barycenter_history, compute_diagnostics
from pointmass.interaction import InteractionSolver, integrate_system
from pointmass.io_cfg import (
    create_example_config,
    load_config,
    save_history_csv,
    save_summary_json,
    save_trajectory_1d,
    validate_config,
)
from pointmass.timer import Timer


def describe_run(config: Dict[str, Any]) -> None:
    """Print the bodies and the integration settings of ``config``."""
    numerics = config['numerics']
    params = dict(config['field_params'])
    kind = params.pop('type', '?')
    print("=" * 80)
    print(f"POINT-MASS RUN: {len(config['bodies'])} bodies, {kind} field {params}")
    print("=" * 80)
    for body in config['bodies']:
        x = body.position
        extra = f"  {body.data}" if body.data else ""
        print(f"  {body.name:<12s} M={body.mass:<12.5g} x0=[{x[0]:+.4g}, {x[1]:+.4g}, {x[2]:+.4g}]{extra}")
    horizon = numerics['dt'] * numerics['steps']
    print(f"  dt={numerics['dt']:.4e}  steps={numerics['steps']:,}  t_end={horizon:.4e}")
    print(f"  buffer capacity={numerics['capacity']}  record every {numerics['save_every']} step(s)")
    print()


def run_simulation(config: Dict[str, Any], verbose: bool = False) -> Dict[str, Any]:
    """
    Integrate the bodies of ``config`` for the configured number of steps.

    Parameters
    ----------
    config : dict
        Output of ``load_config``, already validated
    verbose : bool
        Print the run description and progress lines

    Returns
    -------
    results : dict
        - 'history': recorded states from integrate_system
        - 'system': the InteractionSolver after the run
        - 'summary': output of compute_summary
    """
    bodies = config['bodies']
    numerics = config['numerics']
    n_steps = numerics['steps']

    system = InteractionSolver(bodies, config['field'], Timer(numerics['dt']))
    initial = compute_diagnostics(bodies)

    if verbose:
        describe_run(config)

    wall_start = time.time()
    history = integrate_system(
        system,
        n_steps,
        save_every=numerics['save_every'],
        verbose=verbose,
        progress_every=max(1, n_steps // 100),
    )
    elapsed = time.time() - wall_start

    summary = compute_summary(history, initial, bodies, elapsed)
    if summary['degenerate']:
        warnings.warn(
            "Non-finite positions produced during the run; the field is singular "
            "for the current configuration (coincident bodies?). Reduce dt or add softening.",
            RuntimeWarning
        )

    return {
        'history': history,
        'system': system,
        'summary': summary,
    }


def compute_summary(
    history: Dict[str, np.ndarray],
    initial: Dict[str, Any],
    bodies: List,
    elapsed: float,
) -> Dict[str, Any]:
    """Summary statistics of a finished run."""
    final = compute_diagnostics(bodies)
    T0 = initial['kinetic_energy']
    T1 = final['kinetic_energy']
    return {
        'n_bodies': len(bodies),
        'n_saved': len(history['t']),
        't_final': float(history['t'][-1]),
        'elapsed_seconds': elapsed,
        'barycenter_initial': initial['barycenter'],
        'barycenter_final': final['barycenter'],
        'barycenter_drift': barycenter_drift(history),
        'momentum_initial': initial['total_momentum'],
        'momentum_final': final['total_momentum'],
        'kinetic_energy_initial': T0,
        'kinetic_energy_final': T1,
        'angular_momentum_final': final['angular_momentum'],
        'degenerate': final['degenerate'],
        'final_positions': {body.name: body.position for body in bodies},
    }


def print_summary(summary: Dict[str, Any], verbose: bool = False) -> None:
    P0, P1 = summary['momentum_initial'], summary['momentum_final']
    rows = [
        ("bodies", f"{summary['n_bodies']}"),
        ("t_final", f"{summary['t_final']:.6e}"),
        ("records", f"{summary['n_saved']}"),
        ("wall time", f"{summary['elapsed_seconds']:.2f} s"),
        ("barycenter drift", f"{summary['barycenter_drift']:.3e}"),
        ("|P| start/end", f"{np.linalg.norm(P0):.6e} / {np.linalg.norm(P1):.6e}"),
        ("T start/end", f"{summary['kinetic_energy_initial']:.6e} / {summary['kinetic_energy_final']:.6e}"),
    ]
    print()
    print("-" * 80)
    for label, value in rows:
        print(f"  {label:<18s} {value}")
    if summary['degenerate']:
        print("  ⚠️  non-finite positions in the final state")
    if verbose:
        for name, x in summary['final_positions'].items():
            print(f"  {name:<18s} x=[{x[0]:+.6e}, {x[1]:+.6e}, {x[2]:+.6e}]")
    print("-" * 80)


def print_trajectory_table(
    history: Dict[str, np.ndarray],
    names: List[str],
    max_rows: int = 20,
) -> None:
    """
    Print recorded states, positions taken relative to the barycenter.

    Parameters
    ----------
    history : dict
        Recorded states from ``integrate_system`` (t, x, v, M)
    names : List[str]
        Body names, in the order of ``history['x']``
    max_rows : int
        Number of snapshots shown, evenly spread over the run
    """
    n_saved = len(history['t'])
    X = barycenter_history(history)
    rows = np.unique(np.linspace(0, n_saved - 1, min(max_rows, n_saved)).astype(int))

    print()
    print("=" * 80)
    print(f"RECORDED STATES ({len(rows)} of {n_saved} snapshots, relative to barycenter)")
    print("=" * 80)
    print(f"{'rec':>6s}  {'t':>12s}  {'body':<12s}  "
          f"{'dx':>13s}  {'dy':>13s}  {'dz':>13s}  {'|v|':>12s}")

    for k in rows:
        for j, name in enumerate(names):
            d = history['x'][k, j] - X[k]
            speed = np.linalg.norm(history['v'][k, j])
            label = f"{k:6d}  {history['t'][k]:12.5e}" if j == 0 else " " * 20
            print(f"{label}  {name:<12s}  {d[0]:+13.5e}  {d[1]:+13.5e}  {d[2]:+13.5e}  {speed:12.5e}")
    print()


def save_outputs(
    config: Dict[str, Any],
    results: Dict[str, Any],
    output_dir: Path,
    verbose: bool = False,
) -> None:
    """Write the run to ``output_dir``.

    The buffered trajectory of every body is always written as a flat array
    (``trajectory_<name>.txt``); the CSV history and JSON summary follow the
    ``outputs`` section of the configuration.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    bodies = config['bodies']

    for body in bodies:
        path = output_dir / f"trajectory_{body.name}.txt"
        save_trajectory_1d(str(path), body.trajectory)
        if verbose:
            print(f"  {body.name}: {body.trajectory.count} buffered samples -> {path}")

    if config['outputs']['write_csv']:
        save_history_csv(str(output_dir / "history.csv"), results['history'],
                         [body.name for body in bodies])
    if config['outputs']['write_json']:
        save_summary_json(str(output_dir / "summary.json"), results['summary'])


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pointmass.run',
        description=(
            'Integrate interacting point masses with the explicit two-step scheme. '
            'Each body keeps its last positions in a ring buffer of fixed capacity.'
        ),
        epilog=(
            'Examples:\n'
            '  python -m pointmass.run --example two_body.yaml\n'
            '  python -m pointmass.run two_body.yaml --validate-only\n'
            '  python -m pointmass.run two_body.yaml -v --output-dir results\n'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('config', nargs='?',
                        help='YAML file with numerics, field, bodies and outputs sections')
    parser.add_argument('--example', metavar='PATH',
                        help='write a two-body example configuration to PATH and exit')
    parser.add_argument('--output-dir', default='output',
                        help='directory receiving history.csv, summary.json and '
                             'trajectory_<body>.txt (default: output)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='print run parameters and integration progress')
    parser.add_argument('--validate-only', action='store_true',
                        help='load and check the configuration, then stop')
    parser.add_argument('--no-table', action='store_true',
                        help='do not print the recorded states')
    parser.add_argument('--table-rows', type=int, default=20,
                        help='number of recorded snapshots printed (default: 20)')
    return parser


def _report(messages: List[str]) -> None:
    if not messages:
        return
    print(f"Configuration check ({len(messages)} message(s)):")
    for message in messages:
        print(f"    - {message}")
    print()


def main(argv=None):
    """Entry point of ``python -m pointmass.run``; returns the exit code."""
    args = create_parser().parse_args(argv)

    if args.example:
        create_example_config(args.example)
        return 0
    if args.config is None:
        print("ERROR: no configuration file given (see --help, or --example PATH)", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Reading {args.config}")
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except (KeyError, ValueError) as e:
        print(f"ERROR: cannot use configuration {args.config}: {e}", file=sys.stderr)
        return 1

    is_valid, messages = validate_config(config)
    _report(messages)
    if not is_valid:
        print("ERROR: configuration rejected, nothing was integrated.", file=sys.stderr)
        return 1
    if args.validate_only:
        print("Configuration validated successfully.")
        return 0

    try:
        results = run_simulation(config, verbose=args.verbose)
    except KeyboardInterrupt:
        print("\nInterrupted, no output written.")
        return 130

    names = [body.name for body in config['bodies']]
    print_summary(results['summary'], verbose=args.verbose)
    if not args.no_table:
        print_trajectory_table(results['history'], names, max_rows=args.table_rows)

    try:
        save_outputs(config, results, Path(args.output_dir), verbose=args.verbose)
    except OSError as e:
        print(f"ERROR: could not write outputs to {args.output_dir}: {e}", file=sys.stderr)
        return 1

    print("Done.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
