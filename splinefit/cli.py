"""
Command-line interface for splinefit.

Usage:
    splinefit fit --head 0 0 --tail 3 0 --point 1 0.5 --point 2 -0.5
    splinefit fit --input waypoints.yml --output spline.json
    splinefit validate config.yml
    splinefit benchmark --segments 1000 --repeats 20
    splinefit info
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np
import yaml

from splinefit import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="splinefit",
        description="splinefit - Clamped cubic spline fitting through 2D waypoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  splinefit fit --head 0 0 --tail 3 0 --point 1 0.5 --point 2 -0.5
  splinefit fit -i waypoints.yml -o spline.json
  splinefit validate config.yml
  splinefit benchmark --segments 1000
  splinefit info
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (use -vv for debug)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fit_parser = subparsers.add_parser(
        "fit",
        help="Fit a spline through waypoints",
        description="Fit a clamped cubic spline and report its stretch energy",
    )
    _add_fit_arguments(fit_parser)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a configuration file",
        description="Validate a YAML configuration file",
    )
    validate_parser.add_argument(
        "config_file",
        type=Path,
        help="Path to configuration file",
    )

    bench_parser = subparsers.add_parser(
        "benchmark",
        help="Time spline fitting on random waypoints",
        description="Fit random waypoint sets repeatedly and report timings",
    )
    bench_parser.add_argument(
        "--segments", "-n",
        type=int,
        default=100,
        help="Number of spline segments (default: 100)",
    )
    bench_parser.add_argument(
        "--repeats", "-r",
        type=int,
        default=10,
        help="Number of timed fits (default: 10)",
    )
    bench_parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)",
    )

    subparsers.add_parser(
        "info",
        help="Show system information",
        description="Display system and dependency information",
    )

    return parser


def _add_fit_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments specific to the fit command."""
    parser.add_argument(
        "--config", "-f",
        type=Path,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="YAML/JSON file with 'head', 'tail' and 'interior' entries",
    )

    parser.add_argument(
        "--head",
        type=float,
        nargs=2,
        metavar=("X", "Y"),
        help="Head point",
    )

    parser.add_argument(
        "--tail",
        type=float,
        nargs=2,
        metavar=("X", "Y"),
        help="Tail point",
    )

    parser.add_argument(
        "--point", "-p",
        type=float,
        nargs=2,
        action="append",
        metavar=("X", "Y"),
        default=[],
        help="Interior point, in path order (repeatable)",
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file for segments and energy (JSON format)",
    )


def setup_logging(verbose: int, quiet: bool, config=None) -> None:
    """Setup logging from verbosity flags and an optional logging section.

    Explicit -v/-q flags win over ``config.level``; without flags or config
    only warnings and errors are shown.
    """
    import logging
    from splinefit.logging import setup_logging as _setup_logging

    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose >= 1:
        level = logging.INFO
    elif config is not None:
        level = None
    else:
        level = logging.WARNING

    _setup_logging(config, level=level, force=True)


def _read_waypoints(args: argparse.Namespace):
    """Collect head, tail and interior points from the input file or flags."""
    from splinefit.exceptions import InvalidWaypointError

    if args.input:
        if not args.input.exists():
            raise InvalidWaypointError(f"input file not found: {args.input}")
        with open(args.input, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidWaypointError("input file must contain a mapping")
        head, tail = data.get("head"), data.get("tail")
        interior = data.get("interior", [])
    else:
        head, tail, interior = args.head, args.tail, args.point

    if head is None or tail is None:
        raise InvalidWaypointError("both head and tail points are required")
    return head, tail, interior


def cmd_fit(args: argparse.Namespace) -> int:
    """Execute the fit command."""
    from splinefit.config import SplineFitConfig, load_config
    from splinefit.exceptions import DimensionMismatchError, SplineFitError
    from splinefit.logging import LOG_ERROR, LOG_INFO
    from splinefit.spline import DIM, CubicSplineFitter, as_point_array

    try:
        if args.config:
            config = load_config(args.config)
            setup_logging(args.verbose, args.quiet, config.logging)
        else:
            config = SplineFitConfig()

        head, tail, interior = _read_waypoints(args)
        interior = as_point_array(interior, "interior points")
        if interior.size == 0:
            interior = interior.reshape(0, DIM)
        if interior.ndim != 2:
            raise DimensionMismatchError("interior points", f"(M, {DIM})", interior.shape)

        fitter = CubicSplineFitter(config)
        fitter.configure(head, tail, len(interior) + 1)
        fitter.fit(interior)

        energy = fitter.compute_stretch_energy()
        curve = fitter.export_curve()
        LOG_INFO(f"Fitted {curve.piece_count} segments")

        print(f"Stretch energy: {energy:.10g}")
        for i, piece in enumerate(curve):
            d, c, b, a = piece.coeff_mat.T
            print(f"Segment {i}: a={a.tolist()} b={b.tolist()} c={c.tolist()} d={d.tolist()}")

        if args.output:
            output_data = {
                "stretch_energy": energy,
                "segments": [
                    {"duration": piece.duration, "coefficients": piece.coeff_mat.tolist()}
                    for piece in curve
                ],
            }
            with open(args.output, "w") as f:
                json.dump(output_data, f, indent=2)
            LOG_INFO(f"Results saved to {args.output}")

        return 0

    except (SplineFitError, yaml.YAMLError) as e:
        LOG_ERROR(f"Error: {e}")
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute the validate command."""
    from splinefit.config import ConfigManager
    from splinefit.exceptions import ConfigurationError

    try:
        manager = ConfigManager(args.config_file)
        config = manager.load(validate=True)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error reading configuration: {e}", file=sys.stderr)
        return 1

    print(f"Configuration file '{args.config_file}' is valid.")
    print(f"  Pivot tolerance: {config.solver.pivot_tolerance}")
    print(f"  Check finite: {config.fitter.check_finite}")
    print(f"  Log level: {config.logging.level}")
    return 0


def cmd_benchmark(args: argparse.Namespace) -> int:
    """Execute the benchmark command."""
    from splinefit.exceptions import SplineFitError
    from splinefit.logging import LOG_ERROR, TimeTracker
    from splinefit.spline import CubicSplineFitter

    if args.repeats < 1:
        LOG_ERROR("--repeats must be >= 1")
        return 1

    rng = np.random.default_rng(args.seed)
    fitter = CubicSplineFitter()
    tracker = TimeTracker(f"fit ({args.segments} segments)")

    try:
        fitter.configure((0.0, 0.0), (float(args.segments), 0.0), args.segments)
        for _ in range(args.repeats):
            interior = np.column_stack((
                np.arange(1, args.segments, dtype=float),
                rng.normal(0.0, 1.0, args.segments - 1),
            ))
            with tracker.measure():
                fitter.fit(interior)
    except SplineFitError as e:
        LOG_ERROR(f"Error: {e}")
        return 1

    stats = tracker.stats()
    print(f"Segments: {args.segments}, fits: {stats.count}")
    print(f"  Mean: {stats.mean_ms:.3f} ms")
    print(f"  Median: {stats.median_ms:.3f} ms")
    print(f"  Max: {stats.max_ms:.3f} ms")
    tracker.log_stats()
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Execute the info command."""
    import platform

    print("splinefit System Information")
    print("=" * 40)
    print(f"splinefit version: {__version__}")
    print(f"Python version: {platform.python_version()}")
    print(f"Platform: {platform.platform()}")
    print()

    print("Dependencies:")
    for dep in ["numpy", "yaml", "scipy"]:
        try:
            mod = __import__(dep)
            version = getattr(mod, "__version__", "unknown")
            print(f"  {dep}: {version}")
        except ImportError:
            print(f"  {dep}: NOT INSTALLED")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.quiet)

    if args.command == "fit":
        return cmd_fit(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "benchmark":
        return cmd_benchmark(args)
    elif args.command == "info":
        return cmd_info(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
