#!/usr/bin/env python3
"""
Command-line runner for the PID Loop Simulator.

Builds a SimulationConfig from command-line flags, runs the closed loop to a
terminal state and maps the outcome onto the process exit status:

- goal reached                  -> exit 0
- overshot goal                 -> exit 1, message on stderr
- ran out of iteration budget   -> exit 1, message on stderr

Usage:
    python -m pid_loop_sim.runner --tick-delay 0 --report
"""

import argparse
import sys
from dataclasses import fields
from typing import List, Optional

from pid_loop_sim.core.simulation.performance_analyzer import PerformanceAnalyzer
from pid_loop_sim.core.simulation.simulation_runner import ClosedLoopRunner, SimulationConfig


def build_parser() -> argparse.ArgumentParser:
    defaults = {f.name: f.default for f in fields(SimulationConfig)}
    parser = argparse.ArgumentParser(
        description="PID Loop Simulator - PID control of a triple-integrator plant",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Controller
    parser.add_argument("--kp", type=float, default=defaults['kp'],
                        help="Proportional gain")
    parser.add_argument("--ki", type=float, default=defaults['ki'],
                        help="Integral gain")
    parser.add_argument("--kd", type=float, default=defaults['kd'],
                        help="Derivative gain")
    parser.add_argument("--tick-duration", type=float, default=defaults['tick_duration'],
                        help="Simulated time per tick")
    parser.add_argument("--output-scale", type=float, default=defaults['output_scale'],
                        help="Multiplier applied to the PID output")
    parser.add_argument("--integral-limit", type=float, default=defaults['integral_limit'],
                        help="Clamp |accumulated error| to this value (unbounded if omitted)")

    # Goal and termination
    parser.add_argument("--target", type=float, default=defaults['target'],
                        help="Target position")
    parser.add_argument("--max-ticks", type=int, default=defaults['max_ticks'],
                        help="Iteration budget")
    parser.add_argument("--convergence-ticks", type=int, default=defaults['convergence_ticks'],
                        help="Consecutive in-band ticks required to converge")
    parser.add_argument("--convergence-tolerance", type=float,
                        default=defaults['convergence_tolerance'],
                        help="Tolerance band as a fraction of |target|")
    parser.add_argument("--divergence-factor", type=float,
                        default=defaults['divergence_factor'],
                        help="Divergence threshold as a multiple of |target|")

    # Execution and output
    parser.add_argument("--tick-delay", type=float, default=defaults['tick_delay'],
                        help="Wall-clock delay between ticks in seconds (0 = fast as possible)")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress per-tick lines and the run banner")
    parser.add_argument("--report", action="store_true",
                        help="Print the step-response performance report")
    parser.add_argument("--plot", metavar="PATH", default=None,
                        help="Save the trajectory figure to PATH")

    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    """Map parsed flags onto SimulationConfig fields."""
    kwargs = {f.name: getattr(args, f.name) for f in fields(SimulationConfig)
              if hasattr(args, f.name)}
    kwargs['verbose'] = not args.quiet
    return SimulationConfig(**kwargs)


def main(argv: Optional[List[str]] = None):
    """
    Run the CLI. Returns 0 when the goal is reached; any other outcome exits
    the process with the failure message.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    runner = ClosedLoopRunner(config)

    try:
        results = runner.run_simulation()
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        return 130

    if args.report:
        analyzer = PerformanceAnalyzer(settling_threshold=config.convergence_tolerance)
        print(analyzer.generate_report(analyzer.analyze(results['log_data'])))

    if args.plot:
        import matplotlib
        matplotlib.use("Agg")
        runner.plot_results(save_path=args.plot)
        print(f"Trajectory plot saved to {args.plot}")

    if results['succeeded']:
        print(results['message'].capitalize())
        return 0

    sys.exit(results['message'].capitalize())


if __name__ == "__main__":
    sys.exit(main())
