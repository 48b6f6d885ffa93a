"""
Closed-Loop Simulation Runner for the PID Loop Simulator

This module implements the fixed-step driver that couples the PID controller
to the integrator-chain plant and decides when a run is over.

Data Flow (one tick):
--------------------
    position[k-1] → PIDController.update(target, ·) → command[k]
    command[k]    → IntegratorChainPlant.update(·)  → position[k]
    position[k]   → TerminationPolicy.evaluate(...) → status

The run ends in exactly one terminal state (CONVERGED, DIVERGED, EXHAUSTED).
Between ticks the runner blocks on an injectable pacer; pacing never changes
the simulated trajectory, so runs are bit-for-bit reproducible.
"""

import math
import time
import warnings
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np

from pid_loop_sim.core.controllers.control_laws import PIDController, PIDGains
from pid_loop_sim.core.dynamics.integrator_chain import IntegratorChainPlant
from pid_loop_sim.core.simulation.pacing import Pacer, create_pacer
from pid_loop_sim.core.simulation.termination import SimulationStatus, TerminationPolicy


TickReporter = Callable[[int, float, float], None]


@dataclass
class SimulationConfig:
    """Configuration for simulation runner."""

    # PID controller
    kp: float = 0.01
    ki: float = 0.0001
    kd: float = 0.6
    tick_duration: float = 1.0      # Simulated time per tick (not wall-clock)
    output_scale: float = 1e-4
    integral_limit: Optional[float] = None  # None = unbounded integral

    # Goal and termination
    target: float = 100.0
    max_ticks: int = 10000
    convergence_ticks: int = 11
    convergence_tolerance: float = 0.1   # ±10% of target
    divergence_factor: float = 100.0

    # Execution
    tick_delay: float = 0.1         # Wall-clock pacing between ticks [s]
    verbose: bool = True            # Per-tick lines and run banner

    def __post_init__(self):
        """Validate parameters that the loop divides by or counts against."""
        if not self.tick_duration > 0:
            raise ValueError(f"tick_duration must be > 0, got {self.tick_duration}")
        if self.integral_limit is not None and not self.integral_limit > 0:
            raise ValueError(f"integral_limit must be > 0, got {self.integral_limit}")
        if self.max_ticks < 1:
            raise ValueError(f"max_ticks must be >= 1, got {self.max_ticks}")
        if self.convergence_ticks < 1:
            raise ValueError(f"convergence_ticks must be >= 1, got {self.convergence_ticks}")
        if not self.convergence_tolerance > 0:
            raise ValueError(
                f"convergence_tolerance must be > 0, got {self.convergence_tolerance}"
            )
        if not self.divergence_factor > 0:
            raise ValueError(f"divergence_factor must be > 0, got {self.divergence_factor}")
        if not self.tick_delay >= 0:
            raise ValueError(f"tick_delay must be >= 0, got {self.tick_delay}")
        if not math.isfinite(self.target):
            raise ValueError(f"target must be finite, got {self.target}")
        if self.target == 0:
            warnings.warn(
                "target is 0: the tolerance band is empty, the run can only "
                "diverge or exhaust its budget"
            )


@dataclass
class SimulationState:
    """Container for current simulation state."""
    tick_index: int = 0
    command: float = 0.0
    position: float = 0.0
    convergence_streak: int = 0
    status: SimulationStatus = SimulationStatus.RUNNING


def print_tick(tick: int, command: float, position: float) -> None:
    """Default per-tick console reporter."""
    print(f"{tick} -> command: {command}; position: {position}")


class ClosedLoopRunner:
    """
    Closed-loop simulation runner for the PID / integrator-chain pair.

    Usage:
    ------
    >>> config = SimulationConfig(tick_delay=0.0, verbose=False)
    >>> runner = ClosedLoopRunner(config)
    >>> results = runner.run_simulation()
    >>> print(results['message'], results['ticks'])
    goal reached 140
    """

    def __init__(
        self,
        config: SimulationConfig,
        pacer: Optional[Pacer] = None,
        reporter: Optional[TickReporter] = None,
    ):
        """
        Initialize the simulation runner.

        Parameters
        ----------
        config : SimulationConfig
            Controller gains, goal, termination thresholds and pacing
        pacer : Pacer, optional
            Inter-tick delay strategy. Defaults to one built from
            ``config.tick_delay``.
        reporter : callable, optional
            ``reporter(tick, command, position)`` called once per tick.
            Defaults to ``print_tick`` when ``config.verbose`` is set.
        """
        self.config = config
        self.pacer = pacer if pacer is not None else create_pacer(config.tick_delay)
        if reporter is None and config.verbose:
            reporter = print_tick
        self.reporter = reporter

        self.controller = PIDController(
            PIDGains(kp=config.kp, ki=config.ki, kd=config.kd),
            tick_duration=config.tick_duration,
            output_scale=config.output_scale,
            integral_limit=config.integral_limit,
        )
        self.plant = IntegratorChainPlant()
        self.policy = TerminationPolicy(
            target=config.target,
            convergence_ticks=config.convergence_ticks,
            convergence_tolerance=config.convergence_tolerance,
            divergence_factor=config.divergence_factor,
            max_ticks=config.max_ticks,
        )

        self.state = SimulationState()
        self._init_logging()

    def _init_logging(self) -> None:
        """Initialize telemetry buffers."""
        self.log_data: Dict[str, List] = defaultdict(list)
        self.log_signals = [
            'tick', 'target',
            'command', 'position', 'velocity', 'acceleration',
            'error', 'accumulated_error',
            'pid_u_p', 'pid_u_i', 'pid_u_d',
            'convergence_streak', 'in_band',
        ]

    def _log_data(self) -> None:
        plant_state = self.plant.state
        terms = self.controller.last_terms

        self.log_data['tick'].append(self.state.tick_index)
        self.log_data['target'].append(self.config.target)
        self.log_data['command'].append(self.state.command)
        self.log_data['position'].append(plant_state.position)
        self.log_data['velocity'].append(plant_state.velocity)
        self.log_data['acceleration'].append(plant_state.acceleration)
        self.log_data['error'].append(self.config.target - plant_state.position)
        self.log_data['accumulated_error'].append(self.controller.accumulated_error)
        self.log_data['pid_u_p'].append(terms['u_p'])
        self.log_data['pid_u_i'].append(terms['u_i'])
        self.log_data['pid_u_d'].append(terms['u_d'])
        self.log_data['convergence_streak'].append(self.state.convergence_streak)
        self.log_data['in_band'].append(self.policy.in_tolerance_band(plant_state.position))

    def run_single_step(self) -> SimulationState:
        """
        Execute one tick: control, plant integration, reporting, termination.

        Raises
        ------
        RuntimeError
            If the run has already reached a terminal state
        """
        if self.state.status.is_terminal:
            raise RuntimeError(
                f"Simulation already finished ({self.state.status.name}); call reset() first"
            )

        command = self.controller.update(self.config.target, self.state.position)
        position = self.plant.update(command)

        self.state.tick_index += 1
        self.state.command = command
        self.state.position = position

        if self.reporter is not None:
            self.reporter(self.state.tick_index, command, position)

        self.state.status, self.state.convergence_streak = self.policy.evaluate(
            self.state.tick_index, position, self.state.convergence_streak
        )

        self._log_data()
        return self.state

    def run_simulation(self) -> Dict:
        """
        Run ticks until a terminal state is reached.

        Returns
        -------
        Dict
            Terminal status, message, logged telemetry and summary statistics
        """
        if self.config.verbose:
            print(f"Starting simulation toward target {self.config.target}...")
            print(f"  Gains: Kp={self.config.kp}, Ki={self.config.ki}, Kd={self.config.kd}")
            print(f"  Output scale: {self.config.output_scale}")
            print(f"  Budget: {self.config.max_ticks} ticks")

        start_time = time.perf_counter()

        while True:
            self.run_single_step()
            if self.state.status.is_terminal:
                break
            self.pacer.wait()

        elapsed_time = time.perf_counter() - start_time

        if self.config.verbose:
            print(f"Simulation finished: {self.state.status.message}")
            print(f"  Ticks: {self.state.tick_index}")
            print(f"  Wall-clock time: {elapsed_time:.2f} seconds")

        return self._compute_summary()

    def _compute_summary(self) -> Dict:
        """
        Compute run summary from logged telemetry.

        Returns
        -------
        Dict
            Terminal outcome plus RMS/peak statistics of the trajectory
        """
        log_arrays = {key: np.array(val) for key, val in self.log_data.items()}
        n_samples = len(self.log_data['tick'])

        if n_samples > 0:
            error = log_arrays['error']
            command = log_arrays['command']
            with np.errstate(over='ignore', invalid='ignore'):
                rms_error = float(np.sqrt(np.mean(error**2)))
                rms_command = float(np.sqrt(np.mean(command**2)))
                peak_position = float(np.max(log_arrays['position']))
        else:
            rms_error = rms_command = peak_position = 0.0

        status = self.state.status
        return {
            'status': status,
            'message': status.message,
            'succeeded': status.succeeded,
            'ticks': self.state.tick_index,
            'final_position': self.state.position,
            'final_command': self.state.command,
            'convergence_streak': self.state.convergence_streak,
            'accumulated_error': self.controller.accumulated_error,
            'log_data': self.log_data,
            'log_arrays': log_arrays,
            'n_samples': n_samples,
            'rms_error': rms_error,
            'rms_command': rms_command,
            'peak_position': peak_position,
        }

    def plot_results(self, save_path: Optional[str] = None):
        """
        Plot position, command and error timelines of the last run.

        Returns
        -------
        matplotlib.figure.Figure or None
            None when there is no telemetry to plot
        """
        if not self.log_data['tick']:
            print("Warning: No simulation data to plot. Run simulation first.")
            return None

        from pid_loop_sim.core.visualization.time_series_plots import TimelinePlotter

        plotter = TimelinePlotter()
        fig, _ = plotter.plot_full_debug_suite(
            self.log_data,
            tolerance=self.config.convergence_tolerance,
            title=f"PID loop: {self.state.status.message}",
        )
        if save_path is not None:
            fig.savefig(save_path, dpi=150, bbox_inches='tight')
        return fig

    def reset(self) -> None:
        """Reset simulation to initial conditions."""
        self.controller.reset()
        self.plant.reset()
        self.state = SimulationState()
        self.log_data.clear()


def main():
    """
    Demonstration of the closed-loop simulation with default parameters.
    """
    print("=" * 70)
    print("PID Loop Simulator")
    print("=" * 70)
    print()

    config = SimulationConfig(tick_delay=0.0)
    runner = ClosedLoopRunner(config)
    results = runner.run_simulation()

    print()
    print("=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"Outcome:           {results['message']}")
    print(f"Ticks:             {results['ticks']}")
    print(f"Final position:    {results['final_position']:.4f}")
    print(f"RMS error:         {results['rms_error']:.4f}")
    print(f"RMS command:       {results['rms_command']:.6f}")
    print("=" * 70)


if __name__ == "__main__":
    main()
