"""
Termination Policy for the Closed-Loop Simulation

Decides, after every tick, whether the run keeps going or has reached one of
three terminal outcomes:

- CONVERGED: position held inside the tolerance band for a sustained streak
- DIVERGED:  |position| escaped a fixed multiple of the target
- EXHAUSTED: the iteration budget ran out first

Tolerance band:
--------------
    |x - r| < tol * |r|

The band is strict and empty for r == 0, so a zero target can never
converge. Divergence is checked before the band on every tick; the two are
mutually exclusive whenever divergence_factor > 1 + tol.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class SimulationStatus(Enum):
    """Lifecycle states of a simulation run."""
    RUNNING = "running"
    CONVERGED = "converged"
    DIVERGED = "diverged"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self is not SimulationStatus.RUNNING

    @property
    def succeeded(self) -> bool:
        return self is SimulationStatus.CONVERGED

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self]


STATUS_MESSAGES = {
    SimulationStatus.RUNNING: "running",
    SimulationStatus.CONVERGED: "goal reached",
    SimulationStatus.DIVERGED: "overshot goal",
    SimulationStatus.EXHAUSTED: "ran out of iteration budget",
}


@dataclass
class TerminationPolicy:
    """
    Convergence / divergence / budget rules evaluated once per tick.

    Attributes
    ----------
    target : float
        Setpoint the band and divergence threshold are measured against
    convergence_ticks : int
        Consecutive in-band ticks required to declare convergence
    convergence_tolerance : float
        Band half-width as a fraction of |target|
    divergence_factor : float
        Divergence threshold as a multiple of |target|
    max_ticks : int
        Iteration budget
    """
    target: float
    convergence_ticks: int = 11
    convergence_tolerance: float = 0.1
    divergence_factor: float = 100.0
    max_ticks: int = 10000

    def in_tolerance_band(self, position: float) -> bool:
        return abs(position - self.target) < self.convergence_tolerance * abs(self.target)

    def has_diverged(self, position: float) -> bool:
        return abs(position) > abs(self.target) * self.divergence_factor

    def evaluate(
        self,
        tick_index: int,
        position: float,
        streak: int
    ) -> Tuple[SimulationStatus, int]:
        """
        Classify the tick that just completed.

        Parameters
        ----------
        tick_index : int
            Number of ticks executed so far (1 after the first tick)
        position : float
            Process position produced by that tick
        streak : int
            Convergence streak before that tick

        Returns
        -------
        Tuple[SimulationStatus, int]
            New status and updated convergence streak
        """
        if self.has_diverged(position):
            return SimulationStatus.DIVERGED, streak

        streak = streak + 1 if self.in_tolerance_band(position) else 0
        if streak >= self.convergence_ticks:
            return SimulationStatus.CONVERGED, streak

        if tick_index >= self.max_ticks:
            return SimulationStatus.EXHAUSTED, streak

        return SimulationStatus.RUNNING, streak
