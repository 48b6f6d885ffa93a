"""
Feedback Control Laws for the PID Loop Simulator

This module implements the discrete-time PID controller that closes the loop
around the integrator-chain plant.

Control Law:
-----------
    e[k] = r[k] - y[k-1]

    I[k] = I[k-1] + e[k] * dt
    D[k] = (e[k] - e[k-1]) / dt

    u[k] = s * (Kp * e[k] + Ki * I[k] + Kd * D[k])

where s is the output scale applied after the raw control law.

Implementation Notes:
--------------------
1. **Initial derivative**: e[-1] = 0, so the first derivative sample is
   e[0] / dt. The resulting derivative kick is part of the reference
   behaviour and is not filtered.

2. **Integral windup**: the integral is unbounded by default. An optional
   symmetric clamp (``integral_limit``) can be configured; it is off unless
   explicitly requested.

3. **Non-finite inputs**: no validation is performed on target/measurement.
   NaN and inf propagate to the output deterministically.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class PIDGains:
    """PID controller gains."""
    kp: float  # Proportional gain
    ki: float  # Integral gain [1/tick]
    kd: float  # Derivative gain [tick]


class BaseController(ABC):
    """
    Abstract base class for all controllers.

    Defines the standard interface for a stateful control law: one command
    per tick, a reset to construction-time state, and a state snapshot for
    logging/debugging.
    """

    @abstractmethod
    def update(self, target: float, measured: float) -> float:
        """
        Compute control command for one tick.

        Parameters
        ----------
        target : float
            Desired setpoint
        measured : float
            Measured process output from the previous tick

        Returns
        -------
        float
            Control command
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """
        Reset controller to initial state.
        """
        pass

    @abstractmethod
    def get_state(self) -> Dict:
        """
        Get current controller state for logging/debugging.

        Returns
        -------
        Dict
            Dictionary containing controller state variables
        """
        pass


class PIDController(BaseController):
    """
    Parallel-form PID controller evaluated at fixed tick intervals.

    Attributes
    ----------
    gains : PIDGains
        Proportional, integral and derivative gains (fixed after construction)
    tick_duration : float
        Simulated time step used for integration and differentiation (> 0)
    output_scale : float
        Multiplier applied to the raw control law output
    integral_limit : Optional[float]
        Symmetric clamp on the accumulated error, or None for no clamp
    accumulated_error : float
        Running sum of error * tick_duration
    last_error : float
        Error from the previous tick (0.0 before the first update)
    last_terms : Dict[str, float]
        P/I/D contributions of the most recent update (before output scaling)

    Example
    -------
    >>> pid = PIDController(PIDGains(kp=0.01, ki=0.0001, kd=0.6),
    ...                     tick_duration=1.0, output_scale=1e-4)
    >>> command = pid.update(target=100.0, measured=0.0)
    """

    def __init__(
        self,
        gains: PIDGains,
        tick_duration: float = 1.0,
        output_scale: float = 1.0,
        integral_limit: Optional[float] = None,
    ):
        """
        Initialize PID controller.

        Parameters
        ----------
        gains : PIDGains
            Controller gains
        tick_duration : float
            Time step per tick. Must be > 0.
        output_scale : float
            Output multiplier
        integral_limit : Optional[float]
            Anti-windup clamp on |accumulated_error|. Must be > 0 when given.

        Raises
        ------
        ValueError
            If tick_duration or integral_limit is not strictly positive
        """
        if not tick_duration > 0:
            raise ValueError(f"tick_duration must be > 0, got {tick_duration}")
        if integral_limit is not None and not integral_limit > 0:
            raise ValueError(f"integral_limit must be > 0, got {integral_limit}")

        self.gains = gains
        self.tick_duration = float(tick_duration)
        self.output_scale = float(output_scale)
        self.integral_limit = integral_limit

        self.accumulated_error: float = 0.0
        self.last_error: float = 0.0
        self.last_terms: Dict[str, float] = {'u_p': 0.0, 'u_i': 0.0, 'u_d': 0.0}

    @property
    def kp(self) -> float:
        return self.gains.kp

    @property
    def ki(self) -> float:
        return self.gains.ki

    @property
    def kd(self) -> float:
        return self.gains.kd

    def update(self, target: float, measured: float) -> float:
        """
        Compute the scaled PID command for one tick.

        Parameters
        ----------
        target : float
            Desired setpoint
        measured : float
            Measured process output

        Returns
        -------
        float
            output_scale * (P + I + D)
        """
        error = target - measured

        self.accumulated_error += error * self.tick_duration
        if self.integral_limit is not None:
            self.accumulated_error = max(
                -self.integral_limit, min(self.accumulated_error, self.integral_limit)
            )

        derivative = (error - self.last_error) / self.tick_duration

        u_p = self.gains.kp * error
        u_i = self.gains.ki * self.accumulated_error
        u_d = self.gains.kd * derivative

        self.last_error = error
        self.last_terms = {'u_p': u_p, 'u_i': u_i, 'u_d': u_d}

        return self.output_scale * (u_p + u_i + u_d)

    def reset(self) -> None:
        """Clear accumulated error and error history."""
        self.accumulated_error = 0.0
        self.last_error = 0.0
        self.last_terms = {'u_p': 0.0, 'u_i': 0.0, 'u_d': 0.0}

    def get_state(self) -> Dict:
        return {
            'accumulated_error': self.accumulated_error,
            'last_error': self.last_error,
            **self.last_terms,
        }


def create_pid_controller(
    kp: float,
    ki: float,
    kd: float,
    tick_duration: float = 1.0,
    output_scale: float = 1.0,
    integral_limit: Optional[float] = None,
) -> PIDController:
    """
    Factory function to build a PIDController from flat gain values.

    Returns
    -------
    PIDController
        Configured controller with zeroed history
    """
    return PIDController(
        PIDGains(kp=kp, ki=ki, kd=kd),
        tick_duration=tick_duration,
        output_scale=output_scale,
        integral_limit=integral_limit,
    )
