"""
Integrator-Chain Plant Model

Idealized process driven by the controller command through three chained
forward-Euler accumulators:

    a[k] = a[k-1] + u[k]
    v[k] = v[k-1] + a[k]
    x[k] = x[k-1] + v[k]

There is no mass, damping, saturation or external force. Because the command
accumulates into acceleration rather than replacing it, holding a target
requires the command sequence to cancel the acceleration built up so far.
"""

from dataclasses import dataclass, asdict
from typing import Dict


@dataclass
class PlantState:
    """Kinematic state of the integrator chain."""
    command: float = 0.0       # Most recent control input
    acceleration: float = 0.0
    velocity: float = 0.0
    position: float = 0.0


class IntegratorChainPlant:
    """Triple-integrator plant with a zero initial state.

    Example
    -------
    >>> plant = IntegratorChainPlant()
    >>> [plant.update(1.0) for _ in range(3)]
    [1.0, 4.0, 10.0]
    """

    def __init__(self) -> None:
        self.state = PlantState()

    @property
    def position(self) -> float:
        return self.state.position

    def update(self, command: float) -> float:
        """Apply one command and return the new position."""
        self.state.command = command
        self.state.acceleration += command
        self.state.velocity += self.state.acceleration
        self.state.position += self.state.velocity
        return self.state.position

    def reset(self) -> None:
        self.state = PlantState()

    def get_state(self) -> Dict[str, float]:
        return asdict(self.state)
