"""
Inter-tick pacing strategies.

The wall-clock delay between ticks only slows the console output down to a
readable rate; it never feeds back into the simulated time step.
"""

import time
from abc import ABC, abstractmethod


class Pacer(ABC):
    """Blocks the loop between two ticks."""

    @abstractmethod
    def wait(self) -> None:
        pass


class SleepPacer(Pacer):
    """Fixed real-time delay using ``time.sleep``."""

    def __init__(self, delay: float = 0.1):
        """
        Parameters
        ----------
        delay : float
            Delay between ticks [s]. Must be >= 0.
        """
        if not delay >= 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = float(delay)

    def wait(self) -> None:
        time.sleep(self.delay)


class NoDelayPacer(Pacer):
    """Runs as fast as possible (tests, batch runs)."""

    def wait(self) -> None:
        return None


def create_pacer(delay: float) -> Pacer:
    """Return a SleepPacer for positive delays, NoDelayPacer for zero."""
    if delay == 0:
        return NoDelayPacer()
    return SleepPacer(delay)
