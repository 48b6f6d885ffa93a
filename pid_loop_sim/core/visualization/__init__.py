"""
Visualization Module for the PID Loop Simulator

Modules:
--------
- time_series_plots: tick-indexed position, command and error timelines
"""

from .time_series_plots import TimelinePlotter

__all__ = [
    'TimelinePlotter',
]
