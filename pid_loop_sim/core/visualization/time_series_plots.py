"""
Time-Series Plots for Closed-Loop Debugging

Tick-indexed visualizations of a simulation run:

- Position vs target, with the convergence tolerance band shaded and the
  in-band streaks highlighted
- Controller command, optionally split into P/I/D contributions
- Tracking error
"""

from typing import Dict, List, Optional, Tuple, Union
import warnings

import numpy as np
import matplotlib.pyplot as plt
import pandas as pd


class TimelinePlotter:
    """
    Tick-indexed plotter for runner telemetry.

    Usage:
    ------
    >>> plotter = TimelinePlotter()
    >>> fig, axes = plotter.plot_full_debug_suite(results['log_data'])
    >>> fig.savefig('timeline.png')
    """

    def __init__(self, figure_size: Tuple[int, int] = (12, 9)):
        self.figure_size = figure_size

    def plot_position_tracking(
        self,
        telemetry: Union[Dict[str, List[float]], pd.DataFrame],
        tolerance: float = 0.1,
        tick_window: Optional[Tuple[int, int]] = None,
        title: Optional[str] = None,
        ax: Optional[plt.Axes] = None
    ) -> Tuple[plt.Figure, plt.Axes]:
        """
        Plot position against target with the tolerance band.

        Parameters
        ----------
        telemetry : dict or DataFrame
            Must contain 'tick', 'position', 'target'; 'in_band' is used to
            highlight streaks when present
        tolerance : float
            Band half-width as fraction of |target|
        tick_window : tuple, optional
            (first, last) tick range
        title : str, optional
            Plot title
        ax : plt.Axes, optional
            Existing axes

        Returns
        -------
        fig : plt.Figure
        ax : plt.Axes
        """
        df = self._to_dataframe(telemetry, tick_window)
        tick = df['tick'].values
        target = df['target'].values

        if ax is None:
            fig, ax = plt.subplots(figsize=self.figure_size)
        else:
            fig = ax.figure

        band = tolerance * np.abs(target)
        ax.fill_between(tick, target - band, target + band, color='green', alpha=0.15,
                        label=f'±{tolerance:.0%} band')
        ax.plot(tick, target, 'k--', linewidth=1.2, label='Target')
        ax.plot(tick, df['position'].values, 'b-', linewidth=1.5, label='Position')

        if 'in_band' in df.columns:
            in_band = df['in_band'].values.astype(bool)
            regions = self._get_contiguous_regions(in_band)
            for k, (start_idx, end_idx) in enumerate(regions):
                ax.axvspan(tick[start_idx], tick[end_idx - 1] + 1, alpha=0.2, color='orange',
                           label='In band' if k == 0 else '')

        ax.set_ylabel('Position', fontsize=11, fontweight='bold')
        ax.set_title(title or 'Position Tracking', fontsize=13, fontweight='bold')
        ax.legend(loc='best', fontsize=9)
        ax.grid(True, alpha=0.3)

        return fig, ax

    def plot_control_effort(
        self,
        telemetry: Union[Dict[str, List[float]], pd.DataFrame],
        tick_window: Optional[Tuple[int, int]] = None,
        show_terms: bool = True,
        ax: Optional[plt.Axes] = None
    ) -> Tuple[plt.Figure, plt.Axes]:
        """
        Plot controller command, optionally with unscaled P/I/D terms on a
        secondary axis.
        """
        df = self._to_dataframe(telemetry, tick_window)
        tick = df['tick'].values

        if ax is None:
            fig, ax = plt.subplots(figsize=self.figure_size)
        else:
            fig = ax.figure

        ax.plot(tick, df['command'].values, 'r-', linewidth=1.5, label='Command')
        ax.axhline(0, color='k', linestyle='-', linewidth=0.5, alpha=0.5)
        ax.set_ylabel('Command', fontsize=11, fontweight='bold')
        ax.grid(True, alpha=0.3)

        if show_terms:
            term_keys = ['pid_u_p', 'pid_u_i', 'pid_u_d']
            if all(key in df.columns for key in term_keys):
                ax_terms = ax.twinx()
                for key, style in zip(term_keys, [':', '-.', '--']):
                    ax_terms.plot(tick, df[key].values, style, linewidth=1.0, alpha=0.7,
                                  label=key.replace('pid_u_', '').upper())
                ax_terms.set_ylabel('Unscaled P/I/D terms', fontsize=10)
                ax_terms.legend(loc='upper right', fontsize=9)
            else:
                warnings.warn("P/I/D term data not found, skipping")

        ax.legend(loc='upper left', fontsize=9)
        return fig, ax

    def plot_tracking_error(
        self,
        telemetry: Union[Dict[str, List[float]], pd.DataFrame],
        tick_window: Optional[Tuple[int, int]] = None,
        ax: Optional[plt.Axes] = None
    ) -> Tuple[plt.Figure, plt.Axes]:
        df = self._to_dataframe(telemetry, tick_window)
        tick = df['tick'].values

        if ax is None:
            fig, ax = plt.subplots(figsize=self.figure_size)
        else:
            fig = ax.figure

        error = df['error'].values if 'error' in df.columns else df['target'].values - df['position'].values
        ax.plot(tick, error, 'm-', linewidth=1.5, label='Error')
        ax.axhline(0, color='k', linestyle='-', linewidth=0.5, alpha=0.5)
        ax.set_ylabel('Error', fontsize=11, fontweight='bold')
        ax.legend(loc='best', fontsize=9)
        ax.grid(True, alpha=0.3)

        return fig, ax

    def plot_full_debug_suite(
        self,
        telemetry: Union[Dict[str, List[float]], pd.DataFrame],
        tolerance: float = 0.1,
        tick_window: Optional[Tuple[int, int]] = None,
        title: Optional[str] = None,
        save_path: Optional[str] = None
    ) -> Tuple[plt.Figure, np.ndarray]:
        """
        Three stacked panels: position tracking, control effort, error.

        Returns
        -------
        fig : plt.Figure
        axes : array of plt.Axes
        """
        df = self._to_dataframe(telemetry, tick_window)

        fig, axes = plt.subplots(3, 1, figsize=self.figure_size, sharex=True)
        self.plot_position_tracking(df, tolerance=tolerance, title=title, ax=axes[0])
        self.plot_control_effort(df, ax=axes[1])
        self.plot_tracking_error(df, ax=axes[2])
        axes[-1].set_xlabel('Tick', fontsize=11, fontweight='bold')

        fig.tight_layout()

        if save_path is not None:
            fig.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Debug suite saved to {save_path}")

        return fig, axes

    def _to_dataframe(
        self,
        telemetry: Union[Dict, pd.DataFrame],
        tick_window: Optional[Tuple[int, int]]
    ) -> pd.DataFrame:
        """Convert telemetry to DataFrame and apply tick window."""
        if isinstance(telemetry, dict):
            df = pd.DataFrame({key: list(val) for key, val in telemetry.items()})
        else:
            df = telemetry.copy()

        if tick_window is not None:
            mask = (df['tick'] >= tick_window[0]) & (df['tick'] <= tick_window[1])
            df = df[mask].reset_index(drop=True)

        return df

    def _get_contiguous_regions(self, condition: np.ndarray) -> List[Tuple[int, int]]:
        """
        Find contiguous regions where condition is True.

        Returns list of (start_idx, end_idx) tuples, end exclusive.
        """
        d = np.diff(np.concatenate(([False], condition, [False])).astype(int))
        starts = np.where(d == 1)[0]
        ends = np.where(d == -1)[0]

        return list(zip(starts, ends))
