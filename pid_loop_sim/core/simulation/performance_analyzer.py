"""
Performance Analyzer for the PID Loop Simulator

Step-response metrics computed from runner telemetry. The plant starts at
rest at zero and the setpoint is a constant step, so the classic
time-domain figures apply.

Key Metrics:
-----------
1. Rise tick: first tick at which position reaches ``rise_fraction`` of target
2. Overshoot: peak excursion beyond the target as % of |target|
3. Settling tick: first tick after which the error stays inside the band
4. Error statistics: final, RMS, steady-state (last 20% of samples)
5. Control effort: RMS and peak command
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import warnings

import numpy as np
import pandas as pd


@dataclass
class PerformanceMetrics:
    """
    Container for computed step-response metrics.

    Ticks are 1-based sample indices; -1 means "never happened".
    """
    # Response shape
    peak_position: float = 0.0
    overshoot_percent: float = 0.0
    rise_tick: int = -1
    settling_tick: int = -1

    # Error statistics
    final_error: float = 0.0
    rms_error: float = 0.0
    steady_state_error: float = 0.0

    # Control effort
    rms_command: float = 0.0
    peak_command: float = 0.0

    # Data quality
    sample_count: int = 0
    non_finite_count: int = 0

    metadata: Dict[str, Any] = field(default_factory=dict)


class PerformanceAnalyzer:
    """
    Step-response analysis of closed-loop telemetry.

    Usage:
    ------
    >>> analyzer = PerformanceAnalyzer(settling_threshold=0.1)
    >>> metrics = analyzer.analyze(results['log_data'])
    >>> print(analyzer.generate_report(metrics))
    """

    def __init__(
        self,
        rise_fraction: float = 0.9,
        settling_threshold: float = 0.1,  # 10% of target
    ):
        """
        Parameters
        ----------
        rise_fraction : float
            Fraction of the target that defines the rise tick
        settling_threshold : float
            Settling band half-width as fraction of |target|
        """
        self.rise_fraction = rise_fraction
        self.settling_threshold = settling_threshold

    def analyze(self, telemetry: Dict[str, List[float]]) -> PerformanceMetrics:
        """
        Compute step-response metrics.

        Parameters
        ----------
        telemetry : Dict[str, List[float]]
            Required keys: 'tick', 'position', 'target'.
            Optional key: 'command'.

        Returns
        -------
        PerformanceMetrics
            Computed metrics (zeroed when telemetry is empty)
        """
        metrics = PerformanceMetrics()

        for key in ('tick', 'position', 'target'):
            if key not in telemetry:
                raise ValueError(f"Telemetry must contain '{key}' key")

        tick = np.asarray(telemetry['tick'], dtype=int)
        position = np.asarray(telemetry['position'], dtype=float)
        target = np.asarray(telemetry['target'], dtype=float)

        if len(tick) == 0:
            warnings.warn("Empty telemetry, returning zero metrics")
            return metrics

        finite = np.isfinite(position)
        metrics.sample_count = len(tick)
        metrics.non_finite_count = int(np.sum(~finite))
        if metrics.non_finite_count:
            warnings.warn(
                f"{metrics.non_finite_count} non-finite position samples excluded from metrics"
            )
        if not np.any(finite):
            return metrics

        metrics = self._compute_response_metrics(tick[finite], position[finite], target[finite], metrics)
        metrics = self._compute_error_metrics(position[finite], target[finite], metrics)

        if 'command' in telemetry:
            command = np.asarray(telemetry['command'], dtype=float)
            metrics = self._compute_control_effort(command[np.isfinite(command)], metrics)

        return metrics

    def _compute_response_metrics(
        self,
        tick: np.ndarray,
        position: np.ndarray,
        target: np.ndarray,
        metrics: PerformanceMetrics
    ) -> PerformanceMetrics:
        """Rise, peak, overshoot and settling."""
        r = target[-1]
        metrics.peak_position = float(np.max(position))

        if r != 0:
            excursion = (position - r) * np.sign(r)
            metrics.overshoot_percent = float(max(0.0, np.max(excursion)) / abs(r) * 100.0)

            risen = np.nonzero(position * np.sign(r) >= self.rise_fraction * abs(r))[0]
            if len(risen) > 0:
                metrics.rise_tick = int(tick[risen[0]])

            outside = np.abs(position - r) >= self.settling_threshold * abs(r)
            if not outside[-1]:
                last_outside = np.nonzero(outside)[0]
                first_settled = last_outside[-1] + 1 if len(last_outside) > 0 else 0
                metrics.settling_tick = int(tick[first_settled])

        return metrics

    def _compute_error_metrics(
        self,
        position: np.ndarray,
        target: np.ndarray,
        metrics: PerformanceMetrics
    ) -> PerformanceMetrics:
        error = target - position
        metrics.final_error = float(error[-1])
        metrics.rms_error = float(np.sqrt(np.mean(error**2)))

        # Steady-state error (last 20% of data)
        steady_idx = int(0.8 * len(error))
        metrics.steady_state_error = float(np.mean(np.abs(error[steady_idx:])))
        return metrics

    def _compute_control_effort(
        self,
        command: np.ndarray,
        metrics: PerformanceMetrics
    ) -> PerformanceMetrics:
        if len(command) == 0:
            return metrics
        metrics.rms_command = float(np.sqrt(np.mean(command**2)))
        metrics.peak_command = float(np.max(np.abs(command)))
        return metrics

    def generate_report(self, metrics: PerformanceMetrics) -> str:
        """
        Generate human-readable performance report.

        Parameters
        ----------
        metrics : PerformanceMetrics
            Computed metrics

        Returns
        -------
        str
            Formatted report text
        """
        def fmt_tick(value: int) -> str:
            return f"{value:8d}" if value >= 0 else "   never"

        report = []
        report.append("=" * 70)
        report.append("PERFORMANCE ANALYSIS REPORT")
        report.append("=" * 70)
        report.append("")

        report.append("STEP RESPONSE:")
        report.append(f"  Peak Position:         {metrics.peak_position:12.4f}")
        report.append(f"  Overshoot:             {metrics.overshoot_percent:12.2f} %")
        report.append(f"  Rise Tick ({self.rise_fraction:.0%}):      {fmt_tick(metrics.rise_tick)}")
        report.append(f"  Settling Tick (±{self.settling_threshold:.0%}): {fmt_tick(metrics.settling_tick)}")
        report.append("")

        report.append("TRACKING ERROR:")
        report.append(f"  Final Error:           {metrics.final_error:12.4f}")
        report.append(f"  RMS Error:             {metrics.rms_error:12.4f}")
        report.append(f"  Steady-State Error:    {metrics.steady_state_error:12.4f}")
        report.append("")

        report.append("CONTROL EFFORT:")
        report.append(f"  RMS Command:           {metrics.rms_command:12.6g}")
        report.append(f"  Peak Command:          {metrics.peak_command:12.6g}")
        report.append("")

        report.append(f"  Samples:               {metrics.sample_count:8d}")
        if metrics.non_finite_count:
            report.append(f"  Non-finite Samples:    {metrics.non_finite_count:8d}")
        report.append("=" * 70)

        return "\n".join(report)

    def to_dataframe(self, metrics: PerformanceMetrics) -> pd.DataFrame:
        """
        Convert metrics to a single-row DataFrame for batch comparison.
        """
        data = {
            'peak_position': metrics.peak_position,
            'overshoot_pct': metrics.overshoot_percent,
            'rise_tick': metrics.rise_tick,
            'settling_tick': metrics.settling_tick,
            'final_error': metrics.final_error,
            'rms_error': metrics.rms_error,
            'steady_state_error': metrics.steady_state_error,
            'rms_command': metrics.rms_command,
            'peak_command': metrics.peak_command,
            'sample_count': metrics.sample_count,
            'non_finite_count': metrics.non_finite_count,
        }

        return pd.DataFrame([data])


def telemetry_to_dataframe(
    telemetry: Dict[str, List[float]],
    columns: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Convert runner telemetry to a DataFrame indexed by tick.
    """
    df = pd.DataFrame({key: list(val) for key, val in telemetry.items()})
    if columns is not None:
        df = df[['tick'] + [c for c in columns if c != 'tick']]
    if 'tick' in df.columns:
        df = df.set_index('tick')
    return df
