"""
Smoke tests for the timeline plotter.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from pid_loop_sim.core.simulation.simulation_runner import ClosedLoopRunner, SimulationConfig
from pid_loop_sim.core.visualization import TimelinePlotter


def span_x_extent(patch):
    """Data-space x range of an axvspan patch (Rectangle or Polygon)."""
    if hasattr(patch, 'get_width'):
        return patch.get_x(), patch.get_x() + patch.get_width()
    xy = np.asarray(patch.get_xy())
    return xy[:, 0].min(), xy[:, 0].max()


@pytest.fixture(scope="module")
def converged_runner():
    runner = ClosedLoopRunner(SimulationConfig(tick_delay=0.0, verbose=False))
    runner.run_simulation()
    return runner


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestTimelinePlotter:

    def test_full_debug_suite(self, converged_runner, tmp_path):
        plotter = TimelinePlotter()
        path = tmp_path / "suite.png"
        fig, axes = plotter.plot_full_debug_suite(converged_runner.log_data, save_path=str(path))

        assert len(axes) == 3
        assert axes[-1].get_xlabel() == 'Tick'
        assert path.exists()

    def test_tick_window(self, converged_runner):
        plotter = TimelinePlotter()
        fig, ax = plotter.plot_position_tracking(converged_runner.log_data, tick_window=(100, 120))

        position_line = [line for line in ax.get_lines() if line.get_label() == 'Position'][0]
        assert np.array_equal(position_line.get_xdata(), np.arange(100, 121))

    def test_missing_terms_warns(self):
        telemetry = {
            'tick': [1, 2, 3],
            'command': [0.1, 0.0, -0.1],
            'position': [0.1, 0.3, 0.5],
            'target': [1.0, 1.0, 1.0],
        }
        with pytest.warns(UserWarning, match="P/I/D"):
            TimelinePlotter().plot_control_effort(telemetry)

    def test_single_tick_streak_has_width(self):
        telemetry = {
            'tick': [1, 2, 3, 4, 5],
            'position': [50.0, 95.0, 120.0, 130.0, 140.0],
            'target': [100.0] * 5,
            'in_band': [False, True, False, False, False],
        }
        fig, ax = TimelinePlotter().plot_position_tracking(telemetry)

        assert len(ax.patches) == 1
        x0, x1 = span_x_extent(ax.patches[0])
        assert x0 == pytest.approx(2.0)
        assert x1 == pytest.approx(3.0)

    def test_contiguous_regions(self):
        regions = TimelinePlotter()._get_contiguous_regions(
            np.array([False, True, True, False, True])
        )
        assert regions == [(1, 3), (4, 5)]


class TestRunnerPlotting:

    def test_plot_results_returns_figure(self, converged_runner, tmp_path):
        path = tmp_path / "run.png"
        fig = converged_runner.plot_results(save_path=str(path))

        assert fig is not None
        assert path.exists()

    def test_plot_before_run_returns_none(self, capsys):
        runner = ClosedLoopRunner(SimulationConfig(tick_delay=0.0, verbose=False))
        assert runner.plot_results() is None
        assert "No simulation data" in capsys.readouterr().out
