"""
Unit tests for the termination policy.

Tests verify:
1. Tolerance band and divergence thresholds
2. Convergence streak counting and reset
3. Budget exhaustion
4. Distinct terminal messages
"""

import pytest

from pid_loop_sim.core.simulation.termination import SimulationStatus, TerminationPolicy


@pytest.fixture
def policy():
    return TerminationPolicy(target=100.0)


def feed(policy, positions, start_tick=1, streak=0):
    """Evaluate a sequence of positions, stopping at the first terminal status."""
    status = SimulationStatus.RUNNING
    for tick, position in enumerate(positions, start=start_tick):
        status, streak = policy.evaluate(tick, position, streak)
        if status.is_terminal:
            break
    return status, streak


class TestToleranceBand:
    """Band is |x - r| < 0.1 |r|, strict."""

    @pytest.mark.parametrize("position", [90.5, 95.0, 100.0, 105.0, 109.99])
    def test_inside(self, policy, position):
        assert policy.in_tolerance_band(position)

    @pytest.mark.parametrize("position", [0.0, 89.0, 90.0, 110.0, 150.0, -100.0])
    def test_outside(self, policy, position):
        assert not policy.in_tolerance_band(position)

    def test_zero_target_band_is_empty(self):
        policy = TerminationPolicy(target=0.0)
        assert not policy.in_tolerance_band(0.0)

    def test_negative_target_band(self):
        policy = TerminationPolicy(target=-50.0)
        assert policy.in_tolerance_band(-52.0)
        assert not policy.in_tolerance_band(52.0)


class TestDivergence:
    """Divergence is |x| > 100 |r|."""

    def test_threshold(self, policy):
        assert policy.has_diverged(10001.0)
        assert policy.has_diverged(-10001.0)
        assert not policy.has_diverged(9999.0)
        assert not policy.has_diverged(10000.0)

    def test_transition_to_diverged(self, policy):
        status, _ = policy.evaluate(5, 10001.0, 0)
        assert status is SimulationStatus.DIVERGED

        status, _ = policy.evaluate(5, 9999.0, 0)
        assert status is SimulationStatus.RUNNING

    def test_divergence_wins_on_budget_tick(self, policy):
        status, _ = policy.evaluate(policy.max_ticks, 1e6, 0)
        assert status is SimulationStatus.DIVERGED


class TestConvergenceStreak:
    """Convergence requires 11 consecutive in-band ticks."""

    def test_eleven_ticks_converge(self, policy):
        status, streak = feed(policy, [100.0] * 11)
        assert status is SimulationStatus.CONVERGED
        assert streak == 11

    def test_ten_ticks_do_not_converge(self, policy):
        status, streak = feed(policy, [100.0] * 10)
        assert status is SimulationStatus.RUNNING
        assert streak == 10

    def test_disqualifying_tick_resets_streak(self, policy):
        status, streak = feed(policy, [100.0] * 10 + [120.0])
        assert status is SimulationStatus.RUNNING
        assert streak == 0

        # A fresh streak has to start over
        status, streak = feed(policy, [100.0] * 10, start_tick=12, streak=streak)
        assert status is SimulationStatus.RUNNING
        assert streak == 10

    def test_custom_streak_length(self):
        policy = TerminationPolicy(target=10.0, convergence_ticks=3)
        status, _ = feed(policy, [9.5, 10.2, 10.9])
        assert status is SimulationStatus.CONVERGED


class TestBudget:

    def test_exhausted_at_budget(self):
        policy = TerminationPolicy(target=100.0, max_ticks=5)
        status, _ = feed(policy, [0.0] * 10)
        assert status is SimulationStatus.EXHAUSTED

    def test_running_before_budget(self):
        policy = TerminationPolicy(target=100.0, max_ticks=5)
        status, _ = policy.evaluate(4, 0.0, 0)
        assert status is SimulationStatus.RUNNING

    def test_convergence_wins_on_budget_tick(self):
        policy = TerminationPolicy(target=100.0, max_ticks=11)
        status, _ = feed(policy, [100.0] * 11)
        assert status is SimulationStatus.CONVERGED


class TestSimulationStatus:

    def test_terminal_flags(self):
        assert not SimulationStatus.RUNNING.is_terminal
        for status in (SimulationStatus.CONVERGED, SimulationStatus.DIVERGED,
                       SimulationStatus.EXHAUSTED):
            assert status.is_terminal

    def test_only_converged_succeeds(self):
        assert SimulationStatus.CONVERGED.succeeded
        assert not SimulationStatus.DIVERGED.succeeded
        assert not SimulationStatus.EXHAUSTED.succeeded

    def test_messages_distinct(self):
        messages = {
            SimulationStatus.CONVERGED.message,
            SimulationStatus.DIVERGED.message,
            SimulationStatus.EXHAUSTED.message,
        }
        assert len(messages) == 3
        assert SimulationStatus.CONVERGED.message == "goal reached"
        assert SimulationStatus.DIVERGED.message == "overshot goal"
        assert SimulationStatus.EXHAUSTED.message == "ran out of iteration budget"
