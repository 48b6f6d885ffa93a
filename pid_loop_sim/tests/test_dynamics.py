"""
Unit tests for the integrator-chain plant.
"""

import pytest

from pid_loop_sim.core.dynamics.integrator_chain import IntegratorChainPlant, PlantState


class TestIntegratorChainPlant:
    """Test suite for IntegratorChainPlant."""

    def test_initial_state(self):
        plant = IntegratorChainPlant()
        assert plant.state == PlantState()
        assert plant.position == 0.0

    def test_unit_command_sequence(self):
        plant = IntegratorChainPlant()
        expected = [
            (1.0, 1.0, 1.0),
            (2.0, 3.0, 4.0),
            (3.0, 6.0, 10.0),
        ]
        for acceleration, velocity, position in expected:
            assert plant.update(1.0) == position
            assert plant.state.acceleration == acceleration
            assert plant.state.velocity == velocity

    @pytest.mark.parametrize("command,n_ticks", [(1.0, 10), (0.5, 20), (-2.0, 7)])
    def test_constant_command_closed_form(self, command, n_ticks):
        """Position after n ticks is c * n(n+1)(n+2)/6."""
        plant = IntegratorChainPlant()
        for _ in range(n_ticks):
            position = plant.update(command)

        expected = command * n_ticks * (n_ticks + 1) * (n_ticks + 2) / 6
        assert position == pytest.approx(expected)

    def test_command_recorded(self):
        plant = IntegratorChainPlant()
        plant.update(0.25)
        plant.update(-1.5)
        assert plant.state.command == -1.5

    def test_cancelling_command_holds_velocity(self):
        """A command equal to -acceleration freezes velocity."""
        plant = IntegratorChainPlant()
        plant.update(2.0)
        plant.update(-2.0)

        assert plant.state.acceleration == 0.0
        assert plant.state.velocity == 2.0
        assert plant.update(0.0) == 6.0

    def test_reset_and_get_state(self):
        plant = IntegratorChainPlant()
        for _ in range(4):
            plant.update(1.0)
        assert plant.get_state() == {
            'command': 1.0,
            'acceleration': 4.0,
            'velocity': 10.0,
            'position': 20.0,
        }

        plant.reset()
        assert plant.get_state() == {
            'command': 0.0,
            'acceleration': 0.0,
            'velocity': 0.0,
            'position': 0.0,
        }
