"""Shared simulator fixtures."""

import numpy as np
import pytest

from multicopter.config import build_simulator, x_quadrotor_config
from multicopter.simulator import MulticopterSim


@pytest.fixture
def free_body() -> MulticopterSim:
    """1 kg, identity inertia, no thrust, no drag, no noise, NED gravity."""
    return MulticopterSim(4, seed=0)


@pytest.fixture
def quad_up() -> MulticopterSim:
    """X quadrotor with rotor axes along body +z and gravity [0, 0, -9.81]."""
    return build_simulator(x_quadrotor_config(thrust_up=True, seed=1))


@pytest.fixture
def quad_ned() -> MulticopterSim:
    """X quadrotor with rotor axes along body -z and gravity [0, 0, +9.81]."""
    return build_simulator(x_quadrotor_config(thrust_up=False, seed=1))


def hover_speed(sim: MulticopterSim) -> float:
    return sim.model.motors.hover_speed(sim.vehicle_params.weight)


def set_hover(sim: MulticopterSim) -> np.ndarray:
    """Put the rotors at hover speed and return the matching command."""
    cmd = np.full(sim.n_motors, hover_speed(sim))
    sim.set_motor_speed(cmd[0])
    return cmd
