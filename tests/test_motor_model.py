"""Tests for rotor thrust/torque generation and the first-order speed lag."""

import numpy as np
import pytest

from multicopter.errors import ConfigurationError
from multicopter.math3d import quat_from_axis_angle
from multicopter.motor_model import MotorActuatorModel
from multicopter.params import Broadcast, MotorParams, PerMotor, resolve_per_motor, x_quadrotor_layout


def single_motor(**kwargs) -> MotorParams:
    defaults = dict(thrust_coefficient=2.0, torque_coefficient=0.5)
    defaults.update(kwargs)
    return MotorParams.defaults(1, **defaults)


# ---- Thrust and torque ------------------------------------------------------

def test_thrust_is_sign_preserving_square_law():
    model = MotorActuatorModel(single_motor())

    force, moment = model.thrust_and_torque(np.array([3.0]))
    assert np.allclose(force, [0, 0, 18.0])
    assert np.allclose(moment, [0, 0, 4.5]), "Reaction torque about the rotor axis"

    force_rev, moment_rev = model.thrust_and_torque(np.array([-3.0]))
    assert np.allclose(force_rev, [0, 0, -18.0]), "Reversed rotor should push the other way"
    assert np.allclose(moment_rev, [0, 0, -4.5])


def test_spin_direction_flips_reaction_torque():
    params = single_motor().with_frame(0, np.zeros(3), [1.0, 0.0, 0.0, 0.0], -1)
    _, moment = MotorActuatorModel(params).thrust_and_torque(np.array([3.0]))
    assert np.allclose(moment, [0, 0, -4.5])


def test_lever_arm_moment():
    params = single_motor(torque_coefficient=0.0).with_frame(
        0, np.array([1.0, 0.0, 0.0]), np.eye(3), 1,
    )
    force, moment = MotorActuatorModel(params).thrust_and_torque(np.array([1.0]))
    # r × F = [1, 0, 0] × [0, 0, 2]
    assert np.allclose(force, [0, 0, 2.0])
    assert np.allclose(moment, [0, -2.0, 0])


def test_mount_rotation_redirects_thrust():
    q_mount = quat_from_axis_angle(np.array([1.0, 0.0, 0.0]), np.pi / 2)
    params = single_motor(torque_coefficient=0.0).with_frame(0, np.zeros(3), q_mount, 1)
    force, _ = MotorActuatorModel(params).thrust_and_torque(np.array([1.0]))
    # Motor z-axis rotated 90° about body x points along body -y
    assert np.allclose(force, [0, -2.0, 0])


def test_x_layout_equal_speeds_give_pure_thrust():
    position, rotation, direction = x_quadrotor_layout(0.2, thrust_up=True)
    params = MotorParams(
        position=position,
        rotation=rotation,
        direction=direction,
        thrust_coefficient=np.full(4, 1e-5),
        torque_coefficient=np.full(4, 1e-7),
        time_constant=np.full(4, 0.02),
        min_speed=np.zeros(4),
        max_speed=np.full(4, 2000.0),
    )
    force, moment = MotorActuatorModel(params).thrust_and_torque(np.full(4, 1000.0))
    assert np.allclose(force, [0, 0, 40.0])
    assert np.allclose(moment, 0.0, atol=1e-12), f"Symmetric X should cancel moments, got {moment}"


def test_ned_layout_thrusts_along_body_minus_z():
    position, rotation, direction = x_quadrotor_layout(0.2, thrust_up=False)
    params = MotorParams.defaults(4, thrust_coefficient=1e-5).replace(
        position=position, rotation=rotation, direction=direction,
    )
    force, _ = MotorActuatorModel(params).thrust_and_torque(np.full(4, 1000.0))
    assert np.allclose(force, [0, 0, -40.0])


def test_hover_speed():
    model = MotorActuatorModel(MotorParams.defaults(4, thrust_coefficient=1e-5))
    s = model.hover_speed(40.0)
    assert s == pytest.approx(1000.0)
    assert MotorActuatorModel(MotorParams.defaults(4)).hover_speed(40.0) == 0.0


# ---- Speed dynamics ---------------------------------------------------------

def test_speed_derivative_clamps_command():
    params = MotorParams.defaults(2, time_constant=0.1, min_speed=10.0, max_speed=100.0)
    model = MotorActuatorModel(params)
    s_dot = model.speed_derivative(np.array([50.0, 50.0]), np.array([500.0, -5.0]))
    assert np.allclose(s_dot, [500.0, -400.0])


def test_speed_derivative_per_motor_time_constant():
    params = MotorParams.defaults(2, time_constant=PerMotor([0.1, 0.5]))
    s_dot = MotorActuatorModel(params).speed_derivative(np.zeros(2), np.array([10.0, 10.0]))
    assert np.allclose(s_dot, [100.0, 20.0])


def test_clamp_speed():
    params = MotorParams.defaults(3, min_speed=PerMotor([0.0, 5.0, -10.0]), max_speed=20.0)
    clamped = MotorActuatorModel(params).clamp_speed(np.array([-1.0, 30.0, -50.0]))
    assert np.allclose(clamped, [0.0, 20.0, -10.0])


# ---- Parameter validation ---------------------------------------------------

@pytest.mark.parametrize("kwargs", [
    dict(time_constant=0.0),
    dict(time_constant=-0.01),
    dict(min_speed=10.0, max_speed=5.0),
    dict(thrust_coefficient=np.nan),
])
def test_invalid_motor_params_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(4, **kwargs)


def test_invalid_direction_rejected():
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(2).replace(direction=np.array([1.0, 2.0]))


def test_bad_mount_rotation_rejected():
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(1).with_frame(0, np.zeros(3), np.diag([1.0, 1.0, -1.0]), 1)
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(1).with_frame(0, np.zeros(3), np.zeros(4), 1)


def test_motor_index_out_of_range():
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(4).with_frame(4, np.zeros(3), np.eye(3), 1)
    with pytest.raises(ConfigurationError):
        MotorParams.defaults(4).check_index(-1)


def test_resolve_per_motor_variants():
    assert np.allclose(resolve_per_motor(2.0, 3, "x"), [2, 2, 2])
    assert np.allclose(resolve_per_motor(Broadcast(1.5), 2, "x"), [1.5, 1.5])
    assert np.allclose(resolve_per_motor(PerMotor([1, 2, 3]), 3, "x"), [1, 2, 3])
    with pytest.raises(ConfigurationError):
        resolve_per_motor(PerMotor([1, 2]), 3, "x")
    with pytest.raises(ConfigurationError):
        resolve_per_motor("fast", 3, "x")
