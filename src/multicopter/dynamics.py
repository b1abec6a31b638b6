"""
Multicopter rigid body and actuator dynamics.

Implements the continuous-time derivative and the explicit Euler and RK4
integration steps. Uses quaternion attitude representation throughout.

Dynamics:
    p_dot = v
    v_dot = (R(q) @ F_rotor + F_drag(v) + F_dist) / m + g
    q_dot = 0.5 * q ⊗ [0, w]
    w_dot = J^{-1} @ (M_rotor + M_aero(w) + M_dist - w × (J @ w))
    s_dot = (clip(s_cmd) - s) / tau

The disturbance sample is an explicit argument: it is drawn once per step
by the caller and held constant over all derivative evaluations of that
step.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from multicopter.aero import DRAG_LAWS, MOMENT_LAWS, AeroModel, resolve_law
from multicopter.math3d import quat_mul, quat_normalize, quat_to_R
from multicopter.motor_model import MotorActuatorModel
from multicopter.params import MotorParams, VehicleParams
from multicopter.types import DisturbanceSample, VehicleState


@dataclass(frozen=True)
class VehicleModel:
    """Everything the derivative needs besides the state and the inputs."""

    vehicle: VehicleParams
    motors: MotorActuatorModel
    aero: AeroModel

    @staticmethod
    def build(
        vehicle: VehicleParams,
        motors: MotorParams,
        drag_law=None,
        moment_law=None,
    ) -> VehicleModel:
        aero = AeroModel(
            drag_coefficient=vehicle.drag_coefficient,
            moment_coefficient=vehicle.aero_moment_coefficient,
            drag_law=resolve_law(drag_law or "quadratic", DRAG_LAWS, "drag"),
            moment_law=resolve_law(moment_law or "linear", MOMENT_LAWS, "moment"),
        )
        return VehicleModel(vehicle=vehicle, motors=MotorActuatorModel(motors), aero=aero)


def state_derivative(
    state: VehicleState,
    command: NDArray[np.float64],
    disturbance: DisturbanceSample,
    model: VehicleModel,
) -> tuple[
    NDArray[np.float64],
    NDArray[np.float64],
    NDArray[np.float64],
    NDArray[np.float64],
    NDArray[np.float64],
]:
    """
    Compute time derivatives of all state components.

    Pure function: no randomness beyond `disturbance`, no mutation.

    Args:
        state: Current state
        command: Commanded rotor speeds [rad/s], shape (N,)
        disturbance: Frozen disturbance sample for this step
        model: Vehicle, motor and aerodynamic model

    Returns:
        Tuple of (p_dot, v_dot, q_dot, w_dot, motor_speed_dot)
    """
    vp = model.vehicle
    q = state.q
    v = state.v
    w = state.w_body

    force_body, moment_body = model.motors.thrust_and_torque(state.motor_speed)

    # Rotor force is body frame, everything else in the sum is world frame
    force_world = (
        quat_to_R(q) @ force_body
        + model.aero.drag_force(v)
        + disturbance.force
    )
    v_dot = force_world / vp.mass + vp.gravity

    # Euler's rotational equation with gyroscopic coupling
    Jw = vp.inertia @ w
    w_dot = vp.inertia_inv @ (
        moment_body
        + model.aero.aero_moment(w)
        + disturbance.moment
        - np.cross(w, Jw)
    )

    q_dot = 0.5 * quat_mul(q, np.concatenate([[0.0], w]))

    s_dot = model.motors.speed_derivative(state.motor_speed, command)

    return v.copy(), v_dot, q_dot, w_dot, s_dot


# ---------------------------------------------------------------------------
# Flat-vector packing used by the multi-stage integrator
# ---------------------------------------------------------------------------

def pack_state(s: VehicleState) -> NDArray[np.float64]:
    """Layout: [p(3), v(3), q(4), w(3), motor_speed(N)]."""
    return np.concatenate([s.p, s.v, s.q, s.w_body, s.motor_speed])


def unpack_state(x: NDArray[np.float64]) -> VehicleState:
    return VehicleState(
        p=x[0:3].copy(),
        v=x[3:6].copy(),
        q=x[6:10].copy(),
        w_body=x[10:13].copy(),
        motor_speed=x[13:].copy(),
    )


def _finish_step(new_state: VehicleState, model: VehicleModel) -> VehicleState:
    """Re-impose the unit-quaternion and speed-bound invariants."""
    new_state.q = quat_normalize(new_state.q)
    new_state.motor_speed = model.motors.clamp_speed(new_state.motor_speed)
    return new_state


def step_euler(
    state: VehicleState,
    command: NDArray[np.float64],
    disturbance: DisturbanceSample,
    model: VehicleModel,
    dt: float,
) -> VehicleState:
    """
    Forward Euler integration step.

    First-order accurate; mainly useful as a cheap baseline and for
    comparison against RK4.

    Args:
        state: Current state (not modified)
        command: Commanded rotor speeds, shape (N,)
        disturbance: Disturbance sample for this step
        model: Vehicle model
        dt: Time step [s]

    Returns:
        State after dt
    """
    p_dot, v_dot, q_dot, w_dot, s_dot = state_derivative(state, command, disturbance, model)

    new_state = VehicleState(
        p=state.p + dt * p_dot,
        v=state.v + dt * v_dot,
        q=state.q + dt * q_dot,
        w_body=state.w_body + dt * w_dot,
        motor_speed=state.motor_speed + dt * s_dot,
    )
    return _finish_step(new_state, model)


def step_rk4(
    state: VehicleState,
    command: NDArray[np.float64],
    disturbance: DisturbanceSample,
    model: VehicleModel,
    dt: float,
) -> VehicleState:
    """
    4th-order Runge-Kutta integration step.

    Command and disturbance are held constant over the step; all four
    stages are evaluated against the same disturbance sample. Stage states
    are used as-is (not normalized or clamped).

    Args:
        state: Current state (not modified)
        command: Commanded rotor speeds, shape (N,)
        disturbance: Disturbance sample for this step
        model: Vehicle model
        dt: Time step [s]

    Returns:
        State after dt
    """
    def f(x: NDArray[np.float64]) -> NDArray[np.float64]:
        derivs = state_derivative(unpack_state(x), command, disturbance, model)
        return np.concatenate(derivs)

    x = pack_state(state)
    k1 = f(x)
    k2 = f(x + 0.5 * dt * k1)
    k3 = f(x + 0.5 * dt * k2)
    k4 = f(x + dt * k3)

    x_next = x + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    return _finish_step(unpack_state(x_next), model)
