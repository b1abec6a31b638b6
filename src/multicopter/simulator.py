"""
Multicopter simulator: configuration, state access, stepping and IMU output.

MulticopterSim owns one vehicle: its parameters, its physical state, the
disturbance sample of the most recent step and its random generators.
Every setter validates before committing, and both step functions
validate their arguments before drawing noise or touching the state, so
a failed call leaves the instance exactly as it was.

The instance is not thread-safe. Calls that mutate it must be serialized
by the caller (one instance per thread, or a lock around each call).
"""

from __future__ import annotations

import logging
from typing import Callable, Union

import numpy as np
from numpy.typing import NDArray

from multicopter.aero import DRAG_LAWS, MOMENT_LAWS, resolve_law
from multicopter.disturbances import StochasticProcessGenerator
from multicopter.dynamics import VehicleModel, step_euler, step_rk4
from multicopter.errors import ConfigurationError, InvalidArgumentError
from multicopter.math3d import R_to_quat, quat_normalize
from multicopter.params import (
    Broadcast,
    MotorParams,
    MotorValue,
    PerMotor,
    VehicleParams,
    resolve_per_motor,
)
from multicopter.sensors import ImuNoiseModel, ImuSensor, ideal_imu_measurement
from multicopter.types import VehicleState

logger = logging.getLogger(__name__)

# Quaternions closer than this to unit norm are stored untouched
_QUAT_NORM_TOL = 1e-12


def _finite_array(value, shape: tuple, name: str) -> NDArray[np.float64]:
    try:
        arr = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name}: not numeric ({exc})") from exc
    if arr.shape != shape:
        raise InvalidArgumentError(f"{name}: expected shape {shape}, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"{name}: values must be finite, got {arr}")
    return arr


def _unit_attitude(q) -> NDArray[np.float64]:
    q = _finite_array(q, (4,), "attitude")
    norm = np.linalg.norm(q)
    if norm < 1e-10:
        raise InvalidArgumentError("attitude: zero-norm quaternion")
    if abs(norm - 1.0) > _QUAT_NORM_TOL:
        q = quat_normalize(q)
    return q


class MulticopterSim:
    """
    Rigid-body and actuator simulation of one N-motor multicopter.

    Args:
        n_motors: Number of motors N
        motors: Motor parameters; defaults to MotorParams.defaults(n_motors)
        vehicle: Vehicle parameters; defaults to VehicleParams()
        imu: Noise-shaping collaborator for get_imu_measurement; defaults to
             an ideal ImuNoiseModel seeded from `seed`
        seed: Seed for the instance-local random generators
        drag_law: Drag law name ("quadratic", "linear") or callable
        moment_law: Damping law name ("linear", "quadratic") or callable
    """

    def __init__(
        self,
        n_motors: int,
        *,
        motors: MotorParams | None = None,
        vehicle: VehicleParams | None = None,
        imu: ImuSensor | None = None,
        seed: int | None = None,
        drag_law: Union[str, Callable] = "quadratic",
        moment_law: Union[str, Callable] = "linear",
    ):
        if motors is None:
            motors = MotorParams.defaults(n_motors)
        elif motors.n_motors != n_motors:
            raise ConfigurationError(
                f"n_motors={n_motors} but motor parameters describe {motors.n_motors} motors"
            )
        self._motors = motors
        self._vehicle = vehicle if vehicle is not None else VehicleParams()
        self._drag_law = resolve_law(drag_law, DRAG_LAWS, "drag")
        self._moment_law = resolve_law(moment_law, MOMENT_LAWS, "moment")
        self._rebuild_model()

        # Independent child streams for the dynamics noise and the IMU
        dist_seq, imu_seq = np.random.SeedSequence(seed).spawn(2)
        self._disturbances = StochasticProcessGenerator(rng=np.random.default_rng(dist_seq))
        self.imu = imu if imu is not None else ImuNoiseModel(rng=np.random.default_rng(imu_seq))

        self._state = VehicleState.zeros(n_motors)
        self._state.motor_speed = self._model.motors.clamp_speed(self._state.motor_speed)
        self._last_force = np.zeros(3)

        logger.debug("created multicopter simulator with %d motors (seed=%s)", n_motors, seed)

    @classmethod
    def from_coefficients(
        cls,
        n_motors: int,
        thrust_coefficient: float,
        torque_coefficient: float,
        min_motor_speed: float,
        max_motor_speed: float,
        motor_time_constant: float,
        mass: float,
        inertia: NDArray[np.float64],
        aero_moment_coefficient: NDArray[np.float64],
        drag_coefficient: float,
        moment_noise_psd: float,
        force_noise_psd: float,
        gravity: NDArray[np.float64],
        **kwargs,
    ) -> MulticopterSim:
        """Build a fully configured simulator with identical motors.

        Motor mount transforms start at the center of mass with identity
        orientation; set them with set_motor_frame.
        """
        motors = MotorParams.defaults(
            n_motors,
            thrust_coefficient=thrust_coefficient,
            torque_coefficient=torque_coefficient,
            time_constant=motor_time_constant,
            min_speed=min_motor_speed,
            max_speed=max_motor_speed,
        )
        vehicle = VehicleParams(
            mass=mass,
            inertia=inertia,
            aero_moment_coefficient=aero_moment_coefficient,
            drag_coefficient=drag_coefficient,
            moment_noise_psd=moment_noise_psd,
            force_noise_psd=force_noise_psd,
            gravity=gravity,
        )
        return cls(n_motors, motors=motors, vehicle=vehicle, **kwargs)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def n_motors(self) -> int:
        return self._motors.n_motors

    @property
    def motor_params(self) -> MotorParams:
        return self._motors

    @property
    def vehicle_params(self) -> VehicleParams:
        return self._vehicle

    @property
    def model(self) -> VehicleModel:
        return self._model

    @property
    def state(self) -> VehicleState:
        """Copy of the current state."""
        return self._state.copy()

    @property
    def last_force_sample(self) -> NDArray[np.float64]:
        """World-frame disturbance force drawn by the most recent step."""
        return self._last_force.copy()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _rebuild_model(self) -> None:
        self._model = VehicleModel.build(
            self._vehicle, self._motors,
            drag_law=self._drag_law, moment_law=self._moment_law,
        )

    def _commit_motors(self, motors: MotorParams) -> None:
        self._motors = motors
        self._rebuild_model()
        # Keep the realized speeds inside the (possibly new) bounds
        self._state.motor_speed = self._model.motors.clamp_speed(self._state.motor_speed)

    def set_vehicle_properties(
        self,
        mass: float,
        inertia: NDArray[np.float64],
        aero_moment_coefficient: NDArray[np.float64],
        drag_coefficient: float,
        moment_noise_psd: float,
        force_noise_psd: float,
    ) -> None:
        """Replace mass, inertia, aerodynamic and process-noise parameters."""
        self._vehicle = self._vehicle.replace(
            mass=mass,
            inertia=inertia,
            aero_moment_coefficient=aero_moment_coefficient,
            drag_coefficient=drag_coefficient,
            moment_noise_psd=moment_noise_psd,
            force_noise_psd=force_noise_psd,
        )
        self._rebuild_model()
        logger.debug("vehicle properties set: mass=%.4g kg", self._vehicle.mass)

    def set_gravity_vector(self, gravity: NDArray[np.float64]) -> None:
        """Set the world-frame gravity vector [m/s²]."""
        self._vehicle = self._vehicle.replace(gravity=gravity)
        self._rebuild_model()
        logger.debug("gravity set to %s", self._vehicle.gravity)

    def set_aero_laws(
        self,
        drag_law: Union[str, Callable, None] = None,
        moment_law: Union[str, Callable, None] = None,
    ) -> None:
        """Select the drag and/or damping law by name or callable."""
        new_drag = self._drag_law if drag_law is None else resolve_law(drag_law, DRAG_LAWS, "drag")
        new_moment = (
            self._moment_law if moment_law is None
            else resolve_law(moment_law, MOMENT_LAWS, "moment")
        )
        self._drag_law, self._moment_law = new_drag, new_moment
        self._rebuild_model()

    def set_motor_frame(
        self,
        position: NDArray[np.float64],
        rotation,
        direction: int,
        motor_index: int,
    ) -> None:
        """
        Set one motor's mount transform and spin direction.

        Args:
            position: Hub position relative to the center of mass, body frame [m]
            rotation: Mount orientation (motor -> body), quaternion [w, x, y, z]
                      or 3x3 rotation matrix
            direction: +1 or -1
            motor_index: Motor index in [0, N)
        """
        self._commit_motors(self._motors.with_frame(motor_index, position, rotation, direction))
        logger.debug("motor %d frame set (direction %+d)", motor_index, int(direction))

    def get_motor_frame(
        self, motor_index: int,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64], int]:
        """Return (position, rotation quaternion, direction) of one motor."""
        self._motors.check_index(motor_index)
        return (
            self._motors.position[motor_index].copy(),
            R_to_quat(self._motors.rotation[motor_index]),
            int(self._motors.direction[motor_index]),
        )

    def set_motor_properties(
        self,
        thrust_coefficient: MotorValue,
        torque_coefficient: MotorValue,
        time_constant: MotorValue,
        min_speed: MotorValue,
        max_speed: MotorValue,
        motor_index: int | None = None,
    ) -> None:
        """
        Set actuator parameters for all motors or for one motor.

        Without `motor_index` each value may be a scalar / Broadcast (same
        value for every motor) or a PerMotor with exactly N entries. With
        `motor_index` each value must be a scalar or Broadcast and only that
        motor changes. Current motor speeds are clamped to the new bounds.
        """
        values = {
            "thrust_coefficient": thrust_coefficient,
            "torque_coefficient": torque_coefficient,
            "time_constant": time_constant,
            "min_speed": min_speed,
            "max_speed": max_speed,
        }
        n = self.n_motors

        if motor_index is None:
            changes = {name: resolve_per_motor(val, n, name) for name, val in values.items()}
        else:
            self._motors.check_index(motor_index)
            changes = {}
            for name, val in values.items():
                if isinstance(val, PerMotor):
                    raise ConfigurationError(
                        f"{name}: PerMotor values cannot target a single motor index"
                    )
                arr = getattr(self._motors, name).copy()
                arr[motor_index] = resolve_per_motor(val, 1, name)[0]
                changes[name] = arr

        self._commit_motors(self._motors.replace(**changes))
        logger.debug(
            "motor properties set for %s",
            "all motors" if motor_index is None else f"motor {motor_index}",
        )

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def set_motor_speed(self, speed: MotorValue, motor_index: int | None = None) -> None:
        """Set realized rotor speed(s); values are clamped to the motor bounds."""
        n = self.n_motors
        if motor_index is None:
            speeds = resolve_per_motor(speed, n, "motor_speed", error=InvalidArgumentError)
        else:
            self._motors.check_index(motor_index)
            if isinstance(speed, PerMotor):
                raise InvalidArgumentError("PerMotor speeds cannot target a single motor index")
            speeds = self._state.motor_speed.copy()
            speeds[motor_index] = resolve_per_motor(speed, 1, "motor_speed", error=InvalidArgumentError)[0]
        if not np.all(np.isfinite(speeds)):
            raise InvalidArgumentError(f"motor_speed: values must be finite, got {speeds}")
        self._state.motor_speed = self._model.motors.clamp_speed(speeds)

    def reset_motor_speeds(self) -> None:
        """Stop all rotors (zero speed, clamped to the lower bounds)."""
        self.set_motor_speed(Broadcast(0.0))

    def set_vehicle_position(
        self,
        position: NDArray[np.float64],
        attitude: NDArray[np.float64],
    ) -> None:
        """Set position and attitude, leaving rates and motor speeds unchanged."""
        p = _finite_array(position, (3,), "position")
        q = _unit_attitude(attitude)
        self._state.p = p
        self._state.q = q

    def set_vehicle_state(
        self,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
        angular_velocity: NDArray[np.float64],
        attitude: NDArray[np.float64],
        motor_speed: NDArray[np.float64],
    ) -> None:
        """Replace the complete physical state."""
        new_state = VehicleState(
            p=_finite_array(position, (3,), "position"),
            v=_finite_array(velocity, (3,), "velocity"),
            q=_unit_attitude(attitude),
            w_body=_finite_array(angular_velocity, (3,), "angular_velocity"),
            motor_speed=_finite_array(motor_speed, (self.n_motors,), "motor_speed"),
        )
        new_state.motor_speed = self._model.motors.clamp_speed(new_state.motor_speed)
        self._state = new_state

    def get_vehicle_state(self) -> tuple[
        NDArray[np.float64],
        NDArray[np.float64],
        NDArray[np.float64],
        NDArray[np.float64],
        NDArray[np.float64],
    ]:
        """Return copies of (position, velocity, angular_velocity, attitude, motor_speed)."""
        s = self._state
        return s.p.copy(), s.v.copy(), s.w_body.copy(), s.q.copy(), s.motor_speed.copy()

    def get_vehicle_position(self) -> NDArray[np.float64]:
        return self._state.p.copy()

    def get_vehicle_attitude(self) -> NDArray[np.float64]:
        return self._state.q.copy()

    def get_vehicle_velocity(self) -> NDArray[np.float64]:
        return self._state.v.copy()

    def get_vehicle_angular_velocity(self) -> NDArray[np.float64]:
        return self._state.w_body.copy()

    def get_motor_speed(self) -> NDArray[np.float64]:
        return self._state.motor_speed.copy()

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def _check_step_args(self, dt, command) -> tuple[float, NDArray[np.float64]]:
        try:
            dt = float(dt)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"dt: not a number ({dt!r})") from exc
        if not np.isfinite(dt) or dt <= 0.0:
            raise InvalidArgumentError(f"dt must be a positive finite number, got {dt}")
        try:
            cmd = np.array(command, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"motor speed command: not numeric ({exc})") from exc
        if cmd.ndim != 1:
            raise InvalidArgumentError(
                f"motor speed command must be one-dimensional, got shape {cmd.shape}"
            )
        if cmd.shape != (self.n_motors,):
            raise InvalidArgumentError(
                f"motor speed command has {cmd.size} entries, expected {self.n_motors}"
            )
        if not np.all(np.isfinite(cmd)):
            raise InvalidArgumentError(f"motor speed command must be finite, got {cmd}")
        return dt, cmd

    def _proceed(self, step_fn, dt, command) -> None:
        dt, cmd = self._check_step_args(dt, command)
        vp = self._vehicle

        # One draw per call, shared by every derivative evaluation of the step
        sample = self._disturbances.sample(dt, vp.force_noise_psd, vp.moment_noise_psd)
        self._state = step_fn(self._state, cmd, sample, self._model, dt)
        self._last_force = sample.force
        self.imu.advance(dt)

    def proceed_state_explicit_euler(self, dt: float, motor_speed_command) -> None:
        """Advance the state by dt seconds with one forward Euler step."""
        self._proceed(step_euler, dt, motor_speed_command)

    def proceed_state_rk4(self, dt: float, motor_speed_command) -> None:
        """Advance the state by dt seconds with one classic RK4 step."""
        self._proceed(step_rk4, dt, motor_speed_command)

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------

    def get_ideal_imu_measurement(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Noise-free (specific_force, angular_rate), both body frame."""
        return ideal_imu_measurement(self._state, self._last_force, self._model)

    def get_imu_measurement(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """(accel, gyro) after the IMU collaborator applies bias and noise."""
        specific_force, angular_rate = self.get_ideal_imu_measurement()
        meas = self.imu.measure(specific_force, angular_rate)
        return meas.accel, meas.gyro
