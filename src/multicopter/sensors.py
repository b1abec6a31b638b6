"""
Inertial measurement model.

The ideal IMU output is derived from the same physical state the
integrators advance:

  - Accelerometer: specific force in body frame, i.e. all non-gravitational
    forces divided by mass. Rotor force is already in body frame; drag and
    the stochastic disturbance force are world frame and get rotated in.
    The disturbance force is the one drawn for the most recent step, so the
    reading matches the force that actually moved the vehicle.
  - Gyroscope: body-frame angular velocity.

ImuNoiseModel then adds bias and white measurement noise:

    bias_{k+1} = bias_k + sqrt(bias_psd * dt) * N(0, I)     (random walk)
    meas       = truth + bias + sqrt(noise_var) * N(0, I)

Deterministic by default via a seeded numpy Generator. Any object with
`measure(specific_force, angular_rate)` and `advance(dt)` can stand in for
ImuNoiseModel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from multicopter.dynamics import VehicleModel
from multicopter.errors import ConfigurationError
from multicopter.math3d import quat_inv_rotate_vec
from multicopter.types import VehicleState


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class ImuParams:
    """Parameters for the IMU noise model.

    White measurement noise:
        accel_noise_var:  Accelerometer noise variance [(m/s^2)^2].
        gyro_noise_var:   Gyroscope noise variance [(rad/s)^2].

    Bias random walk:
        accel_bias_psd:   Accelerometer bias driving intensity [(m/s^2)^2 / s].
        gyro_bias_psd:    Gyroscope bias driving intensity [(rad/s)^2 / s].

    All zero (the default) gives an ideal, noise-free IMU.
    """

    accel_noise_var: float = 0.0
    gyro_noise_var: float = 0.0
    accel_bias_psd: float = 0.0
    gyro_bias_psd: float = 0.0

    def __post_init__(self) -> None:
        for name in ("accel_noise_var", "gyro_noise_var", "accel_bias_psd", "gyro_bias_psd"):
            try:
                value = float(getattr(self, name))
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{name}: not a number ({getattr(self, name)!r})") from exc
            if not np.isfinite(value) or value < 0.0:
                raise ConfigurationError(f"{name} must be finite and >= 0, got {value}")
            setattr(self, name, value)


@dataclass
class ImuMeasurement:
    """Accelerometer and gyroscope readings, both body frame."""

    accel: NDArray[np.float64]  # (3,)
    gyro: NDArray[np.float64]  # (3,)


class ImuSensor(Protocol):
    """Interface of the noise-shaping collaborator."""

    def measure(
        self,
        specific_force: NDArray[np.float64],
        angular_rate: NDArray[np.float64],
    ) -> ImuMeasurement: ...

    def advance(self, dt: float) -> None: ...


# ---------------------------------------------------------------------------
# Ideal measurement
# ---------------------------------------------------------------------------

def ideal_imu_measurement(
    state: VehicleState,
    last_force: NDArray[np.float64],
    model: VehicleModel,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Noise-free (specific_force, angular_rate) for the given state.

    Args:
        state:      Current vehicle state.
        last_force: World-frame disturbance force of the most recent step [N].
        model:      Vehicle model used by the integrators.

    Returns:
        ``(specific_force_body, angular_rate_body)``
    """
    force_body, _ = model.motors.thrust_and_torque(state.motor_speed)
    external_world = model.aero.drag_force(state.v) + last_force
    specific_force = (force_body + quat_inv_rotate_vec(state.q, external_world)) / model.vehicle.mass
    return specific_force, state.w_body.copy()


# ---------------------------------------------------------------------------
# Noise model
# ---------------------------------------------------------------------------

class ImuNoiseModel:
    """Bias random walk plus white noise on top of the ideal IMU output."""

    def __init__(
        self,
        params: ImuParams | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ):
        self.params = params if params is not None else ImuParams()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.accel_bias = np.zeros(3)
        self.gyro_bias = np.zeros(3)

    def reset_bias(
        self,
        accel_bias: NDArray[np.float64] | None = None,
        gyro_bias: NDArray[np.float64] | None = None,
    ) -> None:
        """Set the biases (zero when omitted)."""
        self.accel_bias = np.zeros(3) if accel_bias is None else np.array(accel_bias, dtype=np.float64)
        self.gyro_bias = np.zeros(3) if gyro_bias is None else np.array(gyro_bias, dtype=np.float64)

    def advance(self, dt: float) -> None:
        """Evolve the bias random walks over dt seconds."""
        sqrt_dt = np.sqrt(dt)
        self.accel_bias = (
            self.accel_bias
            + np.sqrt(self.params.accel_bias_psd) * sqrt_dt * self.rng.standard_normal(3)
        )
        self.gyro_bias = (
            self.gyro_bias
            + np.sqrt(self.params.gyro_bias_psd) * sqrt_dt * self.rng.standard_normal(3)
        )

    def measure(
        self,
        specific_force: NDArray[np.float64],
        angular_rate: NDArray[np.float64],
    ) -> ImuMeasurement:
        """Apply bias and white noise to one ideal reading."""
        accel = (
            specific_force
            + self.accel_bias
            + np.sqrt(self.params.accel_noise_var) * self.rng.standard_normal(3)
        )
        gyro = (
            angular_rate
            + self.gyro_bias
            + np.sqrt(self.params.gyro_noise_var) * self.rng.standard_normal(3)
        )
        return ImuMeasurement(accel=accel, gyro=gyro)
