"""
Vehicle and motor parameters.

Both parameter containers validate themselves in __post_init__ and are
frozen with read-only arrays, so an instance that exists is a valid
configuration and stays one. Changing a parameter
means building a new container (see MotorParams.replace and
VehicleParams.replace); the old one stays in use if validation fails.

Default values describe a 1 kg vehicle with identity inertia, no
aerodynamics, no process noise and NED gravity.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from multicopter.errors import ConfigurationError, NumericalDegeneracyError
from multicopter.math3d import is_rotation_matrix, quat_normalize, quat_to_R


# ---------------------------------------------------------------------------
# Per-motor value variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Broadcast:
    """One value applied to every motor."""

    value: float


@dataclass(frozen=True)
class PerMotor:
    """One value per motor, in motor-index order."""

    values: Sequence[float]


MotorValue = Union[float, int, Broadcast, PerMotor]


def resolve_per_motor(
    value: MotorValue,
    n_motors: int,
    name: str,
    error: type = ConfigurationError,
) -> NDArray[np.float64]:
    """
    Expand a Broadcast / PerMotor / scalar value into an (N,) array.

    Args:
        value: Scalar (treated as Broadcast), Broadcast or PerMotor
        n_motors: Number of motors N
        name: Parameter name used in error messages
        error: Exception class raised on a length or type mismatch

    Returns:
        Array of shape (N,)
    """
    if isinstance(value, Broadcast):
        return np.full(n_motors, float(value.value))
    if isinstance(value, PerMotor):
        arr = np.asarray(value.values, dtype=np.float64)
        if arr.shape != (n_motors,):
            raise error(
                f"{name}: expected {n_motors} per-motor values, got shape {arr.shape}"
            )
        return arr.copy()
    if np.isscalar(value) and not isinstance(value, (str, bytes)):
        return np.full(n_motors, float(value))
    raise error(f"{name}: expected a scalar, Broadcast or PerMotor, got {value!r}")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _float_array(value, shape: tuple, name: str) -> NDArray[np.float64]:
    try:
        arr = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name}: not numeric ({exc})") from exc
    if arr.shape != shape:
        raise ConfigurationError(f"{name}: expected shape {shape}, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name}: values must be finite, got {arr}")
    return arr


def _float_scalar(value, name: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name}: not a number ({value!r})") from exc
    if not np.isfinite(out):
        raise ConfigurationError(f"{name}: must be finite, got {out}")
    return out


def _store(obj, name: str, value) -> None:
    """Set a field on a frozen container, making arrays read-only."""
    if isinstance(value, np.ndarray):
        value.setflags(write=False)
    object.__setattr__(obj, name, value)


def as_rotation_matrix(rotation, name: str = "rotation") -> NDArray[np.float64]:
    """
    Accept a mount orientation as quaternion [w, x, y, z] or 3x3 matrix.

    Raises:
        ConfigurationError: on a zero quaternion or a non-rotation matrix.
    """
    arr = np.asarray(rotation, dtype=np.float64)
    if arr.shape == (4,):
        if not np.all(np.isfinite(arr)) or np.linalg.norm(arr) < 1e-10:
            raise ConfigurationError(f"{name}: invalid quaternion {arr}")
        return quat_to_R(quat_normalize(arr))
    if arr.shape == (3, 3):
        if not is_rotation_matrix(arr):
            raise ConfigurationError(f"{name}: not a proper rotation matrix")
        return arr.copy()
    raise ConfigurationError(
        f"{name}: expected quaternion (4,) or matrix (3, 3), got shape {arr.shape}"
    )


# ---------------------------------------------------------------------------
# Motor parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MotorParams:
    """
    Geometry and actuator parameters for N motors (one row per motor).

    Geometry:
        position: Rotor hub position relative to the center of mass,
                  body frame [m], shape (N, 3)
        rotation: Mount orientation (motor frame -> body frame), shape (N, 3, 3).
                  The rotor spins about the motor-frame z-axis and positive
                  thrust points along it.
        direction: +1 / -1 per motor. -1 means a positive rotor speed
                   produces a negative reaction moment about the motor z-axis.

    Actuator:
        thrust_coefficient: Thrust = k_T * s * |s| [N / (rad/s)^2], shape (N,)
        torque_coefficient: Reaction moment = k_Q * s * |s| [N·m / (rad/s)^2]
        time_constant: First-order speed lag [s], must be > 0
        min_speed, max_speed: Saturation bounds on rotor speed [rad/s]
    """

    position: NDArray[np.float64]
    rotation: NDArray[np.float64]
    direction: NDArray[np.float64]
    thrust_coefficient: NDArray[np.float64]
    torque_coefficient: NDArray[np.float64]
    time_constant: NDArray[np.float64]
    min_speed: NDArray[np.float64]
    max_speed: NDArray[np.float64]

    def __post_init__(self) -> None:
        n = len(np.atleast_1d(self.direction))
        if n < 1:
            raise ConfigurationError("at least one motor is required")

        position = _float_array(self.position, (n, 3), "position")
        direction = _float_array(self.direction, (n,), "direction")
        thrust_coefficient = _float_array(self.thrust_coefficient, (n,), "thrust_coefficient")
        torque_coefficient = _float_array(self.torque_coefficient, (n,), "torque_coefficient")
        time_constant = _float_array(self.time_constant, (n,), "time_constant")
        min_speed = _float_array(self.min_speed, (n,), "min_speed")

        # max_speed may be +inf (no upper saturation)
        try:
            max_speed = np.array(self.max_speed, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"max_speed: not numeric ({exc})") from exc
        if max_speed.shape != (n,):
            raise ConfigurationError(f"max_speed: expected shape {(n,)}, got {max_speed.shape}")
        if np.any(np.isnan(max_speed)) or np.any(max_speed == -np.inf):
            raise ConfigurationError(f"max_speed: invalid values {max_speed}")

        try:
            rotation = np.array(self.rotation, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"rotation: not numeric ({exc})") from exc
        if rotation.shape != (n, 3, 3):
            raise ConfigurationError(f"rotation: expected shape {(n, 3, 3)}, got {rotation.shape}")
        for i in range(n):
            if not is_rotation_matrix(rotation[i]):
                raise ConfigurationError(f"rotation[{i}]: not a proper rotation matrix")

        if not np.all(np.isin(direction, (-1.0, 1.0))):
            raise ConfigurationError(f"direction: each entry must be +1 or -1, got {direction}")
        if np.any(time_constant <= 0.0):
            raise ConfigurationError(
                f"time_constant: must be > 0 for every motor, got {time_constant}"
            )
        if np.any(min_speed > max_speed):
            raise ConfigurationError(
                f"min_speed must not exceed max_speed (min={min_speed}, max={max_speed})"
            )

        _store(self, "position", position)
        _store(self, "rotation", rotation)
        _store(self, "direction", direction)
        _store(self, "thrust_coefficient", thrust_coefficient)
        _store(self, "torque_coefficient", torque_coefficient)
        _store(self, "time_constant", time_constant)
        _store(self, "min_speed", min_speed)
        _store(self, "max_speed", max_speed)

    @property
    def n_motors(self) -> int:
        return len(self.direction)

    @property
    def axes_body(self) -> NDArray[np.float64]:
        """Rotor axes (motor-frame z) expressed in body frame, shape (N, 3)."""
        return self.rotation[:, :, 2]

    def replace(self, **changes) -> MotorParams:
        """Return a validated copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    def with_frame(
        self,
        motor_index: int,
        position: NDArray[np.float64],
        rotation,
        direction: int,
    ) -> MotorParams:
        """Return a copy with one motor's mount transform and spin direction changed."""
        self.check_index(motor_index)
        new_position = self.position.copy()
        new_rotation = self.rotation.copy()
        new_direction = self.direction.copy()
        new_position[motor_index] = _float_array(position, (3,), "position")
        new_rotation[motor_index] = as_rotation_matrix(rotation)
        new_direction[motor_index] = _float_scalar(direction, "direction")
        return self.replace(
            position=new_position, rotation=new_rotation, direction=new_direction,
        )

    def check_index(self, motor_index: int) -> None:
        if not isinstance(motor_index, (int, np.integer)) or isinstance(motor_index, bool):
            raise ConfigurationError(f"motor index must be an int, got {motor_index!r}")
        if not 0 <= motor_index < self.n_motors:
            raise ConfigurationError(
                f"motor index {motor_index} out of range [0, {self.n_motors})"
            )

    @staticmethod
    def defaults(
        n_motors: int,
        thrust_coefficient: MotorValue = 0.0,
        torque_coefficient: MotorValue = 0.0,
        time_constant: MotorValue = 0.02,
        min_speed: MotorValue = 0.0,
        max_speed: MotorValue = np.inf,
    ) -> MotorParams:
        """
        Motors mounted at the center of mass with identity orientation.

        Mount transforms are expected to be set afterwards with
        MulticopterSim.set_motor_frame or a layout helper.
        """
        if not isinstance(n_motors, (int, np.integer)) or n_motors < 1:
            raise ConfigurationError(f"n_motors must be a positive int, got {n_motors!r}")
        return MotorParams(
            position=np.zeros((n_motors, 3)),
            rotation=np.tile(np.eye(3), (n_motors, 1, 1)),
            direction=np.ones(n_motors),
            thrust_coefficient=resolve_per_motor(thrust_coefficient, n_motors, "thrust_coefficient"),
            torque_coefficient=resolve_per_motor(torque_coefficient, n_motors, "torque_coefficient"),
            time_constant=resolve_per_motor(time_constant, n_motors, "time_constant"),
            min_speed=resolve_per_motor(min_speed, n_motors, "min_speed"),
            max_speed=resolve_per_motor(max_speed, n_motors, "max_speed"),
        )


def x_quadrotor_layout(
    arm_length: float,
    thrust_up: bool = False,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Mount geometry of a symmetric X-configuration quadrotor.

    Motors sit at 45°, 135°, 225° and 315° in the body x-y plane and
    alternate spin direction, so equal speeds give zero net moment.

    Args:
        arm_length: Distance from center of mass to each hub [m]
        thrust_up: If True the rotor axes point along body +z (z-up body
                   frame, use with gravity [0, 0, -g]). Otherwise they point
                   along body -z (NED body frame, gravity [0, 0, +g]).

    Returns:
        (position (4, 3), rotation (4, 3, 3), direction (4,))
    """
    angles = np.deg2rad([45.0, 135.0, 225.0, 315.0])
    position = arm_length * np.column_stack([np.cos(angles), np.sin(angles), np.zeros(4)])

    # 180° about body x flips the rotor axis to body -z
    mount = np.eye(3) if thrust_up else np.diag([1.0, -1.0, -1.0])
    rotation = np.tile(mount, (4, 1, 1))

    direction = np.array([1.0, -1.0, 1.0, -1.0])
    return position, rotation, direction


# ---------------------------------------------------------------------------
# Vehicle parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VehicleParams:
    """
    Rigid-body, aerodynamic and process-noise parameters.

    Physical:
        mass: Vehicle mass [kg], > 0
        inertia: Inertia tensor about the center of mass, body frame
                 [kg·m²], shape (3, 3), symmetric positive-definite
        gravity: Gravity vector in world frame [m/s²], shape (3,)

    Aerodynamics:
        aero_moment_coefficient: Angular damping matrix, shape (3, 3)
        drag_coefficient: Translational drag coefficient, >= 0

    Process noise (continuous-time white-noise intensities):
        moment_noise_psd: Moment disturbance intensity [(N·m)²·s], >= 0
        force_noise_psd: Force disturbance intensity [N²·s], >= 0
    """

    mass: float = 1.0
    inertia: NDArray[np.float64] = field(default_factory=lambda: np.eye(3))
    aero_moment_coefficient: NDArray[np.float64] = field(
        default_factory=lambda: np.zeros((3, 3))
    )
    drag_coefficient: float = 0.0
    moment_noise_psd: float = 0.0
    force_noise_psd: float = 0.0
    gravity: NDArray[np.float64] = field(
        default_factory=lambda: np.array([0.0, 0.0, 9.81])
    )  # NED

    def __post_init__(self) -> None:
        mass = _float_scalar(self.mass, "mass")
        if mass <= 0.0:
            raise ConfigurationError(f"mass must be > 0, got {mass}")

        inertia = _float_array(self.inertia, (3, 3), "inertia")
        scale = max(1.0, float(np.max(np.abs(inertia))))
        if not np.allclose(inertia, inertia.T, rtol=0.0, atol=1e-12 * scale):
            raise ConfigurationError("inertia must be symmetric")
        try:
            np.linalg.cholesky(inertia)
        except np.linalg.LinAlgError as exc:
            raise ConfigurationError("inertia must be positive-definite") from exc

        aero_moment_coefficient = _float_array(
            self.aero_moment_coefficient, (3, 3), "aero_moment_coefficient"
        )
        for name in ("drag_coefficient", "moment_noise_psd", "force_noise_psd"):
            value = _float_scalar(getattr(self, name), name)
            if value < 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")
            _store(self, name, value)

        gravity = _float_array(self.gravity, (3,), "gravity")

        # Cache the inertia inverse
        try:
            inertia_inv = np.linalg.inv(inertia)
        except np.linalg.LinAlgError as exc:
            raise NumericalDegeneracyError("inertia matrix is singular") from exc

        _store(self, "mass", mass)
        _store(self, "inertia", inertia)
        _store(self, "aero_moment_coefficient", aero_moment_coefficient)
        _store(self, "gravity", gravity)
        _store(self, "_inertia_inv", inertia_inv)

    @property
    def inertia_inv(self) -> NDArray[np.float64]:
        """Inverse of the inertia tensor (cached)."""
        return self._inertia_inv

    @property
    def weight(self) -> float:
        """Magnitude of the gravitational force [N]."""
        return self.mass * float(np.linalg.norm(self.gravity))

    def replace(self, **changes) -> VehicleParams:
        """Return a validated copy with some fields changed."""
        return dataclasses.replace(self, **changes)
