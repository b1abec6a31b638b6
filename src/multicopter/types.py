"""
Core data types for the multicopter simulation.

All arrays use numpy with explicit shapes noted in comments.
Quaternion convention: [w, x, y, z] (scalar-first).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

import numpy as np
from numpy.typing import NDArray


@dataclass
class VehicleState:
    """
    Complete physical state of one multicopter.

    Attributes:
        p: Position in world frame [m], shape (3,)
        v: Velocity in world frame [m/s], shape (3,)
        q: Attitude quaternion [w, x, y, z] (body -> world), shape (4,)
        w_body: Angular velocity in body frame [rad/s], shape (3,)
        motor_speed: Rotor speeds [rad/s], shape (N,)
    """

    p: NDArray[np.float64]  # (3,)
    v: NDArray[np.float64]  # (3,)
    q: NDArray[np.float64]  # (4,) [w, x, y, z]
    w_body: NDArray[np.float64]  # (3,)
    motor_speed: NDArray[np.float64]  # (N,)

    @property
    def n_motors(self) -> int:
        return len(self.motor_speed)

    def copy(self) -> VehicleState:
        """Create a deep copy of this state."""
        return VehicleState(
            p=self.p.copy(),
            v=self.v.copy(),
            q=self.q.copy(),
            w_body=self.w_body.copy(),
            motor_speed=self.motor_speed.copy(),
        )

    @staticmethod
    def zeros(n_motors: int) -> VehicleState:
        """Vehicle at rest at the origin, identity attitude, motors stopped."""
        return VehicleState(
            p=np.zeros(3),
            v=np.zeros(3),
            q=np.array([1.0, 0.0, 0.0, 0.0]),
            w_body=np.zeros(3),
            motor_speed=np.zeros(n_motors),
        )


@dataclass
class DisturbanceSample:
    """
    Stochastic wrench drawn once per integration call.

    Attributes:
        force: Disturbance force in world frame [N], shape (3,)
        moment: Disturbance moment in body frame [N·m], shape (3,)
    """

    force: NDArray[np.float64]  # (3,)
    moment: NDArray[np.float64]  # (3,)

    @staticmethod
    def zeros() -> DisturbanceSample:
        return DisturbanceSample(force=np.zeros(3), moment=np.zeros(3))


@dataclass
class SimLog:
    """
    Time histories recorded by run_sim.

    Arrays have shape (K,), (K, 3), (K, 4) or (K, N) where K is the
    number of recorded samples and N the number of motors.
    """

    t: NDArray[np.float64]  # (K,)

    # State histories
    p: NDArray[np.float64]  # (K, 3)
    v: NDArray[np.float64]  # (K, 3)
    q: NDArray[np.float64]  # (K, 4)
    w_body: NDArray[np.float64]  # (K, 3)
    motor_speed: NDArray[np.float64]  # (K, N)

    # Commanded motor speeds applied over the following step
    motor_cmd: NDArray[np.float64]  # (K, N)

    # IMU output at each sample
    accel: NDArray[np.float64]  # (K, 3)
    gyro: NDArray[np.float64]  # (K, 3)

    _idx: int = field(default=0, repr=False)

    @staticmethod
    def allocate(n_steps: int, n_motors: int) -> SimLog:
        """Pre-allocate arrays for n_steps samples."""
        return SimLog(
            t=np.zeros(n_steps),
            p=np.zeros((n_steps, 3)),
            v=np.zeros((n_steps, 3)),
            q=np.zeros((n_steps, 4)),
            w_body=np.zeros((n_steps, 3)),
            motor_speed=np.zeros((n_steps, n_motors)),
            motor_cmd=np.zeros((n_steps, n_motors)),
            accel=np.zeros((n_steps, 3)),
            gyro=np.zeros((n_steps, 3)),
            _idx=0,
        )

    def record(
        self,
        t: float,
        state: VehicleState,
        motor_cmd: NDArray[np.float64],
        accel: NDArray[np.float64],
        gyro: NDArray[np.float64],
    ) -> None:
        """Record one sample."""
        i = self._idx
        self.t[i] = t
        self.p[i] = state.p
        self.v[i] = state.v
        self.q[i] = state.q
        self.w_body[i] = state.w_body
        self.motor_speed[i] = state.motor_speed
        self.motor_cmd[i] = motor_cmd
        self.accel[i] = accel
        self.gyro[i] = gyro
        self._idx += 1

    def trim(self) -> SimLog:
        """Trim arrays to the recorded length."""
        n = self._idx
        histories = {f.name: getattr(self, f.name)[:n] for f in fields(self) if f.name != "_idx"}
        return SimLog(**histories, _idx=n)
