"""
Rotor actuator model: first-order speed lag, saturation, thrust and torque.

Physical motivation:
- A motor/ESC/propeller combination cannot change rotor speed
  instantaneously. The combined lag is well approximated by a first-order
  system with time constant tau of a few tens of milliseconds.
- Rotor thrust and reaction torque scale with the square of rotor speed.
  The sign-preserving form s * |s| lets reversible motors produce negative
  thrust when spun backwards.

Continuous-time model per motor i:
    ds_i/dt  = (clip(s_cmd_i, s_min_i, s_max_i) - s_i) / tau_i
    T_i      = k_T,i * s_i * |s_i|                      (along rotor axis z_i)
    F_i      = T_i * z_i                                 (body frame)
    M_i      = r_i × F_i + d_i * k_Q,i * s_i * |s_i| * z_i

Hard saturation of the realized speed is applied by the integrators after
each step; the command is clamped here before it drives the lag.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from multicopter.params import MotorParams


class MotorActuatorModel:
    """Vectorized actuator model for all N motors of one vehicle."""

    def __init__(self, params: MotorParams):
        self._params = params

    @property
    def params(self) -> MotorParams:
        return self._params

    @property
    def n_motors(self) -> int:
        return self.params.n_motors

    def clamp_speed(self, motor_speed: NDArray[np.float64]) -> NDArray[np.float64]:
        """Clip rotor speeds to [min_speed, max_speed] per motor."""
        return np.clip(motor_speed, self.params.min_speed, self.params.max_speed)

    def speed_derivative(
        self,
        motor_speed: NDArray[np.float64],
        command: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        First-order lag toward the (saturated) commanded speed.

        Args:
            motor_speed: Current rotor speeds [rad/s], shape (N,)
            command: Commanded rotor speeds [rad/s], shape (N,)

        Returns:
            Rotor acceleration [rad/s²], shape (N,)
        """
        target = self.clamp_speed(command)
        return (target - motor_speed) / self.params.time_constant

    def thrust_and_torque(
        self,
        motor_speed: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Net rotor force and moment about the center of mass.

        Args:
            motor_speed: Current rotor speeds [rad/s], shape (N,)

        Returns:
            (force_body, moment_body): body-frame force [N] and moment [N·m],
            each shape (3,)
        """
        p = self.params
        axes = p.axes_body  # (N, 3)
        s_sq = motor_speed * np.abs(motor_speed)

        forces = (p.thrust_coefficient * s_sq)[:, None] * axes  # (N, 3)

        # Thrust lever arm plus reaction torque about each rotor axis
        lever = np.cross(p.position, forces)
        reaction = (p.direction * p.torque_coefficient * s_sq)[:, None] * axes

        return forces.sum(axis=0), (lever + reaction).sum(axis=0)

    def hover_speed(self, weight: float) -> float:
        """
        Common rotor speed at which the rotor thrust magnitudes add up to `weight`.

        Assumes all rotor axes are parallel. Returns 0 when the vehicle has
        no thrust coefficient.
        """
        k_total = float(np.sum(self.params.thrust_coefficient))
        if k_total <= 0.0:
            return 0.0
        return float(np.sqrt(weight / k_total))
