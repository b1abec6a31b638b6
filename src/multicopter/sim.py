"""
Fixed-step simulation loop.

A thin host loop around MulticopterSim, useful for scripted scenarios and
tests. The pipeline per timestep is:
    1. command_fn(t, state)  →  commanded motor speeds
    2. record state and IMU output at time t
    3. integrator step (RK4 or explicit Euler)  →  state at t + dt
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from multicopter.errors import InvalidArgumentError
from multicopter.simulator import MulticopterSim
from multicopter.types import SimLog, VehicleState

logger = logging.getLogger(__name__)

CommandFn = Callable[[float, VehicleState], NDArray[np.float64]]


def constant_command(speeds) -> CommandFn:
    """Command function that always returns the same motor speeds."""
    cmd = np.array(speeds, dtype=np.float64)
    return lambda t, state: cmd


def run_sim(
    sim: MulticopterSim,
    command_fn: CommandFn,
    t_final: float,
    dt: float = 0.002,
    method: str = "rk4",
    verbose: bool = False,
) -> SimLog:
    """
    Run the simulator from its current state for t_final seconds.

    Args:
        sim: Configured simulator (its state is advanced in place)
        command_fn: Returns commanded motor speeds for (t, state)
        t_final: Simulation end time [s]
        dt: Integration timestep [s] (default: 0.002 = 500 Hz)
        method: "rk4" or "euler"
        verbose: Report progress at INFO level

    Returns:
        SimLog with one sample per step plus the final state
    """
    steppers = {
        "rk4": sim.proceed_state_rk4,
        "euler": sim.proceed_state_explicit_euler,
    }
    if method not in steppers:
        raise InvalidArgumentError(f"Unknown method '{method}'. Choose from {list(steppers)}")
    if not np.isfinite(dt) or dt <= 0.0:
        raise InvalidArgumentError(f"dt must be a positive finite number, got {dt}")
    if not np.isfinite(t_final) or t_final < 0.0:
        raise InvalidArgumentError(f"t_final must be a finite number >= 0, got {t_final}")
    proceed = steppers[method]

    n_steps = int(round(t_final / dt))
    log = SimLog.allocate(n_steps + 1, sim.n_motors)

    if verbose:
        logger.info(
            "Starting simulation: t_final=%ss, dt=%.1fms, steps=%d, method=%s",
            t_final, dt * 1000, n_steps, method,
        )

    t = 0.0
    for step in range(n_steps):
        state = sim.state
        cmd = np.asarray(command_fn(t, state), dtype=np.float64)
        accel, gyro = sim.get_imu_measurement()
        log.record(t, state, cmd, accel, gyro)

        proceed(dt, cmd)
        t = (step + 1) * dt

        if verbose and (step + 1) % 1000 == 0:
            logger.info("  t=%.2fs, |v|=%.3f m/s", t, np.linalg.norm(sim.get_vehicle_velocity()))

    # Final sample; the command column repeats the last command
    final_state = sim.state
    accel, gyro = sim.get_imu_measurement()
    last_cmd = log.motor_cmd[log._idx - 1] if log._idx > 0 else np.zeros(sim.n_motors)
    log.record(t, final_state, last_cmd, accel, gyro)

    if verbose:
        logger.info("Simulation complete: %d steps", n_steps)

    return log.trim()
