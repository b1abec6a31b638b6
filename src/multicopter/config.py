"""
Reproducible simulator configuration.

Provides dataclass containers holding plain JSON-friendly values and
helpers to save / load them, so that a simulator can be rebuilt from a
single JSON file. Values are validated when the simulator is built.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from multicopter.errors import ConfigurationError
from multicopter.math3d import R_to_quat
from multicopter.params import MotorParams, VehicleParams, as_rotation_matrix, x_quadrotor_layout
from multicopter.sensors import ImuNoiseModel, ImuParams
from multicopter.simulator import MulticopterSim

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config containers
# ---------------------------------------------------------------------------

@dataclass
class MotorConfig:
    """One motor. Rotation is a quaternion [w, x, y, z] (motor -> body)."""

    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    direction: int = 1
    thrust_coefficient: float = 0.0
    torque_coefficient: float = 0.0
    time_constant: float = 0.02
    min_speed: float = 0.0
    max_speed: float = float("inf")


@dataclass
class VehicleConfig:
    mass: float = 1.0
    inertia: List[List[float]] = field(
        default_factory=lambda: [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    )
    aero_moment_coefficient: List[List[float]] = field(
        default_factory=lambda: [[0.0] * 3 for _ in range(3)]
    )
    drag_coefficient: float = 0.0
    moment_noise_psd: float = 0.0
    force_noise_psd: float = 0.0
    gravity: List[float] = field(default_factory=lambda: [0.0, 0.0, 9.81])
    drag_law: str = "quadratic"     # "quadratic" | "linear"
    moment_law: str = "linear"      # "linear" | "quadratic"


@dataclass
class ImuConfig:
    """Mirror of ImuParams."""

    accel_noise_var: float = 0.0
    gyro_noise_var: float = 0.0
    accel_bias_psd: float = 0.0
    gyro_bias_psd: float = 0.0


@dataclass
class SimConfig:
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)
    motors: List[MotorConfig] = field(default_factory=lambda: [MotorConfig() for _ in range(4)])
    imu: ImuConfig = field(default_factory=ImuConfig)
    seed: Optional[int] = None


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def config_to_dict(cfg: SimConfig) -> Dict[str, Any]:
    return asdict(cfg)


def config_from_dict(data: Dict[str, Any]) -> SimConfig:
    """Build a SimConfig from a (possibly partial) nested dict."""
    try:
        return SimConfig(
            vehicle=VehicleConfig(**data.get("vehicle", {})),
            motors=[MotorConfig(**m) for m in data.get("motors", [{}] * 4)],
            imu=ImuConfig(**data.get("imu", {})),
            seed=data.get("seed"),
        )
    except (TypeError, AttributeError) as exc:
        raise ConfigurationError(f"invalid configuration structure: {exc}") from exc


def save_config(cfg: SimConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config_to_dict(cfg), f, indent=2)


def load_config(path: str | Path) -> SimConfig:
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path}: not valid JSON ({exc})") from exc
    logger.debug("loaded simulator config from %s", path)
    return config_from_dict(data)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_simulator(cfg: SimConfig) -> MulticopterSim:
    """Create a MulticopterSim from a SimConfig (validates everything)."""
    if not cfg.motors:
        raise ConfigurationError("configuration has no motors")

    motors = MotorParams(
        position=[m.position for m in cfg.motors],
        rotation=[as_rotation_matrix(m.rotation, f"motors[{i}].rotation")
                  for i, m in enumerate(cfg.motors)],
        direction=[m.direction for m in cfg.motors],
        thrust_coefficient=[m.thrust_coefficient for m in cfg.motors],
        torque_coefficient=[m.torque_coefficient for m in cfg.motors],
        time_constant=[m.time_constant for m in cfg.motors],
        min_speed=[m.min_speed for m in cfg.motors],
        max_speed=[m.max_speed for m in cfg.motors],
    )
    vc = cfg.vehicle
    vehicle = VehicleParams(
        mass=vc.mass,
        inertia=vc.inertia,
        aero_moment_coefficient=vc.aero_moment_coefficient,
        drag_coefficient=vc.drag_coefficient,
        moment_noise_psd=vc.moment_noise_psd,
        force_noise_psd=vc.force_noise_psd,
        gravity=vc.gravity,
    )
    sim = MulticopterSim(
        len(cfg.motors),
        motors=motors,
        vehicle=vehicle,
        seed=cfg.seed,
        drag_law=vc.drag_law,
        moment_law=vc.moment_law,
    )
    # Keep the seeded IMU stream, swap in the configured noise levels
    sim.imu = ImuNoiseModel(ImuParams(**asdict(cfg.imu)), rng=sim.imu.rng)
    return sim


def x_quadrotor_config(
    mass: float = 1.0,
    arm_length: float = 0.2,
    thrust_coefficient: float = 1.9e-6,
    torque_coefficient: float = 2.6e-8,
    time_constant: float = 0.02,
    min_speed: float = 0.0,
    max_speed: float = 2200.0,
    thrust_up: bool = False,
    seed: Optional[int] = None,
) -> SimConfig:
    """
    Configuration of a symmetric X quadrotor.

    With thrust_up=False the body frame is NED-style (rotor axes along body
    -z, gravity [0, 0, +9.81]); with thrust_up=True rotor axes point along
    body +z and gravity is [0, 0, -9.81].
    """
    positions, rotations, directions = x_quadrotor_layout(arm_length, thrust_up=thrust_up)
    motors = [
        MotorConfig(
            position=positions[i].tolist(),
            rotation=R_to_quat(rotations[i]).tolist(),
            direction=int(directions[i]),
            thrust_coefficient=thrust_coefficient,
            torque_coefficient=torque_coefficient,
            time_constant=time_constant,
            min_speed=min_speed,
            max_speed=max_speed,
        )
        for i in range(4)
    ]
    vehicle = VehicleConfig(
        mass=mass,
        inertia=[[0.0049, 0.0, 0.0], [0.0, 0.0049, 0.0], [0.0, 0.0, 0.0069]],
        gravity=[0.0, 0.0, -9.81] if thrust_up else [0.0, 0.0, 9.81],
    )
    return SimConfig(vehicle=vehicle, motors=motors, seed=seed)
