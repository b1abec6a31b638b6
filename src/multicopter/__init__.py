"""
Multicopter dynamics simulation core.

Rigid-body and rotor actuator dynamics of an N-motor multicopter with
stochastic disturbances, explicit Euler and RK4 integration, and an IMU
readout consistent with the simulated forces.
"""

from multicopter.errors import (
    ConfigurationError,
    InvalidArgumentError,
    MulticopterError,
    NumericalDegeneracyError,
)
from multicopter.types import VehicleState, DisturbanceSample, SimLog
from multicopter.params import Broadcast, PerMotor, MotorParams, VehicleParams
from multicopter.sensors import ImuParams, ImuNoiseModel, ImuMeasurement
from multicopter.simulator import MulticopterSim
from multicopter.config import SimConfig, build_simulator, load_config, save_config
from multicopter.sim import run_sim

__version__ = "0.1.0"

__all__ = [
    "MulticopterSim",
    "VehicleState",
    "DisturbanceSample",
    "SimLog",
    "Broadcast",
    "PerMotor",
    "MotorParams",
    "VehicleParams",
    "ImuParams",
    "ImuNoiseModel",
    "ImuMeasurement",
    "SimConfig",
    "build_simulator",
    "load_config",
    "save_config",
    "run_sim",
    "MulticopterError",
    "ConfigurationError",
    "InvalidArgumentError",
    "NumericalDegeneracyError",
]
