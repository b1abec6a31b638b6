"""Tests for JSON configuration save / load and simulator building."""

import json

import numpy as np
import pytest

from multicopter.config import (
    ImuConfig,
    MotorConfig,
    SimConfig,
    build_simulator,
    config_from_dict,
    config_to_dict,
    load_config,
    save_config,
    x_quadrotor_config,
)
from multicopter.dynamics import pack_state
from multicopter.errors import ConfigurationError

from conftest import set_hover


def test_save_load_round_trip(tmp_path):
    cfg = x_quadrotor_config(mass=1.2, seed=5)
    cfg.vehicle.force_noise_psd = 0.3
    cfg.vehicle.moment_law = "quadratic"
    cfg.motors[0].max_speed = float("inf")
    cfg.imu = ImuConfig(accel_noise_var=0.01, gyro_bias_psd=1e-4)

    path = tmp_path / "configs" / "quad.json"
    save_config(cfg, path)
    loaded = load_config(path)

    assert config_to_dict(loaded) == config_to_dict(cfg)
    assert loaded.motors[0].max_speed == float("inf")


def test_rebuilt_simulator_is_equivalent(tmp_path):
    cfg = x_quadrotor_config(seed=8)
    cfg.vehicle.force_noise_psd = 0.2
    cfg.imu.accel_noise_var = 0.01
    path = tmp_path / "quad.json"
    save_config(cfg, path)

    a = build_simulator(cfg)
    b = build_simulator(load_config(path))
    for sim in (a, b):
        cmd = set_hover(sim)
        for _ in range(10):
            sim.proceed_state_rk4(0.005, cmd)

    assert np.array_equal(pack_state(a.state), pack_state(b.state))
    assert np.array_equal(a.get_imu_measurement()[0], b.get_imu_measurement()[0])


def test_x_quadrotor_hovers(quad_ned):
    cmd = set_hover(quad_ned)
    for _ in range(200):
        quad_ned.proceed_state_rk4(0.005, cmd)
    assert np.allclose(quad_ned.get_vehicle_velocity(), 0.0, atol=1e-8)
    assert np.allclose(quad_ned.get_vehicle_angular_velocity(), 0.0, atol=1e-8)


def test_build_applies_imu_params():
    cfg = x_quadrotor_config(seed=0)
    cfg.imu.gyro_noise_var = 0.04
    sim = build_simulator(cfg)
    assert sim.imu.params.gyro_noise_var == 0.04


def test_partial_dict_uses_defaults():
    cfg = config_from_dict({"vehicle": {"mass": 3.0}, "seed": 2})
    assert cfg.vehicle.mass == 3.0
    assert len(cfg.motors) == 4
    assert cfg.seed == 2
    sim = build_simulator(cfg)
    assert sim.n_motors == 4
    assert sim.vehicle_params.mass == 3.0


def test_unknown_field_rejected():
    with pytest.raises(ConfigurationError):
        config_from_dict({"vehicle": {"wingspan": 1.0}})
    with pytest.raises(ConfigurationError):
        config_from_dict({"motors": ["not a motor"]})


def test_unknown_law_rejected():
    cfg = SimConfig()
    cfg.vehicle.drag_law = "cubic"
    with pytest.raises(ConfigurationError):
        build_simulator(cfg)


def test_invalid_values_rejected_at_build():
    cfg = SimConfig(motors=[MotorConfig(time_constant=0.0)])
    with pytest.raises(ConfigurationError):
        build_simulator(cfg)
    with pytest.raises(ConfigurationError):
        build_simulator(SimConfig(motors=[]))


def test_invalid_json_rejected(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_saved_file_is_plain_json(tmp_path):
    path = tmp_path / "quad.json"
    save_config(x_quadrotor_config(), path)
    data = json.loads(path.read_text())
    assert set(data) == {"vehicle", "motors", "imu", "seed"}
    assert len(data["motors"]) == 4
    assert data["motors"][1]["direction"] == -1
