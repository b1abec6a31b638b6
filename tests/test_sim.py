"""Tests for the fixed-step simulation loop."""

import logging

import numpy as np
import pytest

from multicopter.errors import InvalidArgumentError
from multicopter.sim import constant_command, run_sim

from conftest import hover_speed, set_hover


def test_log_shapes(quad_ned):
    cmd = set_hover(quad_ned)
    log = run_sim(quad_ned, constant_command(cmd), t_final=0.1, dt=0.01)

    assert log.t.shape == (11,)
    assert log.p.shape == (11, 3)
    assert log.q.shape == (11, 4)
    assert log.motor_speed.shape == (11, 4)
    assert log.motor_cmd.shape == (11, 4)
    assert log.accel.shape == (11, 3)
    assert log.t[-1] == pytest.approx(0.1)
    assert np.allclose(log.motor_cmd, cmd)


def test_log_matches_simulator_state(free_body):
    log = run_sim(free_body, constant_command(np.zeros(4)), t_final=0.5, dt=0.01)
    assert np.array_equal(log.p[-1], free_body.get_vehicle_position())
    assert np.allclose(log.v[-1], [0.0, 0.0, 4.905])
    assert np.all(np.diff(log.p[:, 2]) >= 0.0), "Free fall in NED moves toward +z"


@pytest.mark.parametrize("method", ["rk4", "euler"])
def test_both_methods_hover(quad_up, method):
    s = hover_speed(quad_up)
    set_hover(quad_up)
    log = run_sim(quad_up, lambda t, state: np.full(4, s), t_final=0.2, dt=0.002, method=method)
    assert np.allclose(log.v, 0.0, atol=1e-8)
    assert np.allclose(log.accel, [0.0, 0.0, 9.81], atol=1e-8)


def test_command_fn_sees_time_and_state(free_body):
    seen = []

    def command_fn(t, state):
        seen.append((t, state.p[2]))
        return np.zeros(4)

    run_sim(free_body, command_fn, t_final=0.05, dt=0.01)
    times = [t for t, _ in seen]
    assert times == pytest.approx([0.0, 0.01, 0.02, 0.03, 0.04])
    assert seen[0][1] == 0.0
    assert seen[-1][1] > 0.0


def test_invalid_method_rejected(free_body):
    with pytest.raises(InvalidArgumentError):
        run_sim(free_body, constant_command(np.zeros(4)), t_final=0.1, method="midpoint")


def test_invalid_dt_rejected(free_body):
    with pytest.raises(InvalidArgumentError):
        run_sim(free_body, constant_command(np.zeros(4)), t_final=0.1, dt=0.0)


def test_verbose_reports_progress(free_body, caplog):
    with caplog.at_level(logging.INFO, logger="multicopter.sim"):
        run_sim(free_body, constant_command(np.zeros(4)), t_final=2.0, dt=0.001, verbose=True)
    messages = [r.getMessage() for r in caplog.records]
    assert any("Starting simulation" in m for m in messages)
    assert any("Simulation complete" in m for m in messages)


@pytest.mark.parametrize("t_final", [-0.1, np.nan])
def test_invalid_t_final_rejected(free_body, t_final):
    with pytest.raises(InvalidArgumentError):
        run_sim(free_body, constant_command(np.zeros(4)), t_final=t_final, dt=0.01)


def test_zero_duration_records_one_sample(free_body):
    log = run_sim(free_body, constant_command(np.zeros(4)), t_final=0.0, dt=0.01)
    assert log.t.shape == (1,)
    assert np.allclose(log.motor_cmd, 0.0)
