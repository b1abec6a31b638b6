"""Tests for drag and damping laws."""

import numpy as np
import pytest

from multicopter.aero import (
    AeroModel,
    DRAG_LAWS,
    MOMENT_LAWS,
    linear_damping,
    linear_drag,
    quadratic_damping,
    quadratic_drag,
    resolve_law,
)
from multicopter.errors import ConfigurationError


def test_quadratic_drag_default():
    aero = AeroModel(drag_coefficient=0.5)
    v = np.array([3.0, 4.0, 0.0])  # |v| = 5
    assert np.allclose(aero.drag_force(v), [-7.5, -10.0, 0.0])


def test_linear_drag():
    assert np.allclose(linear_drag(np.array([1.0, -2.0, 0.5]), 0.2), [-0.2, 0.4, -0.1])


def test_drag_opposes_motion():
    rng = np.random.default_rng(3)
    for _ in range(20):
        v = rng.standard_normal(3)
        assert np.dot(quadratic_drag(v, 0.3), v) <= 0.0


def test_linear_damping_anisotropic():
    aero = AeroModel(moment_coefficient=np.diag([1.0, 2.0, 3.0]))
    assert np.allclose(aero.aero_moment(np.array([1.0, 1.0, 1.0])), [-1.0, -2.0, -3.0])


def test_quadratic_damping_scales_with_rate():
    C = np.diag([1.0, 2.0, 3.0])
    w = np.array([0.0, 2.0, 0.0])
    assert np.allclose(quadratic_damping(w, C), [0.0, -8.0, 0.0])
    assert np.allclose(quadratic_damping(w, C), np.linalg.norm(w) * linear_damping(w, C))


def test_zero_coefficients_give_zero():
    aero = AeroModel()
    assert np.allclose(aero.drag_force(np.array([5.0, 0.0, 0.0])), 0.0)
    assert np.allclose(aero.aero_moment(np.array([1.0, 2.0, 3.0])), 0.0)


def test_resolve_law_by_name_and_callable():
    assert resolve_law("linear", DRAG_LAWS, "drag") is linear_drag
    assert resolve_law("quadratic", MOMENT_LAWS, "moment") is quadratic_damping

    def custom(v, c):
        return np.zeros(3)

    assert resolve_law(custom, DRAG_LAWS, "drag") is custom


def test_unknown_law_rejected():
    with pytest.raises(ConfigurationError):
        resolve_law("cubic", DRAG_LAWS, "drag")
