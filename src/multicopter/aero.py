"""
Aerodynamic drag force and angular damping moment.

Only scalar / matrix coefficients are configured, so the power law is a
pluggable choice:

    Drag (world frame):
        quadratic_drag:     F = -c * |v| * v        (default)
        linear_drag:        F = -c * v

    Damping moment (body frame):
        linear_damping:     M = -C @ w              (default)
        quadratic_damping:  M = -|w| * C @ w

Laws are plain functions so they can be referenced by name from
configuration files (DRAG_LAWS, MOMENT_LAWS) or replaced by any callable
with the same signature.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Union

import numpy as np
from numpy.typing import NDArray

from multicopter.errors import ConfigurationError


DragLaw = Callable[[NDArray[np.float64], float], NDArray[np.float64]]
MomentLaw = Callable[[NDArray[np.float64], NDArray[np.float64]], NDArray[np.float64]]


def quadratic_drag(velocity: NDArray[np.float64], coeff: float) -> NDArray[np.float64]:
    return -coeff * np.linalg.norm(velocity) * velocity


def linear_drag(velocity: NDArray[np.float64], coeff: float) -> NDArray[np.float64]:
    return -coeff * velocity


def linear_damping(w: NDArray[np.float64], coeff: NDArray[np.float64]) -> NDArray[np.float64]:
    return -(coeff @ w)


def quadratic_damping(w: NDArray[np.float64], coeff: NDArray[np.float64]) -> NDArray[np.float64]:
    return -np.linalg.norm(w) * (coeff @ w)


DRAG_LAWS: dict[str, DragLaw] = {
    "quadratic": quadratic_drag,
    "linear": linear_drag,
}

MOMENT_LAWS: dict[str, MomentLaw] = {
    "linear": linear_damping,
    "quadratic": quadratic_damping,
}


def resolve_law(law: Union[str, Callable], registry: dict, kind: str) -> Callable:
    """Look up a law by name, or pass a callable through."""
    if callable(law):
        return law
    try:
        return registry[law]
    except (KeyError, TypeError):
        raise ConfigurationError(
            f"Unknown {kind} law {law!r}. Choose from {list(registry)}"
        ) from None


@dataclass(frozen=True)
class AeroModel:
    """
    Drag and damping with fixed coefficients.

    Attributes:
        drag_coefficient: Scalar drag coefficient
        moment_coefficient: Angular damping matrix, shape (3, 3)
        drag_law: Callable (velocity, coeff) -> force
        moment_law: Callable (w, coeff_matrix) -> moment
    """

    drag_coefficient: float = 0.0
    moment_coefficient: NDArray[np.float64] = field(
        default_factory=lambda: np.zeros((3, 3))
    )
    drag_law: DragLaw = quadratic_drag
    moment_law: MomentLaw = linear_damping

    def drag_force(self, velocity: NDArray[np.float64]) -> NDArray[np.float64]:
        """Drag force in world frame [N], shape (3,)."""
        return self.drag_law(velocity, self.drag_coefficient)

    def aero_moment(self, w_body: NDArray[np.float64]) -> NDArray[np.float64]:
        """Damping moment in body frame [N·m], shape (3,)."""
        return self.moment_law(w_body, self.moment_coefficient)
