"""
Quaternion and rotation helpers.

Quaternion convention: [w, x, y, z] (scalar-first, Hamilton product).
A vehicle attitude q rotates body-frame vectors into the world frame:
    v_world = R(q) @ v_body
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0])


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Scale a quaternion to unit length.

    Args:
        q: Quaternion [w, x, y, z], shape (4,)

    Returns:
        Unit quaternion, shape (4,). A near-zero input maps to identity.
    """
    norm = np.linalg.norm(q)
    if norm < 1e-10:
        return IDENTITY_QUAT.copy()
    return q / norm


def quat_mul(q1: NDArray[np.float64], q2: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Hamilton product q1 ⊗ q2 (apply q2 first, then q1).

    Args:
        q1: Left quaternion [w, x, y, z], shape (4,)
        q2: Right quaternion [w, x, y, z], shape (4,)

    Returns:
        Product quaternion, shape (4,)
    """
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array([
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
    ])


def quat_conj(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Conjugate of q (the inverse rotation when q is a unit quaternion)."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


def quat_to_R(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Rotation matrix of a unit quaternion.

    The result maps body-frame vectors to the world frame. The input is
    assumed to be normalized; callers that cannot guarantee this should
    pass it through quat_normalize first.

    Args:
        q: Unit quaternion [w, x, y, z], shape (4,)

    Returns:
        Rotation matrix, shape (3, 3)
    """
    w, x, y, z = q
    return np.array([
        [1 - 2*(y*y + z*z),     2*(x*y - w*z),     2*(x*z + w*y)],
        [    2*(x*y + w*z), 1 - 2*(x*x + z*z),     2*(y*z - w*x)],
        [    2*(x*z - w*y),     2*(y*z + w*x), 1 - 2*(x*x + y*y)],
    ])


def R_to_quat(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert a rotation matrix to a unit quaternion (Shepperd's method).

    Args:
        R: Rotation matrix, shape (3, 3)

    Returns:
        Unit quaternion [w, x, y, z] with w >= 0, shape (4,)
    """
    trace = np.trace(R)

    # Branch on the largest diagonal term to keep s away from zero
    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        q = np.array([
            0.25 / s,
            (R[2, 1] - R[1, 2]) * s,
            (R[0, 2] - R[2, 0]) * s,
            (R[1, 0] - R[0, 1]) * s,
        ])
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        q = np.array([
            (R[2, 1] - R[1, 2]) / s,
            0.25 * s,
            (R[0, 1] + R[1, 0]) / s,
            (R[0, 2] + R[2, 0]) / s,
        ])
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        q = np.array([
            (R[0, 2] - R[2, 0]) / s,
            (R[0, 1] + R[1, 0]) / s,
            0.25 * s,
            (R[1, 2] + R[2, 1]) / s,
        ])
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        q = np.array([
            (R[1, 0] - R[0, 1]) / s,
            (R[0, 2] + R[2, 0]) / s,
            (R[1, 2] + R[2, 1]) / s,
            0.25 * s,
        ])

    if q[0] < 0:
        q = -q
    return quat_normalize(q)


def quat_from_axis_angle(axis: NDArray[np.float64], angle: float) -> NDArray[np.float64]:
    """
    Quaternion for a rotation of `angle` radians about `axis`.

    Args:
        axis: Rotation axis, shape (3,). Need not be unit length.
        angle: Rotation angle [rad]

    Returns:
        Unit quaternion [w, x, y, z], shape (4,)
    """
    axis = np.asarray(axis, dtype=np.float64)
    norm = np.linalg.norm(axis)
    if norm < 1e-12:
        return IDENTITY_QUAT.copy()
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis / norm])


def quat_rotate_vec(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotate a body-frame vector into the world frame: R(q) @ v."""
    return quat_to_R(q) @ v


def quat_inv_rotate_vec(q: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotate a world-frame vector into the body frame: R(q).T @ v."""
    return quat_rotate_vec(quat_conj(q), v)


def is_rotation_matrix(R: NDArray[np.float64], atol: float = 1e-9) -> bool:
    """True if R is orthonormal with determinant +1."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        return False
    return bool(
        np.allclose(R @ R.T, np.eye(3), atol=atol)
        and abs(np.linalg.det(R) - 1.0) < atol
    )
