"""Vector helpers for point-mass kinematics.

Vectors are plain numpy arrays of shape (3,) and dtype float64. This module
collects the handful of constructors and comparisons that the trajectory and
solver modules rely on, so that every place builds vectors the same way.

Equality comes in two flavours:
- exact equality (``np.array_equal``)
- approximate equality within an epsilon, measured either with the norm-1
  (sum of absolute differences) or the norm-2 (Euclidean distance)

Approximate equality absorbs floating point drift accumulated by the
integrator over many steps.
"""

from typing import Sequence, Union
import numpy as np
from numpy.typing import NDArray

# Type aliases
Vec3 = NDArray[np.float64]  # Shape (3,)
Mat3 = NDArray[np.float64]  # Shape (3, 3)
VectorLike = Union[Vec3, Sequence[float]]

EPSILON = 1e-12

EX = np.array([1.0, 0.0, 0.0])
EY = np.array([0.0, 1.0, 0.0])
EZ = np.array([0.0, 0.0, 1.0])


def vec3(u: VectorLike) -> Vec3:
    """Copy ``u`` into a fresh float64 vector of shape (3,).

    Raises
    ------
    ValueError
        If ``u`` does not hold exactly three components.
    """
    out = np.array(u, dtype=float)
    if out.shape != (3,):
        raise ValueError(f"Vector must have shape (3,), got {out.shape}")
    return out


def zeros() -> Vec3:
    return np.zeros(3)


def is_close(u: VectorLike, v: VectorLike, tol: float = EPSILON, norm: int = 2) -> bool:
    """Approximate equality of two vectors.

    Parameters
    ----------
    u, v : array_like, shape (3,)
        Vectors to compare.
    tol : float
        Absolute tolerance on the distance between ``u`` and ``v``.
    norm : {1, 2}
        Norm used to measure the distance.

    Returns
    -------
    bool
        True if ``||u - v|| <= tol``.
    """
    if norm not in (1, 2):
        raise ValueError(f"norm must be 1 or 2, got {norm}")
    d = np.asarray(u, dtype=float) - np.asarray(v, dtype=float)
    return bool(np.linalg.norm(d, ord=norm) <= tol)


def lerp(u: Vec3, v: Vec3, s: float) -> Vec3:
    """Linear interpolation ``u + s (v - u)``; ``s == 0`` returns ``u`` exactly."""
    if s == 0:
        return np.array(u, dtype=float)
    return u + s * (v - u)


def unit_normal(axis: VectorLike) -> Vec3:
    """Unit vector orthogonal to ``axis``.

    Uses ``ez x axis`` when the axis is not aligned with ``ez``, and ``ex``
    otherwise, so that circular trajectories around ``ez`` start on ``ex``.
    """
    axis = vec3(axis)
    n = np.cross(EZ, axis)
    norm = np.linalg.norm(n)
    if norm < EPSILON:
        return EX.copy()
    return n / norm


def rotation_matrix(axis: VectorLike, angle: float) -> Mat3:
    """Rotation of ``angle`` radians around ``axis`` (Rodrigues formula)."""
    k = vec3(axis)
    k = k / np.linalg.norm(k)
    K = np.array([
        [0.0, -k[2], k[1]],
        [k[2], 0.0, -k[0]],
        [-k[1], k[0], 0.0],
    ])
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)
