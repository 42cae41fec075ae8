"""Acceleration fields for the solvers.

Two families of callables are provided:

Single-body fields ``f(u, t) -> Vec3`` for ``Solver``:
- ``zero()``: free motion
- ``uniform(g)``: constant acceleration (ballistics)
- ``harmonic(omega, center)``: isotropic oscillator, ``-omega² (u - center)``

Pairwise fields ``f(state, other, t) -> Vec3`` for ``InteractionSolver``,
giving the acceleration of ``state`` caused by ``other``:
- ``gravity(G, softening)``: Newtonian attraction with Plummer softening
- ``spring(stiffness, rest_length)``: linear spring between the two bodies
- ``coulomb(k)``: electrostatic interaction, charges read from ``data['charge']``

All pairwise fields are force laws divided by the mass of ``state``, so
``m_a a_ab = -m_b a_ba`` and the barycenter of an isolated system moves
uniformly.

Coincident bodies without softening produce NaN/Inf. The value is returned
as is and propagates into the trajectories; guarding against it is up to
the caller (softening, collision handling, smaller dt).
"""

from typing import Any, Callable, Dict, Optional
import numpy as np

from pointmass.bodies import BodyState
from pointmass.vectors import Vec3, VectorLike, vec3, zeros as zero_vector

Field = Callable[[Vec3, float], Vec3]
PairwiseField = Callable[[BodyState, BodyState, float], Vec3]


def zero() -> Field:
    def field(u: Vec3, t: float) -> Vec3:
        return zero_vector()
    return field


def uniform(g: VectorLike) -> Field:
    g = vec3(g)

    def field(u: Vec3, t: float) -> Vec3:
        return g.copy()
    return field


def harmonic(omega: float, center: Optional[VectorLike] = None) -> Field:
    """Isotropic harmonic oscillator of pulsation ``omega`` around ``center``."""
    center = zero_vector() if center is None else vec3(center)
    omega2 = float(omega) ** 2

    def field(u: Vec3, t: float) -> Vec3:
        return -omega2 * (u - center)
    return field


def gravity(G: float = 1.0, softening: float = 0.0) -> PairwiseField:
    """
    Softened Newtonian gravity.

    Acceleration of body a due to body b:

        a_ab = G M_b r_ab / (|r_ab|² + eps²)^(3/2),   r_ab = x_b - x_a

    Parameters
    ----------
    G : float
        Gravitational constant in the units of the simulation.
    softening : float
        Plummer softening length ``eps`` (>= 0). Limits accelerations at
        short range; with ``eps = 0`` coincident bodies give NaN.
    """
    eps2 = float(softening) ** 2

    def field(state: BodyState, other: BodyState, t: float) -> Vec3:
        r = other.position - state.position
        r2 = float(np.dot(r, r)) + eps2
        with np.errstate(divide='ignore', invalid='ignore'):
            return r * (G * other.mass / np.float64(r2 * np.sqrt(r2)))
    return field


def spring(stiffness: float, rest_length: float = 0.0) -> PairwiseField:
    """Linear spring of constant ``stiffness`` linking every pair of bodies.

    The force on a is ``k (|r_ab| - L) r_ab / |r_ab|``; with ``L = 0`` it is
    simply ``k r_ab``, which stays defined at coincidence.
    """
    k = float(stiffness)
    L = float(rest_length)

    def field(state: BodyState, other: BodyState, t: float) -> Vec3:
        r = other.position - state.position
        if L == 0.0:
            return r * (k / state.mass)
        d = np.float64(np.linalg.norm(r))
        with np.errstate(divide='ignore', invalid='ignore'):
            return r * (k * (d - L) / (d * state.mass))
    return field


def coulomb(k: float = 1.0) -> PairwiseField:
    """Electrostatic interaction; charges are read from ``BodyState.data['charge']``.

    Like charges repel. Bodies without a charge are neutral.
    """
    def field(state: BodyState, other: BodyState, t: float) -> Vec3:
        q_a = float(state.data.get('charge', 0.0))
        q_b = float(other.data.get('charge', 0.0))
        r = other.position - state.position
        r3 = np.float64(np.linalg.norm(r)) ** 3
        with np.errstate(divide='ignore', invalid='ignore'):
            return r * (-k * q_a * q_b / (r3 * state.mass))
    return field


PAIRWISE_FIELDS: Dict[str, Callable[..., PairwiseField]] = {
    'gravity': gravity,
    'spring': spring,
    'coulomb': coulomb,
}


def make_pairwise_field(params: Dict[str, Any]) -> PairwiseField:
    """Build a pairwise field from a config mapping ``{'type': name, **kwargs}``.

    Raises
    ------
    ValueError
        Unknown field type or bad parameters.
    """
    params = dict(params)
    name = params.pop('type', None)
    if name not in PAIRWISE_FIELDS:
        raise ValueError(
            f"Unknown field type {name!r}, expected one of {sorted(PAIRWISE_FIELDS)}"
        )
    try:
        return PAIRWISE_FIELDS[name](**{key: float(value) for key, value in params.items()})
    except TypeError as e:
        raise ValueError(f"Bad parameters for field '{name}': {e}")
