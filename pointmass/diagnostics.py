"""Diagnostics for systems of point masses.

This module provides functions for monitoring conserved quantities of a
system of bodies integrated by ``InteractionSolver``.

Key diagnostics:
- Total mass and barycenter: X = Σ M_a x_a / Σ M_a
- Total momentum: P = Σ M_a v_a
- Total kinetic energy: T = Σ (1/2) M_a v_a²
- Angular momentum: L = Σ M_a (x_a × v_a)
- Barycenter drift over a recorded history
- Detection of non-finite states left by a degenerate field

Speeds are the backward differences stored in the bodies' buffers, so
momentum-like quantities lag half a step behind positions. For an isolated
system with an antisymmetric field the barycenter still moves uniformly,
exactly up to round-off.
"""

from typing import Dict, List
import numpy as np

from pointmass.bodies import Body


def total_mass(bodies: List[Body]) -> float:
    return float(sum(body.mass for body in bodies))


def barycenter(bodies: List[Body]) -> np.ndarray:
    """Mass-weighted mean position, shape (3,).

    Raises
    ------
    ValueError
        If ``bodies`` is empty.
    """
    if len(bodies) == 0:
        raise ValueError("There must be at least one body to compute the barycenter")
    X = np.zeros(3)
    for body in bodies:
        X += body.mass * body.position
    return X / total_mass(bodies)


def barycenter_velocity(bodies: List[Body]) -> np.ndarray:
    return total_momentum(bodies) / total_mass(bodies)


def total_momentum(bodies: List[Body]) -> np.ndarray:
    """Total linear momentum P = Σ M_a v_a, shape (3,)."""
    P = np.zeros(3)
    for body in bodies:
        P += body.mass * body.speed
    return P


def total_kinetic_energy(bodies: List[Body]) -> float:
    """Compute total kinetic energy of the system.

    Formula:
        T = Σ_a (1/2) M_a v_a²

    Examples
    --------
    >>> bodies = [
    ...     Body.create("A", 1.0, [0, 0, 0], [1, 0, 0]),
    ...     Body.create("B", 2.0, [1, 0, 0], [0, 0.5, 0]),
    ... ]
    >>> np.isclose(total_kinetic_energy(bodies), 0.75)
    True
    """
    return float(sum(body.kinetic_energy for body in bodies))


def angular_momentum(bodies: List[Body]) -> np.ndarray:
    """Total angular momentum L = Σ M_a (x_a × v_a), shape (3,)."""
    L_total = np.zeros(3)
    for body in bodies:
        L_total += body.mass * np.cross(body.position, body.speed)
    return L_total


def barycenter_history(history: Dict[str, np.ndarray]) -> np.ndarray:
    """Barycenter of every recorded state of ``integrate_system``.

    Returns
    -------
    np.ndarray, shape (n_saved, 3)
    """
    M = history['M']
    return np.einsum('j,ijk->ik', M, history['x']) / np.sum(M)


def barycenter_drift(history: Dict[str, np.ndarray]) -> float:
    """Largest deviation of the barycenter from uniform motion.

    The uniform motion is fitted through the first and last recorded
    barycenters, so a system drifting at constant velocity scores 0.
    """
    X = barycenter_history(history)
    t = history['t']
    if len(t) < 2 or t[-1] == t[0]:
        return 0.0
    s = (t - t[0]) / (t[-1] - t[0])
    line = X[0] + np.outer(s, X[-1] - X[0])
    return float(np.max(np.linalg.norm(X - line, axis=1)))


def has_degenerate_state(bodies: List[Body]) -> bool:
    """True if some body holds a non-finite position (NaN/Inf from the field)."""
    return any(not np.all(np.isfinite(body.position)) for body in bodies)


def compute_diagnostics(bodies: List[Body]) -> Dict:
    """Snapshot of the conserved quantities of ``bodies``."""
    return {
        'total_mass': total_mass(bodies),
        'barycenter': barycenter(bodies),
        'total_momentum': total_momentum(bodies),
        'kinetic_energy': total_kinetic_energy(bodies),
        'angular_momentum': angular_momentum(bodies),
        'degenerate': has_degenerate_state(bodies),
    }
