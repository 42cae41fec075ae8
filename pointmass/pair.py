"""Pair dataclass: a mobile observed from a frame.

A pair couples two absolute positions:
- ``origin``: position of the observer (fixed or moving frame)
- ``position``: position of the mobile

The derived ``relative`` vector (``position - origin``) and its ``length``
are always recomputed from the two stored vectors, so they can never go out
of sync. Writing ``relative`` or ``length`` moves ``position`` and keeps
``origin`` fixed.

Geometric transforms (translation, homothety, linear map, affine map) act on
both points at once and return ``self`` so they can be chained.
"""

from dataclasses import dataclass, field
from typing import Optional
import numpy as np

from pointmass.vectors import EPSILON, Mat3, Vec3, VectorLike, is_close, lerp, vec3, zeros


@dataclass(eq=False)
class Pair:
    """Absolute positions of an observer and a mobile.

    Attributes
    ----------
    origin : np.ndarray
        Observer position, shape (3,).
    position : np.ndarray
        Mobile position, shape (3,).

    Examples
    --------
    >>> om = Pair(origin=[1, 0, 0], position=[1, 2, 0])
    >>> om.relative
    array([0., 2., 0.])
    >>> om.length
    2.0
    >>> om.length = 4.0
    >>> om.position
    array([1., 4., 0.])
    """

    origin: Vec3 = field(default_factory=zeros)
    position: Vec3 = field(default_factory=zeros)

    def __post_init__(self):
        self.origin = vec3(self.origin)
        self.position = vec3(self.position)

    @property
    def relative(self) -> Vec3:
        """Coordinates of the mobile relative to the observer."""
        return self.position - self.origin

    @relative.setter
    def relative(self, rel: VectorLike) -> None:
        self.position = vec3(rel) + self.origin

    @property
    def length(self) -> float:
        """Distance between observer and mobile."""
        return float(np.linalg.norm(self.position - self.origin))

    @length.setter
    def length(self, new_length: float) -> None:
        current = self.length
        if current > 0:
            self.relative = self.relative * (new_length / current)
        else:
            self.relative = zeros()

    def translate(self, u: VectorLike) -> "Pair":
        u = vec3(u)
        self.origin = self.origin + u
        self.position = self.position + u
        return self

    def homothetic(self, s: float) -> "Pair":
        """Scale both points by ``s`` around the absolute origin."""
        self.origin = self.origin * s
        self.position = self.position * s
        return self

    def transform(self, m: Mat3) -> "Pair":
        """Apply the linear map ``m`` (shape (3, 3)) to both points."""
        m = np.asarray(m, dtype=float)
        self.origin = m @ self.origin
        self.position = m @ self.position
        return self

    def affine(self, m: Mat3, v: VectorLike) -> "Pair":
        """Apply ``x -> m x + v`` to both points."""
        return self.transform(m).translate(v)

    def copy(self) -> "Pair":
        return Pair(self.origin.copy(), self.position.copy())

    def is_equal(self, other: "Pair", tol: float = EPSILON, norm: int = 2) -> bool:
        """True if the relative positions of both pairs are equal within ``tol``."""
        return is_close(self.relative, other.relative, tol, norm)

    def is_zero(self, tol: float = EPSILON) -> bool:
        """True if observer and mobile coincide."""
        return is_close(self.origin, self.position, tol)

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.origin)) and np.all(np.isfinite(self.position)))

    @staticmethod
    def interpolate(p0: "Pair", p1: "Pair", s: float) -> "Pair":
        """Pair with origin and position interpolated independently."""
        return Pair(lerp(p0.origin, p1.origin, s), lerp(p0.position, p1.position, s))

    @staticmethod
    def zeros(u: Optional[VectorLike] = None) -> "Pair":
        """Pair of length 0 located at ``u`` (absolute origin by default)."""
        u = zeros() if u is None else vec3(u)
        return Pair(u, u.copy())

    @staticmethod
    def vect(u: VectorLike) -> "Pair":
        """Pair observed from the absolute origin."""
        return Pair(zeros(), u)

    def __str__(self) -> str:
        o, p = self.origin, self.position
        return (f"origin [{o[0]:.3e}, {o[1]:.3e}, {o[2]:.3e}]\t"
                f"position [{p[0]:.3e}, {p[1]:.3e}, {p[2]:.3e}]")
