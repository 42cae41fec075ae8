"""Trajectories: time-indexed sequences of Pair samples.

This module provides:
- ``Curve``: the query interface shared by every trajectory storage
  (integer and fractional indexing, duration accounting, geometry,
  flat-array serialization)
- ``Trajectory``: the unbounded, append-only implementation

The fixed-capacity ring buffer lives in ``pointmass.buffer`` and implements
the same interface on top of its own storage and index mapping.

Indexing conventions
--------------------
Logical index 0 is the oldest sample, ``len(curve) - 1`` the newest.
``step(i)`` is the time elapsed between sample ``i`` and sample ``i + 1``.
A real-valued index ``s`` (curvilinear abscissa) addresses the segment
between samples ``floor(s)`` and ``floor(s) + 1``; ``at(s)`` interpolates the
pair linearly and ``t(s)`` the elapsed time.

Step bookkeeping
----------------
``add(pair)`` without an explicit step repeats the last written step, and
uses 1.0 when no step was ever written.
"""

import math
from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional, Sequence, Union
import numpy as np
from numpy.typing import NDArray

from pointmass.errors import InvalidArgument, OutOfRange
from pointmass.pair import Pair
from pointmass.vectors import EPSILON, EZ, Mat3, VectorLike, unit_normal, vec3, zeros

Steps = Union[float, Sequence[float]]

DEFAULT_STEP = 1.0


def check_step(dt: float) -> float:
    """Validate a single time step and return it as float."""
    dt = float(dt)
    if not dt > 0:
        raise InvalidArgument(f"Time step must be positive, got {dt}")
    return dt


def expand_steps(dt: Steps, n: int) -> List[float]:
    """Turn a scalar or a sequence of steps into a list of ``n`` steps.

    Raises
    ------
    InvalidArgument
        If a sequence does not hold exactly ``n`` entries, or if a step is
        not positive.
    """
    n = max(n, 0)
    if np.isscalar(dt):
        return [check_step(dt)] * n
    steps = [check_step(value) for value in dt]
    if len(steps) != n:
        raise InvalidArgument(f"Expected {n} time steps, got {len(steps)}")
    return steps


class Curve(ABC):
    """Query interface of a trajectory.

    Subclasses provide storage through ``__len__``, ``get``, ``_put``,
    ``step``, ``duration``, ``add``, ``clear`` and ``copy``; everything else
    is derived here from those primitives.
    """

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def get(self, i: int) -> Pair:
        """Sample at integer logical index ``i``."""

    @abstractmethod
    def _put(self, i: int, pair: Pair) -> None:
        ...

    @abstractmethod
    def step(self, i: int) -> float:
        """Time step between samples ``i`` and ``i + 1``."""

    @abstractmethod
    def duration(self, i: Optional[int] = None) -> float:
        """Time elapsed between sample 0 and sample ``i``."""

    @abstractmethod
    def add(self, pair: Pair, dt: Optional[float] = None) -> "Curve":
        ...

    @abstractmethod
    def clear(self) -> "Curve":
        ...

    @abstractmethod
    def copy(self) -> "Curve":
        ...

    def _check_index(self, i: int) -> int:
        n = len(self)
        if not isinstance(i, (int, np.integer)) or not 0 <= i < n:
            raise OutOfRange(f"Index {i} outside [0, {n})")
        return int(i)

    def _split(self, s: float):
        """Integer part and fraction of abscissa ``s``, range-checked."""
        n = len(self)
        if not 0 <= s <= n - 1:
            raise OutOfRange(f"Abscissa {s} outside [0, {n - 1}]")
        i0 = int(math.floor(s))
        return i0, s - i0

    def __getitem__(self, i: int) -> Pair:
        return self.get(i)

    def __iter__(self) -> Iterator[Pair]:
        for i in range(len(self)):
            yield self.get(i)

    @property
    def first(self) -> Pair:
        return self.get(0)

    @first.setter
    def first(self, pair: Pair) -> None:
        self._put(0, pair)

    @property
    def last(self) -> Pair:
        return self.get(len(self) - 1)

    @last.setter
    def last(self, pair: Pair) -> None:
        self._put(len(self) - 1, pair)

    @property
    def nexto(self) -> Pair:
        """Sample right before ``last`` (``last`` itself for a single sample)."""
        return self.get(max(len(self) - 2, 0))

    @nexto.setter
    def nexto(self, pair: Pair) -> None:
        self._put(max(len(self) - 2, 0), pair)

    def at(self, s: float) -> Pair:
        """Pair at curvilinear abscissa ``s``.

        Origin and position are interpolated independently between samples
        ``floor(s)`` and ``floor(s) + 1``. An integer abscissa returns a copy
        of the stored sample, without interpolation error.
        """
        i0, frac = self._split(s)
        if frac == 0:
            return self.get(i0).copy()
        return Pair.interpolate(self.get(i0), self.get(i0 + 1), frac)

    def t(self, s: float) -> float:
        """Time elapsed at curvilinear abscissa ``s``."""
        i0, frac = self._split(s)
        t = self.duration(i0)
        if frac == 0:
            return t
        return t + frac * self.step(i0)

    def duration_from(self, i: int, j: int) -> float:
        """Time elapsed between samples ``i`` and ``j`` (``i <= j``)."""
        if i > j:
            raise InvalidArgument(f"duration_from expects i <= j, got {i} > {j}")
        self._check_index(i)
        self._check_index(j)
        return float(sum(self.step(k) for k in range(i, j)))

    @property
    def length(self) -> float:
        """Polyline length of the relative positions."""
        rel = self.relatives
        if len(rel) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(rel, axis=0), axis=1)))

    @property
    def origins(self) -> NDArray[np.float64]:
        """Observer positions, shape (n, 3)."""
        return np.array([pair.origin for pair in self]).reshape(-1, 3)

    @origins.setter
    def origins(self, values) -> None:
        for pair, origin in zip(self, values):
            pair.origin = vec3(origin)

    @property
    def positions(self) -> NDArray[np.float64]:
        """Absolute positions of the mobile, shape (n, 3)."""
        return np.array([pair.position for pair in self]).reshape(-1, 3)

    @positions.setter
    def positions(self, values) -> None:
        for pair, position in zip(self, values):
            pair.position = vec3(position)

    @property
    def relatives(self) -> NDArray[np.float64]:
        """Positions relative to the observer, shape (n, 3)."""
        return np.array([pair.relative for pair in self]).reshape(-1, 3)

    @relatives.setter
    def relatives(self, values) -> None:
        for pair, relative in zip(self, values):
            pair.relative = relative

    def translate(self, u: VectorLike) -> "Curve":
        for pair in self:
            pair.translate(u)
        return self

    def homothetic(self, s: float) -> "Curve":
        for pair in self:
            pair.homothetic(s)
        return self

    def transform(self, m: Mat3) -> "Curve":
        for pair in self:
            pair.transform(m)
        return self

    def affine(self, m: Mat3, v: VectorLike) -> "Curve":
        for pair in self:
            pair.affine(m, v)
        return self

    def is_equal(self, other: "Curve", tol: float = EPSILON) -> bool:
        if len(self) != len(other):
            return False
        return all(a.is_equal(b, tol) for a, b in zip(self, other))

    def is_zero(self) -> bool:
        return self.length < EPSILON

    def to_1d(self) -> NDArray[np.float64]:
        """Flat array ``[ox, oy, oz, px, py, pz, ...]`` in logical order."""
        return np.hstack([self.origins, self.positions]).ravel()

    def __str__(self) -> str:
        return "".join(f"({i}) {pair}\n" for i, pair in enumerate(self))


class Trajectory(Curve):
    """Unbounded, append-only trajectory.

    Attributes
    ----------
    pairs : list of Pair
        Successive samples, oldest first.
    dt : list of float
        Steps between successive samples, ``len(dt) == max(len(pairs) - 1, 0)``.

    Examples
    --------
    >>> gamma = Trajectory.linear(3, dt=0.5)
    >>> gamma.duration()
    1.0
    >>> gamma.at(1.5).position
    array([0.75, 0.  , 0.  ])
    >>> gamma.add(Pair.vect([1.5, 0, 0])).t(3)
    1.5
    """

    def __init__(self, pairs: Optional[Sequence[Pair]] = None, dt: Steps = DEFAULT_STEP):
        self.pairs: List[Pair] = list(pairs) if pairs is not None else []
        self.dt: List[float] = expand_steps(dt, len(self.pairs) - 1)
        if self.dt:
            self._last_step = self.dt[-1]
        else:
            self._last_step = check_step(dt) if np.isscalar(dt) else DEFAULT_STEP

    def __len__(self) -> int:
        return len(self.pairs)

    def get(self, i: int) -> Pair:
        return self.pairs[self._check_index(i)]

    def _put(self, i: int, pair: Pair) -> None:
        self.pairs[self._check_index(i)] = pair

    def step(self, i: int) -> float:
        if not 0 <= i < len(self.dt):
            raise OutOfRange(f"Step index {i} outside [0, {len(self.dt)})")
        return self.dt[i]

    def duration(self, i: Optional[int] = None) -> float:
        if i is None:
            i = len(self.dt)
        if not 0 <= i <= len(self.dt):
            raise OutOfRange(f"Duration index {i} outside [0, {len(self.dt)}]")
        return float(np.sum(self.dt[:i]))

    @property
    def last_step(self) -> float:
        """Last written step, repeated by ``add`` when no step is given."""
        return self.dt[-1] if self.dt else self._last_step

    def add(self, pair: Pair, dt: Optional[float] = None) -> "Trajectory":
        """Append ``pair``, ``dt`` after the current last sample.

        With no previous sample the step only becomes ``last_step``, so the
        next ``add`` without ``dt`` repeats it.
        """
        step = self.last_step if dt is None else check_step(dt)
        if self.pairs:
            self.dt.append(step)
        self._last_step = step
        self.pairs.append(pair)
        return self

    def clear(self) -> "Trajectory":
        self.pairs = []
        self.dt = []
        self._last_step = DEFAULT_STEP
        return self

    def copy(self) -> "Trajectory":
        return Trajectory([pair.copy() for pair in self.pairs], list(self.dt) if self.dt else self.last_step)

    @staticmethod
    def from_1d(values, dt: Steps = DEFAULT_STEP) -> "Trajectory":
        """Inverse of ``to_1d``.

        Raises
        ------
        InvalidArgument
            If the number of values is not a multiple of 6.
        """
        values = np.asarray(values, dtype=float).ravel()
        if values.size % 6 != 0:
            raise InvalidArgument(
                f"Flat trajectory needs 6 values per sample, got {values.size}"
            )
        rows = values.reshape(-1, 6)
        return Trajectory([Pair(row[:3], row[3:]) for row in rows], dt)

    @staticmethod
    def zeros(u: Optional[VectorLike] = None, size: int = 2, dt: Steps = DEFAULT_STEP) -> "Trajectory":
        """Immobile trajectory where observer and mobile coincide at ``u``."""
        return Trajectory([Pair.zeros(u) for _ in range(size)], dt)

    @staticmethod
    def discrete(positions, dt: Steps = DEFAULT_STEP, origin: Optional[VectorLike] = None) -> "Trajectory":
        """Trajectory of absolute ``positions`` seen from a fixed ``origin``."""
        origin = zeros() if origin is None else vec3(origin)
        return Trajectory([Pair(origin, u) for u in positions], dt)

    @staticmethod
    def linear(count: int, dt: float = DEFAULT_STEP, v: Optional[VectorLike] = None,
               origin: Optional[VectorLike] = None) -> "Trajectory":
        """Uniform motion at velocity ``v`` (``ex`` by default) from ``origin``."""
        v = np.array([1.0, 0.0, 0.0]) if v is None else vec3(v)
        origin = zeros() if origin is None else vec3(origin)
        positions = [origin + v * (dt * i) for i in range(count)]
        return Trajectory.discrete(positions, dt, origin)

    @staticmethod
    def rotational(cos: Callable[[float], float] = math.cos,
                   sin: Callable[[float], float] = math.sin,
                   axis: VectorLike = EZ,
                   origin: Optional[VectorLike] = None,
                   dt: float = 0.01) -> "Trajectory":
        """One turn of a planar motion around ``axis``.

        The mobile sits at ``origin + cos(theta) e1 + sin(theta) e2`` where
        ``(e1, e2)`` is an orthonormal basis of the plane orthogonal to
        ``axis``; ``theta`` runs over ``[0, 2 pi)`` by increments of
        ``2 pi dt``, so ``dt`` is both the fraction of a turn per sample and
        the time step.
        """
        k = vec3(axis)
        k = k / np.linalg.norm(k)
        e1 = unit_normal(k)
        e2 = np.cross(k, e1)
        origin = zeros() if origin is None else vec3(origin)
        thetas = np.arange(0.0, 2.0 * math.pi, 2.0 * math.pi * dt)
        positions = [origin + cos(theta) * e1 + sin(theta) * e2 for theta in thetas]
        return Trajectory.discrete(positions, dt, origin)

    @staticmethod
    def elliptic(a: float = 1.0, b: float = 1.0, axis: VectorLike = EZ,
                 origin: Optional[VectorLike] = None, dt: float = 0.01) -> "Trajectory":
        return Trajectory.rotational(
            lambda theta: a * math.cos(theta), lambda theta: b * math.sin(theta), axis, origin, dt
        )

    @staticmethod
    def circular(radius: float = 1.0, axis: VectorLike = EZ,
                 origin: Optional[VectorLike] = None, dt: float = 0.01) -> "Trajectory":
        return Trajectory.elliptic(radius, radius, axis, origin, dt)

    @staticmethod
    def hyperbolic(a: float = 1.0, b: float = 1.0, axis: VectorLike = EZ,
                   origin: Optional[VectorLike] = None, dt: float = 0.01) -> "Trajectory":
        return Trajectory.rotational(
            lambda theta: a * math.cosh(theta), lambda theta: b * math.sinh(theta), axis, origin, dt
        )
