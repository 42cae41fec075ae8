"""Fixed-capacity trajectory stored as a ring buffer.

``BufferTrajectory`` keeps the last ``capacity`` samples of a mobile. It
implements the ``Curve`` query interface of ``pointmass.trajectory`` on top
of two physical arrays of length ``capacity`` (pairs and steps) and a write
index.

Index mapping
-------------
Logical index ``i`` (0 = oldest retained sample) lives in physical slot
``(i + write_index) % capacity``. ``write_index`` always designates the
oldest slot, which is the one overwritten by the next ``add``: once full,
the buffer holds exactly the last ``capacity`` samples.

Steps
-----
Physical ``dt[k]`` is the step leaving the sample stored in slot ``k``.
The newest slot holds the step that ``add`` repeats when called without an
explicit ``dt``. Slots never written hold the zero Pair and a zero step, so
they contribute nothing to durations.

Bulk load
---------
``bufferize(trajectory)`` with ``L`` source samples:
- ``L >= capacity``: keep the last ``capacity`` samples, ``write_index = 0``
- ``L < capacity``: copy into ``[0, L)``, zero-fill ``[L, capacity)``,
  ``write_index = L`` so the zero padding is overwritten first
"""

from typing import Optional
import numpy as np

from pointmass.errors import InvalidArgument, OutOfRange
from pointmass.pair import Pair
from pointmass.trajectory import DEFAULT_STEP, Curve, Steps, Trajectory, check_step
from pointmass.vectors import VectorLike


def check_capacity(capacity: int) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, (int, np.integer)) or capacity <= 0:
        raise InvalidArgument(f"Buffer capacity must be a positive integer, got {capacity!r}")
    return int(capacity)


class BufferTrajectory(Curve):
    """Trajectory of fixed capacity with insertion by replacement.

    Parameters
    ----------
    capacity : int
        Number of samples kept, must be positive.
    trajectory : Curve, optional
        Source samples loaded with ``bufferize``.

    Raises
    ------
    InvalidArgument
        If ``capacity`` is not a positive integer.

    Examples
    --------
    >>> gamma = Trajectory.discrete([[1, 0, 0], [0, 1, 0], [-1, 0, 0]], dt=0.1)
    >>> buf = BufferTrajectory(2, gamma)
    >>> buf.first.position, buf.last.position
    (array([0., 1., 0.]), array([-1.,  0.,  0.]))
    >>> buf.add(Pair.vect([0, -1, 0])).last.position
    array([ 0., -1.,  0.])
    >>> buf.write_index
    1
    """

    def __init__(self, capacity: int, trajectory: Optional[Curve] = None):
        self._capacity = check_capacity(capacity)
        self.clear()
        if trajectory is not None:
            self.bufferize(trajectory)

    @property
    def capacity(self) -> int:
        return self._capacity

    @capacity.setter
    def capacity(self, new_capacity: int) -> None:
        self.resize(new_capacity)

    @property
    def write_index(self) -> int:
        """Physical slot overwritten by the next ``add``."""
        return self._write_index

    @property
    def count(self) -> int:
        """Number of samples actually written, at most ``capacity``."""
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self._capacity

    def _slot(self, i: int) -> int:
        return (i + self._write_index) % self._capacity

    def __len__(self) -> int:
        return self._capacity

    def get(self, i: int) -> Pair:
        return self.pairs[self._slot(self._check_index(i))]

    def _put(self, i: int, pair: Pair) -> None:
        self.pairs[self._slot(self._check_index(i))] = pair

    def step(self, i: int) -> float:
        return float(self.dt[self._slot(self._check_index(i))])

    @property
    def last_step(self) -> float:
        """Step between ``nexto`` and ``last``, 0.0 while nothing was written."""
        return float(self.dt[(self._write_index - 1) % self._capacity])

    def duration(self, i: Optional[int] = None) -> float:
        """Time elapsed between the oldest sample and logical sample ``i``.

        When the physical range ``[write_index, write_index + i)`` crosses the
        end of the array, the sum is split into ``[write_index, capacity)``
        and ``[0, (write_index + i) % capacity)``.
        """
        n = self._capacity
        if i is None:
            i = n - 1
        if not 0 <= i < n:
            raise OutOfRange(f"Duration index {i} outside [0, {n})")
        start = self._write_index
        end = start + i
        if end <= n:
            return float(np.sum(self.dt[start:end]))
        return float(np.sum(self.dt[start:n]) + np.sum(self.dt[0:end - n]))

    def add(self, pair: Pair, dt: Optional[float] = None) -> "BufferTrajectory":
        """Write ``pair`` over the oldest slot.

        ``dt`` is the step elapsed since the current ``last`` sample; when
        omitted, the last written step is repeated (1.0 if none exists).
        """
        if dt is None:
            step = self.last_step if self.last_step > 0 else DEFAULT_STEP
        else:
            step = check_step(dt)
        n = self._capacity
        if self._count > 0:
            self.dt[(self._write_index - 1) % n] = step
        self.pairs[self._write_index] = pair
        self.dt[self._write_index] = step
        self._write_index = (self._write_index + 1) % n
        self._count = min(self._count + 1, n)
        return self

    def bufferize(self, trajectory: Curve) -> "BufferTrajectory":
        """Load the samples of ``trajectory`` into the buffer.

        Source pairs are copied. A ``BufferTrajectory`` source contributes its
        written samples only, in logical order.
        """
        source = trajectory.snapshot() if isinstance(trajectory, BufferTrajectory) else trajectory
        size = len(source)
        n = self._capacity
        delta = size - n
        kept = n if delta >= 0 else size
        offset = max(delta, 0)

        self.clear()
        for k in range(kept):
            self.pairs[k] = source.get(k + offset).copy()
        for k in range(kept - 1):
            self.dt[k] = source.step(k + offset)
        self._write_index = 0 if delta >= 0 else size
        self._count = kept
        if kept > 0 and size > 1:
            self.dt[kept - 1] = source.step(size - 2)
        return self

    def snapshot(self) -> Trajectory:
        """Unbounded copy of the written samples, oldest first."""
        n = self._capacity
        start = n - self._count
        pairs = [self.get(k).copy() for k in range(start, n)]
        steps = [self.step(k) for k in range(start, n - 1)]
        return Trajectory(pairs, steps)

    def resize(self, capacity: int) -> "BufferTrajectory":
        """Change the capacity, keeping the newest ``min(old, new)`` samples."""
        source = self.snapshot()
        self._capacity = check_capacity(capacity)
        return self.bufferize(source)

    def clear(self) -> "BufferTrajectory":
        self.pairs = [Pair.zeros() for _ in range(self._capacity)]
        self.dt = np.zeros(self._capacity)
        self._write_index = 0
        self._count = 0
        return self

    def copy(self) -> "BufferTrajectory":
        other = BufferTrajectory(self._capacity)
        other.pairs = [pair.copy() for pair in self.pairs]
        other.dt = self.dt.copy()
        other._write_index = self._write_index
        other._count = self._count
        return other

    @staticmethod
    def zeros(u: Optional[VectorLike] = None, capacity: int = 2, dt: Steps = DEFAULT_STEP) -> "BufferTrajectory":
        return BufferTrajectory(capacity, Trajectory.zeros(u, capacity, dt))

    @staticmethod
    def discrete(positions, dt: Steps = DEFAULT_STEP, origin: Optional[VectorLike] = None,
                 capacity: Optional[int] = None) -> "BufferTrajectory":
        """Buffer holding ``positions`` seen from a fixed ``origin``.

        The capacity defaults to the number of positions.
        """
        trajectory = Trajectory.discrete(positions, dt, origin)
        return BufferTrajectory(capacity if capacity is not None else len(trajectory), trajectory)
