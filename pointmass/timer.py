"""Simulation clock shared by solvers.

The timer only does bookkeeping: current and previous time, step size and
iteration counters. Physical content stays in the solvers, which hand an
``action(dt, t, idx)`` callback to ``step``, ``advance`` or ``iterate``. The
callback is invoked with the clock state *before* the step is taken.

Several bodies can share one ``Timer`` so they are always integrated at the
same instants.
"""

import math
from typing import Callable, Optional

from pointmass.errors import InvalidArgument
from pointmass.trajectory import check_step

TimerAction = Callable[[float, float, int], None]

# Relative slack on duration / dt before rounding the number of steps up.
STEP_COUNT_RTOL = 1e-9


class Timer:
    """Clock advancing by steps of ``dt``.

    Attributes
    ----------
    dt : float
        Step size, positive. May be changed between steps; each step uses
        the value in effect when it is taken.
    t0, t1 : float
        Previous and current time.
    idx0, idx1 : int
        Previous and current iteration count.

    Examples
    --------
    >>> timer = Timer(0.5)
    >>> timer.iterate(3)
    3
    >>> timer.t0, timer.t1, timer.idx1
    (1.0, 1.5, 3)
    """

    def __init__(self, dt: float, t: float = 0.0):
        self._dt = check_step(dt)
        self.reset(t)

    @property
    def dt(self) -> float:
        return self._dt

    @dt.setter
    def dt(self, new_dt: float) -> None:
        self._dt = check_step(new_dt)

    @property
    def t0(self) -> float:
        return self._t0

    @property
    def t1(self) -> float:
        return self._t1

    @property
    def idx0(self) -> int:
        return self._idx0

    @property
    def idx1(self) -> int:
        return self._idx1

    def reset(self, t: float = 0.0) -> None:
        """Set both time marks to ``t`` and the counters to ``floor(t / dt)``."""
        self._t0 = float(t)
        self._t1 = float(t)
        self._idx0 = int(math.floor(t / self._dt))
        self._idx1 = self._idx0

    def step(self, action: Optional[TimerAction] = None) -> None:
        dt = self._dt
        if action is not None:
            action(dt, self._t1, self._idx1)
        self._t0 = self._t1
        self._t1 = self._t1 + dt
        self._idx0 = self._idx1
        self._idx1 = self._idx1 + 1

    def steps_for(self, duration: float) -> int:
        """Number of steps needed to cover ``duration``: ``ceil(duration / dt)``."""
        if duration < 0:
            raise InvalidArgument(f"Duration must be non-negative, got {duration}")
        ratio = duration / self._dt
        return max(int(math.ceil(ratio - STEP_COUNT_RTOL * max(ratio, 1.0))), 0)

    def advance(self, duration: float, action: Optional[TimerAction] = None) -> int:
        """Step until ``duration`` is covered; returns the number of steps."""
        iterations = self.steps_for(duration)
        return self.iterate(iterations, action)

    def iterate(self, iterations: int, action: Optional[TimerAction] = None) -> int:
        """Take exactly ``iterations`` steps; returns ``iterations``."""
        if iterations < 0:
            raise InvalidArgument(f"Number of iterations must be non-negative, got {iterations}")
        for _ in range(int(iterations)):
            self.step(action)
        return int(iterations)

    def __repr__(self) -> str:
        return (f"Timer(dt={self._dt!r}, t0={self._t0!r}, t1={self._t1!r}, "
                f"idx0={self._idx0!r}, idx1={self._idx1!r})")
