"""Explicit two-step integrator for d²u/dt² = f(u, t).

The scheme only uses positions. Given the current and previous states,

    u(n+1) = 2 u(n) - u(n-1) + f(u(n), t(n)) dt²

which is the central-difference approximation of the second derivative.
With a step ``dt`` that differs from the previous step ``dt_prev`` the
same three-point approximation reads

    u(n+1) = u(n) + (dt / dt_prev) (u(n) - u(n-1)) + f(u(n), t(n)) dt (dt + dt_prev) / 2

and reduces to the formula above when ``dt == dt_prev``.

Bootstrap
---------
Two states are required to take a step. An initial (position, velocity)
couple is turned into ``(u0, u1)`` with a second-order Taylor expansion:

    u1 = u0 + v0 dt + f(u0, t0) dt² / 2

Numerical notes
---------------
- Local truncation error per step is O(dt³).
- Global error over a fixed duration behaves as O(dt) (exp(L t) - 1) / L,
  with L the Lipschitz constant of f in u.
- The method is conditionally stable: an oscillatory field of pulsation w
  requires w dt < 2.
- Nothing here intercepts NaN/Inf coming from a singular field.
"""

from typing import Callable, Optional, Sequence, Union
import numpy as np
from numpy.typing import NDArray

from pointmass.buffer import BufferTrajectory
from pointmass.errors import InvalidArgument, InvalidStep
from pointmass.pair import Pair
from pointmass.timer import Timer
from pointmass.trajectory import Trajectory, expand_steps
from pointmass.vectors import Vec3, VectorLike, vec3, zeros

Field = Callable[[Vec3, float], Vec3]


def explicit_step(u1: Vec3, u0: Vec3, a: Vec3, dt: float, dt_prev: Optional[float] = None) -> Vec3:
    """Next state from the current ``u1``, previous ``u0`` and acceleration ``a``.

    Raises
    ------
    InvalidStep
        If ``dt`` or ``dt_prev`` is not positive.
    """
    if dt_prev is None:
        dt_prev = dt
    if not dt > 0 or not dt_prev > 0:
        raise InvalidStep(f"Time steps must be positive, got dt={dt}, dt_prev={dt_prev}")
    if dt == dt_prev:
        return 2.0 * u1 - u0 + a * (dt * dt)
    return u1 + (dt / dt_prev) * (u1 - u0) + a * (0.5 * dt * (dt + dt_prev))


def taylor_start(u0: Vec3, v0: Vec3, a: Vec3, dt: float) -> Vec3:
    """Second-order Taylor expansion ``u0 + v0 dt + a dt² / 2``."""
    if not dt > 0:
        raise InvalidStep(f"Time step must be positive, got dt={dt}")
    return u0 + v0 * dt + a * (0.5 * dt * dt)


class Solver:
    """Single-body solver for d²u/dt² = f(u, t).

    Parameters
    ----------
    field : callable
        Acceleration field ``f(u, t) -> Vec3``.
    dt : float
        Default step, also the step of the solver's timer.
    timer : Timer, optional
        Clock used by ``advance`` and ``iterate``, reset by ``initial_buffer``.
        A new ``Timer(dt)`` is created when omitted; a given timer keeps its
        own step.

    Examples
    --------
    >>> solver = Solver(lambda u, t: np.array([0.0, 0.0, -9.81]), dt=0.1)
    >>> u = solver.solve([0, 0, 0], [1, 0, 0], count=11)
    >>> u.shape
    (11, 3)
    >>> np.allclose(u[-1], [1.0, 0.0, -4.905])
    True
    """

    def __init__(self, field: Optional[Field] = None, dt: float = 1.0, timer: Optional[Timer] = None):
        self.field = field if field is not None else (lambda u, t: zeros())
        self.timer = timer if timer is not None else Timer(dt)

    @property
    def dt(self) -> float:
        return self.timer.dt

    @dt.setter
    def dt(self, new_dt: float) -> None:
        self.timer.dt = new_dt

    def step(self, u1: VectorLike, u0: VectorLike, t: float = 0.0,
             dt: Optional[float] = None, dt_prev: Optional[float] = None) -> Vec3:
        """Next state given current ``u1`` and previous ``u0``.

        Parameters
        ----------
        u1, u0 : array_like, shape (3,)
            Current and previous states.
        t : float
            Time of ``u1``.
        dt : float, optional
            Step to take (default: ``self.dt``).
        dt_prev : float, optional
            Step that separated ``u0`` from ``u1`` (default: ``dt``).
        """
        dt = self.dt if dt is None else dt
        u1 = vec3(u1)
        return explicit_step(u1, vec3(u0), self.field(u1, t), dt, dt_prev)

    def initial_transform(self, u0: VectorLike, v0: VectorLike,
                          dt: Optional[float] = None, t: float = 0.0) -> Vec3:
        """Position one step after ``(u0, v0)``: ``u0 + v0 dt + f(u0, t) dt² / 2``."""
        dt = self.dt if dt is None else dt
        u0 = vec3(u0)
        return taylor_start(u0, vec3(v0), self.field(u0, t), dt)

    def solve(self, u0: VectorLike, v0: VectorLike, count: int,
              dt: Union[float, Sequence[float], None] = None) -> NDArray[np.float64]:
        """Solve from initial position and velocity.

        Parameters
        ----------
        u0, v0 : array_like, shape (3,)
            Initial position and velocity at t = 0.
        count : int
            Number of states to produce, including ``u0``.
        dt : float or sequence of float, optional
            Constant step, or ``count - 1`` successive steps.

        Returns
        -------
        np.ndarray, shape (count, 3)
            Successive states.

        Raises
        ------
        InvalidArgument
            Negative ``count`` or a step sequence of the wrong length.
        """
        if count < 0:
            raise InvalidArgument(f"count must be non-negative, got {count}")
        steps = expand_steps(self.dt if dt is None else dt, count - 1)
        u = np.zeros((count, 3))
        if count == 0:
            return u
        u[0] = vec3(u0)
        if count == 1:
            return u
        u[1] = self.initial_transform(u[0], v0, steps[0])
        t = steps[0]
        for i in range(2, count):
            u[i] = self.step(u[i - 1], u[i - 2], t, steps[i - 1], steps[i - 2])
            t += steps[i - 1]
        return u

    def solve_max(self, u0: VectorLike, v0: VectorLike, tmax: float,
                  dt: Optional[float] = None) -> NDArray[np.float64]:
        """Solve with a constant step over ``tmax``: ``floor(tmax / dt)`` states."""
        dt = self.dt if dt is None else dt
        return self.solve(u0, v0, int(np.floor(tmax / dt)), dt)

    def trajectory(self, u0: VectorLike, v0: VectorLike, count: int,
                   dt: Union[float, Sequence[float], None] = None, origin: Optional[VectorLike] = None) -> Trajectory:
        """Solution of ``solve`` seen from a fixed ``origin``."""
        dt = self.dt if dt is None else dt
        return Trajectory.discrete(self.solve(u0, v0, count, dt), dt, origin)

    def initial_buffer(self, u0: VectorLike, v0: VectorLike, capacity: int,
                       dt: Optional[float] = None, origin: Optional[VectorLike] = None) -> BufferTrajectory:
        """Buffer holding ``u0`` and the bootstrapped next state, ready for ``buffer``.

        The solver's timer is reset to the time of the bootstrapped state,
        ``dt``, so that ``iterate`` and ``advance`` evaluate the field at the
        time of ``trajectory.last``.
        """
        dt = self.dt if dt is None else dt
        buf = BufferTrajectory.discrete(self.solve(u0, v0, 2, dt), dt, origin, capacity)
        self.timer.reset(dt)
        return buf

    def buffer(self, trajectory: BufferTrajectory, dt: Optional[float] = None,
               origin: Optional[VectorLike] = None, t: Optional[float] = None) -> BufferTrajectory:
        """Append the next state to ``trajectory``.

        The new state is computed from the absolute positions of ``last`` and
        ``nexto``; the observer position is not part of the motion.

        Parameters
        ----------
        trajectory : BufferTrajectory
            History of the mobile, with at least two samples written.
        dt : float, optional
            Step to take (default: ``self.dt``).
        origin : array_like, optional
            Observer position of the new sample (default: ``last.origin``).
        t : float, optional
            Time of ``last`` (default: ``trajectory.duration()``).

        Returns
        -------
        BufferTrajectory
            ``trajectory`` itself.
        """
        if trajectory.count < 2:
            raise InvalidArgument(
                f"Buffer needs two written samples to step, has {trajectory.count}"
            )
        dt = self.dt if dt is None else dt
        last = trajectory.last
        origin = last.origin.copy() if origin is None else vec3(origin)
        t = trajectory.duration() if t is None else t
        u2 = self.step(last.position, trajectory.nexto.position, t, dt, trajectory.last_step)
        return trajectory.add(Pair(origin, u2), dt)

    def iterate(self, trajectory: BufferTrajectory, iterations: int) -> BufferTrajectory:
        """Drive ``buffer`` ``iterations`` times through the solver's timer.

        ``timer.t1`` is taken as the time of ``trajectory.last``.
        """
        self.timer.iterate(iterations, lambda dt, t, idx: self.buffer(trajectory, dt, t=t))
        return trajectory

    def advance(self, trajectory: BufferTrajectory, duration: float) -> BufferTrajectory:
        """Drive ``buffer`` until ``duration`` is covered (``ceil(duration / dt)`` steps)."""
        self.timer.advance(duration, lambda dt, t, idx: self.buffer(trajectory, dt, t=t))
        return trajectory
