"""N-body stepping for point masses sharing one clock.

This module drives several bodies, each owning its own ``BufferTrajectory``,
with a pairwise acceleration field ``field(state, other, t) -> Vec3``.

Step protocol (order matters to avoid order-dependent bias):
1. Snapshot position and speed of every body into frozen ``BodyState``s
2. Sum the pairwise accelerations of each body over all *other* bodies,
   reading only the snapshots
3. Compute every next position with the explicit two-step scheme from the
   body's own history (Taylor bootstrap while a body has one sample)
4. Commit all next positions into their buffers
5. Advance the shared ``Timer`` once

Steps 3 and 4 are exposed separately (``prepare`` / ``commit``) so callers
can inspect or constrain the proposed states before they are written.

Execution is single-threaded and synchronous; there is no cancellation other
than not calling ``advance``/``iterate`` again. Long runs can be split into
several ``iterate`` calls.
"""

from typing import Callable, Dict, List, Optional, Sequence
import numpy as np
from numpy.typing import NDArray

from pointmass.bodies import Body, BodyState
from pointmass.errors import InvalidArgument
from pointmass.pair import Pair
from pointmass.solver import explicit_step, taylor_start
from pointmass.timer import Timer
from pointmass.vectors import Vec3

PairwiseField = Callable[[BodyState, BodyState, float], Vec3]

# Type aliases
Positions = NDArray[np.float64]  # Shape (N, 3)


class InteractionSolver:
    """Synchronised integration of interacting bodies.

    Parameters
    ----------
    bodies : sequence of Body
        Bodies to integrate. Each trajectory needs a capacity of at least 2
        so that the two-step scheme can read a previous state.
    field : callable
        Pairwise acceleration ``field(state, other, t)`` felt by ``state``
        because of ``other``. It is never called with ``state`` and
        ``other`` being the same body.
    timer : Timer
        Clock shared by all bodies.

    Raises
    ------
    InvalidArgument
        No bodies, or a trajectory of capacity below 2.

    Examples
    --------
    >>> from pointmass.fields import gravity
    >>> sun = Body.create("sun", 1.0, [0, 0, 0], capacity=64)
    >>> earth = Body.create("earth", 1e-6, [1, 0, 0], [0, 1, 0], capacity=64)
    >>> system = InteractionSolver([sun, earth], gravity(1.0), Timer(1e-3))
    >>> positions = system.iterate(100)
    >>> positions.shape
    (2, 3)
    >>> system.timer.idx1
    100
    """

    def __init__(self, bodies: Sequence[Body], field: PairwiseField, timer: Timer):
        if len(bodies) == 0:
            raise InvalidArgument("InteractionSolver needs at least one body")
        for body in bodies:
            if body.trajectory.capacity < 2:
                raise InvalidArgument(
                    f"Trajectory of body '{body.name}' has capacity "
                    f"{body.trajectory.capacity}, two-step integration needs at least 2"
                )
        self.bodies: List[Body] = list(bodies)
        self.field = field
        self.timer = timer

    def __len__(self) -> int:
        return len(self.bodies)

    @property
    def positions(self) -> Positions:
        return np.array([body.position for body in self.bodies])

    @property
    def speeds(self) -> Positions:
        return np.array([body.speed for body in self.bodies])

    def states(self) -> List[BodyState]:
        """Snapshot of every body, taken before any mutation."""
        return [body.snapshot(index) for index, body in enumerate(self.bodies)]

    def accelerations(self, states: Optional[List[BodyState]] = None,
                      t: Optional[float] = None) -> Positions:
        """Net acceleration of every body, read from ``states`` only.

        Parameters
        ----------
        states : list of BodyState, optional
            Snapshot to evaluate (default: a fresh ``states()``).
        t : float, optional
            Evaluation time (default: ``timer.t1``).

        Returns
        -------
        np.ndarray, shape (N, 3)
            ``acc[i] = sum_{j != i} field(states[i], states[j], t)``.
        """
        if states is None:
            states = self.states()
        if t is None:
            t = self.timer.t1
        acc = np.zeros((len(states), 3))
        for state in states:
            for other in states:
                if other.index != state.index:
                    acc[state.index] += self.field(state, other, t)
        return acc

    def prepare(self, dt: Optional[float] = None, t: Optional[float] = None) -> Positions:
        """Next position of every body, without committing anything.

        Returns
        -------
        np.ndarray, shape (N, 3)
            Proposed positions, in the order of ``bodies``.
        """
        dt = self.timer.dt if dt is None else dt
        states = self.states()
        acc = self.accelerations(states, t)
        proposed = np.zeros((len(states), 3))
        for state, body in zip(states, self.bodies):
            a = acc[state.index]
            if body.has_history:
                proposed[state.index] = explicit_step(
                    state.position, body.previous, a, dt, body.trajectory.last_step
                )
            else:
                proposed[state.index] = taylor_start(state.position, state.speed, a, dt)
        return proposed

    def commit(self, positions: Positions, dt: Optional[float] = None) -> None:
        """Append ``positions`` to the trajectories; observers stay where they were."""
        dt = self.timer.dt if dt is None else dt
        if len(positions) != len(self.bodies):
            raise InvalidArgument(
                f"Expected {len(self.bodies)} positions, got {len(positions)}"
            )
        for body, u in zip(self.bodies, positions):
            origin = body.trajectory.last.origin.copy()
            body.trajectory.add(Pair(origin, u), dt)

    def _advance_one(self, dt: float, t: float, idx: int) -> None:
        self.commit(self.prepare(dt, t), dt)

    def step(self) -> Positions:
        """One synchronised step of all bodies; returns the new positions."""
        self.timer.step(self._advance_one)
        return self.positions

    def advance(self, duration: float) -> Positions:
        """Step until ``duration`` is covered (``ceil(duration / dt)`` steps)."""
        self.timer.advance(duration, self._advance_one)
        return self.positions

    def iterate(self, iterations: int) -> Positions:
        """Take exactly ``iterations`` synchronised steps."""
        self.timer.iterate(iterations, self._advance_one)
        return self.positions


def integrate_system(
    system: InteractionSolver,
    n_steps: int,
    save_every: int = 1,
    verbose: bool = False,
    progress_every: Optional[int] = None,
) -> Dict[str, np.ndarray]:
    """
    Run ``n_steps`` synchronised steps and record a sampled history.

    The buffers only keep the last ``capacity`` positions of each body; this
    loop additionally stores every ``save_every``-th state so a whole run can
    be written to disk.

    Parameters
    ----------
    system : InteractionSolver
        Configured system, stepped in place.
    n_steps : int
        Number of steps to take.
    save_every : int
        Record the state every ``save_every`` steps (the initial state is
        always recorded).
    verbose : bool
        Print progress lines.
    progress_every : int, optional
        Steps between progress lines (default: ``n_steps // 10``).

    Returns
    -------
    history : dict
        't' : ndarray, shape (n_saved,)
            Times of the recorded states.
        'x' : ndarray, shape (n_saved, N, 3)
            Positions.
        'v' : ndarray, shape (n_saved, N, 3)
            Speeds (backward differences).
        'M' : ndarray, shape (N,)
            Masses.
    """
    if n_steps < 0:
        raise InvalidArgument(f"n_steps must be non-negative, got {n_steps}")
    if save_every <= 0:
        raise InvalidArgument(f"save_every must be positive, got {save_every}")
    if progress_every is None:
        progress_every = max(n_steps // 10, 1)

    N = len(system)
    n_saved = n_steps // save_every + 1
    times = np.zeros(n_saved)
    positions = np.zeros((n_saved, N, 3))
    speeds = np.zeros((n_saved, N, 3))
    masses = np.array([body.mass for body in system.bodies])

    times[0] = system.timer.t1
    positions[0] = system.positions
    speeds[0] = system.speeds

    if verbose:
        print(f"Starting integration: {n_steps} steps, dt={system.timer.dt:.6e}")
        print(f"  N bodies: {N}")
        print(f"  Save every: {save_every} steps")
        print()

    save_idx = 1
    for step in range(1, n_steps + 1):
        system.step()

        if step % save_every == 0:
            times[save_idx] = system.timer.t1
            positions[save_idx] = system.positions
            speeds[save_idx] = system.speeds
            save_idx += 1

        if verbose and step % progress_every == 0:
            frac = step / n_steps
            print(f"  Step {step:8d}/{n_steps} ({frac:6.1%})  t={system.timer.t1:10.4f}")

    if verbose:
        print()
        print("Integration complete!")
        print()

    return {
        't': times,
        'x': positions,
        'v': speeds,
        'M': masses,
    }
