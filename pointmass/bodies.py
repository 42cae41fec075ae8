"""Body dataclass for point masses with a bounded trajectory history.

Each body owns:
- a name and an inertial mass
- a ``BufferTrajectory`` holding its last positions
- an initial velocity, used until the buffer holds two samples
- an opaque ``data`` dict for caller metadata (charge, color, ...)

Position and speed are derived from the buffer: the position is the newest
sample, the speed the backward difference of the two newest samples.

``BodyState`` is the frozen snapshot of a body handed to pairwise
acceleration fields. Snapshots are taken for every body before any of them
is updated, so a field never sees a partially stepped world.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import numpy as np

from pointmass.buffer import BufferTrajectory
from pointmass.errors import InvalidArgument
from pointmass.pair import Pair
from pointmass.trajectory import Trajectory
from pointmass.vectors import Vec3, VectorLike, vec3, zeros


@dataclass(frozen=True, eq=False)
class BodyState:
    """Read-only snapshot of a body at the beginning of a step.

    Attributes
    ----------
    name : str
        Body identifier.
    mass : float
        Inertial mass.
    position : np.ndarray
        Absolute position, shape (3,), not writeable.
    speed : np.ndarray
        Velocity, shape (3,), not writeable.
    index : int
        Rank of the body in its solver.
    data : dict
        Metadata of the body (shared, not copied).
    """

    name: str
    mass: float
    position: Vec3
    speed: Vec3
    index: int = 0
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class Body:
    """A point mass and its trajectory history.

    Attributes
    ----------
    name : str
        Identifier for this body (e.g., "Sun", "bob").
    mass : float
        Inertial mass, must be positive.
    trajectory : BufferTrajectory
        History of the body, newest sample is the current position.
    velocity : np.ndarray
        Initial velocity, shape (3,). Only used while the trajectory holds
        fewer than two samples.
    data : dict
        Opaque metadata, available to fields through ``BodyState.data``.

    Examples
    --------
    >>> body = Body.create("probe", 2.0, position=[1, 0, 0], velocity=[0, 3, 0], capacity=16)
    >>> body.position
    array([1., 0., 0.])
    >>> body.speed
    array([0., 3., 0.])
    >>> body.kinetic_energy
    9.0
    """

    name: str
    mass: float
    trajectory: BufferTrajectory
    velocity: Vec3 = field(default_factory=zeros)
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.velocity = vec3(self.velocity)
        if not self.mass > 0:
            raise InvalidArgument(f"Mass of body '{self.name}' must be positive, got {self.mass}")
        if self.trajectory.count == 0:
            raise InvalidArgument(f"Trajectory of body '{self.name}' holds no sample")

    @classmethod
    def create(cls, name: str, mass: float, position: VectorLike,
               velocity: Optional[VectorLike] = None, capacity: int = 2,
               origin: Optional[VectorLike] = None, data: Optional[Dict[str, Any]] = None) -> "Body":
        """Body at ``position`` with a buffer of ``capacity`` samples."""
        origin = zeros() if origin is None else vec3(origin)
        trajectory = BufferTrajectory(capacity, Trajectory([Pair(origin, position)]))
        return cls(
            name=name,
            mass=float(mass),
            trajectory=trajectory,
            velocity=zeros() if velocity is None else velocity,
            data=dict(data) if data else {},
        )

    @property
    def position(self) -> Vec3:
        """Newest absolute position."""
        return self.trajectory.last.position.copy()

    @property
    def previous(self) -> Vec3:
        """Absolute position one step before ``position``."""
        return self.trajectory.nexto.position.copy()

    @property
    def has_history(self) -> bool:
        """True once two samples are available to the two-step scheme."""
        return self.trajectory.count >= 2

    @property
    def speed(self) -> Vec3:
        """Backward difference of the two newest positions.

        Falls back to the initial velocity while the trajectory holds a
        single sample.
        """
        if not self.has_history:
            return self.velocity.copy()
        return (self.position - self.previous) / self.trajectory.last_step

    @property
    def kinetic_energy(self) -> float:
        v = self.speed
        return 0.5 * self.mass * float(np.dot(v, v))

    @property
    def momentum(self) -> Vec3:
        return self.mass * self.speed

    def snapshot(self, index: int = 0) -> BodyState:
        """Frozen copy of the current state."""
        position = self.position
        speed = self.speed
        position.setflags(write=False)
        speed.setflags(write=False)
        return BodyState(self.name, self.mass, position, speed, index, self.data)

    def __str__(self) -> str:
        x, v = self.position, self.speed
        lines = [f"Body '{self.name}': mass={self.mass:.3e}"]
        lines.append(f"  x = [{x[0]:.3e}, {x[1]:.3e}, {x[2]:.3e}]")
        lines.append(f"  v = [{v[0]:.3e}, {v[1]:.3e}, {v[2]:.3e}]")
        lines.append(f"  samples = {self.trajectory.count}/{self.trajectory.capacity}")
        return "\n".join(lines)
