"""
===============================================================================
ASTRODYN - State and Body Model
===============================================================================
Value types shared by every solver and planner.

    ObjectState  -- immutable kinematic snapshot (time, position, velocity,
                    rotation, impact flag).  Every operation returns a new
                    state; arrays are stored read-only.
    ObjectConfig -- immutable physical configuration (mass, rotation, radius).
    Body         -- a named object in the primary-body tree.  A body without
                    a primary is the object of reference (e.g. the Sun).

States are either absolute (world frame) or explicitly made relative to a
primary with :meth:`ObjectState.make_relative`; the two are never mixed
implicitly.
===============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import Iterator, Optional

import numpy as np

from astrodyn.core.constants import GRAVITATIONAL_CONSTANT, TWO_PI, WORLD_UP
from astrodyn.core.math_utils import clamp_angle, frozen_vector, norm, normalized
from astrodyn.dynamics.formulas import (
    normal_direction,
    prograde_direction,
    radial_direction,
)


# =============================================================================
# OBJECT STATE
# =============================================================================

@dataclass(frozen=True, eq=False)
class ObjectState:
    """
    Snapshot of an object's kinematic state at a single instant.

    Attributes
    ----------
    time : float
        Simulation time (s) at which this state is valid.
    position : np.ndarray
        3-element position vector (m).
    velocity : np.ndarray
        3-element velocity vector (m/s).
    rotation : float
        Rotation angle about the object's own axis (rad).
    has_impacted : bool
        True when the object rests on the surface of its primary body.
    """
    time: float = 0.0
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: float = 0.0
    has_impacted: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'time', float(self.time))
        object.__setattr__(self, 'position', frozen_vector(self.position))
        object.__setattr__(self, 'velocity', frozen_vector(self.velocity))
        object.__setattr__(self, 'rotation', float(self.rotation))
        object.__setattr__(self, 'has_impacted', bool(self.has_impacted))

    # ----------------------------------------------------------------
    # Local orbital frame
    # ----------------------------------------------------------------
    @property
    def prograde(self) -> np.ndarray:
        return prograde_direction(self.velocity)

    @property
    def retrograde(self) -> np.ndarray:
        return -self.prograde

    @property
    def radial(self) -> np.ndarray:
        return radial_direction(self.prograde)

    @property
    def normal(self) -> np.ndarray:
        return normal_direction(self.prograde)

    @property
    def speed(self) -> float:
        return norm(self.velocity)

    # ----------------------------------------------------------------
    # Derived states
    # ----------------------------------------------------------------
    def with_time(self, time: float) -> 'ObjectState':
        return replace(self, time=time)

    def with_rotation(self, rotation: float) -> 'ObjectState':
        return replace(self, rotation=rotation)

    def with_impacted(self, has_impacted: bool = True) -> 'ObjectState':
        return replace(self, has_impacted=has_impacted)

    def with_velocity(self, velocity: np.ndarray) -> 'ObjectState':
        return replace(self, velocity=velocity)

    def add(self, position=None, velocity=None) -> 'ObjectState':
        """Return a state with *position* and/or *velocity* added."""
        new_position = self.position if position is None else self.position + np.asarray(position)
        new_velocity = self.velocity if velocity is None else self.velocity + np.asarray(velocity)
        return replace(self, position=new_position, velocity=new_velocity)

    def make_relative(self, primary_state: 'ObjectState') -> 'ObjectState':
        """Express this state relative to *primary_state*."""
        return replace(
            self,
            position=self.position - primary_state.position,
            velocity=self.velocity - primary_state.velocity,
        )

    def make_absolute(self, primary_state: 'ObjectState') -> 'ObjectState':
        """Inverse of :meth:`make_relative`."""
        return replace(
            self,
            position=self.position + primary_state.position,
            velocity=self.velocity + primary_state.velocity,
        )

    def swap_reference_frame(self, old_primary_state: 'ObjectState', new_primary_state: 'ObjectState') -> 'ObjectState':
        """Keep the offset from the primary while the primary moves between two states."""
        return replace(
            self,
            position=self.position - old_primary_state.position + new_primary_state.position,
            velocity=self.velocity - old_primary_state.velocity + new_primary_state.velocity,
        )

    def distance(self, other: 'ObjectState') -> float:
        return norm(self.position - other.position)

    def __repr__(self) -> str:
        return (f"ObjectState(time={self.time:.3f}, position={self.position.tolist()}, "
                f"velocity={self.velocity.tolist()}, rotation={self.rotation:.6f}, "
                f"has_impacted={self.has_impacted})")


# =============================================================================
# OBJECT CONFIGURATION
# =============================================================================

@dataclass(frozen=True, eq=False)
class ObjectConfig:
    """
    Physical configuration of an object.

    Attributes
    ----------
    mass : float
        Mass (kg).
    rotational_period : float
        Sidereal rotation period (s); 0 for a non-rotating object, negative
        for retrograde rotation.
    axis_of_rotation : np.ndarray
        Unit rotation axis, world frame.  Defaults to world up.
    radius : float
        Physical radius (m); 0 when the object is treated as a point.
    """
    mass: float
    rotational_period: float = 0.0
    axis_of_rotation: np.ndarray = field(default_factory=lambda: WORLD_UP.copy())
    radius: float = 0.0

    def __post_init__(self):
        if self.mass < 0:
            raise ValueError(f"Mass cannot be negative, got {self.mass}")
        if self.radius < 0:
            raise ValueError(f"Radius cannot be negative, got {self.radius}")
        object.__setattr__(self, 'mass', float(self.mass))
        object.__setattr__(self, 'rotational_period', float(self.rotational_period))
        object.__setattr__(self, 'axis_of_rotation', frozen_vector(normalized(self.axis_of_rotation)))
        object.__setattr__(self, 'radius', float(self.radius))

    @property
    def standard_gravitational_parameter(self) -> float:
        """mu = G m (m^3/s^2)."""
        return self.mass * GRAVITATIONAL_CONSTANT

    @property
    def rotational_speed(self) -> float:
        """Angular rate of the own rotation (rad/s)."""
        if self.rotational_period == 0.0:
            return 0.0
        return TWO_PI / self.rotational_period

    @property
    def has_radius(self) -> bool:
        return self.radius > 0.0

    def rotation_after(self, rotation: float, time: float) -> float:
        """Own rotation angle after *time* seconds."""
        if self.rotational_period == 0.0:
            return rotation
        return clamp_angle(rotation + self.rotational_speed * time)

    @classmethod
    def from_gravitational_parameter(cls, mu: float, **kwargs) -> 'ObjectConfig':
        """Configuration whose mass reproduces the given mu."""
        return cls(mass=mu / GRAVITATIONAL_CONSTANT, **kwargs)


EMPTY_CONFIG = ObjectConfig(mass=0.0)


# =============================================================================
# BODY
# =============================================================================

@dataclass(eq=False)
class Body:
    """
    A named object in the primary-body tree.

    The engine only reads bodies.  The caller's propagation step is the sole
    owner of :attr:`state` and rebinds it as simulation time advances.

    Attributes
    ----------
    name : str
        Display name, also used by the body catalog.
    config : ObjectConfig
        Physical configuration.
    state : ObjectState
        Current absolute state.
    primary_body : Body or None
        The body this one orbits.  None marks the object of reference.
    """
    name: str
    config: ObjectConfig
    state: ObjectState = field(default_factory=ObjectState)
    primary_body: Optional['Body'] = None

    def __post_init__(self):
        for ancestor in self.ancestors():
            if ancestor is self:
                raise ValueError(f"Body '{self.name}' cannot orbit itself")

    @property
    def is_object_of_reference(self) -> bool:
        return self.primary_body is None

    @property
    def mass(self) -> float:
        return self.config.mass

    @property
    def radius(self) -> float:
        return self.config.radius

    @property
    def has_radius(self) -> bool:
        return self.config.has_radius

    @property
    def standard_gravitational_parameter(self) -> float:
        return self.config.standard_gravitational_parameter

    def ancestors(self) -> Iterator['Body']:
        """Primary, its primary, ... up to the object of reference."""
        body = self.primary_body
        while body is not None:
            yield body
            body = body.primary_body

    def orbit_position(self):
        """Current :class:`~astrodyn.dynamics.orbit.OrbitPosition` around the primary."""
        from astrodyn.dynamics.orbit import OrbitPosition
        return OrbitPosition.from_body(self)

    def orbit(self):
        return self.orbit_position().orbit

    def altitude(self, position: np.ndarray) -> float:
        return norm(np.asarray(position) - self.state.position) - self.radius

    def __repr__(self) -> str:
        primary = self.primary_body.name if self.primary_body is not None else None
        return f"Body(name={self.name!r}, mass={self.mass:.6g}, primary={primary!r})"


def make_body(
    name: str,
    mu: float,
    radius: float = 0.0,
    state: Optional[ObjectState] = None,
    primary_body: Optional[Body] = None,
    rotational_period: float = 0.0,
) -> Body:
    """Shorthand for a body defined by its gravitational parameter."""
    config = ObjectConfig.from_gravitational_parameter(
        mu, rotational_period=rotational_period, radius=radius,
    )
    return Body(name, config, state if state is not None else ObjectState(), primary_body)

