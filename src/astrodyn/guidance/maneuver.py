"""
===============================================================================
ASTRODYN - Maneuver Model
===============================================================================
The output contract of every planner: an ordered sequence of impulsive burns

    (absolute time, delta-velocity vector)

The executor adds each delta-velocity to the object's velocity exactly once,
at the given time, in the frame it was computed in (the world frame).

ManeuverTimeSpec expresses *when* a burn happens relative to the object's
current orbit (now, next periapsis, next apoapsis, or a fixed delay) and is
resolved to an absolute time by the planners.
===============================================================================
"""

import enum
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Iterable, Optional

import numpy as np

from astrodyn.core.math_utils import frozen_vector, norm


class ManeuverTime(enum.Enum):
    NOW = "now"
    PERIAPSIS = "periapsis"
    APOAPSIS = "apoapsis"
    TIME_FROM_NOW = "time_from_now"


@dataclass(frozen=True)
class ManeuverTimeSpec:
    """When a burn is applied; *value* is only used by TIME_FROM_NOW."""
    type: ManeuverTime
    value: float = 0.0

    @classmethod
    def now(cls) -> 'ManeuverTimeSpec':
        return cls(ManeuverTime.NOW)

    @classmethod
    def periapsis(cls) -> 'ManeuverTimeSpec':
        return cls(ManeuverTime.PERIAPSIS)

    @classmethod
    def apoapsis(cls) -> 'ManeuverTimeSpec':
        return cls(ManeuverTime.APOAPSIS)

    @classmethod
    def time_from_now(cls, time: float) -> 'ManeuverTimeSpec':
        return cls(ManeuverTime.TIME_FROM_NOW, float(time))

    def offset(self, orbit_position) -> float:
        """Seconds from now until the burn for an object at *orbit_position*."""
        if self.type is ManeuverTime.PERIAPSIS:
            return orbit_position.time_to_periapsis()
        if self.type is ManeuverTime.APOAPSIS:
            return orbit_position.time_to_apoapsis()
        if self.type is ManeuverTime.TIME_FROM_NOW:
            return self.value
        return 0.0

    def resolve(self, orbit_position, now: float) -> float:
        """Absolute burn time."""
        return now + self.offset(orbit_position)


@dataclass(frozen=True, eq=False)
class OrbitalManeuver:
    """A single impulsive burn at an absolute time."""
    time: float
    delta_velocity: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'time', float(self.time))
        object.__setattr__(self, 'delta_velocity', frozen_vector(self.delta_velocity))

    @property
    def delta_v(self) -> float:
        """Magnitude of the burn (m/s)."""
        return norm(self.delta_velocity)

    def shifted(self, time: float) -> 'OrbitalManeuver':
        return replace(self, time=self.time + time)

    def __lt__(self, other: 'OrbitalManeuver') -> bool:
        return self.time < other.time

    def __repr__(self) -> str:
        return f"OrbitalManeuver(time={self.time:.3f}, delta_v={self.delta_v:.3f})"


class OrbitalManeuvers(Sequence):
    """Immutable sequence of burns ordered by time (stable for equal times)."""

    def __init__(self, maneuvers: Iterable[OrbitalManeuver] = ()):
        self._maneuvers = tuple(sorted(maneuvers, key=lambda maneuver: maneuver.time))

    @classmethod
    def single(cls, maneuver: OrbitalManeuver) -> 'OrbitalManeuvers':
        return cls((maneuver,))

    @classmethod
    def sequence(cls, *maneuvers: OrbitalManeuver) -> 'OrbitalManeuvers':
        return cls(maneuvers)

    def __getitem__(self, index):
        return self._maneuvers[index]

    def __len__(self) -> int:
        return len(self._maneuvers)

    @property
    def total_delta_v(self) -> float:
        return sum(maneuver.delta_v for maneuver in self._maneuvers)

    def shifted(self, time: float) -> 'OrbitalManeuvers':
        return OrbitalManeuvers(maneuver.shifted(time) for maneuver in self._maneuvers)

    def __repr__(self) -> str:
        return f"OrbitalManeuvers({list(self._maneuvers)!r})"


def burn(
    orbit_position,
    delta_velocity: np.ndarray,
    maneuver_time: ManeuverTimeSpec,
    now: float,
) -> OrbitalManeuver:
    """Burn *delta_velocity* at the time *maneuver_time* resolves to."""
    return OrbitalManeuver(maneuver_time.resolve(orbit_position, now), delta_velocity)


def current_time(body, now: Optional[float] = None) -> float:
    """Planner clock: *now* when given, otherwise the body's state time."""
    return body.state.time if now is None else float(now)
