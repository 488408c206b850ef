"""
===============================================================================
ASTRODYN - Hohmann Transfer
===============================================================================
Two-impulse transfer between coplanar circular orbits along an ellipse
tangent to both.

Equations (r1 = current radius, r2 = target radius):
    dv1   = sqrt(mu/r1) (sqrt(2 r2 / (r1 + r2)) - 1)
    dv2   = sqrt(mu/r2) (1 - sqrt(2 r1 / (r1 + r2)))
    t_coast = pi sqrt((r1 + r2)^3 / (8 mu))

Both burns are signed: positive along the velocity at the burn (raising),
negative when lowering.

Phase alignment for a rendezvous: the target must lead the chaser by
    alpha = pi (1 - sqrt((r1/r2 + 1)^3) / (2 sqrt(2)))
at the first burn, so that both arrive at the far apsis together.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from astrodyn.core.constants import PI
from astrodyn.core.exceptions import GeometricInfeasibility
from astrodyn.core.math_utils import clamp_angle, normalized
from astrodyn.dynamics.kepler import (
    KeplerProblemSolver,
    UniversalVariableKeplerSolver,
    propagate_with_primary,
)
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import Body
from astrodyn.guidance.maneuver import (
    ManeuverTimeSpec,
    OrbitalManeuver,
    OrbitalManeuvers,
    current_time,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HohmannBurns:
    """Signed burn magnitudes (m/s) and the coast time (s) between them."""
    first_burn: float
    second_burn: float
    coast_time: float

    @property
    def total(self) -> float:
        return abs(self.first_burn) + abs(self.second_burn)


def _true_longitude(orbit_position: OrbitPosition) -> float:
    orbit = orbit_position.orbit
    omega = 0.0 if orbit.is_circular else orbit.argument_of_periapsis
    return clamp_angle(orbit.longitude_of_ascending_node + omega + orbit_position.true_anomaly)


class HohmannTransferOrbit:
    """
    Hohmann transfer calculations.

    Stateless: all inputs are passed as arguments and results are returned
    directly.

    Typical usage:
        burns = HohmannTransferOrbit.calculate_burn(mu, 7000e3, 42164e3)
        maneuvers = HohmannTransferOrbit.create(spacecraft, 42164e3)
    """

    @staticmethod
    def calculate_burn(mu: float, current_radius: float, new_radius: float) -> HohmannBurns:
        """
        Burns and coast time of a Hohmann transfer.

        Args:
            mu: Gravitational parameter of the central body (m^3/s^2).
            current_radius: Radius of the initial circular orbit (m).
            new_radius: Radius of the final circular orbit (m).

        Returns:
            HohmannBurns with signed burns and the coast time.
        """
        r1, r2 = current_radius, new_radius
        first_burn = math.sqrt(mu / r1) * (math.sqrt(2.0 * r2 / (r1 + r2)) - 1.0)
        second_burn = math.sqrt(mu / r2) * (1.0 - math.sqrt(2.0 * r1 / (r1 + r2)))
        coast_time = PI * math.sqrt((r1 + r2) ** 3 / (8.0 * mu))

        logger.debug(
            "Hohmann transfer: r1=%.0f m, r2=%.0f m, dv1=%.1f m/s, dv2=%.1f m/s, coast=%.0f s",
            r1, r2, first_burn, second_burn, coast_time,
        )
        return HohmannBurns(first_burn, second_burn, coast_time)

    @staticmethod
    def alignment_angle(current_radius: float, new_radius: float) -> float:
        """Lead angle (rad) of the target over the chaser at the first burn."""
        ratio = current_radius / new_radius + 1.0
        return PI * (1.0 - math.sqrt(ratio ** 3) / (2.0 * math.sqrt(2.0)))

    @staticmethod
    def time_to_alignment(orbit_position: OrbitPosition, target_orbit_position: OrbitPosition) -> float:
        """
        Time until the target leads by the Hohmann alignment angle.

        Both orbits are taken as circular and coplanar; positions are compared
        by true longitude.  The phase closes at |w1 - w2| with
        w = sqrt(mu / r^3); the wait is always in [0, synodic period).
        """
        r1 = orbit_position.orbit.semi_major_axis
        r2 = target_orbit_position.orbit.semi_major_axis
        mu = orbit_position.orbit.standard_gravitational_parameter
        alpha = HohmannTransferOrbit.alignment_angle(r1, r2)

        longitude = _true_longitude(orbit_position)
        target_longitude = _true_longitude(target_orbit_position)
        if r2 > r1:
            phase = clamp_angle(target_longitude - longitude - alpha)
        else:
            phase = clamp_angle(longitude - target_longitude + alpha)

        relative_rate = abs(math.sqrt(mu / r1 ** 3) - math.sqrt(mu / r2 ** 3))
        if relative_rate == 0.0:
            return math.inf
        return phase / relative_rate

    @staticmethod
    def create(
        body: Body,
        new_radius: float,
        maneuver_time: Optional[ManeuverTimeSpec] = None,
        current_radius: Optional[float] = None,
        now: Optional[float] = None,
        kepler_solver: Optional[KeplerProblemSolver] = None,
    ) -> OrbitalManeuvers:
        """
        Two timed burns taking *body* from its circular orbit to radius *new_radius*.

        The first burn is along the velocity (relative to the primary) at the
        burn time; the second, one coast time later, along the opposite
        direction, which is the velocity direction at the far apsis.

        Args:
            body: The maneuvering object; must be on a circular orbit.
            new_radius: Target orbit radius (m).
            maneuver_time: When to apply the first burn (default: now).
            current_radius: Radius used for the burn calculation; defaults to
                the current distance from the primary.
            now: Absolute current time; defaults to the body's state time.
            kepler_solver: Propagator used to find the burn state.

        Raises:
            GeometricInfeasibility: If the current orbit is not circular.
        """
        orbit_position = body.orbit_position()
        orbit = orbit_position.orbit
        if not orbit.is_circular:
            raise GeometricInfeasibility(f"The orbit is not circular (e = {orbit.eccentricity})")

        if maneuver_time is None:
            maneuver_time = ManeuverTimeSpec.now()
        if kepler_solver is None:
            kepler_solver = UniversalVariableKeplerSolver()
        if current_radius is None:
            current_radius = body.state.distance(body.primary_body.state)

        offset = maneuver_time.offset(orbit_position)
        burn_state, burn_primary_state = propagate_with_primary(
            kepler_solver, body.config, body.state, orbit, offset,
        )
        direction = normalized(burn_state.velocity - burn_primary_state.velocity)

        burns = HohmannTransferOrbit.calculate_burn(
            orbit.standard_gravitational_parameter, current_radius, new_radius,
        )
        burn_time = current_time(body, now) + offset
        return OrbitalManeuvers.sequence(
            OrbitalManeuver(burn_time, direction * burns.first_burn),
            OrbitalManeuver(burn_time + burns.coast_time, -direction * burns.second_burn),
        )
