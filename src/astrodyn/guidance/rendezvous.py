"""
===============================================================================
ASTRODYN - Rendezvous Planner
===============================================================================
Meet a target orbiting the same primary.

Two configurations are supported:

    IN_CIRCULAR_ORBIT -- both orbits circular and coplanar but different:
                         wait for the Hohmann phase alignment, then transfer.
    IN_SAME_ORBIT     -- both objects share one orbit at different phases:
                         fly a phasing orbit from periapsis whose period
                         absorbs the phase lag over N revolutions, then
                         return to the original orbit.

Anything else raises GeometricInfeasibility; matching the plane and the
apsides first is left to the caller.
===============================================================================
"""

import enum
import logging
import math
from typing import Optional

from astrodyn.core.constants import TWO_PI
from astrodyn.core.exceptions import GeometricInfeasibility
from astrodyn.dynamics.kepler import KeplerProblemSolver, UniversalVariableKeplerSolver
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import Body
from astrodyn.guidance.hohmann import HohmannTransferOrbit
from astrodyn.guidance.maneuver import (
    ManeuverTimeSpec,
    OrbitalManeuvers,
    burn,
    current_time,
)

logger = logging.getLogger(__name__)


class RendezvousMethod(enum.Enum):
    IN_CIRCULAR_ORBIT = "in_circular_orbit"
    IN_SAME_ORBIT = "in_same_orbit"


def rendezvous_method(orbit_position: OrbitPosition, target_orbit_position: OrbitPosition) -> RendezvousMethod:
    """
    Classify the chaser/target configuration.

    Raises:
        GeometricInfeasibility: When neither method applies.
    """
    orbit = orbit_position.orbit
    target_orbit = target_orbit_position.orbit
    if orbit.same_orbit(target_orbit):
        return RendezvousMethod.IN_SAME_ORBIT
    if orbit.is_circular and target_orbit.is_circular:
        return RendezvousMethod.IN_CIRCULAR_ORBIT
    raise GeometricInfeasibility(
        "Rendezvous requires two circular orbits or a shared orbit; "
        f"got e={orbit.eccentricity:.6f} and e={target_orbit.eccentricity:.6f}"
    )


def rendezvous_in_circular_orbit(
    body: Body,
    target_orbit_position: OrbitPosition,
    now: Optional[float] = None,
    kepler_solver: Optional[KeplerProblemSolver] = None,
) -> OrbitalManeuvers:
    """
    Hohmann transfer started once the target leads by the alignment angle.

    Raises:
        GeometricInfeasibility: If either orbit is not circular or the orbits
            are not coplanar.
    """
    orbit_position = body.orbit_position()
    orbit = orbit_position.orbit
    target_orbit = target_orbit_position.orbit
    if not (orbit.is_circular and target_orbit.is_circular):
        raise GeometricInfeasibility("Both orbits must be circular")
    if not orbit.same_plane(target_orbit):
        raise GeometricInfeasibility("Both orbits must lie in the same plane")

    wait = HohmannTransferOrbit.time_to_alignment(orbit_position, target_orbit_position)
    if math.isinf(wait):
        raise GeometricInfeasibility("The orbits have the same period and never align")

    logger.debug("Circular rendezvous of %s: first burn in %.1f s", body.name, wait)
    return HohmannTransferOrbit.create(
        body,
        target_orbit.semi_major_axis,
        maneuver_time=ManeuverTimeSpec.time_from_now(wait),
        current_radius=orbit.semi_major_axis,
        now=now,
        kepler_solver=kepler_solver,
    )


def rendezvous_in_same_orbit(
    body: Body,
    target_orbit_position: OrbitPosition,
    now: Optional[float] = None,
    revolutions: int = 1,
    kepler_solver: Optional[KeplerProblemSolver] = None,
) -> OrbitalManeuvers:
    """
    Phasing maneuver for two objects sharing an orbit.

    When the chaser reaches periapsis the target sits at true anomaly dnu,
    i.e. it passed periapsis t_lead = T1 / (2 pi) (E - e sin E) earlier.
    The chaser flies *revolutions* laps of a phasing orbit lasting

        T_total = n T1 - t_lead

    in total, whose semi-major axis and apoapsis follow from its period:

        a2 = (mu (T_total / (2 pi n))^2)^(1/3),   r_a = 2 a2 - r_p

    Both burns happen at periapsis, where only the angular momentum
    changes:  dv = (h2 - h1) / r_p.

    Args:
        body: The chaser.
        target_orbit_position: Target position on the shared orbit.
        now: Absolute current time; defaults to the body's state time.
        revolutions: Number of laps on the phasing orbit.
        kepler_solver: Propagator used to find the target at the first burn.

    Raises:
        GeometricInfeasibility: If the orbits differ, the revolution count is
            not positive, or the phasing orbit would pass through the primary.
    """
    if revolutions < 1:
        raise GeometricInfeasibility(f"At least one phasing revolution is needed, got {revolutions}")

    orbit_position = body.orbit_position()
    orbit = orbit_position.orbit
    target_orbit = target_orbit_position.orbit
    if not orbit.same_orbit(target_orbit):
        raise GeometricInfeasibility("Both objects must share the same orbit")
    if kepler_solver is None:
        kepler_solver = UniversalVariableKeplerSolver()

    primary = body.primary_body
    mu = orbit.standard_gravitational_parameter
    time_to_periapsis = orbit_position.time_to_periapsis()

    target_at_periapsis = target_orbit_position.state_at(kepler_solver, time_to_periapsis, primary.state)
    delta_anomaly = OrbitPosition.from_state(primary, primary.state, target_at_periapsis).true_anomaly

    period = orbit.period
    e = orbit.eccentricity
    E = 2.0 * math.atan(math.sqrt((1.0 - e) / (1.0 + e)) * math.tan(delta_anomaly / 2.0))
    lead_time = (period / TWO_PI) * (E - e * math.sin(E))
    total_time = revolutions * period - lead_time

    phasing_semi_major_axis = (mu * (total_time / (TWO_PI * revolutions)) ** 2) ** (1.0 / 3.0)
    rp = orbit.periapsis
    ra = 2.0 * phasing_semi_major_axis - rp
    if ra <= 0.0:
        raise GeometricInfeasibility(f"Phasing orbit is degenerate (apoapsis {ra:.1f} m)")

    h1 = math.sqrt(orbit.parameter * mu)
    h2 = math.sqrt(2.0 * mu) * math.sqrt(ra * rp / (ra + rp))
    delta_v = (h2 - h1) / rp

    periapsis_state = orbit_position.with_true_anomaly(0.0).calculate_state(primary.state)
    direction = periapsis_state.make_relative(primary.state).prograde

    logger.debug("Phasing rendezvous of %s: dnu=%.6f rad, %d rev, total %.1f s, dv=%.3f m/s",
                 body.name, delta_anomaly, revolutions, total_time, delta_v)
    now = current_time(body, now)
    return OrbitalManeuvers.sequence(
        burn(orbit_position, direction * delta_v, ManeuverTimeSpec.time_from_now(time_to_periapsis), now),
        burn(orbit_position, -direction * delta_v,
             ManeuverTimeSpec.time_from_now(time_to_periapsis + total_time), now),
    )


def rendezvous(
    body: Body,
    target_orbit_position: OrbitPosition,
    now: Optional[float] = None,
    revolutions: int = 1,
    kepler_solver: Optional[KeplerProblemSolver] = None,
) -> OrbitalManeuvers:
    """
    Plan a rendezvous of *body* with the target, choosing the method from the
    two orbits (see :func:`rendezvous_method`).
    """
    method = rendezvous_method(body.orbit_position(), target_orbit_position)
    logger.debug("Rendezvous of %s with method %s", body.name, method.value)
    if method is RendezvousMethod.IN_SAME_ORBIT:
        return rendezvous_in_same_orbit(body, target_orbit_position, now, revolutions, kepler_solver)
    return rendezvous_in_circular_orbit(body, target_orbit_position, now, kepler_solver)
