"""
===============================================================================
ASTRODYN - Basic Single-Burn Maneuvers
===============================================================================
Closed-form single-impulse changes of one orbital element:

    change_periapsis    -- burn at apoapsis, new periapsis radius
    change_apoapsis     -- burn at periapsis, new apoapsis radius
    change_inclination  -- burn at a node, new inclination

Each planner evaluates the current orbit and the altered orbit at the same
point and returns the velocity difference there as a single burn.
===============================================================================
"""

import logging
import math
from typing import Optional

from astrodyn.core.constants import PI
from astrodyn.core.exceptions import GeometricInfeasibility
from astrodyn.core.math_utils import clamp_angle
from astrodyn.dynamics.formulas import parameter_from_semi_major_axis
from astrodyn.dynamics.orbit import Orbit
from astrodyn.dynamics.state import Body
from astrodyn.guidance.maneuver import ManeuverTimeSpec, OrbitalManeuvers, burn, current_time

logger = logging.getLogger(__name__)


def _apsis_change_orbit(orbit: Orbit, periapsis: float, apoapsis: float) -> Orbit:
    """
    Orbit with the given apsides and the orientation of *orbit*.

        a = (r_p + r_a) / 2
        e = (r_a - r_p) / (r_a + r_p)
    """
    semi_major_axis = 0.5 * (periapsis + apoapsis)
    eccentricity = (apoapsis - periapsis) / (apoapsis + periapsis)
    return orbit.with_elements(
        eccentricity=eccentricity,
        parameter=parameter_from_semi_major_axis(semi_major_axis, eccentricity),
    )


def _matching_anomaly(old_orbit: Orbit, new_orbit: Orbit, true_anomaly: float) -> float:
    """
    True anomaly on *new_orbit* of the point at *true_anomaly* on *old_orbit*.

    The two agree unless the new orbit is circular, whose anomaly is measured
    from the node instead of the periapsis.
    """
    if new_orbit.is_circular and not old_orbit.is_circular:
        return clamp_angle(true_anomaly + old_orbit.argument_of_periapsis)
    return true_anomaly


def change_periapsis(body: Body, new_periapsis: float, now: Optional[float] = None) -> OrbitalManeuvers:
    """
    Single burn at apoapsis that moves the periapsis to *new_periapsis*.

    Args:
        body: The maneuvering object.
        new_periapsis: Target periapsis radius (m, from the primary's center).
        now: Absolute current time; defaults to the body's state time.

    Returns:
        One burn at the next apoapsis.

    Raises:
        GeometricInfeasibility: For an unbound orbit, a non-positive radius, or
            a periapsis above the current apoapsis.
    """
    orbit_position = body.orbit_position()
    orbit = orbit_position.orbit
    if orbit.is_unbound:
        raise GeometricInfeasibility("Changing the periapsis requires a bound orbit")
    if new_periapsis <= 0.0:
        raise GeometricInfeasibility(f"New periapsis must be positive, got {new_periapsis}")
    if new_periapsis > orbit.apoapsis:
        raise GeometricInfeasibility(
            f"New periapsis {new_periapsis:.1f} m cannot be higher than the apoapsis {orbit.apoapsis:.1f} m"
        )

    primary_state = body.primary_body.state
    new_orbit = _apsis_change_orbit(orbit, new_periapsis, orbit.apoapsis)
    velocity = orbit.calculate_state(PI, primary_state).velocity
    new_velocity = new_orbit.calculate_state(_matching_anomaly(orbit, new_orbit, PI), primary_state).velocity

    logger.debug("Change periapsis of %s: %.1f m -> %.1f m", body.name, orbit.periapsis, new_periapsis)
    return OrbitalManeuvers.single(burn(
        orbit_position, new_velocity - velocity, ManeuverTimeSpec.apoapsis(), current_time(body, now),
    ))


def change_apoapsis(body: Body, new_apoapsis: float, now: Optional[float] = None) -> OrbitalManeuvers:
    """
    Single burn at periapsis that moves the apoapsis to *new_apoapsis*.

    Raises:
        GeometricInfeasibility: For an unbound orbit or an apoapsis below the
            current periapsis.
    """
    orbit_position = body.orbit_position()
    orbit = orbit_position.orbit
    if orbit.is_unbound:
        raise GeometricInfeasibility("Changing the apoapsis requires a bound orbit")
    if new_apoapsis < orbit.periapsis:
        raise GeometricInfeasibility(
            f"New apoapsis {new_apoapsis:.1f} m cannot be lower than the periapsis {orbit.periapsis:.1f} m"
        )

    primary_state = body.primary_body.state
    new_orbit = _apsis_change_orbit(orbit, orbit.periapsis, new_apoapsis)
    velocity = orbit.calculate_state(0.0, primary_state).velocity
    new_velocity = new_orbit.calculate_state(_matching_anomaly(orbit, new_orbit, 0.0), primary_state).velocity

    logger.debug("Change apoapsis of %s: %.1f m -> %.1f m", body.name, orbit.apoapsis, new_apoapsis)
    return OrbitalManeuvers.single(burn(
        orbit_position, new_velocity - velocity, ManeuverTimeSpec.periapsis(), current_time(body, now),
    ))


def change_inclination(body: Body, new_inclination: float, now: Optional[float] = None) -> OrbitalManeuvers:
    """
    Single burn at a node that rotates the orbit plane to *new_inclination*.

    The plane turns about the line of nodes, so the burn happens on it: at
    whichever node lies farther from the primary (the slower, cheaper one).
    For an equatorial orbit the line of nodes is the reference x axis.

    Raises:
        GeometricInfeasibility: For an inclination outside [0, pi], or when
            neither node is still ahead on an unbound orbit.
    """
    if not 0.0 <= new_inclination <= PI:
        raise GeometricInfeasibility(f"Inclination must lie in [0, pi], got {new_inclination}")

    orbit_position = body.orbit_position()
    orbit = orbit_position.orbit
    omega = 0.0 if orbit.is_circular else orbit.argument_of_periapsis
    e = orbit.eccentricity

    candidates = []
    for node in (clamp_angle(-omega), clamp_angle(PI - omega)):
        denominator = 1.0 + e * math.cos(node)
        if denominator <= 0.0:
            continue
        offset = orbit_position.time_to_true_anomaly(node)
        if offset < 0.0:
            continue
        candidates.append((-orbit.parameter / denominator, offset, node))
    if not candidates:
        raise GeometricInfeasibility("No node ahead on the current trajectory")
    _, offset, node = min(candidates)

    primary_state = body.primary_body.state
    velocity = orbit.calculate_state(node, primary_state).velocity
    new_velocity = orbit.with_elements(inclination=new_inclination).calculate_state(node, primary_state).velocity

    logger.debug("Change inclination of %s: %.6f rad -> %.6f rad at nu=%.6f",
                 body.name, orbit.inclination, new_inclination, node)
    return OrbitalManeuvers.single(burn(
        orbit_position, new_velocity - velocity, ManeuverTimeSpec.time_from_now(offset), current_time(body, now),
    ))
