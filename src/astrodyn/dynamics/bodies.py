"""
===============================================================================
ASTRODYN - Solar System Catalog
===============================================================================
Physical data and J2000-like mean orbital elements for the bodies used by
the example scenarios and the command line: the Sun, the inner planets,
the Moon and Jupiter.

Elements are heliocentric (planetocentric for the Moon) in the engine's
reference frame; angles are given in degrees here and converted on use.
Positions along the orbits default to periapsis, so a catalog is a fixed,
reproducible scenario rather than an ephemeris.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from astrodyn.core.constants import DEG2RAD, ONE_DAY, ONE_HOUR, ONE_MINUTE, SIDEREAL_DAY
from astrodyn.dynamics.orbit import Orbit
from astrodyn.dynamics.state import Body, ObjectConfig, ObjectState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BodyData:
    """Catalog entry; *primary* is None for the object of reference."""
    name: str
    mass: float                     # kg
    radius: float                   # m
    rotational_period: float = 0.0  # s, negative for retrograde rotation
    primary: Optional[str] = None
    semi_major_axis: float = 0.0    # m
    eccentricity: float = 0.0
    inclination: float = 0.0        # deg
    longitude_of_ascending_node: float = 0.0  # deg
    argument_of_periapsis: float = 0.0        # deg


# =============================================================================
# CATALOG
# =============================================================================
SUN = BodyData('Sun', mass=1.98855e30, radius=695700e3)

MERCURY = BodyData(
    'Mercury', mass=3.3011e23, radius=2439.7e3,
    rotational_period=58.6462 * ONE_DAY, primary='Sun',
    semi_major_axis=57909050e3, eccentricity=0.20563, inclination=7.005,
    longitude_of_ascending_node=48.331, argument_of_periapsis=29.124,
)

VENUS = BodyData(
    'Venus', mass=4.8675e24, radius=6051.8e3,
    rotational_period=-243.0185 * ONE_DAY, primary='Sun',
    semi_major_axis=108208000e3, eccentricity=0.006772, inclination=3.39458,
    longitude_of_ascending_node=76.680, argument_of_periapsis=54.884,
)

EARTH = BodyData(
    'Earth', mass=5.9722e24, radius=6378137.0,
    rotational_period=SIDEREAL_DAY, primary='Sun',
    semi_major_axis=149598023e3, eccentricity=0.0167086, inclination=0.00005,
    longitude_of_ascending_node=-11.26064, argument_of_periapsis=114.20783,
)

MOON = BodyData(
    'Moon', mass=7.342e22, radius=1738.1e3,
    rotational_period=27.321661 * ONE_DAY, primary='Earth',
    semi_major_axis=384399e3, eccentricity=0.0549, inclination=5.145,
)

MARS = BodyData(
    'Mars', mass=6.4171e23, radius=3396.2e3,
    rotational_period=24.622962 * ONE_HOUR, primary='Sun',
    semi_major_axis=227.9392e9, eccentricity=0.0934, inclination=1.850,
    longitude_of_ascending_node=49.558, argument_of_periapsis=286.502,
)

JUPITER = BodyData(
    'Jupiter', mass=1.8986e27, radius=71492e3,
    rotational_period=9 * ONE_HOUR + 55 * ONE_MINUTE + 29.685, primary='Sun',
    semi_major_axis=778.57e9, eccentricity=0.0489, inclination=1.303,
    longitude_of_ascending_node=100.464, argument_of_periapsis=273.867,
)

# Parents precede their satellites
SOLAR_SYSTEM = (SUN, MERCURY, VENUS, EARTH, MOON, MARS, JUPITER)

LOW_EARTH_ORBIT_ALTITUDE = 300e3        # m


def orbit_from_data(data: BodyData, primary_body: Body) -> Orbit:
    return Orbit.new(
        primary_body,
        semi_major_axis=data.semi_major_axis,
        eccentricity=data.eccentricity,
        inclination=data.inclination * DEG2RAD,
        longitude_of_ascending_node=data.longitude_of_ascending_node * DEG2RAD,
        argument_of_periapsis=data.argument_of_periapsis * DEG2RAD,
    )


def create_solar_system(
    time: float = 0.0,
    true_anomalies: Optional[Mapping[str, float]] = None,
) -> Dict[str, Body]:
    """
    Build the catalog bodies with the Sun at rest at the origin.

    Args:
        time: Simulation time stamped on every state (s).
        true_anomalies: Optional true anomaly (rad) per body name; bodies
                        not listed start at periapsis.

    Returns:
        Bodies keyed by lower-case name.
    """
    true_anomalies = {name.lower(): value for name, value in (true_anomalies or {}).items()}
    unknown = sorted(set(true_anomalies) - {data.name.lower() for data in SOLAR_SYSTEM})
    if unknown:
        raise ValueError(f"Unknown bodies in true_anomalies: {unknown}")

    bodies: Dict[str, Body] = {}
    for data in SOLAR_SYSTEM:
        config = ObjectConfig(
            mass=data.mass, rotational_period=data.rotational_period, radius=data.radius,
        )
        if data.primary is None:
            bodies[data.name.lower()] = Body(data.name, config, ObjectState(time=time))
            continue

        primary = bodies[data.primary.lower()]
        orbit = orbit_from_data(data, primary)
        state = orbit.calculate_state(true_anomalies.get(data.name.lower(), 0.0), primary.state)
        bodies[data.name.lower()] = Body(data.name, config, state, primary)

    logger.debug("Created solar system with %d bodies at t=%.1f s", len(bodies), time)
    return bodies


def create_spacecraft(
    primary_body: Body,
    name: str = 'Spacecraft',
    altitude: float = LOW_EARTH_ORBIT_ALTITUDE,
    mass: float = 1000.0,
    true_anomaly: float = 0.0,
    inclination: float = 0.0,
) -> Body:
    """Spacecraft on a circular parking orbit *altitude* above *primary_body*."""
    orbit = Orbit.new(
        primary_body,
        semi_major_axis=primary_body.radius + altitude,
        inclination=inclination,
    )
    state = orbit.calculate_state(true_anomaly, primary_body.state)
    return Body(name, ObjectConfig(mass=mass), state, primary_body)
