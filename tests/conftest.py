"""
Shared fixtures: a static Earth-like primary, solvers, satellite factories
and an impulsive burn executor.
"""

import numpy as np
import pytest

from astrodyn.core.constants import SIDEREAL_DAY
from astrodyn.dynamics.kepler import UniversalVariableKeplerSolver
from astrodyn.dynamics.lambert import UniversalVariableLambertSolver
from astrodyn.dynamics.orbit import Orbit
from astrodyn.dynamics.state import Body, ObjectConfig, make_body

EARTH_MU = 3.986004418e14        # m^3/s^2
EARTH_RADIUS = 6378137.0         # m


@pytest.fixture
def earth():
    """Non-rotating Earth at rest at the origin (object of reference)."""
    return make_body('Earth', EARTH_MU, radius=EARTH_RADIUS)


@pytest.fixture
def rotating_earth():
    return make_body('Earth', EARTH_MU, radius=EARTH_RADIUS, rotational_period=SIDEREAL_DAY)


@pytest.fixture
def kepler_solver():
    return UniversalVariableKeplerSolver()


@pytest.fixture
def lambert_solver():
    return UniversalVariableLambertSolver()


@pytest.fixture
def make_satellite(earth):
    """Factory for satellites on a given orbit around *earth*."""

    def factory(semi_major_axis, eccentricity=0.0, true_anomaly=0.0, inclination=0.0,
                longitude_of_ascending_node=0.0, argument_of_periapsis=0.0,
                primary=None, name='Satellite'):
        primary = primary if primary is not None else earth
        orbit = Orbit.new(
            primary,
            semi_major_axis=semi_major_axis,
            eccentricity=eccentricity,
            inclination=inclination,
            longitude_of_ascending_node=longitude_of_ascending_node,
            argument_of_periapsis=argument_of_periapsis,
        )
        state = orbit.calculate_state(true_anomaly, primary.state)
        return Body(name, ObjectConfig(mass=1000.0), state, primary)

    return factory


@pytest.fixture
def fly(kepler_solver):
    """
    Execute burns on an object orbiting a static primary.

    Returns a function ``fly(primary, state, maneuvers, until)`` giving the
    state at time *until* after every burn has been applied at its time.
    """

    def execute(primary, state, maneuvers, until):
        for maneuver in maneuvers:
            orbit = Orbit.from_state(primary, primary.state, state)
            state = kepler_solver.propagate(primary.state, state, orbit, maneuver.time - state.time)
            state = state.add(velocity=maneuver.delta_velocity)
        orbit = Orbit.from_state(primary, primary.state, state)
        return kepler_solver.propagate(primary.state, state, orbit, until - state.time)

    return execute


def circular_speed(mu, radius):
    return float(np.sqrt(mu / radius))
