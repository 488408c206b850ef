"""
===============================================================================
ASTRODYN - Calculator Test Suite
===============================================================================
Tests for time to impact, time to leave the sphere of influence and the
closest-approach search.
===============================================================================
"""

import math

import numpy as np
import pytest

from astrodyn.dynamics.bodies import create_solar_system
from astrodyn.dynamics.calculators import (
    closest_approach,
    sphere_of_influence_radius,
    time_to_impact,
    time_to_leave_soi,
)
from astrodyn.dynamics.orbit import Orbit, OrbitPosition
from astrodyn.dynamics.state import make_body

from conftest import EARTH_MU


# =============================================================================
# Time to impact
# =============================================================================

class TestTimeToImpact:

    def test_descending_orbit_hits_surface(self, earth, kepler_solver):
        # periapsis 6000 km, apoapsis 8000 km: dips below the surface
        orbit = Orbit.new(earth, semi_major_axis=7.0e6, eccentricity=1.0 / 7.0)
        position = OrbitPosition(orbit, 4.0)

        time = time_to_impact(position)

        assert time is not None and time > 0.0
        state = position.state_at(kepler_solver, time)
        assert np.linalg.norm(state.position) == pytest.approx(earth.radius, rel=1e-7)

    def test_leo_never_impacts(self, earth):
        orbit = Orbit.new(earth, semi_major_axis=7.0e6)
        assert time_to_impact(OrbitPosition(orbit, 1.0)) is None

    def test_primary_without_radius(self):
        point_mass = make_body('Point', EARTH_MU)
        orbit = Orbit.new(point_mass, semi_major_axis=7.0e6, eccentricity=0.5)
        assert time_to_impact(OrbitPosition(orbit, 4.0)) is None


# =============================================================================
# Sphere of influence
# =============================================================================

class TestTimeToLeaveSoi:

    @pytest.fixture
    def bodies(self):
        return create_solar_system()

    def test_sphere_of_influence_of_earth(self, bodies):
        assert sphere_of_influence_radius(bodies['earth']) == pytest.approx(9.25e8, rel=1e-2)

    def test_reference_body_has_no_soi(self, bodies):
        with pytest.raises(ValueError):
            sphere_of_influence_radius(bodies['sun'])

    def test_hyperbola_leaves_soi(self, bodies, kepler_solver):
        earth = bodies['earth']
        escape = Orbit(earth, 7.0e6 * 2.5, 1.5, 0.3, 0.0, 0.0)
        position = OrbitPosition(escape, 0.0)

        time = time_to_leave_soi(position)

        assert time is not None and time > 0.0
        state = kepler_solver.propagate(earth.state, position.calculate_state(), escape, time)
        distance = np.linalg.norm(state.position - earth.state.position)
        assert distance == pytest.approx(sphere_of_influence_radius(earth), rel=1e-6)

    def test_near_full_revolution_measures_from_periapsis(self, bodies):
        escape = Orbit(bodies['earth'], 7.0e6 * 2.5, 1.5)
        from_periapsis = time_to_leave_soi(OrbitPosition(escape, 0.0))
        almost_round = time_to_leave_soi(OrbitPosition(escape, 2.0 * math.pi - 1e-7))
        assert almost_round == pytest.approx(from_periapsis)

    def test_bound_orbit_never_leaves(self, bodies):
        orbit = Orbit.new(bodies['earth'], semi_major_axis=7.0e6)
        assert time_to_leave_soi(OrbitPosition(orbit, 0.0)) is None

    def test_reference_primary(self, earth):
        escape = Orbit(earth, 1.75e7, 1.5)
        assert time_to_leave_soi(OrbitPosition(escape, 0.0)) is None


# =============================================================================
# Closest approach
# =============================================================================

class TestClosestApproach:

    def test_coplanar_circular_orbits(self, earth, kepler_solver, make_satellite):
        chaser = make_satellite(7.0e6, true_anomaly=0.0, name='Chaser')
        target = make_satellite(8.0e6, true_anomaly=1.0, name='Target')

        approach = closest_approach(
            kepler_solver,
            chaser, OrbitPosition.from_body(chaser),
            target, OrbitPosition.from_body(target),
            delta_time=-1,
        )

        w1 = math.sqrt(EARTH_MU / 7.0e6 ** 3)
        w2 = math.sqrt(EARTH_MU / 8.0e6 ** 3)
        assert approach is not None
        assert approach.distance == pytest.approx(1.0e6, rel=1e-4)
        assert approach.time == pytest.approx(1.0 / (w1 - w2), rel=1e-3)

    def test_refinement_never_worse(self, earth, kepler_solver, make_satellite):
        chaser = make_satellite(7.0e6, name='Chaser')
        target = make_satellite(8.0e6, true_anomaly=1.0, name='Target')
        args = (kepler_solver, chaser, OrbitPosition.from_body(chaser), target, OrbitPosition.from_body(target))

        coarse = closest_approach(*args, delta_time=120.0, refine=False)
        refined = closest_approach(*args, delta_time=120.0, refine=True)
        assert refined.distance <= coarse.distance

    def test_different_primaries(self, earth, kepler_solver, make_satellite):
        other = make_body('Other', EARTH_MU)
        first = make_satellite(7.0e6)
        second = make_satellite(8.0e6, primary=other)
        assert closest_approach(
            kepler_solver, first, OrbitPosition.from_body(first), second, OrbitPosition.from_body(second),
        ) is None

    def test_equal_periods(self, earth, kepler_solver, make_satellite):
        first = make_satellite(7.0e6, true_anomaly=0.0)
        second = make_satellite(7.0e6, true_anomaly=1.0)
        assert closest_approach(
            kepler_solver, first, OrbitPosition.from_body(first), second, OrbitPosition.from_body(second),
        ) is None
