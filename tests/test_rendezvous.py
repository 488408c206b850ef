"""
===============================================================================
ASTRODYN - Rendezvous Test Suite
===============================================================================
Both rendezvous methods are flown with the Kepler propagator: after the last
burn the chaser must sit on top of the target.
===============================================================================
"""

import pytest

from astrodyn.core.exceptions import GeometricInfeasibility
from astrodyn.dynamics.orbit import Orbit, OrbitPosition
from astrodyn.guidance.rendezvous import (
    RendezvousMethod,
    rendezvous,
    rendezvous_in_circular_orbit,
    rendezvous_in_same_orbit,
    rendezvous_method,
)

MAX_MISS_DISTANCE = 1000.0   # m


def miss_distance(fly, kepler_solver, chaser, target, maneuvers):
    """Chaser-target distance at the time of the last burn, burns applied."""
    earth = chaser.primary_body
    final_time = maneuvers[-1].time
    chaser_state = fly(earth, chaser.state, maneuvers, final_time)
    target_orbit = OrbitPosition.from_body(target).orbit
    target_state = kepler_solver.propagate(earth.state, target.state, target_orbit, final_time - target.state.time)
    return chaser_state, chaser_state.distance(target_state)


# =============================================================================
# Classification
# =============================================================================

class TestRendezvousMethod:

    def test_same_orbit(self, make_satellite):
        chaser = make_satellite(8.0e6, eccentricity=0.1, true_anomaly=0.2)
        target = make_satellite(8.0e6, eccentricity=0.1, true_anomaly=1.2)
        method = rendezvous_method(chaser.orbit_position(), OrbitPosition.from_body(target))
        assert method is RendezvousMethod.IN_SAME_ORBIT

    def test_shared_circular_orbit_is_same_orbit(self, make_satellite):
        chaser = make_satellite(7.0e6, true_anomaly=0.2)
        target = make_satellite(7.0e6, true_anomaly=1.2)
        method = rendezvous_method(chaser.orbit_position(), OrbitPosition.from_body(target))
        assert method is RendezvousMethod.IN_SAME_ORBIT

    def test_circular_orbits(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target = make_satellite(9.0e6, true_anomaly=1.0)
        method = rendezvous_method(chaser.orbit_position(), OrbitPosition.from_body(target))
        assert method is RendezvousMethod.IN_CIRCULAR_ORBIT

    def test_unsupported(self, make_satellite):
        chaser = make_satellite(8.0e6, eccentricity=0.1)
        target = make_satellite(9.0e6, true_anomaly=1.0)
        with pytest.raises(GeometricInfeasibility):
            rendezvous_method(chaser.orbit_position(), OrbitPosition.from_body(target))


# =============================================================================
# Circular orbits
# =============================================================================

class TestCircularRendezvous:

    @pytest.mark.parametrize("r1, r2, target_anomaly", [
        (7.0e6, 9.0e6, 1.0),
        (7.0e6, 9.0e6, 0.1),
        (9.0e6, 7.0e6, 2.5),
    ])
    def test_meets_target(self, make_satellite, fly, kepler_solver, r1, r2, target_anomaly):
        chaser = make_satellite(r1, name='Chaser')
        target = make_satellite(r2, true_anomaly=target_anomaly, name='Target')

        maneuvers = rendezvous_in_circular_orbit(chaser, OrbitPosition.from_body(target))

        assert len(maneuvers) == 2
        state, distance = miss_distance(fly, kepler_solver, chaser, target, maneuvers)
        assert distance < MAX_MISS_DISTANCE

        orbit = Orbit.from_state(chaser.primary_body, chaser.primary_body.state, state)
        assert orbit.eccentricity < 1e-6
        assert orbit.semi_major_axis == pytest.approx(r2, rel=1e-6)

    def test_now_shifts_plan(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target = make_satellite(9.0e6, true_anomaly=1.0)
        base = rendezvous_in_circular_orbit(chaser, OrbitPosition.from_body(target))
        shifted = rendezvous_in_circular_orbit(chaser, OrbitPosition.from_body(target), now=500.0)
        assert shifted[0].time == pytest.approx(base[0].time + 500.0)

    def test_requires_circular_orbits(self, make_satellite):
        chaser = make_satellite(8.0e6, eccentricity=0.1)
        target = make_satellite(9.0e6)
        with pytest.raises(GeometricInfeasibility):
            rendezvous_in_circular_orbit(chaser, OrbitPosition.from_body(target))

    def test_requires_coplanar_orbits(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target = make_satellite(9.0e6, inclination=0.3)
        with pytest.raises(GeometricInfeasibility):
            rendezvous_in_circular_orbit(chaser, OrbitPosition.from_body(target))


# =============================================================================
# Shared orbit
# =============================================================================

class TestSameOrbitRendezvous:

    @pytest.mark.parametrize("revolutions", [1, 2])
    def test_circular_phasing(self, make_satellite, fly, kepler_solver, revolutions):
        chaser = make_satellite(7.0e6, true_anomaly=0.3, name='Chaser')
        target = make_satellite(7.0e6, true_anomaly=0.8, name='Target')

        maneuvers = rendezvous_in_same_orbit(chaser, OrbitPosition.from_body(target), revolutions=revolutions)

        assert len(maneuvers) == 2
        assert maneuvers[0].delta_v == pytest.approx(maneuvers[1].delta_v)
        _, distance = miss_distance(fly, kepler_solver, chaser, target, maneuvers)
        assert distance < MAX_MISS_DISTANCE

    def test_more_revolutions_cost_less(self, make_satellite):
        chaser = make_satellite(7.0e6, true_anomaly=0.3)
        target_position = OrbitPosition.from_body(make_satellite(7.0e6, true_anomaly=0.8))
        one = rendezvous_in_same_orbit(chaser, target_position, revolutions=1).total_delta_v
        three = rendezvous_in_same_orbit(chaser, target_position, revolutions=3).total_delta_v
        assert three < one

    @pytest.mark.parametrize("target_anomaly", [2.5, 5.0])
    def test_elliptical_phasing(self, make_satellite, fly, kepler_solver, target_anomaly):
        elements = dict(eccentricity=0.1, inclination=0.4, longitude_of_ascending_node=1.1,
                        argument_of_periapsis=0.7)
        chaser = make_satellite(9.0e6, true_anomaly=2.0, name='Chaser', **elements)
        target = make_satellite(9.0e6, true_anomaly=target_anomaly, name='Target', **elements)

        maneuvers = rendezvous_in_same_orbit(chaser, OrbitPosition.from_body(target))

        assert maneuvers[0].time == pytest.approx(chaser.orbit_position().time_to_periapsis())
        _, distance = miss_distance(fly, kepler_solver, chaser, target, maneuvers)
        assert distance < MAX_MISS_DISTANCE

    def test_requires_shared_orbit(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target = make_satellite(9.0e6)
        with pytest.raises(GeometricInfeasibility):
            rendezvous_in_same_orbit(chaser, OrbitPosition.from_body(target))

    def test_requires_a_revolution(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target = make_satellite(7.0e6, true_anomaly=1.0)
        with pytest.raises(GeometricInfeasibility):
            rendezvous_in_same_orbit(chaser, OrbitPosition.from_body(target), revolutions=0)


# =============================================================================
# Dispatch
# =============================================================================

class TestRendezvous:

    def test_dispatches_to_circular(self, make_satellite):
        chaser = make_satellite(7.0e6)
        target_position = OrbitPosition.from_body(make_satellite(9.0e6, true_anomaly=1.0))
        planned = rendezvous(chaser, target_position)
        direct = rendezvous_in_circular_orbit(chaser, target_position)
        assert [m.time for m in planned] == [m.time for m in direct]

    def test_dispatches_to_same_orbit(self, make_satellite):
        chaser = make_satellite(7.0e6, true_anomaly=0.3)
        target_position = OrbitPosition.from_body(make_satellite(7.0e6, true_anomaly=0.8))
        planned = rendezvous(chaser, target_position, revolutions=2)
        direct = rendezvous_in_same_orbit(chaser, target_position, revolutions=2)
        assert [m.time for m in planned] == [m.time for m in direct]
