"""
===============================================================================
ASTRODYN - State Model Test Suite
===============================================================================
Tests for ObjectState immutability and frame transforms, the local orbital
frame, ObjectConfig validation and the Body tree.
===============================================================================
"""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from astrodyn.core.constants import GRAVITATIONAL_CONSTANT, TWO_PI
from astrodyn.dynamics.state import EMPTY_CONFIG, Body, ObjectConfig, ObjectState, make_body


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def state():
    return ObjectState(time=10.0, position=[1.0, 2.0, 3.0], velocity=[4.0, 5.0, 6.0])


@pytest.fixture
def primary_state():
    return ObjectState(time=10.0, position=[100.0, -50.0, 25.0], velocity=[-1.0, 0.5, 2.0])


# =============================================================================
# ObjectState
# =============================================================================

class TestObjectState:

    def test_defaults(self):
        state = ObjectState()
        assert state.time == 0.0
        assert_allclose(state.position, np.zeros(3))
        assert_allclose(state.velocity, np.zeros(3))
        assert not state.has_impacted

    def test_arrays_are_read_only(self, state):
        with pytest.raises(ValueError):
            state.position[0] = 42.0

    def test_input_array_is_copied(self):
        position = np.array([1.0, 2.0, 3.0])
        state = ObjectState(position=position)
        position[0] = 99.0
        assert state.position[0] == 1.0

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            ObjectState(position=[1.0, 2.0])

    def test_with_time_returns_new_state(self, state):
        later = state.with_time(20.0)
        assert later.time == 20.0
        assert state.time == 10.0
        assert_allclose(later.position, state.position)

    def test_add(self, state):
        moved = state.add(position=[1.0, 1.0, 1.0], velocity=[-4.0, 0.0, 0.0])
        assert_allclose(moved.position, [2.0, 3.0, 4.0])
        assert_allclose(moved.velocity, [0.0, 5.0, 6.0])

    def test_relative_absolute_round_trip(self, state, primary_state):
        relative = state.make_relative(primary_state)
        assert_allclose(relative.position, state.position - primary_state.position)
        back = relative.make_absolute(primary_state)
        assert_allclose(back.position, state.position)
        assert_allclose(back.velocity, state.velocity)

    def test_swap_reference_frame_keeps_offset(self, state, primary_state):
        new_primary = primary_state.add(position=[10.0, 0.0, 0.0], velocity=[0.0, 1.0, 0.0])
        swapped = state.swap_reference_frame(primary_state, new_primary)
        assert_allclose(swapped.position - new_primary.position, state.position - primary_state.position)
        assert_allclose(swapped.velocity - new_primary.velocity, state.velocity - primary_state.velocity)

    def test_distance(self, state):
        other = state.add(position=[3.0, 4.0, 0.0])
        assert state.distance(other) == pytest.approx(5.0)


class TestLocalFrame:

    def test_prograde_is_unit_velocity(self):
        state = ObjectState(velocity=[0.0, 0.0, 7.0])
        assert_allclose(state.prograde, [0.0, 0.0, 1.0])
        assert_allclose(state.retrograde, [0.0, 0.0, -1.0])

    def test_radial_and_normal_for_prograde_x(self):
        state = ObjectState(velocity=[3.0, 0.0, 0.0])
        assert_allclose(state.radial, [0.0, 0.0, -1.0], atol=1e-12)
        assert_allclose(state.normal, [0.0, 1.0, 0.0], atol=1e-12)

    def test_frame_is_orthonormal(self):
        state = ObjectState(velocity=[1.0, 0.0, 2.0])
        axes = np.array([state.prograde, state.radial, state.normal])
        assert_allclose(axes @ axes.T, np.eye(3), atol=1e-12)


# =============================================================================
# ObjectConfig / Body
# =============================================================================

class TestObjectConfig:

    def test_gravitational_parameter(self):
        config = ObjectConfig(mass=5.9722e24)
        assert config.standard_gravitational_parameter == pytest.approx(5.9722e24 * GRAVITATIONAL_CONSTANT)

    def test_from_gravitational_parameter(self):
        config = ObjectConfig.from_gravitational_parameter(3.986004418e14)
        assert config.standard_gravitational_parameter == pytest.approx(3.986004418e14)

    def test_negative_mass_rejected(self):
        with pytest.raises(ValueError):
            ObjectConfig(mass=-1.0)

    def test_rotation(self):
        config = ObjectConfig(mass=1.0, rotational_period=100.0)
        assert config.rotational_speed == pytest.approx(TWO_PI / 100.0)
        assert config.rotation_after(0.0, 25.0) == pytest.approx(math.pi / 2.0)
        assert EMPTY_CONFIG.rotation_after(1.5, 1000.0) == 1.5

    def test_radius_capability(self):
        assert not EMPTY_CONFIG.has_radius
        assert ObjectConfig(mass=1.0, radius=10.0).has_radius


class TestBody:

    def test_reference_body(self):
        sun = make_body('Sun', 1.327e20, radius=6.957e8)
        assert sun.is_object_of_reference
        with pytest.raises(ValueError):
            sun.orbit_position()

    def test_ancestors(self):
        sun = make_body('Sun', 1.327e20)
        planet = make_body('Planet', 3.986e14, primary_body=sun,
                           state=ObjectState(position=[1.5e11, 0.0, 0.0], velocity=[0.0, 0.0, 29780.0]))
        moon = make_body('Moon', 4.9e12, primary_body=planet,
                         state=ObjectState(position=[1.5e11 + 3.8e8, 0.0, 0.0], velocity=[0.0, 0.0, 30800.0]))
        assert list(moon.ancestors()) == [planet, sun]
        assert not moon.is_object_of_reference

    def test_altitude(self):
        body = make_body('Earth', 3.986e14, radius=6.4e6)
        assert body.altitude(np.array([7.0e6, 0.0, 0.0])) == pytest.approx(0.6e6)

    def test_orbit_of_body(self):
        earth = make_body('Earth', 3.986004418e14)
        satellite = Body('Sat', ObjectConfig(mass=1.0),
                         ObjectState(position=[7.0e6, 0.0, 0.0], velocity=[0.0, 0.0, 7546.05]), earth)
        orbit = satellite.orbit()
        assert orbit.primary_body is earth
        assert orbit.is_circular
