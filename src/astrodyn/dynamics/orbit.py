"""
===============================================================================
ASTRODYN - Orbital Elements
===============================================================================
Classical orbital elements and their conversion to and from Cartesian state.

    Orbit          -- the conic: parameter p, eccentricity e, inclination i,
                      longitude of ascending node (Omega), argument of
                      periapsis (omega), and the primary body supplying mu.
    OrbitPosition  -- an Orbit plus the true anomaly nu of an object on it.
                      Every element <-> state conversion goes through this
                      pair.

Frames
------
States live in the Y-up world frame.  The element math runs in the Z-up
physics frame (x, z, y); see :func:`astrodyn.core.math_utils.swap_yz`.

Degenerate angles
-----------------
Omega is undefined for equatorial orbits and omega for circular ones.  Both
are stored as 0 in that case, never NaN.  For a circular orbit the true
anomaly is measured from the ascending node (inclined) or from the +x axis
(equatorial), which is consistent with omega = 0 in
:meth:`Orbit.change_of_basis_matrix`.

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", 4th ed.,
        Algorithms 4.2 and 4.5.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.,
        Algorithms 9 and 10.
===============================================================================
"""

import enum
import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from astrodyn.core.constants import (
    PI,
    TWO_PI,
    PHYSICS_UP,
    ECCENTRICITY_EPSILON,
    RADIAL_PARAMETER_EPSILON,
    EQUATORIAL_NODE_EPSILON,
    SAME_ORBIT_EPSILON,
)
from astrodyn.core.math_utils import clamp_angle, min_angle_difference, norm, swap_yz
from astrodyn.dynamics.formulas import (
    eccentric_anomaly,
    hyperbolic_anomaly,
    mean_anomaly,
    orbital_period,
    parabolic_anomaly,
    parameter_from_semi_major_axis,
    semi_major_axis_from_period,
)
from astrodyn.dynamics.state import Body, ObjectState


def _clipped_acos(value: float) -> float:
    return math.acos(min(1.0, max(-1.0, value)))


class OrbitType(enum.Enum):
    CIRCULAR = "circular"
    ELLIPTICAL = "elliptical"
    PARABOLIC = "parabolic"
    HYPERBOLIC = "hyperbolic"


# =============================================================================
# ORBIT
# =============================================================================

@dataclass(frozen=True, eq=False)
class Orbit:
    """
    An immutable two-body conic around a primary body.

    Attributes
    ----------
    primary_body : Body
        Body at the focus; supplies mu and the physical radius.
    parameter : float
        Semi-latus rectum p (m).
    eccentricity : float
        Eccentricity e (>= 0).
    inclination : float
        Inclination i in [0, pi] (rad).
    longitude_of_ascending_node : float
        Omega (rad); 0 for equatorial orbits.
    argument_of_periapsis : float
        omega (rad); 0 for circular orbits.
    """
    primary_body: Body
    parameter: float
    eccentricity: float
    inclination: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0

    def __post_init__(self):
        for name in ('parameter', 'eccentricity', 'inclination',
                     'longitude_of_ascending_node', 'argument_of_periapsis'):
            value = float(getattr(self, name))
            if math.isnan(value) and name in ('longitude_of_ascending_node', 'argument_of_periapsis'):
                value = 0.0
            object.__setattr__(self, name, value)

    # ----------------------------------------------------------------
    # Construction
    # ----------------------------------------------------------------
    @classmethod
    def new(
        cls,
        primary_body: Body,
        parameter: float = 0.0,
        eccentricity: float = 0.0,
        inclination: float = 0.0,
        longitude_of_ascending_node: float = 0.0,
        argument_of_periapsis: float = 0.0,
        semi_major_axis: Optional[float] = None,
    ) -> 'Orbit':
        """
        Build an orbit from either the parameter or the semi-major axis.

        When *semi_major_axis* is given it takes precedence and the parameter
        is derived as p = a (1 - e^2).
        """
        if semi_major_axis is not None:
            parameter = parameter_from_semi_major_axis(semi_major_axis, eccentricity)
        return cls(
            primary_body, parameter, eccentricity, inclination,
            longitude_of_ascending_node, argument_of_periapsis,
        )

    @classmethod
    def geosynchronous(cls, primary_body: Body, inclination: float = 0.0) -> 'Orbit':
        """Circular orbit whose period equals the primary's rotational period."""
        period = primary_body.config.rotational_period
        if period == 0.0:
            raise ValueError(f"Body '{primary_body.name}' does not rotate")
        semi_major_axis = semi_major_axis_from_period(
            primary_body.standard_gravitational_parameter, abs(period),
        )
        return cls.new(primary_body, semi_major_axis=semi_major_axis, inclination=inclination)

    @classmethod
    def from_state(cls, primary_body: Body, primary_state: ObjectState, state: ObjectState) -> 'Orbit':
        return OrbitPosition.from_state(primary_body, primary_state, state).orbit

    def with_elements(self, **elements) -> 'Orbit':
        """Copy with the given elements replaced."""
        return replace(self, **elements)

    def add_elements(
        self,
        parameter: float = 0.0,
        eccentricity: float = 0.0,
        inclination: float = 0.0,
        longitude_of_ascending_node: float = 0.0,
        argument_of_periapsis: float = 0.0,
    ) -> 'Orbit':
        """Copy with the given amounts added to the elements."""
        return replace(
            self,
            parameter=self.parameter + parameter,
            eccentricity=self.eccentricity + eccentricity,
            inclination=self.inclination + inclination,
            longitude_of_ascending_node=self.longitude_of_ascending_node + longitude_of_ascending_node,
            argument_of_periapsis=self.argument_of_periapsis + argument_of_periapsis,
        )

    # ----------------------------------------------------------------
    # Classification
    # ----------------------------------------------------------------
    @property
    def standard_gravitational_parameter(self) -> float:
        return self.primary_body.standard_gravitational_parameter

    @property
    def is_circular(self) -> bool:
        return self.eccentricity <= ECCENTRICITY_EPSILON

    @property
    def is_elliptical(self) -> bool:
        return ECCENTRICITY_EPSILON < self.eccentricity < 1.0 - ECCENTRICITY_EPSILON

    @property
    def is_parabolic(self) -> bool:
        return abs(self.eccentricity - 1.0) <= ECCENTRICITY_EPSILON

    @property
    def is_radial_parabolic(self) -> bool:
        return self.parameter <= RADIAL_PARAMETER_EPSILON and self.is_parabolic

    @property
    def is_hyperbolic(self) -> bool:
        return self.eccentricity > 1.0 + ECCENTRICITY_EPSILON

    @property
    def is_bound(self) -> bool:
        return self.eccentricity < 1.0 - ECCENTRICITY_EPSILON

    @property
    def is_unbound(self) -> bool:
        return not self.is_bound

    @property
    def type(self) -> OrbitType:
        if self.is_circular:
            return OrbitType.CIRCULAR
        if self.is_elliptical:
            return OrbitType.ELLIPTICAL
        if self.is_parabolic:
            return OrbitType.PARABOLIC
        return OrbitType.HYPERBOLIC

    # ----------------------------------------------------------------
    # Size and shape
    # ----------------------------------------------------------------
    @property
    def periapsis(self) -> float:
        return self.parameter / (1.0 + self.eccentricity)

    @property
    def apoapsis(self) -> float:
        if self.is_unbound:
            return math.inf
        return self.parameter / (1.0 - self.eccentricity)

    @property
    def relative_periapsis(self) -> float:
        """Periapsis altitude above the primary's surface."""
        return self.periapsis - self.primary_body.radius

    @property
    def relative_apoapsis(self) -> float:
        return self.apoapsis - self.primary_body.radius

    @property
    def semi_major_axis(self) -> float:
        """a = p / (1 - e^2); negative for hyperbolas, infinite for parabolas."""
        if self.is_bound or self.is_hyperbolic:
            return self.parameter / (1.0 - self.eccentricity * self.eccentricity)
        return math.inf

    @property
    def period(self) -> float:
        if self.is_unbound:
            return math.inf
        return orbital_period(self.standard_gravitational_parameter, self.semi_major_axis)

    # ----------------------------------------------------------------
    # Comparison
    # ----------------------------------------------------------------
    def same_orbit(self, other: 'Orbit', epsilon: float = SAME_ORBIT_EPSILON) -> bool:
        """
        True when both orbits share all five elements.

        The parameter is compared relative to its size; the eccentricity and
        the angles absolutely (angles modulo 2 pi).
        """
        if abs(self.parameter - other.parameter) > epsilon * max(1.0, abs(self.parameter)):
            return False
        if abs(self.eccentricity - other.eccentricity) > epsilon:
            return False
        if abs(self.inclination - other.inclination) > epsilon:
            return False
        if min_angle_difference(self.longitude_of_ascending_node, other.longitude_of_ascending_node) > epsilon:
            return False
        return min_angle_difference(self.argument_of_periapsis, other.argument_of_periapsis) <= epsilon

    def same_plane(self, other: 'Orbit', epsilon: float = SAME_ORBIT_EPSILON) -> bool:
        """True when both orbits lie in the same plane (Omega ignored when both are equatorial)."""
        if abs(self.inclination - other.inclination) > epsilon:
            return False
        if self._is_equatorial(epsilon) and other._is_equatorial(epsilon):
            return True
        return min_angle_difference(
            self.longitude_of_ascending_node, other.longitude_of_ascending_node,
        ) <= epsilon

    def _is_equatorial(self, epsilon: float) -> bool:
        return self.inclination <= epsilon or abs(self.inclination - PI) <= epsilon

    # ----------------------------------------------------------------
    # Elements -> state
    # ----------------------------------------------------------------
    @property
    def change_of_basis_matrix(self) -> np.ndarray:
        """
        Perifocal -> physics-frame rotation, classical 3-1-3 sequence
        R = R3(-Omega) R1(-i) R3(-omega).

        omega is taken as 0 for circular orbits, so the perifocal x axis then
        points at the ascending node.
        """
        cos_node = math.cos(self.longitude_of_ascending_node)
        sin_node = math.sin(self.longitude_of_ascending_node)
        omega = 0.0 if self.is_circular else self.argument_of_periapsis
        cos_omega, sin_omega = math.cos(omega), math.sin(omega)
        cos_i, sin_i = math.cos(self.inclination), math.sin(self.inclination)

        return np.array([
            [cos_node * cos_omega - sin_node * sin_omega * cos_i,
             -cos_node * sin_omega - sin_node * cos_omega * cos_i,
             sin_node * sin_i],
            [sin_node * cos_omega + cos_node * sin_omega * cos_i,
             -sin_node * sin_omega + cos_node * cos_omega * cos_i,
             -cos_node * sin_i],
            [sin_omega * sin_i,
             cos_omega * sin_i,
             cos_i],
        ])

    def calculate_state(self, true_anomaly: float, primary_state: Optional[ObjectState] = None) -> ObjectState:
        """
        Absolute state of an object at *true_anomaly* on this orbit.

        Perifocal position and velocity:
            r = p / (1 + e cos nu) [cos nu, sin nu, 0]
            v = sqrt(mu / p) [-sin nu, e + cos nu, 0]

        rotated into the reference frame and offset by the primary's state.

        Args:
            true_anomaly: Position on the orbit (rad).
            primary_state: State of the primary body; defaults to its current
                           state.  Its time becomes the returned state's time.
        """
        if primary_state is None:
            primary_state = self.primary_body.state

        mu = self.standard_gravitational_parameter
        p = self.parameter
        e = self.eccentricity
        cos_anomaly, sin_anomaly = math.cos(true_anomaly), math.sin(true_anomaly)

        distance = p / (1.0 + e * cos_anomaly)
        r_perifocal = distance * np.array([cos_anomaly, sin_anomaly, 0.0])
        v_perifocal = math.sqrt(mu / p) * np.array([-sin_anomaly, e + cos_anomaly, 0.0])

        rotation = self.change_of_basis_matrix
        return ObjectState(
            time=primary_state.time,
            position=primary_state.position + swap_yz(rotation @ r_perifocal),
            velocity=primary_state.velocity + swap_yz(rotation @ v_perifocal),
        )

    def __repr__(self) -> str:
        return (f"Orbit(primary={self.primary_body.name!r}, p={self.parameter:.6g}, "
                f"e={self.eccentricity:.6g}, i={self.inclination:.6g}, "
                f"Omega={self.longitude_of_ascending_node:.6g}, "
                f"omega={self.argument_of_periapsis:.6g})")


# =============================================================================
# ORBIT POSITION
# =============================================================================

@dataclass(frozen=True, eq=False)
class OrbitPosition:
    """An orbit and the true anomaly (rad, [0, 2 pi)) of an object on it."""
    orbit: Orbit
    true_anomaly: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'true_anomaly', float(self.true_anomaly))

    # ----------------------------------------------------------------
    # State -> elements
    # ----------------------------------------------------------------
    @classmethod
    def from_state(cls, primary_body: Body, primary_state: ObjectState, state: ObjectState) -> 'OrbitPosition':
        """
        Classical elements of *state* around *primary_body*.

        Algorithm (physics frame, r and v relative to the primary):
            h = r x v
            e = ((|v|^2 - mu/|r|) r - (r . v) v) / mu
            n = z x h
            p = |h|^2 / mu,  i = atan2(|h_xy|, h_z)

        Quadrants:
            - the orbit is equatorial only when the node vector is
              unresolvable (|n| / |h| = sin i below 1e-12), prograde or
              retrograde alike; any resolvable node keeps Omega.
            - non-equatorial: Omega = acos(n_x/|n|), flipped when n_y < 0;
              omega = acos(n.e / |n||e|), flipped when e_z < 0.
            - equatorial, non-circular: omega = atan2(e_y, e_x), mirrored
              (2 pi - omega) for retrograde orbits, then wrapped into [0, 2 pi).
            - nu = acos(e.r / |e||r|), flipped when r.v < 0; circular orbits
              measure nu from the node (inclined) or the +x axis (equatorial).

        Degenerate results (NaN) default to 0.
        """
        mu = primary_body.standard_gravitational_parameter
        r = swap_yz(state.position - primary_state.position)
        v = swap_yz(state.velocity - primary_state.velocity)
        r_length = norm(r)

        h = np.cross(r, v)
        h_length = norm(h)
        eccentricity_vector = ((float(np.dot(v, v)) - mu / r_length) * r - float(np.dot(r, v)) * v) / mu
        node = np.cross(PHYSICS_UP, h)
        node_length = norm(node)

        parameter = h_length * h_length / mu
        eccentricity = norm(eccentricity_vector)
        inclination = math.atan2(math.hypot(h[0], h[1]), h[2]) if h_length > 0.0 else 0.0
        is_circular = eccentricity <= ECCENTRICITY_EPSILON
        # |n| / |h| = sin(i); below the epsilon the node direction is rounding noise
        non_equatorial = node_length > EQUATORIAL_NODE_EPSILON * h_length

        longitude_of_ascending_node = 0.0
        argument_of_periapsis = 0.0
        if non_equatorial:
            longitude_of_ascending_node = _clipped_acos(node[0] / node_length)
            if node[1] < 0.0:
                longitude_of_ascending_node = TWO_PI - longitude_of_ascending_node
            if not is_circular:
                argument_of_periapsis = _clipped_acos(
                    float(np.dot(node, eccentricity_vector)) / (node_length * eccentricity)
                )
                if eccentricity_vector[2] < 0.0:
                    argument_of_periapsis = TWO_PI - argument_of_periapsis
        elif not is_circular:
            argument_of_periapsis = math.atan2(eccentricity_vector[1], eccentricity_vector[0])
            if h[2] < 0.0:
                argument_of_periapsis = TWO_PI - argument_of_periapsis
            if argument_of_periapsis < 0.0:
                argument_of_periapsis += TWO_PI
            # the retrograde mirror lands in [2 pi, 3 pi) for negative atan2 results
            argument_of_periapsis = clamp_angle(argument_of_periapsis)

        if is_circular:
            if non_equatorial:
                true_anomaly = _clipped_acos(float(np.dot(node, r)) / (node_length * r_length))
                if r[2] < 0.0:
                    true_anomaly = TWO_PI - true_anomaly
            elif h[2] >= 0.0:
                true_anomaly = _clipped_acos(r[0] / r_length)
                if v[0] > 0.0:
                    true_anomaly = TWO_PI - true_anomaly
            else:
                true_anomaly = math.atan2(-r[1], r[0])
        else:
            true_anomaly = _clipped_acos(
                float(np.dot(eccentricity_vector, r)) / (eccentricity * r_length)
            )
            if float(np.dot(r, v)) < 0.0:
                true_anomaly = TWO_PI - true_anomaly

        if math.isnan(true_anomaly):
            true_anomaly = 0.0

        orbit = Orbit(
            primary_body,
            parameter,
            eccentricity,
            inclination,
            longitude_of_ascending_node,
            argument_of_periapsis,
        )
        return cls(orbit, clamp_angle(true_anomaly))

    @classmethod
    def from_body(cls, body: Body) -> 'OrbitPosition':
        """Orbit position of *body* around its primary, from their current states."""
        if body.is_object_of_reference:
            raise ValueError(f"Body '{body.name}' is the object of reference and has no orbit")
        return cls.from_state(body.primary_body, body.primary_body.state, body.state)

    # ----------------------------------------------------------------
    # Copies
    # ----------------------------------------------------------------
    def with_true_anomaly(self, true_anomaly: float) -> 'OrbitPosition':
        return replace(self, true_anomaly=true_anomaly)

    def with_elements(self, true_anomaly: Optional[float] = None, **elements) -> 'OrbitPosition':
        """Copy with orbital elements and/or the true anomaly replaced."""
        orbit = self.orbit.with_elements(**elements) if elements else self.orbit
        anomaly = self.true_anomaly if true_anomaly is None else true_anomaly
        return OrbitPosition(orbit, anomaly)

    def calculate_state(self, primary_state: Optional[ObjectState] = None) -> ObjectState:
        return self.orbit.calculate_state(self.true_anomaly, primary_state)

    def state_at(self, solver, time: float, primary_state: Optional[ObjectState] = None) -> ObjectState:
        """
        State *time* seconds after the current position, propagated by
        *solver* (a :class:`~astrodyn.dynamics.kepler.KeplerProblemSolver`)
        with the primary held at *primary_state*.
        """
        if primary_state is None:
            primary_state = self.orbit.primary_body.state
        initial_state = self.calculate_state(primary_state)
        return solver.propagate(primary_state, initial_state, self.orbit, time)

    # ----------------------------------------------------------------
    # Anomalies and time of flight
    # ----------------------------------------------------------------
    @property
    def eccentric_anomaly(self) -> float:
        return eccentric_anomaly(self.orbit.eccentricity, self.true_anomaly)

    @property
    def mean_anomaly(self) -> float:
        return mean_anomaly(self.orbit.eccentricity, self.eccentric_anomaly)

    def time_to_true_anomaly(self, true_anomaly: float) -> float:
        """
        Time of flight from the current true anomaly to *true_anomaly*.

        Bound orbits use Kepler's equation and never return a negative time
        (one period is added instead).  Hyperbolic orbits use the hyperbolic
        Kepler equation and parabolic ones Barker's equation; both may return
        a negative time when the target lies behind the object.

        Elliptical:
            t = sqrt(a^3/mu) [(E2 - e sin E2) - (E1 - e sin E1)]
        Hyperbolic:
            t = sqrt((-a)^3/mu) [(e sinh F2 - F2) - (e sinh F1 - F1)]
        Parabolic (D = sqrt(p) tan(nu/2)):
            t = 1/(2 sqrt(mu)) [(p D2 + D2^3/3) - (p D1 + D1^3/3)]
        """
        orbit = self.orbit
        mu = orbit.standard_gravitational_parameter
        e = orbit.eccentricity

        if orbit.is_bound:
            factor = math.sqrt(orbit.semi_major_axis ** 3 / mu)
            start = mean_anomaly(e, eccentric_anomaly(e, self.true_anomaly))
            end = mean_anomaly(e, eccentric_anomaly(e, true_anomaly))
            time = factor * (end - start)
            if time < 0.0:
                time += TWO_PI * factor
            return time

        if orbit.is_hyperbolic:
            factor = math.sqrt((-orbit.semi_major_axis) ** 3 / mu)
            start = hyperbolic_anomaly(e, self.true_anomaly)
            end = hyperbolic_anomaly(e, true_anomaly)
            return factor * ((e * math.sinh(end) - end) - (e * math.sinh(start) - start))

        p = orbit.parameter
        start = math.sqrt(p) * parabolic_anomaly(self.true_anomaly)
        end = math.sqrt(p) * parabolic_anomaly(true_anomaly)
        return ((p * end + end ** 3 / 3.0) - (p * start + start ** 3 / 3.0)) / (2.0 * math.sqrt(mu))

    def time_to_periapsis(self) -> float:
        return self.time_to_true_anomaly(TWO_PI)

    def time_to_apoapsis(self) -> float:
        """Time to reach apoapsis; infinite for unbound orbits."""
        if self.orbit.is_unbound:
            return math.inf
        return self.time_to_true_anomaly(PI)

    def __repr__(self) -> str:
        return f"OrbitPosition({self.orbit!r}, nu={self.true_anomaly:.6g})"
