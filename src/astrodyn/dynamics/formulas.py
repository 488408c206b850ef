"""
===============================================================================
ASTRODYN - Closed-Form Orbit Formulas
===============================================================================
Stateless formulas used by the element conversions, the calculators and the
maneuver planners:

    - conic geometry (parameter, period, vis-viva, SOI, synodic period)
    - anomaly conversions (eccentric, hyperbolic, parabolic, mean)
    - the local orbital frame (prograde / radial / normal) and the ejection
      reference angle used by the planetary transfer
    - the rocket equation

All inputs are SI (m, s, kg, rad).

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", 4th ed., ch. 2-3.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
===============================================================================
"""

import math
from typing import Optional, Tuple

import numpy as np

from astrodyn.core.constants import (
    PI,
    TWO_PI,
    HALF_PI,
    ONE_DAY,
    WORLD_UP,
    STANDARD_GRAVITY,
    SYNODIC_PERIOD_EPSILON,
    CIRCULAR_ANGULAR_VELOCITY_EPSILON,
)
from astrodyn.core.math_utils import (
    clamp_angle,
    normalized,
    rotate_about_axis,
    signed_angle_between,
)


# =============================================================================
# CONIC GEOMETRY
# =============================================================================

def parameter_from_semi_major_axis(semi_major_axis: float, eccentricity: float) -> float:
    """Semi-latus rectum p = a (1 - e^2)."""
    return semi_major_axis * (1.0 - eccentricity * eccentricity)


def gravity_acceleration(mu: float, r: np.ndarray) -> np.ndarray:
    """Two-body acceleration -mu r / |r|^3."""
    r = np.asarray(r, dtype=np.float64)
    norm_squared = float(np.dot(r, r))
    return -(mu * r) / (norm_squared * math.sqrt(norm_squared))


def orbital_period(mu: float, semi_major_axis: float) -> float:
    """
    Orbital period T = 2 pi sqrt(a^3 / mu).

    Raises:
        ValueError: If the semi-major axis is not positive (unbound orbit).
    """
    if semi_major_axis <= 0:
        raise ValueError(f"Semi-major axis must be positive for a period, got {semi_major_axis}")
    return (TWO_PI / math.sqrt(mu)) * semi_major_axis ** 1.5


def semi_major_axis_from_period(mu: float, period: float) -> float:
    """Inverse of :func:`orbital_period`: a = (mu T^2 / 4 pi^2)^(1/3)."""
    return (mu * period * period / (4.0 * PI * PI)) ** (1.0 / 3.0)


def vis_viva(mu: float, r: float, semi_major_axis: float) -> float:
    """Orbital speed at distance r: v = sqrt(mu (2/r - 1/a))."""
    return math.sqrt(mu * (2.0 / r - 1.0 / semi_major_axis))


def synodic_period(period1: float, period2: float) -> float:
    """
    Time between successive alignments of two bodies around the same primary.

        1/S = 1/P_min - 1/P_max

    Returns 0 when the periods are equal (no alignment cycle exists).
    """
    if abs(period1 - period2) <= SYNODIC_PERIOD_EPSILON:
        return 0.0
    shorter, longer = min(period1, period2), max(period1, period2)
    if math.isinf(shorter):
        return math.inf
    return 1.0 / (1.0 / shorter - 1.0 / longer)


def sphere_of_influence(semi_major_axis: float, mass_smaller: float, mass_larger: float) -> float:
    """Laplace sphere of influence r_SOI = a (m / M)^(2/5)."""
    return semi_major_axis * (mass_smaller / mass_larger) ** 0.4


def true_anomaly_at(
    distance: float, parameter: float, eccentricity: float,
) -> Optional[Tuple[float, float]]:
    """
    True anomalies at which the conic reaches *distance*.

    From r = p / (1 + e cos nu):  cos nu = (p - r) / (e r).

    Returns:
        (nu, 2 pi - nu) wrapped into [0, 2 pi), or None when the conic never
        reaches the distance.
    """
    if eccentricity == 0.0:
        return None
    cos_anomaly = (parameter - distance) / (eccentricity * distance)
    if not -1.0 <= cos_anomaly <= 1.0:
        return None
    anomaly = math.acos(cos_anomaly)
    return clamp_angle(anomaly), clamp_angle(-anomaly)


def angular_velocity(semi_major_axis: float, eccentricity: float, period: float, distance: float) -> float:
    """Instantaneous angular rate d(nu)/dt at *distance* (Kepler's second law)."""
    if eccentricity < CIRCULAR_ANGULAR_VELOCITY_EPSILON:
        return TWO_PI / period
    semi_minor_axis = semi_major_axis * math.sqrt(1.0 - eccentricity * eccentricity)
    return (TWO_PI * semi_major_axis * semi_minor_axis) / (period * distance * distance)


def altitude(primary_position: np.ndarray, primary_radius: float, position: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(position) - np.asarray(primary_position))) - primary_radius


def round_to_days(time: float) -> float:
    """Round a duration to a whole number of days."""
    return round(time / ONE_DAY) * ONE_DAY


# =============================================================================
# ANOMALIES
# =============================================================================

def eccentric_anomaly(eccentricity: float, true_anomaly: float) -> float:
    """Eccentric anomaly E in [0, 2 pi] for an elliptical orbit."""
    cos_anomaly = math.cos(true_anomaly)
    ratio = (eccentricity + cos_anomaly) / (1.0 + eccentricity * cos_anomaly)
    anomaly = math.acos(min(1.0, max(-1.0, ratio)))
    if true_anomaly > PI:
        anomaly = TWO_PI - anomaly
    return anomaly


def hyperbolic_anomaly(eccentricity: float, true_anomaly: float) -> float:
    """Hyperbolic anomaly F, negative on the incoming branch (pi <= nu <= 2 pi)."""
    cos_anomaly = math.cos(true_anomaly)
    ratio = (eccentricity + cos_anomaly) / (1.0 + eccentricity * cos_anomaly)
    anomaly = math.acosh(max(1.0, ratio))
    if PI <= true_anomaly <= TWO_PI:
        anomaly = -anomaly
    return anomaly


def parabolic_anomaly(true_anomaly: float) -> float:
    """Parabolic anomaly D = tan(nu / 2)."""
    return math.tan(true_anomaly / 2.0)


def mean_anomaly(eccentricity: float, eccentric_anomaly_value: float) -> float:
    """Kepler's equation M = E - e sin E."""
    return eccentric_anomaly_value - eccentricity * math.sin(eccentric_anomaly_value)


def true_anomaly_from_eccentric_anomaly(eccentricity: float, eccentric_anomaly_value: float) -> float:
    return 2.0 * math.atan2(
        math.sqrt(1.0 + eccentricity) * math.sin(eccentric_anomaly_value / 2.0),
        math.sqrt(1.0 - eccentricity) * math.cos(eccentric_anomaly_value / 2.0),
    )


# =============================================================================
# LOCAL ORBITAL FRAME
# =============================================================================

def prograde_direction(velocity: np.ndarray) -> np.ndarray:
    return normalized(velocity)


def radial_direction(prograde: np.ndarray) -> np.ndarray:
    """Horizontal direction perpendicular to *prograde* (rotated pi/2 about world up)."""
    return normalized(rotate_about_axis(prograde, WORLD_UP, HALF_PI))


def normal_direction(prograde: np.ndarray) -> np.ndarray:
    return normalized(np.cross(prograde, radial_direction(prograde)))


def angle_to_prograde(
    primary_position: np.ndarray,
    primary_velocity: np.ndarray,
    position: np.ndarray,
) -> float:
    """
    Angle in [0, 2 pi) between a primary's velocity and an object's radius
    vector about that primary.

    The angle decreases as an object on a prograde parking orbit moves along
    it, which the planetary transfer uses to time the ejection burn.
    """
    prograde = prograde_direction(primary_velocity)
    angle = signed_angle_between(
        primary_velocity,
        np.asarray(position) - np.asarray(primary_position),
        normal_direction(prograde),
    )
    if angle < 0.0:
        angle += TWO_PI
    return angle


# =============================================================================
# ROCKET EQUATION
# =============================================================================

def mass_flow_rate(thrust: float, specific_impulse: float) -> float:
    """Propellant mass flow (kg/s) for a thrust (N) and specific impulse (s)."""
    return thrust / (STANDARD_GRAVITY * specific_impulse)


def effective_exhaust_velocity(specific_impulse: float) -> float:
    return specific_impulse * STANDARD_GRAVITY


def rocket_delta_v(effective_exhaust_velocity_value: float, initial_mass: float, final_mass: float) -> float:
    """Tsiolkovsky rocket equation dv = v_e ln(m0 / m1)."""
    return effective_exhaust_velocity_value * math.log(initial_mass / final_mass)
