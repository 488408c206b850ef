"""
Derived quantities of orbits: closest approach between two objects, time
until an unbound object leaves its primary's sphere of influence, and time
until an object hits its primary's surface.

Absent results are returned as ``None``.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from scipy.optimize import minimize_scalar

from astrodyn.core.constants import (
    CLOSEST_APPROACH_DELTA_TIME,
    FULL_REVOLUTION_EPSILON,
    ONE_DAY,
    TWO_PI,
)
from astrodyn.core.math_utils import lerp
from astrodyn.dynamics.formulas import sphere_of_influence, synodic_period, true_anomaly_at
from astrodyn.dynamics.kepler import KeplerProblemSolver
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import Body

logger = logging.getLogger(__name__)

# Step multiplier range of the closest-approach sampler
_MIN_STEP_RATE = 1.0
_MAX_STEP_RATE = 50.0
# Samples per synodic period when the caller passes delta_time=-1
_AUTO_SAMPLES = 2000.0


@dataclass(frozen=True)
class ApproachData:
    """Minimum separation (m) and the absolute time (s) at which it occurs."""
    distance: float
    time: float


def closest_approach(
    kepler_solver: KeplerProblemSolver,
    body1: Body,
    orbit_position1: OrbitPosition,
    body2: Body,
    orbit_position2: OrbitPosition,
    delta_time: float = CLOSEST_APPROACH_DELTA_TIME,
    refine: bool = True,
) -> Optional[ApproachData]:
    """
    Closest approach of two objects orbiting the same primary.

    Both objects are sampled over one synodic period (one day when either
    orbit is unbound).  The step widens, up to 50x, while the separation
    grows, scaled by how fast it grows relative to the fastest closing rate
    seen so far.  With *refine* the best sample is polished by a bounded
    scalar minimization between its neighbouring samples.

    Args:
        kepler_solver: Propagator used for every sample.
        body1, body2: The objects (their configs drive own rotation only).
        orbit_position1, orbit_position2: Orbits and anomalies at the
            primary's current time.
        delta_time: Base sample step (s); -1 selects synodic period / 2000.
        refine: Polish the sampled minimum.

    Returns:
        The approach, or None when the primaries differ or the orbits have
        equal periods.
    """
    orbit1 = orbit_position1.orbit
    orbit2 = orbit_position2.orbit
    if orbit1.primary_body is not orbit2.primary_body:
        logger.debug("Closest approach undefined: %s and %s orbit different primaries",
                     body1.name, body2.name)
        return None

    period = synodic_period(orbit1.period, orbit2.period)
    if period == 0.0:
        return None
    if orbit1.is_unbound or orbit2.is_unbound:
        period = ONE_DAY
    if delta_time == -1:
        delta_time = period / _AUTO_SAMPLES

    primary_state = orbit1.primary_body.state
    start_state1 = orbit_position1.calculate_state(primary_state)
    start_state2 = orbit_position2.calculate_state(primary_state)

    def distance_at(t: float) -> float:
        state1 = kepler_solver.solve(body1.config, primary_state, start_state1, orbit1, t)
        state2 = kepler_solver.solve(body2.config, primary_state, start_state2, orbit2, t)
        return state1.distance(state2)

    min_distance = float('inf')
    min_time = 0.0
    window: Tuple[float, Optional[float]] = (0.0, None)
    previous_distance = None
    previous_time = 0.0
    max_change_rate = 0.0

    t = 0.0
    while t <= period:
        distance = distance_at(t)
        if distance < min_distance:
            min_distance, min_time = distance, t
            window = (previous_time, None)
        elif window[1] is None:
            window = (window[0], t)

        step_rate = _MIN_STEP_RATE
        if previous_distance is not None:
            change_rate = (previous_distance - distance) / delta_time
            max_change_rate = max(max_change_rate, change_rate)
            if change_rate < 0.0:
                if max_change_rate > 0.0:
                    step_rate = lerp(_MIN_STEP_RATE, _MAX_STEP_RATE,
                                     min(1.0, abs(change_rate) / max_change_rate))
                else:
                    step_rate = _MAX_STEP_RATE

        previous_distance, previous_time = distance, t
        t += step_rate * delta_time

    if refine:
        low, high = window
        if high is None:
            high = min(period, min_time + delta_time)
        if high > low:
            result = minimize_scalar(distance_at, bounds=(low, high), method='bounded')
            if result.success and result.fun < min_distance:
                min_distance, min_time = float(result.fun), float(result.x)

    return ApproachData(distance=min_distance, time=primary_state.time + min_time)


def sphere_of_influence_radius(body: Body) -> float:
    """SOI radius of *body* with respect to its own primary."""
    if body.is_object_of_reference:
        raise ValueError(f"Body '{body.name}' has no primary and hence no sphere of influence")
    orbit = OrbitPosition.from_body(body).orbit
    return sphere_of_influence(orbit.semi_major_axis, body.mass, body.primary_body.mass)


def _nearest_anomaly(true_anomaly: float, candidates: Tuple[float, float]) -> float:
    first, second = candidates
    if abs(true_anomaly - first) < abs(true_anomaly - second):
        return first
    return second


def time_to_leave_soi(orbit_position: OrbitPosition) -> Optional[float]:
    """
    Time until an object on an unbound orbit crosses its primary's SOI.

    Returns:
        The time (s), or None for bound orbits, for a primary without SOI,
        when the conic never reaches the SOI radius, or when the crossing
        lies in the past.
    """
    orbit = orbit_position.orbit
    if orbit.is_bound or orbit.primary_body.is_object_of_reference:
        return None

    # close to a full revolution: measure from periapsis to avoid a negative time
    if TWO_PI - orbit_position.true_anomaly <= FULL_REVOLUTION_EPSILON:
        orbit_position = orbit_position.with_true_anomaly(0.0)

    soi = sphere_of_influence_radius(orbit.primary_body)
    roots = true_anomaly_at(soi, orbit.parameter, orbit.eccentricity)
    if roots is None:
        return None

    time = orbit_position.time_to_true_anomaly(_nearest_anomaly(orbit_position.true_anomaly, roots))
    if time > 0.0:
        return time
    return None


def time_to_impact(orbit_position: OrbitPosition) -> Optional[float]:
    """
    Time until the object reaches its primary's surface.

    Returns:
        The time (s), or None when the periapsis clears the surface or the
        crossing lies in the past.
    """
    orbit = orbit_position.orbit
    primary = orbit.primary_body
    if not primary.has_radius or orbit.periapsis > primary.radius:
        return None

    roots = true_anomaly_at(primary.radius, orbit.parameter, orbit.eccentricity)
    if roots is None:
        return None

    time = orbit_position.time_to_true_anomaly(_nearest_anomaly(orbit_position.true_anomaly, roots))
    if time > 0.0:
        return time
    return None
