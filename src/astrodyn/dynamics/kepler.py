"""
===============================================================================
ASTRODYN - Kepler Problem (Universal Variable Propagator)
===============================================================================
Propagates a two-body state by an arbitrary time step, forward or backward,
for every conic type without branching on it.

Universal Kepler equation (x = universal anomaly, z = alpha x^2):

    sqrt(mu) t = (r0 . v0)/sqrt(mu) x^2 C(z) + (1 - alpha r0) x^3 S(z) + r0 x

solved by a Newton iteration kept inside a bracket.  t(x) is strictly
increasing (dt/dx = r / sqrt(mu) > 0), so every evaluation tightens the
bracket and a step that leaves it is replaced by bisection.  The state then
follows from the Lagrange coefficients f, g, f', g'.

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", Algorithm 3.4.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", Algorithm 8.
===============================================================================
"""

import abc
import logging
import math
from typing import Optional, Tuple

import numpy as np

from astrodyn.core.config import SolverSettings
from astrodyn.core.exceptions import NumericNonConvergence
from astrodyn.core.math_utils import (
    is_finite_vector,
    norm,
    rotate_about_axis,
    seeded_rng,
    stumpff_c,
    stumpff_s,
)
from astrodyn.dynamics.state import EMPTY_CONFIG, ObjectConfig, ObjectState

logger = logging.getLogger(__name__)


class KeplerProblemSolver(abc.ABC):
    """Strategy interface: state of an object after a given time on a known orbit."""

    @abc.abstractmethod
    def solve(
        self,
        config: ObjectConfig,
        initial_primary_state: ObjectState,
        initial_state: ObjectState,
        orbit,
        time: float,
        primary_state_at_time: Optional[ObjectState] = None,
    ) -> ObjectState:
        """
        Return the absolute state *time* seconds after *initial_state*.

        Parameters
        ----------
        config : ObjectConfig
            Configuration of the propagated object (own rotation).
        initial_primary_state : ObjectState
            Primary body state at the initial epoch.
        initial_state : ObjectState
            Absolute state of the object at the initial epoch.
        orbit : Orbit
            Orbit of the object at the initial epoch.
        time : float
            Time step (s); may be negative.
        primary_state_at_time : ObjectState, optional
            Primary body state at the final epoch.  Defaults to
            *initial_primary_state*, i.e. a primary at rest.
        """

    def propagate(
        self,
        primary_state: ObjectState,
        state: ObjectState,
        orbit,
        time: float,
        config: ObjectConfig = EMPTY_CONFIG,
    ) -> ObjectState:
        """Propagate with the primary held fixed at *primary_state*."""
        return self.solve(config, primary_state, state, orbit, time)


class UniversalVariableKeplerSolver(KeplerProblemSolver):
    """
    Universal-variable Kepler propagator.

    Args:
        settings: Iteration budget, tolerance and Stumpff series limit.
    """

    def __init__(self, settings: Optional[SolverSettings] = None):
        self.settings = settings if settings is not None else SolverSettings()

    def solve(
        self,
        config: ObjectConfig,
        initial_primary_state: ObjectState,
        initial_state: ObjectState,
        orbit,
        time: float,
        primary_state_at_time: Optional[ObjectState] = None,
    ) -> ObjectState:
        if primary_state_at_time is None:
            primary_state_at_time = initial_primary_state

        if time == 0.0:
            return initial_state

        if initial_state.has_impacted:
            return move_impacted_object(
                orbit.primary_body.config,
                initial_primary_state,
                primary_state_at_time,
                initial_state,
                time,
            )

        r0 = initial_state.position - initial_primary_state.position
        v0 = initial_state.velocity - initial_primary_state.velocity
        r0_length = norm(r0)
        mu = orbit.standard_gravitational_parameter
        sqrt_mu = math.sqrt(mu)

        alpha = (2.0 * mu / r0_length - float(np.dot(v0, v0))) / mu
        if orbit.is_parabolic:
            alpha = 0.0

        x = self._solve_universal_variable(orbit, r0, v0, r0_length, time, sqrt_mu, alpha)
        limit = self.settings.stumpff_series_limit
        x2 = x * x
        z = x2 * alpha
        c = stumpff_c(z, limit)
        s = stumpff_s(z, limit)

        f = 1.0 - (x2 / r0_length) * c
        g = time - (x2 * x / sqrt_mu) * s
        r = f * r0 + g * v0

        r_length = norm(r)
        g_dot = 1.0 - (x2 / r_length) * c
        f_dot = (sqrt_mu / (r0_length * r_length)) * x * (z * s - 1.0)
        v = f_dot * r0 + g_dot * v0

        if not (is_finite_vector(r) and is_finite_vector(v)):
            raise NumericNonConvergence(
                f"Kepler propagation produced a non-finite state (x={x}, z={z})",
            )

        return ObjectState(
            time=initial_state.time + time,
            position=primary_state_at_time.position + r,
            velocity=primary_state_at_time.velocity + v,
            rotation=config.rotation_after(initial_state.rotation, time),
        )

    # ----------------------------------------------------------------
    # Universal anomaly
    # ----------------------------------------------------------------
    def _initial_guess(self, orbit, r0, v0, r0_length, time, sqrt_mu, alpha) -> float:
        direction = math.copysign(1.0, time)
        if orbit.is_bound:
            return sqrt_mu * time * alpha

        if orbit.is_hyperbolic and alpha < 0.0:
            # Vallado, eq. 2-111
            a = 1.0 / alpha
            mu = sqrt_mu * sqrt_mu
            denominator = a * (float(np.dot(r0, v0))
                               + direction * math.sqrt(-mu * a) * (1.0 - r0_length * alpha))
            if denominator != 0.0:
                log_argument = (-2.0 * mu * time) / denominator
                if log_argument > 0.0:
                    guess = direction * math.sqrt(-a) * math.log(log_argument)
                    if math.isfinite(guess):
                        return guess

        return direction * seeded_rng(r0, v0, time).random()

    def _solve_universal_variable(self, orbit, r0, v0, r0_length, time, sqrt_mu, alpha) -> float:
        settings = self.settings
        limit = settings.stumpff_series_limit
        r0_dot_v0 = float(np.dot(r0, v0)) / sqrt_mu
        one_minus_alpha_r0 = 1.0 - r0_length * alpha

        if time > 0.0:
            lower, upper = 0.0, math.inf
        else:
            lower, upper = -math.inf, 0.0

        x = self._initial_guess(orbit, r0, v0, r0_length, time, sqrt_mu, alpha)
        if not (math.isfinite(x) and lower < x < upper):
            x = _bisect(lower, upper)

        residual = math.inf
        for _ in range(settings.kepler_max_iterations):
            x2 = x * x
            z = x2 * alpha
            c = stumpff_c(z, limit)
            s = stumpff_s(z, limit)
            time_n = (r0_dot_v0 * x2 * c + one_minus_alpha_r0 * x2 * x * s + r0_length * x) / sqrt_mu

            if not math.isfinite(time_n):
                # overflowed: |x| is too large
                if x > 0.0:
                    upper = x
                else:
                    lower = x
                x = _bisect(lower, upper)
                continue

            residual = time - time_n
            if abs(residual) <= settings.kepler_tolerance:
                return x

            if residual > 0.0:
                lower = x
            else:
                upper = x
            if upper - lower <= 4.0 * np.finfo(float).eps * max(1.0, abs(x)):
                return x

            dtdx = (x2 * c + r0_dot_v0 * x * (1.0 - z * s) + r0_length * (1.0 - z * c)) / sqrt_mu
            step = x + residual / dtdx if dtdx != 0.0 else math.nan
            if not (math.isfinite(step) and lower < step < upper):
                step = _bisect(lower, upper)
            x = step

        logger.debug("Kepler solver did not converge: time=%.6g residual=%.6g", time, residual)
        raise NumericNonConvergence(
            f"Universal variable did not converge within {settings.kepler_max_iterations} iterations",
            iterations=settings.kepler_max_iterations,
            residual=residual,
        )


def _bisect(lower: float, upper: float) -> float:
    """Bracket midpoint, growing geometrically toward an open (infinite) end."""
    if math.isinf(upper):
        return lower + max(abs(lower), 1.0)
    if math.isinf(lower):
        return upper - max(abs(upper), 1.0)
    return 0.5 * (lower + upper)


# =============================================================================
# HELPERS
# =============================================================================

def move_impacted_object(
    primary_config: ObjectConfig,
    initial_primary_state: ObjectState,
    primary_state_at_time: ObjectState,
    state: ObjectState,
    time: float,
) -> ObjectState:
    """
    Carry an object resting on its primary's surface along with the primary.

    A non-rotating primary just translates the object.  A rotating primary
    also turns the surface offset about its axis and gives the object the
    surface velocity omega x r.
    """
    if primary_config.rotational_period == 0.0:
        moved = state.swap_reference_frame(initial_primary_state, primary_state_at_time)
        return moved.with_time(state.time + time)

    axis = primary_config.axis_of_rotation
    speed = primary_config.rotational_speed
    r = state.position - initial_primary_state.position
    r_next = rotate_about_axis(r, axis, speed * time)
    surface_velocity = np.cross(axis * speed, r_next)

    return ObjectState(
        time=state.time + time,
        position=primary_state_at_time.position + r_next,
        velocity=primary_state_at_time.velocity + surface_velocity,
        rotation=state.rotation,
        has_impacted=state.has_impacted,
    )


def propagate_with_primary(
    solver: KeplerProblemSolver,
    config: ObjectConfig,
    state: ObjectState,
    orbit,
    time: float,
) -> Tuple[ObjectState, ObjectState]:
    """
    Propagate an object and its primary together.

    The primary is itself propagated around its own primary (recursively up
    to the object of reference, which stays where it is).  SOI changes and
    maneuvers are not taken into account.

    Returns:
        (state, primary_state) after *time* seconds.
    """
    primary = orbit.primary_body
    if primary.is_object_of_reference:
        primary_state_at_time = primary.state.with_time(primary.state.time + time)
    else:
        primary_state_at_time = after_time(
            solver, primary.config, primary.state, primary.orbit(), time,
        )

    next_state = solver.solve(config, primary.state, state, orbit, time, primary_state_at_time)
    return next_state, primary_state_at_time


def after_time(
    solver: KeplerProblemSolver,
    config: ObjectConfig,
    state: ObjectState,
    orbit,
    time: float,
) -> ObjectState:
    """State after *time* seconds, with the primary moving on its own orbit."""
    return propagate_with_primary(solver, config, state, orbit, time)[0]
