"""
===============================================================================
ASTRODYN - Gauss / Lambert Problem (Universal Variables)
===============================================================================
Given two positions about a primary body and the time of flight between
them, find the velocities of the two-body arc that connects them.

Universal-variable formulation (Bate, Mueller & White, ch. 5.3):

    A  = sign(pi - dnu) sqrt(r1 r2 (1 + cos dnu))
    y  = r1 + r2 - A (1 - z S(z)) / sqrt(C(z))
    x  = sqrt(y / C(z))
    sqrt(mu) t(z) = x^3 S(z) + A sqrt(y)

t(z) is increasing in z on (-inf, 4 pi^2), so the Newton iteration on z is
kept inside a bracket.  Steps leaving the bracket, a negative y, and a
periodic restart all draw a new z from a generator seeded with the call
inputs, which keeps results reproducible across threads.

The velocities follow from the Lagrange coefficients

    f = 1 - y/r1,   g = A sqrt(y/mu),   g' = 1 - y/r2
    v1 = (r2 - f r1) / g,   v2 = (g' r2 - r1) / g
===============================================================================
"""

import abc
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from astrodyn.core.config import SolverSettings
from astrodyn.core.constants import PI, TWO_PI
from astrodyn.core.exceptions import NumericNonConvergence
from astrodyn.core.math_utils import (
    angle_between,
    is_finite_vector,
    norm,
    seeded_rng,
    stumpff_c,
    stumpff_derivatives,
    stumpff_s,
)
from astrodyn.dynamics.state import Body, ObjectState

logger = logging.getLogger(__name__)

# Upper end of the z domain: C(4 pi^2) = 0
_MAX_Z = TWO_PI * TWO_PI


@dataclass(frozen=True, eq=False)
class GaussProblemResult:
    """Absolute velocities at the start and end of a transfer arc."""
    velocity1: np.ndarray
    velocity2: np.ndarray


class GaussProblemSolver(abc.ABC):
    """Strategy interface for Lambert/Gauss solvers."""

    @abc.abstractmethod
    def solve(
        self,
        primary_body: Body,
        primary_state1: ObjectState,
        primary_state2: ObjectState,
        position1: np.ndarray,
        position2: np.ndarray,
        time: float,
        short_way: bool = True,
    ) -> GaussProblemResult:
        """
        Velocities at *position1* and *position2* for a flight of *time* seconds.

        Parameters
        ----------
        primary_body : Body
            Body at the focus of the transfer.
        primary_state1, primary_state2 : ObjectState
            Primary body states at departure and at arrival.
        position1, position2 : np.ndarray
            Absolute departure and arrival positions.
        time : float
            Time of flight (s), strictly positive.
        short_way : bool
            Transfer through the angle below pi when True, its complement
            otherwise.
        """


class UniversalVariableLambertSolver(GaussProblemSolver):
    """Universal-variable Lambert solver with a bracketed, seeded Newton iteration."""

    def __init__(self, settings: Optional[SolverSettings] = None):
        self.settings = settings if settings is not None else SolverSettings()

    def solve(
        self,
        primary_body: Body,
        primary_state1: ObjectState,
        primary_state2: ObjectState,
        position1: np.ndarray,
        position2: np.ndarray,
        time: float,
        short_way: bool = True,
    ) -> GaussProblemResult:
        if not time > 0.0:
            raise ValueError(f"Time of flight must be positive, got {time}")

        r1 = np.asarray(position1, dtype=np.float64) - primary_state1.position
        r2 = np.asarray(position2, dtype=np.float64) - primary_state2.position
        r1_length = norm(r1)
        r2_length = norm(r2)
        mu = primary_body.standard_gravitational_parameter

        delta_anomaly = angle_between(r1, r2)
        if not short_way:
            delta_anomaly = TWO_PI - delta_anomaly

        a = math.sqrt(max(0.0, r1_length * r2_length * (1.0 + math.cos(delta_anomaly))))
        if delta_anomaly > PI:
            a = -a
        elif delta_anomaly == PI:
            a = 0.0
        if a == 0.0:
            raise NumericNonConvergence("Transfer angle of pi: the transfer plane is undefined")

        rng = seeded_rng(r1, r2, time, delta_anomaly)
        z = self._solve_for_z(delta_anomaly, time, math.sqrt(mu), r1_length, r2_length, a, rng)

        limit = self.settings.stumpff_series_limit
        y = _y(r1_length, r2_length, z, stumpff_s(z, limit), stumpff_c(z, limit), a)
        f = 1.0 - y / r1_length
        g = a * math.sqrt(y / mu)
        g_dot = 1.0 - y / r2_length

        v1 = (r2 - f * r1) / g
        v2 = (g_dot * r2 - r1) / g
        if not (is_finite_vector(v1) and is_finite_vector(v2)):
            raise NumericNonConvergence(f"Lambert solution is not finite (z={z}, y={y})")

        return GaussProblemResult(primary_state1.velocity + v1, primary_state2.velocity + v2)

    def _solve_for_z(self, delta_anomaly, time, sqrt_mu, r1_length, r2_length, a, rng) -> float:
        settings = self.settings
        limit = settings.stumpff_series_limit

        def sample(lower, upper):
            low = lower if math.isfinite(lower) else min(-_MAX_Z, upper - _MAX_Z)
            return float(rng.uniform(low, upper))

        lower, upper = -math.inf, _MAX_Z
        z = min(delta_anomaly * delta_anomaly, 0.999 * _MAX_Z)
        residual = math.inf

        for iteration in range(settings.lambert_max_iterations):
            if iteration > 0 and iteration % settings.lambert_reseed_interval == 0:
                z = sample(lower, upper)

            s = stumpff_s(z, limit)
            c = stumpff_c(z, limit)
            y = _y(r1_length, r2_length, z, s, c, a)

            if not (math.isfinite(y) and y >= 0.0):
                # y grows with z: everything below this z is infeasible too
                lower = max(lower, z)
                z = sample(lower, upper)
                continue

            x = math.sqrt(y / c)
            sqrt_y = math.sqrt(y)
            time_n = (x * x * x * s + a * sqrt_y) / sqrt_mu
            if not math.isfinite(time_n):
                lower = max(lower, z)
                z = sample(lower, upper)
                continue

            residual = time - time_n
            if abs(residual) <= settings.lambert_tolerance:
                return z

            if residual > 0.0:
                lower = max(lower, z)
            else:
                upper = min(upper, z)
            if upper - lower <= 4.0 * np.finfo(float).eps * max(1.0, abs(z)):
                return z

            s_prime, c_prime = stumpff_derivatives(z, c, s, limit)
            dtdz = (x * x * x * (s_prime - (3.0 * s * c_prime) / (2.0 * c))
                    + (a / 8.0) * ((3.0 * s * sqrt_y) / c + a / x)) / sqrt_mu
            step = z + residual / dtdz if dtdz != 0.0 and x != 0.0 else math.nan
            if not (math.isfinite(step) and lower < step < upper):
                step = 0.5 * (lower + upper) if math.isfinite(lower) else sample(lower, upper)
            z = step

        logger.debug("Lambert solver did not converge: time=%.6g residual=%.6g", time, residual)
        raise NumericNonConvergence(
            f"The Gauss problem did not converge within {settings.lambert_max_iterations} iterations",
            iterations=settings.lambert_max_iterations,
            residual=residual,
        )


def _y(r1_length: float, r2_length: float, z: float, s: float, c: float, a: float) -> float:
    return r1_length + r2_length - (a * (1.0 - z * s)) / math.sqrt(c)
