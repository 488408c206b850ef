"""
===============================================================================
ASTRODYN - Planetary Transfer Pipeline
===============================================================================
Transfer of a spacecraft parked around one planet to another planet of the
same star, as an ordered sequence of stages:

    1. HELIOCENTRIC_LEG      -- intercept search planet -> target around the
                                star (or a Hohmann estimate, or a manual leg)
    2. INJECTION_BURN        -- prograde burn from the parking orbit onto the
                                escape hyperbola whose excess speed is the
                                heliocentric delta-v, timed to the ejection
                                angle
    3. SOI_EXIT              -- state where the hyperbola leaves the planet's
                                sphere of influence, and the target there
    4. MIDCOURSE_CORRECTION  -- narrower intercept search from the SOI exit,
                                stopped early below the allowed delta-v

Each stage consumes the previous stage's result; running a stage before its
predecessor raises RuntimeError.  Only the grid searches of stages 1 and 4
run in parallel.
===============================================================================
"""

import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from astrodyn.core.config import DEFAULT_CONFIG, EngineConfig
from astrodyn.core.constants import TWO_PI
from astrodyn.core.exceptions import NoFeasibleSolution
from astrodyn.core.math_utils import norm
from astrodyn.dynamics.calculators import time_to_leave_soi
from astrodyn.dynamics.formulas import angle_to_prograde, angular_velocity, round_to_days, synodic_period
from astrodyn.dynamics.kepler import (
    KeplerProblemSolver,
    UniversalVariableKeplerSolver,
    after_time,
    propagate_with_primary,
)
from astrodyn.dynamics.lambert import GaussProblemSolver, UniversalVariableLambertSolver
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import Body, ObjectState
from astrodyn.guidance.hohmann import HohmannTransferOrbit
from astrodyn.guidance.intercept import InterceptManeuver, PossibleLaunch
from astrodyn.guidance.maneuver import OrbitalManeuver, OrbitalManeuvers, current_time

logger = logging.getLogger(__name__)


class TransferStage(enum.IntEnum):
    CREATED = 0
    HELIOCENTRIC_LEG = 1
    INJECTION_BURN = 2
    SOI_EXIT = 3
    MIDCOURSE_CORRECTION = 4


# =============================================================================
# STAGE RESULTS
# =============================================================================

@dataclass(frozen=True)
class HeliocentricLeg:
    """Departure time from now (s), coast time (s) and heliocentric delta-v (m/s)."""
    departure_time: float
    coast_time: float
    delta_v: float


@dataclass(frozen=True, eq=False)
class InjectionBurn:
    """
    Escape burn from the parking orbit.

    Attributes
    ----------
    time : float
        Burn time relative to the pipeline epoch (s).
    delta_velocity : np.ndarray
        Burn vector, along the velocity relative to the planet.
    state : ObjectState
        Spacecraft state just before the burn.
    primary_state : ObjectState
        Planet state at the burn.
    """
    time: float
    delta_velocity: np.ndarray
    state: ObjectState
    primary_state: ObjectState

    @property
    def delta_v(self) -> float:
        return norm(self.delta_velocity)


@dataclass(frozen=True, eq=False)
class SoiExit:
    """
    Spacecraft leaving the planet's sphere of influence.

    Attributes
    ----------
    time : float
        Time after the injection burn (s).
    state : ObjectState
        Absolute spacecraft state at the exit.
    orbit_position : OrbitPosition
        Heliocentric orbit of the spacecraft from the exit state.
    target_orbit_position : OrbitPosition
        Heliocentric position of the target at the exit.
    """
    time: float
    state: ObjectState
    orbit_position: OrbitPosition
    target_orbit_position: OrbitPosition


@dataclass(frozen=True, eq=False)
class MidcourseCorrection:
    """Correction burn ``time`` seconds after the SOI exit, arriving ``duration`` later."""
    time: float
    duration: float
    delta_velocity: np.ndarray

    @property
    def delta_v(self) -> float:
        return norm(self.delta_velocity)


# =============================================================================
# PIPELINE
# =============================================================================

class PlanetaryTransfer:
    """
    Staged planetary transfer planner.

    Typical usage:
        transfer = PlanetaryTransfer(spacecraft, mars)
        maneuvers = transfer.compute()

    or stage by stage:
        transfer.use_hohmann_heliocentric_leg()
        transfer.compute_injection_burn()
        transfer.compute_soi_exit()
        transfer.compute_midcourse_correction()
        maneuvers = transfer.compute_maneuvers()
    """

    def __init__(
        self,
        body: Body,
        target: Body,
        config: Optional[EngineConfig] = None,
        kepler_solver: Optional[KeplerProblemSolver] = None,
        gauss_solver: Optional[GaussProblemSolver] = None,
        now: Optional[float] = None,
    ):
        """
        Args:
            body: Spacecraft orbiting a planet.
            target: Destination planet, orbiting the same star.
            config: Search windows, solver settings and worker count.
            kepler_solver: Propagator; built from ``config.solver`` by default.
            gauss_solver: Lambert solver; built from ``config.solver`` by default.
            now: Absolute time of the pipeline epoch; defaults to the body's
                 state time.

        Raises:
            ValueError: If the spacecraft is not on a bound orbit around a planet,
                the target is not a planet, is the spacecraft's own planet, or the
                two planets orbit different stars.
        """
        self.config = config if config is not None else DEFAULT_CONFIG
        self.kepler_solver = kepler_solver or UniversalVariableKeplerSolver(self.config.solver)
        self.gauss_solver = gauss_solver or UniversalVariableLambertSolver(self.config.solver)

        planet = body.primary_body
        if planet is None or planet.is_object_of_reference:
            raise ValueError(f"'{body.name}' must orbit a planet")
        if target.is_object_of_reference or not target.primary_body.is_object_of_reference:
            raise ValueError(f"The target '{target.name}' must be a planet")
        if target is planet:
            raise ValueError(f"The target '{target.name}' cannot be the current planet")
        if target.primary_body is not planet.primary_body:
            raise ValueError(f"'{planet.name}' and '{target.name}' orbit different stars")

        self.body = body
        self.target = target
        self.planet = planet
        self.star = planet.primary_body
        self.now = current_time(body, now)

        self.planet_orbit_position = planet.orbit_position()
        self.target_orbit_position = target.orbit_position()
        self.orbit_position = body.orbit_position()
        if self.orbit_position.orbit.is_unbound:
            raise ValueError(f"'{body.name}' must be on a bound parking orbit around '{planet.name}'")

        self.stage = TransferStage.CREATED
        self.possible_departure_burns: List[PossibleLaunch] = []
        self.heliocentric_leg: Optional[HeliocentricLeg] = None
        self.injection_burn: Optional[InjectionBurn] = None
        self.soi_exit: Optional[SoiExit] = None
        self.midcourse_correction: Optional[MidcourseCorrection] = None

    def _enter(self, stage: TransferStage) -> None:
        if self.stage < stage - 1:
            raise RuntimeError(
                f"Stage {stage.name} requires {TransferStage(stage - 1).name}, "
                f"current stage is {self.stage.name}"
            )

    def _completed(self, stage: TransferStage) -> None:
        self.stage = stage
        # later results no longer follow from this one
        if stage < TransferStage.INJECTION_BURN:
            self.injection_burn = None
        if stage < TransferStage.SOI_EXIT:
            self.soi_exit = None
        if stage < TransferStage.MIDCOURSE_CORRECTION:
            self.midcourse_correction = None

    # ----------------------------------------------------------------
    # Stage 1: heliocentric leg
    # ----------------------------------------------------------------
    def compute_heliocentric_leg(self) -> HeliocentricLeg:
        """
        Intercept search between the two planets around the star.

        Durations span the day-rounded Hohmann coast time scaled by the coast
        ratios; launches span the day-rounded synodic period scaled by the
        launch ratio.  Every feasible cell is kept in
        :attr:`possible_departure_burns`.

        Raises:
            NoFeasibleSolution: If the search finds nothing.
        """
        settings = self.config.transfer
        planet_orbit = self.planet_orbit_position.orbit
        target_orbit = self.target_orbit_position.orbit

        hohmann_coast_time = round_to_days(HohmannTransferOrbit.calculate_burn(
            self.star.standard_gravitational_parameter,
            planet_orbit.semi_major_axis,
            target_orbit.semi_major_axis,
        ).coast_time)
        synodic = synodic_period(planet_orbit.period, target_orbit.period)

        search = InterceptManeuver(
            self.star,
            self.planet.config,
            self.planet.state,
            self.planet_orbit_position,
            self.target.config,
            self.target_orbit_position,
            hohmann_coast_time * settings.heliocentric_min_coast_ratio,
            hohmann_coast_time * settings.heliocentric_max_coast_ratio,
            0.0,
            round_to_days(synodic) * settings.heliocentric_max_launch_ratio,
            delta_time=settings.heliocentric_delta_time,
            list_possible_launches=True,
            settings=self.config.intercept,
            kepler_solver=self.kepler_solver,
            gauss_solver=self.gauss_solver,
        )
        best = search.compute()
        self.possible_departure_burns = search.possible_launches
        return self.set_heliocentric_leg(best.start_time, best.duration, best.delta_v)

    def use_hohmann_heliocentric_leg(self) -> HeliocentricLeg:
        """Heliocentric leg from the Hohmann alignment wait and first burn."""
        wait = HohmannTransferOrbit.time_to_alignment(self.planet_orbit_position, self.target_orbit_position)
        burns = HohmannTransferOrbit.calculate_burn(
            self.star.standard_gravitational_parameter,
            self.planet_orbit_position.orbit.semi_major_axis,
            self.target_orbit_position.orbit.semi_major_axis,
        )
        return self.set_heliocentric_leg(wait, burns.coast_time, abs(burns.first_burn))

    def set_heliocentric_leg(self, departure_time: float, coast_time: float, delta_v: float) -> HeliocentricLeg:
        """Use a known heliocentric leg."""
        self.heliocentric_leg = HeliocentricLeg(float(departure_time), float(coast_time), float(delta_v))
        self._completed(TransferStage.HELIOCENTRIC_LEG)
        logger.debug("Heliocentric leg: depart in %.1f s, coast %.1f s, dv %.3f m/s",
                     departure_time, coast_time, delta_v)
        return self.heliocentric_leg

    # ----------------------------------------------------------------
    # Stage 2: injection burn
    # ----------------------------------------------------------------
    def compute_injection_burn(self) -> InjectionBurn:
        """
        Prograde burn onto the escape hyperbola.

        The speed at the parking radius r0 that leaves the planet with the
        heliocentric delta-v as excess speed is

            v0 = sqrt(v_inf^2 + 2 mu / r0)
        """
        self._enter(TransferStage.INJECTION_BURN)
        leg = self.heliocentric_leg
        state = self.body.state
        planet_state = self.planet.state

        r0 = state.distance(planet_state)
        orbital_speed = norm(state.velocity - planet_state.velocity)
        v0 = math.sqrt(leg.delta_v ** 2 + 2.0 * self.planet.standard_gravitational_parameter / r0)
        injection_time = self._injection_time(leg.departure_time, r0, v0)

        injection_state, injection_primary_state = propagate_with_primary(
            self.kepler_solver, self.body.config, state, self.orbit_position.orbit, injection_time,
        )
        direction = injection_state.make_relative(injection_primary_state).prograde

        self.injection_burn = InjectionBurn(
            time=injection_time,
            delta_velocity=direction * (v0 - orbital_speed),
            state=injection_state,
            primary_state=injection_primary_state,
        )
        self._completed(TransferStage.INJECTION_BURN)
        logger.debug("Injection burn at %.1f s: %.3f m/s (v0=%.3f m/s at r0=%.0f m)",
                     injection_time, self.injection_burn.delta_v, v0, r0)
        return self.injection_burn

    def _injection_time(self, alignment_time: float, distance: float, speed: float) -> float:
        """
        Time of the injection burn: the first moment after which the angle
        between the planet's direction of travel and the spacecraft's radius
        vector equals the ejection angle of the escape hyperbola,

            nu_inf = acos(-1/e),   e = sqrt(1 + 2 E h^2 / mu^2)

        corrected from the heliocentric departure time with the parking
        orbit's angular rate.
        """
        mu = self.planet.standard_gravitational_parameter
        energy = 0.5 * speed * speed - mu / distance
        h = distance * speed
        e = math.sqrt(1.0 + 2.0 * energy * h * h / (mu * mu))
        required_angle = math.acos(-1.0 / e)
        parking = self.orbit_position.orbit
        angular_rate = angular_velocity(parking.semi_major_axis, parking.eccentricity, parking.period, distance)

        # inward transfers leave against the planet's motion
        direction = 1.0
        if self.target_orbit_position.orbit.semi_major_axis < self.planet_orbit_position.orbit.semi_major_axis:
            direction = -1.0

        primary_state = self.kepler_solver.solve(
            self.planet.config, self.star.state, self.planet.state,
            self.planet_orbit_position.orbit, alignment_time,
        )
        state = self.kepler_solver.solve(
            self.body.config, self.planet.state, self.body.state,
            self.orbit_position.orbit, alignment_time, primary_state,
        )
        current_angle = angle_to_prograde(primary_state.position, primary_state.velocity * direction, state.position)

        injection_time = alignment_time + (current_angle - required_angle) / angular_rate
        if injection_time < 0.0:
            injection_time += TWO_PI / angular_rate
        return injection_time

    # ----------------------------------------------------------------
    # Stage 3: SOI exit
    # ----------------------------------------------------------------
    def compute_soi_exit(self) -> SoiExit:
        """
        Propagate the escape hyperbola to the planet's SOI boundary.

        Raises:
            NoFeasibleSolution: If the hyperbola never leaves the SOI.
        """
        self._enter(TransferStage.SOI_EXIT)
        injection = self.injection_burn
        burn_state = injection.state.add(velocity=injection.delta_velocity)
        escape_orbit_position = OrbitPosition.from_state(
            self.planet, injection.primary_state, burn_state,
        ).with_true_anomaly(0.0)

        exit_time = time_to_leave_soi(escape_orbit_position)
        if exit_time is None:
            raise NoFeasibleSolution(
                f"The injection orbit (e={escape_orbit_position.orbit.eccentricity:.6f}) "
                f"does not leave the sphere of influence of {self.planet.name}"
            )

        primary_exit_state = self.kepler_solver.solve(
            self.planet.config, self.star.state, injection.primary_state,
            self.planet_orbit_position.orbit, exit_time,
        )
        exit_state = self.kepler_solver.solve(
            self.body.config, injection.primary_state, burn_state,
            escape_orbit_position.orbit, exit_time, primary_exit_state,
        )
        target_state = after_time(
            self.kepler_solver, self.target.config, self.target.state,
            self.target_orbit_position.orbit, injection.time + exit_time,
        )

        self.soi_exit = SoiExit(
            time=exit_time,
            state=exit_state,
            orbit_position=OrbitPosition.from_state(self.star, self.star.state, exit_state),
            target_orbit_position=OrbitPosition.from_state(self.star, self.star.state, target_state),
        )
        self._completed(TransferStage.SOI_EXIT)
        logger.debug("SOI exit %.1f s after injection, heliocentric e=%.6f",
                     exit_time, self.soi_exit.orbit_position.orbit.eccentricity)
        return self.soi_exit

    # ----------------------------------------------------------------
    # Stage 4: midcourse correction
    # ----------------------------------------------------------------
    def compute_midcourse_correction(self) -> MidcourseCorrection:
        """
        Intercept search from the SOI exit state to the target.

        Windows scale the day-rounded heliocentric coast time; the search
        stops at the first cell below the allowed midcourse delta-v.

        Raises:
            NoFeasibleSolution: If the search finds nothing.
        """
        self._enter(TransferStage.MIDCOURSE_CORRECTION)
        settings = self.config.transfer
        soi_exit = self.soi_exit
        coast_time = round_to_days(self.heliocentric_leg.coast_time)

        search = InterceptManeuver(
            self.star,
            self.body.config,
            soi_exit.state,
            soi_exit.orbit_position,
            self.target.config,
            soi_exit.target_orbit_position,
            coast_time * settings.midcourse_min_coast_ratio,
            coast_time * settings.midcourse_max_coast_ratio,
            0.0,
            coast_time * settings.midcourse_max_launch_ratio,
            delta_time=settings.midcourse_delta_time,
            allowed_delta_v=settings.midcourse_allowed_delta_v,
            settings=self.config.intercept,
            kepler_solver=self.kepler_solver,
            gauss_solver=self.gauss_solver,
        )
        best = search.compute()
        self.midcourse_correction = MidcourseCorrection(best.start_time, best.duration, best.delta_velocity)
        self._completed(TransferStage.MIDCOURSE_CORRECTION)
        logger.debug("Midcourse correction %.1f s after SOI exit: %.3f m/s",
                     best.start_time, best.delta_v)
        return self.midcourse_correction

    # ----------------------------------------------------------------
    # Assembly
    # ----------------------------------------------------------------
    def compute_maneuvers(self) -> OrbitalManeuvers:
        """Injection burn and midcourse correction at their absolute times."""
        if self.stage < TransferStage.MIDCOURSE_CORRECTION:
            raise RuntimeError(f"The transfer is incomplete, current stage is {self.stage.name}")

        injection_time = self.now + self.injection_burn.time
        midcourse_time = injection_time + self.soi_exit.time + self.midcourse_correction.time
        return OrbitalManeuvers.sequence(
            OrbitalManeuver(injection_time, self.injection_burn.delta_velocity),
            OrbitalManeuver(midcourse_time, self.midcourse_correction.delta_velocity),
        )

    def compute(self, use_hohmann_heliocentric: bool = False) -> OrbitalManeuvers:
        """Run every stage in order and return the two maneuvers."""
        start = time.perf_counter()
        if use_hohmann_heliocentric:
            self.use_hohmann_heliocentric_leg()
        else:
            self.compute_heliocentric_leg()
        self.compute_injection_burn()
        self.compute_soi_exit()
        self.compute_midcourse_correction()
        maneuvers = self.compute_maneuvers()

        logger.debug("Computed transfer %s -> %s in %.2f s, total dv %.3f m/s",
                     self.planet.name, self.target.name, time.perf_counter() - start,
                     maneuvers.total_delta_v)
        return maneuvers


def interplanetary_transfer(
    body: Body,
    target: Body,
    config: Optional[EngineConfig] = None,
    now: Optional[float] = None,
    use_hohmann_heliocentric: bool = False,
    kepler_solver: Optional[KeplerProblemSolver] = None,
    gauss_solver: Optional[GaussProblemSolver] = None,
) -> Tuple[OrbitalManeuvers, List[PossibleLaunch]]:
    """
    Plan a transfer of *body* to the planet *target*.

    Returns:
        (maneuvers, possible_departure_burns), the latter being every
        feasible cell of the heliocentric search (empty for a Hohmann leg).
    """
    transfer = PlanetaryTransfer(body, target, config, kepler_solver, gauss_solver, now)
    maneuvers = transfer.compute(use_hohmann_heliocentric)
    return maneuvers, transfer.possible_departure_burns
