"""
===============================================================================
ASTRODYN - Intercept Search
===============================================================================
Grid search over (launch time, transfer duration) for the cheapest transfer
from an object to a target orbiting the same primary.

Per grid cell:
    1. propagate the object, the target and the primary to the launch time
       (launch states are shared by every duration of a launch time);
    2. propagate the target and the primary to launch + duration;
    3. solve Lambert's problem along the short and the long way;
    4. keep the cheaper branch that passes the launch check: an object
       resting on the primary's surface must not hit the surface again in
       the first moments of the transfer.

Cells whose solvers fail are skipped.  The launch axis is split across
workers (see :mod:`astrodyn.performance.parallel`) and the feasible cells are
merged with the deterministic key (|dv|, launch time, duration).  When an
allowed delta-v is given, the search stops at the first cell in grid order at
or below it, whatever the worker count.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np

from astrodyn.core.config import InterceptSettings
from astrodyn.core.exceptions import NoFeasibleSolution, NumericNonConvergence
from astrodyn.core.math_utils import is_finite_vector, norm, sphere_intersection
from astrodyn.dynamics.kepler import KeplerProblemSolver, UniversalVariableKeplerSolver
from astrodyn.dynamics.lambert import GaussProblemSolver, UniversalVariableLambertSolver
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import Body, ObjectConfig, ObjectState
from astrodyn.guidance.maneuver import OrbitalManeuver, OrbitalManeuvers
from astrodyn.performance.parallel import ChunkCancelToken, ParallelSearch

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PossibleLaunch:
    """
    A feasible grid cell.

    Attributes
    ----------
    start_time : float
        Launch time, relative to the search epoch (s).
    duration : float
        Transfer duration (s).
    delta_velocity : np.ndarray
        Departure burn (m/s, world frame).
    short_way : bool
        Lambert branch of the transfer.
    arrival_velocity : np.ndarray
        Absolute velocity on the transfer arc at arrival.
    """
    start_time: float
    duration: float
    delta_velocity: np.ndarray
    short_way: bool = True
    arrival_velocity: Optional[np.ndarray] = None

    @property
    def arrival_time(self) -> float:
        return self.start_time + self.duration

    @property
    def delta_v(self) -> float:
        return norm(self.delta_velocity)


def _search_key(launch: PossibleLaunch):
    return launch.delta_v, launch.start_time, launch.duration


def time_grid(minimum: float, maximum: float, step: float) -> List[float]:
    """Inclusive grid minimum + k * step up to *maximum*."""
    if step <= 0.0:
        raise ValueError(f"Grid step must be positive, got {step}")
    if maximum < minimum:
        return []
    count = int(math.floor((maximum - minimum) / step + 1e-9)) + 1
    return [minimum + index * step for index in range(count)]


class InterceptManeuver:
    """
    Intercept search between an object and a target around a common primary.

    Parameters
    ----------
    primary_body : Body
        Common primary of the object and the target.
    config : ObjectConfig
        Configuration of the object (its radius is used by the launch check).
    state : ObjectState
        Absolute state of the object at the search epoch.  An impacted state
        marks a launch from the primary's surface.
    orbit_position : OrbitPosition
        Orbit of the object at the search epoch.
    target_config : ObjectConfig
        Configuration of the target.
    target_orbit_position : OrbitPosition
        Orbit and anomaly of the target at the search epoch.
    min_intercept_time, max_intercept_time : float
        Transfer duration window (s).
    min_launch_time, max_launch_time : float
        Launch window relative to the search epoch (s).
    delta_time : float, optional
        Grid step of both axes; defaults to ``settings.delta_time``.
    allowed_delta_v : float, optional
        Stop searching once a cell at or below this delta-v is found.
    list_possible_launches : bool
        Collect every feasible cell in :attr:`possible_launches`.
    observer : callable, optional
        Called with every feasible cell, in grid order, after the search.
    settings : InterceptSettings, optional
        Launch-check window and worker count.
    kepler_solver, gauss_solver : optional
        Solver strategies; universal-variable solvers by default.
    """

    def __init__(
        self,
        primary_body: Body,
        config: ObjectConfig,
        state: ObjectState,
        orbit_position: OrbitPosition,
        target_config: ObjectConfig,
        target_orbit_position: OrbitPosition,
        min_intercept_time: float,
        max_intercept_time: float,
        min_launch_time: float,
        max_launch_time: float,
        delta_time: Optional[float] = None,
        allowed_delta_v: Optional[float] = None,
        list_possible_launches: bool = False,
        observer: Optional[Callable[[PossibleLaunch], None]] = None,
        settings: Optional[InterceptSettings] = None,
        kepler_solver: Optional[KeplerProblemSolver] = None,
        gauss_solver: Optional[GaussProblemSolver] = None,
    ):
        self.primary_body = primary_body
        self.config = config
        self.state = state
        self.orbit_position = orbit_position
        self.target_config = target_config
        self.target_orbit_position = target_orbit_position
        self.min_intercept_time = min_intercept_time
        self.max_intercept_time = max_intercept_time
        self.min_launch_time = min_launch_time
        self.max_launch_time = max_launch_time
        self.settings = settings if settings is not None else InterceptSettings()
        self.delta_time = delta_time if delta_time is not None else self.settings.delta_time
        self.allowed_delta_v = allowed_delta_v
        self.list_possible_launches = list_possible_launches
        self.observer = observer
        self.kepler_solver = kepler_solver if kepler_solver is not None else UniversalVariableKeplerSolver()
        self.gauss_solver = gauss_solver if gauss_solver is not None else UniversalVariableLambertSolver()

        self.possible_launches: List[PossibleLaunch] = []

        self._stationary = state.has_impacted
        self._primary_initial = primary_body.state
        self._primary_orbit = None if primary_body.is_object_of_reference else primary_body.orbit()
        self._target_initial = target_orbit_position.calculate_state(self._primary_initial)

    # ----------------------------------------------------------------
    # Search
    # ----------------------------------------------------------------
    def compute(self) -> PossibleLaunch:
        """
        Run the search and return the cheapest feasible cell.

        Raises:
            NoFeasibleSolution: If no cell is both solvable and valid.
        """
        launch_times = time_grid(self.min_launch_time, self.max_launch_time, self.delta_time)
        durations = [duration for duration in
                     time_grid(self.min_intercept_time, self.max_intercept_time, self.delta_time)
                     if duration > 0.0]
        logger.debug("Intercept search: %d launch times x %d durations, step %.1f s",
                     len(launch_times), len(durations), self.delta_time)

        self.possible_launches = []
        if not launch_times or not durations:
            raise NoFeasibleSolution("Empty intercept search window")

        per_chunk = ParallelSearch(self.settings.num_workers).map_chunks(
            lambda chunk, token: self._search_chunk(chunk, durations, token),
            launch_times,
        )
        feasible = [launch for chunk in per_chunk for launch in chunk]
        if not feasible:
            raise NoFeasibleSolution("No feasible intercept in the search window")

        in_grid_order = sorted(feasible, key=lambda launch: (launch.start_time, launch.duration))
        if self.list_possible_launches:
            self.possible_launches = in_grid_order
        if self.observer is not None:
            for launch in in_grid_order:
                self.observer(launch)

        best = min(feasible, key=_search_key)
        logger.debug("Best intercept: launch=%.1f s duration=%.1f s dv=%.3f m/s (%d feasible cells)",
                     best.start_time, best.duration, best.delta_v, len(feasible))
        return best

    @property
    def possible_intercepts(self) -> List[PossibleLaunch]:
        return self.possible_launches

    def _search_chunk(
        self,
        launch_times: Sequence[float],
        durations: Sequence[float],
        token: ChunkCancelToken,
    ) -> List[PossibleLaunch]:
        kepler = self.kepler_solver
        orbit = self.orbit_position.orbit
        target_orbit = self.target_orbit_position.orbit
        feasible = []

        for launch_time in launch_times:
            if token.is_set():
                break
            try:
                primary_at_launch = self._primary_state_after(launch_time)
                launch_state = kepler.solve(
                    self.config, self._primary_initial, self.state, orbit, launch_time, primary_at_launch,
                )
                target_launch_state = kepler.solve(
                    self.target_config, self._primary_initial, self._target_initial,
                    target_orbit, launch_time, primary_at_launch,
                )
            except NumericNonConvergence:
                logger.debug("Skipping launch time %.1f s: propagation failed", launch_time)
                continue

            for duration in durations:
                if token.is_set():
                    break
                launch = self._evaluate_cell(
                    launch_time, duration, primary_at_launch, launch_state, target_launch_state,
                )
                if launch is None:
                    continue
                feasible.append(launch)
                if self.allowed_delta_v is not None and launch.delta_v <= self.allowed_delta_v:
                    token.set()
                    break

        return feasible

    def _primary_state_after(self, time: float) -> ObjectState:
        primary = self.primary_body
        if self._primary_orbit is None:
            return self._primary_initial.with_time(self._primary_initial.time + time)
        return self.kepler_solver.solve(
            primary.config, primary.primary_body.state, self._primary_initial, self._primary_orbit, time,
        )

    def _evaluate_cell(
        self,
        launch_time: float,
        duration: float,
        primary_at_launch: ObjectState,
        launch_state: ObjectState,
        target_launch_state: ObjectState,
    ) -> Optional[PossibleLaunch]:
        try:
            primary_at_arrival = self._primary_state_after(launch_time + duration)
            target_arrival_state = self.kepler_solver.solve(
                self.target_config, primary_at_launch, target_launch_state,
                self.target_orbit_position.orbit, duration, primary_at_arrival,
            )
        except NumericNonConvergence:
            return None

        branches = []
        for short_way in (True, False):
            try:
                result = self.gauss_solver.solve(
                    self.primary_body,
                    primary_at_launch,
                    primary_at_arrival,
                    launch_state.position,
                    target_arrival_state.position,
                    duration,
                    short_way=short_way,
                )
            except NumericNonConvergence:
                continue
            delta_velocity = result.velocity1 - launch_state.velocity
            branches.append((norm(delta_velocity), short_way, delta_velocity, result))

        for _, short_way, delta_velocity, result in sorted(branches, key=lambda branch: branch[0]):
            transfer_state = ObjectState(
                time=launch_state.time, position=launch_state.position, velocity=result.velocity1,
            )
            if self._is_valid_launch(primary_at_launch, transfer_state):
                return PossibleLaunch(
                    start_time=launch_time,
                    duration=duration,
                    delta_velocity=delta_velocity,
                    short_way=short_way,
                    arrival_velocity=result.velocity2,
                )
        return None

    def _is_valid_launch(self, primary_launch_state: ObjectState, launch_state: ObjectState) -> bool:
        """Finite velocity and, for a surface launch, no early re-impact."""
        if not is_finite_vector(launch_state.velocity):
            return False
        if not self._stationary:
            return True

        primary = self.primary_body
        launch_orbit = OrbitPosition.from_state(primary, primary_launch_state, launch_state).orbit
        step = self.settings.impact_check_delta_time
        t = step
        try:
            while t <= self.settings.max_impact_check_time:
                next_state = self.kepler_solver.solve(
                    self.config, primary_launch_state, launch_state, launch_orbit, t,
                )
                if sphere_intersection(primary_launch_state.position, primary.radius,
                                       next_state.position, self.config.radius):
                    return False
                t += step
        except NumericNonConvergence:
            return False
        return True

    # ----------------------------------------------------------------
    # Maneuvers
    # ----------------------------------------------------------------
    @classmethod
    def create(
        cls,
        body: Body,
        target_config: ObjectConfig,
        target_orbit_position: OrbitPosition,
        min_intercept_time: float,
        max_intercept_time: float,
        min_launch_time: float,
        max_launch_time: float,
        now: Optional[float] = None,
        **kwargs,
    ) -> OrbitalManeuvers:
        """
        Launch burn and a zero arrival burn for the cheapest intercept of
        *body* with the target.

        Extra keyword arguments are passed to the constructor.

        Raises:
            NoFeasibleSolution: If no cell is feasible.
        """
        search = cls(
            body.primary_body,
            body.config,
            body.state,
            body.orbit_position(),
            target_config,
            target_orbit_position,
            min_intercept_time,
            max_intercept_time,
            min_launch_time,
            max_launch_time,
            **kwargs,
        )
        best = search.compute()
        now = body.state.time if now is None else now
        return OrbitalManeuvers.sequence(
            OrbitalManeuver(now + best.start_time, best.delta_velocity),
            OrbitalManeuver(now + best.arrival_time, np.zeros(3)),
        )
