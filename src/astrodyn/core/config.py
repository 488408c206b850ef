"""
Engine configuration.

Solver tolerances, search windows and worker counts live in three frozen
dataclasses grouped under :class:`EngineConfig`.  A YAML file can override
any subset of them:

    solver:
      kepler_tolerance: 1.0e-6
    intercept:
      num_workers: 4
    transfer:
      heliocentric_delta_time: 432000.0

Unknown sections or keys are rejected so that typos do not silently fall
back to defaults.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

from astrodyn.core.constants import (
    ONE_DAY,
    STUMPFF_SERIES_LIMIT,
    KEPLER_MAX_ITERATIONS,
    KEPLER_TOLERANCE,
    LAMBERT_MAX_ITERATIONS,
    LAMBERT_TOLERANCE,
    LAMBERT_RESEED_INTERVAL,
    INTERCEPT_DELTA_TIME,
    IMPACT_CHECK_MAX_TIME,
    IMPACT_CHECK_DELTA_TIME,
    MIDCOURSE_ALLOWED_DELTA_V,
)

logger = logging.getLogger(__name__)


def _require_positive(owner: Any, *names: str) -> None:
    for name in names:
        value = getattr(owner, name)
        if not value > 0:
            raise ValueError(f"{type(owner).__name__}.{name} must be positive, got {value!r}")


@dataclass(frozen=True)
class SolverSettings:
    """Iteration budgets and tolerances for the Kepler and Lambert solvers."""
    kepler_max_iterations: int = KEPLER_MAX_ITERATIONS
    kepler_tolerance: float = KEPLER_TOLERANCE
    lambert_max_iterations: int = LAMBERT_MAX_ITERATIONS
    lambert_tolerance: float = LAMBERT_TOLERANCE
    lambert_reseed_interval: int = LAMBERT_RESEED_INTERVAL
    stumpff_series_limit: float = STUMPFF_SERIES_LIMIT

    def __post_init__(self):
        _require_positive(
            self, 'kepler_max_iterations', 'kepler_tolerance', 'lambert_max_iterations',
            'lambert_tolerance', 'lambert_reseed_interval', 'stumpff_series_limit',
        )


@dataclass(frozen=True)
class InterceptSettings:
    """Grid step, launch-impact look-ahead and parallelism of intercept searches."""
    delta_time: float = INTERCEPT_DELTA_TIME
    max_impact_check_time: float = IMPACT_CHECK_MAX_TIME
    impact_check_delta_time: float = IMPACT_CHECK_DELTA_TIME
    num_workers: int = 1

    def __post_init__(self):
        _require_positive(
            self, 'delta_time', 'max_impact_check_time', 'impact_check_delta_time', 'num_workers',
        )


@dataclass(frozen=True)
class TransferSettings:
    """
    Search windows of the planetary transfer pipeline.

    Coast ratios scale the (day-rounded) Hohmann coast time; launch ratios
    scale the synodic period (heliocentric leg) or the coast time
    (midcourse correction).
    """
    heliocentric_min_coast_ratio: float = 0.5
    heliocentric_max_coast_ratio: float = 2.0
    heliocentric_max_launch_ratio: float = 1.0
    heliocentric_delta_time: float = ONE_DAY
    midcourse_min_coast_ratio: float = 0.75
    midcourse_max_coast_ratio: float = 2.0
    midcourse_max_launch_ratio: float = 0.5
    midcourse_delta_time: float = 0.5 * ONE_DAY
    midcourse_allowed_delta_v: float = MIDCOURSE_ALLOWED_DELTA_V

    def __post_init__(self):
        _require_positive(
            self, 'heliocentric_max_coast_ratio', 'heliocentric_delta_time',
            'midcourse_max_coast_ratio', 'midcourse_delta_time', 'midcourse_allowed_delta_v',
        )
        if self.heliocentric_min_coast_ratio > self.heliocentric_max_coast_ratio:
            raise ValueError("heliocentric_min_coast_ratio exceeds heliocentric_max_coast_ratio")
        if self.midcourse_min_coast_ratio > self.midcourse_max_coast_ratio:
            raise ValueError("midcourse_min_coast_ratio exceeds midcourse_max_coast_ratio")


@dataclass(frozen=True)
class EngineConfig:
    solver: SolverSettings = field(default_factory=SolverSettings)
    intercept: InterceptSettings = field(default_factory=InterceptSettings)
    transfer: TransferSettings = field(default_factory=TransferSettings)


DEFAULT_CONFIG = EngineConfig()

_SECTIONS = {
    'solver': SolverSettings,
    'intercept': InterceptSettings,
    'transfer': TransferSettings,
}


def config_from_dict(raw: Optional[Dict[str, Any]]) -> EngineConfig:
    """
    Build an :class:`EngineConfig` from a nested dictionary.

    Args:
        raw: Mapping of section name to a mapping of overrides. ``None`` or
             an empty mapping yields the defaults.

    Returns:
        The resulting configuration.

    Raises:
        ValueError: On unknown sections/keys or invalid values.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration root must be a mapping, got {type(raw).__name__}")

    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}. Valid: {sorted(_SECTIONS)}")

    sections = {}
    for name, settings_cls in _SECTIONS.items():
        values = raw.get(name) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{name}' must be a mapping")
        valid_keys = {f.name for f in fields(settings_cls)}
        bad_keys = sorted(set(values) - valid_keys)
        if bad_keys:
            raise ValueError(f"Unknown keys in section '{name}': {bad_keys}")
        sections[name] = settings_cls(**values)
    return EngineConfig(**sections)


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. ``None`` returns the defaults.

    Returns:
        The loaded :class:`EngineConfig`.
    """
    if config_path is None:
        return DEFAULT_CONFIG

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f)
    return config_from_dict(raw)
