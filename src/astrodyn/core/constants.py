"""
===============================================================================
ASTRODYN - Physical Constants and Engine Conventions
===============================================================================
Central repository for the constants used throughout the engine.  SI units
throughout (meters, seconds, kilograms, radians).

Frame convention: the world frame is Y-up.  The orbital-element math runs in
a Z-up "physics" frame obtained by swapping the Y and Z components
(see :func:`astrodyn.core.math_utils.swap_yz`).
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
HALF_PI = 0.5 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
GRAVITATIONAL_CONSTANT = 6.67408e-11   # m^3 / (kg * s^2)
AU = 149597870700.0                    # Astronomical Unit in meters
STANDARD_GRAVITY = 9.80665             # m/s^2

# =============================================================================
# TIME
# =============================================================================
ONE_MINUTE = 60.0                      # s
ONE_HOUR = 60.0 * ONE_MINUTE           # s
ONE_DAY = 24.0 * ONE_HOUR              # s
SIDEREAL_DAY = 86164.0916              # s

# =============================================================================
# FRAME CONVENTIONS
# =============================================================================
WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_UP.setflags(write=False)

PHYSICS_UP = np.array([0.0, 0.0, 1.0])
PHYSICS_UP.setflags(write=False)

# =============================================================================
# ORBIT CLASSIFICATION THRESHOLDS
# =============================================================================
ECCENTRICITY_EPSILON = 1e-4            # circular / parabolic band
RADIAL_PARAMETER_EPSILON = 1e-5        # m, radial parabolic orbit
EQUATORIAL_NODE_EPSILON = 1e-12        # sin(i) below this is equatorial
SAME_ORBIT_EPSILON = 1e-4
SYNODIC_PERIOD_EPSILON = 1e-2          # s, equal periods
CIRCULAR_ANGULAR_VELOCITY_EPSILON = 1e-6
FULL_REVOLUTION_EPSILON = 1e-5         # rad, true anomaly treated as 0

# =============================================================================
# SOLVER DEFAULTS
# =============================================================================
STUMPFF_SERIES_LIMIT = 1e-3
KEPLER_MAX_ITERATIONS = 1500
KEPLER_TOLERANCE = 1e-6                # s
LAMBERT_MAX_ITERATIONS = 1000
LAMBERT_TOLERANCE = 1e-6               # s
LAMBERT_RESEED_INTERVAL = 200

# =============================================================================
# SEARCH DEFAULTS
# =============================================================================
INTERCEPT_DELTA_TIME = ONE_MINUTE
IMPACT_CHECK_MAX_TIME = 1000.0         # s
IMPACT_CHECK_DELTA_TIME = 100.0        # s
CLOSEST_APPROACH_DELTA_TIME = 30.0 * 600.0
MIDCOURSE_ALLOWED_DELTA_V = 150.0      # m/s
