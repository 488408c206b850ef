"""
===============================================================================
ASTRODYN - Two-Body Astrodynamics and Maneuver Planning Engine
===============================================================================
Analytic two-body mechanics for stars, planets, moons and spacecraft, and the
maneuver planners built on top of it.

Subpackages:
    core        -- Constants, exceptions, vector/angle helpers, configuration
    dynamics    -- State model, orbital elements, Kepler and Lambert solvers,
                   orbit calculators, solar system catalog
    guidance    -- Maneuver planners (basic, Hohmann, intercept, rendezvous,
                   planetary transfer)
    performance -- Parallel grid search with ordered reduction
===============================================================================
"""

__version__ = "0.1.0"
