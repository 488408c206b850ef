"""
===============================================================================
ASTRODYN - Guidance Package
===============================================================================
Impulsive maneuver planners.  Every planner returns an OrbitalManeuvers
sequence of (absolute time, delta-velocity) burns.

Modules:
    maneuver           -- Burn value types and burn-time specifications
    basic_maneuvers    -- Single-burn periapsis, apoapsis and inclination changes
    hohmann            -- Hohmann transfer between circular orbits
    intercept          -- Lambert grid search over launch time and duration
    rendezvous         -- Circular-orbit and same-orbit rendezvous
    planetary_transfer -- Staged interplanetary transfer pipeline
===============================================================================
"""
