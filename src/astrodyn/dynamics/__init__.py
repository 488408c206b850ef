"""
===============================================================================
ASTRODYN - Dynamics Package
===============================================================================
Two-body mechanics of objects orbiting a primary body.

Modules:
    state       -- ObjectState, ObjectConfig and the Body tree
    formulas    -- Closed-form orbit formulas and local-frame directions
    orbit       -- Orbital elements, element/state conversion, time of flight
    kepler      -- Universal-variable Kepler propagator
    lambert     -- Universal-variable Lambert (Gauss problem) solver
    calculators -- Closest approach, SOI departure and impact times
    bodies      -- Solar system catalog and spacecraft factory
===============================================================================
"""
