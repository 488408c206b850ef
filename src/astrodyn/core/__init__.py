"""
===============================================================================
ASTRODYN - Core Package
===============================================================================
Shared building blocks used by every other subpackage.

Modules:
    constants   -- Physical constants, frame conventions, solver defaults
    exceptions  -- Error taxonomy of the engine
    math_utils  -- Vector, angle and Stumpff function helpers
    config      -- YAML-backed engine configuration
===============================================================================
"""
