"""
Error taxonomy of the astrodynamics engine.

    GeometricInfeasibility -- the requested orbital change cannot exist for
                              the current orbit (raised before any work).
    NumericNonConvergence  -- an iterative solver ran out of iterations or
                              left its valid domain.
    NoFeasibleSolution     -- a search exhausted its domain without a valid
                              cell.

The first two also derive from ValueError / RuntimeError so callers written
against the plain built-in exceptions keep working.
"""

from typing import Optional


class AstrodynamicsError(Exception):
    """Base class for every error raised by the engine."""


class GeometricInfeasibility(AstrodynamicsError, ValueError):
    """A requested maneuver is physically impossible for the current orbit."""


class NumericNonConvergence(AstrodynamicsError, RuntimeError):
    """
    An iterative solver exceeded its iteration budget or lost its domain.

    Attributes
    ----------
    iterations : int or None
        Number of iterations performed before giving up.
    residual : float or None
        Last time-of-flight residual (s), when one was available.
    """

    def __init__(
        self,
        message: str,
        iterations: Optional[int] = None,
        residual: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.residual = residual


class NoFeasibleSolution(AstrodynamicsError):
    """A search found no cell that is both solvable and physically valid."""
