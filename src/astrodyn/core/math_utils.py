"""
===============================================================================
ASTRODYN - Vector, Angle and Stumpff Helpers
===============================================================================
Small numerical helpers shared by the state model, the solvers and the
maneuver planners.

Vectors are 3-element float64 numpy arrays.  Scalar work inside the hot
solver loops uses :mod:`math`, which is considerably cheaper than numpy for
single values.

References
----------
    [1] Bate, Mueller & White, "Fundamentals of Astrodynamics", Dover, ch. 4-5.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
===============================================================================
"""

import math
from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from astrodyn.core.constants import TWO_PI, STUMPFF_SERIES_LIMIT

# Above this sqrt(-z), cosh/sinh overflow a double.
_HYPERBOLIC_OVERFLOW_LIMIT = 700.0


# =============================================================================
# VECTORS
# =============================================================================

def as_vector(value) -> np.ndarray:
    """Return *value* as a (3,) float64 array."""
    vector = np.asarray(value, dtype=np.float64)
    if vector.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {vector.shape}")
    return vector


def frozen_vector(value) -> np.ndarray:
    """Return a read-only (3,) float64 copy of *value*."""
    vector = np.array(value, dtype=np.float64)
    if vector.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {vector.shape}")
    vector.setflags(write=False)
    return vector


def norm(vector: np.ndarray) -> float:
    """Euclidean length as a Python float."""
    return math.sqrt(float(np.dot(vector, vector)))


def normalized(vector: np.ndarray) -> np.ndarray:
    """Unit vector along *vector*; the zero vector maps to itself."""
    length = norm(vector)
    if length == 0.0:
        return np.zeros(3)
    return np.asarray(vector, dtype=np.float64) / length


def is_finite_vector(vector: np.ndarray) -> bool:
    return bool(np.all(np.isfinite(vector)))


def swap_yz(vector: np.ndarray) -> np.ndarray:
    """
    Swap the Y and Z components.

    Converts between the Y-up world frame and the Z-up physics frame.  The
    operation is its own inverse.
    """
    return np.array([vector[0], vector[2], vector[1]], dtype=np.float64)


def rotate_about_axis(vector: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate *vector* by *angle* (rad, right-handed) about the unit *axis*."""
    return Rotation.from_rotvec(normalized(axis) * angle).apply(vector)


def sphere_intersection(
    center1: np.ndarray, radius1: float, center2: np.ndarray, radius2: float,
) -> bool:
    """True when two spheres touch or overlap."""
    offset = np.asarray(center2) - np.asarray(center1)
    reach = radius1 + radius2
    return float(np.dot(offset, offset)) <= reach * reach


def lerp(start: float, end: float, amount: float) -> float:
    return start + (end - start) * amount


# =============================================================================
# ANGLES
# =============================================================================

def clamp_angle(angle: float) -> float:
    """Wrap *angle* into [0, 2*pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    # fmod can round a tiny negative up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def angle_between(u: np.ndarray, v: np.ndarray) -> float:
    """Unsigned angle in [0, pi] between two vectors (atan2 form, stable near 0 and pi)."""
    return math.atan2(norm(np.cross(u, v)), float(np.dot(u, v)))


def signed_angle_between(u: np.ndarray, v: np.ndarray, normal: np.ndarray) -> float:
    """
    Angle from *u* to *v* in [-pi, pi], positive when u x v points along *normal*.
    """
    cos_angle = float(np.dot(normalized(u), normalized(v)))
    angle = math.acos(min(1.0, max(-1.0, cos_angle)))
    if float(np.dot(normal, np.cross(u, v))) < 0.0:
        return -angle
    return angle


def min_angle_difference(angle1: float, angle2: float) -> float:
    """Smallest absolute difference between two angles, in [0, pi]."""
    difference = clamp_angle(angle1 - angle2)
    return min(difference, TWO_PI - difference)


# =============================================================================
# STUMPFF FUNCTIONS
# =============================================================================

def stumpff_c(z: float, series_limit: float = STUMPFF_SERIES_LIMIT) -> float:
    """
    Stumpff function C(z).

        C(z) = (1 - cos(sqrt(z))) / z          z > 0
             = (1 - cosh(sqrt(-z))) / z        z < 0

    A truncated series is used for |z| < *series_limit*, where the closed
    forms lose all precision.
    """
    if abs(z) < series_limit:
        return 0.5 - z / 24.0 + z * z / 720.0 - z * z * z / 40320.0
    if z > 0.0:
        return (1.0 - math.cos(math.sqrt(z))) / z
    sqrt_neg_z = math.sqrt(-z)
    if sqrt_neg_z > _HYPERBOLIC_OVERFLOW_LIMIT:
        return math.inf
    return (1.0 - math.cosh(sqrt_neg_z)) / z


def stumpff_s(z: float, series_limit: float = STUMPFF_SERIES_LIMIT) -> float:
    """
    Stumpff function S(z).

        S(z) = (sqrt(z) - sin(sqrt(z))) / sqrt(z)^3          z > 0
             = (sinh(sqrt(-z)) - sqrt(-z)) / sqrt(-z)^3      z < 0
    """
    if abs(z) < series_limit:
        return 1.0 / 6.0 - z / 120.0 + z * z / 5040.0 - z * z * z / 362880.0
    if z > 0.0:
        sqrt_z = math.sqrt(z)
        return (sqrt_z - math.sin(sqrt_z)) / (sqrt_z * sqrt_z * sqrt_z)
    sqrt_neg_z = math.sqrt(-z)
    if sqrt_neg_z > _HYPERBOLIC_OVERFLOW_LIMIT:
        return math.inf
    return (math.sinh(sqrt_neg_z) - sqrt_neg_z) / (sqrt_neg_z * sqrt_neg_z * sqrt_neg_z)


def stumpff_derivatives(
    z: float, c: float, s: float, series_limit: float = STUMPFF_SERIES_LIMIT,
):
    """
    Return (dS/dz, dC/dz) given C(z) and S(z).

        S'(z) = (C - 3S) / (2z)
        C'(z) = (1 - zS - 2C) / (2z)
    """
    if abs(z) < series_limit:
        s_prime = (-1.0 / 120.0 + 2.0 * z / 5040.0 - 3.0 * z * z / 362880.0
                   + 4.0 * z * z * z / 39916800.0)
        c_prime = (-1.0 / 24.0 + 2.0 * z / 720.0 - 3.0 * z * z / 40320.0
                   + 4.0 * z * z * z / 3628800.0)
        return s_prime, c_prime
    s_prime = (c - 3.0 * s) / (2.0 * z)
    c_prime = (1.0 - z * s - 2.0 * c) / (2.0 * z)
    return s_prime, c_prime


# =============================================================================
# DETERMINISTIC RANDOMNESS
# =============================================================================

def seeded_rng(*values: Sequence[float]) -> np.random.Generator:
    """
    Random generator seeded from the bit patterns of *values*.

    Used for Newton restarts: the same call inputs always produce the same
    restart sequence, independent of threads or call order.
    """
    parts = [np.atleast_1d(np.asarray(value, dtype=np.float64)).ravel() for value in values]
    data = np.concatenate(parts) if parts else np.zeros(1)
    entropy = np.frombuffer(data.tobytes(), dtype=np.uint32)
    return np.random.default_rng(entropy)
