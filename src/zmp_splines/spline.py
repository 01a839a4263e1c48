"""Quintic spline segments and the global coefficient index.

Each segment describes one horizontal axis of the center of gravity as

    p(t) = A t^5 + B t^4 + C t^3 + D t^2 + E t + F,    t in [0, duration]

Only A..D of every segment and axis are optimization variables. They are
laid out contiguously: segment-major, then axis, then coefficient letter.
"""

from dataclasses import dataclass

import numpy as np

X, Y = 0, 1
AXES = (X, Y)
N_AXES = len(AXES)

A, B, C, D, E, F = 0, 1, 2, 3, 4, 5
FREE_COEFFICIENTS = (A, B, C, D)
N_FREE_COEFF = len(FREE_COEFFICIENTS)
N_COEFF = 6


def var_index(spline_id: int, axis: int, coeff: int) -> int:
    """Position of a free coefficient in the optimization vector.

    Args:
        spline_id: Sequence position of the spline (>= 0).
        axis: X or Y.
        coeff: One of A, B, C, D.

    Returns:
        Index into the flat coefficient vector.

    Raises:
        IndexError: If any argument is out of range.
    """
    if spline_id < 0:
        raise IndexError(f"Spline id must be non-negative, got {spline_id}")
    if axis not in AXES:
        raise IndexError(f"Axis must be X or Y, got {axis}")
    if coeff not in FREE_COEFFICIENTS:
        raise IndexError(f"Only A..D are optimized, got coefficient {coeff}")
    return spline_id * N_AXES * N_FREE_COEFF + axis * N_FREE_COEFF + coeff


def exponents(t: float, n: int) -> np.ndarray:
    """Powers t^0 .. t^n."""
    return np.power(float(t), np.arange(n + 1, dtype=np.float64))


def evaluate_quintic(coeffs: np.ndarray, t: float) -> np.ndarray:
    """Position, velocity, acceleration and jerk of a quintic at t.

    Args:
        coeffs: Coefficients A..F (6,).
        t: Local time [s].

    Returns:
        Array (4,) of [pos, vel, acc, jerk].
    """
    a, b, c, d, e, f = coeffs
    tp = exponents(t, 5)
    pos = a * tp[5] + b * tp[4] + c * tp[3] + d * tp[2] + e * tp[1] + f
    vel = 5 * a * tp[4] + 4 * b * tp[3] + 3 * c * tp[2] + 2 * d * tp[1] + e
    acc = 20 * a * tp[3] + 12 * b * tp[2] + 6 * c * tp[1] + 2 * d
    jerk = 60 * a * tp[2] + 24 * b * tp[1] + 6 * c
    return np.array([pos, vel, acc, jerk])


def zmp_from_state(
    pos: np.ndarray,
    acc: np.ndarray,
    height: float,
    gravity: float,
    z_acc: float = 0.0,
) -> np.ndarray:
    """Cart-table approximation of the zero-moment-point.

    zmp = pos - height / (g + z_acc) * acc
    """
    return np.asarray(pos) - height / (gravity + z_acc) * np.asarray(acc)


@dataclass(frozen=True)
class ZmpSpline:
    """One quintic segment of the center of gravity trajectory.

    Attributes:
        id: Position in the spline sequence.
        duration: Segment duration [s].
        step: Index of the step (support triangle) this segment belongs to.
        four_leg_support: All four feet in contact; no stability
            constraint is needed.
    """

    id: int
    duration: float
    step: int = 0
    four_leg_support: bool = False

    def __post_init__(self) -> None:
        if not self.duration > 0.0:
            raise ValueError(f"Spline {self.id}: duration must be > 0, got {self.duration}")
