"""Boundary and junction equality constraints of the ZMP splines.

Rows are stored as A_eq @ x = b_eq. Position and velocity continuity at
the junctions is implied by the E/F propagation of the spline container,
so only acceleration and jerk continuity need explicit rows.
"""

import time
from dataclasses import dataclass, field

import numpy as np

from zmp_splines import (
    A,
    AXES,
    C,
    D,
    N_AXES,
    N_FREE_COEFF,
    ZmpSplineContainer,
    exponents,
    var_index,
)

from .reporting import NullReporter, OptimizationReporter


@dataclass
class BoundaryConditions:
    """Fixed derivatives at the start and the end of the trajectory.

    Attributes:
        acc_start: Initial acceleration (2,) [m/s^2].
        jerk_start: Initial jerk (2,) [m/s^3].
        vel_end: Final velocity (2,) [m/s].
        acc_end: Final acceleration (2,) [m/s^2].
    """

    acc_start: np.ndarray = field(default_factory=lambda: np.zeros(2))
    jerk_start: np.ndarray = field(default_factory=lambda: np.zeros(2))
    vel_end: np.ndarray = field(default_factory=lambda: np.zeros(2))
    acc_end: np.ndarray = field(default_factory=lambda: np.zeros(2))


def count_equality_constraints(n_splines: int) -> int:
    """Rows for initial {acc, jerk}, final {pos, vel, acc} and junctions."""
    return N_AXES * 2 + N_AXES * 3 + (n_splines - 1) * N_AXES * 2


def build_equality_constraints(
    splines: ZmpSplineContainer,
    start_p: np.ndarray,
    start_v: np.ndarray,
    end_p: np.ndarray,
    boundary: BoundaryConditions | None = None,
    reporter: OptimizationReporter | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Assemble the equality constraints.

    Row order: per axis (X, Y) initial acceleration, initial jerk, final
    position, final velocity, final acceleration; then per junction and
    axis acceleration and jerk continuity.

    Args:
        splines: Spline sequence.
        start_p: Start position of the center of gravity (2,).
        start_v: Start velocity of the center of gravity (2,).
        end_p: Target position at the end of the last spline (2,).
        boundary: Fixed start/end derivatives. Zero if None.
        reporter: Receives the build time and matrix.

    Returns:
        Tuple of (A_eq (m, n), b_eq (m,)).
    """
    if splines.empty:
        raise ValueError("Spline sequence is empty, cannot build equality constraints")

    boundary = boundary or BoundaryConditions()
    reporter = reporter or NullReporter()
    t_start = time.time()

    n = splines.coefficient_count()
    m = count_equality_constraints(len(splines))
    A_eq = np.zeros((m, n))
    b_eq = np.zeros(m)

    last = splines.splines[-1]
    K = last.id
    t = exponents(last.duration, 5)

    i = 0
    for axis in AXES:
        # 1. Initial conditions, pos and vel implied by start_p, start_v
        A_eq[i, var_index(0, axis, D)] = 2.0
        b_eq[i] = boundary.acc_start[axis]
        i += 1

        A_eq[i, var_index(0, axis, C)] = 6.0
        b_eq[i] = boundary.jerk_start[axis]
        i += 1

        # 2. Final conditions
        a = var_index(K, axis, A)
        e_vec, e_const = splines.describe_velocity_continuation(K, axis, start_v[axis])
        f_vec, f_const = splines.describe_position_continuation(
            K, axis, start_v[axis], start_p[axis],
        )

        # position
        A_eq[i, a:a + N_FREE_COEFF] = (t[5], t[4], t[3], t[2])
        A_eq[i] += e_vec * t[1] + f_vec
        b_eq[i] = end_p[axis] - (e_const * t[1] + f_const)
        i += 1

        # velocity
        A_eq[i, a:a + N_FREE_COEFF] = (5 * t[4], 4 * t[3], 3 * t[2], 2 * t[1])
        A_eq[i] += e_vec
        b_eq[i] = boundary.vel_end[axis] - e_const
        i += 1

        # acceleration
        A_eq[i, a:a + N_FREE_COEFF] = (20 * t[3], 12 * t[2], 6 * t[1], 2.0)
        b_eq[i] = boundary.acc_end[axis]
        i += 1

    # 3. Equal acceleration and jerk at spline junctions
    for s in splines.splines[:-1]:
        t = exponents(s.duration, 5)
        for axis in AXES:
            curr = var_index(s.id, axis, A)

            A_eq[i, curr:curr + N_FREE_COEFF] = (20 * t[3], 12 * t[2], 6 * t[1], 2.0)
            A_eq[i, var_index(s.id + 1, axis, D)] = -2.0
            i += 1

            A_eq[i, curr:curr + 3] = (60 * t[2], 24 * t[1], 6.0)
            A_eq[i, var_index(s.id + 1, axis, C)] = -6.0
            i += 1

    reporter.matrix_built("equality constraints", A_eq, b_eq, time.time() - t_start)
    return A_eq, b_eq
