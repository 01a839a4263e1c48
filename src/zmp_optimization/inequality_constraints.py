"""Support triangle inequality constraints on the zero-moment-point.

Every swing spline is sampled at t = 0, dt, 2 dt, ... < T. At each sample
the ZMP, approximated from the center of gravity as

    zmp = pos(t) - h / (g + z_acc) * acc(t),

has to lie on the inner side of all three support triangle sides:

    p * zmp_x + q * zmp_y + r - s_margin >= 0.

Rows are stored as A_ineq @ x >= b_ineq. Each row is first built as the
unscaled ZMP row of both axes and then scaled by the side coefficients
(x entries by p, y entries by q). The unscaled rows are kept for the
nonlinear solver, which moves the footholds and therefore the sides.
"""

import time
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.constants import g as STANDARD_GRAVITY

from support_polygon import SupportLine, SupportTriangle
from zmp_splines import (
    A,
    AXES,
    N_FREE_COEFF,
    X,
    ZmpSpline,
    ZmpSplineContainer,
    exponents,
    var_index,
)

from .reporting import NullReporter, OptimizationReporter

SIDES_PER_TRIANGLE = 3


@dataclass(frozen=True)
class InequalityConstraints:
    """Assembled inequality constraints.

    Attributes:
        matrix: A_ineq (m, n).
        vector: b_ineq (m,).
        raw: Unscaled ZMP rows (m, n), both axes in one row.
        offset_x: Constant part of zmp_x per row (m,).
        offset_y: Constant part of zmp_y per row (m,).
        line_ids: (step, side) of the support line of every row (m, 2).
    """

    matrix: np.ndarray
    vector: np.ndarray
    raw: np.ndarray
    offset_x: np.ndarray
    offset_y: np.ndarray
    line_ids: np.ndarray

    def __post_init__(self) -> None:
        for arr in (self.matrix, self.vector, self.raw,
                    self.offset_x, self.offset_y, self.line_ids):
            arr.setflags(write=False)

    @property
    def n_constraints(self) -> int:
        return self.vector.shape[0]


def count_samples(spline: ZmpSpline, dt: float) -> int:
    """Number of constrained samples of a spline.

    A trailing interval shorter than dt is dropped. Four-leg support
    splines are not sampled.
    """
    if dt <= 0.0:
        raise ValueError(f"Sampling interval must be > 0, got {dt}")
    if spline.four_leg_support:
        return 0
    return int(np.floor(spline.duration / dt))


def count_inequality_constraints(splines: ZmpSplineContainer, dt: float) -> int:
    return SIDES_PER_TRIANGLE * sum(count_samples(s, dt) for s in splines)


def lines_for_constraint(
    splines: ZmpSplineContainer,
    supp_triangles: Sequence[SupportTriangle],
    dt: float,
) -> list[SupportLine]:
    """Support line of every inequality row, in row order.

    Args:
        splines: Spline sequence.
        supp_triangles: One triangle per step, indexed by ``spline.step``.
        dt: Sampling interval [s].

    Returns:
        For each swing spline, floor(T/dt) repetitions of its three sides.
    """
    lines = []
    for s in splines:
        n_nodes = count_samples(s, dt)
        if n_nodes == 0:
            continue
        tr_lines = supp_triangles[s.step].lines()
        for _ in range(n_nodes):
            lines.extend(tr_lines)
    return lines


def scale_by_lines(
    splines: ZmpSplineContainer,
    raw: np.ndarray,
    offset_x: np.ndarray,
    offset_y: np.ndarray,
    lines: Sequence[SupportLine],
) -> tuple[np.ndarray, np.ndarray]:
    """Apply support line coefficients to unscaled ZMP rows.

    Returns:
        Tuple of (A_ineq (m, n), b_ineq (m,)).
    """
    if len(lines) != raw.shape[0]:
        raise ValueError(
            f"Got {len(lines)} support lines for {raw.shape[0]} inequality rows"
        )
    if len(lines) == 0:
        return np.zeros_like(raw), np.zeros(0)

    p = np.array([line.p for line in lines])
    q = np.array([line.q for line in lines])
    r = np.array([line.r for line in lines])
    s_margin = np.array([line.s_margin for line in lines])

    is_x = splines.axis_of_index() == X
    line_coefficients = np.where(is_x[np.newaxis, :], p[:, np.newaxis], q[:, np.newaxis])

    matrix = raw * line_coefficients
    vector = -(p * offset_x + q * offset_y + r - s_margin)
    return matrix, vector


def build_inequality_constraints(
    splines: ZmpSplineContainer,
    start_p: np.ndarray,
    start_v: np.ndarray,
    lines: Sequence[SupportLine],
    height: float,
    dt: float,
    gravity: float = STANDARD_GRAVITY,
    reporter: OptimizationReporter | None = None,
) -> InequalityConstraints:
    """Assemble the ZMP stability constraints.

    Args:
        splines: Spline sequence.
        start_p: Start position of the center of gravity (2,).
        start_v: Start velocity of the center of gravity (2,).
        lines: Support line of every row, see ``lines_for_constraint``.
        height: Approximate height of the center of gravity [m].
        dt: Sampling interval [s].
        gravity: Gravitational acceleration [m/s^2].
        reporter: Receives the build time and matrix.

    Returns:
        InequalityConstraints with A_ineq @ x >= b_ineq.

    Raises:
        ValueError: If the spline sequence is empty, dt <= 0, or the number
            of lines does not match the number of samples.
    """
    if splines.empty:
        raise ValueError("Spline sequence is empty, cannot build inequality constraints")

    reporter = reporter or NullReporter()
    t_start = time.time()

    n = splines.coefficient_count()
    m = count_inequality_constraints(splines, dt)
    if len(lines) != m:
        raise ValueError(f"Got {len(lines)} support lines for {m} inequality rows")

    raw = np.zeros((m, n))
    offset_x = np.zeros(m)
    offset_y = np.zeros(m)
    line_ids = np.zeros((m, 2), dtype=np.int64)

    z_acc = 0.0  # vertical acceleration of the body is not modeled
    h_g = height / (gravity + z_acc)

    c = 0
    for s in splines:
        n_nodes = count_samples(s, dt)
        if n_nodes == 0:
            continue

        continuation = []
        for axis in AXES:
            e_vec, e_const = splines.describe_velocity_continuation(s.id, axis, start_v[axis])
            f_vec, f_const = splines.describe_position_continuation(
                s.id, axis, start_v[axis], start_p[axis],
            )
            continuation.append((e_vec, e_const, f_vec, f_const))

        for i in range(n_nodes):
            t = exponents(i * dt, 5)

            row = np.zeros(n)
            offsets = np.zeros(len(AXES))
            for axis in AXES:
                e_vec, e_const, f_vec, f_const = continuation[axis]
                a = var_index(s.id, axis, A)
                # x_pos = a t^5 + b t^4 + c t^3 + d t^2 + e t + f
                # x_acc = 20 a t^3 + 12 b t^2 + 6 c t + 2 d
                row[a:a + N_FREE_COEFF] = (
                    t[5] - h_g * 20.0 * t[3],
                    t[4] - h_g * 12.0 * t[2],
                    t[3] - h_g * 6.0 * t[1],
                    t[2] - h_g * 2.0,
                )
                row += t[1] * e_vec + f_vec
                offsets[axis] = e_const * t[1] + f_const

            # one row per side of the support triangle
            for j in range(SIDES_PER_TRIANGLE):
                raw[c] = row
                offset_x[c], offset_y[c] = offsets
                line_ids[c] = (s.step, j)
                c += 1

    matrix, vector = scale_by_lines(splines, raw, offset_x, offset_y, lines)

    reporter.matrix_built("inequality constraints", matrix, vector, time.time() - t_start)
    return InequalityConstraints(matrix, vector, raw, offset_x, offset_y, line_ids)
