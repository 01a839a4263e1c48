"""Unit tests for boundary and junction equality constraints."""

import numpy as np
import pytest

from zmp_optimization import (
    BoundaryConditions,
    build_equality_constraints,
    count_equality_constraints,
)
from zmp_splines import AXES, ZmpSpline, ZmpSplineContainer, evaluate_quintic


def _make_random_x(n, scale=0.5, seed=42):
    """Random free coefficient vector."""
    rng = np.random.default_rng(seed)
    return rng.uniform(-scale, scale, n)


@pytest.fixture
def splines():
    return ZmpSplineContainer([
        ZmpSpline(0, 1.0, four_leg_support=True),
        ZmpSpline(1, 0.7),
        ZmpSpline(2, 0.6),
        ZmpSpline(3, 0.4, four_leg_support=True),
    ])


START_P = np.array([0.1, -0.05])
START_V = np.array([0.2, 0.0])
END_P = np.array([0.35, 0.1])


class TestEqualityConstraints:
    """Tests for build_equality_constraints."""

    @pytest.mark.parametrize("n_splines, expected", [(1, 10), (2, 14), (7, 34)])
    def test_row_count(self, n_splines, expected):
        assert count_equality_constraints(n_splines) == expected

    def test_shapes(self, splines):
        A_eq, b_eq = build_equality_constraints(splines, START_P, START_V, END_P)
        assert A_eq.shape == (count_equality_constraints(4), splines.coefficient_count())
        assert b_eq.shape == (A_eq.shape[0],)

    def test_residual_matches_evaluated_trajectory(self, splines):
        """Every row measures one boundary or junction mismatch."""
        boundary = BoundaryConditions(
            acc_start=np.array([0.1, -0.2]),
            jerk_start=np.array([0.0, 0.3]),
            vel_end=np.array([0.05, 0.0]),
            acc_end=np.array([0.0, -0.1]),
        )
        A_eq, b_eq = build_equality_constraints(splines, START_P, START_V, END_P, boundary)

        x = _make_random_x(splines.coefficient_count())
        coeffs = splines.full_coefficients(x, START_P, START_V)
        last = splines.splines[-1]

        expected = []
        for axis in AXES:
            _, _, acc0, jerk0 = evaluate_quintic(coeffs[0, axis], 0.0)
            pos_T, vel_T, acc_T, _ = evaluate_quintic(coeffs[last.id, axis], last.duration)
            expected += [
                acc0 - boundary.acc_start[axis],
                jerk0 - boundary.jerk_start[axis],
                pos_T - END_P[axis],
                vel_T - boundary.vel_end[axis],
                acc_T - boundary.acc_end[axis],
            ]
        for s in splines.splines[:-1]:
            for axis in AXES:
                end = evaluate_quintic(coeffs[s.id, axis], s.duration)
                start = evaluate_quintic(coeffs[s.id + 1, axis], 0.0)
                expected += [end[2] - start[2], end[3] - start[3]]

        np.testing.assert_allclose(A_eq @ x - b_eq, expected, atol=1e-9)

    def test_single_spline(self):
        splines = ZmpSplineContainer([ZmpSpline(0, 2.0)])
        A_eq, b_eq = build_equality_constraints(splines, START_P, START_V, END_P)
        assert A_eq.shape == (10, 8)

    def test_default_boundary_is_rest(self, splines):
        A_eq, b_eq = build_equality_constraints(splines, START_P, START_V, END_P)
        # only final position and velocity rows carry a right-hand side
        nonzero = np.flatnonzero(b_eq)
        assert set(nonzero) <= {2, 3, 7, 8}

    def test_empty_sequence_raises(self):
        with pytest.raises(ValueError, match="empty"):
            build_equality_constraints(ZmpSplineContainer(), START_P, START_V, END_P)
