"""Unit tests for the support triangle inequality constraints."""

import numpy as np
import pytest

from support_polygon import MarginValues, SupportTriangle
from zmp_optimization import (
    build_inequality_constraints,
    count_inequality_constraints,
    lines_for_constraint,
)
from zmp_optimization.inequality_constraints import count_samples
from zmp_splines import (
    AXES,
    ZmpSpline,
    ZmpSplineContainer,
    evaluate_quintic,
    zmp_from_state,
)


def _make_random_x(n, scale=0.5, seed=42):
    """Random free coefficient vector."""
    rng = np.random.default_rng(seed)
    return rng.uniform(-scale, scale, n)


HEIGHT = 0.58
GRAVITY = 9.81
DT = 0.25
START_P = np.array([0.05, -0.02])
START_V = np.array([0.1, 0.0])


@pytest.fixture
def splines():
    """Four-leg support, two swings (steps 0 and 1), four-leg support."""
    return ZmpSplineContainer([
        ZmpSpline(0, 1.0, step=0, four_leg_support=True),
        ZmpSpline(1, 1.0, step=0),
        ZmpSpline(2, 0.5, step=1),
        ZmpSpline(3, 0.4, step=1, four_leg_support=True),
    ])


@pytest.fixture
def triangles(square_stance, crawl_steps):
    triangles, _ = SupportTriangle.from_footholds(
        square_stance, crawl_steps[:2], MarginValues(0.02, 0.03, 0.04, 0.01),
    )
    return triangles


# ============================================================
# TestSampling
# ============================================================

class TestSampling:
    """Tests for the number of constrained samples."""

    def test_floor_of_duration(self):
        assert count_samples(ZmpSpline(0, 1.0), 0.25) == 4
        assert count_samples(ZmpSpline(0, 1.0), 0.3) == 3

    def test_interval_longer_than_spline(self):
        assert count_samples(ZmpSpline(0, 0.5), 1.0) == 0

    def test_four_leg_support_is_not_sampled(self):
        assert count_samples(ZmpSpline(0, 1.0, four_leg_support=True), 0.25) == 0

    def test_invalid_interval_raises(self):
        with pytest.raises(ValueError, match="interval"):
            count_samples(ZmpSpline(0, 1.0), 0.0)

    def test_total_rows(self, splines):
        assert count_inequality_constraints(splines, DT) == 3 * (4 + 2)

    def test_only_four_leg_support(self):
        splines = ZmpSplineContainer([
            ZmpSpline(0, 1.0, four_leg_support=True),
            ZmpSpline(1, 0.4, four_leg_support=True),
        ])
        assert count_inequality_constraints(splines, DT) == 0
        ineq = build_inequality_constraints(
            splines, START_P, START_V, [], HEIGHT, DT, GRAVITY,
        )
        assert ineq.matrix.shape == (0, splines.coefficient_count())
        assert ineq.vector.shape == (0,)


# ============================================================
# TestInequalityConstraints
# ============================================================

class TestInequalityConstraints:
    """Tests for build_inequality_constraints."""

    def test_lines_follow_spline_steps(self, splines, triangles):
        lines = lines_for_constraint(splines, triangles, DT)
        assert len(lines) == count_inequality_constraints(splines, DT)
        assert lines[:3] == triangles[0].lines()
        assert lines[9:12] == triangles[0].lines()
        assert lines[12:15] == triangles[1].lines()

    def test_shapes_and_line_ids(self, splines, triangles):
        lines = lines_for_constraint(splines, triangles, DT)
        ineq = build_inequality_constraints(
            splines, START_P, START_V, lines, HEIGHT, DT, GRAVITY,
        )
        m, n = len(lines), splines.coefficient_count()
        assert ineq.n_constraints == m
        assert ineq.matrix.shape == ineq.raw.shape == (m, n)
        assert ineq.line_ids.shape == (m, 2)
        np.testing.assert_array_equal(ineq.line_ids[:3], [[0, 0], [0, 1], [0, 2]])
        np.testing.assert_array_equal(ineq.line_ids[-3:], [[1, 0], [1, 1], [1, 2]])

    def test_rows_measure_zmp_distance(self, splines, triangles):
        """A_ineq @ x - b_ineq is the margin-shrunk distance of the ZMP."""
        lines = lines_for_constraint(splines, triangles, DT)
        ineq = build_inequality_constraints(
            splines, START_P, START_V, lines, HEIGHT, DT, GRAVITY,
        )
        x = _make_random_x(splines.coefficient_count(), scale=0.2)
        coeffs = splines.full_coefficients(x, START_P, START_V)

        expected = []
        for s in splines:
            for i in range(count_samples(s, DT)):
                state = np.array([
                    evaluate_quintic(coeffs[s.id, axis], i * DT) for axis in AXES
                ])
                zmp = zmp_from_state(state[:, 0], state[:, 2], HEIGHT, GRAVITY)
                for line in triangles[s.step].lines():
                    expected.append(line.distance(zmp) - line.s_margin)

        np.testing.assert_allclose(ineq.matrix @ x - ineq.vector, expected, atol=1e-9)

    def test_raw_rows_give_unscaled_zmp(self, splines, triangles):
        lines = lines_for_constraint(splines, triangles, DT)
        ineq = build_inequality_constraints(
            splines, START_P, START_V, lines, HEIGHT, DT, GRAVITY,
        )
        x = np.zeros(splines.coefficient_count())
        # at rest the ZMP is the center of gravity, drifting with START_V
        first_swing_start = START_P + 1.0 * START_V
        assert ineq.raw[0] @ x + ineq.offset_x[0] == pytest.approx(first_swing_start[0])
        assert ineq.raw[0] @ x + ineq.offset_y[0] == pytest.approx(first_swing_start[1])
        # second sample of the first swing, t = DT
        pos = START_P + (1.0 + DT) * START_V
        assert ineq.offset_x[3] == pytest.approx(pos[0])
        assert ineq.offset_y[3] == pytest.approx(pos[1])

    def test_arrays_are_read_only(self, splines, triangles):
        lines = lines_for_constraint(splines, triangles, DT)
        ineq = build_inequality_constraints(
            splines, START_P, START_V, lines, HEIGHT, DT, GRAVITY,
        )
        with pytest.raises(ValueError):
            ineq.matrix[0, 0] = 1.0

    def test_line_count_mismatch_raises(self, splines, triangles):
        lines = lines_for_constraint(splines, triangles, DT)
        with pytest.raises(ValueError, match="support lines"):
            build_inequality_constraints(
                splines, START_P, START_V, lines[:-1], HEIGHT, DT, GRAVITY,
            )

    def test_swing_shorter_than_interval_adds_no_rows(self, triangles):
        """Rows stay aligned with lines when a swing has no samples."""
        splines = ZmpSplineContainer([
            ZmpSpline(0, 0.2, step=0),
            ZmpSpline(1, 1.0, step=1),
        ])
        lines = lines_for_constraint(splines, triangles, DT)
        ineq = build_inequality_constraints(
            splines, START_P, START_V, lines, HEIGHT, DT, GRAVITY,
        )
        assert ineq.n_constraints == 3 * 4
        np.testing.assert_array_equal(ineq.line_ids[:, 0], 1)
        assert lines == triangles[1].lines() * 4

    def test_empty_sequence_raises(self):
        with pytest.raises(ValueError, match="empty"):
            build_inequality_constraints(
                ZmpSplineContainer(), START_P, START_V, [], HEIGHT, DT, GRAVITY,
            )
