"""Unit tests for the QP and NLP solver strategies."""

import numpy as np
import pytest

from zmp_optimization import (
    NlpConfig,
    NlpSolver,
    NullReporter,
    QpSolver,
    SolverInitError,
    ZmpOptimizer,
    build_cost_function,
    build_equality_constraints,
)
from zmp_splines import ZmpSpline, ZmpSplineContainer


@pytest.fixture
def rest_to_rest():
    """Two four-leg support splines moving the center of gravity."""
    splines = ZmpSplineContainer([
        ZmpSpline(0, 1.0, four_leg_support=True),
        ZmpSpline(1, 1.0, four_leg_support=True),
    ])
    M, v = build_cost_function(splines, np.ones(2))
    A_eq, b_eq = build_equality_constraints(
        splines, np.zeros(2), np.zeros(2), np.array([0.2, 0.1]),
    )
    return M, v, A_eq, b_eq


@pytest.fixture
def qp_solver():
    return QpSolver(reporter=NullReporter())


# ============================================================
# TestQpSolver
# ============================================================

class TestQpSolver:
    """Tests for the convex QP solver."""

    def test_equality_only_satisfies_constraints(self, qp_solver, rest_to_rest):
        M, v, A_eq, b_eq = rest_to_rest
        n = M.shape[0]
        x, cost = qp_solver.solve_qp(M, v, A_eq, b_eq, np.zeros((0, n)), np.zeros(0))
        np.testing.assert_allclose(A_eq @ x, b_eq, atol=1e-9)
        assert np.isfinite(cost)
        assert cost > 0.0

    def test_stationary_single_segment(self, qp_solver):
        """Start equals end: the optimum is not moving at all."""
        splines = ZmpSplineContainer([ZmpSpline(0, 1.5)])
        start = np.array([0.1, -0.3])
        M, v = build_cost_function(splines, np.ones(2))
        A_eq, b_eq = build_equality_constraints(splines, start, np.zeros(2), start)
        x, cost = qp_solver.solve_qp(M, v, A_eq, b_eq, np.zeros((0, 8)), np.zeros(0))
        np.testing.assert_allclose(A_eq @ x - b_eq, 0.0, atol=1e-9)
        assert cost == pytest.approx(0.0, abs=1e-12)

    def test_inactive_inequality_matches_kkt(self, qp_solver, rest_to_rest):
        M, v, A_eq, b_eq = rest_to_rest
        n = M.shape[0]
        _, cost_kkt = qp_solver.solve_qp(
            M, v, A_eq, b_eq, np.zeros((0, n)), np.zeros(0),
        )

        A_ineq = np.zeros((1, n))
        A_ineq[0, 0] = 1.0
        b_ineq = np.array([-1e3])
        x, cost = qp_solver.solve_qp(M, v, A_eq, b_eq, A_ineq, b_ineq)

        np.testing.assert_allclose(A_eq @ x, b_eq, atol=1e-8)
        assert cost == pytest.approx(cost_kkt, rel=1e-5)

    def test_active_inequality_raises_cost(self, qp_solver, rest_to_rest):
        M, v, A_eq, b_eq = rest_to_rest
        n = M.shape[0]
        _, cost_free = qp_solver.solve_qp(M, v, A_eq, b_eq, np.zeros((0, n)), np.zeros(0))

        # force the first spline to end with a large acceleration along x
        A_ineq = np.zeros((1, n))
        A_ineq[0, :4] = (20.0, 12.0, 6.0, 2.0)
        b_ineq = np.array([1.0])
        x, cost = qp_solver.solve_qp(M, v, A_eq, b_eq, A_ineq, b_ineq)

        assert (A_ineq @ x)[0] >= 1.0 - 1e-6
        assert cost > cost_free

    def test_inconsistent_equalities_give_inf(self, qp_solver):
        M = np.eye(2)
        v = np.zeros(2)
        A_eq = np.array([[1.0, 0.0], [1.0, 0.0]])
        b_eq = np.array([0.0, 1.0])
        _, cost = qp_solver.solve_qp(M, v, A_eq, b_eq, np.zeros((0, 2)), np.zeros(0))
        assert cost == float("inf")

    def test_infeasible_inequalities_give_inf(self, qp_solver):
        M = np.eye(2)
        v = np.zeros(2)
        A_ineq = np.array([[1.0, 0.0], [-1.0, 0.0]])
        b_ineq = np.array([1.0, 1.0])
        _, cost = qp_solver.solve_qp(
            M, v, np.zeros((0, 2)), np.zeros(0), A_ineq, b_ineq,
        )
        assert cost == float("inf")

    def test_warning_is_reported(self):
        warnings = []

        class Recorder(NullReporter):
            def warning(self, message):
                warnings.append(message)

        solver = QpSolver(reporter=Recorder())
        M = np.eye(2)
        A_eq = np.array([[1.0, 0.0], [1.0, 0.0]])
        solver.solve_qp(M, np.zeros(2), A_eq, np.array([0.0, 1.0]),
                        np.zeros((0, 2)), np.zeros(0))
        assert len(warnings) == 1
        assert "inconsistent" in warnings[0]


# ============================================================
# TestNlpSolver
# ============================================================

class TestNlpSolver:
    """Tests for the foothold co-optimizing solver."""

    @pytest.fixture
    def problem(self, two_segment_splines, square_stance, forward_step,
                wide_support_provider):
        optimizer = ZmpOptimizer(
            two_segment_splines,
            support_provider=wide_support_provider,
            reporter=NullReporter(),
        )
        artifacts = optimizer.setup(np.zeros(2), np.zeros(2), square_stance, forward_step)
        return optimizer, artifacts

    def test_wrong_guess_size_raises(self, problem, wide_support_provider):
        _, artifacts = problem
        solver = NlpSolver(support_provider=wide_support_provider, reporter=NullReporter())
        with pytest.raises(SolverInitError, match="coefficients"):
            solver.initialize(artifacts, np.zeros(3))

    def test_non_finite_guess_raises(self, problem, wide_support_provider):
        _, artifacts = problem
        solver = NlpSolver(support_provider=wide_support_provider, reporter=NullReporter())
        guess = np.zeros(artifacts.n_coefficients)
        guess[2] = np.nan
        with pytest.raises(SolverInitError, match="non-finite"):
            solver.initialize(artifacts, guess)

    def test_start_point_appends_planned_footholds(self, problem, wide_support_provider):
        _, artifacts = problem
        solver = NlpSolver(support_provider=wide_support_provider, reporter=NullReporter())
        nlp, z0 = solver.initialize(artifacts)
        assert z0.shape == (artifacts.n_coefficients + 2,)
        np.testing.assert_allclose(z0[-2:], [1.1, 0.2])
        assert len(nlp.bounds()) == z0.size

    def test_inequality_matches_qp_rows_at_plan(self, problem, wide_support_provider):
        """With unmoved footholds the NLP rows equal the QP rows."""
        optimizer, artifacts = problem
        x = optimizer.solve(artifacts)
        solver = NlpSolver(support_provider=wide_support_provider, reporter=NullReporter())
        nlp, z0 = solver.initialize(artifacts, x)
        np.testing.assert_allclose(
            nlp.inequality(z0), artifacts.inequality_slack(x), atol=1e-10,
        )

    def test_footholds_stay_in_box(self, problem, wide_support_provider):
        optimizer, artifacts = problem
        x = optimizer.solve(artifacts)
        config = NlpConfig(max_foothold_deviation=0.05)
        solver = NlpSolver(config, wide_support_provider, NullReporter())
        result = solver.solve(artifacts, x)

        assert result.coefficients.shape == x.shape
        assert len(result.footholds) == 1
        np.testing.assert_array_less(
            np.abs(result.footholds[0].xy - np.array([1.1, 0.2])), 0.05 + 1e-9,
        )
        assert np.isfinite(result.cost)
