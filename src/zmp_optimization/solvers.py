"""Solver strategies for the assembled ZMP problem.

Both strategies consume the same immutable ``ProblemArtifacts``:

- ``QpSolver`` finds the spline coefficients for fixed footholds.
- ``NlpSolver`` additionally lets the footholds of the steps move within
  a box around the plan, which changes the support triangle sides of the
  inequality constraints.

Both are built on scipy.optimize.minimize (SLSQP).
"""

import time
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np
from scipy.optimize import minimize

from support_polygon import (
    Foothold,
    LegID,
    MarginValues,
    SupportTriangle,
    footholds_to_array,
)
from zmp_splines import X

from .errors import SolverInitError
from .problem import ProblemArtifacts
from .reporting import LoggingReporter, OptimizationReporter

SupportProvider = Callable[
    [dict[LegID, Foothold], Sequence[Foothold], MarginValues],
    tuple[list[SupportTriangle], dict[LegID, Foothold]],
]


@dataclass
class SolverResult:
    """Outcome of one solver run.

    Attributes:
        coefficients: Optimized spline coefficients (n,).
        cost: x^T M x + v^T x, inf if no feasible solution was found.
        footholds: Optimized step footholds (nonlinear solver only).
        success: Whether the solver reported convergence.
        message: Solver status message.
        n_iterations: Solver iterations.
        wall_time: Solve wall time [s].
    """

    coefficients: np.ndarray
    cost: float
    footholds: list[Foothold] | None = None
    success: bool = True
    message: str = ""
    n_iterations: int = 0
    wall_time: float = 0.0


class SolverStrategy:
    """Interface of a solver for an assembled ZMP problem."""

    def solve(self, problem: ProblemArtifacts) -> SolverResult:
        raise NotImplementedError


def _max_violation(
    x: np.ndarray,
    A_eq: np.ndarray,
    b_eq: np.ndarray,
    A_ineq: np.ndarray,
    b_ineq: np.ndarray,
) -> float:
    violation = 0.0
    if A_eq.shape[0] > 0:
        violation = max(violation, float(np.max(np.abs(A_eq @ x - b_eq))))
    if A_ineq.shape[0] > 0:
        violation = max(violation, float(np.max(b_ineq - A_ineq @ x)))
    return violation


@dataclass
class QpSolverConfig:
    """Configuration of the QP solver.

    Attributes:
        max_iter: Maximum SLSQP iterations.
        ftol: SLSQP precision goal of the cost.
        feasibility_tol: Largest constraint violation accepted as feasible.
    """

    max_iter: int = 500
    ftol: float = 1e-12
    feasibility_tol: float = 1e-6


class QpSolver(SolverStrategy):
    """Convex QP solver.

    minimize x^T M x + v^T x  s.t.  A_eq @ x = b_eq,  A_ineq @ x >= b_ineq

    Problems without inequality rows are solved directly through their
    KKT system. All others go through SLSQP with analytic Jacobians.
    An infeasible or failed solve is reported with cost = inf.
    """

    def __init__(
        self,
        config: QpSolverConfig | None = None,
        reporter: OptimizationReporter | None = None,
    ):
        self.config = config or QpSolverConfig()
        self.reporter = reporter or LoggingReporter()

    def solve(self, problem: ProblemArtifacts) -> SolverResult:
        t_start = time.time()
        x, cost = self.solve_qp(
            problem.cost_matrix, problem.cost_vector,
            problem.eq_matrix, problem.eq_vector,
            problem.ineq_matrix, problem.ineq_vector,
        )
        return SolverResult(
            coefficients=x,
            cost=cost,
            success=bool(np.isfinite(cost)),
            wall_time=time.time() - t_start,
        )

    def solve_qp(
        self,
        M: np.ndarray,
        v: np.ndarray,
        A_eq: np.ndarray,
        b_eq: np.ndarray,
        A_ineq: np.ndarray,
        b_ineq: np.ndarray,
    ) -> tuple[np.ndarray, float]:
        """Solve the QP.

        Returns:
            Tuple of (x (n,), cost). Cost is inf if no feasible solution
            was found.
        """
        if A_ineq.shape[0] == 0:
            return self._solve_kkt(M, v, A_eq, b_eq)

        n = M.shape[0]
        H = 2.0 * M

        def fun(x):
            return float(x @ M @ x + v @ x), H @ x + v

        constraints = [{
            "type": "ineq",
            "fun": lambda x: A_ineq @ x - b_ineq,
            "jac": lambda x: A_ineq,
        }]
        if A_eq.shape[0] > 0:
            constraints.append({
                "type": "eq",
                "fun": lambda x: A_eq @ x - b_eq,
                "jac": lambda x: A_eq,
            })

        result = minimize(
            fun,
            np.zeros(n),
            jac=True,
            method="SLSQP",
            constraints=constraints,
            options={
                "maxiter": self.config.max_iter,
                "ftol": self.config.ftol,
                "disp": False,
            },
        )

        x = result.x
        if not result.success:
            violation = _max_violation(x, A_eq, b_eq, A_ineq, b_ineq)
            if violation > self.config.feasibility_tol:
                self.reporter.warning(
                    f"QP solver failed: {result.message} "
                    f"(max constraint violation {violation:.3g})"
                )
                return x, float("inf")
            self.reporter.warning(
                f"QP solver stopped early at a feasible point: {result.message}"
            )

        return x, float(x @ M @ x + v @ x)

    def _solve_kkt(
        self,
        M: np.ndarray,
        v: np.ndarray,
        A_eq: np.ndarray,
        b_eq: np.ndarray,
    ) -> tuple[np.ndarray, float]:
        """Equality constrained QP through its (possibly singular) KKT system.

        [2M  A^T] [x     ]   [-v]
        [A   0  ] [lambda] = [ b]
        """
        n = M.shape[0]
        m = A_eq.shape[0]

        kkt = np.zeros((n + m, n + m))
        kkt[:n, :n] = 2.0 * M
        kkt[:n, n:] = A_eq.T
        kkt[n:, :n] = A_eq
        rhs = np.concatenate([-v, b_eq])

        solution = np.linalg.lstsq(kkt, rhs, rcond=None)[0]
        x = solution[:n]

        violation = _max_violation(x, A_eq, b_eq, np.zeros((0, n)), np.zeros(0))
        if violation > self.config.feasibility_tol:
            self.reporter.warning(
                f"Equality constraints are inconsistent "
                f"(max violation {violation:.3g})"
            )
            return x, float("inf")

        return x, float(x @ M @ x + v @ x)


@dataclass
class NlpConfig:
    """Configuration of the nonlinear foothold solver.

    Attributes:
        max_iter: Maximum SLSQP iterations.
        ftol: SLSQP precision goal of the objective.
        foothold_weight: Cost weight of the squared foothold displacement.
        max_foothold_deviation: Box half-width around each planned
            foothold [m].
        fd_step: Finite difference step for the foothold Jacobian [m].
    """

    max_iter: int = 200
    ftol: float = 1e-9
    foothold_weight: float = 1.0
    max_foothold_deviation: float = 0.1
    fd_step: float = 1e-7


class _FootholdNlp:
    """Objective and constraints over z = [coefficients, step footholds xy]."""

    def __init__(
        self,
        problem: ProblemArtifacts,
        support_provider: SupportProvider,
        config: NlpConfig,
    ):
        self.problem = problem
        self.support_provider = support_provider
        self.config = config

        self.n = problem.n_coefficients
        self.planned = footholds_to_array(problem.steps).ravel()

        is_x = problem.splines.axis_of_index() == X
        raw = problem.inequality.raw
        self.raw_x = raw * is_x[np.newaxis, :]
        self.raw_y = raw * ~is_x[np.newaxis, :]
        self.line_ids = problem.inequality.line_ids

    @property
    def n_vars(self) -> int:
        return self.n + self.planned.size

    def split(self, z: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return z[:self.n], z[self.n:]

    def footholds(self, z: np.ndarray) -> list[Foothold]:
        _, f = self.split(z)
        return [
            step.moved_to(xy)
            for step, xy in zip(self.problem.steps, f.reshape(-1, 2))
        ]

    def objective(self, z: np.ndarray) -> float:
        x, f = self.split(z)
        d = f - self.planned
        return self.problem.cost(x) + self.config.foothold_weight * float(d @ d)

    def gradient(self, z: np.ndarray) -> np.ndarray:
        x, f = self.split(z)
        grad_x = 2.0 * self.problem.cost_matrix @ x + self.problem.cost_vector
        grad_f = 2.0 * self.config.foothold_weight * (f - self.planned)
        return np.concatenate([grad_x, grad_f])

    def equality(self, z: np.ndarray) -> np.ndarray:
        x, _ = self.split(z)
        return self.problem.equality_residual(x)

    def equality_jacobian(self, z: np.ndarray) -> np.ndarray:
        jac = np.zeros((self.problem.eq_matrix.shape[0], self.n_vars))
        jac[:, :self.n] = self.problem.eq_matrix
        return jac

    def _line_coefficients(self, z: np.ndarray) -> tuple[np.ndarray, ...]:
        triangles, _ = self.support_provider(
            self.problem.start_stance, self.footholds(z), self.problem.margins,
        )
        tr_lines = [tr.lines() for tr in triangles]
        lines = [tr_lines[step][side] for step, side in self.line_ids]
        p = np.array([line.p for line in lines])
        q = np.array([line.q for line in lines])
        r = np.array([line.r for line in lines])
        s_margin = np.array([line.s_margin for line in lines])
        return p, q, r, s_margin

    def inequality(self, z: np.ndarray) -> np.ndarray:
        x, _ = self.split(z)
        p, q, r, s_margin = self._line_coefficients(z)
        zmp_x = self.raw_x @ x + self.problem.inequality.offset_x
        zmp_y = self.raw_y @ x + self.problem.inequality.offset_y
        return p * zmp_x + q * zmp_y + r - s_margin

    def inequality_jacobian(self, z: np.ndarray) -> np.ndarray:
        p, q, _, _ = self._line_coefficients(z)
        jac = np.zeros((self.line_ids.shape[0], self.n_vars))
        jac[:, :self.n] = p[:, np.newaxis] * self.raw_x + q[:, np.newaxis] * self.raw_y

        # support lines depend nonlinearly on the footholds
        base = self.inequality(z)
        for k in range(self.n, self.n_vars):
            z_k = z.copy()
            z_k[k] += self.config.fd_step
            jac[:, k] = (self.inequality(z_k) - base) / self.config.fd_step
        return jac

    def bounds(self) -> list[tuple[float | None, float | None]]:
        dev = self.config.max_foothold_deviation
        return [(None, None)] * self.n + [(p - dev, p + dev) for p in self.planned]


class NlpSolver(SolverStrategy):
    """Nonlinear solver that co-optimizes coefficients and step footholds.

    The equality rows are taken unchanged from the QP. The inequality rows
    are re-scaled with the support lines of the moved footholds at every
    evaluation.
    """

    def __init__(
        self,
        config: NlpConfig | None = None,
        support_provider: SupportProvider | None = None,
        reporter: OptimizationReporter | None = None,
    ):
        self.config = config or NlpConfig()
        self.support_provider = support_provider or SupportTriangle.from_footholds
        self.reporter = reporter or LoggingReporter()

    def initialize(
        self,
        problem: ProblemArtifacts,
        initial_guess: np.ndarray | None = None,
    ) -> tuple[_FootholdNlp, np.ndarray]:
        """Set up the NLP and its start point.

        Raises:
            SolverInitError: If the initial guess has the wrong size or is
                not finite, or the constraints cannot be evaluated there.
        """
        n = problem.n_coefficients
        if initial_guess is None:
            initial_guess = np.zeros(n)
        initial_guess = np.asarray(initial_guess, dtype=np.float64).ravel()

        if initial_guess.shape != (n,):
            raise SolverInitError(
                f"Initial guess has {initial_guess.size} coefficients, expected {n}"
            )
        if not np.all(np.isfinite(initial_guess)):
            raise SolverInitError("Initial guess contains non-finite values")

        nlp = _FootholdNlp(problem, self.support_provider, self.config)
        z0 = np.concatenate([initial_guess, nlp.planned])

        try:
            values = np.concatenate([nlp.equality(z0), nlp.inequality(z0)])
        except (ValueError, IndexError) as err:
            raise SolverInitError(f"Cannot evaluate constraints at start point: {err}") from err
        if not np.all(np.isfinite(values)):
            raise SolverInitError("Constraints are not finite at the start point")

        return nlp, z0

    def solve(
        self,
        problem: ProblemArtifacts,
        initial_guess: np.ndarray | None = None,
    ) -> SolverResult:
        nlp, z0 = self.initialize(problem, initial_guess)
        t_start = time.time()

        constraints = []
        if problem.eq_matrix.shape[0] > 0:
            constraints.append({
                "type": "eq", "fun": nlp.equality, "jac": nlp.equality_jacobian,
            })
        if problem.inequality.n_constraints > 0:
            constraints.append({
                "type": "ineq", "fun": nlp.inequality, "jac": nlp.inequality_jacobian,
            })

        result = minimize(
            nlp.objective,
            z0,
            jac=nlp.gradient,
            method="SLSQP",
            bounds=nlp.bounds(),
            constraints=constraints,
            options={
                "maxiter": self.config.max_iter,
                "ftol": self.config.ftol,
                "disp": False,
            },
        )

        if not result.success:
            self.reporter.warning(f"NLP solver did not converge: {result.message}")

        x, _ = nlp.split(result.x)
        return SolverResult(
            coefficients=x,
            cost=problem.cost(x),
            footholds=nlp.footholds(result.x),
            success=bool(result.success),
            message=str(result.message),
            n_iterations=int(result.nit),
            wall_time=time.time() - t_start,
        )
