"""Center of gravity trajectory optimizer for dynamic walking.

Builds a QP over the free coefficients of a quintic spline sequence so
that the zero-moment-point stays inside the support triangles of a
foothold plan:

1. Cost: integrated squared acceleration of every spline.
2. Equality: start/end conditions and acceleration/jerk continuity.
3. Inequality: ZMP on the inner side of every support triangle side,
   sampled every dt during swing phases.

The QP is handed to a ``QpSolver``. ``solve_nonlinear`` hands the same
problem to an ``NlpSolver`` that may also move the step footholds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np
from scipy.constants import g as STANDARD_GRAVITY

from support_polygon import (
    Foothold,
    MarginValues,
    Stance,
    SupportTriangle,
    make_stance,
    stance_centroid,
)
from zmp_splines import N_AXES, ZmpSplineContainer

from .cost_function import build_cost_function
from .equality_constraints import BoundaryConditions, build_equality_constraints
from .errors import ConfigurationError, InfeasibleSolutionError
from .inequality_constraints import build_inequality_constraints, lines_for_constraint
from .problem import ProblemArtifacts
from .reporting import LoggingReporter, OptimizationReporter
from .solvers import (
    NlpConfig,
    NlpSolver,
    QpSolver,
    QpSolverConfig,
    SolverStrategy,
    SupportProvider,
)


@dataclass
class OptimizerConfig:
    """Configuration of the ZMP optimizer.

    Attributes:
        weights: Cost weight per horizontal axis (2,).
        margins: Stability margins of the support triangles [m].
        height_robot: Approximate height of the center of gravity [m].
        dt: Sampling interval of the stability constraints [s].
        gravity: Gravitational acceleration [m/s^2].
        min_cost_threshold: Solutions cheaper than this are rejected as
            trivial. Empirical guard, not a feasibility certificate.
        boundary: Fixed start/end derivatives.
        qp: QP solver configuration.
        nlp: Nonlinear solver configuration.
    """

    weights: np.ndarray = field(default_factory=lambda: np.ones(2))
    margins: MarginValues = field(default_factory=MarginValues)
    height_robot: float = 0.58
    dt: float = 0.1
    gravity: float = STANDARD_GRAVITY
    min_cost_threshold: float = 0.002
    boundary: BoundaryConditions = field(default_factory=BoundaryConditions)
    qp: QpSolverConfig = field(default_factory=QpSolverConfig)
    nlp: NlpConfig = field(default_factory=NlpConfig)


@dataclass
class NonlinearSolution:
    """Result of the nonlinear solve.

    Attributes:
        coefficients: Optimized spline coefficients (n,).
        footholds: Optimized step footholds.
        cost: Spline cost x^T M x + v^T x.
        success: Whether the NLP solver reported convergence.
    """

    coefficients: np.ndarray
    footholds: list[Foothold]
    cost: float
    success: bool


class OptimizerState(Enum):
    UNINITIALIZED = "uninitialized"
    MATRICES_BUILT = "matrices_built"
    SOLVED = "solved"


class ZmpOptimizer:
    """Center of gravity trajectory optimizer.

    Usage:
        splines = construct_spline_sequence(steps, SplineTimings())
        optimizer = ZmpOptimizer(splines, OptimizerConfig())
        artifacts = optimizer.setup(start_p, start_v, start_stance, steps)
        x = optimizer.solve(artifacts)
    """

    def __init__(
        self,
        splines: ZmpSplineContainer,
        config: OptimizerConfig | None = None,
        qp_solver: SolverStrategy | None = None,
        nlp_solver: NlpSolver | None = None,
        support_provider: SupportProvider | None = None,
        reporter: OptimizationReporter | None = None,
    ):
        """Initialize optimizer.

        Args:
            splines: Spline sequence of the walking plan.
            config: Optimizer configuration. Uses defaults if None.
            qp_solver: QP strategy. A ``QpSolver`` if None.
            nlp_solver: Nonlinear strategy. An ``NlpSolver`` if None.
            support_provider: Computes support triangles from footholds.
                ``SupportTriangle.from_footholds`` if None.
            reporter: Receives build and solve events.
        """
        self.splines = splines
        self.config = config or OptimizerConfig()
        self.reporter = reporter or LoggingReporter()
        self.support_provider = support_provider or SupportTriangle.from_footholds
        self.qp_solver = qp_solver or QpSolver(self.config.qp, self.reporter)
        self.nlp_solver = nlp_solver or NlpSolver(
            self.config.nlp, self.support_provider, self.reporter,
        )

        self.state = OptimizerState.UNINITIALIZED
        self.artifacts: ProblemArtifacts | None = None

    def _validate_config(
        self,
        weights: np.ndarray,
        height_robot: float,
    ) -> None:
        if self.splines is None or self.splines.empty:
            raise ConfigurationError(
                "Spline sequence is empty. Construct the spline sequence first."
            )
        if weights.shape != (N_AXES,):
            raise ConfigurationError(f"Expected one weight per axis, got shape {weights.shape}")
        if not height_robot > 0.0:
            raise ConfigurationError(f"Robot height must be > 0, got {height_robot}")
        if not self.config.dt > 0.0:
            raise ConfigurationError(f"Sampling interval must be > 0, got {self.config.dt}")

    def _validate_plan(
        self,
        start_cog_p: np.ndarray,
        start_cog_v: np.ndarray,
        steps: tuple[Foothold, ...],
    ) -> None:
        for name, arr in (("start position", start_cog_p), ("start velocity", start_cog_v)):
            if arr.shape != (N_AXES,):
                raise ConfigurationError(
                    f"Expected a planar {name} of shape ({N_AXES},), got shape {arr.shape}"
                )
        for s in self.splines:
            if not s.four_leg_support and not 0 <= s.step < len(steps):
                raise ConfigurationError(
                    f"Spline {s.id} swings during step {s.step}, "
                    f"but the foothold plan has {len(steps)} steps"
                )

    def setup(
        self,
        start_cog_p: np.ndarray,
        start_cog_v: np.ndarray,
        start_stance: Stance | Sequence[Foothold],
        steps: Sequence[Foothold],
        weights: np.ndarray | None = None,
        margins: MarginValues | None = None,
        height_robot: float | None = None,
    ) -> ProblemArtifacts:
        """Build cost, equality and inequality matrices.

        The center of gravity is driven to the centroid of the final stance.

        Args:
            start_cog_p: Start position of the center of gravity (2,).
            start_cog_v: Start velocity of the center of gravity (2,).
            start_stance: One foothold per leg before the first step.
            steps: Planned footholds, in stepping order.
            weights: Cost weight per axis. Config value if None.
            margins: Stability margins. Config value if None.
            height_robot: Height of the center of gravity. Config value if None.

        Returns:
            The assembled problem, also kept for ``solve``.

        Raises:
            ConfigurationError: If the spline sequence is empty, a swing
                spline has no planned step, the start state is not planar,
                or a parameter is invalid.
        """
        weights = np.asarray(
            self.config.weights if weights is None else weights, dtype=np.float64,
        ).ravel()
        margins = margins or self.config.margins
        height_robot = self.config.height_robot if height_robot is None else height_robot
        self._validate_config(weights, height_robot)

        start_cog_p = np.array(start_cog_p, dtype=np.float64)
        start_cog_v = np.array(start_cog_v, dtype=np.float64)
        steps = tuple(steps)
        self._validate_plan(start_cog_p, start_cog_v, steps)
        stance = make_stance(start_stance)

        M, v = build_cost_function(self.splines, weights, self.reporter)

        supp_triangles, final_stance = self.support_provider(stance, steps, margins)
        end_cog = stance_centroid(final_stance)

        A_eq, b_eq = build_equality_constraints(
            self.splines, start_cog_p, start_cog_v, end_cog,
            self.config.boundary, self.reporter,
        )

        lines = lines_for_constraint(self.splines, supp_triangles, self.config.dt)
        inequality = build_inequality_constraints(
            self.splines, start_cog_p, start_cog_v, lines,
            height_robot, self.config.dt, self.config.gravity, self.reporter,
        )

        self.artifacts = ProblemArtifacts(
            splines=self.splines,
            cost_matrix=M,
            cost_vector=v,
            eq_matrix=A_eq,
            eq_vector=b_eq,
            inequality=inequality,
            start_cog_p=start_cog_p,
            start_cog_v=start_cog_v,
            end_cog=end_cog,
            start_stance=stance,
            steps=steps,
            margins=margins,
            height_robot=float(height_robot),
            dt=self.config.dt,
            gravity=self.config.gravity,
        )
        self.state = OptimizerState.MATRICES_BUILT
        return self.artifacts

    def _require_artifacts(self, artifacts: ProblemArtifacts | None) -> ProblemArtifacts:
        if artifacts is None:
            artifacts = self.artifacts
        if artifacts is None:
            raise ConfigurationError("No problem has been set up. Call setup() first.")
        return artifacts

    def solve(self, artifacts: ProblemArtifacts | None = None) -> np.ndarray:
        """Solve the QP.

        Args:
            artifacts: Problem to solve. The last ``setup`` result if None.

        Returns:
            Optimized coefficient vector (n,).

        Raises:
            ConfigurationError: If no problem has been set up.
            InfeasibleSolutionError: If the cost is unbounded or below
                ``config.min_cost_threshold``.
        """
        artifacts = self._require_artifacts(artifacts)

        result = self.qp_solver.solve(artifacts)
        self.reporter.solved("QP solver", result.cost, result.coefficients, result.wall_time)

        if not np.isfinite(result.cost) or result.cost < self.config.min_cost_threshold:
            raise InfeasibleSolutionError(
                f"QP solver did not find a solution (cost = {result.cost:.6g})"
            )

        self.state = OptimizerState.SOLVED
        return result.coefficients

    def solve_nonlinear(
        self,
        artifacts: ProblemArtifacts | None = None,
        initial_coefficients: np.ndarray | None = None,
    ) -> NonlinearSolution:
        """Co-optimize spline coefficients and step footholds.

        Args:
            artifacts: Problem to solve. The last ``setup`` result if None.
            initial_coefficients: Start point of the coefficients. The QP
                solution if None.

        Returns:
            NonlinearSolution with coefficients and footholds.

        Raises:
            ConfigurationError: If no problem has been set up.
            InfeasibleSolutionError: If the seeding QP solve fails.
            SolverInitError: If the NLP solver cannot be initialized.
        """
        artifacts = self._require_artifacts(artifacts)
        if initial_coefficients is None:
            initial_coefficients = self.solve(artifacts)

        result = self.nlp_solver.solve(artifacts, initial_coefficients)
        self.reporter.solved("NLP solver", result.cost, result.coefficients, result.wall_time)

        self.state = OptimizerState.SOLVED
        return NonlinearSolution(
            coefficients=result.coefficients,
            footholds=result.footholds,
            cost=result.cost,
            success=result.success,
        )
