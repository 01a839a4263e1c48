"""Immutable description of one assembled ZMP optimization problem."""

from dataclasses import dataclass

import numpy as np

from support_polygon import Foothold, LegID, MarginValues
from zmp_splines import ZmpSplineContainer

from .inequality_constraints import InequalityConstraints


@dataclass(frozen=True)
class ProblemArtifacts:
    """Matrices of the QP and the plan they were built from.

    minimize    x^T M x + v^T x
    subject to  A_eq @ x = b_eq
                A_ineq @ x >= b_ineq

    Attributes:
        splines: Spline sequence the coefficient vector refers to.
        cost_matrix: M (n, n), symmetric.
        cost_vector: v (n,), zero.
        eq_matrix: A_eq (m_eq, n).
        eq_vector: b_eq (m_eq,).
        inequality: Inequality rows plus the unscaled parts for the NLP.
        start_cog_p: Start position of the center of gravity (2,).
        start_cog_v: Start velocity of the center of gravity (2,).
        end_cog: Target position at the end (2,).
        start_stance: Footholds before the first step.
        steps: Planned footholds.
        margins: Stability margins of the support triangles.
        height_robot: Height of the center of gravity [m].
        dt: Sampling interval of the inequality constraints [s].
        gravity: Gravitational acceleration [m/s^2].
    """

    splines: ZmpSplineContainer
    cost_matrix: np.ndarray
    cost_vector: np.ndarray
    eq_matrix: np.ndarray
    eq_vector: np.ndarray
    inequality: InequalityConstraints
    start_cog_p: np.ndarray
    start_cog_v: np.ndarray
    end_cog: np.ndarray
    start_stance: dict[LegID, Foothold]
    steps: tuple[Foothold, ...]
    margins: MarginValues
    height_robot: float
    dt: float
    gravity: float

    def __post_init__(self) -> None:
        for arr in (self.cost_matrix, self.cost_vector, self.eq_matrix,
                    self.eq_vector, self.start_cog_p, self.start_cog_v, self.end_cog):
            arr.setflags(write=False)

    @property
    def ineq_matrix(self) -> np.ndarray:
        return self.inequality.matrix

    @property
    def ineq_vector(self) -> np.ndarray:
        return self.inequality.vector

    @property
    def n_coefficients(self) -> int:
        return self.cost_matrix.shape[0]

    def cost(self, x: np.ndarray) -> float:
        return float(x @ self.cost_matrix @ x + self.cost_vector @ x)

    def equality_residual(self, x: np.ndarray) -> np.ndarray:
        """A_eq @ x - b_eq (zero when satisfied)."""
        return self.eq_matrix @ x - self.eq_vector

    def inequality_slack(self, x: np.ndarray) -> np.ndarray:
        """A_ineq @ x - b_ineq (non-negative when satisfied)."""
        return self.ineq_matrix @ x - self.ineq_vector
