"""ZMP-constrained center of gravity trajectory optimization.

Provides tools for:
- Building the minimum-acceleration cost of a quintic spline sequence
- Boundary/junction equality and support triangle inequality constraints
- Solving the resulting QP, or an NLP that also moves the footholds
"""

from .cost_function import build_cost_function
from .equality_constraints import (
    BoundaryConditions,
    build_equality_constraints,
    count_equality_constraints,
)
from .errors import (
    ConfigurationError,
    InfeasibleSolutionError,
    SolverInitError,
    ZmpOptimizerError,
)
from .inequality_constraints import (
    InequalityConstraints,
    build_inequality_constraints,
    count_inequality_constraints,
    lines_for_constraint,
)
from .optimizer import (
    NonlinearSolution,
    OptimizerConfig,
    OptimizerState,
    ZmpOptimizer,
)
from .problem import ProblemArtifacts
from .reporting import LoggingReporter, NullReporter, OptimizationReporter
from .solvers import (
    NlpConfig,
    NlpSolver,
    QpSolver,
    QpSolverConfig,
    SolverResult,
    SolverStrategy,
)

__all__ = [
    "build_cost_function",
    "BoundaryConditions",
    "build_equality_constraints",
    "count_equality_constraints",
    "ConfigurationError",
    "InfeasibleSolutionError",
    "SolverInitError",
    "ZmpOptimizerError",
    "InequalityConstraints",
    "build_inequality_constraints",
    "count_inequality_constraints",
    "lines_for_constraint",
    "NonlinearSolution",
    "OptimizerConfig",
    "OptimizerState",
    "ZmpOptimizer",
    "ProblemArtifacts",
    "LoggingReporter",
    "NullReporter",
    "OptimizationReporter",
    "NlpConfig",
    "NlpSolver",
    "QpSolver",
    "QpSolverConfig",
    "SolverResult",
    "SolverStrategy",
]
