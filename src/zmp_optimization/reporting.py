"""Reporting of ZMP problem construction and solver results.

Builders and solvers never log through a global logger directly. They
receive an ``OptimizationReporter`` and notify it; ``LoggingReporter``
forwards the events to the standard ``logging`` module.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class OptimizationReporter:
    """Observer of the ZMP optimization pipeline.

    The base class ignores every event. Subclasses override the hooks
    they are interested in.
    """

    def matrix_built(
        self,
        name: str,
        matrix: np.ndarray,
        vector: np.ndarray,
        wall_time: float,
    ) -> None:
        """A cost or constraint matrix/vector pair has been assembled."""

    def solved(
        self,
        name: str,
        cost: float,
        x: np.ndarray,
        wall_time: float,
    ) -> None:
        """A solver returned."""

    def warning(self, message: str) -> None:
        """Something suspicious happened that does not stop the pipeline."""


class NullReporter(OptimizationReporter):
    """Reporter that discards all events."""


class LoggingReporter(OptimizationReporter):
    """Forward pipeline events to a ``logging.Logger``.

    Timings go to INFO, matrix dimensions and contents to DEBUG.
    """

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def matrix_built(self, name, matrix, vector, wall_time):
        self.log.info("Calc. time %s:\t%.3f ms", name, wall_time * 1000.0)
        self.log.debug("%s dim: %d x %d", name, *np.atleast_2d(matrix).shape)
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "Matrix:\n%s\nVector:\n%s",
                np.array2string(matrix, precision=2, max_line_width=200),
                np.array2string(vector, precision=3, max_line_width=200),
            )

    def solved(self, name, cost, x, wall_time):
        self.log.info("Time %s:\t\t%.3f ms", name, wall_time * 1000.0)
        self.log.info("Cost:\t\t%.6g", cost)
        self.log.debug("x = %s", np.array2string(x, precision=4, max_line_width=200))

    def warning(self, message):
        self.log.warning(message)


def print_solution_summary(
    splines,
    x: np.ndarray,
    start_p: np.ndarray,
    start_v: np.ndarray,
    cost: float,
    wall_time: float,
) -> None:
    """Print a per-spline table of an optimized trajectory."""
    coeffs = splines.full_coefficients(x, start_p, start_v)

    print("\n" + "=" * 70)
    print("  ZMP Center of Gravity Trajectory")
    print("=" * 70)
    print(f"  Splines: {len(splines)} | Duration: {splines.get_total_time():.2f}s | "
          f"Cost: {cost:.5f} | Solve time: {wall_time * 1000.0:.1f} ms")

    print(f"\n  {'Spline':<6} | {'Step':>4} | {'4ls':>3} | {'T [s]':>6} | "
          f"{'x0 [m]':>8} | {'y0 [m]':>8} | {'vx0':>8} | {'vy0':>8}")
    print(f"  {'-'*6}-+-{'-'*4}-+-{'-'*3}-+-{'-'*6}-+-{'-'*8}-+-{'-'*8}-+-{'-'*8}-+-{'-'*8}")

    for s in splines:
        fx, fy = coeffs[s.id, 0, 5], coeffs[s.id, 1, 5]
        ex, ey = coeffs[s.id, 0, 4], coeffs[s.id, 1, 4]
        support = "yes" if s.four_leg_support else "no"
        print(f"  {s.id:<6} | {s.step:>4} | {support:>3} | {s.duration:6.2f} | "
              f"{fx:8.4f} | {fy:8.4f} | {ex:8.4f} | {ey:8.4f}")

    print("=" * 70)
