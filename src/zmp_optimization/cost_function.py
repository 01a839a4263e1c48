"""Minimum-acceleration cost of the center of gravity splines."""

import time

import numpy as np

from zmp_splines import A, AXES, B, C, D, ZmpSplineContainer, exponents, var_index

from .reporting import NullReporter, OptimizationReporter


def build_cost_function(
    splines: ZmpSplineContainer,
    weights: np.ndarray,
    reporter: OptimizationReporter | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Quadratic cost x^T M x + v^T x of the integrated squared acceleration.

    For every spline and axis, M holds the closed-form integral over
    [0, T] of (20 A t^3 + 12 B t^2 + 6 C t + 2 D)^2, see M. Kalakrishnan
    et al., "Learning, Planning and Control for Quadruped Locomotion over
    Challenging Terrain", IJRR 2010, p. 248. E and F do not enter the
    acceleration, so they carry no cost. Splines never couple, M is block
    diagonal.

    Args:
        splines: Spline sequence.
        weights: Cost weight per axis (2,).
        reporter: Receives the build time and matrix.

    Returns:
        Tuple of (symmetric M (n, n), zero v (n,)).

    Raises:
        ValueError: If the spline sequence is empty or weights are not (2,).
    """
    if splines.empty:
        raise ValueError("Spline sequence is empty, cannot build cost function")
    weights = np.asarray(weights, dtype=np.float64).ravel()
    if weights.shape != (len(AXES),):
        raise ValueError(f"Expected one weight per axis, got shape {weights.shape}")

    reporter = reporter or NullReporter()
    t_start = time.time()

    n = splines.coefficient_count()
    M = np.zeros((n, n))
    v = np.zeros(n)

    for s in splines:
        t = exponents(s.duration, 7)

        for axis in AXES:
            a = var_index(s.id, axis, A)
            b = var_index(s.id, axis, B)
            c = var_index(s.id, axis, C)
            d = var_index(s.id, axis, D)
            w = weights[axis]

            M[a, a] = 400.0 / 7.0 * t[7] * w
            M[a, b] = 40.0 * t[6] * w
            M[a, c] = 24.0 * t[5] * w
            M[a, d] = 10.0 * t[4] * w
            M[b, b] = 144.0 / 5.0 * t[5] * w
            M[b, c] = 18.0 * t[4] * w
            M[b, d] = 8.0 * t[3] * w
            M[c, c] = 12.0 * t[3] * w
            M[c, d] = 6.0 * t[2] * w
            M[d, d] = 4.0 * t[1] * w

    # mirror upper triangle
    M = np.triu(M) + np.triu(M, k=1).T

    reporter.matrix_built("cost function", M, v, time.time() - t_start)
    return M, v
