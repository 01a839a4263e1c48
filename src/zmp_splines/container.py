"""Ordered sequence of ZMP splines with boundary propagation.

Position and velocity continuity between consecutive splines is not
enforced by constraints. Instead the integration constants E and F of
spline k are written as affine functions of the free coefficients of all
preceding splines:

    E_k = v0 + sum_{j<k} (5 A_j T_j^4 + 4 B_j T_j^3 + 3 C_j T_j^2 + 2 D_j T_j)
    F_k = p0 + sum_{j<k} (A_j T_j^5 + B_j T_j^4 + C_j T_j^3 + D_j T_j^2 + E_j T_j)

The chain is computed once per axis and start velocity and cached, since
every constraint builder asks for the same splines repeatedly.
"""

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .spline import (
    AXES,
    N_AXES,
    N_COEFF,
    N_FREE_COEFF,
    A,
    ZmpSpline,
    evaluate_quintic,
    exponents,
    var_index,
)


@dataclass(frozen=True)
class _Propagation:
    """E/F affine descriptions of every spline for one axis."""

    e_vectors: np.ndarray  # (n_splines, n_coeff)
    e_constants: np.ndarray  # (n_splines,)
    f_vectors: np.ndarray  # (n_splines, n_coeff)
    f_constants: np.ndarray  # (n_splines,), without the start position


class ZmpSplineContainer:
    """Spline sequence shared by all ZMP problem builders.

    Usage:
        splines = ZmpSplineContainer([
            ZmpSpline(0, 1.0, step=0, four_leg_support=True),
            ZmpSpline(1, 0.8, step=0),
        ])
        n = splines.coefficient_count()
        e_vec, e_const = splines.describe_velocity_continuation(1, X, 0.0)
    """

    def __init__(self, splines: Iterable[ZmpSpline] = ()):
        self.splines: tuple[ZmpSpline, ...] = tuple(splines)
        for position, s in enumerate(self.splines):
            if s.id != position:
                raise ValueError(
                    f"Spline ids must match their sequence position: "
                    f"spline at {position} has id {s.id}"
                )
        self._cache: dict[tuple[int, float], _Propagation] = {}

    def __len__(self) -> int:
        return len(self.splines)

    def __iter__(self):
        return iter(self.splines)

    @property
    def empty(self) -> bool:
        return len(self.splines) == 0

    def coefficient_count(self) -> int:
        """Total number of free coefficients (splines x axes x A..D)."""
        return len(self.splines) * N_AXES * N_FREE_COEFF

    def index(self, spline_id: int, axis: int, coeff: int) -> int:
        """Bounds-checked ``var_index`` for a spline of this sequence."""
        if not 0 <= spline_id < len(self.splines):
            raise IndexError(
                f"Spline id {spline_id} out of range for {len(self.splines)} splines"
            )
        return var_index(spline_id, axis, coeff)

    def axis_of_index(self) -> np.ndarray:
        """Axis (X or Y) of every entry of the coefficient vector."""
        pattern = np.repeat(np.array(AXES), N_FREE_COEFF)
        return np.tile(pattern, len(self.splines))

    def get_total_time(self) -> float:
        return float(sum(s.duration for s in self.splines))

    def get_spline_at(self, t_global: float) -> tuple[ZmpSpline, float]:
        """Spline active at a global time and the local time within it.

        Times past the end map to the end of the last spline.
        """
        if self.empty:
            raise ValueError("Spline sequence is empty")
        if t_global < 0.0:
            raise ValueError(f"Time must be non-negative, got {t_global}")

        t_local = t_global
        for s in self.splines:
            if t_local <= s.duration:
                return s, t_local
            t_local -= s.duration

        last = self.splines[-1]
        return last, last.duration

    # ------------------------------------------------------------------
    # Boundary propagation
    # ------------------------------------------------------------------

    def _propagation(self, axis: int, start_v: float) -> _Propagation:
        key = (axis, float(start_v))
        if key in self._cache:
            return self._cache[key]

        n_splines = len(self.splines)
        n = self.coefficient_count()
        e_vectors = np.zeros((n_splines, n))
        f_vectors = np.zeros((n_splines, n))
        e_constants = np.zeros(n_splines)
        f_constants = np.zeros(n_splines)

        e_vec = np.zeros(n)
        f_vec = np.zeros(n)
        e_const = float(start_v)
        f_const = 0.0

        for s in self.splines:
            k = s.id
            e_vectors[k], e_constants[k] = e_vec, e_const
            f_vectors[k], f_constants[k] = f_vec, f_const

            t = exponents(s.duration, 5)
            a = var_index(k, axis, A)

            # position and velocity of spline k at its own duration
            f_vec = f_vec + t[1] * e_vec
            f_vec[a:a + N_FREE_COEFF] += (t[5], t[4], t[3], t[2])
            f_const = f_const + t[1] * e_const

            e_vec = e_vec.copy()
            e_vec[a:a + N_FREE_COEFF] += (5 * t[4], 4 * t[3], 3 * t[2], 2 * t[1])

        for arr in (e_vectors, e_constants, f_vectors, f_constants):
            arr.setflags(write=False)

        prop = _Propagation(e_vectors, e_constants, f_vectors, f_constants)
        self._cache[key] = prop
        return prop

    def describe_velocity_continuation(
        self,
        spline_id: int,
        axis: int,
        start_v: float,
    ) -> tuple[np.ndarray, float]:
        """Coefficient E of a spline as an affine function of earlier splines.

        Args:
            spline_id: Spline whose E is described.
            axis: X or Y.
            start_v: Center of gravity velocity at t=0 along axis.

        Returns:
            Tuple of (read-only linear combination over all free
            coefficients (n_coeff,), constant offset).
        """
        self.index(spline_id, axis, A)
        prop = self._propagation(axis, start_v)
        return prop.e_vectors[spline_id], float(prop.e_constants[spline_id])

    def describe_position_continuation(
        self,
        spline_id: int,
        axis: int,
        start_v: float,
        start_p: float,
    ) -> tuple[np.ndarray, float]:
        """Coefficient F of a spline as an affine function of earlier splines.

        Args:
            spline_id: Spline whose F is described.
            axis: X or Y.
            start_v: Center of gravity velocity at t=0 along axis.
            start_p: Center of gravity position at t=0 along axis.

        Returns:
            Tuple of (read-only linear combination over all free
            coefficients (n_coeff,), constant offset).
        """
        self.index(spline_id, axis, A)
        prop = self._propagation(axis, start_v)
        return prop.f_vectors[spline_id], float(prop.f_constants[spline_id] + start_p)

    # ------------------------------------------------------------------
    # Evaluation of optimized coefficients
    # ------------------------------------------------------------------

    def full_coefficients(
        self,
        x: np.ndarray,
        start_p: np.ndarray,
        start_v: np.ndarray,
    ) -> np.ndarray:
        """Expand optimized A..D into complete A..F coefficients.

        Args:
            x: Optimized coefficient vector (n_coeff,).
            start_p: Start position (2,).
            start_v: Start velocity (2,).

        Returns:
            Array (n_splines, 2, 6).
        """
        x = np.asarray(x, dtype=np.float64).ravel()
        if x.size != self.coefficient_count():
            raise ValueError(
                f"Expected {self.coefficient_count()} coefficients, got {x.size}"
            )

        coeffs = np.zeros((len(self.splines), N_AXES, N_COEFF))
        for axis in AXES:
            prop = self._propagation(axis, start_v[axis])
            for s in self.splines:
                a = var_index(s.id, axis, A)
                coeffs[s.id, axis, :N_FREE_COEFF] = x[a:a + N_FREE_COEFF]
                coeffs[s.id, axis, 4] = prop.e_vectors[s.id] @ x + prop.e_constants[s.id]
                coeffs[s.id, axis, 5] = (
                    prop.f_vectors[s.id] @ x + prop.f_constants[s.id] + start_p[axis]
                )
        return coeffs

    def evaluate(
        self,
        x: np.ndarray,
        start_p: np.ndarray,
        start_v: np.ndarray,
        t_global: float,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Center of gravity state at a global time.

        Returns:
            Tuple of (pos, vel, acc, jerk), each (2,).
        """
        coeffs = self.full_coefficients(x, start_p, start_v)
        s, t_local = self.get_spline_at(t_global)
        state = np.array([evaluate_quintic(coeffs[s.id, axis], t_local) for axis in AXES])
        return state[:, 0], state[:, 1], state[:, 2], state[:, 3]

    def sample(
        self,
        x: np.ndarray,
        start_p: np.ndarray,
        start_v: np.ndarray,
        dt: float,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Sample the whole trajectory at a fixed interval.

        Returns:
            Tuple of (times (N,), pos (N, 2), vel (N, 2), acc (N, 2)).
        """
        if dt <= 0.0:
            raise ValueError(f"Sampling interval must be > 0, got {dt}")

        coeffs = self.full_coefficients(x, start_p, start_v)
        n_steps = int(np.floor(self.get_total_time() / dt)) + 1
        times = np.arange(n_steps) * dt
        states = np.zeros((n_steps, N_AXES, 4))
        for i, t in enumerate(times):
            s, t_local = self.get_spline_at(t)
            for axis in AXES:
                states[i, axis] = evaluate_quintic(coeffs[s.id, axis], t_local)

        return times, states[:, :, 0], states[:, :, 1], states[:, :, 2]
