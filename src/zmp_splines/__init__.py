"""Quintic spline representation of the center of gravity trajectory."""

from .container import ZmpSplineContainer
from .sequence import SplineTimings, construct_spline_sequence, insert_four_leg_support
from .spline import (
    A,
    AXES,
    B,
    C,
    D,
    E,
    F,
    N_AXES,
    N_FREE_COEFF,
    X,
    Y,
    ZmpSpline,
    evaluate_quintic,
    exponents,
    var_index,
    zmp_from_state,
)

__all__ = [
    "ZmpSplineContainer",
    "SplineTimings",
    "construct_spline_sequence",
    "insert_four_leg_support",
    "A",
    "AXES",
    "B",
    "C",
    "D",
    "E",
    "F",
    "N_AXES",
    "N_FREE_COEFF",
    "X",
    "Y",
    "ZmpSpline",
    "evaluate_quintic",
    "exponents",
    "var_index",
    "zmp_from_state",
]
