"""Construction of the spline sequence of a crawl gait."""

from dataclasses import dataclass
from typing import Sequence

from support_polygon import Foothold, LegID

from .container import ZmpSplineContainer
from .spline import ZmpSpline


@dataclass
class SplineTimings:
    """Durations of the walking phases [s].

    Attributes:
        t_swing: Single swing phase, one spline per step.
        t_stance: Four-leg support inserted between disjoint triangles.
        t_stance_initial: Four-leg support before the first step.
        t_stance_final: Four-leg support after the last step.
    """

    t_swing: float = 0.7
    t_stance: float = 0.4
    t_stance_initial: float = 1.0
    t_stance_final: float = 0.4


def insert_four_leg_support(prev: LegID, next_: LegID) -> bool:
    """Whether swinging ``prev`` then ``next_`` gives disjoint triangles.

    After a diagonal leg switch the two support triangles only share a
    side, so the center of gravity needs a four-leg support phase to cross
    over. The direction of the switch does not matter.
    """
    diagonal = {frozenset((LegID.LF, LegID.RH)), frozenset((LegID.RF, LegID.LH))}
    return frozenset((prev, next_)) in diagonal


def construct_spline_sequence(
    steps: Sequence[Foothold | LegID],
    timings: SplineTimings | None = None,
) -> ZmpSplineContainer:
    """Build the spline sequence for a list of steps.

    Args:
        steps: Swing legs (or planned footholds) in stepping order.
        timings: Phase durations. Uses defaults if None.

    Returns:
        Container with an initial four-leg support spline, one swing
        spline per step, four-leg support splines between disjoint
        triangles, and a final four-leg support spline.
    """
    timings = timings or SplineTimings()
    legs = [s.leg if isinstance(s, Foothold) else LegID(s) for s in steps]

    splines: list[ZmpSpline] = []

    def append(duration: float, step: int, four_leg_support: bool) -> None:
        splines.append(ZmpSpline(len(splines), duration, step, four_leg_support))

    append(timings.t_stance_initial, 0, True)

    for step, leg in enumerate(legs):
        if step > 0 and insert_four_leg_support(legs[step - 1], leg):
            append(timings.t_stance, step, True)
        append(timings.t_swing, step, False)

    append(timings.t_stance_final, max(len(legs) - 1, 0), True)

    return ZmpSplineContainer(splines)
