"""Support triangles and their stability lines.

While one leg of the quadruped swings, the remaining three feet span a
support triangle. The zero-moment-point has to stay inside that triangle,
shrunk by a stability margin. Each triangle side is described by a
normalized half-plane

    p * x + q * y + r - s_margin >= 0

which is positive for points inside the (shrunk) triangle.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .footholds import Foothold, LegID, Stance, make_stance


@dataclass
class MarginValues:
    """Stability margins [m] selected by the pair of legs a side connects.

    Attributes:
        front: Side between both front legs.
        hind: Side between both hind legs.
        side: Side between front and hind leg of the same side.
        diag: Diagonal side (e.g. LF-RH).
    """

    front: float = 0.1
    hind: float = 0.1
    side: float = 0.1
    diag: float = 0.05

    def for_legs(self, leg_a: LegID, leg_b: LegID) -> float:
        """Margin of the side connecting two legs."""
        if leg_a.is_front and leg_b.is_front:
            return self.front
        if not leg_a.is_front and not leg_b.is_front:
            return self.hind
        if leg_a.is_left == leg_b.is_left:
            return self.side
        return self.diag


@dataclass(frozen=True)
class SupportLine:
    """Normalized half-plane of one support triangle side.

    Attributes:
        p: x coefficient.
        q: y coefficient.
        r: Constant term.
        s_margin: Stability margin [m].
    """

    p: float
    q: float
    r: float
    s_margin: float = 0.0

    def distance(self, xy: np.ndarray) -> float:
        """Signed distance of a point to the side (positive inside)."""
        return float(self.p * xy[0] + self.q * xy[1] + self.r)

    def is_stable(self, xy: np.ndarray) -> bool:
        return self.distance(xy) - self.s_margin >= 0.0


def line_through(
    start: np.ndarray,
    end: np.ndarray,
    inside: np.ndarray,
    s_margin: float = 0.0,
) -> SupportLine:
    """Line through two points, oriented so that ``inside`` is positive.

    Raises:
        ValueError: If the two points coincide.
    """
    p = start[1] - end[1]
    q = end[0] - start[0]
    norm = np.hypot(p, q)
    if norm < 1e-12:
        raise ValueError("Cannot build a support line from coincident footholds")

    p, q = p / norm, q / norm
    r = -(p * start[0] + q * start[1])
    if p * inside[0] + q * inside[1] + r < 0.0:
        p, q, r = -p, -q, -r

    return SupportLine(float(p), float(q), float(r), float(s_margin))


@dataclass
class SupportTriangle:
    """Triangle spanned by the three legs in contact during a swing.

    Attributes:
        footholds: The three supporting footholds, in LegID order.
        margins: Stability margins of the sides.
    """

    footholds: tuple[Foothold, Foothold, Foothold]
    margins: MarginValues

    def vertices(self) -> np.ndarray:
        """Planar vertex positions (3, 2)."""
        return np.array([f.xy for f in self.footholds])

    def lines(self) -> list[SupportLine]:
        """The three sides in edge order v0->v1, v1->v2, v2->v0."""
        v = self.vertices()
        lines = []
        for j in range(3):
            a, b = self.footholds[j], self.footholds[(j + 1) % 3]
            lines.append(line_through(
                v[j], v[(j + 1) % 3], v[(j + 2) % 3],
                self.margins.for_legs(a.leg, b.leg),
            ))
        return lines

    def contains(self, xy: np.ndarray) -> bool:
        """Whether a point satisfies all three margin-shrunk sides."""
        return all(line.is_stable(xy) for line in self.lines())

    @classmethod
    def from_footholds(
        cls,
        start_stance: Stance | Sequence[Foothold],
        steps: Sequence[Foothold],
        margins: MarginValues | None = None,
    ) -> tuple[list["SupportTriangle"], dict[LegID, Foothold]]:
        """Support triangles of a step sequence.

        The triangle of step i is formed by the legs in contact while
        ``steps[i].leg`` swings. The stance is updated with each step.

        Args:
            start_stance: One foothold per leg before the first step.
            steps: Planned footholds, in stepping order.
            margins: Stability margins. Uses defaults if None.

        Returns:
            Tuple of (one triangle per step, final stance).
        """
        margins = margins or MarginValues()
        stance = make_stance(start_stance)

        triangles = []
        for step in steps:
            supporting = tuple(f for leg, f in stance.items() if leg != step.leg)
            triangles.append(cls(footholds=supporting, margins=margins))
            stance[step.leg] = step

        return triangles, stance
