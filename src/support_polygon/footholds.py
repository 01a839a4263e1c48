"""Leg identities and footholds of a quadruped walking robot."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Mapping, Sequence

import numpy as np


class LegID(IntEnum):
    """Legs of the quadruped, in stance iteration order."""

    LF = 0
    RF = 1
    LH = 2
    RH = 3

    @property
    def is_front(self) -> bool:
        return self in (LegID.LF, LegID.RF)

    @property
    def is_left(self) -> bool:
        return self in (LegID.LF, LegID.LH)


@dataclass
class Foothold:
    """Contact position of one leg.

    Attributes:
        p: Position in world frame (3,) [m]. The planar formulation only
            uses the x and y components.
        leg: Leg that is placed at this position.
    """

    p: np.ndarray = field(default_factory=lambda: np.zeros(3))
    leg: LegID = LegID.LF

    def __post_init__(self) -> None:
        p = np.asarray(self.p, dtype=np.float64).ravel()
        if p.size == 2:
            p = np.append(p, 0.0)
        if p.size != 3:
            raise ValueError(f"Foothold position must have 2 or 3 entries, got {p.size}")
        self.p = p
        self.leg = LegID(self.leg)

    @property
    def xy(self) -> np.ndarray:
        """Planar position (2,) [m]."""
        return self.p[:2].copy()

    def moved_to(self, xy: np.ndarray) -> "Foothold":
        """Return a copy of this foothold with a new planar position."""
        p = self.p.copy()
        p[:2] = xy
        return Foothold(p=p, leg=self.leg)


Stance = Mapping[LegID, Foothold]


def make_stance(footholds: Sequence[Foothold] | Stance) -> dict[LegID, Foothold]:
    """Build a stance dictionary with one foothold per leg.

    Args:
        footholds: Either a mapping leg -> foothold or a sequence of
            footholds carrying their own leg identity.

    Returns:
        Dictionary ordered by LegID.

    Raises:
        ValueError: If a leg is missing or appears twice.
    """
    if isinstance(footholds, Mapping):
        items = list(footholds.values())
    else:
        items = list(footholds)

    stance: dict[LegID, Foothold] = {}
    for f in items:
        if f.leg in stance:
            raise ValueError(f"Leg {f.leg.name} appears twice in stance")
        stance[f.leg] = f

    missing = [leg.name for leg in LegID if leg not in stance]
    if missing:
        raise ValueError(f"Stance is missing legs: {missing}")

    return {leg: stance[leg] for leg in LegID}


def footholds_to_array(footholds: Sequence[Foothold]) -> np.ndarray:
    """Stack the planar positions of footholds into an (N, 2) array."""
    if len(footholds) == 0:
        return np.zeros((0, 2))
    return np.array([f.xy for f in footholds])


def stance_centroid(stance: Stance) -> np.ndarray:
    """Average planar position of all feet in a stance (2,)."""
    return np.mean([f.xy for f in stance.values()], axis=0)
