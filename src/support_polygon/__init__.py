"""Support polygon geometry for statically and dynamically stable walking."""

from .footholds import (
    Foothold,
    LegID,
    Stance,
    footholds_to_array,
    make_stance,
    stance_centroid,
)
from .support_triangle import (
    MarginValues,
    SupportLine,
    SupportTriangle,
    line_through,
)

__all__ = [
    "Foothold",
    "LegID",
    "Stance",
    "footholds_to_array",
    "make_stance",
    "stance_centroid",
    "MarginValues",
    "SupportLine",
    "SupportTriangle",
    "line_through",
]
