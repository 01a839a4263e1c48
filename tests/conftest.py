"""Shared pytest fixtures."""

import numpy as np
import pytest

from support_polygon import Foothold, LegID, MarginValues, SupportTriangle
from zmp_splines import ZmpSpline, ZmpSplineContainer


@pytest.fixture
def square_stance():
    """Four feet on a 0.6 x 0.4 m rectangle centered at the origin."""
    return [
        Foothold(p=np.array([0.3, 0.2, 0.0]), leg=LegID.LF),
        Foothold(p=np.array([0.3, -0.2, 0.0]), leg=LegID.RF),
        Foothold(p=np.array([-0.3, 0.2, 0.0]), leg=LegID.LH),
        Foothold(p=np.array([-0.3, -0.2, 0.0]), leg=LegID.RH),
    ]


@pytest.fixture
def crawl_steps():
    """One crawl cycle, 0.1 m forward per step."""
    return [
        Foothold(p=np.array([-0.2, 0.2, 0.0]), leg=LegID.LH),
        Foothold(p=np.array([0.4, 0.2, 0.0]), leg=LegID.LF),
        Foothold(p=np.array([-0.2, -0.2, 0.0]), leg=LegID.RH),
        Foothold(p=np.array([0.4, -0.2, 0.0]), leg=LegID.RF),
    ]


@pytest.fixture
def forward_step():
    """Single LF step that moves the stance centroid to (0.2, 0)."""
    return [Foothold(p=np.array([1.1, 0.2, 0.0]), leg=LegID.LF)]


@pytest.fixture
def two_segment_splines():
    """Four-leg support followed by one swing spline, 1 s each."""
    return ZmpSplineContainer([
        ZmpSpline(0, 1.0, step=0, four_leg_support=True),
        ZmpSpline(1, 1.0, step=0, four_leg_support=False),
    ])


@pytest.fixture
def wide_triangle():
    """Large support triangle without margins around the origin."""
    return SupportTriangle(
        footholds=(
            Foothold(p=np.array([-1.0, -1.0]), leg=LegID.RF),
            Foothold(p=np.array([1.5, -1.0]), leg=LegID.LH),
            Foothold(p=np.array([0.25, 1.5]), leg=LegID.RH),
        ),
        margins=MarginValues(front=0.0, hind=0.0, side=0.0, diag=0.0),
    )


@pytest.fixture
def wide_support_provider(wide_triangle):
    """Support provider returning the wide triangle for every step.

    The final stance still follows the planned footholds.
    """
    def provider(start_stance, steps, margins):
        _, final_stance = SupportTriangle.from_footholds(start_stance, steps, margins)
        return [wide_triangle] * len(steps), final_stance

    return provider
