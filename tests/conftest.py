from __future__ import annotations

import math

import pytest

from kneesense.pose import Keypoint


def leg_pose(angle_deg: float, side: str = "right", score: float = 0.9, thigh: float = 100.0,
             shin: float = 100.0) -> list[Keypoint]:
    """Hip straight up from a knee at (200, 200); ankle rotated so the knee angle is angle_deg."""
    kx, ky = 200.0, 200.0
    hip = Keypoint(f"{side}_hip", kx, ky - thigh, score)
    rad = math.radians(angle_deg)
    ankle = Keypoint(f"{side}_ankle", kx + shin * math.sin(rad), ky - shin * math.cos(rad), score)
    return [hip, Keypoint(f"{side}_knee", kx, ky, score), ankle]


@pytest.fixture
def make_leg():
    return leg_pose
