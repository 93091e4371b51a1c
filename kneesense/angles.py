"""
Knee angle from hip, knee and ankle positions, plus EMA smoothing.
"""
from __future__ import annotations

import math
from typing import Optional

from .config import SMOOTHING_ALPHA
from .pose import Keypoint


def angle_at(hip: Keypoint, knee: Keypoint, ankle: Keypoint) -> Optional[float]:
    """Angle at the knee for triangle hip-knee-ankle, in degrees [0, 180]."""
    v1 = (hip.x - knee.x, hip.y - knee.y)
    v2 = (ankle.x - knee.x, ankle.y - knee.y)
    mag1 = math.hypot(v1[0], v1[1])
    mag2 = math.hypot(v2[0], v2[1])
    if mag1 == 0 or mag2 == 0:
        return None
    cos_val = (v1[0] * v2[0] + v1[1] * v2[1]) / (mag1 * mag2)
    if math.isnan(cos_val):
        return None
    cos_val = max(-1.0, min(1.0, cos_val))
    return math.degrees(math.acos(cos_val))


class AngleSmoother:
    """Running exponential average; the first sample seeds it."""

    def __init__(self, alpha: float = SMOOTHING_ALPHA):
        self.alpha = alpha
        self.value: Optional[float] = None

    def update(self, sample: float) -> float:
        if self.value is None:
            self.value = sample
        else:
            self.value = self.alpha * sample + (1 - self.alpha) * self.value
        return self.value
