"""
Draw the tracked leg and live feedback on frames.
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .feedback import Feedback, Tier
from .pose import Keypoint, Pose
from .session import STATUS_TRACKING, FrameResult

# BGR
_TIER_COLORS = {
    Tier.OK: (80, 200, 80),
    Tier.WARN: (0, 190, 255),
    Tier.BAD: (60, 60, 230),
}
_POINT_COLOR = (255, 255, 0)
_LIMB_COLOR = (0, 255, 255)
_TEXT_COLOR = (255, 255, 255)


def _pt(kp: Keypoint) -> tuple[int, int]:
    return (int(round(kp.x)), int(round(kp.y)))


def draw_leg(
    frame: np.ndarray,
    pose: Optional[Pose],
    hip: Optional[Keypoint],
    knee: Optional[Keypoint],
    ankle: Optional[Keypoint],
    min_score: float = 0.3,
) -> None:
    """Dots for confident keypoints, segments hip-knee and knee-ankle (in-place)."""
    if pose:
        for kp in pose:
            if kp.score > min_score:
                cv2.circle(frame, _pt(kp), 4, _POINT_COLOR, -1)
    if hip is not None and knee is not None:
        cv2.line(frame, _pt(hip), _pt(knee), _LIMB_COLOR, 3)
    if knee is not None and ankle is not None:
        cv2.line(frame, _pt(knee), _pt(ankle), _LIMB_COLOR, 3)


def draw_realtime_overlay(
    frame: np.ndarray,
    pose: Optional[Pose],
    result: FrameResult,
    knee_names: tuple[str, str, str],
    message: Optional[str] = None,
) -> None:
    """
    Draw realtime overlay on frame (in-place):
    - Leg skeleton from the resolved landmarks
    - Angle text, rep count, angle and speed feedback (colored by tier)
    - Optional message (e.g. "Move into frame")
    """
    h, w = frame.shape[:2]
    hip_name, knee_name, ankle_name = knee_names
    draw_leg(
        frame,
        pose,
        result.landmarks.get(hip_name),
        result.landmarks.get(knee_name),
        result.landmarks.get(ankle_name),
    )

    panel_h = 130
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    y0, dy = 28, 28

    def put(line: str, y: int, color: tuple[int, int, int] = _TEXT_COLOR) -> None:
        # Hershey fonts have no degree sign.
        cv2.putText(frame, line.replace("°", " deg"), (12, y), font, 0.6, color, 2, cv2.LINE_AA)

    def put_feedback(fb: Feedback, y: int) -> None:
        if fb.text:
            put(fb.text, y, _TIER_COLORS[fb.tier])

    angle_color = _TEXT_COLOR if result.status == STATUS_TRACKING else _TIER_COLORS[Tier.WARN]
    put(result.angle_text, y0, angle_color)
    put(f"Reps: {result.rep_count}", y0 + dy)
    put_feedback(result.angle_feedback, y0 + 2 * dy)
    put_feedback(result.speed_feedback, y0 + 3 * dy)

    if message:
        cv2.putText(
            frame, message, (w // 2 - 120, h // 2),
            font, 0.8, (0, 200, 255), 2, cv2.LINE_AA
        )
