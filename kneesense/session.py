"""
One tracked person's session: stabilize -> knee angle -> smooth -> rep step -> feedback.
The caller owns the session and feeds it frames strictly in order.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from .angles import AngleSmoother, angle_at
from .config import Settings
from .feedback import Feedback, FeedbackBoard, FeedbackEvent, Tier
from .pose import Keypoint, Pose
from .reps import Flexing, RepStateMachine
from .stabilizer import KeypointStabilizer

logger = logging.getLogger(__name__)

STATUS_TRACKING = "tracking"
STATUS_UNDETECTED = "undetected"
STATUS_INVALID = "invalid"


@dataclass
class FrameResult:
    status: str
    angle_text: str
    rep_count: int
    phase: str
    angle_feedback: Feedback
    speed_feedback: Feedback
    angle_deg: Optional[float] = None
    smoothed_deg: Optional[float] = None
    events: list[FeedbackEvent] = field(default_factory=list)
    landmarks: dict[str, Optional[Keypoint]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "angle_text": self.angle_text,
            "angle_deg": self.angle_deg,
            "smoothed_deg": self.smoothed_deg,
            "rep_count": self.rep_count,
            "phase": self.phase,
            "angle_feedback": self.angle_feedback.to_dict(),
            "speed_feedback": self.speed_feedback.to_dict(),
            "landmarks": {
                name: ([kp.x, kp.y] if kp is not None else None)
                for name, kp in self.landmarks.items()
            },
        }


class KneeSession:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        s = self.settings
        self.stabilizer = KeypointStabilizer(
            min_score=s.min_score,
            max_gap_sec=s.max_gap_sec,
            shared_timestamp=s.shared_timestamp,
        )
        self.smoother = AngleSmoother(s.smoothing_alpha)
        self.machine = RepStateMachine(s)
        self.feedback = FeedbackBoard(
            angle=Feedback(f"Model ready. Sit sideways and start extending your {s.side} leg.", Tier.OK),
        )
        self.frames = 0

    @property
    def rep_count(self) -> int:
        return self.machine.rep_count

    def _result(
        self,
        status: str,
        angle_text: str,
        landmarks: dict[str, Optional[Keypoint]],
        angle: Optional[float] = None,
        events: Optional[list[FeedbackEvent]] = None,
    ) -> FrameResult:
        return FrameResult(
            status=status,
            angle_text=angle_text,
            rep_count=self.machine.rep_count,
            phase=self.machine.phase,
            angle_feedback=self.feedback.angle,
            speed_feedback=self.feedback.speed,
            angle_deg=angle,
            smoothed_deg=self.smoother.value if status == STATUS_TRACKING else None,
            events=events or [],
            landmarks=landmarks,
        )

    def process_frame(self, pose: Optional[Pose], timestamp: float) -> FrameResult:
        """Run one frame. `pose` is None when no person was detected."""
        self.frames += 1
        hip_name, knee_name, ankle_name = self.settings.landmarks
        landmarks = self.stabilizer.resolve_many(pose, self.settings.landmarks, timestamp)
        hip, knee, ankle = landmarks[hip_name], landmarks[knee_name], landmarks[ankle_name]

        if hip is None or knee is None or ankle is None:
            return self._result(
                STATUS_UNDETECTED,
                f"Angle: --° ({self.settings.side} leg not clearly detected)",
                landmarks,
            )

        angle = angle_at(hip, knee, ankle)
        if angle is None or not math.isfinite(angle):
            logger.debug("session: invalid angle at frame %s", self.frames)
            return self._result(STATUS_INVALID, "Angle: --° (invalid)", landmarks)

        smoothed = self.smoother.update(angle)
        events = self.machine.step(smoothed, timestamp)
        self.feedback.apply(events)

        state = self.machine.state
        if isinstance(state, Flexing):
            angle_text = f"Max Angle: {state.max_angle:.1f}°"
        else:
            angle_text = f"Angle: {smoothed:.1f}°"
        return self._result(STATUS_TRACKING, angle_text, landmarks, angle=angle, events=events)
