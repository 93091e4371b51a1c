"""
Live webcam pipeline: capture, pose, knee session, overlay window.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

import cv2

from .config import Settings
from .io_stream import webcam_frames
from .overlay import draw_realtime_overlay
from .pose import create_pose_detector, process_frame, scale_keypoints
from .session import KneeSession

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 640
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0


def run_live_pipeline(
    camera_id: int = 0,
    target_fps: float = 20,
    settings: Optional[Settings] = None,
) -> int:
    """
    Run live capture loop. q=quit, r=start a fresh session.
    Returns the rep count of the last session.
    """
    settings = settings or Settings()
    detector = create_pose_detector()
    session = KneeSession(settings)
    last_pose_time = time.perf_counter()
    message: Optional[str] = None
    win_name = "Knee Extension Coach (q=quit, r=reset)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)
    logger.info("live: started (camera=%s side=%s)", camera_id, settings.side)
    try:
        for frame_bgr, frame_idx, ts in webcam_frames(camera_id, target_fps=target_fps):
            h, w = frame_bgr.shape[:2]
            scale = LIVE_RESIZE_WIDTH / w if w > LIVE_RESIZE_WIDTH else 1.0
            if scale != 1.0:
                small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale))))
            else:
                small = frame_bgr

            pose = scale_keypoints(process_frame(small, detector), scale)
            if pose is not None:
                last_pose_time = time.perf_counter()
            result = session.process_frame(pose, ts)

            if time.perf_counter() - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif message == "Move into frame":
                message = None

            out_frame = frame_bgr.copy()
            draw_realtime_overlay(out_frame, pose, result, settings.landmarks, message)
            cv2.imshow(win_name, out_frame)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                logger.info("live: reset after %s reps (frame %s)", session.rep_count, frame_idx)
                session = KneeSession(settings)
                message = None
    finally:
        cv2.destroyAllWindows()
        detector.close()

    logger.info("live: stopped, rep_count=%s", session.rep_count)
    return session.rep_count
