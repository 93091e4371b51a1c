"""
Keypoint type and pose sources.

Two ways in: MediaPipe Pose Landmarker on a BGR frame (server side), or a
JSON payload of MoveNet-style keypoints produced by a browser client.
Both yield a list of named keypoints in pixel coordinates.
"""
from __future__ import annotations

import logging
import os
import urllib.request
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keypoint:
    name: str
    x: float
    y: float
    score: float


Pose = Sequence[Keypoint]

# MediaPipe Pose landmark order (33 landmarks), MoveNet naming.
LANDMARK_NAMES: tuple[str, ...] = (
    "nose",
    "left_eye_inner", "left_eye", "left_eye_outer",
    "right_eye_inner", "right_eye", "right_eye_outer",
    "left_ear", "right_ear",
    "mouth_left", "mouth_right",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_pinky", "right_pinky",
    "left_index", "right_index",
    "left_thumb", "right_thumb",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
    "left_heel", "right_heel",
    "left_foot_index", "right_foot_index",
)

# Pose Landmarker model URL (lite = faster, CPU-friendly)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"


def find_keypoint(pose: Optional[Pose], name: str) -> Optional[Keypoint]:
    """First keypoint called `name` in the pose, or None."""
    if not pose:
        return None
    for kp in pose:
        if kp.name == name:
            return kp
    return None


def keypoints_from_payload(items: Optional[Iterable[Any]]) -> Optional[list[Keypoint]]:
    """
    Parse [{name, x, y, score}, ...] as sent by a MoveNet client.
    Returns None for a missing/empty pose; malformed entries are skipped.
    """
    if not items:
        return None
    if not isinstance(items, (list, tuple)):
        logger.debug("pose: ignoring non-list keypoints payload %r", items)
        return None
    out: list[Keypoint] = []
    for item in items:
        try:
            kp = Keypoint(
                name=str(item["name"]),
                x=float(item["x"]),
                y=float(item["y"]),
                score=float(item.get("score", 0.0) or 0.0),
            )
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.debug("pose: skipping malformed keypoint %r", item)
            continue
        out.append(kp)
    return out or None


def scale_keypoints(pose: Optional[Pose], factor: float) -> Optional[list[Keypoint]]:
    """Map keypoints detected on a resized frame back to the original size."""
    if pose is None:
        return None
    if factor == 1.0:
        return list(pose)
    return [Keypoint(kp.name, kp.x / factor, kp.y / factor, kp.score) for kp in pose]


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to pose landmarker model, downloading if needed."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "outputs")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        logger.info("pose: downloading model to %s", path)
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    min_tracking_confidence: float = 0.5,
    cache_dir: Optional[str] = None,
):
    """Create a single-person PoseLandmarker (MediaPipe 0.10+ tasks API, IMAGE mode)."""
    from mediapipe.tasks import python as mp_tasks
    from mediapipe.tasks.python import vision

    model_path = _get_model_path(cache_dir)
    options = vision.PoseLandmarkerOptions(
        base_options=mp_tasks.BaseOptions(model_asset_path=model_path),
        running_mode=vision.RunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_detection_confidence,
        min_pose_presence_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return vision.PoseLandmarker.create_from_options(options)


def process_frame(frame_bgr: np.ndarray, detector) -> Optional[list[Keypoint]]:
    """
    Run pose estimation on one BGR frame.
    Returns named keypoints in pixel coords (score = landmark visibility), or None if no pose.
    """
    import mediapipe as mp

    h, w = frame_bgr.shape[:2]
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    result = detector.detect(mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb))
    if not result.pose_landmarks:
        return None
    landmarks = result.pose_landmarks[0]
    out = []
    for name, lm in zip(LANDMARK_NAMES, landmarks):
        # Landmarker always reports visibility; treat a missing one as present.
        score = lm.visibility if lm.visibility is not None else 1.0
        out.append(Keypoint(name, lm.x * w, lm.y * h, float(score)))
    return out
