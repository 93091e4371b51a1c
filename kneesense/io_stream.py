"""
Frame generators for video file or webcam.
Yields (frame_bgr, frame_idx, timestamp_sec); timestamps drive rep timing.
"""
from __future__ import annotations

import time
from typing import Generator

import cv2
import numpy as np

DEFAULT_VIDEO_FPS = 30.0


def video_frames(video_path: str) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield frames from a video file.
    Timestamps come from the frame index and the container FPS, so replay speed does not matter.
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"Cannot open video: {video_path}")
    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or DEFAULT_VIDEO_FPS
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, idx / fps)
            idx += 1
    finally:
        cap.release()


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = 20,
) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield frames from webcam with graceful shutdown.
    Timestamps are wall-clock seconds since the first frame.
    """
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 640)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 480)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        idx = 0
        t0 = time.perf_counter()
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, idx, time.perf_counter() - t0)
            idx += 1
    finally:
        cap.release()
