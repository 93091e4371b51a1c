"""Knee extension rep counting and live feedback from 2-D pose keypoints."""
from .config import Settings
from .session import FrameResult, KneeSession

__all__ = ["FrameResult", "KneeSession", "Settings"]
