"""
Keypoint stabilization: bridge short detection dropouts by reusing the last
confident observation of a landmark for a bounded time window.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from .config import MAX_GAP_SEC, MIN_KEYPOINT_SCORE
from .pose import Keypoint, Pose, find_keypoint

logger = logging.getLogger(__name__)


class KeypointStabilizer:
    """
    Per-landmark cache of the last keypoint with score >= min_score.

    With shared_timestamp=True every fresh sighting refreshes the validity
    window of all cached landmarks (the behaviour of the browser prototype);
    by default each landmark ages on its own clock.
    """

    def __init__(
        self,
        min_score: float = MIN_KEYPOINT_SCORE,
        max_gap_sec: float = MAX_GAP_SEC,
        shared_timestamp: bool = False,
    ):
        self.min_score = min_score
        self.max_gap_sec = max_gap_sec
        self.shared_timestamp = shared_timestamp
        self._cache: dict[str, tuple[Keypoint, float]] = {}
        self._last_update: Optional[float] = None

    def clear(self) -> None:
        self._cache.clear()
        self._last_update = None

    def resolve(self, pose: Optional[Pose], name: str, now: float) -> Optional[Keypoint]:
        direct = find_keypoint(pose, name)
        if direct is not None and direct.score >= self.min_score:
            self._cache[name] = (direct, now)
            self._last_update = now
            return direct

        cached = self._cache.get(name)
        if cached is None:
            return None
        kp, seen_at = cached
        if self.shared_timestamp and self._last_update is not None:
            seen_at = self._last_update
        if now - seen_at <= self.max_gap_sec:
            logger.debug("stabilizer: reusing %s from %.3fs ago", name, now - seen_at)
            return kp
        return None

    def resolve_many(
        self,
        pose: Optional[Pose],
        names: Iterable[str],
        now: float,
    ) -> dict[str, Optional[Keypoint]]:
        return {name: self.resolve(pose, name, now) for name in names}
