"""
Thresholds and runtime settings. Defaults match a seated knee extension
filmed from the side; every value can be overridden with KNEESENSE_* env vars.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

# Minimum keypoint score to accept a fresh observation.
MIN_KEYPOINT_SCORE = 0.3
# Reuse last good keypoint for up to this many seconds.
MAX_GAP_SEC = 0.3
# EMA factor for the knee angle.
SMOOTHING_ALPHA = 0.3
# <= this = bent (deg).
BENT_THRESHOLD = 110.0
# Desired max angle for full extension (deg).
STRAIGHT_TARGET = 165.0
# Within this many deg of target = full extension.
ANGLE_OK_MARGIN = 5.0
# Below target by more than this = shallow rep.
ANGLE_WARN_MARGIN = 20.0
# Total rep time (s) bent -> straight -> bent.
MIN_REP_TIME = 5.0
# Min extend/flex duration (s).
MIN_PHASE_TIME = 2.0
# Drop from peak (deg) before the rep counts as past its peak.
PEAK_HYSTERESIS = 1.0

ENV_PREFIX = "KNEESENSE_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    side: str = "right"
    min_score: float = MIN_KEYPOINT_SCORE
    max_gap_sec: float = MAX_GAP_SEC
    shared_timestamp: bool = False
    smoothing_alpha: float = SMOOTHING_ALPHA
    bent_threshold: float = BENT_THRESHOLD
    straight_target: float = STRAIGHT_TARGET
    angle_ok_margin: float = ANGLE_OK_MARGIN
    angle_warn_margin: float = ANGLE_WARN_MARGIN
    min_rep_time: float = MIN_REP_TIME
    min_phase_time: float = MIN_PHASE_TIME
    peak_hysteresis: float = PEAK_HYSTERESIS

    def __post_init__(self) -> None:
        if self.side not in ("left", "right"):
            raise ValueError(f"side must be 'left' or 'right', got {self.side!r}")
        if not 0.0 < self.smoothing_alpha <= 1.0:
            raise ValueError(f"smoothing_alpha must be in (0, 1], got {self.smoothing_alpha}")
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError(f"min_score must be in [0, 1], got {self.min_score}")
        if self.straight_target <= self.bent_threshold:
            raise ValueError(
                f"straight_target ({self.straight_target}) must be above "
                f"bent_threshold ({self.bent_threshold})"
            )
        if self.angle_warn_margin < self.angle_ok_margin:
            raise ValueError(
                f"angle_warn_margin ({self.angle_warn_margin}) must be >= "
                f"angle_ok_margin ({self.angle_ok_margin})"
            )
        for name in ("max_gap_sec", "min_rep_time", "min_phase_time", "peak_hysteresis",
                     "angle_ok_margin", "angle_warn_margin"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @property
    def landmarks(self) -> tuple[str, str, str]:
        """(hip, knee, ankle) keypoint names for the tracked leg."""
        return (f"{self.side}_hip", f"{self.side}_knee", f"{self.side}_ankle")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from KNEESENSE_<FIELD> variables; unset ones keep defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                continue
            raw = raw.strip()
            if f.type in ("bool", bool):
                low = raw.lower()
                if low in _TRUE:
                    kwargs[f.name] = True
                elif low in _FALSE:
                    kwargs[f.name] = False
                else:
                    raise ValueError(f"{key}: expected a boolean, got {raw!r}")
            elif f.type in ("float", float):
                try:
                    kwargs[f.name] = float(raw)
                except ValueError:
                    raise ValueError(f"{key}: expected a number, got {raw!r}") from None
            else:
                kwargs[f.name] = raw.lower()
        return cls(**kwargs)
