"""
Rep detection for knee extension from the smoothed knee angle.
Cycle: BENT -> EXTENDING -> FLEXING -> BENT (+1 rep).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from .config import Settings
from .feedback import (
    FeedbackEvent,
    Tier,
    classify_extension,
    classify_tempo,
    clear_speed_event,
    extending_event,
    peak_event,
    rep_extension_event,
    tempo_event,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bent:
    pass


@dataclass(frozen=True)
class Extending:
    rep_start: float
    extend_start: float
    max_angle: float


@dataclass(frozen=True)
class Flexing:
    rep_start: float
    extend_start: float
    flex_start: float
    max_angle: float


RepState = Union[Bent, Extending, Flexing]

_PHASE_NAMES = {Bent: "BENT", Extending: "EXTENDING", Flexing: "FLEXING"}


@dataclass(frozen=True)
class RepRecord:
    rep: int
    max_angle_deg: float
    total_sec: float
    extend_sec: float
    flex_sec: float
    extension_tier: Tier
    tempo_tier: Tier

    def to_dict(self) -> dict[str, object]:
        return {
            "rep": self.rep,
            "max_angle_deg": self.max_angle_deg,
            "total_sec": self.total_sec,
            "extend_sec": self.extend_sec,
            "flex_sec": self.flex_sec,
            "extension_tier": self.extension_tier.value,
            "tempo_tier": self.tempo_tier.value,
        }


class RepStateMachine:
    """
    Segments the smoothed angle stream into reps.

    step() is called once per frame with the smoothed angle (None when the
    leg was not usable this frame) and returns the feedback events emitted
    by that step.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.state: RepState = Bent()
        self.rep_count = 0
        self.last_rep: Optional[RepRecord] = None

    @property
    def phase(self) -> str:
        return _PHASE_NAMES[type(self.state)]

    def step(self, angle: Optional[float], now: float) -> list[FeedbackEvent]:
        if angle is None:
            return []
        s = self.settings
        state = self.state

        if isinstance(state, Bent):
            if angle <= s.bent_threshold:
                return []
            self.state = Extending(rep_start=now, extend_start=now, max_angle=angle)
            logger.debug("rep: extending at %.1f deg", angle)
            return [extending_event(), clear_speed_event()]

        if isinstance(state, Extending):
            if angle > state.max_angle:
                state = replace(state, max_angle=angle)
                self.state = state
            if angle < state.max_angle - s.peak_hysteresis:
                self.state = Flexing(
                    rep_start=state.rep_start,
                    extend_start=state.extend_start,
                    flex_start=now,
                    max_angle=state.max_angle,
                )
                logger.debug("rep: peak %.1f deg, flexing", state.max_angle)
                return [peak_event(classify_extension(state.max_angle, s))]
            return []

        # Flexing
        if angle > s.bent_threshold:
            return []
        total = now - state.rep_start
        extend = state.flex_start - state.extend_start
        flex = now - state.flex_start
        self.rep_count += 1
        ext_tier = classify_extension(state.max_angle, s)
        tempo_tier = classify_tempo(total, extend, flex, s)
        self.last_rep = RepRecord(
            rep=self.rep_count,
            max_angle_deg=state.max_angle,
            total_sec=total,
            extend_sec=extend,
            flex_sec=flex,
            extension_tier=ext_tier,
            tempo_tier=tempo_tier,
        )
        self.state = Bent()
        logger.info(
            "live_rep: rep %s (max_angle=%.1f total=%.2fs extend=%.2fs flex=%.2fs rom=%s tempo=%s)",
            self.rep_count, state.max_angle, total, extend, flex, ext_tier.value, tempo_tier.value,
        )
        return [
            tempo_event(self.rep_count, tempo_tier),
            rep_extension_event(self.rep_count, ext_tier),
        ]
