"""
Feedback events for the two display channels (angle/ROM and speed/tempo).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .config import Settings


class Tier(str, Enum):
    OK = "ok"
    WARN = "warn"
    BAD = "bad"


class Channel(str, Enum):
    ANGLE = "angle"
    SPEED = "speed"


@dataclass(frozen=True)
class Feedback:
    text: str
    tier: Tier = Tier.OK

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "tier": self.tier.value}


@dataclass(frozen=True)
class FeedbackEvent:
    channel: Channel
    text: str
    tier: Tier
    rep: Optional[int] = None

    @property
    def feedback(self) -> Feedback:
        return Feedback(self.text, self.tier)


# Messages at the top of the rep, keyed by extension tier.
_PEAK_MESSAGES = {
    Tier.OK: "Great extension! Now lower with control.",
    Tier.WARN: "Almost straight. Try a bit more next time.",
    Tier.BAD: "Too shallow. Straighten your leg more.",
}
# Messages once the rep is complete.
_REP_MESSAGES = {
    Tier.OK: "Excellent extension!",
    Tier.WARN: "Good, try to extend a bit further.",
    Tier.BAD: "Extend your leg more.",
}
_TEMPO_MESSAGES = {
    Tier.OK: "Good tempo and control.",
    Tier.BAD: "Too fast. Slow down your movement.",
}

EXTENDING_MESSAGE = "Extending... straighten your knee."


def classify_extension(max_angle: float, settings: Settings) -> Tier:
    """good (>= target - ok margin), warning (>= target - warn margin), else bad."""
    if max_angle >= settings.straight_target - settings.angle_ok_margin:
        return Tier.OK
    if max_angle >= settings.straight_target - settings.angle_warn_margin:
        return Tier.WARN
    return Tier.BAD


def classify_tempo(total_sec: float, extend_sec: float, flex_sec: float, settings: Settings) -> Tier:
    """Too fast (bad) if the rep or either phase is shorter than its minimum."""
    if (
        total_sec < settings.min_rep_time
        or extend_sec < settings.min_phase_time
        or flex_sec < settings.min_phase_time
    ):
        return Tier.BAD
    return Tier.OK


def extending_event() -> FeedbackEvent:
    return FeedbackEvent(Channel.ANGLE, EXTENDING_MESSAGE, Tier.OK)


def clear_speed_event() -> FeedbackEvent:
    return FeedbackEvent(Channel.SPEED, "", Tier.OK)


def peak_event(tier: Tier) -> FeedbackEvent:
    return FeedbackEvent(Channel.ANGLE, _PEAK_MESSAGES[tier], tier)


def rep_extension_event(rep: int, tier: Tier) -> FeedbackEvent:
    return FeedbackEvent(Channel.ANGLE, f"Rep {rep}: {_REP_MESSAGES[tier]}", tier, rep=rep)


def tempo_event(rep: int, tier: Tier) -> FeedbackEvent:
    return FeedbackEvent(Channel.SPEED, f"Rep {rep}: {_TEMPO_MESSAGES[tier]}", tier, rep=rep)


class FeedbackBoard:
    """Latest feedback per channel; older events are dropped."""

    def __init__(self, angle: Optional[Feedback] = None, speed: Optional[Feedback] = None):
        self.angle = angle or Feedback("")
        self.speed = speed or Feedback("")

    def apply(self, events: Iterable[FeedbackEvent]) -> None:
        for event in events:
            if event.channel is Channel.ANGLE:
                self.angle = event.feedback
            else:
                self.speed = event.feedback
