from __future__ import annotations

import pytest

from kneesense.config import Settings
from kneesense.feedback import (
    Channel,
    Feedback,
    FeedbackBoard,
    FeedbackEvent,
    Tier,
    classify_extension,
    classify_tempo,
)

S = Settings()


@pytest.mark.parametrize(
    "angle,tier",
    [(180, Tier.OK), (160, Tier.OK), (159.9, Tier.WARN), (145, Tier.WARN), (144.9, Tier.BAD), (100, Tier.BAD)],
)
def test_extension_tiers(angle, tier):
    assert classify_extension(angle, S) is tier


@pytest.mark.parametrize(
    "total,extend,flex,tier",
    [
        (6.0, 3.0, 3.0, Tier.OK),
        (5.0, 2.0, 3.0, Tier.OK),
        (4.9, 2.5, 2.4, Tier.BAD),
        (8.0, 1.9, 6.1, Tier.BAD),
        (8.0, 6.1, 1.9, Tier.BAD),
    ],
)
def test_tempo(total, extend, flex, tier):
    assert classify_tempo(total, extend, flex, S) is tier


def test_board_keeps_latest_per_channel():
    board = FeedbackBoard(angle=Feedback("start"))
    assert board.speed.text == ""
    board.apply([
        FeedbackEvent(Channel.ANGLE, "a1", Tier.OK),
        FeedbackEvent(Channel.SPEED, "s1", Tier.BAD),
        FeedbackEvent(Channel.ANGLE, "a2", Tier.WARN),
    ])
    assert board.angle == Feedback("a2", Tier.WARN)
    assert board.speed == Feedback("s1", Tier.BAD)


def test_feedback_to_dict():
    assert Feedback("hi", Tier.WARN).to_dict() == {"text": "hi", "tier": "warn"}
