from __future__ import annotations

import pytest

from kneesense.config import Settings
from kneesense.feedback import Channel, Tier
from kneesense.reps import Bent, Extending, Flexing, RepStateMachine


def feed(machine: RepStateMachine, angles, t0: float = 0.0, dt: float = 1.0):
    events = []
    for i, a in enumerate(angles):
        events.append(machine.step(a, t0 + i * dt))
    return events


def test_reference_sequence_counts_one_good_rep():
    m = RepStateMachine()
    seq = [90, 90, 95, 120, 150, 168, 165, 140, 100, 90]
    phases = []
    events = []
    for i, a in enumerate(seq):
        events.append(m.step(a, float(i)))
        phases.append(m.phase)
    assert phases == [
        "BENT", "BENT", "BENT", "EXTENDING", "EXTENDING", "EXTENDING",
        "FLEXING", "FLEXING", "BENT", "BENT",
    ]
    assert m.rep_count == 1
    # Leaving BENT at 120
    assert [e.channel for e in events[3]] == [Channel.ANGLE, Channel.SPEED]
    assert events[3][0].text == "Extending... straighten your knee."
    assert events[3][1].text == ""
    # Peak feedback when dropping to 165 (< 168 - 1)
    assert len(events[6]) == 1
    assert events[6][0].tier is Tier.OK
    assert events[6][0].text == "Great extension! Now lower with control."
    # Completion at 100
    tempo, rom = events[8]
    assert tempo.channel is Channel.SPEED and rom.channel is Channel.ANGLE
    assert rom.tier is Tier.OK and rom.rep == 1
    assert rom.text == "Rep 1: Excellent extension!"
    rec = m.last_rep
    assert rec.max_angle_deg == 168
    assert rec.total_sec == pytest.approx(5.0)
    assert rec.extend_sec == pytest.approx(3.0)
    assert rec.flex_sec == pytest.approx(2.0)
    assert tempo.tier is Tier.OK
    assert tempo.text == "Rep 1: Good tempo and control."
    assert isinstance(m.state, Bent)


def test_peak_of_150_is_warning():
    m = RepStateMachine()
    events = feed(m, [90, 120, 150, 140, 100], dt=3.0)
    assert events[3][0].tier is Tier.WARN
    assert events[3][0].text == "Almost straight. Try a bit more next time."
    assert events[4][1].tier is Tier.WARN
    assert events[4][1].text == "Rep 1: Good, try to extend a bit further."


def test_shallow_rep_is_bad():
    m = RepStateMachine()
    events = feed(m, [90, 115, 130, 125, 100], dt=3.0)
    assert m.rep_count == 1
    assert events[3][0].tier is Tier.BAD
    assert events[4][1].text == "Rep 1: Extend your leg more."


def test_fast_rep_is_too_fast_even_with_long_phases():
    m = RepStateMachine()
    m.step(120, 0.0)
    m.step(170, 1.0)
    m.step(160, 2.2)  # flex start: extend phase 2.2s
    events = m.step(100, 4.5)  # flex phase 2.3s, total 4.5s
    tempo = events[0]
    assert m.last_rep.extend_sec > 2 and m.last_rep.flex_sec > 2
    assert tempo.tier is Tier.BAD
    assert tempo.text == "Rep 1: Too fast. Slow down your movement."


def test_short_phase_is_too_fast():
    m = RepStateMachine()
    m.step(120, 0.0)
    m.step(170, 4.0)
    m.step(160, 5.0)
    events = m.step(100, 6.0)  # total 6s, flex phase 1s
    assert events[0].tier is Tier.BAD


def test_exactly_threshold_while_bent_stays_bent():
    m = RepStateMachine()
    assert m.step(110.0, 0.0) == []
    assert isinstance(m.state, Bent)


def test_exactly_threshold_while_flexing_completes():
    m = RepStateMachine()
    feed(m, [111, 170, 160], dt=3.0)
    assert isinstance(m.state, Flexing)
    m.step(110.0, 20.0)
    assert m.rep_count == 1
    assert isinstance(m.state, Bent)


def test_hysteresis_requires_more_than_one_degree_drop():
    m = RepStateMachine()
    feed(m, [120, 160, 159.0], dt=1.0)
    assert isinstance(m.state, Extending)
    m.step(158.9, 3.0)
    assert isinstance(m.state, Flexing)


def test_extending_tracks_maximum():
    m = RepStateMachine()
    feed(m, [120, 140, 139.5, 155])
    assert m.state.max_angle == 155


def test_absent_angle_is_a_no_op():
    m = RepStateMachine()
    m.step(130, 0.0)
    before = m.state
    assert m.step(None, 1.0) == []
    assert m.state is before
    assert m.rep_count == 0


def test_counter_increments_once_per_cycle():
    m = RepStateMachine()
    counts = []
    t = 0.0
    for _ in range(3):
        for a in [90, 130, 170, 150, 120, 100, 95]:
            m.step(a, t)
            counts.append(m.rep_count)
            t += 1.0
    assert m.rep_count == 3
    assert counts == sorted(counts)


def test_flexing_above_threshold_emits_nothing():
    m = RepStateMachine()
    feed(m, [120, 170, 160])
    assert m.step(150, 10.0) == []
    assert m.step(125, 11.0) == []
    assert m.rep_count == 0


def test_custom_thresholds():
    m = RepStateMachine(Settings(bent_threshold=100, straight_target=150))
    feed(m, [105, 146, 140, 99], dt=3.0)
    assert m.rep_count == 1
    assert m.last_rep.extension_tier is Tier.OK
