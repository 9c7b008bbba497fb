import pytest

from form_coach.client.rep_logic import (
    EXERCISE_CONFIG,
    HoldState,
    PhaseSignal,
    RepPhase,
    RepRule,
    RepState,
    get_exercise_config,
    update_hold_state,
    update_rep_state,
)

TOP = PhaseSignal(at_bottom=False, at_top=True, leaving_bottom=True)
BOTTOM = PhaseSignal(at_bottom=True, at_top=False, leaving_bottom=False)
RISING = PhaseSignal(at_bottom=False, at_top=False, leaving_bottom=True)

SQUAT = EXERCISE_CONFIG["squat"]


def feed(signals, rule=SQUAT, start=0.0, dt=0.1, state=None):
    """Run signals through the counter, returns (final state, list of counted flags)."""
    state = state or RepState()
    counted = []
    for i, signal in enumerate(signals):
        state, c = update_rep_state(state, signal, start + i * dt, rule)
        counted.append(c)
    return state, counted


def cycle(hold=3):
    return [TOP] * hold + [BOTTOM] * hold + [RISING] + [TOP] * hold


def test_config_lookup():
    assert get_exercise_config("squat") is SQUAT
    assert get_exercise_config("pushup").requires_position
    assert get_exercise_config("plank") is None
    assert get_exercise_config("unknown") is None
    assert get_exercise_config(None) is None


def test_one_full_cycle_counts_once():
    state, counted = feed(cycle())
    assert state.rep_count == 1
    assert counted == [False] * 9 + [True]
    assert state.phase == RepPhase.TOP


def test_phases_in_order():
    state = RepState()
    phases = []
    for i, signal in enumerate(cycle()):
        state, _ = update_rep_state(state, signal, i * 0.1, SQUAT)
        phases.append(state.phase)
    assert phases[5] == RepPhase.BOTTOM
    assert phases[6] == RepPhase.TRANSITION
    assert phases[-1] == RepPhase.TOP


def test_short_noise_does_not_reach_bottom():
    state, counted = feed([TOP] * 3 + [BOTTOM] * 2 + [TOP] * 3)
    assert state.phase == RepPhase.TOP
    assert state.rep_count == 0
    assert not any(counted)


def test_debounce_interval():
    # Two full cycles 10 ms per frame apart, well under min_rep_interval
    state, _ = feed(cycle() + cycle(), dt=0.01)
    assert state.rep_count == 1
    assert state.phase == RepPhase.TOP

    # A later cycle is counted again
    state, _ = feed(cycle(), start=1.0, dt=0.01, state=state)
    assert state.rep_count == 2


def test_top_without_bottom_never_counts():
    state, counted = feed([TOP] * 20)
    assert state.rep_count == 0
    assert not any(counted)


def test_state_is_not_mutated():
    before = RepState()
    after, _ = update_rep_state(before, BOTTOM, 0.0, SQUAT)
    assert before.bottom_hold == 0
    assert after.bottom_hold == 1


# ---------- position gate ----------

GATED = RepRule(bottom_hold_frames=2, top_hold_frames=2, min_rep_interval=0.35,
                requires_position=True, position_enter_frames=5, position_exit_frames=8)


def test_out_of_position_never_counts():
    signals = [PhaseSignal(s.at_bottom, s.at_top, s.leaving_bottom, in_position=False)
               for s in cycle(hold=10)]
    state, counted = feed(signals, rule=GATED)
    assert state.rep_count == 0
    assert not state.in_position
    assert not any(counted)


def test_position_enters_after_consecutive_frames():
    state = RepState()
    for i in range(4):
        state, _ = update_rep_state(state, TOP, i * 0.1, GATED)
        assert not state.in_position
    state, _ = update_rep_state(state, TOP, 0.4, GATED)
    assert state.in_position


def test_position_drops_slower_than_it_enters():
    state, _ = feed([TOP] * 5, rule=GATED)
    assert state.in_position

    out = PhaseSignal(False, True, True, in_position=False)
    for i in range(7):
        state, _ = update_rep_state(state, out, 1.0 + i * 0.1, GATED)
        assert state.in_position
    state, _ = update_rep_state(state, out, 2.0, GATED)
    assert not state.in_position
    assert state.phase == RepPhase.TOP


def test_gated_rep_counts_once_in_position():
    state, _ = feed([TOP] * 5 + [BOTTOM] * 2 + [RISING] + [TOP] * 2, rule=GATED)
    assert state.rep_count == 1


def test_lockout_out_of_position_does_not_count():
    # Confirmed bottom while in position, then the lockout frames fail the
    # position check but the latched state has not dropped yet
    out_top = PhaseSignal(at_bottom=False, at_top=True, leaving_bottom=True, in_position=False)
    state, counted = feed([TOP] * 5 + [BOTTOM] * 2 + [RISING] + [out_top] * 4, rule=GATED)
    assert state.in_position
    assert state.rep_count == 0
    assert state.phase == RepPhase.TRANSITION
    assert not any(counted)

    # Back in position the rep closes
    state, counted = feed([TOP] * 2, rule=GATED, start=2.0, state=state)
    assert state.rep_count == 1
    assert counted == [True, False]


# ---------- plank hold ----------

def test_hold_seconds():
    state, held = update_hold_state(HoldState(started_at=10.0), 12.0)
    assert held == pytest.approx(2.0)
    assert state.started_at == 10.0


def test_hold_starts_on_first_frame():
    state, held = update_hold_state(HoldState(), 5.0)
    assert state.started_at == 5.0
    assert held == 0.0
