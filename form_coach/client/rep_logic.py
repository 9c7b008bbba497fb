# client/rep_logic.py

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Tuple


class RepPhase(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    TRANSITION = "transition"


@dataclass(frozen=True)
class RepRule:
    bottom_hold_frames: int
    top_hold_frames: int
    min_rep_interval: float          # seconds between two counted reps
    requires_position: bool = False
    position_enter_frames: int = 5
    position_exit_frames: int = 8


@dataclass(frozen=True)
class PhaseSignal:
    """What one evaluated frame says about where the lifter is."""
    at_bottom: bool
    at_top: bool
    leaving_bottom: bool
    in_position: bool = True


@dataclass(frozen=True)
class RepState:
    phase: RepPhase = RepPhase.TOP
    bottom_hold: int = 0
    top_hold: int = 0
    rep_count: int = 0
    last_rep_at: Optional[float] = None

    # position gate (push-up)
    in_position: bool = False
    position_hold: int = 0
    position_drop: int = 0


@dataclass(frozen=True)
class HoldState:
    started_at: Optional[float] = None


# ----------------- Per-exercise configuration -----------------
EXERCISE_CONFIG: Dict[str, RepRule] = {
    "squat": RepRule(
        bottom_hold_frames=3,
        top_hold_frames=3,
        min_rep_interval=0.30,
    ),
    "lunge": RepRule(
        bottom_hold_frames=3,
        top_hold_frames=3,
        min_rep_interval=0.15,
    ),
    "deadlift": RepRule(
        bottom_hold_frames=3,
        top_hold_frames=3,
        min_rep_interval=0.30,
    ),
    "pushup": RepRule(
        bottom_hold_frames=2,
        top_hold_frames=2,
        min_rep_interval=0.35,
        # only count while the body is actually in a push-up
        requires_position=True,
        position_enter_frames=5,
        position_exit_frames=8,     # drop slower than we enter
    ),
}

HOLD_EXERCISES = ("plank",)


def get_exercise_config(exercise_name: Optional[str]) -> Optional[RepRule]:
    """Rep rule for a rep-based exercise, None for holds and unknown names."""
    if exercise_name and exercise_name in EXERCISE_CONFIG:
        return EXERCISE_CONFIG[exercise_name]
    return None


def _update_position(state: RepState, in_position: bool, rule: RepRule) -> RepState:
    if in_position:
        hold, drop = state.position_hold + 1, 0
    else:
        hold, drop = 0, state.position_drop + 1

    inside = state.in_position
    if not inside and hold >= rule.position_enter_frames:
        inside = True
    if inside and drop >= rule.position_exit_frames:
        inside = False
    return replace(state, in_position=inside, position_hold=hold, position_drop=drop)


def update_rep_state(
    state: RepState,
    signal: PhaseSignal,
    now: float,
    rule: RepRule,
) -> Tuple[RepState, bool]:
    """
    One tick of the rep counter. Returns (new_state, rep_counted).

    TOP -(bottom held K frames)-> BOTTOM -(leaving bottom)-> TRANSITION
        -(top held K frames)-> TOP, counting a rep when the last counted
        rep is older than min_rep_interval.
    """
    if rule.requires_position:
        state = _update_position(state, signal.in_position, rule)
        if not state.in_position:
            # Not in position: do not count or progress
            return replace(state, phase=RepPhase.TOP, bottom_hold=0, top_hold=0), False

    if signal.at_bottom:
        bottom_hold, top_hold = state.bottom_hold + 1, 0
    elif signal.at_top:
        bottom_hold, top_hold = 0, state.top_hold + 1
    else:
        bottom_hold, top_hold = 0, 0

    phase = state.phase
    rep_count = state.rep_count
    last_rep_at = state.last_rep_at
    counted = False

    if phase != RepPhase.BOTTOM and bottom_hold >= rule.bottom_hold_frames:
        phase = RepPhase.BOTTOM

    if phase == RepPhase.BOTTOM and signal.leaving_bottom:
        phase = RepPhase.TRANSITION

    # The latched position state lets phases run on; a rep only closes on a
    # frame that is itself in position
    if phase != RepPhase.TOP and top_hold >= rule.top_hold_frames and signal.in_position:
        if last_rep_at is None or now - last_rep_at > rule.min_rep_interval:
            rep_count += 1
            last_rep_at = now
            counted = True
        phase = RepPhase.TOP

    new_state = replace(
        state,
        phase=phase,
        bottom_hold=bottom_hold,
        top_hold=top_hold,
        rep_count=rep_count,
        last_rep_at=last_rep_at,
    )
    return new_state, counted


def update_hold_state(state: HoldState, now: float) -> Tuple[HoldState, float]:
    """Plank: seconds held since the session started."""
    if state.started_at is None:
        state = HoldState(started_at=now)
    return state, max(0.0, now - state.started_at)
