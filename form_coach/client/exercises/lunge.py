# client/exercises/lunge.py
"""
Lunge (sagittal view).

The front leg is the one whose ankle sits farther from the hip centre.
That choice is locked once made and only handed to the other leg when
it is clearly farther out, so a noisy frame cannot swap front and back.
"""

from typing import Dict, FrozenSet, Optional

from form_coach.client import landmarks as lm
from form_coach.client.exercises.base import AnalysisResult, ExerciseRules, FlagRule
from form_coach.client.geometry import angle, distance, hysteresis, line_roll, midpoint, segment_tilt
from form_coach.client.rep_logic import PhaseSignal

# Depth
BOTTOM_FRONT_ANGLE = 115.0
BOTTOM_BACK_ANGLE = 110.0

# Torso tilt from vertical, hysteresis band
TORSO_GOOD_TILT = 30.0
TORSO_BAD_TILT = 35.0
MAX_REFERENCE_ROLL = 45.0    # steeper shoulder lines are not a usable reference

# Front knee horizontal offset from ankle, as a share of tibia length
KNEE_GOOD_RATIO = 0.30
KNEE_BAD_RATIO = 0.40

# Front/back leg lock
SIDE_SWITCH_MARGIN_PX = 25.0

# Rep counting
TOP_KNEE_ANGLE = 165.0
EXIT_FRONT_ANGLE = 125.0
EXIT_BACK_ANGLE = 120.0


def _ankle_spread(frame) -> Dict[str, Optional[float]]:
    """Horizontal ankle distance from the hip centre, role-gated."""
    l_hip = frame.get(lm.LEFT_HIP, lm.ROLE_CONFIDENCE)
    r_hip = frame.get(lm.RIGHT_HIP, lm.ROLE_CONFIDENCE)
    if l_hip is None or r_hip is None:
        return {"left": None, "right": None}
    hip_x = (l_hip.x + r_hip.x) / 2
    out = {}
    for side, idx in (("left", lm.LEFT_ANKLE), ("right", lm.RIGHT_ANKLE)):
        ankle = frame.get(idx, lm.ROLE_CONFIDENCE)
        out[side] = abs(ankle.x - hip_x) if ankle is not None else None
    return out


class LungeRules(ExerciseRules):
    name = "lunge"
    LANDMARKS = {
        "l_shoulder": lm.LEFT_SHOULDER, "r_shoulder": lm.RIGHT_SHOULDER,
        "l_hip": lm.LEFT_HIP, "r_hip": lm.RIGHT_HIP,
        "l_knee": lm.LEFT_KNEE, "r_knee": lm.RIGHT_KNEE,
        "l_ankle": lm.LEFT_ANKLE, "r_ankle": lm.RIGHT_ANKLE,
    }
    FLAGS = (
        FlagRule("depth", True, "Go lower - back knee should nearly touch the ground"),
        FlagRule("torso_upright", True, "Keep your torso upright - avoid leaning forward"),
        FlagRule("knee_alignment", True, "Keep your front knee aligned over your ankle"),
    )
    PRIMARY_FEATURE = "back_knee_angle"

    def choose_side(self, points, frame, previous: Optional[AnalysisResult]) -> str:
        spread = _ankle_spread(frame)
        locked = previous.side if previous is not None else None

        if locked is None:
            left = spread["left"] if spread["left"] is not None else -1.0
            right = spread["right"] if spread["right"] is not None else -1.0
            return "left" if left >= right else "right"

        other = "right" if locked == "left" else "left"
        if spread[other] is None:
            return locked
        if spread[locked] is None or spread[other] > spread[locked] + SIDE_SWITCH_MARGIN_PX:
            return other
        return locked

    def compute_features(self, points, side):
        p = points
        front = "l" if side == "left" else "r"
        back = "r" if front == "l" else "l"

        front_knee = angle(p[front + "_hip"], p[front + "_knee"], p[front + "_ankle"])
        back_knee = angle(p[back + "_hip"], p[back + "_knee"], p[back + "_ankle"])

        # Torso: de-roll with the shoulder line, then tilt from vertical
        torso_tilt = None
        hip_mid = midpoint(p["l_hip"], p["r_hip"]) or p["l_hip"] or p["r_hip"]
        shoulder_mid = midpoint(p["l_shoulder"], p["r_shoulder"])
        if shoulder_mid is not None and hip_mid is not None:
            roll = line_roll(p["l_shoulder"], p["r_shoulder"])
            if abs(roll) > MAX_REFERENCE_ROLL:
                roll = 0.0
            torso_tilt = segment_tilt(shoulder_mid, hip_mid, roll)

        # Front knee offset scaled by tibia length
        knee_offset_ratio = None
        knee, ankle = p[front + "_knee"], p[front + "_ankle"]
        tibia = distance(knee, ankle)
        if tibia:
            knee_offset_ratio = abs(knee.x - ankle.x) / tibia

        return {
            "front_knee_angle": front_knee if front_knee is not None else 180.0,
            "back_knee_angle": back_knee if back_knee is not None else 180.0,
            "torso_tilt": torso_tilt,
            "knee_offset_ratio": knee_offset_ratio,
        }

    def evaluate_faults(self, features, previous_flags) -> Dict[str, bool]:
        depth = (features["back_knee_angle"] < BOTTOM_BACK_ANGLE
                 and features["front_knee_angle"] < BOTTOM_FRONT_ANGLE)

        torso_upright = hysteresis(features["torso_tilt"], previous_flags["torso_upright"],
                                   TORSO_GOOD_TILT, TORSO_BAD_TILT)

        knee_alignment = previous_flags["knee_alignment"]
        ratio = features["knee_offset_ratio"]
        if ratio is not None:
            if ratio <= KNEE_GOOD_RATIO:
                knee_alignment = True
            elif ratio >= KNEE_BAD_RATIO:
                knee_alignment = False

        return {"depth": depth, "torso_upright": torso_upright, "knee_alignment": knee_alignment}

    def relevant_flags(self, features) -> FrozenSet[str]:
        if features["front_knee_angle"] > TOP_KNEE_ANGLE:
            return frozenset({"torso_upright", "knee_alignment"})
        return super().relevant_flags(features)

    def phase_signal(self, result: AnalysisResult) -> PhaseSignal:
        front = result.features["front_knee_angle"]
        back = result.features["back_knee_angle"]
        return PhaseSignal(
            at_bottom=result.flags["depth"],
            at_top=front > TOP_KNEE_ANGLE,
            leaving_bottom=front > EXIT_FRONT_ANGLE or back > EXIT_BACK_ANGLE,
        )
