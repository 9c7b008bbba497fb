# client/exercises/squat.py

from typing import Dict, FrozenSet

from form_coach.client import landmarks as lm
from form_coach.client.exercises.base import AnalysisResult, ExerciseRules, FlagRule
from form_coach.client.geometry import angle
from form_coach.client.rep_logic import PhaseSignal

DEPTH_ANGLE = 100.0          # knee angle below this = thighs about parallel
BACK_ANGLE = 150.0           # hip angle above this = chest up
BALANCE_PX = 40.0            # ankle midpoint vs hip midpoint, horizontal

# Rep counting
BOTTOM_ANGLE = DEPTH_ANGLE
LEAVE_BOTTOM_ANGLE = 110.0
TOP_ANGLE = 150.0            # standing; depth is not judged up here


class SquatRules(ExerciseRules):
    name = "squat"
    LANDMARKS = {
        "l_shoulder": lm.LEFT_SHOULDER, "r_shoulder": lm.RIGHT_SHOULDER,
        "l_hip": lm.LEFT_HIP, "r_hip": lm.RIGHT_HIP,
        "l_knee": lm.LEFT_KNEE, "r_knee": lm.RIGHT_KNEE,
        "l_ankle": lm.LEFT_ANKLE, "r_ankle": lm.RIGHT_ANKLE,
    }
    FLAGS = (
        FlagRule("depth_good", True, "Go deeper - aim to get your thighs parallel to the ground"),
        FlagRule("back_straight", True, "Keep your back straight and chest up"),
        FlagRule("balance", True, "Focus on keeping your weight centered over your feet"),
    )
    PRIMARY_FEATURE = "knee_angle"

    def compute_features(self, points, side):
        p = points
        knees = [a for a in (angle(p["l_hip"], p["l_knee"], p["l_ankle"]),
                             angle(p["r_hip"], p["r_knee"], p["r_ankle"])) if a is not None]
        hips = [a for a in (angle(p["l_shoulder"], p["l_hip"], p["l_knee"]),
                            angle(p["r_shoulder"], p["r_hip"], p["r_knee"])) if a is not None]

        balance_offset = None
        if p["l_ankle"] and p["r_ankle"] and p["l_hip"] and p["r_hip"]:
            balance_offset = abs((p["l_ankle"].x + p["r_ankle"].x) / 2
                                 - (p["l_hip"].x + p["r_hip"].x) / 2)

        return {
            "knee_angle": min(knees) if knees else 180.0,
            "hip_angle": max(hips) if hips else 170.0,
            "balance_offset": balance_offset,
        }

    def evaluate_faults(self, features, previous_flags) -> Dict[str, bool]:
        offset = features["balance_offset"]
        return {
            "depth_good": features["knee_angle"] < DEPTH_ANGLE,
            "back_straight": features["hip_angle"] > BACK_ANGLE,
            "balance": offset < BALANCE_PX if offset is not None else True,
        }

    def relevant_flags(self, features) -> FrozenSet[str]:
        if features["knee_angle"] > TOP_ANGLE:
            return frozenset({"back_straight", "balance"})
        return super().relevant_flags(features)

    def phase_signal(self, result: AnalysisResult) -> PhaseSignal:
        knee = result.features["knee_angle"]
        return PhaseSignal(
            at_bottom=knee < BOTTOM_ANGLE,
            at_top=knee > TOP_ANGLE,
            leaving_bottom=knee > LEAVE_BOTTOM_ANGLE,
        )
