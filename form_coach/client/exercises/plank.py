# client/exercises/plank.py

from typing import Dict

from form_coach.client import landmarks as lm
from form_coach.client.exercises.base import ExerciseRules, FlagRule, pick_by_confidence
from form_coach.client.geometry import distance, point_line_deviation, underside_angle

STRAIGHT_LINE_RATIO = 0.06   # hip off the shoulder-ankle line, share of its length
SAG_ANGLE = 195.0            # shoulder-hip-knee, floor side
PIKE_ANGLE = 150.0
SHOULDER_OVER_ELBOW_RATIO = 0.35


class PlankRules(ExerciseRules):
    name = "plank"
    LANDMARKS = {
        "l_shoulder": lm.LEFT_SHOULDER, "r_shoulder": lm.RIGHT_SHOULDER,
        "l_elbow": lm.LEFT_ELBOW, "r_elbow": lm.RIGHT_ELBOW,
        "l_hip": lm.LEFT_HIP, "r_hip": lm.RIGHT_HIP,
        "l_knee": lm.LEFT_KNEE, "r_knee": lm.RIGHT_KNEE,
        "l_ankle": lm.LEFT_ANKLE, "r_ankle": lm.RIGHT_ANKLE,
    }
    FLAGS = (
        FlagRule("straight_line", True, "Keep a straight line from shoulders to ankles"),
        FlagRule("hip_sag", False, "Lift your hips slightly to avoid sagging"),
        FlagRule("hip_pike", False, "Lower your hips to avoid piking"),
        FlagRule("shoulder_over_elbow", True, "Stack shoulders over elbows"),
    )
    POSITIVE_FEEDBACK = "Excellent form! Hold steady."
    PRIMARY_FEATURE = "hip_angle"

    def compute_features(self, points, side):
        p = points
        shoulder = pick_by_confidence(p["l_shoulder"], p["r_shoulder"])
        elbow = pick_by_confidence(p["l_elbow"], p["r_elbow"])
        hip = pick_by_confidence(p["l_hip"], p["r_hip"])
        knee = pick_by_confidence(p["l_knee"], p["r_knee"])
        ankle = pick_by_confidence(p["l_ankle"], p["r_ankle"])

        hip_angle = underside_angle(shoulder, hip, knee)
        deviation = point_line_deviation(hip, shoulder, ankle)

        elbow_offset_ratio = None
        upper_arm = distance(shoulder, elbow)
        if upper_arm:
            elbow_offset_ratio = abs(shoulder.x - elbow.x) / upper_arm

        return {
            "hip_angle": hip_angle if hip_angle is not None else 180.0,
            "line_deviation": deviation,
            "elbow_offset_ratio": elbow_offset_ratio,
        }

    def evaluate_faults(self, features, previous_flags) -> Dict[str, bool]:
        deviation = features["line_deviation"]
        ratio = features["elbow_offset_ratio"]
        return {
            "straight_line": deviation < STRAIGHT_LINE_RATIO if deviation is not None else True,
            "hip_sag": features["hip_angle"] > SAG_ANGLE,
            "hip_pike": features["hip_angle"] < PIKE_ANGLE,
            "shoulder_over_elbow": ratio < SHOULDER_OVER_ELBOW_RATIO if ratio is not None else True,
        }
