# client/exercises/deadlift.py

from typing import Dict, FrozenSet

from form_coach.client import landmarks as lm
from form_coach.client.exercises.base import AnalysisResult, ExerciseRules, FlagRule
from form_coach.client.geometry import angle
from form_coach.client.rep_logic import PhaseSignal

# Hip opening (shoulder-hip-knee) is the proxy for back angle, higher = more upright.
# Near-lockout and a deep hinge both count as a neutral back.
UPRIGHT_ANGLE = 160.0
HINGE_ANGLE = 100.0
LOCKOUT_ANGLE = 170.0
KNEE_OVER_ANKLE_PX = 40.0

# Rep counting
BOTTOM_ANGLE = 120.0
LEAVE_BOTTOM_ANGLE = 130.0
TOP_ANGLE = LOCKOUT_ANGLE


class DeadliftRules(ExerciseRules):
    name = "deadlift"
    LANDMARKS = {
        "l_shoulder": lm.LEFT_SHOULDER, "r_shoulder": lm.RIGHT_SHOULDER,
        "l_hip": lm.LEFT_HIP, "r_hip": lm.RIGHT_HIP,
        "l_knee": lm.LEFT_KNEE, "r_knee": lm.RIGHT_KNEE,
        "l_ankle": lm.LEFT_ANKLE, "r_ankle": lm.RIGHT_ANKLE,
    }
    FLAGS = (
        FlagRule("back_straight", True, "Keep your back neutral - avoid rounding your spine"),
        FlagRule("bar_path", True, "Keep the bar close to your body throughout the lift"),
        FlagRule("lockout", True, "Lock out fully at the top - stand tall with shoulders back"),
    )
    PRIMARY_FEATURE = "hip_angle"

    def compute_features(self, points, side):
        p = points
        hips = [a for a in (angle(p["l_shoulder"], p["l_hip"], p["l_knee"]),
                            angle(p["r_shoulder"], p["r_hip"], p["r_knee"])) if a is not None]
        hip_angle = max(hips) if hips else 170.0

        def knee_offset(knee, ankle):
            return abs(knee.x - ankle.x) if knee and ankle else None

        return {
            "hip_angle": hip_angle,
            "back_angle": hip_angle,
            "left_knee_offset": knee_offset(p["l_knee"], p["l_ankle"]),
            "right_knee_offset": knee_offset(p["r_knee"], p["r_ankle"]),
        }

    def evaluate_faults(self, features, previous_flags) -> Dict[str, bool]:
        back = features["back_angle"]
        # Bar path proxy: knees stay close above ankles
        bar_path = all(
            offset is None or offset < KNEE_OVER_ANKLE_PX
            for offset in (features["left_knee_offset"], features["right_knee_offset"])
        )
        return {
            "back_straight": back > UPRIGHT_ANGLE or back < HINGE_ANGLE,
            "bar_path": bar_path,
            "lockout": back > LOCKOUT_ANGLE,
        }

    def relevant_flags(self, features) -> FrozenSet[str]:
        if features["hip_angle"] > UPRIGHT_ANGLE:
            return super().relevant_flags(features)
        return frozenset({"back_straight", "bar_path"})

    def phase_signal(self, result: AnalysisResult) -> PhaseSignal:
        hip = result.features["hip_angle"]
        return PhaseSignal(
            at_bottom=hip < BOTTOM_ANGLE,
            at_top=hip > TOP_ANGLE,
            leaving_bottom=hip > LEAVE_BOTTOM_ANGLE,
        )
