# client/exercises/pushup.py

from typing import Dict, FrozenSet

import numpy as np

from form_coach.client import landmarks as lm
from form_coach.client.exercises.base import AnalysisResult, ExerciseRules, FlagRule
from form_coach.client.geometry import angle, distance, point_line_deviation
from form_coach.client.rep_logic import PhaseSignal

DEPTH_ANGLE = 95.0           # elbow bend at the bottom, about 90
LOCKOUT_ANGLE = 160.0
TORSO_RIGID_RATIO = 0.08
# Depth is judged in the lower half of the press, lockout in the upper half
LOCKOUT_ZONE_ANGLE = 130.0

# Rep counting
LEAVE_BOTTOM_ANGLE = DEPTH_ANGLE + 10

# Position gate
MAX_BODY_TILT = 25.0
MIN_BODY_LENGTH_RATIO = 0.35     # of frame width
SHOULDER_OVER_WRIST_RATIO = 0.4
MIN_HIP_DROP_PX = 10.0

_SIDES = {
    "left": (lm.LEFT_SHOULDER, lm.LEFT_ELBOW, lm.LEFT_WRIST, lm.LEFT_HIP, lm.LEFT_KNEE, lm.LEFT_ANKLE),
    "right": (lm.RIGHT_SHOULDER, lm.RIGHT_ELBOW, lm.RIGHT_WRIST, lm.RIGHT_HIP, lm.RIGHT_KNEE, lm.RIGHT_ANKLE),
}


def _side_confidence(frame, indices, threshold) -> float:
    return sum(p.confidence for p in (frame.get(i, threshold) for i in indices) if p is not None)


def body_tilt(shoulder, ankle) -> float:
    """Tilt of the shoulder-ankle line from horizontal, 0..90, either facing."""
    tilt = abs(float(np.degrees(np.arctan2(ankle.y - shoulder.y, ankle.x - shoulder.x))))
    return min(tilt, 180.0 - tilt)


class PushupRules(ExerciseRules):
    name = "pushup"
    LANDMARKS = {
        "l_shoulder": lm.LEFT_SHOULDER, "r_shoulder": lm.RIGHT_SHOULDER,
        "l_elbow": lm.LEFT_ELBOW, "r_elbow": lm.RIGHT_ELBOW,
        "l_wrist": lm.LEFT_WRIST, "r_wrist": lm.RIGHT_WRIST,
        "l_hip": lm.LEFT_HIP, "r_hip": lm.RIGHT_HIP,
        "l_knee": lm.LEFT_KNEE, "r_knee": lm.RIGHT_KNEE,
        "l_ankle": lm.LEFT_ANKLE, "r_ankle": lm.RIGHT_ANKLE,
    }
    FLAGS = (
        FlagRule("chest_depth_good", True, "Lower to ~90° elbow bend"),
        FlagRule("torso_rigid", True, "Keep torso rigid - avoid hips sagging or piking"),
        FlagRule("elbow_lockout", True, "Lock out fully at the top"),
    )
    POSITIVE_FEEDBACK = "Excellent rep!"
    PRIMARY_FEATURE = "rep_elbow_angle"

    def choose_side(self, points, frame, previous) -> str:
        # One side, by summed confidence
        left = _side_confidence(frame, _SIDES["left"], lm.MIN_CONFIDENCE)
        right = _side_confidence(frame, _SIDES["right"], lm.MIN_CONFIDENCE)
        return "left" if left >= right else "right"

    def compute_features(self, points, side):
        p = points
        s = "l" if side == "left" else "r"
        shoulder, elbow, wrist = p[s + "_shoulder"], p[s + "_elbow"], p[s + "_wrist"]
        hip, ankle = p[s + "_hip"], p[s + "_ankle"]

        elbow_angle = angle(shoulder, elbow, wrist)
        # Rep counting reads the more bent arm of the two
        both = [a for a in (angle(p["l_shoulder"], p["l_elbow"], p["l_wrist"]),
                            angle(p["r_shoulder"], p["r_elbow"], p["r_wrist"])) if a is not None]
        return {
            "elbow_angle": elbow_angle if elbow_angle is not None else 180.0,
            "rep_elbow_angle": min(both) if both else 180.0,
            "torso_deviation": point_line_deviation(hip, shoulder, ankle),
        }

    def evaluate_faults(self, features, previous_flags) -> Dict[str, bool]:
        elbow = features["elbow_angle"]
        deviation = features["torso_deviation"]
        return {
            "chest_depth_good": elbow < DEPTH_ANGLE,
            "torso_rigid": deviation < TORSO_RIGID_RATIO if deviation is not None else True,
            "elbow_lockout": elbow > LOCKOUT_ANGLE,
        }

    def relevant_flags(self, features) -> FrozenSet[str]:
        if features["elbow_angle"] < LOCKOUT_ZONE_ANGLE:
            return frozenset({"chest_depth_good", "torso_rigid"})
        return frozenset({"elbow_lockout", "torso_rigid"})

    def phase_signal(self, result: AnalysisResult) -> PhaseSignal:
        elbow = result.features["rep_elbow_angle"]
        rigid = result.flags["torso_rigid"]
        return PhaseSignal(
            # Only progress phases with a rigid torso
            at_bottom=elbow < DEPTH_ANGLE and rigid,
            at_top=elbow > LOCKOUT_ANGLE and rigid,
            leaving_bottom=elbow > LEAVE_BOTTOM_ANGLE,
        )

    def position_ok(self, raw, smoothed) -> bool:
        """
        Is there a plausible push-up in frame at all: essential joints seen
        with high confidence on the raw frame, geometry from the smoothed one.
        """
        essential = {side: idx[:4] + idx[5:] for side, idx in _SIDES.items()}
        usable = {
            side: all(raw.get(i, lm.ROLE_CONFIDENCE) is not None for i in indices)
            for side, indices in essential.items()
        }
        if not any(usable.values()):
            return False

        left = _side_confidence(raw, essential["left"], lm.MIN_CONFIDENCE)
        right = _side_confidence(raw, essential["right"], lm.MIN_CONFIDENCE)
        s, e, w, h, a = (smoothed.get(i) for i in essential["left" if left >= right else "right"])
        if not (s and e and w and h and a):
            return False

        horizontal = body_tilt(s, a) < MAX_BODY_TILT
        if distance(s, a) < MIN_BODY_LENGTH_RATIO * smoothed.width:
            return False

        torso_rigid = point_line_deviation(h, s, a) < TORSO_RIGID_RATIO
        upper_arm = distance(s, e) or 1.0
        shoulder_over_wrist = abs(s.x - w.x) < SHOULDER_OVER_WRIST_RATIO * upper_arm
        ordering_ok = h.y > s.y + MIN_HIP_DROP_PX

        return horizontal and torso_rigid and shoulder_over_wrist and ordering_ok
