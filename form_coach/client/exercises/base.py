# client/exercises/base.py
"""
Generic form evaluation engine.

Each exercise is an ExerciseRules strategy: which landmarks it reads,
how it turns them into features, how features become flags, and what a
frame means for the rep counter. ExerciseEvaluator runs the shared part:
gating, grading and feedback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, NamedTuple, Optional, Tuple

from form_coach.client.landmarks import Landmark, LandmarkFrame, MIN_CONFIDENCE
from form_coach.client.rep_logic import PhaseSignal, RepRule, get_exercise_config

Points = Dict[str, Optional[Landmark]]
Features = Dict[str, Any]


class OverallForm(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"                       # reserved, no rule grades to it
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"


# Number of simultaneous relevant faults that grades a frame as poor
POOR_FAULT_COUNT = 2


class FlagRule(NamedTuple):
    name: str
    passing: bool        # value of the flag when form is fine
    message: str         # feedback when it is not


@dataclass(frozen=True)
class AnalysisResult:
    exercise: str
    features: Dict[str, Any]
    flags: Dict[str, bool]
    overall_form: OverallForm
    feedback: Tuple[str, ...]
    side: Optional[str] = None
    faults: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise": self.exercise,
            "features": dict(self.features),
            "flags": dict(self.flags),
            "overall_form": self.overall_form.value,
            "feedback": list(self.feedback),
            "side": self.side,
            "faults": list(self.faults),
        }


def grade(fault_count: int) -> OverallForm:
    if fault_count == 0:
        return OverallForm.EXCELLENT
    if fault_count >= POOR_FAULT_COUNT:
        return OverallForm.POOR
    return OverallForm.NEEDS_IMPROVEMENT


def pick_by_confidence(left: Optional[Landmark], right: Optional[Landmark]) -> Optional[Landmark]:
    """Use whichever side the model is more sure about."""
    if left is not None and right is not None:
        return left if left.confidence >= right.confidence else right
    return left or right


class ExerciseRules:
    name: str = ""
    LANDMARKS: Dict[str, int] = {}
    FLAGS: Tuple[FlagRule, ...] = ()
    POSITIVE_FEEDBACK = "Excellent form! Keep it up!"
    PRIMARY_FEATURE: Optional[str] = None

    @property
    def rep_rule(self) -> Optional[RepRule]:
        return get_exercise_config(self.name)

    def select_landmarks(self, frame: LandmarkFrame) -> Points:
        return {role: frame.get(i, MIN_CONFIDENCE) for role, i in self.LANDMARKS.items()}

    def choose_side(self, points: Points, frame: LandmarkFrame,
                    previous: Optional[AnalysisResult]) -> Optional[str]:
        return None

    def compute_features(self, points: Points, side: Optional[str]) -> Features:
        raise NotImplementedError

    def evaluate_faults(self, features: Features, previous_flags: Dict[str, bool]) -> Dict[str, bool]:
        raise NotImplementedError

    def relevant_flags(self, features: Features) -> FrozenSet[str]:
        return frozenset(f.name for f in self.FLAGS)

    def phase_signal(self, result: AnalysisResult) -> Optional[PhaseSignal]:
        return None

    def position_ok(self, raw: LandmarkFrame, smoothed: LandmarkFrame) -> bool:
        return True

    def initial_flags(self) -> Dict[str, bool]:
        return {f.name: f.passing for f in self.FLAGS}


class ExerciseEvaluator:
    """Runs one ExerciseRules strategy over smoothed frames."""

    def __init__(self, rules: ExerciseRules):
        self.rules = rules

    def evaluate(self, frame: LandmarkFrame,
                 previous: Optional[AnalysisResult] = None) -> AnalysisResult:
        rules = self.rules
        points = rules.select_landmarks(frame)
        side = rules.choose_side(points, frame, previous)
        features = rules.compute_features(points, side)

        previous_flags = previous.flags if previous is not None else rules.initial_flags()
        flags = rules.evaluate_faults(features, previous_flags)

        relevant = rules.relevant_flags(features)
        feedback = []
        faults = []
        for flag in rules.FLAGS:
            if flag.name in relevant and flags[flag.name] != flag.passing:
                faults.append(flag.name)
                feedback.append(flag.message)
        if not faults:
            feedback.append(rules.POSITIVE_FEEDBACK)

        return AnalysisResult(
            exercise=rules.name,
            features=features,
            flags=flags,
            overall_form=grade(len(faults)),
            feedback=tuple(feedback),
            side=side,
            faults=tuple(faults),
        )
