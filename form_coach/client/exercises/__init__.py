# client/exercises/__init__.py

from typing import Dict, Type

from form_coach.client.exercises.base import (
    AnalysisResult,
    ExerciseEvaluator,
    ExerciseRules,
    FlagRule,
    OverallForm,
)
from form_coach.client.exercises.deadlift import DeadliftRules
from form_coach.client.exercises.lunge import LungeRules
from form_coach.client.exercises.plank import PlankRules
from form_coach.client.exercises.pushup import PushupRules
from form_coach.client.exercises.squat import SquatRules

EXERCISE_RULES: Dict[str, Type[ExerciseRules]] = {
    "squat": SquatRules,
    "lunge": LungeRules,
    "deadlift": DeadliftRules,
    "plank": PlankRules,
    "pushup": PushupRules,
}


def get_exercise_rules(exercise_name: str) -> ExerciseRules:
    try:
        return EXERCISE_RULES[exercise_name]()
    except KeyError:
        raise ValueError(
            f"Unknown exercise {exercise_name!r}, expected one of {sorted(EXERCISE_RULES)}"
        ) from None


__all__ = [
    "AnalysisResult",
    "EXERCISE_RULES",
    "ExerciseEvaluator",
    "ExerciseRules",
    "FlagRule",
    "OverallForm",
    "get_exercise_rules",
]
