# client/landmarks.py

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from form_coach.config import FRAME_HEIGHT, FRAME_WIDTH

# ---------- Body landmark schema (17 entries, left/right paired) ----------
LANDMARK_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)
NUM_LANDMARKS = len(LANDMARK_NAMES)

NOSE = 0
LEFT_SHOULDER, RIGHT_SHOULDER = 5, 6
LEFT_ELBOW, RIGHT_ELBOW = 7, 8
LEFT_WRIST, RIGHT_WRIST = 9, 10
LEFT_HIP, RIGHT_HIP = 11, 12
LEFT_KNEE, RIGHT_KNEE = 13, 14
LEFT_ANKLE, RIGHT_ANKLE = 15, 16

SKELETON_EDGES: Tuple[Tuple[int, int], ...] = (
    (5, 6), (11, 12),                   # shoulders, hips
    (5, 7), (7, 9), (6, 8), (8, 10),    # arms
    (11, 13), (13, 15), (12, 14), (14, 16),  # legs
    (5, 11), (6, 12),                   # torso sides
    (0, 1), (0, 2), (1, 3), (2, 4),     # face
)

# ---------- Confidence gate thresholds ----------
MIN_CONFIDENCE = 0.5    # standard gate for geometry
ROLE_CONFIDENCE = 0.6   # side / role disambiguation


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    confidence: float = 1.0


def is_usable(landmark: Optional[Landmark], threshold: float = MIN_CONFIDENCE) -> bool:
    """True iff the landmark is present and its confidence is above threshold."""
    return landmark is not None and landmark.confidence > threshold


@dataclass(frozen=True)
class LandmarkFrame:
    """
    One frame of pose output: exactly 17 slots, each a Landmark or None.

    Coordinates are in the pixel space of the image the model saw,
    whose size is kept alongside so size-relative checks work.
    """
    landmarks: Tuple[Optional[Landmark], ...]
    width: float = FRAME_WIDTH
    height: float = FRAME_HEIGHT

    def __post_init__(self):
        if len(self.landmarks) != NUM_LANDMARKS:
            raise ValueError(
                f"LandmarkFrame needs {NUM_LANDMARKS} slots, got {len(self.landmarks)}"
            )
        object.__setattr__(self, "landmarks", tuple(self.landmarks))

    def __getitem__(self, index: int) -> Optional[Landmark]:
        return self.landmarks[index]

    def __len__(self) -> int:
        return NUM_LANDMARKS

    def __iter__(self) -> Iterator[Optional[Landmark]]:
        return iter(self.landmarks)

    def get(self, index: int, threshold: float = MIN_CONFIDENCE) -> Optional[Landmark]:
        """Landmark at index if it passes the confidence gate, else None."""
        p = self.landmarks[index]
        return p if is_usable(p, threshold) else None

    @classmethod
    def empty(cls, width: float = FRAME_WIDTH, height: float = FRAME_HEIGHT) -> "LandmarkFrame":
        return cls((None,) * NUM_LANDMARKS, width, height)

    @classmethod
    def from_keypoints(
        cls,
        keypoints: Sequence[Optional[Landmark]],
        width: float = FRAME_WIDTH,
        height: float = FRAME_HEIGHT,
    ) -> "LandmarkFrame":
        """
        Build a frame from whatever the model produced this tick.
        Short (or empty) lists are padded with absent slots, extras dropped.
        """
        slots = list(keypoints[:NUM_LANDMARKS])
        slots += [None] * (NUM_LANDMARKS - len(slots))
        return cls(tuple(slots), width, height)

    @classmethod
    def from_array(
        cls,
        arr: np.ndarray,
        width: float = FRAME_WIDTH,
        height: float = FRAME_HEIGHT,
    ) -> "LandmarkFrame":
        """(17, 3) array of x, y, confidence. Rows containing NaN are absent."""
        arr = np.asarray(arr, dtype=float)
        slots = []
        for row in arr:
            if np.isnan(row).any():
                slots.append(None)
            else:
                slots.append(Landmark(float(row[0]), float(row[1]), float(row[2])))
        return cls.from_keypoints(slots, width, height)

    def to_array(self) -> np.ndarray:
        arr = np.full((NUM_LANDMARKS, 3), np.nan)
        for i, p in enumerate(self.landmarks):
            if p is not None:
                arr[i] = (p.x, p.y, p.confidence)
        return arr

    def mean_confidence(self, indices: Sequence[int]) -> float:
        confs = [self.landmarks[i].confidence for i in indices if self.landmarks[i] is not None]
        return float(np.mean(confs)) if confs else 0.0
