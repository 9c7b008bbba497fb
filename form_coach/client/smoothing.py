# client/smoothing.py

from typing import Optional

import numpy as np

from form_coach.client.landmarks import LandmarkFrame

SMOOTHING_ALPHA = 0.35
SMOOTHING_MIN_CONFIDENCE = 0.4


def smooth_frame(
    prev_smoothed: Optional[LandmarkFrame],
    raw: LandmarkFrame,
    alpha: float = SMOOTHING_ALPHA,
) -> LandmarkFrame:
    """
    First-order EMA over landmark positions, gated by confidence.

    Per slot:
      - no prior value            -> raw as-is
      - raw absent / conf < 0.4   -> prior value held
      - otherwise                 -> alpha * raw + (1 - alpha) * prior,
                                     confidence taken from raw
    """
    if prev_smoothed is None:
        return raw

    prev = prev_smoothed.to_array()
    cur = raw.to_array()

    has_prev = ~np.isnan(prev[:, 0])
    raw_ok = ~np.isnan(cur[:, 0]) & (np.nan_to_num(cur[:, 2]) >= SMOOTHING_MIN_CONFIDENCE)
    blend = has_prev & raw_ok

    out = np.where(has_prev[:, None], prev, cur)
    out[blend, :2] = alpha * cur[blend, :2] + (1.0 - alpha) * prev[blend, :2]
    out[blend, 2] = cur[blend, 2]

    return LandmarkFrame.from_array(out, raw.width, raw.height)


class TemporalSmoother:
    """Holds the most recent smoothed frame for one analysis session."""

    def __init__(self, alpha: float = SMOOTHING_ALPHA):
        self.alpha = alpha
        self.smoothed: Optional[LandmarkFrame] = None

    def update(self, raw: LandmarkFrame) -> LandmarkFrame:
        self.smoothed = smooth_frame(self.smoothed, raw, self.alpha)
        return self.smoothed

    def reset(self):
        self.smoothed = None
