# client/geometry.py
"""
Stateless 2D helpers over landmarks (anything with .x and .y).

Every function returns None when one of its inputs is absent, callers
pick the neutral default that suits them.
"""

from typing import Optional

import numpy as np

from form_coach.client.landmarks import Landmark


def angle(a, b, c) -> Optional[float]:
    """
    Returns the angle (in degrees, 0..180) at point b formed by points a-b-c.
    """
    if a is None or b is None or c is None:
        return None
    radians = np.arctan2(c.y - b.y, c.x - b.x) - np.arctan2(a.y - b.y, a.x - b.x)
    deg = abs(np.degrees(radians))
    if deg > 180.0:
        deg = 360.0 - deg
    return float(deg)


def underside_angle(a, b, c) -> Optional[float]:
    """
    Angle at b measured on the image-bottom side of the a-c line (0..360).

    When b sits below the a-c line (larger y) the reflex angle is returned,
    e.g. a sagging hip between shoulder and knee reads above 180.
    """
    inner = angle(a, b, c)
    if inner is None:
        return None
    dx = c.x - a.x
    if abs(dx) < 1e-6:
        return inner
    line_y = a.y + (c.y - a.y) * (b.x - a.x) / dx
    return 360.0 - inner if b.y > line_y else inner


def point_line_deviation(point, line_start, line_end) -> Optional[float]:
    """
    Perpendicular distance of point from the infinite line through
    line_start/line_end, divided by the segment length.
    """
    if point is None or line_start is None or line_end is None:
        return None
    A, B, P = line_start, line_end, point
    num = abs((B.y - A.y) * P.x - (B.x - A.x) * P.y + B.x * A.y - B.y * A.x)
    den = float(np.hypot(B.y - A.y, B.x - A.x))
    if den == 0.0:
        return 0.0
    return float(num / den / den)


def line_roll(left, right) -> Optional[float]:
    """Roll of the left->right segment from horizontal, folded into (-90, 90]."""
    if left is None or right is None:
        return None
    roll = float(np.degrees(np.arctan2(right.y - left.y, right.x - left.x)))
    if roll > 90.0:
        roll -= 180.0
    elif roll <= -90.0:
        roll += 180.0
    return roll


def segment_tilt(segment_end, pivot, reference_angle: float = 0.0) -> Optional[float]:
    """
    Deviation (degrees, 0..180) of pivot->segment_end from image-up after
    de-rotating by reference_angle, so camera roll is not read as lean.
    """
    if segment_end is None or pivot is None:
        return None
    dx = segment_end.x - pivot.x
    dy = segment_end.y - pivot.y
    r = -np.radians(reference_angle)
    rx = np.cos(r) * dx - np.sin(r) * dy
    ry = np.sin(r) * dx + np.cos(r) * dy
    return float(np.degrees(np.arctan2(abs(rx), -ry)))


def midpoint(a, b) -> Optional[Landmark]:
    if a is None or b is None:
        return None
    return Landmark((a.x + b.x) / 2, (a.y + b.y) / 2, min(a.confidence, b.confidence))


def distance(a, b) -> Optional[float]:
    if a is None or b is None:
        return None
    return float(np.hypot(a.x - b.x, a.y - b.y))


def hysteresis(value: Optional[float], previous: bool, good: float, bad: float) -> bool:
    """
    Banded boolean: True below `good`, False above `bad`, otherwise the
    previous value. A missing value keeps the previous value too.
    """
    if value is None:
        return previous
    if value < good:
        return True
    if value > bad:
        return False
    return previous
