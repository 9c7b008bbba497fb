"""Synthetic pose builders shared by the test modules."""

import math

import pytest

from form_coach.client import landmarks as lm
from form_coach.client.landmarks import Landmark, LandmarkFrame


def rotate(v, deg):
    r = math.radians(deg)
    return (v[0] * math.cos(r) - v[1] * math.sin(r),
            v[0] * math.sin(r) + v[1] * math.cos(r))


def make_frame(points, confidence=0.9, width=640, height=480):
    """points: {landmark index: (x, y)} -> LandmarkFrame, other slots absent."""
    slots = [None] * lm.NUM_LANDMARKS
    for idx, (x, y) in points.items():
        slots[idx] = Landmark(float(x), float(y), confidence)
    return LandmarkFrame(tuple(slots), width, height)


def standing_body(knee_angle, hip_angle=175.0):
    """
    Front view, mirror symmetric about x=300, with the given hip
    (shoulder-hip-knee) and knee (hip-knee-ankle) angles on both legs.
    """
    points = {}
    for sign, shoulder_idx, hip_idx, knee_idx, ankle_idx, hip_x in (
        (1, lm.LEFT_SHOULDER, lm.LEFT_HIP, lm.LEFT_KNEE, lm.LEFT_ANKLE, 280.0),
        (-1, lm.RIGHT_SHOULDER, lm.RIGHT_HIP, lm.RIGHT_KNEE, lm.RIGHT_ANKLE, 320.0),
    ):
        hip = (hip_x, 200.0)
        thigh = rotate((0.0, -100.0), sign * hip_angle)
        knee = (hip[0] + thigh[0], hip[1] + thigh[1])
        shin = rotate((-thigh[0], -thigh[1]), sign * knee_angle)
        points[shoulder_idx] = (hip_x, 100.0)
        points[hip_idx] = hip
        points[knee_idx] = knee
        points[ankle_idx] = (knee[0] + shin[0], knee[1] + shin[1])
    return points


def pushup_body(elbow_angle, body_tilt=11.31):
    """
    Side view, left side only. Shoulder fixed at (100, 300), the body line
    runs to the ankle at the given tilt, hip on the line, wrist straight
    under the shoulder with both arm segments 60 px.
    """
    shoulder = (100.0, 300.0)
    length = 306.0
    t = math.radians(body_tilt)
    ankle = (shoulder[0] + length * math.cos(t), shoulder[1] + length * math.sin(t))
    hip = ((shoulder[0] + ankle[0]) / 2, (shoulder[1] + ankle[1]) / 2)
    knee = ((hip[0] + ankle[0]) / 2, (hip[1] + ankle[1]) / 2)

    half = math.radians(elbow_angle / 2)
    reach = 2 * 60.0 * math.sin(half)
    offset = 60.0 * math.cos(half)
    wrist = (shoulder[0], shoulder[1] + reach)
    elbow = (shoulder[0] - offset, shoulder[1] + reach / 2)
    return {
        lm.LEFT_SHOULDER: shoulder,
        lm.LEFT_ELBOW: elbow,
        lm.LEFT_WRIST: wrist,
        lm.LEFT_HIP: hip,
        lm.LEFT_KNEE: knee,
        lm.LEFT_ANKLE: ankle,
    }


@pytest.fixture
def squat_frame():
    def build(knee_angle, hip_angle=175.0, **kwargs):
        return make_frame(standing_body(knee_angle, hip_angle), **kwargs)
    return build


@pytest.fixture
def pushup_frame():
    def build(elbow_angle, body_tilt=11.31, **kwargs):
        return make_frame(pushup_body(elbow_angle, body_tilt), **kwargs)
    return build
