import cv2
import os
os.environ['TF_CPP_MIN_LOG_LEVEL'] = '3'

import mediapipe as mp

from form_coach.client.landmarks import (
    Landmark,
    LandmarkFrame,
    MIN_CONFIDENCE,
    SKELETON_EDGES,
)

mp_pose = mp.solutions.pose

# MediaPipe's 33-point BlazePose indices for each of our 17 slots
MEDIAPIPE_INDEX = (
    0,          # nose
    2, 5,       # eyes
    7, 8,       # ears
    11, 12,     # shoulders
    13, 14,     # elbows
    15, 16,     # wrists
    23, 24,     # hips
    25, 26,     # knees
    27, 28,     # ankles
)

# BGR
FORM_COLORS = {
    "excellent": (212, 188, 0),
    "needs-improvement": (0, 152, 255),
    "poor": (0, 0, 255),
}


def landmarks_from_mediapipe(lm, width, height):
    """
    Map MediaPipe normalized landmarks to a 17-slot pixel-space frame.
    Visibility is used as the confidence score.
    """
    slots = []
    for idx in MEDIAPIPE_INDEX:
        p = lm[idx]
        slots.append(Landmark(p.x * width, p.y * height, float(p.visibility)))
    return LandmarkFrame(tuple(slots), width, height)


class PoseEstimator:
    def __init__(self):
        self.pose = mp_pose.Pose(
            static_image_mode=False,
            model_complexity=1,
            enable_segmentation=False,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )

    def process(self, frame_bgr):
        """
        Input: BGR frame from OpenCV.
        Output: LandmarkFrame in pixel space. When no body is detected the
        frame has every slot absent.
        """
        h, w, _ = frame_bgr.shape
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self.pose.process(rgb)

        if not results.pose_landmarks:
            return LandmarkFrame.empty(w, h)

        return landmarks_from_mediapipe(results.pose_landmarks.landmark, w, h)

    def close(self):
        self.pose.close()


def draw_skeleton(image, frame, overall_form="excellent"):
    """Draw joints and bones of a LandmarkFrame onto a BGR image in place."""
    color = FORM_COLORS.get(overall_form, FORM_COLORS["needs-improvement"])

    for a, b in SKELETON_EDGES:
        pa, pb = frame.get(a, MIN_CONFIDENCE), frame.get(b, MIN_CONFIDENCE)
        if pa and pb:
            cv2.line(image, (int(pa.x), int(pa.y)), (int(pb.x), int(pb.y)), color, 3)

    for p in frame:
        if p is not None and p.confidence > MIN_CONFIDENCE:
            cv2.circle(image, (int(p.x), int(p.y)), 4, color, -1)

    return image
