from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip("cv2")
pytest.importorskip("mediapipe")
pytest.importorskip("pyttsx3")

from form_coach.client import rep_demo  # noqa: E402
from form_coach.client.landmarks import LandmarkFrame  # noqa: E402


class FakeCapture:
    def __init__(self, reads):
        self.reads = list(reads)

    def isOpened(self):
        return True

    def read(self):
        ok = self.reads.pop(0) if self.reads else False
        return (True, np.zeros((480, 640, 3), dtype=np.uint8)) if ok else (False, None)

    def release(self):
        pass


class FakeEstimator:
    def process(self, frame):
        return LandmarkFrame.empty(640, 480)

    def close(self):
        pass


@pytest.fixture
def demo(monkeypatch):
    clock = iter([0.0] + [100.0] * 1000)
    logged = []
    monkeypatch.setattr("builtins.input", lambda prompt="": "1")
    monkeypatch.setattr(rep_demo, "time", SimpleNamespace(time=lambda: next(clock), sleep=lambda s: None))
    monkeypatch.setattr(rep_demo, "PoseEstimator", FakeEstimator)
    monkeypatch.setattr(rep_demo, "MAX_READ_FAILURES", 3)
    monkeypatch.setattr(rep_demo, "log_session", logged.append)
    monkeypatch.setattr(rep_demo.cv2, "imshow", lambda *a: None)
    monkeypatch.setattr(rep_demo.cv2, "waitKey", lambda *a: -1)
    monkeypatch.setattr(rep_demo.cv2, "destroyAllWindows", lambda: None)

    def run(reads):
        monkeypatch.setattr(rep_demo.cv2, "VideoCapture", lambda index: FakeCapture(reads))
        rep_demo.main()
        return logged

    return run


def test_dropped_frames_do_not_end_the_session(demo):
    # countdown frame, then analysed frames around two dropped reads
    logged = demo([True, True, False, False, True, True])
    assert len(logged) == 1
    assert logged[0]["exercise"] == "squat"
    assert logged[0]["frames"] == 3


def test_camera_gone_for_good_stops_the_demo(demo):
    logged = demo([True])
    assert logged == []
