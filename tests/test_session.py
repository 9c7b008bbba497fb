import pytest

from form_coach.client import landmarks as lm
from form_coach.client.landmarks import LandmarkFrame
from form_coach.client.rep_logic import RepPhase
from form_coach.client.session import AnalysisSession

from conftest import make_frame


def test_unknown_exercise_is_rejected():
    with pytest.raises(ValueError):
        AnalysisSession("burpee")


def test_squat_rep_end_to_end(squat_frame):
    session = AnalysisSession("squat")
    knees = [170, 170, 170, 95, 95, 95, 130, 170, 170, 170]
    outputs = [session.process(squat_frame(k), now=i * 0.1) for i, k in enumerate(knees)]

    assert [o.rep_count for o in outputs] == [0] * 9 + [1]
    assert outputs[5].phase == RepPhase.BOTTOM
    assert outputs[6].phase == RepPhase.TRANSITION
    assert outputs[-1].phase == RepPhase.TOP
    assert outputs[-1].result.overall_form.value == "excellent"

    rep = outputs[-1].completed_rep
    assert rep["rep_id"] == 1
    assert rep["exercise"] == "squat"
    assert rep["primary_angle_min"] == pytest.approx(95, abs=0.01)
    # window opens on the first frame off the top
    assert rep["duration_s"] == pytest.approx(0.6)
    assert rep["faults"] == []
    assert rep["avg_confidence"] == pytest.approx(0.9)
    assert all(o.completed_rep is None for o in outputs[:-1])


def test_squat_rep_through_smoothing(squat_frame):
    session = AnalysisSession("squat")
    knees = [170] * 12 + [95] * 12 + [170] * 12
    for i, k in enumerate(knees):
        out = session.step(squat_frame(k), now=i * 0.1)
    assert out.rep_count == 1
    assert out.result.overall_form.value == "excellent"


def test_rep_faults_are_collected(squat_frame):
    session = AnalysisSession("squat")
    frames = ([squat_frame(170)] * 3 + [squat_frame(95, hip_angle=130)] * 3
              + [squat_frame(130)] + [squat_frame(170)] * 3)
    for i, frame in enumerate(frames):
        out = session.process(frame, now=i * 0.1)
    # The half-depth frame on the way up is not held against the rep
    assert out.completed_rep["faults"] == ["back_straight"]


def test_rep_after_idle_period(squat_frame):
    session = AnalysisSession("squat")
    # A minute standing around, slouched
    for i in range(600):
        session.process(squat_frame(170, hip_angle=120), now=i * 0.1)
    assert len(session._rep_samples) == 0

    knees = [95, 95, 95, 130, 170, 170, 170]
    for i, k in enumerate(knees):
        out = session.process(squat_frame(k), now=60.0 + i * 0.1)

    rep = out.completed_rep
    assert out.rep_count == 1
    assert rep["duration_s"] == pytest.approx(0.6)
    assert rep["faults"] == []


def test_low_confidence_frame_keeps_state(squat_frame):
    session = AnalysisSession("squat")
    for i in range(3):
        session.step(squat_frame(170), now=i * 0.1)
    before = session.smoother.smoothed
    out = session.step(squat_frame(95, confidence=0.3), now=0.3)
    assert out.smoothed == before
    assert out.rep_count == 0


def test_plank_reports_hold_time():
    session = AnalysisSession("plank")
    session.start(now=10.0)
    frame = make_frame({
        lm.LEFT_SHOULDER: (100, 300), lm.LEFT_ELBOW: (100, 360),
        lm.LEFT_HIP: (250, 300), lm.LEFT_KNEE: (350, 300), lm.LEFT_ANKLE: (450, 300),
    })
    out = session.process(frame, now=12.0)
    assert out.hold_seconds == pytest.approx(2.0)
    assert out.phase is None
    assert out.result.feedback == ("Excellent form! Hold steady.",)
    assert session.summary()["hold_seconds"] == pytest.approx(2.0)


def test_pushup_counts_only_in_position(pushup_frame):
    session = AnalysisSession("pushup")
    angles = [170] * 10 + [80] * 12 + [170] * 12
    outputs = [session.step(pushup_frame(a), now=i * 0.1) for i, a in enumerate(angles)]

    assert not outputs[0].in_position
    assert outputs[4].in_position
    assert outputs[-1].rep_count == 1


def test_pushup_steep_body_never_counts(pushup_frame):
    session = AnalysisSession("pushup")
    angles = [170] * 10 + [80] * 12 + [170] * 12
    for i, a in enumerate(angles):
        out = session.step(pushup_frame(a, body_tilt=40), now=i * 0.1)
        assert not out.in_position
    assert out.rep_count == 0


def test_pushup_tilted_lockout_is_not_counted(pushup_frame):
    session = AnalysisSession("pushup")
    frames = [pushup_frame(170)] * 8 + [pushup_frame(80)] * 4 + [pushup_frame(170, body_tilt=40)] * 4
    for i, frame in enumerate(frames):
        out = session.process(frame, now=i * 0.1)
    assert out.phase == RepPhase.TRANSITION
    assert out.rep_count == 0

    # Levelling out again finishes the rep
    for i in range(2):
        out = session.process(pushup_frame(170), now=2.0 + i * 0.1)
    assert out.rep_count == 1


def test_summary_and_stop(squat_frame):
    session = AnalysisSession("squat")
    session.start(now=0.0)
    knees = [170, 170, 170, 95, 95, 95, 130, 170, 170, 170]
    for i, k in enumerate(knees):
        session.process(squat_frame(k), now=i * 0.1)

    summary = session.stop()
    assert summary["exercise"] == "squat"
    assert summary["rep_count"] == 1
    assert summary["frames"] == 10
    assert summary["hold_seconds"] is None
    assert summary["duration_s"] == pytest.approx(0.9)
    assert sum(summary["form_counts"].values()) == 10

    # Everything per-session is gone
    assert session.rep_count == 0
    assert session.frames == 0
    assert session.previous is None
    assert session.smoother.smoothed is None


def test_reset_then_restart_counts_from_zero(squat_frame):
    session = AnalysisSession("squat")
    knees = [170, 170, 170, 95, 95, 95, 130, 170, 170, 170]
    for i, k in enumerate(knees):
        session.process(squat_frame(k), now=i * 0.1)
    session.reset()
    out = session.process(squat_frame(170), now=5.0)
    assert out.rep_count == 0
    assert out.phase == RepPhase.TOP


def test_frame_output_to_dict(squat_frame):
    out = AnalysisSession("squat").process(squat_frame(170), now=1.0)
    d = out.to_dict()
    assert d["timestamp"] == 1.0
    assert d["phase"] == "top"
    assert d["result"]["exercise"] == "squat"
    assert d["completed_rep"] is None


def test_empty_frames_are_tolerated():
    session = AnalysisSession("lunge")
    for i in range(5):
        out = session.step(LandmarkFrame.empty(), now=i * 0.1)
    assert out.rep_count == 0
    assert out.result.side == "left"
