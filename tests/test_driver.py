import asyncio

import pytest

from form_coach.client.session import AnalysisSession, FrameDriver


def make_source(items):
    """Async frame source replaying items; exceptions in the list are raised."""
    queue = list(items)

    async def source():
        item = queue.pop(0) if queue else None
        if isinstance(item, Exception):
            raise item
        return item

    return source


def test_run_processes_frames_in_order(squat_frame):
    frames = [squat_frame(k) for k in (170, 150, 120)]
    driver = FrameDriver(AnalysisSession("squat"), make_source(frames), frame_interval=0)
    seen = []
    driver.subscribe(seen.append)

    asyncio.run(driver.run(max_frames=3))

    knees = [o.result.features["knee_angle"] for o in seen]
    assert knees[0] == pytest.approx(170)
    assert knees == sorted(knees, reverse=True)
    timestamps = [o.timestamp for o in seen]
    assert timestamps == sorted(timestamps)
    assert driver.last_output is seen[-1]
    assert driver.session.frames == 3
    assert not driver.running


def test_source_failure_keeps_last_output(squat_frame):
    items = [squat_frame(170), RuntimeError("camera unplugged"), None, squat_frame(170)]
    driver = FrameDriver(AnalysisSession("squat"), make_source(items), frame_interval=0)
    seen = []
    driver.subscribe(seen.append)

    asyncio.run(driver.run(max_frames=2))

    assert len(seen) == 2
    assert driver.session.frames == 2
    assert driver.last_output is seen[-1]


def test_stalled_source_is_skipped(squat_frame):
    calls = {"n": 0}

    async def source():
        calls["n"] += 1
        if calls["n"] == 1:
            await asyncio.sleep(1.0)
        return squat_frame(170)

    driver = FrameDriver(AnalysisSession("squat"), source, frame_interval=0, stall_timeout=0.01)
    asyncio.run(driver.run(max_frames=1))

    assert calls["n"] == 2
    assert driver.session.frames == 1


def test_stop_resets_session(squat_frame):
    async def source():
        return squat_frame(170)

    driver = FrameDriver(AnalysisSession("squat"), source, frame_interval=0.001)

    async def scenario():
        driver.start()
        await asyncio.sleep(0.05)
        assert driver.running
        return await driver.stop()

    summary = asyncio.run(scenario())

    assert summary["exercise"] == "squat"
    assert summary["frames"] > 0
    assert not driver.running
    assert driver.last_output is None
    assert driver.session.frames == 0
    assert driver.session.rep_count == 0


def test_tick_publishes_synchronously(squat_frame):
    driver = FrameDriver(AnalysisSession("squat"))
    seen = []
    driver.subscribe(seen.append)
    out = driver.tick(squat_frame(170), now=1.0)
    assert seen == [out]
    assert out.timestamp == 1.0

    driver.reset()
    assert driver.last_output is None
    assert driver.session.frames == 0


def test_run_needs_a_source():
    driver = FrameDriver(AnalysisSession("squat"))
    with pytest.raises(ValueError):
        asyncio.run(driver.run())
