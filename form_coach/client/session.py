# client/session.py
"""
Per-session analysis and the frame loop that drives it.

AnalysisSession owns everything that lives across ticks (smoothed frame,
last result for hysteresis, rep or hold state) and is the only writer.
FrameDriver pulls one frame per refresh from an async source, runs it
through the session and publishes the output.
"""

import asyncio
import contextlib
import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

import numpy as np

from form_coach.client.exercises import AnalysisResult, ExerciseEvaluator, get_exercise_rules
from form_coach.client.landmarks import LandmarkFrame
from form_coach.client.rep_logic import (
    HoldState,
    RepPhase,
    RepState,
    update_hold_state,
    update_rep_state,
)
from form_coach.client.smoothing import SMOOTHING_ALPHA, TemporalSmoother

logger = logging.getLogger(__name__)

# Per-rep sample window, about 30 s at 60 fps
MAX_REP_SAMPLES = 1800


@dataclass(frozen=True)
class FrameOutput:
    timestamp: float
    result: AnalysisResult
    smoothed: LandmarkFrame
    rep_count: int = 0
    phase: Optional[RepPhase] = None
    hold_seconds: Optional[float] = None
    in_position: bool = True
    completed_rep: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "result": self.result.to_dict(),
            "rep_count": self.rep_count,
            "phase": self.phase.value if self.phase is not None else None,
            "hold_seconds": self.hold_seconds,
            "in_position": self.in_position,
            "completed_rep": self.completed_rep,
        }


class AnalysisSession:
    def __init__(self, exercise: str, alpha: float = SMOOTHING_ALPHA,
                 clock: Callable[[], float] = time.monotonic):
        self.exercise = exercise
        self.rules = get_exercise_rules(exercise)
        self.rep_rule = self.rules.rep_rule
        self.evaluator = ExerciseEvaluator(self.rules)
        self.smoother = TemporalSmoother(alpha)
        self.clock = clock
        self.reset()

    # ---------- session control ----------

    def reset(self):
        """Back to the initial state, as if the camera had just started."""
        self.smoother.reset()
        self.previous: Optional[AnalysisResult] = None
        self.rep_state = RepState()
        self.hold_state = HoldState()
        self.frames = 0
        self.form_counts: Dict[str, int] = {}
        self.started_at: Optional[float] = None
        self.last_timestamp: Optional[float] = None
        self._rep_samples: Deque[Dict[str, Any]] = deque(maxlen=MAX_REP_SAMPLES)

    def start(self, now: Optional[float] = None):
        self.reset()
        self.started_at = self.clock() if now is None else now
        self.hold_state = HoldState(started_at=self.started_at)

    def stop(self) -> Dict[str, Any]:
        """Summary for session logging, then discard all per-session state."""
        summary = self.summary()
        self.reset()
        return summary

    @property
    def rep_count(self) -> int:
        return self.rep_state.rep_count

    # ---------- per tick ----------

    def step(self, raw: LandmarkFrame, now: Optional[float] = None) -> FrameOutput:
        """Smooth one raw frame and analyse it."""
        smoothed = self.smoother.update(raw)
        return self.process(smoothed, raw, now)

    def process(self, smoothed: LandmarkFrame, raw: Optional[LandmarkFrame] = None,
                now: Optional[float] = None) -> FrameOutput:
        """Analyse an already smoothed frame and advance the rep/hold state."""
        now = self.clock() if now is None else now
        raw = smoothed if raw is None else raw
        if self.started_at is None:
            self.started_at = now

        result = self.evaluator.evaluate(smoothed, self.previous)
        self.previous = result
        self.frames += 1
        self.last_timestamp = now
        form = result.overall_form.value
        self.form_counts[form] = self.form_counts.get(form, 0) + 1

        if self.rep_rule is None:
            self.hold_state, held = update_hold_state(self.hold_state, now)
            return FrameOutput(timestamp=now, result=result, smoothed=smoothed, hold_seconds=held)

        signal = self.rules.phase_signal(result)
        if self.rep_rule.requires_position:
            signal = replace(signal, in_position=self.rules.position_ok(raw, smoothed))

        self._rep_samples.append({
            "t": now,
            "angle": result.features.get(self.rules.PRIMARY_FEATURE),
            # range-of-motion faults are expected mid-movement, only settled frames count
            "faults": result.faults if signal.at_bottom or signal.at_top else (),
            "confidence": smoothed.mean_confidence(list(self.rules.LANDMARKS.values())),
        })

        before = self.rep_state.phase
        self.rep_state, counted = update_rep_state(self.rep_state, signal, now, self.rep_rule)
        if self.rep_state.phase != before:
            logger.debug("%s phase %s -> %s", self.exercise, before.value, self.rep_state.phase.value)

        completed = None
        if counted:
            completed = self._close_rep(now, result)
            logger.debug("%s rep %d counted", self.exercise, self.rep_state.rep_count)
        elif self.rep_state.phase == RepPhase.TOP and (signal.at_top or not signal.in_position):
            # Standing by (or out of position): the next rep has not started
            self._rep_samples.clear()

        return FrameOutput(
            timestamp=now,
            result=result,
            smoothed=smoothed,
            rep_count=self.rep_state.rep_count,
            phase=self.rep_state.phase,
            in_position=self.rep_state.in_position if self.rep_rule.requires_position else True,
            completed_rep=completed,
        )

    def _close_rep(self, now: float, result: AnalysisResult) -> Dict[str, Any]:
        samples = self._rep_samples
        angles = [s["angle"] for s in samples if s["angle"] is not None]
        faults = sorted({f for s in samples for f in s["faults"]})
        rep_summary = {
            "rep_id": self.rep_state.rep_count,
            "exercise": self.exercise,
            "duration_s": float(now - samples[0]["t"]) if samples else 0.0,
            "primary_angle_min": float(min(angles)) if angles else 180.0,
            "faults": faults,
            "overall_form": result.overall_form.value,
            "avg_confidence": float(np.mean([s["confidence"] for s in samples])) if samples else 0.0,
        }
        self._rep_samples.clear()
        return rep_summary

    def summary(self) -> Dict[str, Any]:
        hold_seconds = None
        if self.rep_rule is None and self.hold_state.started_at is not None and self.last_timestamp is not None:
            hold_seconds = max(0.0, self.last_timestamp - self.hold_state.started_at)
        duration = 0.0
        if self.started_at is not None and self.last_timestamp is not None:
            duration = max(0.0, self.last_timestamp - self.started_at)
        return {
            "exercise": self.exercise,
            "rep_count": self.rep_state.rep_count,
            "hold_seconds": hold_seconds,
            "frames": self.frames,
            "duration_s": duration,
            "form_counts": dict(self.form_counts),
        }


FrameSource = Callable[[], Awaitable[Optional[LandmarkFrame]]]
Subscriber = Callable[[FrameOutput], None]


class FrameDriver:
    """
    Scheduling loop: one frame per display refresh, strictly in order.

    Awaiting the source is the only suspension point. A source that
    stalls, returns None or raises just means no new frame this tick:
    the last published output stays current and session state is kept.

    Callers that pull frames themselves (the camera demo) leave source
    unset and push each frame through tick().
    """

    def __init__(self, session: AnalysisSession, source: Optional[FrameSource] = None,
                 frame_interval: float = 1 / 60, stall_timeout: float = 1.0):
        self.session = session
        self.source = source
        self.frame_interval = frame_interval
        self.stall_timeout = stall_timeout
        self.last_output: Optional[FrameOutput] = None
        self._subscribers: List[Subscriber] = []
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def subscribe(self, callback: Subscriber):
        self._subscribers.append(callback)

    @property
    def running(self) -> bool:
        return self._running

    def tick(self, frame: LandmarkFrame, now: Optional[float] = None) -> FrameOutput:
        output = self.session.step(frame, now)
        self.last_output = output
        for callback in self._subscribers:
            callback(output)
        return output

    async def _next_frame(self) -> Optional[LandmarkFrame]:
        try:
            return await asyncio.wait_for(self.source(), timeout=self.stall_timeout)
        except asyncio.TimeoutError:
            logger.debug("No frame within %.2fs, holding last result", self.stall_timeout)
        except Exception as e:
            logger.warning("Frame source failed: %s", e)
        return None

    async def run(self, max_frames: Optional[int] = None):
        """Process frames until stopped (or max_frames have been processed)."""
        if self.source is None:
            raise ValueError("FrameDriver.run() needs a frame source")
        self._running = True
        if self.session.started_at is None:
            self.session.start()
        processed = 0
        try:
            while self._running:
                frame = await self._next_frame()
                if frame is not None and self._running:
                    self.tick(frame)
                    processed += 1
                    if max_frames is not None and processed >= max_frames:
                        break
                await asyncio.sleep(self.frame_interval)
        finally:
            self._running = False

    def start(self) -> asyncio.Task:
        """Schedule run() on the current event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())
        return self._task

    async def stop(self) -> Dict[str, Any]:
        """Stop scheduling ticks and discard the session's state."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        self.last_output = None
        return self.session.stop()

    def reset(self):
        self.session.reset()
        self.last_output = None
