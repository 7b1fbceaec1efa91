# app/motion/controller.py
from __future__ import annotations

import asyncio
from typing import Mapping, Optional, Protocol

from app.core.error_codes import (
    ANALYSIS_ROI_MISSING,
    ANALYSIS_SOURCE_MISSING,
    ANALYSIS_VIEWS_INCOMPLETE,
)
from app.core.exceptions import AnalysisCancelledError, AnalysisError
from app.core.logging import get_logger

from .area import biplane_ejection_fraction
from .engine import EchoEngine, TickResult
from .preprocess import FrameLike
from .scheduling import Scheduler
from .segments import build_segmental_map
from .session import AnalysisResult, ViewSession
from .sources import FrameSource
from .types import BIPLANE_VIEWS, Roi, View

logger = get_logger(__name__)

DEFAULT_FPS = 30.0
DEFAULT_HEART_RATE_BPM = 74.0


# -----------------------
# Presentation sinks
# -----------------------

class PresentationSink(Protocol):
    def on_tick(self, view: View, result: TickResult) -> None: ...

    def on_result(self, result: AnalysisResult) -> None: ...


class NullSink:
    def on_tick(self, view: View, result: TickResult) -> None:
        pass

    def on_result(self, result: AnalysisResult) -> None:
        pass


class CollectingSink:
    """Keeps the latest tick per view, a tick count, and every result."""

    def __init__(self) -> None:
        self.latest: dict[View, TickResult] = {}
        self.tick_counts: dict[View, int] = {}
        self.results: list[AnalysisResult] = []

    def on_tick(self, view: View, result: TickResult) -> None:
        self.latest[view] = result
        self.tick_counts[view] = self.tick_counts.get(view, 0) + 1

    def on_result(self, result: AnalysisResult) -> None:
        self.results.append(result)


# -----------------------
# Continuous (single view)
# -----------------------

class ContinuousController:
    """
    Real-time loop over one view: one tick per scheduler callback.

    The source clock advances by one frame interval (1/fps) after every tick,
    so consecutive ticks see consecutive frames; the loop ends with the clip.

    A frame submitted while a tick is still running is dropped and counted
    in dropped_ticks; session state is never touched by a dropped frame.
    """

    def __init__(
        self,
        engine: EchoEngine,
        session: ViewSession,
        *,
        sink: Optional[PresentationSink] = None,
        scheduler: Optional[Scheduler] = None,
        fps: float = DEFAULT_FPS,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.engine = engine
        self.session = session
        self.fps = float(fps)
        self.sink = sink or NullSink()
        self.scheduler = scheduler or Scheduler()
        self.dropped_ticks = 0
        self.paused = False
        self._busy = False

    def submit(self, frame: FrameLike, time: float) -> Optional[TickResult]:
        if self._busy:
            self.dropped_ticks += 1
            return None
        self._busy = True
        try:
            result = self.engine.tick(self.session, frame, time)
        finally:
            self._busy = False
        self.sink.on_tick(self.session.view, result)
        return result

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def reset(self) -> None:
        self.session.reset()
        self.dropped_ticks = 0

    async def run(
        self,
        source: FrameSource,
        *,
        cancel: Optional[asyncio.Event] = None,
        max_ticks: Optional[int] = None,
    ) -> int:
        """
        Tick until paused, cancelled, max_ticks is reached or the source runs
        out of frames. Returns the number of ticks run.
        """
        # t = start + i / fps, like the batch walk
        start = source.current_time()
        duration = source.duration()
        ticks = 0
        index = 0
        while not self.paused:
            if cancel is not None and cancel.is_set():
                break
            if max_ticks is not None and ticks >= max_ticks:
                break
            t = start + index / self.fps
            if t >= duration - 1e-6:
                break
            source.seek(t)
            if self.submit(source.current_raster(), t) is not None:
                ticks += 1
            index += 1
            await self.scheduler.wait_next_frame()
        # leave the source on the next unseen frame so run() can resume
        source.seek(start + index / self.fps)
        return ticks


# -----------------------
# Biplane batch
# -----------------------

class BiplaneOrchestrator:
    """
    Frame-stepped walk over the two apical views, strictly one after another.

    Each view starts from a cleared session (ROI kept), walks its source from
    t=0 in 1/fps steps with a cooperative yield after every frame, and is
    completed before the next view starts. Both view EFs are then averaged.
    """

    def __init__(
        self,
        engine: EchoEngine,
        *,
        sink: Optional[PresentationSink] = None,
        scheduler: Optional[Scheduler] = None,
        fps: float = DEFAULT_FPS,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.engine = engine
        self.sink = sink or NullSink()
        self.scheduler = scheduler or Scheduler()
        self.fps = float(fps)

    @staticmethod
    def check_rois(sessions: Mapping[View, ViewSession]) -> None:
        missing_roi = [
            v.value for v in BIPLANE_VIEWS
            if v not in sessions or sessions[v].roi is None or sessions[v].roi.is_empty
        ]
        if missing_roi:
            raise AnalysisError(
                code=ANALYSIS_ROI_MISSING,
                message="Biplane analysis requires an ROI on every view",
                details={"views": missing_roi},
            )

    @classmethod
    def check_preconditions(
        cls,
        sessions: Mapping[View, ViewSession],
        sources: Mapping[View, FrameSource],
    ) -> None:
        cls.check_rois(sessions)

        missing_source = [v.value for v in BIPLANE_VIEWS if v not in sources]
        if missing_source:
            raise AnalysisError(
                code=ANALYSIS_SOURCE_MISSING,
                message="Biplane analysis requires a frame source for every view",
                details={"views": missing_source},
            )

    async def run_view(
        self,
        session: ViewSession,
        source: FrameSource,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> float:
        session.clear_tracking()
        source.seek(0.0)
        duration = source.duration()

        index = 0
        while index / self.fps < duration:
            if cancel is not None and cancel.is_set():
                raise AnalysisCancelledError(
                    details={"view": session.view.value, "frames_processed": session.frames_processed},
                )
            t = index / self.fps
            source.seek(t)
            result = self.engine.tick(
                session,
                source.current_raster(),
                source.current_time(),
                progress=min(1.0, (t + 1.0 / self.fps) / duration) if duration > 0 else 1.0,
            )
            self.sink.on_tick(session.view, result)
            index += 1
            await self.scheduler.yield_now()

        ef = session.complete()
        logger.info(
            "view={} completed: frames={} points={} ef={:.1f}",
            session.view.value, session.frames_processed, len(session.points), ef,
        )
        return ef

    async def run(
        self,
        sessions: Mapping[View, ViewSession],
        sources: Mapping[View, FrameSource],
        *,
        cancel: Optional[asyncio.Event] = None,
        heart_rate: float = DEFAULT_HEART_RATE_BPM,
    ) -> AnalysisResult:
        self.check_preconditions(sessions, sources)

        for view in BIPLANE_VIEWS:
            await self.run_view(sessions[view], sources[view], cancel=cancel)

        result = combine_views(sessions, heart_rate=heart_rate)
        logger.info("biplane ef={:.1f} gls={:.1f}", result.ejection_fraction, result.gls)
        self.sink.on_result(result)
        return result


def combine_views(
    sessions: Mapping[View, ViewSession],
    *,
    heart_rate: float = DEFAULT_HEART_RATE_BPM,
) -> AnalysisResult:
    """
    Build the immutable biplane result from two completed sessions.
    """
    not_done = [v.value for v in BIPLANE_VIEWS if not sessions[v].processed]
    if not_done:
        raise AnalysisError(
            code=ANALYSIS_VIEWS_INCOMPLETE,
            message="Both views must be completed before combining",
            details={"views": not_done},
        )

    metrics = tuple(sessions[v].metrics() for v in BIPLANE_VIEWS)
    ef = biplane_ejection_fraction(*(m.ejection_fraction for m in metrics))
    gls = sum(m.peak_strain for m in metrics) / len(metrics)

    segmental = build_segmental_map(
        {
            v: (sessions[v].points, sessions[v].roi or Roi(0, 0, *sessions[v].frame_size))
            for v in BIPLANE_VIEWS
        }
    )
    return AnalysisResult(
        ejection_fraction=ef,
        gls=gls,
        heart_rate=float(heart_rate),
        views=metrics,
        segmental_map=segmental,
    )
