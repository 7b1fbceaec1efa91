# app/motion/engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from app.core.logging import get_logger

from .area import polygon_area
from .detection import WallDetectionConfig, WallDetector
from .edges import MaskConfig, diagnostic_mask, sobel
from .preprocess import FrameLike, prepare_frame
from .raster import Raster
from .session import SessionState, ViewSession
from .strain import aggregate_strain, reference_center, update_strain
from .tracking import BlockMatchConfig, BlockMatcher
from .types import StrainSample, TrackingPoint, View

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    detection: WallDetectionConfig = field(default_factory=WallDetectionConfig)
    block_match: BlockMatchConfig = field(default_factory=BlockMatchConfig)
    mask: MaskConfig = field(default_factory=MaskConfig)


@dataclass(frozen=True)
class TickResult:
    """
    What the presentation layer receives after one tick.

    points is a snapshot: later ticks do not mutate it.
    """
    view: View
    time: float
    points: Tuple[TrackingPoint, ...]
    mask: Raster
    sample: StrainSample
    area: float
    detected: bool
    progress: Optional[float] = None


class EchoEngine:
    """
    One tick = preprocess -> shift/fill buffer -> detect or track -> strain ->
    area extrema -> diagnostic mask -> history.

    The engine keeps no per-view state; everything lives in the ViewSession
    passed in by the caller.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.detector = WallDetector(self.config.detection)
        self.matcher = BlockMatcher(self.config.block_match)

    def tick(
        self,
        session: ViewSession,
        frame: FrameLike,
        time: float,
        *,
        progress: Optional[float] = None,
    ) -> TickResult:
        session.ensure_active()

        raster = prepare_frame(frame, size=session.frame_size)
        session.buffer.push(raster)
        prev, curr = session.buffer.previous, session.buffer.current

        magnitude = sobel(curr)
        detected = False

        if not session.points:
            session.state = SessionState.DETECTING
            session.points = self.detector.detect(magnitude, session.roi)
            detected = True
            if session.points:
                session.state = SessionState.TRACKING
                logger.debug(
                    "view={} t={:.3f}: seeded {} points",
                    session.view.value, time, len(session.points),
                )
            else:
                logger.debug("view={} t={:.3f}: no wall edges above threshold, deferring", session.view.value, time)
        else:
            center = reference_center(session.roi, session.frame_size)
            for point, nxt in zip(session.points, self.matcher.track_points(prev, curr, session.points)):
                point.current = nxt
                update_strain(point, center)

        area = polygon_area([p.current for p in session.points])
        session.record_area(area)

        strain = aggregate_strain(session.points)
        sample = StrainSample(time=float(time), value=strain)
        session.history.append(sample)
        session.record_strain(strain)

        session.mask = diagnostic_mask(magnitude, strain, session.roi, config=self.config.mask)
        session.frames_processed += 1

        return TickResult(
            view=session.view,
            time=float(time),
            points=tuple(
                TrackingPoint(id=p.id, initial=p.initial, current=p.current, strain=p.strain)
                for p in session.points
            ),
            mask=session.mask,
            sample=sample,
            area=area,
            detected=detected,
            progress=progress,
        )
