# app/motion/session.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from app.core.error_codes import ANALYSIS_SESSION_COMPLETED
from app.core.exceptions import AnalysisError

from .area import ejection_fraction
from .raster import FrameBuffer, Raster
from .strain import STRAIN_POLARITY, StrainHistory
from .types import LOGICAL_SIZE, Roi, TrackingPoint, View


class SessionState(str, Enum):
    IDLE = "idle"
    ROI_DEFINED = "roi_defined"
    DETECTING = "detecting"
    TRACKING = "tracking"
    COMPLETED = "completed"


@dataclass
class ViewSession:
    """
    Tracking state of one anatomical view.

    max_area only grows and min_area only shrinks until reset().
    """
    view: View
    frame_size: Tuple[int, int] = LOGICAL_SIZE
    roi: Optional[Roi] = None
    points: list[TrackingPoint] = field(default_factory=list)
    history: StrainHistory = field(default_factory=StrainHistory)
    max_area: float = 0.0
    min_area: float = math.inf
    peak_strain: Optional[float] = None
    ejection_fraction: float = 0.0
    processed: bool = False
    state: SessionState = SessionState.IDLE
    mask: Optional[Raster] = None
    frames_processed: int = 0
    buffer: FrameBuffer = field(init=False)

    def __post_init__(self) -> None:
        w, h = self.frame_size
        self.buffer = FrameBuffer(w, h)
        if self.roi is not None:
            self.set_roi(self.roi)

    def set_roi(self, roi: Optional[Roi]) -> None:
        if roi is None:
            self.roi = None
            if self.state == SessionState.ROI_DEFINED:
                self.state = SessionState.IDLE
            return
        w, h = self.frame_size
        self.roi = roi.clamp(w, h)
        if self.state == SessionState.IDLE:
            self.state = SessionState.ROI_DEFINED

    def record_area(self, area: float) -> None:
        self.max_area = max(self.max_area, area)
        if area > 0:
            self.min_area = min(self.min_area, area)

    def record_strain(self, value: float) -> None:
        # most shortened sample over the whole view, not just the history window
        if self.peak_strain is None or STRAIN_POLARITY * value < STRAIN_POLARITY * self.peak_strain:
            self.peak_strain = value

    def ensure_active(self) -> None:
        if self.state == SessionState.COMPLETED:
            raise AnalysisError(
                code=ANALYSIS_SESSION_COMPLETED,
                message="View session is already completed; reset it before tracking again",
                details={"view": self.view.value},
            )

    def current_ejection_fraction(self) -> float:
        return ejection_fraction(self.max_area, self.min_area)

    def complete(self) -> float:
        """
        Freeze the view EF and mark the session processed.
        """
        self.ensure_active()
        self.ejection_fraction = self.current_ejection_fraction()
        self.processed = True
        self.state = SessionState.COMPLETED
        return self.ejection_fraction

    def clear_tracking(self) -> None:
        """
        Drop points, history, extrema, mask and frames; the ROI is kept.
        """
        self.points = []
        self.history.clear()
        self.max_area = 0.0
        self.min_area = math.inf
        self.peak_strain = None
        self.ejection_fraction = 0.0
        self.processed = False
        self.mask = None
        self.frames_processed = 0
        self.buffer.clear()
        self.state = SessionState.ROI_DEFINED if self.roi is not None else SessionState.IDLE

    def reset(self) -> None:
        self.roi = None
        self.clear_tracking()

    def metrics(self) -> "ViewMetrics":
        return ViewMetrics(
            view=self.view,
            ejection_fraction=self.ejection_fraction if self.processed else self.current_ejection_fraction(),
            peak_strain=self.peak_strain if self.peak_strain is not None else 0.0,
            latest_strain=self.history.latest.value if self.history.latest else 0.0,
            max_area=self.max_area,
            min_area=0.0 if math.isinf(self.min_area) else self.min_area,
            point_count=len(self.points),
            frames_processed=self.frames_processed,
            processed=self.processed,
        )


@dataclass(frozen=True)
class ViewMetrics:
    view: View
    ejection_fraction: float
    peak_strain: float
    latest_strain: float
    max_area: float
    min_area: float
    point_count: int
    frames_processed: int
    processed: bool


@dataclass(frozen=True)
class AnalysisResult:
    """
    Combined biplane outcome. Built once both views are completed.
    """
    ejection_fraction: float
    gls: float
    heart_rate: float
    views: Tuple[ViewMetrics, ...]
    segmental_map: Tuple[float, ...]

    def view_metrics(self, view: View) -> ViewMetrics:
        for m in self.views:
            if m.view == view:
                return m
        raise KeyError(view)
