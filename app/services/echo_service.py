from __future__ import annotations

import asyncio
import os
import tempfile
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import ValidationError

from app.core.config import Settings
from app.core.error_codes import (
    REQ_EMPTY_VIDEO_BYTES,
    REQ_INVALID_ROI,
    REQ_UNSUPPORTED_MEDIA_TYPE,
)
from app.core.exceptions import RequestError
from app.core.logging import get_logger
from app.motion import (
    AnalysisResult,
    BiplaneOrchestrator,
    EchoEngine,
    EngineConfig,
    Roi,
    Scheduler,
    View,
    ViewSession,
    VideoFileSource,
)
from app.motion.controller import DEFAULT_HEART_RATE_BPM
from app.motion.debug_draw import encode_jpeg_base64, render_overlay
from app.motion.detection import WallDetectionConfig
from app.motion.edges import MaskConfig
from app.motion.tracking import BlockMatchConfig
from app.schemas.echo import (
    AdvisoryInsight,
    AdvisoryRequest,
    AnalyzeMeta,
    BiplaneAnalyzeResponse,
    BiplaneResult,
    RoiIn,
    ViewMetricsOut,
)
from app.services.advisory_service import AdvisoryClient

logger = get_logger(__name__)

ENGINE_VERSION = "biplane-v1"


# -----------------------
# Input structs
# -----------------------

@dataclass(frozen=True)
class ClipInput:
    video_bytes: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None
    roi: Optional[str] = None  # "x,y,w,h" in logical coordinates


@dataclass(frozen=True)
class BiplaneAnalyzeInput:
    a4c: ClipInput
    a2c: ClipInput
    heart_rate: float = DEFAULT_HEART_RATE_BPM
    include_insight: bool = False


def parse_roi(raw: Optional[str], view: View) -> Optional[Roi]:
    """
    Parse "x,y,w,h". None or blank means no ROI; anything else malformed is a
    request error.
    """
    if raw is None or not raw.strip():
        return None
    parts = [p.strip() for p in raw.split(",")]
    try:
        x, y, w, h = (float(p) for p in parts)
    except ValueError as e:
        raise RequestError(
            code=REQ_INVALID_ROI,
            message="ROI must be four comma-separated numbers: x,y,w,h",
            details={"view": view.value, "roi": raw},
        ) from e
    try:
        roi = RoiIn(x=x, y=y, w=w, h=h)
    except ValidationError as e:
        raise RequestError(
            code=REQ_INVALID_ROI,
            message="ROI width and height must be positive",
            details={"view": view.value, "roi": raw},
        ) from e
    return Roi(x=roi.x, y=roi.y, w=roi.w, h=roi.h)


def engine_config_from_settings(settings: Settings) -> EngineConfig:
    return EngineConfig(
        detection=WallDetectionConfig(
            grid_step=settings.detection_grid_step,
            threshold=settings.detection_threshold,
        ),
        block_match=BlockMatchConfig(
            block_size=settings.block_size,
            search_window=settings.search_window,
        ),
        mask=MaskConfig(threshold=settings.mask_threshold),
    )


class EchoService:
    """
    Biplane pipeline:
      1) validate uploads (bytes-level) and parse ROIs
      2) ROI precondition check, before any decoding
      3) decode both clips and run the biplane walk (A4C, then A2C)
      4) optional advisory insight (never fails the request)
      5) build response
    """

    def __init__(self, settings: Settings, advisory: Optional[AdvisoryClient] = None) -> None:
        self.settings = settings
        self.engine = EchoEngine(engine_config_from_settings(settings))
        self.advisory = advisory or AdvisoryClient(settings)

    async def analyze_biplane(
        self,
        input_: BiplaneAnalyzeInput,
        request_id: str,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> BiplaneAnalyzeResponse:
        clips = {View.A4C: input_.a4c, View.A2C: input_.a2c}

        # 1) validate
        for view, clip in clips.items():
            self._validate_clip(view, clip)
        sessions = {
            view: ViewSession(view=view, roi=parse_roi(clip.roi, view))
            for view, clip in clips.items()
        }

        # 2) precondition
        BiplaneOrchestrator.check_rois(sessions)

        # 3) run
        orchestrator = BiplaneOrchestrator(
            self.engine,
            scheduler=Scheduler(yield_delay_s=self.settings.batch_yield_s),
            fps=self.settings.batch_fps,
        )
        with tempfile.TemporaryDirectory(prefix="cardiastrain-") as tmp, ExitStack() as stack:
            sources: Dict[View, VideoFileSource] = {}
            for view, clip in clips.items():
                path = self._spool(tmp, view, clip)
                sources[view] = stack.enter_context(VideoFileSource(path))

            result = await orchestrator.run(
                sessions, sources, cancel=cancel, heart_rate=input_.heart_rate
            )

        logger.info(
            "request_id={} biplane ef={:.1f} gls={:.1f}",
            request_id, result.ejection_fraction, result.gls,
        )

        # 4) insight
        insight: Optional[AdvisoryInsight] = None
        if input_.include_insight:
            insight = await self.advisory.get_insight(
                self._advisory_request(result, sessions[View.A4C])
            )

        # 5) response
        return BiplaneAnalyzeResponse(
            ok=True,
            meta=AnalyzeMeta(request_id=request_id, engine_version=ENGINE_VERSION),
            result=to_biplane_result(result),
            insight=insight,
        )

    # -----------------------
    # Stage helpers
    # -----------------------

    @staticmethod
    def _validate_clip(view: View, clip: ClipInput) -> None:
        if clip.content_type and not clip.content_type.startswith("video/"):
            raise RequestError(
                code=REQ_UNSUPPORTED_MEDIA_TYPE,
                message="Only video uploads are supported.",
                details={"view": view.value, "content_type": clip.content_type},
            )
        if not clip.video_bytes:
            raise RequestError(
                code=REQ_EMPTY_VIDEO_BYTES,
                message="Uploaded video file is empty",
                details={"view": view.value},
            )

    @staticmethod
    def _spool(tmp_dir: str, view: View, clip: ClipInput) -> str:
        suffix = os.path.splitext(clip.filename or "")[1] or ".bin"
        path = os.path.join(tmp_dir, f"{view.value}{suffix}")
        with open(path, "wb") as f:
            f.write(clip.video_bytes)
        return path

    @staticmethod
    def _advisory_request(result: AnalysisResult, session: ViewSession) -> AdvisoryRequest:
        still = render_overlay(session.buffer.current, session.points, session.mask, session.roi)
        return AdvisoryRequest(
            gls=result.gls,
            ef=result.ejection_fraction,
            hr=result.heart_rate,
            segmental_values=list(result.segmental_map),
            still_frame_b64=encode_jpeg_base64(still),
        )


def to_biplane_result(result: AnalysisResult) -> BiplaneResult:
    return BiplaneResult(
        ejection_fraction=result.ejection_fraction,
        gls=result.gls,
        heart_rate=result.heart_rate,
        views=[
            ViewMetricsOut(
                view=m.view.value,
                ejection_fraction=m.ejection_fraction,
                peak_strain=m.peak_strain,
                latest_strain=m.latest_strain,
                max_area=m.max_area,
                min_area=m.min_area,
                point_count=m.point_count,
                frames_processed=m.frames_processed,
                processed=m.processed,
            )
            for m in result.views
        ],
        segmental_map=list(result.segmental_map),
    )


__all__ = [
    "BiplaneAnalyzeInput",
    "ClipInput",
    "EchoService",
    "parse_roi",
    "to_biplane_result",
]
