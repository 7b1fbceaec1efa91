# app/motion/__init__.py

# =========================
# Data model
# =========================
from .types import (
    BIPLANE_VIEWS,
    LOGICAL_HEIGHT,
    LOGICAL_SIZE,
    LOGICAL_WIDTH,
    Point2,
    Roi,
    StrainSample,
    TrackingPoint,
    View,
)
from .raster import FrameBuffer, Raster


# =========================
# Per-frame components
# =========================
from .preprocess import enhance_contrast, normalize, prepare_frame
from .edges import MaskConfig, diagnostic_mask, sobel
from .detection import WallDetectionConfig, WallDetector
from .tracking import BlockMatchConfig, BlockMatcher, track
from .strain import (
    STRAIN_POLARITY,
    StrainHistory,
    aggregate_strain,
    compute_strain,
    reference_center,
)
from .area import biplane_ejection_fraction, ejection_fraction, polygon_area


# =========================
# Sessions & orchestration
# =========================
from .session import AnalysisResult, SessionState, ViewMetrics, ViewSession
from .engine import EchoEngine, EngineConfig, TickResult
from .scheduling import Scheduler, SteppingScheduler
from .sources import ArraySource, FrameSource, VideoFileSource
from .controller import (
    BiplaneOrchestrator,
    CollectingSink,
    ContinuousController,
    NullSink,
    PresentationSink,
    combine_views,
)


__all__ = [
    # data model
    "BIPLANE_VIEWS",
    "LOGICAL_HEIGHT",
    "LOGICAL_SIZE",
    "LOGICAL_WIDTH",
    "Point2",
    "Roi",
    "StrainSample",
    "TrackingPoint",
    "View",
    "FrameBuffer",
    "Raster",

    # components
    "enhance_contrast",
    "normalize",
    "prepare_frame",
    "MaskConfig",
    "diagnostic_mask",
    "sobel",
    "WallDetectionConfig",
    "WallDetector",
    "BlockMatchConfig",
    "BlockMatcher",
    "track",
    "STRAIN_POLARITY",
    "StrainHistory",
    "aggregate_strain",
    "compute_strain",
    "reference_center",
    "biplane_ejection_fraction",
    "ejection_fraction",
    "polygon_area",

    # sessions & orchestration
    "AnalysisResult",
    "SessionState",
    "ViewMetrics",
    "ViewSession",
    "EchoEngine",
    "EngineConfig",
    "TickResult",
    "Scheduler",
    "SteppingScheduler",
    "ArraySource",
    "FrameSource",
    "VideoFileSource",
    "BiplaneOrchestrator",
    "CollectingSink",
    "ContinuousController",
    "NullSink",
    "PresentationSink",
    "combine_views",
]
