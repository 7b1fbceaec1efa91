# app/motion/sources.py
from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

import cv2
import numpy as np

from app.core.error_codes import ANALYSIS_VIDEO_UNREADABLE
from app.core.exceptions import AnalysisError


@runtime_checkable
class FrameSource(Protocol):
    """
    Read-only frame provider. Times are in seconds.
    """

    def current_raster(self) -> np.ndarray: ...

    def seek(self, time: float) -> None: ...

    def duration(self) -> float: ...

    def current_time(self) -> float: ...


class ArraySource:
    """
    In-memory clip: a sequence of frames played back at a fixed fps.
    """

    def __init__(self, frames: Sequence[np.ndarray], fps: float = 30.0) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self._frames = list(frames)
        self._fps = float(fps)
        self._time = 0.0

    def current_raster(self) -> np.ndarray:
        if not self._frames:
            raise AnalysisError(
                code=ANALYSIS_VIDEO_UNREADABLE,
                message="Frame source has no frames",
            )
        idx = int(self._time * self._fps + 1e-6)
        return self._frames[min(idx, len(self._frames) - 1)]

    def seek(self, time: float) -> None:
        self._time = min(max(0.0, float(time)), self.duration())

    def duration(self) -> float:
        return len(self._frames) / self._fps

    def current_time(self) -> float:
        return self._time


class VideoFileSource:
    """
    OpenCV-backed clip. Seeking is by frame index; a seek to the next frame
    in sequence reads on without repositioning the decoder.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._cap = cv2.VideoCapture(path)
        if not self._cap.isOpened():
            raise AnalysisError(
                code=ANALYSIS_VIDEO_UNREADABLE,
                message="Video could not be opened",
                details={"path": path},
            )

        fps = float(self._cap.get(cv2.CAP_PROP_FPS) or 0.0)
        count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if fps <= 0 or count <= 0:
            self._cap.release()
            raise AnalysisError(
                code=ANALYSIS_VIDEO_UNREADABLE,
                message="Video has no readable frames",
                details={"path": path, "fps": fps, "frame_count": count},
            )

        self._fps = fps
        self._frame_count = count
        self._time = 0.0
        self._next_index = 0         # index the decoder will return on read()
        self._cached_index: Optional[int] = None
        self._cached: Optional[np.ndarray] = None

    @property
    def fps(self) -> float:
        return self._fps

    def _target_index(self) -> int:
        return min(int(self._time * self._fps + 1e-6), self._frame_count - 1)

    def current_raster(self) -> np.ndarray:
        idx = self._target_index()
        if self._cached_index == idx and self._cached is not None:
            return self._cached

        if idx != self._next_index:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, idx)
        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self._cached is not None:
                # container reported more frames than it decodes; hold the last one
                return self._cached
            raise AnalysisError(
                code=ANALYSIS_VIDEO_UNREADABLE,
                message="Failed to decode video frame",
                details={"path": self.path, "frame_index": idx},
            )

        self._next_index = idx + 1
        self._cached_index = idx
        self._cached = frame
        return frame

    def seek(self, time: float) -> None:
        self._time = min(max(0.0, float(time)), self.duration())

    def duration(self) -> float:
        return self._frame_count / self._fps

    def current_time(self) -> float:
        return self._time

    def release(self) -> None:
        self._cap.release()

    def __enter__(self) -> "VideoFileSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
