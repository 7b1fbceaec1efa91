# app/motion/detection.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .types import Point2, Roi, TrackingPoint


@dataclass(frozen=True)
class WallDetectionConfig:
    grid_step: int = 20
    threshold: float = 150.0
    # used when no ROI is given: fraction of the frame skipped on each side
    default_margin_ratio: float = 0.2


def _sampling_bounds(
    width: int,
    height: int,
    roi: Optional[Roi],
    margin_ratio: float,
) -> Tuple[int, int, int, int]:
    if roi is not None:
        return roi.pixel_bounds(width, height)

    mx = int(width * margin_ratio)
    my = int(height * margin_ratio)
    return mx, my, max(mx, width - mx), max(my, height - my)


class WallDetector:
    """
    Seeds tracking points on strong edges.

    The edge magnitude map is sampled on a fixed grid, row-major (top to
    bottom, left to right). Point ids follow that scan order.
    """

    def __init__(self, config: WallDetectionConfig | None = None) -> None:
        self.config = config or WallDetectionConfig()

    def detect(self, magnitude: np.ndarray, roi: Optional[Roi] = None) -> list[TrackingPoint]:
        h, w = magnitude.shape[:2]
        step = max(1, int(self.config.grid_step))
        x0, y0, x1, y1 = _sampling_bounds(w, h, roi, self.config.default_margin_ratio)
        if x1 <= x0 or y1 <= y0:
            return []

        grid = magnitude[y0:y1:step, x0:x1:step]
        rows, cols = np.nonzero(grid > self.config.threshold)  # row-major order

        points: list[TrackingPoint] = []
        for i, (r, c) in enumerate(zip(rows.tolist(), cols.tolist())):
            at = Point2(float(x0 + c * step), float(y0 + r * step))
            points.append(TrackingPoint.seed(f"pt-{i}", at))
        return points
