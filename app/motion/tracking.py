# app/motion/tracking.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .raster import Raster
from .types import Point2, TrackingPoint


@dataclass(frozen=True)
class BlockMatchConfig:
    """
    block_size:
      - side of the square template, in pixels.
    search_window:
      - full width of the search range; offsets span +/- search_window // 2.
    step:
      - offset stride. Offsets are multiples of step, so zero is always tried.
    """
    block_size: int = 14
    search_window: int = 28
    step: int = 2


def search_offsets(search_window: int, step: int = 2) -> list[int]:
    half = int(search_window) // 2
    step = max(1, int(step))
    return [o for o in range(-half, half + 1) if o % step == 0]


def _block_origin(point: Point2, block_size: int) -> tuple[int, int]:
    half = block_size // 2
    return int(round(point.x)) - half, int(round(point.y)) - half


def _in_bounds(x0: int, y0: int, block_size: int, width: int, height: int) -> bool:
    return x0 >= 0 and y0 >= 0 and x0 + block_size <= width and y0 + block_size <= height


class BlockMatcher:
    """
    Sum-of-absolute-differences block matching on the luminance channel.

    For each point a block_size x block_size template is cut from the previous
    frame and compared against candidate blocks in the current frame, dy in the
    outer loop and dx in the inner loop. Zero displacement is scored first and
    a candidate replaces the best only with a strictly smaller SAD, so ties
    keep the point where it is, then the first scanned offset.
    """

    def __init__(self, config: BlockMatchConfig | None = None) -> None:
        self.config = config or BlockMatchConfig()
        self._offsets = search_offsets(self.config.search_window, self.config.step)
        bs = self.config.block_size
        self._diff = np.empty((bs, bs), dtype=np.int32)

    def track(self, prev: Raster, curr: Raster, point: Point2) -> Point2:
        prev_lum = prev.luminance().astype(np.int32)
        curr_lum = curr.luminance().astype(np.int32)
        return self._track_lum(prev_lum, curr_lum, point)

    def track_points(self, prev: Raster, curr: Raster, points: Sequence[TrackingPoint]) -> list[Point2]:
        # luminance is widened once per tick, not once per point
        prev_lum = prev.luminance().astype(np.int32)
        curr_lum = curr.luminance().astype(np.int32)
        return [self._track_lum(prev_lum, curr_lum, p.current) for p in points]

    def _track_lum(self, prev_lum: np.ndarray, curr_lum: np.ndarray, point: Point2) -> Point2:
        bs = self.config.block_size
        height, width = prev_lum.shape
        x0, y0 = _block_origin(point, bs)
        if not _in_bounds(x0, y0, bs, width, height):
            return point

        template = prev_lum[y0:y0 + bs, x0:x0 + bs]

        # zero displacement is the baseline; any move must be strictly better
        best_sad = self._sad(template, curr_lum, x0, y0)
        best_dx = 0
        best_dy = 0
        for dy in self._offsets:
            cy = y0 + dy
            if cy < 0 or cy + bs > height:
                continue
            for dx in self._offsets:
                if dx == 0 and dy == 0:
                    continue
                cx = x0 + dx
                if cx < 0 or cx + bs > width:
                    continue
                sad = self._sad(template, curr_lum, cx, cy)
                if sad < best_sad:
                    best_sad = sad
                    best_dx = dx
                    best_dy = dy

        return point.offset(best_dx, best_dy)

    def _sad(self, template: np.ndarray, lum: np.ndarray, x0: int, y0: int) -> int:
        bs = self.config.block_size
        diff = self._diff
        np.subtract(template, lum[y0:y0 + bs, x0:x0 + bs], out=diff)
        np.abs(diff, out=diff)
        return int(diff.sum())


def track(
    prev: Raster,
    curr: Raster,
    point: Point2,
    block_size: int = 14,
    search_window: int = 28,
) -> Point2:
    matcher = BlockMatcher(BlockMatchConfig(block_size=block_size, search_window=search_window))
    return matcher.track(prev, curr, point)
