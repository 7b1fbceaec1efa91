# app/motion/raster.py
from __future__ import annotations

from typing import Tuple

import numpy as np

from .types import LOGICAL_HEIGHT, LOGICAL_WIDTH


class Raster:
    """
    RGBA uint8 pixel buffer, shape (H, W, 4).

    Grayscale content is stored replicated in R, G and B; channel 0 is the
    luminance channel used by the edge extractor and the tracker.
    """

    def __init__(self, data: np.ndarray) -> None:
        if data.ndim != 3 or data.shape[2] != 4:
            raise ValueError(f"Raster expects (H, W, 4) data, got shape {data.shape}")
        if data.dtype != np.uint8:
            raise ValueError(f"Raster expects uint8 data, got {data.dtype}")
        self.data = data

    @classmethod
    def blank(cls, width: int = LOGICAL_WIDTH, height: int = LOGICAL_HEIGHT) -> "Raster":
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_gray(cls, gray: np.ndarray) -> "Raster":
        g = np.clip(gray, 0, 255).astype(np.uint8)
        h, w = g.shape[:2]
        data = np.empty((h, w, 4), dtype=np.uint8)
        data[:, :, 0] = g
        data[:, :, 1] = g
        data[:, :, 2] = g
        data[:, :, 3] = 255
        return cls(data)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self.data[y, x]
        return int(r), int(g), int(b), int(a)

    def set_pixel(self, x: int, y: int, rgba: Tuple[int, int, int, int]) -> None:
        self.data[y, x] = rgba

    def luminance(self) -> np.ndarray:
        # view, not a copy
        return self.data[:, :, 0]

    def copy(self) -> "Raster":
        return Raster(self.data.copy())

    def to_bgr(self) -> np.ndarray:
        return np.ascontiguousarray(self.data[:, :, 2::-1])


class FrameBuffer:
    """
    Previous/current double buffer.

    push() always shifts current into previous first, then fills current.
    """

    def __init__(self, width: int = LOGICAL_WIDTH, height: int = LOGICAL_HEIGHT) -> None:
        self.previous = Raster.blank(width, height)
        self.current = Raster.blank(width, height)
        self.frames_pushed = 0

    def push(self, frame: Raster) -> None:
        if frame.size != self.current.size:
            raise ValueError(
                f"frame size {frame.size} does not match buffer size {self.current.size}"
            )
        np.copyto(self.previous.data, self.current.data)
        np.copyto(self.current.data, frame.data)
        self.frames_pushed += 1

    def clear(self) -> None:
        self.previous.data[...] = 0
        self.current.data[...] = 0
        self.frames_pushed = 0
