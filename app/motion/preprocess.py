# app/motion/preprocess.py
from __future__ import annotations

from typing import Tuple, Union

import cv2
import numpy as np

from .raster import Raster
from .types import LOGICAL_SIZE

FrameLike = Union[np.ndarray, Raster]


def _to_rgba(img: np.ndarray) -> np.ndarray:
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if img.ndim == 3 and img.shape[2] == 3:
        # OpenCV decoders hand out BGR
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if img.ndim == 3 and img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise ValueError(f"Unsupported frame shape: {img.shape}")


def normalize(source: FrameLike, size: Tuple[int, int] = LOGICAL_SIZE) -> Raster:
    """
    Resize an arbitrary source frame to the fixed logical resolution.

    size is (width, height). Returns a new Raster; the source is not touched.
    """
    if isinstance(source, Raster):
        img = source.data
        if source.size == tuple(size):
            return source.copy()
        w, h = size
        interp = cv2.INTER_AREA if (img.shape[1] > w or img.shape[0] > h) else cv2.INTER_LINEAR
        return Raster(cv2.resize(img, (w, h), interpolation=interp))

    if source is None or source.size == 0:
        raise ValueError("source frame is empty")

    rgba = _to_rgba(source)
    w, h = size
    if rgba.shape[1] != w or rgba.shape[0] != h:
        # shrink with INTER_AREA, enlarge with INTER_LINEAR
        interp = cv2.INTER_AREA if (rgba.shape[1] > w or rgba.shape[0] > h) else cv2.INTER_LINEAR
        rgba = cv2.resize(rgba, (w, h), interpolation=interp)
    return Raster(np.ascontiguousarray(rgba))


def enhance_contrast(raster: Raster) -> Raster:
    """
    Linear min/max stretch of the luminance channel, in place.

    The observed minimum maps to 0 and the maximum to 255. A uniform frame is
    left as is. The stretched channel is written back into R, G and B.
    """
    ch = raster.data[:, :, 0]
    mn = int(ch.min())
    mx = int(ch.max())
    if mx == mn:
        return raster

    scaled = (ch.astype(np.float32) - mn) * (255.0 / float(mx - mn))
    out = np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
    raster.data[:, :, 0] = out
    raster.data[:, :, 1] = out
    raster.data[:, :, 2] = out
    return raster


def prepare_frame(source: FrameLike, size: Tuple[int, int] = LOGICAL_SIZE) -> Raster:
    return enhance_contrast(normalize(source, size=size))
