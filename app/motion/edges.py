# app/motion/edges.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from .raster import Raster
from .strain import is_favorable
from .types import Roi

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class MaskConfig:
    threshold: float = 70.0
    favorable_rgb: RGB = (16, 185, 129)    # emerald
    unfavorable_rgb: RGB = (239, 68, 68)   # red


def sobel(raster: Raster) -> np.ndarray:
    """
    Sobel gradient magnitude of the luminance channel.

    Returns float32 (H, W). The 1-pixel border ring is zero: the 3x3 kernels
    are not defined there.
    """
    lum = raster.luminance().astype(np.float32)
    gx = cv2.Sobel(lum, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(lum, cv2.CV_32F, 0, 1, ksize=3)
    mag = cv2.magnitude(gx, gy)

    mag[0, :] = 0.0
    mag[-1, :] = 0.0
    mag[:, 0] = 0.0
    mag[:, -1] = 0.0
    return mag


def diagnostic_mask(
    magnitude: np.ndarray,
    strain: float,
    roi: Optional[Roi] = None,
    *,
    config: MaskConfig = MaskConfig(),
) -> Raster:
    """
    Colorize strong edges with the strain-polarity palette.

    alpha = edge magnitude clamped to 255; pixels at or below the threshold,
    and everything outside the ROI, stay fully transparent.
    """
    h, w = magnitude.shape[:2]
    out = np.zeros((h, w, 4), dtype=np.uint8)

    if roi is not None:
        x0, y0, x1, y1 = roi.pixel_bounds(w, h)
    else:
        x0, y0, x1, y1 = 0, 0, w, h
    if x1 <= x0 or y1 <= y0:
        return Raster(out)

    region = magnitude[y0:y1, x0:x1]
    hit = region > config.threshold

    r, g, b = config.favorable_rgb if is_favorable(strain) else config.unfavorable_rgb
    sub = out[y0:y1, x0:x1]
    sub[hit, 0] = r
    sub[hit, 1] = g
    sub[hit, 2] = b
    sub[hit, 3] = np.minimum(region[hit], 255.0).astype(np.uint8)
    return Raster(out)
