# app/motion/debug_draw.py
from __future__ import annotations

import base64
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .raster import Raster
from .strain import is_favorable
from .types import Roi, TrackingPoint


def draw_roi(
    img_bgr: np.ndarray,
    roi: Roi,
    *,
    color: Tuple[int, int, int] = (250, 165, 96),
    thickness: int = 2,
    label: Optional[str] = "LV ROI",
) -> np.ndarray:
    x0, y0 = int(round(roi.x)), int(round(roi.y))
    x1, y1 = int(round(roi.x + roi.w)), int(round(roi.y + roi.h))
    out = img_bgr.copy()
    cv2.rectangle(out, (x0, y0), (x1, y1), color, thickness)
    if label:
        cv2.putText(
            out,
            label,
            (x0, max(0, y0 - 8)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            color,
            1,
            cv2.LINE_AA,
        )
    return out


def draw_points(
    img_bgr: np.ndarray,
    points: Iterable[TrackingPoint],
    *,
    radius: int = 3,
) -> np.ndarray:
    """
    Tracked points, green when shortening and red when lengthening.
    """
    out = img_bgr.copy()
    for p in points:
        color = (129, 185, 16) if is_favorable(p.strain) else (68, 68, 239)
        center = (int(round(p.current.x)), int(round(p.current.y)))
        cv2.circle(out, center, radius, color, -1, cv2.LINE_AA)
    return out


def overlay_mask(img_bgr: np.ndarray, mask: Raster) -> np.ndarray:
    """
    Alpha-blend an RGBA diagnostic mask over a BGR frame of the same size.
    """
    if mask.data.shape[:2] != img_bgr.shape[:2]:
        raise ValueError("mask and frame sizes differ")
    alpha = mask.data[:, :, 3:4].astype(np.float32) / 255.0
    color_bgr = mask.data[:, :, 2::-1].astype(np.float32)
    blended = img_bgr.astype(np.float32) * (1.0 - alpha) + color_bgr * alpha
    return np.clip(blended, 0, 255).astype(np.uint8)


def render_overlay(
    frame: Raster,
    points: Iterable[TrackingPoint],
    mask: Optional[Raster] = None,
    roi: Optional[Roi] = None,
) -> np.ndarray:
    out = frame.to_bgr()
    if mask is not None:
        out = overlay_mask(out, mask)
    if roi is not None:
        out = draw_roi(out, roi)
    return draw_points(out, points)


def encode_jpeg_base64(img_bgr: np.ndarray, quality: int = 85) -> str:
    ok, buf = cv2.imencode(".jpg", img_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise RuntimeError("Failed to encode frame as JPEG")
    return base64.b64encode(buf.tobytes()).decode("ascii")
