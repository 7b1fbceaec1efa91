# app/motion/segments.py
from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

from .types import Roi, TrackingPoint, View

SEGMENT_COUNT = 17

# AHA 17-segment indices (0-based):
#   basal  0-5  : anterior, anteroseptal, inferoseptal, inferior, inferolateral, anterolateral
#   mid    6-11 : same order
#   apical 12-15: anterior, septal, inferior, lateral
#   apex   16
RINGS: Dict[str, Tuple[int, ...]] = {
    "basal": (0, 1, 2, 3, 4, 5),
    "mid": (6, 7, 8, 9, 10, 11),
    "apical": (12, 13, 14, 15),
    "apex": (16,),
}

# (left wall, right wall) per level, as seen in each apical view
_WALLS: Dict[View, Dict[str, Tuple[int, int]]] = {
    View.A4C: {"basal": (2, 5), "mid": (8, 11), "apical": (13, 15)},
    View.A2C: {"basal": (3, 0), "mid": (9, 6), "apical": (14, 12)},
}

# depth bands from the top of the ROI (apex) down to the base
_APEX_LIMIT = 0.15
_APICAL_LIMIT = 0.45
_MID_LIMIT = 0.75


def _level(depth: float) -> str:
    if depth < _APEX_LIMIT:
        return "apex"
    if depth < _APICAL_LIMIT:
        return "apical"
    if depth < _MID_LIMIT:
        return "mid"
    return "basal"


def segment_index(view: View, point: TrackingPoint, roi: Roi) -> int:
    depth = (point.initial.y - roi.y) / roi.h if roi.h > 0 else 1.0
    level = _level(depth)
    if level == "apex":
        return 16
    left, right = _WALLS[view][level]
    return left if point.initial.x < roi.center.x else right


def _mean(values: Iterable[float]) -> Optional[float]:
    vals = list(values)
    return sum(vals) / len(vals) if vals else None


def build_segmental_map(
    view_points: Mapping[View, Tuple[Iterable[TrackingPoint], Roi]],
) -> Tuple[float, ...]:
    """
    Bin final per-point strain of each view into the 17 AHA segments.

    Segments no view covers take their ring mean, then the global mean, then 0.
    """
    buckets: list[list[float]] = [[] for _ in range(SEGMENT_COUNT)]
    for view, (points, roi) in view_points.items():
        for p in points:
            buckets[segment_index(view, p, roi)].append(p.strain)

    seg: list[Optional[float]] = [_mean(b) for b in buckets]
    global_mean = _mean(v for b in buckets for v in b)

    out: list[float] = []
    for ring in RINGS.values():
        ring_mean = _mean(seg[i] for i in ring if seg[i] is not None)
        for i in ring:
            value = seg[i]
            if value is None:
                value = ring_mean if ring_mean is not None else global_mean
            out.append(float(value) if value is not None else 0.0)
    return tuple(out)
