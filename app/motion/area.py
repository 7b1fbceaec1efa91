# app/motion/area.py
from __future__ import annotations

import math
from typing import Sequence

from .types import Point2

EF_MIN = 20.0
EF_MAX = 85.0
EF_PLACEHOLDER = 55.0


def polygon_area(points: Sequence[Point2]) -> float:
    """
    Area enclosed by an unordered point set.

    Points are sorted by angle around their centroid so that the Shoelace sum
    traces a simple polygon regardless of input order.
    """
    n = len(points)
    if n < 3:
        return 0.0

    cx = sum(p.x for p in points) / n
    cy = sum(p.y for p in points) / n
    ordered = sorted(points, key=lambda p: math.atan2(p.y - cy, p.x - cx))

    acc = 0.0
    for i in range(n):
        a = ordered[i]
        b = ordered[(i + 1) % n]
        acc += a.x * b.y - b.x * a.y
    return abs(acc) / 2.0


def ejection_fraction(max_area: float, min_area: float) -> float:
    """
    Fractional area change in percent, clamped to [EF_MIN, EF_MAX].

    Returns EF_PLACEHOLDER when no area was ever measured.
    """
    if max_area <= 0 or math.isinf(min_area):
        return EF_PLACEHOLDER
    ef = (max_area - min_area) / max_area * 100.0
    return min(EF_MAX, max(EF_MIN, ef))


def biplane_ejection_fraction(*view_efs: float) -> float:
    if not view_efs:
        raise ValueError("at least one view EF is required")
    return sum(view_efs) / len(view_efs)
