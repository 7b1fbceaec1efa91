# app/motion/types.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

LOGICAL_WIDTH = 600
LOGICAL_HEIGHT = 450
LOGICAL_SIZE: Tuple[int, int] = (LOGICAL_WIDTH, LOGICAL_HEIGHT)  # (w, h)


class View(str, Enum):
    A4C = "a4c"
    A2C = "a2c"


# processing order for the biplane protocol
BIPLANE_VIEWS: Tuple[View, View] = (View.A4C, View.A2C)


@dataclass(frozen=True)
class Point2:
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point2":
        return Point2(self.x + dx, self.y + dy)

    def distance_to(self, other: "Point2") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class TrackingPoint:
    """
    A tracked myocardial speckle.

    `initial` is fixed at detection time; `current` and `strain` are
    rewritten every tick.
    """
    id: str
    initial: Point2
    current: Point2
    strain: float = 0.0

    @classmethod
    def seed(cls, id: str, at: Point2) -> "TrackingPoint":
        return cls(id=id, initial=at, current=at, strain=0.0)


@dataclass(frozen=True)
class Roi:
    """
    Region of interest in logical coordinates: (x, y) top-left, (w, h) size.
    """
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Roi":
        return cls(x=min(x0, x1), y=min(y0, y1), w=abs(x1 - x0), h=abs(y1 - y0))

    @property
    def center(self) -> Point2:
        return Point2(self.x + self.w / 2.0, self.y + self.h / 2.0)

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def clamp(self, width: int, height: int) -> "Roi":
        x0 = max(0.0, min(float(self.x), float(width)))
        y0 = max(0.0, min(float(self.y), float(height)))
        x1 = max(x0, min(float(self.x + self.w), float(width)))
        y1 = max(y0, min(float(self.y + self.h), float(height)))
        return Roi(x=x0, y=y0, w=x1 - x0, h=y1 - y0)

    def pixel_bounds(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """
        Integer (x0, y0, x1, y1) slice bounds after clamping; x1/y1 exclusive.
        """
        c = self.clamp(width, height)
        x0 = int(math.floor(c.x))
        y0 = int(math.floor(c.y))
        x1 = int(math.ceil(c.x + c.w))
        y1 = int(math.ceil(c.y + c.h))
        return x0, y0, min(x1, width), min(y1, height)


@dataclass(frozen=True)
class StrainSample:
    time: float
    value: float
