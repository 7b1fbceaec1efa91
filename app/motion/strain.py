# app/motion/strain.py
from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator, Optional, Sequence, Tuple

from .types import LOGICAL_SIZE, Point2, Roi, StrainSample, TrackingPoint

# Sign applied to radial deformation before reporting.
# +1.0: moving away from the reference center (lengthening) is positive,
# approaching it (shortening) is negative. Healthy contraction therefore
# reads as negative strain, as in echocardiography GLS reporting.
STRAIN_POLARITY = 1.0

HISTORY_CAPACITY = 100


def reference_center(roi: Optional[Roi], frame_size: Tuple[int, int] = LOGICAL_SIZE) -> Point2:
    if roi is not None and not roi.is_empty:
        return roi.center
    w, h = frame_size
    return Point2(w / 2.0, h / 2.0)


def compute_strain(initial: Point2, current: Point2, center: Point2) -> float:
    """
    Percent change of the distance to `center`, signed by STRAIN_POLARITY.
    """
    dist_initial = initial.distance_to(center)
    dist_current = current.distance_to(center)
    base = dist_initial or 1.0
    return STRAIN_POLARITY * (dist_current - dist_initial) / base * 100.0


def update_strain(point: TrackingPoint, center: Point2) -> float:
    point.strain = compute_strain(point.initial, point.current, center)
    return point.strain


def aggregate_strain(points: Sequence[TrackingPoint]) -> float:
    if not points:
        return 0.0
    return sum(p.strain for p in points) / len(points)


def is_favorable(strain: float) -> bool:
    # shortening (or no deformation) is the favorable direction
    return STRAIN_POLARITY * strain <= 0.0


class StrainHistory:
    """
    Bounded FIFO of strain samples; the oldest sample is evicted first.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY, samples: Iterable[StrainSample] = ()) -> None:
        self._samples: deque[StrainSample] = deque(samples, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def append(self, sample: StrainSample) -> None:
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def latest(self) -> Optional[StrainSample]:
        return self._samples[-1] if self._samples else None

    def peak(self) -> float:
        """
        Most shortened aggregate value seen (0.0 when empty).
        """
        if not self._samples:
            return 0.0
        return min((s.value for s in self._samples), key=lambda v: STRAIN_POLARITY * v)

    def values(self) -> list[float]:
        return [s.value for s in self._samples]

    def to_list(self) -> list[StrainSample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[StrainSample]:
        return iter(self._samples)
