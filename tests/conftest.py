# tests/conftest.py
from __future__ import annotations

import cv2
import numpy as np
import pytest

from app.motion import LOGICAL_HEIGHT, LOGICAL_WIDTH


@pytest.fixture
def speckle() -> np.ndarray:
    """
    Full-resolution grayscale speckle pattern (uniform noise, fixed seed).

    Every block is distinct, so block matching has a unique best offset.
    """
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(LOGICAL_HEIGHT, LOGICAL_WIDTH), dtype=np.uint8)


@pytest.fixture
def drifting_clip(speckle: np.ndarray) -> list[np.ndarray]:
    # speckle drifting 2 px to the right per frame
    return [np.roll(speckle, 2 * k, axis=1) for k in range(6)]


@pytest.fixture
def mjpg_clip(tmp_path) -> bytes:
    """
    Eight-frame 600x450 MJPG AVI of drifting, lightly blurred speckle.
    """
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 30.0, (600, 450))
    if not writer.isOpened():
        pytest.skip("MJPG writer not available in this OpenCV build")
    rng = np.random.default_rng(3)
    base = rng.integers(0, 256, size=(450, 600), dtype=np.uint8)
    base = cv2.GaussianBlur(base, (3, 3), 0)
    for k in range(8):
        gray = np.roll(base, 2 * k, axis=1)
        writer.write(cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR))
    writer.release()
    return path.read_bytes()
