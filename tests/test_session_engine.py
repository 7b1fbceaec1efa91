import math

import numpy as np
import pytest

from app.core.error_codes import ANALYSIS_SESSION_COMPLETED
from app.core.exceptions import AnalysisError
from app.motion import EchoEngine, Roi, SessionState, StrainSample, View, ViewSession
from app.motion.strain import aggregate_strain, compute_strain

ROI = Roi(200, 150, 200, 150)


def test_set_roi_clamps_and_moves_to_roi_defined():
    s = ViewSession(view=View.A4C)
    assert s.state == SessionState.IDLE

    s.set_roi(Roi(-10, -10, 100, 100))

    assert s.roi == Roi(0, 0, 90, 90)
    assert s.state == SessionState.ROI_DEFINED


def test_area_extrema_are_monotone():
    s = ViewSession(view=View.A4C)
    for a in (100.0, 50.0, 80.0, 0.0):
        s.record_area(a)
    assert s.max_area == 100.0
    assert s.min_area == 50.0
    assert s.current_ejection_fraction() == pytest.approx(50.0)


def test_complete_freezes_ef_and_blocks_further_ticks(speckle):
    s = ViewSession(view=View.A4C, roi=ROI)
    s.record_area(100.0)
    s.record_area(40.0)

    assert s.complete() == pytest.approx(60.0)
    assert s.processed
    assert s.state == SessionState.COMPLETED

    with pytest.raises(AnalysisError) as exc:
        EchoEngine().tick(s, speckle, 0.0)
    assert exc.value.code == ANALYSIS_SESSION_COMPLETED


def test_reset_restores_idle_state(speckle):
    s = ViewSession(view=View.A4C, roi=ROI)
    EchoEngine().tick(s, speckle, 0.0)

    s.reset()

    assert s.state == SessionState.IDLE
    assert s.roi is None
    assert s.points == []
    assert len(s.history) == 0
    assert s.max_area == 0.0
    assert math.isinf(s.min_area)
    assert s.mask is None
    assert s.frames_processed == 0


def test_clear_tracking_keeps_roi(speckle):
    s = ViewSession(view=View.A2C, roi=ROI)
    EchoEngine().tick(s, speckle, 0.0)

    s.clear_tracking()

    assert s.roi == ROI
    assert s.state == SessionState.ROI_DEFINED
    assert s.points == []


def test_first_tick_detects_inside_roi(speckle):
    s = ViewSession(view=View.A4C, roi=ROI)

    res = EchoEngine().tick(s, speckle, 0.0)

    assert res.detected
    assert s.state == SessionState.TRACKING
    assert len(res.points) > 0
    for p in res.points:
        assert 200 <= p.initial.x < 400
        assert 150 <= p.initial.y < 300
        assert p.strain == 0.0
    assert res.sample.value == 0.0
    assert len(s.history) == 1
    assert res.mask.size == (600, 450)
    assert s.frames_processed == 1


def test_blank_frame_defers_detection():
    s = ViewSession(view=View.A4C, roi=ROI)
    blank = np.full((450, 600), 60, dtype=np.uint8)

    res = EchoEngine().tick(s, blank, 0.0)

    assert res.detected
    assert res.points == ()
    assert res.area == 0.0
    assert s.state == SessionState.DETECTING
    assert int(res.mask.data[:, :, 3].max()) == 0


def test_tracking_follows_drift_and_reports_strain(drifting_clip):
    s = ViewSession(view=View.A4C, roi=ROI)
    engine = EchoEngine()

    engine.tick(s, drifting_clip[0], 0.0)
    res = engine.tick(s, drifting_clip[1], 1 / 30)

    assert not res.detected
    center = ROI.center
    for p in res.points:
        assert p.current.x == p.initial.x + 2
        assert p.current.y == p.initial.y
        assert p.strain == pytest.approx(compute_strain(p.initial, p.current, center))
    assert res.sample.value == pytest.approx(aggregate_strain(res.points))
    assert len(s.history) == 2


def test_tick_result_points_are_snapshots(drifting_clip):
    s = ViewSession(view=View.A4C, roi=ROI)
    engine = EchoEngine()

    first = engine.tick(s, drifting_clip[0], 0.0)
    engine.tick(s, drifting_clip[1], 1 / 30)

    assert all(p.current == p.initial for p in first.points)


def test_peak_strain_survives_history_eviction():
    s = ViewSession(view=View.A4C, roi=ROI)
    samples = [-18.0] + [-2.0] * 149
    for i, v in enumerate(samples):
        s.history.append(StrainSample(time=i / 30, value=v))
        s.record_strain(v)

    assert len(s.history) == 100
    assert -18.0 not in s.history.values()
    assert s.metrics().peak_strain == -18.0

    s.clear_tracking()
    assert s.metrics().peak_strain == 0.0


def test_engine_records_peak_every_tick(drifting_clip):
    s = ViewSession(view=View.A4C, roi=ROI)
    engine = EchoEngine()
    for k, frame in enumerate(drifting_clip):
        engine.tick(s, frame, k / 30)

    assert s.peak_strain == min(s.history.values())
