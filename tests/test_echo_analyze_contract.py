import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import app
from app.routers.echo import get_echo_service
from app.services.echo_service import EchoService
from app.services.advisory_service import FALLBACK_INSIGHT

ROI = "200,150,200,150"


@pytest.fixture
def client():
    # no advisory URL and no per-frame delay
    app.dependency_overrides[get_echo_service] = lambda: EchoService(Settings(batch_yield_s=0.0))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _files(a4c=b"fake-bytes", a2c=b"fake-bytes", content_type="video/mp4"):
    return {
        "a4c": ("a4c.mp4", a4c, content_type),
        "a2c": ("a2c.mp4", a2c, content_type),
    }


def _assert_error(res, status, code):
    assert res.status_code == status
    body = res.json()
    assert body["ok"] is False
    assert body["error"]["code"] == code
    assert res.headers.get("x-request-id") == body["request_id"]
    return body


def test_rejects_non_video_upload(client):
    res = client.post(
        "/echo/biplane",
        files=_files(content_type="text/plain"),
        data={"a4c_roi": ROI, "a2c_roi": ROI},
    )
    body = _assert_error(res, 400, "REQ_UNSUPPORTED_MEDIA_TYPE")
    assert body["error"]["details"]["view"] == "a4c"


def test_rejects_empty_upload(client):
    res = client.post(
        "/echo/biplane",
        files=_files(a2c=b""),
        data={"a4c_roi": ROI, "a2c_roi": ROI},
    )
    body = _assert_error(res, 400, "REQ_EMPTY_VIDEO_BYTES")
    assert body["error"]["details"]["view"] == "a2c"


def test_missing_roi_is_an_analysis_error(client):
    res = client.post("/echo/biplane", files=_files(), data={"a4c_roi": ROI})
    body = _assert_error(res, 422, "ANALYSIS_ROI_MISSING")
    assert body["error"]["details"]["views"] == ["a2c"]


def test_malformed_roi_is_a_request_error(client):
    res = client.post(
        "/echo/biplane",
        files=_files(),
        data={"a4c_roi": "10,20,thirty", "a2c_roi": ROI},
    )
    _assert_error(res, 400, "REQ_INVALID_ROI")


def test_zero_sized_roi_is_a_request_error(client):
    res = client.post(
        "/echo/biplane",
        files=_files(),
        data={"a4c_roi": ROI, "a2c_roi": "10,10,0,50"},
    )
    _assert_error(res, 400, "REQ_INVALID_ROI")


def test_undecodable_video_is_an_analysis_error(client):
    res = client.post(
        "/echo/biplane",
        files=_files(),
        data={"a4c_roi": ROI, "a2c_roi": ROI},
    )
    _assert_error(res, 422, "ANALYSIS_VIDEO_UNREADABLE")


def test_insight_endpoint_falls_back_without_service(client):
    res = client.post("/echo/insight", json={"gls": -17.5, "ef": 57.0, "hr": 70.0})
    assert res.status_code == 200
    assert res.json() == FALLBACK_INSIGHT.model_dump()


@pytest.mark.smoke
def test_biplane_analysis_end_to_end(client, mjpg_clip):
    clip = mjpg_clip

    res = client.post(
        "/echo/biplane",
        files={
            "a4c": ("a4c.avi", clip, "video/x-msvideo"),
            "a2c": ("a2c.avi", clip, "video/x-msvideo"),
        },
        data={"a4c_roi": ROI, "a2c_roi": ROI, "heart_rate": "66", "include_insight": "true"},
    )

    assert res.status_code == 200
    data = res.json()

    assert data["ok"] is True
    assert data["meta"]["request_id"] == res.headers["x-request-id"]
    assert data["meta"]["engine_version"] == "biplane-v1"

    result = data["result"]
    assert 20.0 <= result["ejection_fraction"] <= 85.0
    assert result["heart_rate"] == 66.0
    assert len(result["segmental_map"]) == 17
    assert [v["view"] for v in result["views"]] == ["a4c", "a2c"]
    for v in result["views"]:
        assert v["processed"] is True
        assert v["frames_processed"] > 0
        assert 20.0 <= v["ejection_fraction"] <= 85.0

    # no advisory URL configured
    assert data["insight"] == FALLBACK_INSIGHT.model_dump()
