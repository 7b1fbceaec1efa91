import asyncio
from types import SimpleNamespace

import pytest

from app.core.config import Settings
from app.core.exceptions import AnalysisCancelledError, RequestError
from app.motion import Roi, View
from app.routers.echo import watch_disconnect
from app.services.echo_service import BiplaneAnalyzeInput, ClipInput, EchoService, parse_roi

ROI = "200,150,200,150"


def test_parse_roi_accepts_four_numbers():
    assert parse_roi(" 10, 20.5 ,30,40 ", View.A4C) == Roi(10, 20.5, 30, 40)
    assert parse_roi(None, View.A4C) is None
    assert parse_roi("  ", View.A2C) is None


@pytest.mark.parametrize("raw", ["1,2,3", "a,b,c,d", "1,2,3,4,5", "10,10,0,50", "10,10,50,-1"])
def test_parse_roi_rejects_malformed(raw):
    with pytest.raises(RequestError) as exc:
        parse_roi(raw, View.A2C)
    assert exc.value.code == "REQ_INVALID_ROI"
    assert exc.value.details["view"] == "a2c"


class FakeRequest:
    def __init__(self, answers):
        self._answers = list(answers)
        self.calls = 0
        self.state = SimpleNamespace(request_id="req-1")

    async def is_disconnected(self):
        self.calls += 1
        return self._answers.pop(0)


def test_disconnect_sets_cancel():
    req = FakeRequest([False, False, True])
    cancel = asyncio.Event()

    asyncio.run(watch_disconnect(req, cancel, poll_s=0.0))

    assert cancel.is_set()
    assert req.calls == 3


def test_watcher_stops_once_cancel_is_set():
    req = FakeRequest([])
    cancel = asyncio.Event()
    cancel.set()

    asyncio.run(watch_disconnect(req, cancel, poll_s=0.0))

    assert req.calls == 0


def test_cancelled_request_stops_analysis(mjpg_clip):
    service = EchoService(Settings(batch_yield_s=0.0))
    clip = ClipInput(video_bytes=mjpg_clip, filename="a.avi", content_type="video/x-msvideo", roi=ROI)
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(AnalysisCancelledError) as exc:
        asyncio.run(service.analyze_biplane(BiplaneAnalyzeInput(a4c=clip, a2c=clip), "req-2", cancel=cancel))

    assert exc.value.http_status == 409
    assert exc.value.details["view"] == "a4c"
    assert exc.value.details["frames_processed"] == 0
